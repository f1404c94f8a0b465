"""SwitchBot Bot presented as one of several HomeKit service types."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from ..advertisement import ServiceData
from ..ble_client import BOT_PRESS, BOT_TURN_OFF, BOT_TURN_ON
from ..config import DeviceConfig
from ..const import (
    ACTIVE_ACTIVE,
    ACTIVE_INACTIVE,
    DEFAULT_PUSH_RATE_PRESS,
    DOOR_CLOSED,
    DOOR_OPEN,
    LOCK_SECURED,
    LOCK_UNSECURED,
    POSITION_STOPPED,
    BotDeviceType,
    BotMode,
)
from ..device_logger import DeviceLogger
from ..errors import ConfigurationError
from ..state import TriState
from .base import (
    CharacteristicSpec,
    Command,
    DeviceProfile,
    PushOutcome,
    ServiceSpec,
    SetOutcome,
    Updates,
    battery_service,
    battery_updates,
    key,
    power_from,
)


def _position_service(name: str) -> ServiceSpec:
    return ServiceSpec(
        name,
        (
            CharacteristicSpec("CurrentPosition", 0),
            CharacteristicSpec("TargetPosition", 0, writable=True),
            CharacteristicSpec("PositionState", POSITION_STOPPED),
        ),
    )


_SERVICES: Mapping[BotDeviceType, ServiceSpec] = MappingProxyType(
    {
        BotDeviceType.SWITCH: ServiceSpec(
            "Switch", (CharacteristicSpec("On", False, writable=True),)
        ),
        BotDeviceType.OUTLET: ServiceSpec(
            "Outlet",
            (
                CharacteristicSpec("On", False, writable=True),
                CharacteristicSpec("OutletInUse", True),
            ),
        ),
        BotDeviceType.FAN: ServiceSpec(
            "Fan", (CharacteristicSpec("On", False, writable=True),)
        ),
        BotDeviceType.GARAGE_DOOR: ServiceSpec(
            "GarageDoorOpener",
            (
                CharacteristicSpec("CurrentDoorState", DOOR_CLOSED),
                CharacteristicSpec("TargetDoorState", DOOR_CLOSED, writable=True),
                CharacteristicSpec("ObstructionDetected", False),
            ),
        ),
        BotDeviceType.DOOR: _position_service("Door"),
        BotDeviceType.WINDOW: _position_service("Window"),
        BotDeviceType.WINDOW_COVERING: _position_service("WindowCovering"),
        BotDeviceType.LOCK: ServiceSpec(
            "LockMechanism",
            (
                CharacteristicSpec("LockCurrentState", LOCK_SECURED),
                CharacteristicSpec("LockTargetState", LOCK_SECURED, writable=True),
            ),
        ),
        BotDeviceType.FAUCET: ServiceSpec(
            "Faucet", (CharacteristicSpec("Active", ACTIVE_INACTIVE, writable=True),)
        ),
        BotDeviceType.STATEFUL: ServiceSpec(
            "StatefulProgrammableSwitch",
            (
                CharacteristicSpec("ProgrammableSwitchEvent", 0),
                CharacteristicSpec("ProgrammableSwitchOutputState", 0, writable=True),
            ),
        ),
    }
)

# The value of the writable characteristic that means "off" for each type.
_OFF_VALUES: Mapping[BotDeviceType, Any] = MappingProxyType(
    {
        BotDeviceType.GARAGE_DOOR: DOOR_CLOSED,
        BotDeviceType.DOOR: 0,
        BotDeviceType.WINDOW: 0,
        BotDeviceType.WINDOW_COVERING: 0,
        BotDeviceType.LOCK: LOCK_SECURED,
        BotDeviceType.FAUCET: ACTIVE_INACTIVE,
        BotDeviceType.STATEFUL: 0,
    }
)


class BotProfile(DeviceProfile):
    """Bot in switch, press or multipress mode."""

    device_types = ("Bot",)
    supports_ble = True

    def __init__(self, config: DeviceConfig, log: DeviceLogger) -> None:
        """Resolve the mode and HomeKit presentation from the ``bot`` options."""

        super().__init__(config, log)
        options = config.section("bot")
        mode = options.get("mode")
        if mode is None:
            log.warning('No Bot mode configured, defaulting to "switch"')
            mode = BotMode.SWITCH.value
        try:
            self.mode = BotMode(mode)
        except ValueError as err:
            raise ConfigurationError(f"Invalid Bot mode: {mode}") from err
        self.kind = BotDeviceType(options.get("deviceType", BotDeviceType.OUTLET.value))
        self.double_press = int(options.get("doublePress", 1))
        self.push_rate_press = float(
            options.get("pushRatePress", DEFAULT_PUSH_RATE_PRESS)
        )
        self._allow_push = bool(options.get("allowPush", False))
        self.momentary = self.mode is not BotMode.SWITCH
        self.power = TriState.UNKNOWN
        self.multi_press_count = 0
        spec = _SERVICES[self.kind]
        writable = next(char for char in spec.characteristics if char.writable)
        self.control_key = key(spec.name, writable.name)

    @property
    def allow_push(self) -> bool:
        """Return the ``allowPush`` option."""

        return self._allow_push

    @property
    def push_repeats(self) -> int:
        """Return the ``doublePress`` count."""

        return self.double_press

    @property
    def repeat_interval(self) -> float:
        """Return the ``pushRatePress`` interval."""

        return self.push_rate_press

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the presentation service, plus a battery service over BLE."""

        specs = [_SERVICES[self.kind]]
        connection = self.config.connection_type
        if connection is not None and connection.uses_ble:
            specs.append(battery_service())
        return tuple(specs)

    def is_on(self, value: Any) -> bool:
        """Interpret a write to the control characteristic as on or off."""

        off_value = _OFF_VALUES.get(self.kind)
        if off_value is None:
            return bool(value)
        return value != off_value

    def presentation(self, on: bool) -> Updates:
        """Return every characteristic value for the given on/off state."""

        service = _SERVICES[self.kind].name
        if self.kind in (BotDeviceType.SWITCH, BotDeviceType.OUTLET, BotDeviceType.FAN):
            return {key(service, "On"): on}
        if self.kind is BotDeviceType.GARAGE_DOOR:
            state = DOOR_OPEN if on else DOOR_CLOSED
            return {
                key(service, "CurrentDoorState"): state,
                key(service, "TargetDoorState"): state,
                key(service, "ObstructionDetected"): False,
            }
        if self.kind is BotDeviceType.LOCK:
            state = LOCK_UNSECURED if on else LOCK_SECURED
            return {
                key(service, "LockCurrentState"): state,
                key(service, "LockTargetState"): state,
            }
        if self.kind is BotDeviceType.FAUCET:
            return {key(service, "Active"): ACTIVE_ACTIVE if on else ACTIVE_INACTIVE}
        if self.kind is BotDeviceType.STATEFUL:
            return {key(service, "ProgrammableSwitchOutputState"): 1 if on else 0}
        position = 100 if on else 0
        return {
            key(service, "CurrentPosition"): position,
            key(service, "TargetPosition"): position,
            key(service, "PositionState"): POSITION_STOPPED,
        }

    def _current_state(self) -> Updates:
        if self.momentary:
            return self.presentation(False)
        return self.presentation(self.power.as_bool())

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``power`` and ``battery`` from a cloud status body."""

        power = power_from(body.get("power"))
        if power is not None:
            self.power = TriState.from_value(power)
        updates = self._current_state()
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read state and battery from a Bot advertisement."""

        if data.mode:
            # Switch mode advertisements are only trusted to seed the state.
            if self.power is TriState.UNKNOWN and data.state is not None:
                self.power = TriState.from_value(data.state)
            updates = self._current_state()
        else:
            updates = self.presentation(False)
        updates.update(battery_updates(data.battery))
        return updates

    def on_set(self, name: str, value: Any, values: Mapping[str, Any]) -> SetOutcome:
        """Count presses for multipress mode."""

        if (
            self.mode is BotMode.MULTIPRESS
            and name == self.control_key
            and self.is_on(value)
        ):
            self.multi_press_count += 1
            self.log.debug("multiPressCount: %s", self.multi_press_count)
        return SetOutcome()

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return ``press`` or ``turnOn``/``turnOff`` for a control change."""

        if self.control_key not in changes:
            return []
        on = self.is_on(changes[self.control_key])
        if self.mode is BotMode.SWITCH:
            if on:
                return [Command("turnOn", ble_payload=BOT_TURN_ON)]
            return [Command("turnOff", ble_payload=BOT_TURN_OFF)]
        if not on and self.mode is BotMode.MULTIPRESS:
            return []
        return [Command("press", ble_payload=BOT_PRESS)]

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Confirm switch mode state or revert press mode state."""

        on = self.is_on(changes[self.control_key])
        if self.mode is BotMode.SWITCH:
            self.power = TriState.from_value(on)
            return PushOutcome(updates=self.presentation(on))
        outcome = PushOutcome(revert=self.presentation(False))
        if self.mode is BotMode.MULTIPRESS:
            self.multi_press_count = max(self.multi_press_count - 1, 0)
            outcome.repeat = self.multi_press_count > 0
        return outcome

    def push_failed(self) -> None:
        """Drop presses counted for a push that was not delivered."""

        self.multi_press_count = 0

    def offline_state(self) -> Updates:
        """Report the Bot as off."""

        return self.presentation(False)
