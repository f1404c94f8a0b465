"""Curtain and Blind Tilt window coverings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..advertisement import ServiceData
from ..ble_client import CURTAIN_PAUSE, curtain_run_to_position
from ..config import DeviceConfig
from ..const import (
    CHARGING_CHARGING,
    CHARGING_NOT_CHARGING,
    CURTAIN_LIGHT_LEVELS,
    CURTAIN_MAX_LUX,
    CURTAIN_MIN_LUX,
    POSITION_DECREASING,
    POSITION_INCREASING,
    POSITION_STOPPED,
    BlindTiltMapping,
)
from ..device_logger import DeviceLogger
from .base import (
    BATTERY_SERVICE,
    CharacteristicSpec,
    Command,
    DeviceProfile,
    PushOutcome,
    ServiceSpec,
    SetOutcome,
    Updates,
    battery_service,
    battery_updates,
    brightness_to_lux,
    key,
    light_level_to_lux,
)

COVERING = "WindowCovering"
CURRENT_POSITION = key(COVERING, "CurrentPosition")
TARGET_POSITION = key(COVERING, "TargetPosition")
POSITION_STATE = key(COVERING, "PositionState")
HOLD_POSITION = key(COVERING, "HoldPosition")
CURRENT_TILT = key(COVERING, "CurrentHorizontalTiltAngle")
TARGET_TILT = key(COVERING, "TargetHorizontalTiltAngle")
AMBIENT_LIGHT = key("LightSensor", "CurrentAmbientLightLevel")
CHARGING_STATE = key(BATTERY_SERVICE, "ChargingState")


class CurtainProfile(DeviceProfile):
    """Curtain and Curtain 3 motors."""

    device_types = ("Curtain", "Curtain3", "Curtain 3")
    supports_ble = True
    section_name = "curtain"

    def __init__(self, config: DeviceConfig, log: DeviceLogger) -> None:
        """Read the ``curtain`` (or ``blindTilt``) option block."""

        super().__init__(config, log)
        options = config.section(self.section_name)
        self.set_min: int | None = options.get("set_min")
        self.set_max: int | None = options.get("set_max")
        self.min_step: int | None = options.get("set_minStep")
        self.min_lux = float(options.get("set_minLux", CURTAIN_MIN_LUX))
        self.max_lux = float(options.get("set_maxLux", CURTAIN_MAX_LUX))
        self.hide_light_sensor = bool(options.get("hide_lightsensor", False))
        self.open_mode: str | None = options.get("setOpenMode")
        self.close_mode: str | None = options.get("setCloseMode")
        self.set_new_target = False

    def _covering_characteristics(self) -> tuple[CharacteristicSpec, ...]:
        target_props = {"minStep": self.min_step} if self.min_step else {}
        return (
            CharacteristicSpec("CurrentPosition", 0),
            CharacteristicSpec("TargetPosition", 0, writable=True, props=target_props),
            CharacteristicSpec("PositionState", POSITION_STOPPED),
            CharacteristicSpec("HoldPosition", False, writable=True),
        )

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the covering, light sensor and battery services."""

        specs = [ServiceSpec(COVERING, self._covering_characteristics())]
        if not self.hide_light_sensor:
            specs.append(
                ServiceSpec(
                    "LightSensor",
                    (CharacteristicSpec("CurrentAmbientLightLevel", self.min_lux),),
                )
            )
        specs.append(battery_service(chargeable=True))
        return tuple(specs)

    def clamp(self, position: int) -> int:
        """Snap positions beyond ``set_min``/``set_max`` to fully open or closed."""

        if self.set_min is not None and position <= self.set_min:
            return 0
        if self.set_max is not None and position >= self.set_max:
            return 100
        return position

    def position_updates(self, current: int, values: Mapping[str, Any]) -> Updates:
        """Return position characteristics for a freshly reported position."""

        current = self.clamp(current)
        if not self.set_new_target:
            return {
                CURRENT_POSITION: current,
                TARGET_POSITION: current,
                POSITION_STATE: POSITION_STOPPED,
            }
        target = values.get(TARGET_POSITION, current)
        if target > current:
            state = POSITION_INCREASING
        elif target < current:
            state = POSITION_DECREASING
        else:
            state = POSITION_STOPPED
        return {CURRENT_POSITION: current, POSITION_STATE: state}

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``slidePosition``, ``brightness`` and ``battery``."""

        updates: Updates = {}
        if body.get("slidePosition") is not None:
            position = 100 - int(body["slidePosition"])
            updates.update(self.position_updates(position, values))
        lux = brightness_to_lux(body.get("brightness"), self.min_lux, self.max_lux)
        if lux is not None:
            updates[AMBIENT_LIGHT] = lux
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read position, light level and battery from an advertisement."""

        updates: Updates = {}
        if data.position is not None:
            updates.update(self.position_updates(100 - data.position, values))
        if data.light_level is not None:
            updates[AMBIENT_LIGHT] = light_level_to_lux(
                data.light_level, self.min_lux, self.max_lux
            )
            # Levels 3 to 9 mean the solar panel is in daylight.
            charging = 3 <= data.light_level <= CURTAIN_LIGHT_LEVELS
            updates[CHARGING_STATE] = (
                CHARGING_CHARGING if charging else CHARGING_NOT_CHARGING
            )
        updates.update(battery_updates(data.battery))
        return updates

    def on_set(self, name: str, value: Any, values: Mapping[str, Any]) -> SetOutcome:
        """Track movement for a new target position."""

        if name != TARGET_POSITION:
            return SetOutcome()
        current = values.get(CURRENT_POSITION, 0)
        if value > current:
            state = POSITION_INCREASING
        elif value < current:
            state = POSITION_DECREASING
        else:
            state = POSITION_STOPPED
        self.set_new_target = state != POSITION_STOPPED
        self.log.info("Set TargetPosition: %s", value)
        return SetOutcome(
            updates={HOLD_POSITION: False, POSITION_STATE: state},
            hold=self.config.update_rate if self.set_new_target else None,
        )

    def on_hold_expired(self) -> None:
        """Stop reporting movement once the update rate has elapsed."""

        self.log.debug("setNewTarget timeout")
        self.set_new_target = False

    def silent(self, target: int) -> bool:
        """Return True when the configured open or close mode is silent."""

        option = self.open_mode if target > 50 else self.close_mode
        return option == "1"

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return ``pause`` while holding, otherwise ``setPosition``."""

        if HOLD_POSITION in changes and values.get(HOLD_POSITION):
            return [Command("pause", ble_payload=CURTAIN_PAUSE)]
        if TARGET_POSITION not in changes:
            return []
        target = int(changes[TARGET_POSITION])
        silent = self.silent(target)
        mode = "1" if silent else "ff"
        return [
            Command(
                "setPosition",
                parameter=f"0,{mode},{100 - target}",
                ble_payload=curtain_run_to_position(
                    100 - target, 0x01 if silent else 0xFF
                ),
            )
        ]

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Confirm the target; a hold request is momentary."""

        updates = dict(changes)
        if HOLD_POSITION in updates:
            updates[HOLD_POSITION] = False
        return PushOutcome(updates=updates)

    def offline_state(self) -> Updates:
        """Report the covering fully open and stopped."""

        return {
            CURRENT_POSITION: 100,
            TARGET_POSITION: 100,
            POSITION_STATE: POSITION_STOPPED,
        }


class BlindTiltProfile(CurtainProfile):
    """Blind Tilt slats mapped onto a window covering."""

    device_types = ("Blind Tilt",)
    section_name = "blindTilt"

    def __init__(self, config: DeviceConfig, log: DeviceLogger) -> None:
        """Resolve the slat mapping mode."""

        super().__init__(config, log)
        section = config.section(self.section_name)
        self.mapping = BlindTiltMapping(
            section.get("mode", BlindTiltMapping.ONLY_UP.value)
        )

    @property
    def uses_tilt(self) -> bool:
        """Return True when the tilt angle selects the closing direction."""

        return self.mapping is BlindTiltMapping.USE_TILT_FOR_DIRECTION

    def _covering_characteristics(self) -> tuple[CharacteristicSpec, ...]:
        characteristics = super()._covering_characteristics()
        if not self.uses_tilt:
            return characteristics
        tilt_props = {"minValue": -90, "maxValue": 90}
        return characteristics + (
            CharacteristicSpec("CurrentHorizontalTiltAngle", 90, props=tilt_props),
            CharacteristicSpec(
                "TargetHorizontalTiltAngle", 90, writable=True, props=tilt_props
            ),
        )

    def to_homekit(self, position: int) -> tuple[int, int | None]:
        """Map a device slat position (0 down, 50 open, 100 up) to HomeKit."""

        if self.mapping is BlindTiltMapping.ONLY_UP:
            return (100, None) if position < 50 else (100 - (position - 50) * 2, None)
        if self.mapping is BlindTiltMapping.ONLY_DOWN:
            return (100, None) if position > 50 else (position * 2, None)
        if self.mapping is BlindTiltMapping.DOWN_AND_UP:
            return position, None
        if self.mapping is BlindTiltMapping.UP_AND_DOWN:
            return 100 - position, None
        if position <= 50:
            return position * 2, -90
        return 100 - (position - 50) * 2, 90

    def to_device(self, position: int, tilt: int) -> tuple[str, int]:
        """Map a HomeKit position (and tilt) to a device direction and position."""

        if self.mapping is BlindTiltMapping.ONLY_UP:
            return "up", position
        if self.mapping is BlindTiltMapping.ONLY_DOWN:
            return "down", position
        if self.mapping is BlindTiltMapping.DOWN_AND_UP:
            if position <= 50:
                return "down", 100 - position * 2
            return "up", (position - 50) * 2
        if self.mapping is BlindTiltMapping.UP_AND_DOWN:
            if position <= 50:
                return "up", position * 2
            return "down", 100 - position * 2
        return ("down", position) if tilt <= 0 else ("up", position)

    def _slat_updates(self, position: int, values: Mapping[str, Any]) -> Updates:
        homekit_position, tilt = self.to_homekit(position)
        updates = self.position_updates(homekit_position, values)
        if tilt is not None:
            updates[CURRENT_TILT] = tilt
            if not self.set_new_target:
                updates[TARGET_TILT] = tilt
        return updates

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``slidePosition``, ``lightLevel`` and ``battery``."""

        updates: Updates = {}
        if body.get("slidePosition") is not None:
            updates.update(self._slat_updates(int(body["slidePosition"]), values))
        if body.get("lightLevel") is not None:
            updates[AMBIENT_LIGHT] = light_level_to_lux(
                int(body["lightLevel"]), self.min_lux, self.max_lux
            )
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read slat position, light level and battery from an advertisement."""

        updates: Updates = {}
        if data.position is not None:
            updates.update(self._slat_updates(data.position, values))
        if data.light_level is not None:
            updates[AMBIENT_LIGHT] = light_level_to_lux(
                data.light_level, self.min_lux, self.max_lux
            )
        updates.update(battery_updates(data.battery))
        return updates

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return ``fullyOpen``, ``closeUp``/``closeDown`` or ``setPosition``."""

        if HOLD_POSITION in changes and values.get(HOLD_POSITION):
            return [Command("pause")]
        if TARGET_POSITION not in changes and TARGET_TILT not in changes:
            return []
        target = int(values.get(TARGET_POSITION, 0))
        tilt = int(values.get(TARGET_TILT, 90))
        direction, position = self.to_device(target, tilt)
        if position == 100:
            return [Command("fullyOpen")]
        if position == 0:
            return [Command("closeUp" if direction == "up" else "closeDown")]
        return [Command("setPosition", parameter=f"{direction};{position}")]
