"""Humidifier presented as a HomeKit humidifier/dehumidifier."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..advertisement import ServiceData
from ..config import DeviceConfig
from ..const import (
    ACTIVE_ACTIVE,
    ACTIVE_INACTIVE,
    HUMIDIFIER_STATE_HUMIDIFYING,
    HUMIDIFIER_STATE_IDLE,
    HUMIDIFIER_STATE_INACTIVE,
    TARGET_HUMIDIFIER,
    TARGET_HUMIDIFIER_AUTO,
)
from ..device_logger import DeviceLogger
from .base import (
    CharacteristicSpec,
    Command,
    DeviceProfile,
    PushOutcome,
    ServiceSpec,
    SetOutcome,
    Updates,
    key,
    power_from,
)

SERVICE = "HumidifierDehumidifier"
ACTIVE = key(SERVICE, "Active")
CURRENT_STATE = key(SERVICE, "CurrentHumidifierDehumidifierState")
TARGET_STATE = key(SERVICE, "TargetHumidifierDehumidifierState")
HUMIDITY = key(SERVICE, "CurrentRelativeHumidity")
THRESHOLD = key(SERVICE, "RelativeHumidityHumidifierThreshold")
WATER_LEVEL = key(SERVICE, "WaterLevel")
TEMPERATURE = key("TemperatureSensor", "CurrentTemperature")


def humidifier_state(active: int, humidity: Any, threshold: Any) -> int:
    """Return the current humidifier state for manual mode."""

    if active != ACTIVE_ACTIVE:
        return HUMIDIFIER_STATE_INACTIVE
    if humidity is not None and threshold is not None and humidity > threshold:
        return HUMIDIFIER_STATE_IDLE
    return HUMIDIFIER_STATE_HUMIDIFYING


class HumidifierProfile(DeviceProfile):
    """Humidifier with auto mode and a target humidity."""

    device_types = ("Humidifier",)
    supports_ble = True

    def __init__(self, config: DeviceConfig, log: DeviceLogger) -> None:
        """Read the ``humidifier`` option block."""

        super().__init__(config, log)
        options = config.section("humidifier")
        self.hide_temperature = bool(options.get("hide_temperature", False))
        self.min_step = int(options.get("set_minStep", 1))

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the humidifier service and an optional temperature sensor."""

        specs = [
            ServiceSpec(
                SERVICE,
                (
                    CharacteristicSpec("Active", ACTIVE_INACTIVE, writable=True),
                    CharacteristicSpec(
                        "CurrentHumidifierDehumidifierState", HUMIDIFIER_STATE_INACTIVE
                    ),
                    CharacteristicSpec(
                        "TargetHumidifierDehumidifierState",
                        TARGET_HUMIDIFIER,
                        writable=True,
                        props={"ValidValues": {"Auto": 0, "Humidifier": 1}},
                    ),
                    CharacteristicSpec("CurrentRelativeHumidity", 50),
                    CharacteristicSpec(
                        "RelativeHumidityHumidifierThreshold",
                        50,
                        writable=True,
                        props={
                            "minValue": 0,
                            "maxValue": 100,
                            "minStep": self.min_step,
                        },
                    ),
                    CharacteristicSpec("WaterLevel", 100),
                ),
            )
        ]
        if not self.hide_temperature:
            specs.append(
                ServiceSpec(
                    "TemperatureSensor",
                    (
                        CharacteristicSpec(
                            "CurrentTemperature",
                            0.0,
                            props={
                                "minValue": -273.15,
                                "maxValue": 100,
                                "minStep": 0.1,
                            },
                        ),
                    ),
                )
            )
        return tuple(specs)

    @staticmethod
    def _state(on: bool | None, auto: bool, humidity: Any, efficiency: Any) -> Updates:
        updates: Updates = {}
        if on is not None:
            updates[ACTIVE] = ACTIVE_ACTIVE if on else ACTIVE_INACTIVE
        if humidity is not None:
            updates[HUMIDITY] = int(humidity)
        if auto:
            updates[TARGET_STATE] = TARGET_HUMIDIFIER_AUTO
            updates[CURRENT_STATE] = HUMIDIFIER_STATE_HUMIDIFYING
            if humidity is not None:
                updates[THRESHOLD] = int(humidity)
            return updates
        updates[TARGET_STATE] = TARGET_HUMIDIFIER
        threshold = None
        if efficiency is not None:
            threshold = min(int(efficiency), 100)
            updates[THRESHOLD] = threshold
        active = updates.get(ACTIVE, ACTIVE_INACTIVE)
        updates[CURRENT_STATE] = humidifier_state(active, humidity, threshold)
        return updates

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read power, humidity, auto mode, efficiency and water level."""

        updates = self._state(
            power_from(body.get("power")),
            bool(body.get("auto")),
            body.get("humidity"),
            body.get("nebulizationEfficiency"),
        )
        if body.get("temperature") is not None:
            updates[TEMPERATURE] = round(float(body["temperature"]), 1)
        if "lackWater" in body:
            updates[WATER_LEVEL] = 0 if body["lackWater"] else 100
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read state, auto mode and target percentage from an advertisement."""

        return self._state(
            data.state, bool(data.auto_mode), values.get(HUMIDITY), data.percentage
        )

    def on_set(self, name: str, value: Any, values: Mapping[str, Any]) -> SetOutcome:
        """Show the device idle while a new threshold is below the humidity."""

        humidity = values.get(HUMIDITY)
        if name == THRESHOLD and humidity is not None and humidity > value:
            return SetOutcome(updates={CURRENT_STATE: HUMIDIFIER_STATE_IDLE})
        return SetOutcome()

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return power, auto mode or target humidity commands."""

        if changes.get(ACTIVE) == ACTIVE_INACTIVE:
            return [Command("turnOff")]
        commands = []
        if changes.get(ACTIVE) == ACTIVE_ACTIVE:
            commands.append(Command("turnOn"))
        if values.get(TARGET_STATE) == TARGET_HUMIDIFIER_AUTO:
            if TARGET_STATE in changes:
                commands.append(Command("setMode", "auto"))
        elif TARGET_STATE in changes or THRESHOLD in changes:
            commands.append(Command("setMode", str(values.get(THRESHOLD))))
        return commands

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Confirm the delivered values and recompute the current state."""

        updates = dict(changes)
        if values.get(TARGET_STATE) == TARGET_HUMIDIFIER_AUTO:
            updates[CURRENT_STATE] = (
                HUMIDIFIER_STATE_HUMIDIFYING
                if values.get(ACTIVE) == ACTIVE_ACTIVE
                else HUMIDIFIER_STATE_INACTIVE
            )
        else:
            updates[CURRENT_STATE] = humidifier_state(
                values.get(ACTIVE, ACTIVE_INACTIVE),
                values.get(HUMIDITY),
                values.get(THRESHOLD),
            )
        return PushOutcome(updates=updates)

    def offline_state(self) -> Updates:
        """Report the humidifier as inactive."""

        return {ACTIVE: ACTIVE_INACTIVE, CURRENT_STATE: HUMIDIFIER_STATE_INACTIVE}
