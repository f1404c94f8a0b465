"""Read-only sensors: meters, hub, motion, contact and water leak."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..advertisement import ServiceData
from ..config import DeviceConfig
from ..const import (
    CONTACT_DETECTED,
    CONTACT_NOT_DETECTED,
    CURTAIN_MAX_LUX,
    CURTAIN_MIN_LUX,
    LEAK_DETECTED,
    LEAK_NOT_DETECTED,
)
from ..device_logger import DeviceLogger
from .base import (
    CharacteristicSpec,
    DeviceProfile,
    ServiceSpec,
    Updates,
    battery_service,
    battery_updates,
    brightness_to_lux,
    key,
    light_level_to_lux,
)

TEMPERATURE = key("TemperatureSensor", "CurrentTemperature")
HUMIDITY = key("HumiditySensor", "CurrentRelativeHumidity")
AMBIENT_LIGHT = key("LightSensor", "CurrentAmbientLightLevel")
MOTION = key("MotionSensor", "MotionDetected")
CONTACT = key("ContactSensor", "ContactSensorState")
LEAK = key("LeakSensor", "LeakDetected")

# Hub 2 reports twenty light levels.
HUB_LIGHT_STEPS = 19


def _motion_service() -> ServiceSpec:
    return ServiceSpec("MotionSensor", (CharacteristicSpec("MotionDetected", False),))


class SensorProfile(DeviceProfile):
    """Shared option handling for sensor families."""

    section_name = ""
    supports_ble = True

    def __init__(self, config: DeviceConfig, log: DeviceLogger) -> None:
        """Read the sensor option block."""

        super().__init__(config, log)
        self.options = config.section(self.section_name)
        self.min_lux = float(self.options.get("set_minLux", CURTAIN_MIN_LUX))
        self.max_lux = float(self.options.get("set_maxLux", CURTAIN_MAX_LUX))

    def hidden(self, name: str) -> bool:
        """Return True when ``hide_<name>`` is set."""

        return bool(self.options.get(f"hide_{name}", False))

    def climate_services(self) -> list[ServiceSpec]:
        """Return temperature and humidity services unless hidden."""

        specs = []
        if not self.hidden("temperature"):
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
        if not self.hidden("humidity"):
            step = self.options.get("set_minStep", 1)
            specs.append(
                ServiceSpec(
                    "HumiditySensor",
                    (
                        CharacteristicSpec(
                            "CurrentRelativeHumidity", 0, props={"minStep": step}
                        ),
                    ),
                )
            )
        return specs

    def light_service(self) -> list[ServiceSpec]:
        """Return the light sensor service unless hidden."""

        if self.hidden("lightsensor"):
            return []
        return [
            ServiceSpec(
                "LightSensor",
                (CharacteristicSpec("CurrentAmbientLightLevel", self.min_lux),),
            )
        ]

    @staticmethod
    def climate_updates(temperature: Any, humidity: Any) -> Updates:
        """Return temperature and humidity updates for present readings."""

        updates: Updates = {}
        if temperature is not None:
            updates[TEMPERATURE] = round(float(temperature), 1)
        if humidity is not None:
            updates[HUMIDITY] = int(humidity)
        return updates


class MeterProfile(SensorProfile):
    """Meter, Meter Plus and Outdoor Meter thermo-hygrometers."""

    device_types = (
        "Meter",
        "MeterPlus",
        "Meter Plus (JP)",
        "WoIOSensor",
        "Outdoor Meter",
    )
    section_name = "meter"

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return climate services and a battery service."""

        return tuple(self.climate_services() + [battery_service()])

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``temperature``, ``humidity`` and ``battery``."""

        updates = self.climate_updates(body.get("temperature"), body.get("humidity"))
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read temperature, humidity and battery from an advertisement."""

        updates = self.climate_updates(data.celsius, data.humidity)
        updates.update(battery_updates(data.battery))
        return updates


class HubProfile(SensorProfile):
    """Hub 2 with its climate and light sensors."""

    device_types = ("Hub 2",)
    section_name = "hub"

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return climate and light services."""

        return tuple(self.climate_services() + self.light_service())

    def _light(self, level: Any) -> Updates:
        if level is None:
            return {}
        return {
            AMBIENT_LIGHT: light_level_to_lux(
                int(level), self.min_lux, self.max_lux, HUB_LIGHT_STEPS
            )
        }

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``temperature``, ``humidity`` and ``lightLevel``."""

        updates = self.climate_updates(body.get("temperature"), body.get("humidity"))
        updates.update(self._light(body.get("lightLevel")))
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read climate and light level from an advertisement."""

        updates = self.climate_updates(data.celsius, data.humidity)
        updates.update(self._light(data.light_level))
        return updates


class MotionProfile(SensorProfile):
    """Motion Sensor."""

    device_types = ("Motion Sensor",)
    section_name = "motion"

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return motion, light and battery services."""

        specs = [_motion_service()]
        return tuple(specs + self.light_service() + [battery_service()])

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``moveDetected``, ``brightness`` and ``battery``."""

        updates: Updates = {}
        if body.get("moveDetected") is not None:
            updates[MOTION] = bool(body["moveDetected"])
        lux = brightness_to_lux(body.get("brightness"), self.min_lux, self.max_lux)
        if lux is not None:
            updates[AMBIENT_LIGHT] = lux
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_webhook(
        self, context: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``detectionState`` and ``brightness`` from a webhook push."""

        updates = self.parse_cloud(context, values)
        if context.get("detectionState") is not None:
            updates[MOTION] = context["detectionState"] == "DETECTED"
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read movement, light and battery from an advertisement."""

        updates: Updates = {}
        if data.movement is not None:
            updates[MOTION] = data.movement
        if data.is_light is not None:
            updates[AMBIENT_LIGHT] = self.max_lux if data.is_light else self.min_lux
        updates.update(battery_updates(data.battery))
        return updates


class ContactProfile(SensorProfile):
    """Contact Sensor with its motion and light sensors."""

    device_types = ("Contact Sensor",)
    section_name = "contact"

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return contact, optional motion and light, and battery services."""

        specs = [
            ServiceSpec(
                "ContactSensor",
                (CharacteristicSpec("ContactSensorState", CONTACT_DETECTED),),
            )
        ]
        if not self.hidden("motionsensor"):
            specs.append(_motion_service())
        return tuple(specs + self.light_service() + [battery_service()])

    @staticmethod
    def _contact(open_state: Any) -> Updates:
        if open_state is None:
            return {}
        if open_state == "close":
            return {CONTACT: CONTACT_DETECTED}
        return {CONTACT: CONTACT_NOT_DETECTED}

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``openState``, ``moveDetected``, ``brightness`` and ``battery``."""

        updates = self._contact(body.get("openState"))
        if body.get("moveDetected") is not None:
            updates[MOTION] = bool(body["moveDetected"])
        lux = brightness_to_lux(body.get("brightness"), self.min_lux, self.max_lux)
        if lux is not None:
            updates[AMBIENT_LIGHT] = lux
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_webhook(
        self, context: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``openState``, ``detectionState`` and ``brightness``."""

        updates = self.parse_cloud(context, values)
        if context.get("detectionState") is not None:
            updates[MOTION] = context["detectionState"] == "DETECTED"
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read door, movement, light and battery from an advertisement."""

        updates: Updates = {}
        if data.contact_open is not None:
            updates[CONTACT] = (
                CONTACT_NOT_DETECTED if data.contact_open else CONTACT_DETECTED
            )
        if data.movement is not None:
            updates[MOTION] = data.movement
        if data.is_light is not None:
            updates[AMBIENT_LIGHT] = self.max_lux if data.is_light else self.min_lux
        updates.update(battery_updates(data.battery))
        return updates


class WaterDetectorProfile(SensorProfile):
    """Water Leak Detector."""

    device_types = ("Water Detector",)
    section_name = "waterdetector"

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return leak and battery services."""

        return (
            ServiceSpec(
                "LeakSensor", (CharacteristicSpec("LeakDetected", LEAK_NOT_DETECTED),)
            ),
            battery_service(),
        )

    @staticmethod
    def _leak(value: Any) -> Updates:
        if value is None:
            return {}
        return {LEAK: LEAK_DETECTED if int(value) else LEAK_NOT_DETECTED}

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``status`` and ``battery``."""

        updates = self._leak(body.get("status"))
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_webhook(
        self, context: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``detectionState`` and ``battery``."""

        updates = self._leak(context.get("detectionState"))
        if "battery" in context:
            updates.update(battery_updates(context["battery"]))
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read leak and battery from an advertisement."""

        updates: Updates = {}
        if data.leak is not None:
            updates[LEAK] = LEAK_DETECTED if data.leak else LEAK_NOT_DETECTED
        updates.update(battery_updates(data.battery))
        return updates
