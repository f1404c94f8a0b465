"""Colour bulbs, strip lights and ceiling lights."""

from __future__ import annotations

import colorsys
from collections.abc import Mapping
from typing import Any

from ..advertisement import ServiceData
from ..ble_client import BULB_TURN_OFF, BULB_TURN_ON, STRIP_TURN_OFF, STRIP_TURN_ON
from .base import (
    CharacteristicSpec,
    Command,
    DeviceProfile,
    ServiceSpec,
    Updates,
    key,
    power_from,
)

ON = key("Lightbulb", "On")
BRIGHTNESS = key("Lightbulb", "Brightness")
HUE = key("Lightbulb", "Hue")
SATURATION = key("Lightbulb", "Saturation")
COLOR_TEMPERATURE = key("Lightbulb", "ColorTemperature")

MIN_MIREDS = 140
MAX_MIREDS = 500
MIN_KELVIN = 2700
MAX_KELVIN = 6500


def kelvin_to_mireds(kelvin: Any) -> int:
    """Convert a colour temperature to mireds within the HomeKit range."""

    mireds = round(1_000_000 / float(kelvin))
    return max(min(mireds, MAX_MIREDS), MIN_MIREDS)


def mireds_to_kelvin(mireds: Any) -> int:
    """Convert mireds to kelvin rounded to 100 and clamped to the device range."""

    kelvin = round(1_000_000 / float(mireds) / 100) * 100
    return max(min(kelvin, MAX_KELVIN), MIN_KELVIN)


def rgb_to_hs(color: str) -> tuple[int, int]:
    """Convert an ``r:g:b`` string to HomeKit hue and saturation."""

    red, green, blue = (int(part) / 255 for part in color.split(":"))
    hue, saturation, _ = colorsys.rgb_to_hsv(red, green, blue)
    return round(hue * 360), round(saturation * 100)


def hs_to_rgb(hue: Any, saturation: Any) -> str:
    """Convert HomeKit hue and saturation to an ``r:g:b`` string."""

    red, green, blue = colorsys.hsv_to_rgb(float(hue) / 360, float(saturation) / 100, 1)
    return ":".join(str(round(part * 255)) for part in (red, green, blue))


class LightProfile(DeviceProfile):
    """Dimmable light; subclasses add colour and colour temperature."""

    device_types = ("Color Bulb",)
    supports_ble = True
    has_color = True
    has_color_temperature = True
    ble_on: bytes | None = BULB_TURN_ON
    ble_off: bytes | None = BULB_TURN_OFF

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the light bulb service."""

        chars = [
            CharacteristicSpec("On", False, writable=True),
            CharacteristicSpec(
                "Brightness",
                100,
                writable=True,
                props={"minValue": 0, "maxValue": 100, "minStep": 1},
            ),
        ]
        if self.has_color_temperature:
            chars.append(
                CharacteristicSpec(
                    "ColorTemperature",
                    MIN_MIREDS,
                    writable=True,
                    props={"minValue": MIN_MIREDS, "maxValue": MAX_MIREDS},
                )
            )
        if self.has_color:
            chars.append(CharacteristicSpec("Hue", 0, writable=True))
            chars.append(CharacteristicSpec("Saturation", 0, writable=True))
        return (ServiceSpec("Lightbulb", tuple(chars)),)

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``power``, ``brightness``, ``color`` and ``colorTemperature``."""

        updates: Updates = {}
        power = power_from(body.get("power"))
        if power is not None:
            updates[ON] = power
        if body.get("brightness") is not None:
            updates[BRIGHTNESS] = int(body["brightness"])
        if self.has_color and body.get("color"):
            updates[HUE], updates[SATURATION] = rgb_to_hs(str(body["color"]))
        if self.has_color_temperature and body.get("colorTemperature"):
            updates[COLOR_TEMPERATURE] = kelvin_to_mireds(body["colorTemperature"])
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read power and brightness from an advertisement."""

        updates: Updates = {}
        if data.state is not None:
            updates[ON] = data.state
        if data.brightness is not None:
            updates[BRIGHTNESS] = data.brightness
        return updates

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return power, brightness, colour and colour temperature commands."""

        if ON in changes and not changes[ON]:
            return [Command("turnOff", ble_payload=self.ble_off)]
        commands = []
        if changes.get(ON):
            commands.append(Command("turnOn", ble_payload=self.ble_on))
        if BRIGHTNESS in changes:
            commands.append(Command("setBrightness", str(int(changes[BRIGHTNESS]))))
        if HUE in changes or SATURATION in changes:
            color = hs_to_rgb(values.get(HUE, 0), values.get(SATURATION, 0))
            commands.append(Command("setColor", color))
        elif COLOR_TEMPERATURE in changes:
            kelvin = mireds_to_kelvin(changes[COLOR_TEMPERATURE])
            commands.append(Command("setColorTemperature", str(kelvin)))
        return commands

    def offline_state(self) -> Updates:
        """Report the light as off."""

        return {ON: False}


class StripLightProfile(LightProfile):
    """Strip Light: colour without colour temperature."""

    device_types = ("Strip Light",)
    has_color_temperature = False
    ble_on = STRIP_TURN_ON
    ble_off = STRIP_TURN_OFF


class CeilingLightProfile(LightProfile):
    """Ceiling Light: colour temperature without colour."""

    device_types = ("Ceiling Light", "Ceiling Light Pro")
    has_color = False
    ble_on = None
    ble_off = None
