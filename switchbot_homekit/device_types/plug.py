"""Plug and Plug Mini outlets."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..advertisement import ServiceData
from ..ble_client import PLUG_TURN_OFF, PLUG_TURN_ON
from .base import (
    CharacteristicSpec,
    Command,
    DeviceProfile,
    ServiceSpec,
    Updates,
    key,
    power_from,
)

ON = key("Outlet", "On")
IN_USE = key("Outlet", "OutletInUse")


class PlugProfile(DeviceProfile):
    """Smart plugs switched with ``turnOn``/``turnOff``."""

    device_types = ("Plug", "Plug Mini (US)", "Plug Mini (JP)")
    supports_ble = True

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the outlet service."""

        return (
            ServiceSpec(
                "Outlet",
                (
                    CharacteristicSpec("On", False, writable=True),
                    CharacteristicSpec("OutletInUse", False),
                ),
            ),
        )

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``power`` and, for Plug Mini, ``electricCurrent``."""

        updates: Updates = {}
        power = power_from(body.get("power"))
        if power is not None:
            updates[ON] = power
            updates[IN_USE] = power
        current = body.get("electricCurrent")
        if current is not None:
            updates[IN_USE] = float(current) > 0
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read state and power draw from an advertisement."""

        updates: Updates = {}
        if data.state is not None:
            updates[ON] = data.state
            updates[IN_USE] = data.state
        if data.current_power is not None:
            updates[IN_USE] = data.current_power > 0
        return updates

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return ``turnOn`` or ``turnOff``."""

        if ON not in changes:
            return []
        if changes[ON]:
            return [Command("turnOn", ble_payload=PLUG_TURN_ON)]
        return [Command("turnOff", ble_payload=PLUG_TURN_OFF)]

    def offline_state(self) -> Updates:
        """Report the plug as off."""

        return {ON: False, IN_USE: False}
