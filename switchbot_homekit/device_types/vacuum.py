"""Robot vacuum cleaners presented as a dimmable light."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .base import (
    CharacteristicSpec,
    Command,
    DeviceProfile,
    ServiceSpec,
    Updates,
    battery_service,
    battery_updates,
    key,
)

ON = key("Lightbulb", "On")
BRIGHTNESS = key("Lightbulb", "Brightness")

# Brightness steps map onto suction levels: quiet, standard, strong, max.
_POWER_LEVELS = {25: "0", 50: "1", 75: "2", 100: "3"}


def _is_on(status: Mapping[str, Any]) -> bool | None:
    working = status.get("workingStatus")
    if working is not None:
        return str(working).lower().startswith("clean")
    online = status.get("onlineStatus")
    if online is not None:
        return online == "online"
    return None


class VacuumProfile(DeviceProfile):
    """Robot Vacuum Cleaner S1, S1 Plus and K10+.

    On starts cleaning, off sends the vacuum to its dock and the brightness
    slider selects the suction power.
    """

    device_types = (
        "Robot Vacuum Cleaner S1",
        "Robot Vacuum Cleaner S1 Plus",
        "K10+",
    )

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the light bulb and battery services."""

        return (
            ServiceSpec(
                "Lightbulb",
                (
                    CharacteristicSpec("On", False, writable=True),
                    CharacteristicSpec(
                        "Brightness",
                        100,
                        writable=True,
                        props={"minValue": 0, "maxValue": 100, "minStep": 25},
                    ),
                ),
            ),
            battery_service(),
        )

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read the working status and ``battery``."""

        updates: Updates = {}
        on = _is_on(body)
        if on is not None:
            updates[ON] = on
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return ``start``/``dock`` and ``PowLevel`` commands."""

        commands = []
        if ON in changes:
            commands.append(Command("start" if changes[ON] else "dock"))
        if BRIGHTNESS in changes:
            level = _POWER_LEVELS.get(int(changes[BRIGHTNESS]))
            if level is None:
                commands.append(Command("dock"))
            else:
                commands.append(Command("PowLevel", level))
        return commands

    def offline_state(self) -> Updates:
        """Report the vacuum as docked."""

        return {ON: False}
