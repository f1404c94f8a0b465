"""Infrared remotes learned by a SwitchBot Hub.

IR appliances report no state, so every remote keeps its characteristic
values in the optimistic cache and only pushes commands.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ..const import ACTIVE_ACTIVE, ACTIVE_INACTIVE
from .base import (
    CharacteristicSpec,
    Command,
    DeviceProfile,
    PushOutcome,
    ServiceSpec,
    key,
)

# HomeKit RemoteKey values and the TV remote buttons they press.
_REMOTE_KEYS: Mapping[int, str] = MappingProxyType(
    {4: "Up", 5: "Down", 6: "Left", 7: "Right", 8: "Ok", 9: "Back", 15: "Menu"}
)
_VOLUME_COMMANDS: Mapping[int, str] = MappingProxyType({0: "volumeAdd", 1: "volumeSub"})
_BUTTONS = (key("Television", "RemoteKey"), key("TelevisionSpeaker", "VolumeSelector"))

HEATER_COOLER = "HeaterCooler"
AC_ACTIVE = key(HEATER_COOLER, "Active")
AC_CURRENT_STATE = key(HEATER_COOLER, "CurrentHeaterCoolerState")
AC_TARGET_STATE = key(HEATER_COOLER, "TargetHeaterCoolerState")
AC_COOLING = key(HEATER_COOLER, "CoolingThresholdTemperature")
AC_HEATING = key(HEATER_COOLER, "HeatingThresholdTemperature")

AC_TARGET_AUTO = 0
AC_TARGET_HEAT = 1
AC_TARGET_COOL = 2
AC_STATE_INACTIVE = 0
AC_STATE_IDLE = 1
AC_STATE_HEATING = 2
AC_STATE_COOLING = 3

# setAll modes: 1 auto, 2 cool, 5 heat
_AC_MODES: Mapping[int, int] = MappingProxyType(
    {AC_TARGET_AUTO: 1, AC_TARGET_COOL: 2, AC_TARGET_HEAT: 5}
)
AC_AUTO_TEMPERATURE = 25
AC_FAN_AUTO = 1


@dataclass(frozen=True)
class RemoteSpec:
    """HomeKit presentation of one remote family."""

    service: ServiceSpec
    control: str
    off_value: Any


def _active_remote(service: str, *extra: CharacteristicSpec) -> RemoteSpec:
    return RemoteSpec(
        ServiceSpec(
            service,
            (CharacteristicSpec("Active", ACTIVE_INACTIVE, writable=True),) + extra,
        ),
        key(service, "Active"),
        ACTIVE_INACTIVE,
    )


def _switch_remote(service: str) -> RemoteSpec:
    return RemoteSpec(
        ServiceSpec(service, (CharacteristicSpec("On", False, writable=True),)),
        key(service, "On"),
        False,
    )


_TV = _active_remote(
    "Television",
    CharacteristicSpec("ActiveIdentifier", 1),
    CharacteristicSpec("SleepDiscoveryMode", 1),
    CharacteristicSpec("RemoteKey", 10, writable=True),
)
_FAN = _active_remote("Fanv2")
_PURIFIER = _active_remote(
    "AirPurifier",
    CharacteristicSpec("CurrentAirPurifierState", 0),
    CharacteristicSpec("TargetAirPurifierState", 1),
)
_WATER_HEATER = _active_remote(
    "Valve",
    CharacteristicSpec("InUse", 0),
    CharacteristicSpec("ValveType", 0),
)
_AIR_CONDITIONER = _active_remote(
    HEATER_COOLER,
    CharacteristicSpec("CurrentHeaterCoolerState", AC_STATE_INACTIVE),
    CharacteristicSpec(
        "TargetHeaterCoolerState",
        AC_TARGET_AUTO,
        writable=True,
    ),
    CharacteristicSpec("CurrentTemperature", 24.0),
    CharacteristicSpec(
        "CoolingThresholdTemperature",
        AC_AUTO_TEMPERATURE,
        writable=True,
        props={"minValue": 16, "maxValue": 30, "minStep": 1},
    ),
    CharacteristicSpec(
        "HeatingThresholdTemperature",
        AC_AUTO_TEMPERATURE,
        writable=True,
        props={"minValue": 16, "maxValue": 30, "minStep": 1},
    ),
)


class IRProfile(DeviceProfile):
    """Generic on/off remote."""

    device_types: tuple[str, ...] = ()
    polls = False
    remote = _switch_remote("Switch")

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the remote's single service."""

        return (self.remote.service,)

    def command_type(self) -> str:
        """Return ``customize`` for learned buttons, ``command`` otherwise."""

        if self.config.customize:
            return self.config.command_type or "customize"
        return "command"

    def command_on(self) -> str | None:
        """Return the power-on command name."""

        if self.config.customize and self.config.command_on:
            return self.config.command_on
        return "turnOn"

    def command_off(self) -> str | None:
        """Return the power-off command name."""

        if self.config.customize and self.config.command_off:
            return self.config.command_off
        return "turnOff"

    def power_commands(self, changes: Mapping[str, Any]) -> list[Command]:
        """Return the power command for a change of the control characteristic."""

        if self.remote.control not in changes:
            return []
        if changes[self.remote.control] == self.remote.off_value:
            command, disabled = self.command_off(), self.config.disable_push_off
        else:
            command, disabled = self.command_on(), self.config.disable_push_on
        if disabled:
            self.log.debug("Push disabled, not sending %s", command)
            return []
        if command is None:
            self.log.error("No command configured for %s", changes[self.remote.control])
            return []
        return [Command(command, command_type=self.command_type())]

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return the power command."""

        return self.power_commands(changes)


class TVProfile(IRProfile):
    """TV, projector, set top box, streamer, DVD and speaker remotes."""

    device_types = tuple(
        prefix + name
        for name in (
            "TV",
            "Projector",
            "Set Top Box",
            "IPTV",
            "Streamer",
            "DVD",
            "Speaker",
        )
        for prefix in ("", "DIY ")
    )
    remote = _TV

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the television and speaker services."""

        speaker = ServiceSpec(
            "TelevisionSpeaker",
            (
                CharacteristicSpec("Mute", False),
                CharacteristicSpec("VolumeControlType", 1),
                CharacteristicSpec("VolumeSelector", 0, writable=True),
            ),
        )
        return (self.remote.service, speaker)

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return power, remote key and volume commands."""

        commands = self.power_commands(changes)
        remote_key = changes.get(key("Television", "RemoteKey"))
        if remote_key is not None:
            button = _REMOTE_KEYS.get(int(remote_key))
            if button is None:
                self.log.debug("Unsupported remote key %s", remote_key)
            else:
                commands.append(Command(button))
        volume = changes.get(key("TelevisionSpeaker", "VolumeSelector"))
        if volume is not None:
            commands.append(Command(_VOLUME_COMMANDS[int(volume)]))
        return commands

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Confirm power only; button presses stay repeatable."""

        return PushOutcome(
            updates={
                name: value for name, value in changes.items() if name not in _BUTTONS
            }
        )


class FanRemoteProfile(IRProfile):
    """Fan remote."""

    device_types = ("Fan", "DIY Fan")
    remote = _FAN


class LightRemoteProfile(IRProfile):
    """Light remote."""

    device_types = ("Light", "DIY Light")
    remote = _switch_remote("Lightbulb")


class AirPurifierRemoteProfile(IRProfile):
    """Air purifier remote."""

    device_types = ("Air Purifier", "DIY Air Purifier")
    remote = _PURIFIER

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Show the purifier purifying while active."""

        updates = dict(changes)
        active = values.get(self.remote.control) == ACTIVE_ACTIVE
        updates[key("AirPurifier", "CurrentAirPurifierState")] = 2 if active else 0
        return PushOutcome(updates=updates)


class WaterHeaterRemoteProfile(IRProfile):
    """Water heater remote presented as a valve."""

    device_types = ("Water Heater", "DIY Water Heater")
    remote = _WATER_HEATER

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Mirror ``Active`` into ``InUse``."""

        updates = dict(changes)
        active = values.get(self.remote.control) == ACTIVE_ACTIVE
        updates[key("Valve", "InUse")] = 1 if active else 0
        return PushOutcome(updates=updates)


class VacuumRemoteProfile(IRProfile):
    """Vacuum cleaner remote."""

    device_types = ("Vacuum Cleaner", "DIY Vacuum Cleaner")


class CameraRemoteProfile(IRProfile):
    """Camera remote."""

    device_types = ("Camera", "DIY Camera")


class OtherRemoteProfile(IRProfile):
    """Remote with learned buttons only; needs ``commandOn``/``commandOff``."""

    device_types = ("Others",)

    def command_type(self) -> str:
        """Always send learned buttons."""

        return self.config.command_type or "customize"

    def command_on(self) -> str | None:
        """Return the configured ``commandOn``."""

        return self.config.command_on

    def command_off(self) -> str | None:
        """Return the configured ``commandOff``."""

        return self.config.command_off


class AirConditionerRemoteProfile(IRProfile):
    """Air conditioner remote driven through ``setAll``."""

    device_types = ("Air Conditioner", "DIY Air Conditioner")
    remote = _AIR_CONDITIONER

    @staticmethod
    def current_state(values: Mapping[str, Any]) -> int:
        """Return the heater/cooler state implied by the cached values."""

        if values.get(AC_ACTIVE) != ACTIVE_ACTIVE:
            return AC_STATE_INACTIVE
        target = values.get(AC_TARGET_STATE, AC_TARGET_AUTO)
        if target == AC_TARGET_HEAT:
            return AC_STATE_HEATING
        if target == AC_TARGET_COOL:
            return AC_STATE_COOLING
        return AC_STATE_IDLE

    @staticmethod
    def set_all_parameter(values: Mapping[str, Any]) -> str:
        """Return the ``temperature,mode,fan,power`` parameter for ``setAll``."""

        target = values.get(AC_TARGET_STATE, AC_TARGET_AUTO)
        if target == AC_TARGET_HEAT:
            temperature = values.get(AC_HEATING, AC_AUTO_TEMPERATURE)
        elif target == AC_TARGET_COOL:
            temperature = values.get(AC_COOLING, AC_AUTO_TEMPERATURE)
        else:
            temperature = AC_AUTO_TEMPERATURE
        power = "on" if values.get(AC_ACTIVE) == ACTIVE_ACTIVE else "off"
        return f"{int(temperature)},{_AC_MODES.get(target, 1)},{AC_FAN_AUTO},{power}"

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return power commands followed by ``setAll`` for setting changes."""

        commands = self.power_commands(changes)
        if changes.get(AC_ACTIVE) == ACTIVE_INACTIVE:
            return commands
        details = {AC_TARGET_STATE, AC_COOLING, AC_HEATING}.intersection(changes)
        if details and values.get(AC_ACTIVE) == ACTIVE_ACTIVE:
            if self.config.disable_push_detail:
                self.log.debug("Detail push disabled, not sending setAll")
            else:
                commands.append(Command("setAll", self.set_all_parameter(values)))
        return commands

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Confirm the delivered settings and derive the current state."""

        updates = dict(changes)
        updates[AC_CURRENT_STATE] = self.current_state(values)
        return PushOutcome(updates=updates)


IR_PROFILES: tuple[type[IRProfile], ...] = (
    TVProfile,
    FanRemoteProfile,
    LightRemoteProfile,
    AirPurifierRemoteProfile,
    WaterHeaterRemoteProfile,
    VacuumRemoteProfile,
    CameraRemoteProfile,
    OtherRemoteProfile,
    AirConditionerRemoteProfile,
)
