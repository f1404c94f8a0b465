"""Capability descriptors shared by the device profiles."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..advertisement import ServiceData, clamp_battery
from ..ble_client import SwitchBotBLEClient
from ..cloud_client import SwitchBotCloudClient
from ..config import DeviceConfig
from ..const import (
    BATTERY_LEVEL_LOW,
    BATTERY_LEVEL_NORMAL,
    BLE_RETRY_DELAY,
    CHARGING_NOT_CHARGEABLE,
    CURTAIN_LIGHT_LEVELS,
    DEFAULT_FIRMWARE,
    LOW_BATTERY_THRESHOLD,
    RECONCILE_REFRESH_DELAY,
)
from ..device_logger import DeviceLogger

Updates = dict[str, Any]

BATTERY_SERVICE = "BatteryService"


@dataclass(frozen=True)
class CharacteristicSpec:
    """One characteristic of a service and its default value."""

    name: str
    default: Any
    writable: bool = False
    props: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class ServiceSpec:
    """A HomeKit service the profile wants attached."""

    name: str
    characteristics: tuple[CharacteristicSpec, ...]


@dataclass(frozen=True)
class Command:
    """A command understood by both the cloud API and, optionally, BLE."""

    command: str
    parameter: Any = "default"
    command_type: str = "command"
    ble_payload: bytes | None = None

    def body(self) -> dict[str, Any]:
        """Return the cloud API request body."""

        return {
            "command": self.command,
            "parameter": self.parameter,
            "commandType": self.command_type,
        }


@dataclass
class PushOutcome:
    """What a profile wants done after a successful push.

    ``updates`` confirm the delivered state, ``revert`` is applied a moment
    later for momentary devices and ``repeat`` asks for another push.
    """

    updates: Updates = field(default_factory=dict)
    repeat: bool = False
    revert: Updates = field(default_factory=dict)


@dataclass
class SetOutcome:
    """Immediate effects of a HomeKit write.

    ``updates`` are applied to the cache right away. When ``hold`` is set the
    adapter calls ``on_hold_expired`` after that many seconds and refreshes.
    """

    updates: Updates = field(default_factory=dict)
    hold: float | None = None


@dataclass
class DeviceServices:
    """Collaborators handed to every device adapter."""

    cloud: SwitchBotCloudClient | None = None
    ble: SwitchBotBLEClient | None = None
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("switchbot_homekit.device")
    )
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    loop: asyncio.AbstractEventLoop | None = None
    reconcile_delay: float = RECONCILE_REFRESH_DELAY
    ble_retry_delay: float = BLE_RETRY_DELAY

    @property
    def has_credentials(self) -> bool:
        """Return True when a usable cloud client is configured."""

        return self.cloud is not None and self.cloud.has_credentials


def key(service: str, characteristic: str) -> str:
    """Return the ``Service.Characteristic`` cache key."""

    return f"{service}.{characteristic}"


def battery_service(*, chargeable: bool = False) -> ServiceSpec:
    """Return the battery service description."""

    return ServiceSpec(
        BATTERY_SERVICE,
        (
            CharacteristicSpec("BatteryLevel", 100),
            CharacteristicSpec("StatusLowBattery", BATTERY_LEVEL_NORMAL),
            CharacteristicSpec(
                "ChargingState", 0 if chargeable else CHARGING_NOT_CHARGEABLE
            ),
        ),
    )


def battery_updates(value: Any) -> Updates:
    """Map a raw battery reading to level and low-battery characteristics."""

    level = clamp_battery(value)
    low = level < LOW_BATTERY_THRESHOLD
    status = BATTERY_LEVEL_LOW if low else BATTERY_LEVEL_NORMAL
    return {
        key(BATTERY_SERVICE, "BatteryLevel"): level,
        key(BATTERY_SERVICE, "StatusLowBattery"): status,
    }


def normalize_firmware(version: Any) -> str:
    """Return a dotted firmware revision HomeKit accepts."""

    if version is None:
        return DEFAULT_FIRMWARE
    text = re.sub(r"^V|-.*$", "", str(version).strip())
    if not text:
        return DEFAULT_FIRMWARE
    if "." not in text:
        digits = re.findall(r"\d", text)
        if not digits:
            return DEFAULT_FIRMWARE
        text = ".".join(digits)
    return text


def power_from(value: Any) -> bool | None:
    """Read a vendor ``power`` field into a bool, None when absent."""

    if value is None:
        return None
    if isinstance(value, str):
        return value.lower() == "on"
    return bool(value)


class DeviceProfile:
    """Describe one device family for the generic adapter.

    Subclasses declare the services to attach and translate between vendor
    status payloads and ``Service.Characteristic`` updates. Any per-device
    bookkeeping (press counters, movement tracking) lives on the instance.
    """

    device_types: tuple[str, ...] = ()
    supports_ble = False
    momentary = False
    polls = True

    def __init__(self, config: DeviceConfig, log: DeviceLogger) -> None:
        """Bind the profile to one device configuration."""

        self.config = config
        self.log = log

    @property
    def allow_push(self) -> bool:
        """Return True to push even when a value matches the confirmed state."""

        return False

    @property
    def push_repeats(self) -> int:
        """Return how many times each push is sent."""

        return 1

    @property
    def repeat_interval(self) -> float:
        """Return the delay between repeated pushes."""

        return 0.0

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the services this device exposes."""

        raise NotImplementedError

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Translate a cloud status body."""

        return {}

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Translate decoded advertisement data."""

        return {}

    def parse_webhook(
        self, context: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Translate a webhook push; defaults to the cloud status mapping."""

        return self.parse_cloud(context, values)

    def on_set(self, name: str, value: Any, values: Mapping[str, Any]) -> SetOutcome:
        """Observe a HomeKit write before it is queued for the next push."""

        return SetOutcome()

    def on_hold_expired(self) -> None:
        """Called when the hold period returned by ``on_set`` elapses."""

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Build the commands realising ``changes``."""

        return []

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Return follow-up updates once ``changes`` were delivered."""

        return PushOutcome(updates=dict(changes))

    def push_failed(self) -> None:
        """Called when a push could not be delivered."""

    def offline_state(self) -> Updates:
        """Return the safe default applied while the device is offline."""

        return {}


def light_level_to_lux(
    level: int, min_lux: float, max_lux: float, steps: int = CURTAIN_LIGHT_LEVELS
) -> float:
    """Spread ``steps + 1`` discrete light levels across the lux range."""

    if level <= 1:
        return min_lux
    if level >= steps + 1:
        return max_lux
    return (max_lux - min_lux) / steps * (level - 1)


def brightness_to_lux(brightness: Any, min_lux: float, max_lux: float) -> float | None:
    """Map the cloud ``bright``/``dim`` reading to a lux value."""

    if brightness == "bright":
        return max_lux
    if brightness == "dim":
        return min_lux
    return None
