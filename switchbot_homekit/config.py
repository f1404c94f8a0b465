"""Configuration schemas and merged per-device options."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import voluptuous as vol

from .const import (
    DEFAULT_DELAY_BETWEEN_RETRIES,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY,
    DEFAULT_PLATFORM_REFRESH_RATE,
    DEFAULT_PUSH_RATE,
    DEFAULT_SCAN_DURATION,
    DEFAULT_UPDATE_RATE,
    MIN_REFRESH_RATE,
    BlindTiltMapping,
    BotDeviceType,
    BotMode,
    ConnectionType,
    LoggingLevel,
)
from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)

_RATE = vol.All(vol.Coerce(float), vol.Range(min=0))
_LOGGING = vol.In([level.value for level in LoggingLevel])
_CONNECTION = vol.In([connection.value for connection in ConnectionType])

_BOT_SCHEMA = vol.Schema(
    {
        vol.Optional("mode"): vol.In([mode.value for mode in BotMode]),
        vol.Optional("deviceType"): vol.In([kind.value for kind in BotDeviceType]),
        vol.Optional("doublePress"): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional("pushRatePress"): _RATE,
        vol.Optional("allowPush", default=False): bool,
    },
    extra=vol.ALLOW_EXTRA,
)

_CURTAIN_SCHEMA = vol.Schema(
    {
        vol.Optional("set_min"): vol.All(vol.Coerce(int), vol.Range(min=0, max=100)),
        vol.Optional("set_max"): vol.All(vol.Coerce(int), vol.Range(min=0, max=100)),
        vol.Optional("set_minStep"): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional("set_minLux"): vol.Coerce(float),
        vol.Optional("set_maxLux"): vol.Coerce(float),
        vol.Optional("hide_lightsensor", default=False): bool,
        vol.Optional("setOpenMode"): vol.In(["0", "1"]),
        vol.Optional("setCloseMode"): vol.In(["0", "1"]),
        vol.Optional("disable_group", default=False): bool,
    },
    extra=vol.ALLOW_EXTRA,
)

_BLIND_TILT_SCHEMA = _CURTAIN_SCHEMA.extend(
    {vol.Optional("mode"): vol.In([mapping.value for mapping in BlindTiltMapping])}
)

_SENSOR_SCHEMA = vol.Schema(
    {
        vol.Optional("hide_temperature", default=False): bool,
        vol.Optional("hide_humidity", default=False): bool,
        vol.Optional("hide_lightsensor", default=False): bool,
        vol.Optional("hide_motionsensor", default=False): bool,
        vol.Optional("hide_contactsensor", default=False): bool,
        vol.Optional("set_minLux"): vol.Coerce(float),
        vol.Optional("set_maxLux"): vol.Coerce(float),
        vol.Optional("set_minStep"): vol.All(vol.Coerce(int), vol.Range(min=1)),
    },
    extra=vol.ALLOW_EXTRA,
)

DEVICE_SCHEMA = vol.Schema(
    {
        vol.Optional("deviceId"): vol.Coerce(str),
        vol.Optional("configDeviceName"): str,
        vol.Optional("configDeviceType"): str,
        vol.Optional("connectionType"): _CONNECTION,
        vol.Optional("refreshRate"): vol.All(
            vol.Coerce(float),
            vol.Range(
                min=MIN_REFRESH_RATE,
                msg="Refresh Rate must be above 5 (5 seconds).",
            ),
        ),
        vol.Optional("updateRate"): _RATE,
        vol.Optional("pushRate"): _RATE,
        vol.Optional("scanDuration"): _RATE,
        vol.Optional("offline", default=False): bool,
        vol.Optional("maxRetry"): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional("maxRetries"): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional("delayBetweenRetries"): _RATE,
        vol.Optional("webhook", default=False): bool,
        vol.Optional("hide_device", default=False): bool,
        vol.Optional("firmware"): vol.Coerce(str),
        vol.Optional("logging"): _LOGGING,
        vol.Optional("hubDeviceId"): vol.Coerce(str),
        vol.Optional("enableCloudService"): bool,
        vol.Optional("external", default=False): bool,
        vol.Optional("bot"): _BOT_SCHEMA,
        vol.Optional("curtain"): _CURTAIN_SCHEMA,
        vol.Optional("blindTilt"): _BLIND_TILT_SCHEMA,
        vol.Optional("meter"): _SENSOR_SCHEMA,
        vol.Optional("contact"): _SENSOR_SCHEMA,
        vol.Optional("motion"): _SENSOR_SCHEMA,
        vol.Optional("humidifier"): _SENSOR_SCHEMA,
        vol.Optional("lock"): _SENSOR_SCHEMA,
        vol.Optional("hub"): _SENSOR_SCHEMA,
    },
    extra=vol.ALLOW_EXTRA,
)

IR_DEVICE_SCHEMA = vol.Schema(
    {
        vol.Optional("deviceId"): vol.Coerce(str),
        vol.Optional("configDeviceName"): str,
        vol.Optional("configRemoteType"): str,
        vol.Optional("connectionType"): _CONNECTION,
        vol.Optional("logging"): _LOGGING,
        vol.Optional("pushRate"): _RATE,
        vol.Optional("customize", default=False): bool,
        vol.Optional("commandOn"): str,
        vol.Optional("commandOff"): str,
        vol.Optional("commandType"): str,
        vol.Optional("disablePushOn", default=False): bool,
        vol.Optional("disablePushOff", default=False): bool,
        vol.Optional("disablePushDetail", default=False): bool,
        vol.Optional("external", default=False): bool,
        vol.Optional("hide_device", default=False): bool,
    },
    extra=vol.ALLOW_EXTRA,
)

PLATFORM_SCHEMA = vol.Schema(
    {
        vol.Optional("name", default="SwitchBot"): str,
        vol.Optional("credentials", default={}): vol.Schema(
            {
                vol.Optional("token"): str,
                vol.Optional("secret"): str,
                vol.Optional("openToken"): str,
            },
            extra=vol.ALLOW_EXTRA,
        ),
        vol.Optional("options", default={}): vol.Schema(
            {
                vol.Optional("devices", default=[]): [DEVICE_SCHEMA],
                vol.Optional("irdevices", default=[]): [IR_DEVICE_SCHEMA],
                vol.Optional("refreshRate"): vol.All(
                    vol.Coerce(float),
                    vol.Range(
                        min=MIN_REFRESH_RATE,
                        msg="Refresh Rate must be above 5 (5 seconds).",
                    ),
                ),
                vol.Optional("updateRate"): _RATE,
                vol.Optional("pushRate"): _RATE,
                vol.Optional("maxRetries"): vol.All(vol.Coerce(int), vol.Range(min=1)),
                vol.Optional("delayBetweenRetries"): _RATE,
                vol.Optional("logging"): _LOGGING,
                vol.Optional("webhookURL"): vol.Url(),
            },
            extra=vol.ALLOW_EXTRA,
        ),
        vol.Optional("bridge", default={}): vol.Schema(
            {
                vol.Optional("name", default="SwitchBot Bridge"): str,
                vol.Optional("port", default=51826): vol.All(
                    vol.Coerce(int), vol.Range(min=1, max=65535)
                ),
                vol.Optional("pincode"): vol.Match(r"^\d{3}-\d{2}-\d{3}$"),
                vol.Optional("address"): str,
                vol.Optional("persist_file", default="switchbot.state"): str,
            }
        ),
        vol.Optional("contextFile", default="switchbot_context.json"): str,
    },
    extra=vol.ALLOW_EXTRA,
)


def normalize_device_id(device_id: str) -> str:
    """Return ``device_id`` upper-cased with separators removed."""

    return re.sub(r"[^A-Z0-9]+", "", device_id.upper())


def ble_address(device_id: str) -> str:
    """Convert a cloud device id into a lower-case BLE MAC address."""

    compact = normalize_device_id(device_id)
    return ":".join(compact[idx : idx + 2] for idx in range(0, len(compact), 2)).lower()


@dataclass(slots=True)
class Credentials:
    """Cloud API credentials."""

    token: str | None = None
    secret: str | None = None

    @property
    def has_token(self) -> bool:
        """Return True when both token and secret are configured."""

        return bool(self.token) and bool(self.secret)


@dataclass(slots=True)
class BridgeOptions:
    """HomeKit bridge settings."""

    name: str = "SwitchBot Bridge"
    port: int = 51826
    pincode: str | None = None
    address: str | None = None
    persist_file: str = "switchbot.state"


@dataclass(slots=True)
class PlatformOptions:
    """Platform-wide defaults applied to every device."""

    refresh_rate: float = DEFAULT_PLATFORM_REFRESH_RATE
    update_rate: float = DEFAULT_UPDATE_RATE
    push_rate: float = DEFAULT_PUSH_RATE
    max_retries: int = DEFAULT_MAX_RETRIES
    delay_between_retries: float = DEFAULT_DELAY_BETWEEN_RETRIES
    logging: LoggingLevel = LoggingLevel.STANDARD
    webhook_url: str | None = None
    devices: list[dict[str, Any]] = field(default_factory=list)
    irdevices: list[dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True)
class PlatformConfig:
    """Validated platform configuration."""

    name: str
    credentials: Credentials
    options: PlatformOptions
    bridge: BridgeOptions
    context_file: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> PlatformConfig:
        """Validate ``payload`` and build the platform configuration."""

        try:
            data = PLATFORM_SCHEMA(dict(payload))
        except vol.Invalid as err:
            raise ConfigurationError(str(err)) from err

        raw_credentials = data["credentials"]
        token = raw_credentials.get("token") or raw_credentials.get("openToken")
        if raw_credentials.get("openToken") and not raw_credentials.get("token"):
            _LOGGER.warning(
                '"openToken" is deprecated, move it to "token" and add a "secret"'
            )
        credentials = Credentials(token=token, secret=raw_credentials.get("secret"))
        if credentials.token and not credentials.secret:
            _LOGGER.error("Missing secret, cloud enabled devices will not work")

        raw_options = data["options"]
        options = PlatformOptions(
            refresh_rate=raw_options.get("refreshRate", DEFAULT_PLATFORM_REFRESH_RATE),
            update_rate=raw_options.get("updateRate", DEFAULT_UPDATE_RATE),
            push_rate=raw_options.get("pushRate", DEFAULT_PUSH_RATE),
            max_retries=raw_options.get("maxRetries", DEFAULT_MAX_RETRIES),
            delay_between_retries=raw_options.get(
                "delayBetweenRetries", DEFAULT_DELAY_BETWEEN_RETRIES
            ),
            logging=LoggingLevel(raw_options.get("logging", LoggingLevel.STANDARD)),
            webhook_url=raw_options.get("webhookURL"),
            devices=list(raw_options["devices"]),
            irdevices=list(raw_options["irdevices"]),
        )
        _verify_devices(options)
        return cls(
            name=data["name"],
            credentials=credentials,
            options=options,
            bridge=BridgeOptions(**data["bridge"]),
            context_file=data["contextFile"],
        )


def _verify_devices(options: PlatformOptions) -> None:
    for device in options.devices:
        if device.get("hide_device"):
            continue
        if not device.get("deviceId"):
            raise ConfigurationError(
                "The devices config section is missing the *Device ID* in the config."
            )
        if not device.get("configDeviceType") and device.get("connectionType"):
            raise ConfigurationError(
                "The devices config section is missing the *Device Type* in the config."
            )
    for device in options.irdevices:
        if device.get("hide_device"):
            continue
        if not device.get("deviceId"):
            _LOGGER.error(
                "The irdevices config section is missing the *Device ID* in the config."
            )


def load_platform_config(path: Path) -> PlatformConfig:
    """Load and validate the platform configuration from a JSON file."""

    with path.open("r", encoding="utf-8") as fp:
        try:
            payload = json.load(fp)
        except json.JSONDecodeError as err:
            raise ConfigurationError(f"{path} is not valid JSON: {err}") from err
    return PlatformConfig.from_dict(payload)


@dataclass(frozen=True)
class DeviceConfig:
    """Options for one device, merged from device and platform settings."""

    device_id: str
    display_name: str
    device_type: str
    connection_type: ConnectionType | None = None
    refresh_rate: float = DEFAULT_PLATFORM_REFRESH_RATE
    update_rate: float = DEFAULT_UPDATE_RATE
    push_rate: float = DEFAULT_PUSH_RATE
    scan_duration: float = DEFAULT_SCAN_DURATION
    offline: bool = False
    max_retry: int = DEFAULT_MAX_RETRY
    max_retries: int = DEFAULT_MAX_RETRIES
    delay_between_retries: float = DEFAULT_DELAY_BETWEEN_RETRIES
    webhook: bool = False
    hide_device: bool = False
    firmware: str | None = None
    logging: LoggingLevel = LoggingLevel.STANDARD
    hub_device_id: str | None = None
    enable_cloud_service: bool = True
    external: bool = False
    is_ir: bool = False
    customize: bool = False
    command_on: str | None = None
    command_off: str | None = None
    command_type: str | None = None
    disable_push_on: bool = False
    disable_push_off: bool = False
    disable_push_detail: bool = False
    sections: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def ble_address(self) -> str:
        """Return the BLE MAC address derived from the device id."""

        return ble_address(self.device_id)

    def section(self, name: str) -> Mapping[str, Any]:
        """Return the device-type specific option block ``name``."""

        return self.sections.get(name, MappingProxyType({}))

    @classmethod
    def from_dict(
        cls, payload: Mapping[str, Any], platform: PlatformConfig
    ) -> DeviceConfig:
        """Merge a device payload with the platform defaults."""

        try:
            data = DEVICE_SCHEMA(dict(payload))
        except vol.Invalid as err:
            raise ConfigurationError(str(err)) from err
        options = platform.options
        update_rate = data.get("updateRate", options.update_rate)
        scan_duration = max(
            update_rate, data.get("scanDuration", DEFAULT_SCAN_DURATION)
        )
        sections = {
            key: MappingProxyType(dict(value))
            for key, value in data.items()
            if isinstance(value, Mapping)
        }
        return cls(
            device_id=data.get("deviceId", ""),
            display_name=data.get("configDeviceName")
            or data.get("deviceName")
            or data.get("deviceId", ""),
            device_type=data.get("deviceType") or data.get("configDeviceType", ""),
            connection_type=_resolve_connection_type(data, platform),
            refresh_rate=data.get("refreshRate", options.refresh_rate),
            update_rate=update_rate,
            push_rate=data.get("pushRate", options.push_rate),
            scan_duration=scan_duration,
            offline=data["offline"],
            max_retry=data.get("maxRetry", DEFAULT_MAX_RETRY),
            max_retries=data.get("maxRetries", options.max_retries),
            delay_between_retries=data.get(
                "delayBetweenRetries", options.delay_between_retries
            ),
            webhook=data["webhook"],
            hide_device=data["hide_device"],
            firmware=data.get("firmware") or data.get("version"),
            logging=LoggingLevel(data.get("logging", options.logging)),
            hub_device_id=data.get("hubDeviceId"),
            enable_cloud_service=data.get("enableCloudService", True),
            external=data["external"],
            sections=MappingProxyType(sections),
        )

    @classmethod
    def from_ir_dict(
        cls, payload: Mapping[str, Any], platform: PlatformConfig
    ) -> DeviceConfig:
        """Merge an infrared remote payload with the platform defaults."""

        try:
            data = IR_DEVICE_SCHEMA(dict(payload))
        except vol.Invalid as err:
            raise ConfigurationError(str(err)) from err
        return cls(
            device_id=data.get("deviceId", ""),
            display_name=data.get("configDeviceName")
            or data.get("deviceName")
            or data.get("deviceId", ""),
            device_type=data.get("remoteType") or data.get("configRemoteType", ""),
            connection_type=_resolve_connection_type(data, platform),
            refresh_rate=platform.options.refresh_rate,
            push_rate=data.get("pushRate", platform.options.push_rate),
            hide_device=data["hide_device"],
            logging=LoggingLevel(data.get("logging", platform.options.logging)),
            hub_device_id=data.get("hubDeviceId"),
            external=data["external"],
            is_ir=True,
            customize=data["customize"],
            command_on=data.get("commandOn"),
            command_off=data.get("commandOff"),
            command_type=data.get("commandType"),
            disable_push_on=data["disablePushOn"],
            disable_push_off=data["disablePushOff"],
            disable_push_detail=data["disablePushDetail"],
        )


def _resolve_connection_type(
    data: Mapping[str, Any], platform: PlatformConfig
) -> ConnectionType | None:
    value = data.get("connectionType")
    if value is None and platform.credentials.has_token:
        return ConnectionType.OPENAPI
    if value is None:
        return None
    return ConnectionType(value)


def merge_device_lists(
    discovered: list[Mapping[str, Any]], configured: list[Mapping[str, Any]]
) -> list[dict[str, Any]]:
    """Attach configured options to discovered devices by device id.

    Fields reported by the cloud take precedence over configured ones.
    """

    by_id = {
        normalize_device_id(str(item["deviceId"])): item
        for item in configured
        if item.get("deviceId")
    }
    merged: list[dict[str, Any]] = []
    for device in discovered:
        override = by_id.get(normalize_device_id(str(device.get("deviceId", ""))), {})
        merged.append({**override, **device})
    return merged
