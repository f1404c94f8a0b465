"""Tests for configuration validation and device option merging."""

from __future__ import annotations

import json
import logging

import pytest

from switchbot_homekit.config import (
    DeviceConfig,
    PlatformConfig,
    ble_address,
    load_platform_config,
    merge_device_lists,
    normalize_device_id,
)
from switchbot_homekit.const import ConnectionType, LoggingLevel
from switchbot_homekit.errors import ConfigurationError


def _platform(**options) -> PlatformConfig:
    return PlatformConfig.from_dict(
        {"credentials": {"token": "token", "secret": "secret"}, "options": options}
    )


def test_platform_defaults() -> None:
    """An empty configuration validates with the documented defaults."""

    config = PlatformConfig.from_dict({})

    assert config.name == "SwitchBot"
    assert not config.credentials.has_token
    assert config.options.refresh_rate == 120
    assert config.options.push_rate == 1.0
    assert config.options.max_retries == 5
    assert config.options.delay_between_retries == 3
    assert config.options.logging is LoggingLevel.STANDARD
    assert config.bridge.port == 51826
    assert config.context_file == "switchbot_context.json"


def test_refresh_rate_below_minimum_is_rejected() -> None:
    """Refresh rates under five seconds fail validation."""

    with pytest.raises(ConfigurationError, match="Refresh Rate must be above 5"):
        PlatformConfig.from_dict({"options": {"refreshRate": 2}})


def test_open_token_is_accepted_with_warning(caplog) -> None:
    """The legacy ``openToken`` key still provides the token."""

    with caplog.at_level(logging.WARNING):
        config = PlatformConfig.from_dict(
            {"credentials": {"openToken": "legacy", "secret": "secret"}}
        )

    assert config.credentials.token == "legacy"
    assert config.credentials.has_token
    assert "openToken" in caplog.text


def test_invalid_webhook_url_is_rejected() -> None:
    """``webhookURL`` must be a URL."""

    with pytest.raises(ConfigurationError):
        PlatformConfig.from_dict({"options": {"webhookURL": "not a url"}})


def test_device_without_id_is_rejected() -> None:
    """Visible devices must carry a device id."""

    with pytest.raises(ConfigurationError, match="Device ID"):
        PlatformConfig.from_dict(
            {"options": {"devices": [{"configDeviceType": "Bot"}]}}
        )


def test_hidden_device_without_id_is_allowed() -> None:
    """Hidden devices skip the identity checks."""

    config = PlatformConfig.from_dict(
        {"options": {"devices": [{"hide_device": True}]}}
    )

    assert config.options.devices == [
        {"hide_device": True, "offline": False, "webhook": False, "external": False}
    ]


def test_load_platform_config_reads_json(tmp_path) -> None:
    """Configuration files are plain JSON."""

    path = tmp_path / "config.json"
    path.write_text(json.dumps({"name": "Home", "options": {"pushRate": 0.5}}))

    config = load_platform_config(path)

    assert config.name == "Home"
    assert config.options.push_rate == 0.5


def test_device_config_inherits_platform_defaults() -> None:
    """Device options fall back to the platform values."""

    platform = _platform(pushRate=2, maxRetries=7, logging="debug")

    config = DeviceConfig.from_dict(
        {"deviceId": "ABC", "deviceName": "Desk", "deviceType": "Bot"}, platform
    )

    assert config.display_name == "Desk"
    assert config.device_type == "Bot"
    assert config.connection_type is ConnectionType.OPENAPI
    assert config.push_rate == 2
    assert config.max_retries == 7
    assert config.max_retry == 5
    assert config.logging is LoggingLevel.DEBUG
    assert config.enable_cloud_service


def test_device_config_without_credentials_has_no_connection() -> None:
    """Without a token an unconfigured connection type stays unset."""

    config = DeviceConfig.from_dict(
        {"deviceId": "ABC", "configDeviceType": "Bot"}, PlatformConfig.from_dict({})
    )

    assert config.connection_type is None
    assert config.device_type == "Bot"


def test_device_config_sections_and_overrides() -> None:
    """Per-type blocks are exposed as read-only sections."""

    config = DeviceConfig.from_dict(
        {
            "deviceId": "AABBCC",
            "configDeviceName": "Blinds",
            "deviceType": "Curtain",
            "connectionType": "BLE/OpenAPI",
            "refreshRate": 30,
            "scanDuration": 0.5,
            "updateRate": 2,
            "curtain": {"set_min": 5, "set_max": 95},
        },
        _platform(),
    )

    assert config.display_name == "Blinds"
    assert config.connection_type is ConnectionType.BLE_OPENAPI
    assert config.refresh_rate == 30
    assert config.scan_duration == 2
    assert config.section("curtain")["set_max"] == 95
    assert config.section("bot") == {}
    assert config.ble_address == "aa:bb:cc"


def test_device_config_rejects_invalid_values() -> None:
    """Schema errors surface as configuration errors."""

    with pytest.raises(ConfigurationError):
        DeviceConfig.from_dict(
            {"deviceId": "ABC", "connectionType": "Zigbee"}, _platform()
        )


def test_ir_device_config() -> None:
    """Infrared remotes carry their command customisation."""

    config = DeviceConfig.from_ir_dict(
        {
            "deviceId": "IR1",
            "deviceName": "Fan",
            "remoteType": "DIY Fan",
            "customize": True,
            "commandOn": "Power",
            "disablePushOff": True,
        },
        _platform(),
    )

    assert config.is_ir
    assert config.device_type == "DIY Fan"
    assert config.customize
    assert config.command_on == "Power"
    assert config.disable_push_off
    assert not config.disable_push_on


@pytest.mark.parametrize(
    ("device_id", "expected"),
    [("aa:bb:cc:dd:ee:ff", "AABBCCDDEEFF"), ("AA-BB-CC", "AABBCC"), ("ab12", "AB12")],
)
def test_normalize_device_id(device_id: str, expected: str) -> None:
    """Device ids are compared upper-cased without separators."""

    assert normalize_device_id(device_id) == expected


def test_ble_address_from_device_id() -> None:
    """Cloud device ids map onto lower-case MAC addresses."""

    assert ble_address("AABBCCDDEEFF") == "aa:bb:cc:dd:ee:ff"


def test_merge_device_lists_prefers_cloud_fields() -> None:
    """Configured options attach to discovered devices by id."""

    discovered = [
        {"deviceId": "AABBCC", "deviceName": "Cloud Name", "deviceType": "Bot"},
        {"deviceId": "DDEEFF", "deviceType": "Plug"},
    ]
    configured = [
        {"deviceId": "aa:bb:cc", "deviceName": "Local", "refreshRate": 30},
    ]

    merged = merge_device_lists(discovered, configured)

    assert merged == [
        {
            "deviceId": "AABBCC",
            "deviceName": "Cloud Name",
            "deviceType": "Bot",
            "refreshRate": 30,
        },
        {"deviceId": "DDEEFF", "deviceType": "Plug"},
    ]
