"""Tests for BLE advertisement decoding."""

from __future__ import annotations

import pytest

from switchbot_homekit.advertisement import (
    LockStatus,
    clamp_battery,
    parse_service_data,
)


def test_parse_bot_press_mode() -> None:
    """Bot advertisements report mode, state and battery."""

    data = parse_service_data(bytes([0x48, 0x00, 0x5A]))

    assert data is not None
    assert data.model_name == "WoHand"
    assert data.mode is False
    assert data.state is True
    assert data.battery == 90


def test_parse_bot_switch_mode_off() -> None:
    """The high bits select switch mode and the off state."""

    data = parse_service_data(bytes([0x48, 0xC0, 0x5A]))

    assert data is not None
    assert data.mode is True
    assert data.state is False


def test_parse_curtain_motion_and_light() -> None:
    """Curtain advertisements carry position, motion and light level."""

    data = parse_service_data(bytes([0x63, 0x40, 0x85, 0x9E, 0x30]))

    assert data is not None
    assert data.calibration is True
    assert data.battery == 5
    assert data.in_motion is True
    assert data.position == 30
    assert data.light_level == 3


@pytest.mark.parametrize(
    ("sign_byte", "celsius", "fahrenheit"),
    [(0x96, 22.5, 72.5), (0x05, -5.5, 22.1)],
)
def test_parse_meter_temperature(
    sign_byte: int, celsius: float, fahrenheit: float
) -> None:
    """Meter temperatures combine the sign, integer and decimal fields."""

    data = parse_service_data(bytes([0x54, 0x00, 0x64, 0x05, sign_byte, 0x37]))

    assert data is not None
    assert data.battery == 100
    assert data.celsius == celsius
    assert data.fahrenheit == fahrenheit
    assert data.humidity == 55


def test_parse_contact_sensor() -> None:
    """Contact sensors report the door, motion and light flags."""

    data = parse_service_data(bytes([0x64, 0x40, 0x50, 0x03]))

    assert data is not None
    assert data.movement is True
    assert data.battery == 80
    assert data.contact_open is True
    assert data.contact_timeout is False
    assert data.is_light is True
    assert data.light_level == 2


def test_parse_lock_uses_manufacturer_data() -> None:
    """Lock state is decoded from the manufacturer data."""

    manufacturer = bytes([0, 0, 0, 0, 0, 0, 0, 0b10010100])

    data = parse_service_data(bytes([0x6F, 0x00, 0x55]), manufacturer)

    assert data is not None
    assert data.battery == 85
    assert data.calibration is True
    assert data.lock_status is LockStatus.UNLOCKED
    assert data.door_open is True


def test_parse_lock_without_manufacturer_data() -> None:
    """Only the battery is known without manufacturer data."""

    data = parse_service_data(bytes([0x6F, 0x00, 0x55]))

    assert data is not None
    assert data.battery == 85
    assert data.lock_status is None


@pytest.mark.parametrize(
    "payload",
    [b"", bytes([0x7A, 0x00, 0x10]), bytes([0x54, 0x00, 0x64])],
)
def test_unknown_or_short_payloads_are_ignored(payload: bytes) -> None:
    """Unknown models and truncated payloads decode to None."""

    assert parse_service_data(payload) is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [(50, 50), ("75", 75), (-1, 0), (250, 100), (None, 100), ("x", 100)],
)
def test_clamp_battery(value: object, expected: int) -> None:
    """Battery levels are clamped to 0..100 with a full fallback."""

    assert clamp_battery(value) == expected
