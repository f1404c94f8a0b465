"""Decode SwitchBot BLE advertisement service data."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

_LOGGER = logging.getLogger(__name__)


class LockStatus(IntEnum):
    """Lock motor status reported in manufacturer data."""

    LOCKED = 0
    UNLOCKED = 1
    LOCKING = 2
    UNLOCKING = 3
    LOCKING_STOP = 4
    UNLOCKING_STOP = 5
    NOT_FULLY_LOCKED = 6


@dataclass(slots=True)
class ServiceData:
    """Typed fields decoded from one advertisement."""

    model: str
    model_name: str
    battery: int | None = None
    mode: bool | None = None
    state: bool | None = None
    position: int | None = None
    in_motion: bool | None = None
    calibration: bool | None = None
    light_level: int | None = None
    is_light: bool | None = None
    celsius: float | None = None
    fahrenheit: float | None = None
    humidity: int | None = None
    movement: bool | None = None
    contact_open: bool | None = None
    contact_timeout: bool | None = None
    door_open: bool | None = None
    lock_status: LockStatus | None = None
    leak: bool | None = None
    auto_mode: bool | None = None
    percentage: int | None = None
    brightness: int | None = None
    current_power: float | None = None


def clamp_battery(value: object) -> int:
    """Return a battery percentage within 0..100, or 100 when unparseable."""

    try:
        level = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 100
    return max(0, min(level, 100))


def _celsius(sign_byte: int, decimal_byte: int) -> float:
    sign = 1 if sign_byte & 0b10000000 else -1
    value = (sign_byte & 0b01111111) + (decimal_byte & 0b00001111) / 10
    return round(sign * value, 1)


def _fahrenheit(celsius: float) -> float:
    return round(celsius * 9 / 5 + 32, 1)


def _parse_bot(data: bytes, mfr: bytes | None) -> dict[str, object]:
    return {
        "mode": bool(data[1] & 0b10000000),
        "state": not bool(data[1] & 0b01000000),
        "battery": data[2] & 0b01111111,
    }


def _parse_curtain(data: bytes, mfr: bytes | None) -> dict[str, object]:
    return {
        "calibration": bool(data[1] & 0b01000000),
        "battery": data[2] & 0b01111111,
        "in_motion": bool(data[3] & 0b10000000),
        "position": min(data[3] & 0b01111111, 100),
        "light_level": (data[4] >> 4) & 0b00001111,
    }


def _parse_blind_tilt(data: bytes, mfr: bytes | None) -> dict[str, object]:
    fields: dict[str, object] = {
        "calibration": bool(data[1] & 0b01000000),
        "battery": data[2] & 0b01111111,
    }
    if mfr is not None and len(mfr) >= 8:
        fields["in_motion"] = bool(mfr[6] & 0b10000000)
        fields["position"] = min(mfr[6] & 0b01111111, 100)
        fields["light_level"] = (mfr[7] >> 4) & 0b00001111
    return fields


def _parse_meter(data: bytes, mfr: bytes | None) -> dict[str, object]:
    celsius = _celsius(data[4], data[3])
    return {
        "battery": data[2] & 0b01111111,
        "celsius": celsius,
        "fahrenheit": _fahrenheit(celsius),
        "humidity": data[5] & 0b01111111,
    }


def _parse_outdoor_meter(data: bytes, mfr: bytes | None) -> dict[str, object]:
    fields: dict[str, object] = {"battery": data[2] & 0b01111111}
    if mfr is not None and len(mfr) >= 13:
        celsius = _celsius(mfr[11], mfr[10])
        fields.update(
            celsius=celsius,
            fahrenheit=_fahrenheit(celsius),
            humidity=mfr[12] & 0b01111111,
        )
    return fields


def _parse_hub2(data: bytes, mfr: bytes | None) -> dict[str, object]:
    if mfr is None or len(mfr) < 18:
        return {}
    celsius = _celsius(mfr[16], mfr[15])
    return {
        "celsius": celsius,
        "fahrenheit": _fahrenheit(celsius),
        "humidity": mfr[17] & 0b01111111,
        "light_level": mfr[12] & 0b00011111,
    }


def _parse_motion(data: bytes, mfr: bytes | None) -> dict[str, object]:
    light = data[5] & 0b00000011
    return {
        "movement": bool(data[1] & 0b01000000),
        "battery": data[2] & 0b01111111,
        "light_level": light,
        "is_light": light == 2,
    }


def _parse_contact(data: bytes, mfr: bytes | None) -> dict[str, object]:
    return {
        "movement": bool(data[1] & 0b01000000),
        "battery": data[2] & 0b01111111,
        "contact_open": bool(data[3] & 0b00000010),
        "contact_timeout": bool(data[3] & 0b00000100),
        "is_light": bool(data[3] & 0b00000001),
        "light_level": 2 if data[3] & 0b00000001 else 1,
    }


def _parse_lock(data: bytes, mfr: bytes | None) -> dict[str, object]:
    fields: dict[str, object] = {"battery": data[2] & 0b01111111}
    if mfr is not None and len(mfr) >= 8:
        fields.update(
            calibration=bool(mfr[7] & 0b10000000),
            lock_status=LockStatus((mfr[7] & 0b01110000) >> 4),
            door_open=bool(mfr[7] & 0b00000100),
        )
    return fields


def _parse_plug(data: bytes, mfr: bytes | None) -> dict[str, object]:
    if mfr is None or len(mfr) < 12:
        return {}
    return {
        "state": mfr[7] == 0x80,
        "current_power": (((mfr[10] << 8) + mfr[11]) & 0x7FFF) / 10,
    }


def _parse_humidifier(data: bytes, mfr: bytes | None) -> dict[str, object]:
    if mfr is None or len(mfr) < 9:
        return {}
    return {
        "state": bool(mfr[7] & 0b10000000),
        "auto_mode": bool(mfr[8] & 0b10000000),
        "percentage": min(mfr[8] & 0b01111111, 100),
    }


def _parse_light(data: bytes, mfr: bytes | None) -> dict[str, object]:
    if mfr is None or len(mfr) < 11:
        return {}
    return {
        "state": bool(mfr[10] & 0b10000000),
        "brightness": mfr[10] & 0b01111111,
    }


def _parse_water_leak(data: bytes, mfr: bytes | None) -> dict[str, object]:
    fields: dict[str, object] = {"battery": data[2] & 0b01111111}
    if len(data) >= 4:
        fields["leak"] = bool(data[3] & 0b00000001)
    return fields


_Parser = Callable[[bytes, bytes | None], dict[str, object]]

# model character -> (model name, minimum service data length, parser)
_MODELS: dict[str, tuple[str, int, _Parser]] = {
    "H": ("WoHand", 3, _parse_bot),
    "c": ("WoCurtain", 5, _parse_curtain),
    "{": ("WoCurtain3", 5, _parse_curtain),
    "x": ("WoBlindTilt", 3, _parse_blind_tilt),
    "T": ("WoSensorTH", 6, _parse_meter),
    "i": ("WoSensorTHPlus", 6, _parse_meter),
    "w": ("WoIOSensorTH", 3, _parse_outdoor_meter),
    "v": ("WoHub2", 1, _parse_hub2),
    "s": ("WoPresence", 6, _parse_motion),
    "d": ("WoContact", 4, _parse_contact),
    "o": ("WoSmartLock", 3, _parse_lock),
    "$": ("WoSmartLockPro", 3, _parse_lock),
    "g": ("WoPlugUS", 1, _parse_plug),
    "j": ("WoPlugJP", 1, _parse_plug),
    "e": ("WoHumi", 1, _parse_humidifier),
    "u": ("WoBulb", 1, _parse_light),
    "r": ("WoStrip", 1, _parse_light),
    "q": ("WoCeiling", 1, _parse_light),
    "&": ("WoLeak", 3, _parse_water_leak),
}


def parse_service_data(
    service_data: bytes, manufacturer_data: bytes | None = None
) -> ServiceData | None:
    """Decode ``service_data`` or return None for unknown or short payloads."""

    if not service_data:
        return None
    model = chr(service_data[0] & 0b01111111)
    spec = _MODELS.get(model)
    if spec is None:
        _LOGGER.debug("Unsupported advertisement model %r", model)
        return None
    model_name, min_length, parser = spec
    if len(service_data) < min_length:
        _LOGGER.debug(
            "Advertisement for %s too short: %s", model_name, service_data.hex()
        )
        return None
    fields = parser(bytes(service_data), manufacturer_data)
    return ServiceData(model=model, model_name=model_name, **fields)
