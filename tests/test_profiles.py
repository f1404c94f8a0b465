"""Tests for the per-family status mappings and commands."""

from __future__ import annotations

import logging

import pytest

from switchbot_homekit.config import DeviceConfig
from switchbot_homekit.const import (
    ACTIVE_ACTIVE,
    ACTIVE_INACTIVE,
    BATTERY_LEVEL_LOW,
    CONTACT_NOT_DETECTED,
    HUMIDIFIER_STATE_HUMIDIFYING,
    LEAK_DETECTED,
    LOCK_JAMMED,
    LOCK_SECURED,
    LOCK_UNSECURED,
    POSITION_INCREASING,
    TARGET_HUMIDIFIER,
    TARGET_HUMIDIFIER_AUTO,
    ConnectionType,
)
from switchbot_homekit.device_logger import DeviceLogger
from switchbot_homekit.device_types import (
    curtain,
    humidifier,
    lights,
    lock,
    sensors,
    vacuum,
)
from switchbot_homekit.device_types.curtain import BlindTiltProfile, CurtainProfile
from switchbot_homekit.device_types.humidifier import HumidifierProfile
from switchbot_homekit.device_types.lights import (
    CeilingLightProfile,
    LightProfile,
    StripLightProfile,
    hs_to_rgb,
    kelvin_to_mireds,
    mireds_to_kelvin,
    rgb_to_hs,
)
from switchbot_homekit.device_types.lock import LockProfile
from switchbot_homekit.device_types.sensors import (
    ContactProfile,
    HubProfile,
    MeterProfile,
    MotionProfile,
    WaterDetectorProfile,
)
from switchbot_homekit.device_types.vacuum import VacuumProfile

BATTERY_LOW = "BatteryService.StatusLowBattery"


def _profile(profile_cls, device_type: str, sections=None):
    config = DeviceConfig(
        device_id="AABBCCDDEEFF",
        display_name="Test",
        device_type=device_type,
        connection_type=ConnectionType.OPENAPI,
        update_rate=7,
        sections=sections or {},
    )
    log = DeviceLogger(logging.getLogger(__name__), device_type, "Test")
    return profile_cls(config, log)


def _names(profile) -> list[str]:
    return [spec.name for spec in profile.services()]


def _sent(commands) -> list[tuple[str, object]]:
    return [(command.command, command.parameter) for command in commands]


def test_lock_cloud_status() -> None:
    """Lock state, door and battery come from the status body."""

    profile = _profile(LockProfile, "Smart Lock")

    updates = profile.parse_cloud(
        {"lockState": "locked", "doorState": "opened", "battery": 8}, {}
    )

    assert updates[lock.LOCK_CURRENT] == LOCK_SECURED
    assert updates[lock.LOCK_TARGET] == LOCK_SECURED
    assert updates[lock.DOOR] == CONTACT_NOT_DETECTED
    assert updates[BATTERY_LOW] == BATTERY_LEVEL_LOW


def test_jammed_lock_keeps_target() -> None:
    """A jammed lock only changes the current state."""

    profile = _profile(LockProfile, "Smart Lock")

    assert profile.parse_cloud({"lockState": "jammed"}, {}) == {
        lock.LOCK_CURRENT: LOCK_JAMMED
    }


def test_lock_commands_and_hidden_contact() -> None:
    """Target changes send lock or unlock; the door sensor can be hidden."""

    profile = _profile(
        LockProfile, "Smart Lock", {"lock": {"hide_contactsensor": True}}
    )

    assert _sent(profile.commands({lock.LOCK_TARGET: LOCK_UNSECURED}, {})) == [
        ("unlock", "default")
    ]
    assert _names(profile) == ["LockMechanism", "BatteryService"]


def test_humidifier_manual_mode_status() -> None:
    """Manual mode reports the nebulization efficiency as the threshold."""

    profile = _profile(HumidifierProfile, "Humidifier")

    updates = profile.parse_cloud(
        {"power": "on", "humidity": 40, "nebulizationEfficiency": 60, "auto": False},
        {},
    )

    assert updates[humidifier.ACTIVE] == ACTIVE_ACTIVE
    assert updates[humidifier.TARGET_STATE] == TARGET_HUMIDIFIER
    assert updates[humidifier.THRESHOLD] == 60
    assert updates[humidifier.CURRENT_STATE] == HUMIDIFIER_STATE_HUMIDIFYING


def test_humidifier_auto_mode_status() -> None:
    """Auto mode tracks the current humidity as its threshold."""

    profile = _profile(HumidifierProfile, "Humidifier")

    updates = profile.parse_cloud({"power": "on", "auto": True, "humidity": 45}, {})

    assert updates[humidifier.TARGET_STATE] == TARGET_HUMIDIFIER_AUTO
    assert updates[humidifier.THRESHOLD] == 45


def test_humidifier_commands() -> None:
    """Power, auto mode and threshold map onto turnOn, turnOff and setMode."""

    profile = _profile(HumidifierProfile, "Humidifier")
    manual = {humidifier.TARGET_STATE: TARGET_HUMIDIFIER, humidifier.THRESHOLD: 55}
    auto = {humidifier.TARGET_STATE: TARGET_HUMIDIFIER_AUTO}

    assert _sent(profile.commands({humidifier.THRESHOLD: 55}, manual)) == [
        ("setMode", "55")
    ]
    assert _sent(
        profile.commands({humidifier.ACTIVE: ACTIVE_INACTIVE}, manual)
    ) == [("turnOff", "default")]
    assert _sent(
        profile.commands(
            {humidifier.ACTIVE: ACTIVE_ACTIVE, humidifier.TARGET_STATE: 0}, auto
        )
    ) == [("turnOn", "default"), ("setMode", "auto")]


@pytest.mark.parametrize(
    ("kelvin", "mireds"), [(2700, 370), (4000, 250), (10000, 140), (1000, 500)]
)
def test_kelvin_to_mireds(kelvin: int, mireds: int) -> None:
    """Colour temperatures are clamped to the HomeKit mired range."""

    assert kelvin_to_mireds(kelvin) == mireds


@pytest.mark.parametrize(("mireds", "kelvin"), [(370, 2700), (250, 4000), (140, 6500)])
def test_mireds_to_kelvin(mireds: int, kelvin: int) -> None:
    """Mireds convert back to kelvin within the device range."""

    assert mireds_to_kelvin(mireds) == kelvin


def test_color_conversions() -> None:
    """Colours convert between ``r:g:b`` strings and hue/saturation."""

    assert rgb_to_hs("255:0:0") == (0, 100)
    assert rgb_to_hs("0:0:255") == (240, 100)
    assert hs_to_rgb(240, 100) == "0:0:255"
    assert hs_to_rgb(0, 0) == "255:255:255"


def test_light_cloud_status() -> None:
    """Bulb status includes brightness, colour and colour temperature."""

    profile = _profile(LightProfile, "Color Bulb")

    updates = profile.parse_cloud(
        {
            "power": "on",
            "brightness": "80",
            "color": "255:0:0",
            "colorTemperature": 4000,
        },
        {},
    )

    assert updates == {
        lights.ON: True,
        lights.BRIGHTNESS: 80,
        lights.HUE: 0,
        lights.SATURATION: 100,
        lights.COLOR_TEMPERATURE: 250,
    }


def test_light_commands() -> None:
    """Turning off wins over other changes; colour uses the cached hue."""

    profile = _profile(LightProfile, "Color Bulb")

    assert _sent(profile.commands({lights.ON: True, lights.BRIGHTNESS: 40}, {})) == [
        ("turnOn", "default"),
        ("setBrightness", "40"),
    ]
    assert _sent(profile.commands({lights.ON: False, lights.BRIGHTNESS: 40}, {})) == [
        ("turnOff", "default")
    ]
    assert _sent(
        profile.commands({lights.HUE: 240}, {lights.HUE: 240, lights.SATURATION: 100})
    ) == [("setColor", "0:0:255")]


def test_light_variants() -> None:
    """Strip lights lack colour temperature; ceiling lights lack colour."""

    strip = _profile(StripLightProfile, "Strip Light")
    ceiling = _profile(CeilingLightProfile, "Ceiling Light")

    strip_chars = [spec.name for spec in strip.services()[0].characteristics]
    ceiling_chars = [spec.name for spec in ceiling.services()[0].characteristics]
    assert "ColorTemperature" not in strip_chars
    assert "Hue" not in ceiling_chars
    assert _sent(ceiling.commands({lights.COLOR_TEMPERATURE: 370}, {})) == [
        ("setColorTemperature", "2700")
    ]


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        ({"workingStatus": "Cleaning"}, True),
        ({"workingStatus": "StandBy", "onlineStatus": "online"}, False),
        ({"onlineStatus": "online"}, True),
        ({"onlineStatus": "offline"}, False),
    ],
)
def test_vacuum_power_state(status, expected: bool) -> None:
    """The working status decides the on state, falling back to online."""

    profile = _profile(VacuumProfile, "K10+")

    assert profile.parse_cloud(status, {})[vacuum.ON] is expected


def test_vacuum_commands() -> None:
    """Off docks the vacuum; brightness steps select the suction level."""

    profile = _profile(VacuumProfile, "K10+")

    commands = profile.commands({vacuum.ON: False, vacuum.BRIGHTNESS: 75}, {})

    assert _sent(commands) == [("dock", "default"), ("PowLevel", "2")]


def test_curtain_cloud_position_is_inverted() -> None:
    """The device reports the closed percentage; HomeKit expects open."""

    profile = _profile(CurtainProfile, "Curtain")

    updates = profile.parse_cloud({"slidePosition": 30, "brightness": "bright"}, {})

    assert updates[curtain.CURRENT_POSITION] == 70
    assert updates[curtain.TARGET_POSITION] == 70
    assert updates[curtain.AMBIENT_LIGHT] == 6001


def test_curtain_limits_snap_positions() -> None:
    """Positions beyond ``set_min`` and ``set_max`` read as closed or open."""

    profile = _profile(
        CurtainProfile, "Curtain", {"curtain": {"set_min": 5, "set_max": 95}}
    )

    assert profile.clamp(3) == 0
    assert profile.clamp(97) == 100
    assert profile.clamp(50) == 50


def test_curtain_target_tracks_movement() -> None:
    """A new target reports movement for the update rate."""

    profile = _profile(CurtainProfile, "Curtain", {"curtain": {"setOpenMode": "1"}})

    outcome = profile.on_set(
        curtain.TARGET_POSITION, 80, {curtain.CURRENT_POSITION: 20}
    )
    commands = profile.commands({curtain.TARGET_POSITION: 80}, {})

    assert outcome.updates[curtain.POSITION_STATE] == POSITION_INCREASING
    assert outcome.hold == 7
    assert _sent(commands) == [("setPosition", "0,1,20")]
    profile.on_hold_expired()
    assert not profile.set_new_target


def test_curtain_hold_position_pauses() -> None:
    """Holding the position sends pause."""

    profile = _profile(CurtainProfile, "Curtain")

    commands = profile.commands(
        {curtain.HOLD_POSITION: True}, {curtain.HOLD_POSITION: True}
    )

    assert _sent(commands) == [("pause", "default")]


@pytest.mark.parametrize(
    ("mode", "position", "expected"),
    [
        ("only_up", 30, (100, None)),
        ("only_up", 75, (50, None)),
        ("only_down", 25, (50, None)),
        ("down_and_up", 40, (40, None)),
        ("up_and_down", 40, (60, None)),
        ("use_tilt_for_direction", 30, (60, -90)),
        ("use_tilt_for_direction", 80, (40, 90)),
    ],
)
def test_blind_tilt_slat_mapping(mode: str, position: int, expected) -> None:
    """Slat positions map onto HomeKit according to the mapping mode."""

    profile = _profile(BlindTiltProfile, "Blind Tilt", {"blindTilt": {"mode": mode}})

    assert profile.to_homekit(position) == expected


def test_blind_tilt_commands() -> None:
    """Fully open and closed targets use the dedicated commands."""

    tilt = _profile(
        BlindTiltProfile,
        "Blind Tilt",
        {"blindTilt": {"mode": "use_tilt_for_direction"}},
    )
    split = _profile(
        BlindTiltProfile, "Blind Tilt", {"blindTilt": {"mode": "down_and_up"}}
    )
    target = curtain.TARGET_POSITION

    assert "CurrentHorizontalTiltAngle" in [
        spec.name for spec in tilt.services()[0].characteristics
    ]
    opened = tilt.commands({target: 100}, {target: 100, curtain.TARGET_TILT: 90})
    closed = tilt.commands({target: 0}, {target: 0, curtain.TARGET_TILT: -90})
    assert _sent(opened) == [("fullyOpen", "default")]
    assert _sent(closed) == [("closeDown", "default")]
    assert _sent(split.commands({target: 40}, {target: 40})) == [
        ("setPosition", "down;20")
    ]


def test_meter_status_and_hidden_humidity() -> None:
    """Meters round temperature and can hide the humidity sensor."""

    profile = _profile(MeterProfile, "Meter", {"meter": {"hide_humidity": True}})

    updates = profile.parse_cloud({"temperature": 21.46, "humidity": 45}, {})

    assert updates[sensors.TEMPERATURE] == 21.5
    assert _names(profile) == ["TemperatureSensor", "BatteryService"]


def test_hub_light_levels_span_the_lux_range() -> None:
    """Hub 2 light levels run from the minimum to the maximum lux."""

    profile = _profile(HubProfile, "Hub 2")

    assert profile.parse_cloud({"lightLevel": 1}, {})[sensors.AMBIENT_LIGHT] == 1
    assert profile.parse_cloud({"lightLevel": 20}, {})[sensors.AMBIENT_LIGHT] == 6001


def test_contact_cloud_status() -> None:
    """Contact sensors report the door, motion and brightness."""

    profile = _profile(ContactProfile, "Contact Sensor")

    updates = profile.parse_cloud(
        {"openState": "open", "moveDetected": True, "brightness": "dim"}, {}
    )

    assert updates == {
        sensors.CONTACT: CONTACT_NOT_DETECTED,
        sensors.MOTION: True,
        sensors.AMBIENT_LIGHT: 1,
    }


def test_motion_webhook_detection_state() -> None:
    """Webhook pushes report motion through ``detectionState``."""

    profile = _profile(MotionProfile, "Motion Sensor")

    updates = profile.parse_webhook({"detectionState": "DETECTED"}, {})

    assert updates[sensors.MOTION] is True


def test_water_detector_status() -> None:
    """A non-zero status means a leak."""

    profile = _profile(WaterDetectorProfile, "Water Detector")

    assert profile.parse_cloud({"status": 1}, {})[sensors.LEAK] == LEAK_DETECTED
