"""Device profiles for the SwitchBot bridge."""

from __future__ import annotations

from .adapter import DeviceAdapter
from .base import DeviceProfile, DeviceServices
from .bot import BotProfile
from .curtain import BlindTiltProfile, CurtainProfile
from .humidifier import HumidifierProfile
from .ir import IR_PROFILES
from .lights import CeilingLightProfile, LightProfile, StripLightProfile
from .lock import LockProfile
from .plug import PlugProfile
from .sensors import (
    ContactProfile,
    HubProfile,
    MeterProfile,
    MotionProfile,
    WaterDetectorProfile,
)
from .vacuum import VacuumProfile

DEVICE_PROFILES: tuple[type[DeviceProfile], ...] = (
    BotProfile,
    CurtainProfile,
    BlindTiltProfile,
    MeterProfile,
    HubProfile,
    MotionProfile,
    ContactProfile,
    WaterDetectorProfile,
    PlugProfile,
    LockProfile,
    HumidifierProfile,
    LightProfile,
    StripLightProfile,
    CeilingLightProfile,
    VacuumProfile,
)

_DEVICE_FACTORIES = {
    device_type: profile
    for profile in DEVICE_PROFILES
    for device_type in profile.device_types
}
_IR_FACTORIES = {
    remote_type: profile
    for profile in IR_PROFILES
    for remote_type in profile.device_types
}


def resolve_profile(
    device_type: str, *, is_ir: bool = False
) -> type[DeviceProfile] | None:
    """Return the profile for ``device_type`` or None when unsupported."""

    if is_ir:
        return _IR_FACTORIES.get(device_type)
    return _DEVICE_FACTORIES.get(device_type)


__all__ = [
    "DEVICE_PROFILES",
    "DeviceAdapter",
    "DeviceProfile",
    "DeviceServices",
    "resolve_profile",
]
