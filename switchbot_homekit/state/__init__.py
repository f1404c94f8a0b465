"""Characteristic cache and accessory context helpers."""

from .characteristic import CachedCharacteristic, Service, ServiceSet, TriState
from .context import AccessoryContext

__all__ = [
    "AccessoryContext",
    "CachedCharacteristic",
    "Service",
    "ServiceSet",
    "TriState",
]
