"""Bridge SwitchBot devices into HomeKit."""

from __future__ import annotations

DOMAIN = "switchbot"
__version__ = "0.1.0"

__all__ = [
    "DOMAIN",
    "__version__",
]
