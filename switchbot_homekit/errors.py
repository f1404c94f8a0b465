"""Exceptions raised by the SwitchBot bridge."""

from __future__ import annotations


class SwitchBotError(Exception):
    """Base class for all bridge errors."""


class ConfigurationError(SwitchBotError):
    """Raised when device or platform configuration cannot be used."""


class TransportError(SwitchBotError):
    """Raised when a transport fails to deliver a request."""


class CloudAPIError(TransportError):
    """Raised when the cloud API reports a non-success status code."""

    def __init__(self, status_code: int | None, message: str | None = None) -> None:
        """Store the vendor status code alongside the message."""

        self.status_code = status_code
        super().__init__(message or f"statusCode: {status_code}")


class BLEError(TransportError):
    """Raised when a BLE scan or command fails."""
