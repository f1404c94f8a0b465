"""Transport selection and retry helpers shared by every device."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from .config import DeviceConfig
from .device_logger import DeviceLogger
from .errors import BLEError

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Transport(str, Enum):
    """Channel used for one refresh or push."""

    BLE = "BLE"
    CLOUD = "OpenAPI"
    OFFLINE = "offline"
    CLOUD_DISABLED = "cloud_disabled"


def select_transport(config: DeviceConfig, *, has_credentials: bool) -> Transport:
    """Pick the transport for ``config``.

    The cloud-service check runs first so a device flagged as cloud
    disabled never falls through to BLE or the offline default.
    """

    connection = config.connection_type
    if connection is None:
        return Transport.OFFLINE
    if connection.uses_cloud and not config.enable_cloud_service:
        return Transport.CLOUD_DISABLED
    if connection.uses_ble:
        return Transport.BLE
    if connection.uses_cloud and has_credentials:
        return Transport.CLOUD
    return Transport.OFFLINE


def cloud_fallback_allowed(config: DeviceConfig, *, has_credentials: bool) -> bool:
    """Return True when a failed BLE operation may be retried over the cloud."""

    connection = config.connection_type
    return (
        connection is not None
        and connection.uses_ble
        and connection.uses_cloud
        and config.enable_cloud_service
        and has_credentials
    )


async def retry_ble(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    delay: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    log: DeviceLogger | None = None,
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` BLE errors occur."""

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except BLEError as err:
            if attempt >= max_attempts:
                raise
            if log is not None:
                log.debug("BLE attempt %s/%s failed: %s", attempt, max_attempts, err)
            else:
                _LOGGER.debug(
                    "BLE attempt %s/%s failed: %s", attempt, max_attempts, err
                )
            await sleep(delay)
