"""Translate vendor status codes into log records and offline signals."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType

from .const import BUG_REPORT_URL, FEATURE_REQUEST_URL, NO_HUB_ID
from .device_logger import DeviceLogger

SUCCESS_CODES = frozenset({100, 200})
OFFLINE_CODES = frozenset({161, 171})


@dataclass(frozen=True)
class StatusCodeInfo:
    """Severity and human readable reason for one status code."""

    code: int
    level: int
    message: str

    @property
    def is_success(self) -> bool:
        """Return True for the success codes."""

        return self.code in SUCCESS_CODES

    @property
    def is_offline(self) -> bool:
        """Return True when the code reports the device or hub offline."""

        return self.code in OFFLINE_CODES


_TABLE = MappingProxyType(
    {
        100: (logging.DEBUG, "Command successfully sent."),
        200: (logging.DEBUG, "Request successful."),
        151: (
            logging.ERROR,
            "Command not supported by this device type, "
            f"Submit Feature Request Here: {FEATURE_REQUEST_URL}",
        ),
        152: (logging.ERROR, "Device not found."),
        160: (
            logging.ERROR,
            f"Command is not supported, Submit Bugs Here: {BUG_REPORT_URL}",
        ),
        161: (logging.ERROR, "Device is offline."),
        171: (logging.ERROR, "Hub Device is offline."),
        190: (
            logging.ERROR,
            "Device internal error due to device states not synchronized with "
            "server, Or command format is invalid.",
        ),
        400: (logging.ERROR, "Bad Request, an invalid payload request."),
        401: (logging.ERROR, "Unauthorized, Authorization for the API is required."),
        403: (
            logging.ERROR,
            "Forbidden, The request is understood, but it has been refused.",
        ),
        404: (logging.ERROR, "Not Found, The requested resource doesn't exist."),
        406: (
            logging.ERROR,
            "Not Acceptable, The MIME type has been requested, "
            "but it was not supported.",
        ),
        415: (
            logging.ERROR,
            "Unsupported Media Type, The server does not support "
            "the requested content type.",
        ),
        422: (
            logging.ERROR,
            "Unprocessable Entity, The request is syntactically correct, "
            "but it cannot be processed.",
        ),
        429: (logging.ERROR, "Too Many Requests, The API rate limit was exceeded."),
        500: (
            logging.ERROR,
            "Internal Server Error, An unexpected condition occurred on the server.",
        ),
    }
)


def resolve_status_code(
    code: int, *, device_id: str | None = None, hub_device_id: str | None = None
) -> int:
    """Remap a hub-offline code to device-offline for hubless devices."""

    if code == 171 and hub_device_id in (device_id, NO_HUB_ID):
        return 161
    return code


def describe_status_code(code: int) -> StatusCodeInfo:
    """Return the table entry for ``code``."""

    level, message = _TABLE.get(
        code,
        (
            logging.INFO,
            f"Unknown statusCode: {code}, Submit Bugs Here: {BUG_REPORT_URL}",
        ),
    )
    return StatusCodeInfo(code=code, level=level, message=message)


def log_status_code(log: DeviceLogger, info: StatusCodeInfo) -> None:
    """Emit ``info`` through the device logger at its mapped severity."""

    if info.level == logging.DEBUG:
        log.debug("statusCode: %s %s", info.code, info.message)
    elif info.level == logging.ERROR:
        log.error("statusCode: %s %s", info.code, info.message)
    else:
        log.info(info.message)
