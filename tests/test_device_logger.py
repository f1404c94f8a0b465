"""Tests for the per-device logging levels."""

from __future__ import annotations

import logging

import pytest

from switchbot_homekit.const import LoggingLevel
from switchbot_homekit.device_logger import DeviceLogger


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (LoggingLevel.STANDARD, []),
        (LoggingLevel.DEBUG, [(logging.INFO, "Bot: Desk [DEBUG] moved 3")]),
        (LoggingLevel.DEBUG_MODE, [(logging.DEBUG, "Bot: Desk moved 3")]),
        (LoggingLevel.NONE, []),
    ],
)
def test_debug_follows_device_level(caplog, level, expected) -> None:
    """Debug output depends on the configured device logging level."""

    logger = logging.getLogger("switchbot_homekit.tests.device_logger")
    log = DeviceLogger(logger, "Bot", "Desk", level)

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        log.debug("moved %s", 3)

    assert [(r.levelno, r.getMessage()) for r in caplog.records] == expected


def test_none_level_silences_errors(caplog) -> None:
    """The ``none`` level drops even error records."""

    logger = logging.getLogger("switchbot_homekit.tests.device_logger")
    log = DeviceLogger(logger, "Bot", "Desk", LoggingLevel.NONE)

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        log.error("failed")
        log.debug_warning("retrying")

    assert caplog.records == []
