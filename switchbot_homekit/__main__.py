"""Command line entry point running the SwitchBot HomeKit bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .config import PlatformConfig, load_platform_config
from .errors import ConfigurationError
from .homekit import HomeKitBridge
from .platform import SwitchBotPlatform

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the bridge."""

    parser = argparse.ArgumentParser(
        prog="switchbot-homekit",
        description="Expose SwitchBot devices to HomeKit.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.json"),
        help="platform configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="root logging level (default: %(default)s)",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


async def run(config: PlatformConfig) -> None:
    """Run the bridge until SIGINT or SIGTERM."""

    loop = asyncio.get_running_loop()
    bridge = HomeKitBridge(config.bridge, loop=loop)
    platform = SwitchBotPlatform(config, bridge=bridge, loop=loop)
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await platform.async_setup()
    await platform.async_start()
    try:
        await stop.wait()
    finally:
        _LOGGER.info("Shutting down")
        await platform.async_stop()


def main(argv: Sequence[str] | None = None) -> int:
    """Parse ``argv``, load the configuration and run the bridge."""

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        config = load_platform_config(args.config)
    except FileNotFoundError:
        _LOGGER.error("Configuration file %s not found", args.config)
        return 1
    except ConfigurationError as err:
        _LOGGER.error("Invalid configuration: %s", err)
        return 1
    asyncio.run(run(config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
