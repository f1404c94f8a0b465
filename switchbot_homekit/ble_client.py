"""Bluetooth Low Energy scanning and command helpers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from .advertisement import ServiceData, parse_service_data
from .const import (
    BLE_REQUEST_CHAR_UUID,
    BLE_RESPONSE_CHAR_UUID,
    BLE_RESPONSE_TIMEOUT,
    BLE_SERVICE_DATA_UUIDS,
)
from .errors import BLEError

_LOGGER = logging.getLogger(__name__)

# Woan Technology, then the Nordic id used by older firmware.
_MANUFACTURER_IDS = (2409, 0x59)

_RESPONSE_OK = 0x01

BOT_PRESS = bytes([0x57, 0x01, 0x00])
BOT_TURN_ON = bytes([0x57, 0x01, 0x01])
BOT_TURN_OFF = bytes([0x57, 0x01, 0x02])
CURTAIN_PAUSE = bytes([0x57, 0x0F, 0x45, 0x01, 0x00, 0x01])
PLUG_TURN_ON = bytes.fromhex("570f50010180")
PLUG_TURN_OFF = bytes.fromhex("570f50010100")
BULB_TURN_ON = bytes.fromhex("570f470101")
BULB_TURN_OFF = bytes.fromhex("570f470102")
STRIP_TURN_ON = bytes.fromhex("570f490101")
STRIP_TURN_OFF = bytes.fromhex("570f490102")


def curtain_run_to_position(percent: int, mode: int = 0xFF) -> bytes:
    """Return the command moving a curtain to ``percent`` (0 open, 100 closed)."""

    return bytes([0x57, 0x0F, 0x45, 0x01, 0x05, mode & 0xFF, max(0, min(percent, 100))])


def _service_bytes(advertisement: AdvertisementData) -> bytes | None:
    for uuid in BLE_SERVICE_DATA_UUIDS:
        data = advertisement.service_data.get(uuid)
        if data:
            return bytes(data)
    return None


def _manufacturer_bytes(advertisement: AdvertisementData) -> bytes | None:
    for manufacturer_id in _MANUFACTURER_IDS:
        data = advertisement.manufacturer_data.get(manufacturer_id)
        if data:
            return bytes(data)
    return None


def decode_advertisement(advertisement: AdvertisementData) -> ServiceData | None:
    """Decode a bleak advertisement into SwitchBot service data."""

    service = _service_bytes(advertisement)
    if service is None:
        return None
    return parse_service_data(service, _manufacturer_bytes(advertisement))


class SwitchBotBLEClient:
    """Scan for advertisements and write commands to SwitchBot peripherals."""

    def __init__(self, *, adapter: str | None = None) -> None:
        """Initialise the client, optionally bound to a Bluetooth adapter."""

        self._scanner_kwargs: dict[str, Any] = {}
        if adapter is not None:
            self._scanner_kwargs["adapter"] = adapter

    async def async_scan(self, address: str, duration: float) -> ServiceData | None:
        """Return the first advertisement seen for ``address`` within ``duration``."""

        target = address.lower()
        found: list[ServiceData] = []
        seen = asyncio.Event()

        def _detected(device: BLEDevice, advertisement: AdvertisementData) -> None:
            if seen.is_set() or device.address.lower() != target:
                return
            parsed = decode_advertisement(advertisement)
            if parsed is None:
                return
            found.append(parsed)
            seen.set()

        try:
            async with BleakScanner(
                detection_callback=_detected, **self._scanner_kwargs
            ):
                try:
                    await asyncio.wait_for(seen.wait(), timeout=duration)
                except asyncio.TimeoutError:
                    _LOGGER.debug(
                        "No advertisement from %s within %ss", target, duration
                    )
        except BleakError as err:
            raise BLEError(f"Scan for {target} failed: {err}") from err
        return found[0] if found else None

    async def async_send_command(self, address: str, payload: bytes) -> bytes:
        """Write ``payload`` to ``address`` and return the device response."""

        try:
            device = await BleakScanner.find_device_by_address(
                address, timeout=BLE_RESPONSE_TIMEOUT, **self._scanner_kwargs
            )
        except BleakError as err:
            raise BLEError(f"Discovery of {address} failed: {err}") from err
        if device is None:
            raise BLEError(f"Device {address} not found")

        loop = asyncio.get_running_loop()
        response: asyncio.Future[bytes] = loop.create_future()

        def _notified(_sender: Any, data: bytearray) -> None:
            if not response.done():
                response.set_result(bytes(data))

        try:
            async with BleakClient(device) as client:
                await client.start_notify(BLE_RESPONSE_CHAR_UUID, _notified)
                await client.write_gatt_char(
                    BLE_REQUEST_CHAR_UUID, payload, response=True
                )
                result = await asyncio.wait_for(response, timeout=BLE_RESPONSE_TIMEOUT)
        except asyncio.TimeoutError as err:
            raise BLEError(f"No response from {address}") from err
        except BleakError as err:
            raise BLEError(f"Command to {address} failed: {err}") from err

        if not result or result[0] != _RESPONSE_OK:
            raise BLEError(f"Device {address} rejected command: {result.hex()}")
        _LOGGER.debug(
            "Command %s to %s answered %s", payload.hex(), address, result.hex()
        )
        return result
