"""HAP-python binding for the cached SwitchBot accessories."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Iterable, Mapping
from functools import partial
from typing import Any

from pyhap import const as hap_const
from pyhap.accessory import Accessory, Bridge
from pyhap.accessory_driver import AccessoryDriver
from pyhap.characteristic import Characteristic as HAPCharacteristic

from .config import BridgeOptions
from .const import MANUFACTURER
from .device_types import DeviceAdapter
from .state import CachedCharacteristic

_LOGGER = logging.getLogger(__name__)

# AID 1 is the bridge; HomeKit rejects accessories with AID 7.
_FIRST_AID = 2
_RESERVED_AIDS = frozenset({7})

_CATEGORIES: Mapping[str, int] = {
    "Switch": hap_const.CATEGORY_SWITCH,
    "Outlet": hap_const.CATEGORY_OUTLET,
    "Fan": hap_const.CATEGORY_FAN,
    "Fanv2": hap_const.CATEGORY_FAN,
    "GarageDoorOpener": hap_const.CATEGORY_GARAGE_DOOR_OPENER,
    "Door": hap_const.CATEGORY_DOOR,
    "Window": hap_const.CATEGORY_WINDOW,
    "WindowCovering": hap_const.CATEGORY_WINDOW_COVERING,
    "LockMechanism": hap_const.CATEGORY_DOOR_LOCK,
    "Faucet": hap_const.CATEGORY_FAUCET,
    "StatefulProgrammableSwitch": hap_const.CATEGORY_PROGRAMMABLE_SWITCH,
    "Lightbulb": hap_const.CATEGORY_LIGHTBULB,
    "HumidifierDehumidifier": hap_const.CATEGORY_HUMIDIFIER,
    "AirPurifier": hap_const.CATEGORY_AIR_PURIFIER,
    "HeaterCooler": hap_const.CATEGORY_AIR_CONDITIONER,
    "Television": hap_const.CATEGORY_TELEVISION,
    "Valve": hap_const.CATEGORY_SPRINKLER,
}


def _split_props(props: Mapping[str, Any]) -> tuple[dict[str, Any] | None, Any]:
    properties = {name: value for name, value in props.items() if name != "ValidValues"}
    return properties or None, props.get("ValidValues")


class HomeKitAccessory:
    """Mirror one adapter's services onto a HAP-python accessory.

    HomeKit reads are answered from the adapter cache, so a characteristic
    flagged with an error makes HAP report a communication failure. Writes
    go to the cached characteristic's set handler, and cache updates are
    forwarded to HomeKit as notifications.
    """

    def __init__(
        self, driver: Any, adapter: DeviceAdapter, *, aid: int | None = None
    ) -> None:
        """Build the accessory from the services attached to ``adapter``."""

        self.adapter = adapter
        services = adapter.accessory
        self.accessory = Accessory(driver, services.display_name, aid=aid)
        self.accessory.category = next(
            (_CATEGORIES[name] for name in services.names if name in _CATEGORIES),
            hap_const.CATEGORY_SENSOR,
        )
        self.accessory.set_info_service(
            firmware_revision=adapter.firmware,
            manufacturer=MANUFACTURER,
            model=adapter.config.device_type,
            serial_number=adapter.config.device_id,
        )
        self._unsubscribe: list[Any] = []
        for name in services.names:
            service = services.get(name)
            assert service is not None
            try:
                hap_service = driver.loader.get_service(name)
            except KeyError:
                _LOGGER.warning(
                    "%s: HomeKit has no %s service, skipping it",
                    services.display_name,
                    name,
                )
                continue
            present = {char.display_name for char in hap_service.characteristics}
            bound = []
            for characteristic in service.characteristics.values():
                if characteristic.name not in present:
                    try:
                        hap_service.add_characteristic(
                            driver.loader.get_char(characteristic.name)
                        )
                    except KeyError:
                        _LOGGER.warning(
                            "%s: HomeKit has no %s characteristic, skipping it",
                            services.display_name,
                            characteristic.name,
                        )
                        continue
                bound.append(characteristic)
            # Characteristics get their iids when the service is attached.
            self.accessory.add_service(hap_service)
            for characteristic in bound:
                self._bind(hap_service, characteristic)

    def _bind(
        self, hap_service: Any, characteristic: CachedCharacteristic[Any]
    ) -> None:
        properties, valid_values = _split_props(characteristic.props)
        setter = characteristic.handle_set if characteristic.writable else None
        hap_char = hap_service.configure_char(
            characteristic.name,
            properties=properties,
            valid_values=valid_values,
            value=characteristic.value,
            setter_callback=setter,
            getter_callback=partial(self.adapter.read, characteristic.key),
        )
        self._unsubscribe.append(
            characteristic.add_listener(partial(self._forward, hap_char))
        )

    @staticmethod
    def _forward(
        hap_char: HAPCharacteristic, characteristic: CachedCharacteristic[Any]
    ) -> None:
        if characteristic.error is not None:
            return
        try:
            hap_char.set_value(characteristic.value)
        except ValueError as err:
            _LOGGER.warning(
                "Rejected %s value %r: %s",
                characteristic.key,
                characteristic.value,
                err,
            )

    def detach(self) -> None:
        """Stop forwarding cache updates to HomeKit."""

        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()


def allocate_aid(used: set[int]) -> int:
    """Return the lowest free accessory id."""

    return next(
        aid
        for aid in itertools.count(_FIRST_AID)
        if aid not in used and aid not in _RESERVED_AIDS
    )


class HomeKitBridge:
    """Own the HAP accessory driver and the bridge accessory."""

    def __init__(
        self,
        options: BridgeOptions,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        driver: Any | None = None,
    ) -> None:
        """Create the driver and bridge from ``options``."""

        if driver is None:
            kwargs: dict[str, Any] = {
                "port": options.port,
                "persist_file": options.persist_file,
                "loop": loop,
            }
            if options.pincode:
                kwargs["pincode"] = options.pincode.encode("utf-8")
            if options.address:
                kwargs["address"] = options.address
            driver = AccessoryDriver(**kwargs)
        self.driver = driver
        self.bridge = Bridge(driver, options.name)
        self.accessories: dict[str, HomeKitAccessory] = {}
        self._reserved: set[int] = set()

    def reserve(self, aids: Iterable[int]) -> None:
        """Keep ``aids`` persisted by other accessories out of new allocations."""

        self._reserved.update(aid for aid in aids if isinstance(aid, int))

    def add(self, adapter: DeviceAdapter) -> HomeKitAccessory:
        """Publish ``adapter`` on the bridge, keeping its accessory id stable."""

        aid = adapter.context.get("aid")
        used = {accessory.accessory.aid for accessory in self.accessories.values()}
        if not isinstance(aid, int) or aid in used or aid in _RESERVED_AIDS:
            aid = allocate_aid(used | self._reserved)
            adapter.context["aid"] = aid
        accessory = HomeKitAccessory(self.driver, adapter, aid=aid)
        self.bridge.add_accessory(accessory.accessory)
        self.accessories[adapter.config.device_id] = accessory
        adapter.log.info("Added to the HomeKit bridge (aid %s)", aid)
        return accessory

    async def async_start(self) -> None:
        """Publish the bridge and start serving HomeKit."""

        self.driver.add_accessory(self.bridge)
        await self.driver.async_start()
        _LOGGER.info(
            "HomeKit bridge %s started with %d accessories",
            self.bridge.display_name,
            len(self.accessories),
        )

    async def async_stop(self) -> None:
        """Stop the HAP server."""

        for accessory in self.accessories.values():
            accessory.detach()
        await self.driver.async_stop()
