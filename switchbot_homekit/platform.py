"""Discovery, wiring and lifecycle for the SwitchBot bridge."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx

from .ble_client import SwitchBotBLEClient
from .cloud_client import SwitchBotCloudClient
from .config import (
    DeviceConfig,
    PlatformConfig,
    merge_device_lists,
    normalize_device_id,
)
from .const import ConnectionType
from .device_types import DeviceAdapter, DeviceServices, resolve_profile
from .errors import CloudAPIError, ConfigurationError
from .homekit import HomeKitBridge
from .state import ServiceSet
from .storage import ContextStore
from .webhook import WebhookServer

_LOGGER = logging.getLogger(__name__)

_DEVICE_LOGGER = "switchbot_homekit.device"


def should_register_curtain(payload: Mapping[str, Any], config: DeviceConfig) -> bool:
    """Return True when a curtain should get its own accessory.

    Grouped curtains are driven through their master, so secondaries are
    only published when grouping is disabled for them or they are BLE only.
    """

    if payload.get("master"):
        return True
    if config.section("curtain").get("disable_group"):
        return True
    return config.connection_type is ConnectionType.BLE


class SwitchBotPlatform:
    """Own the device adapters and the services they share."""

    def __init__(
        self,
        config: PlatformConfig,
        *,
        cloud: SwitchBotCloudClient | None = None,
        ble: SwitchBotBLEClient | None = None,
        store: ContextStore | None = None,
        bridge: HomeKitBridge | None = None,
        webhook: WebhookServer | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialise the platform, building any collaborator not supplied."""

        self.config = config
        credentials = config.credentials
        if cloud is None and credentials.has_token:
            cloud = SwitchBotCloudClient(credentials.token, credentials.secret)
        self.cloud = cloud
        self.ble = ble if ble is not None else SwitchBotBLEClient()
        self.store = store or ContextStore(Path(config.context_file), loop=loop)
        self.bridge = bridge
        if webhook is None and config.options.webhook_url:
            webhook = WebhookServer(config.options.webhook_url)
        self.webhook = webhook
        self._loop = loop
        self._logger = logger or logging.getLogger(_DEVICE_LOGGER)
        self.adapters: dict[str, DeviceAdapter] = {}

    def _services(self) -> DeviceServices:
        return DeviceServices(
            cloud=self.cloud, ble=self.ble, logger=self._logger, loop=self._loop
        )

    async def async_setup(self) -> None:
        """Load stored contexts and register every discovered device."""

        await self.store.async_load()
        if self.bridge is not None:
            self.bridge.reserve(
                self.store.context_for(device_id).get("aid")
                for device_id in self.store.device_ids
            )
        devices, irdevices = await self.async_discover()
        for payload in devices:
            self.register_device(payload)
        for payload in irdevices:
            self.register_device(payload, is_ir=True)
        self._remove_stale_contexts()
        _LOGGER.info("Registered %d SwitchBot accessories", len(self.adapters))

    async def async_discover(
        self,
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Return the device and infrared remote payloads to register."""

        options = self.config.options
        if self.cloud is None or not self.cloud.has_credentials:
            _LOGGER.debug("No cloud credentials, using configured devices only")
            if options.irdevices:
                _LOGGER.warning(
                    "Infrared remotes need cloud credentials, skipping %d remotes",
                    len(options.irdevices),
                )
            return [dict(device) for device in options.devices], []

        try:
            device_list = await self.cloud.async_get_devices()
        except (CloudAPIError, httpx.HTTPError) as err:
            _LOGGER.error("Failed to discover devices: %s", err)
            return [
                dict(device)
                for device in options.devices
                if device.get("configDeviceType")
            ], []

        discovered = [
            entry.model_dump(by_alias=True, exclude_none=True)
            for entry in device_list.device_list
        ]
        discovered_ir = [
            entry.model_dump(by_alias=True, exclude_none=True)
            for entry in device_list.infrared_remote_list
        ]
        _LOGGER.info(
            "Discovered %d devices and %d infrared remotes",
            len(discovered),
            len(discovered_ir),
        )
        known = {normalize_device_id(str(item["deviceId"])) for item in discovered}
        # BLE-only devices never appear in the cloud list.
        extra = [
            dict(device)
            for device in options.devices
            if device.get("configDeviceType")
            and normalize_device_id(str(device.get("deviceId", ""))) not in known
        ]
        return (
            merge_device_lists(discovered, options.devices) + extra,
            merge_device_lists(discovered_ir, options.irdevices),
        )

    def register_device(
        self, payload: Mapping[str, Any], *, is_ir: bool = False
    ) -> DeviceAdapter | None:
        """Create and publish the adapter for ``payload`` when it qualifies."""

        try:
            if is_ir:
                config = DeviceConfig.from_ir_dict(payload, self.config)
            else:
                config = DeviceConfig.from_dict(payload, self.config)
        except ConfigurationError as err:
            _LOGGER.error("Invalid device configuration %s: %s", payload, err)
            return None

        if config.hide_device:
            _LOGGER.debug("%s is hidden, not adding it to HomeKit", config.display_name)
            return None
        if config.connection_type is None:
            _LOGGER.debug(
                "%s has no connectionType, not adding it to HomeKit",
                config.display_name,
            )
            return None
        if (
            not is_ir
            and config.device_type.startswith("Curtain")
            and not should_register_curtain(payload, config)
        ):
            _LOGGER.debug(
                "%s is a grouped secondary curtain, hidden behind its master",
                config.display_name,
            )
            return None

        profile_cls = resolve_profile(config.device_type, is_ir=is_ir)
        if profile_cls is None:
            _LOGGER.warning(
                "%s: device type %s is not supported",
                config.display_name,
                config.device_type,
            )
            return None

        context = self.store.context_for(config.device_id)
        accessory = ServiceSet(config.display_name, context.get("services", ()))
        try:
            adapter = DeviceAdapter(
                config, profile_cls, accessory, context, self._services()
            )
        except ConfigurationError as err:
            _LOGGER.error("%s: %s", config.display_name, err)
            return None

        if config.webhook and self.webhook is not None:
            self.webhook.register(config.device_id, adapter.handle_webhook)
        self.adapters[config.device_id] = adapter
        if self.bridge is not None:
            self.bridge.add(adapter)
        return adapter

    def _remove_stale_contexts(self) -> None:
        for device_id in self.store.device_ids:
            if device_id not in self.adapters:
                _LOGGER.info("Removing stored context of %s", device_id)
                self.store.remove(device_id)

    async def _async_setup_webhook(self) -> None:
        assert self.webhook is not None and self.cloud is not None
        url = self.webhook.url
        try:
            await self.cloud.async_setup_webhook(url)
        except CloudAPIError as err:
            _LOGGER.debug("setupWebhook failed (%s), updating existing webhook", err)
            try:
                await self.cloud.async_update_webhook(url, enable=True)
            except (CloudAPIError, httpx.HTTPError) as update_err:
                _LOGGER.error("Failed to register webhook %s: %s", url, update_err)
                return
        except httpx.HTTPError as err:
            _LOGGER.error("Failed to register webhook %s: %s", url, err)
            return
        _LOGGER.info("Registered webhook %s", url)

    async def async_start(self) -> None:
        """Start refreshing devices and serving HomeKit and webhooks."""

        for adapter in self.adapters.values():
            adapter.start()
        if self.webhook is not None and self.webhook.device_ids:
            await self.webhook.async_start()
            if self.cloud is not None and self.cloud.has_credentials:
                await self._async_setup_webhook()
        if self.bridge is not None:
            await self.bridge.async_start()

    async def async_stop(self) -> None:
        """Stop every adapter, persist contexts and release clients."""

        for adapter in self.adapters.values():
            adapter.stop()
        if self.webhook is not None and self.webhook.device_ids:
            if self.cloud is not None and self.cloud.has_credentials:
                try:
                    await self.cloud.async_delete_webhook(self.webhook.url)
                except (CloudAPIError, httpx.HTTPError) as err:
                    _LOGGER.warning("Failed to delete webhook: %s", err)
            await self.webhook.async_stop()
        if self.bridge is not None:
            await self.bridge.async_stop()
        await self.store.async_save()
        if self.cloud is not None:
            await self.cloud.aclose()
