"""Generic accessory adapter driven by a device profile."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Mapping
from functools import partial
from typing import Any

import httpx

from ..config import DeviceConfig
from ..const import PRESS_REVERT_DELAY
from ..device_logger import DeviceLogger
from ..errors import BLEError, CloudAPIError, ConfigurationError, SwitchBotError
from ..push import PushPipeline
from ..state import AccessoryContext, ServiceSet
from ..status_codes import (
    StatusCodeInfo,
    describe_status_code,
    log_status_code,
    resolve_status_code,
)
from ..transport import Transport, cloud_fallback_allowed, retry_ble, select_transport
from .base import (
    Command,
    DeviceProfile,
    DeviceServices,
    PushOutcome,
    Updates,
    normalize_firmware,
)


class DeviceAdapter:
    """Keep one accessory's characteristics in sync with a SwitchBot device.

    The adapter owns the characteristic cache for its accessory. HomeKit
    writes update the cache optimistically and raise the push signal; the
    push pipeline delivers them over BLE or the cloud API once the push
    rate elapses. Periodic refreshes poll the device unless a push is in
    flight, and a reconcile refresh follows every push.
    """

    def __init__(
        self,
        config: DeviceConfig,
        profile_cls: type[DeviceProfile],
        accessory: ServiceSet,
        context: AccessoryContext,
        services: DeviceServices,
    ) -> None:
        """Attach the profile's services to ``accessory`` and seed the cache."""

        self.config = config
        self.accessory = accessory
        self.context = context
        self.services = services
        self.log = DeviceLogger(
            services.logger, config.device_type, config.display_name, config.logging
        )
        self.profile = profile_cls(config, self.log)
        self.pipeline = PushPipeline(
            self.async_push_changes, delay=config.push_rate, loop=services.loop
        )
        self._pending: Updates = {}
        self._refresh_handle: asyncio.TimerHandle | None = None
        self._reconcile_handle: asyncio.TimerHandle | None = None
        self._hold_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

        self._set_meta("deviceId", config.device_id)
        self._set_meta("deviceType", config.device_type)
        if config.connection_type is not None:
            self._set_meta("connectionType", config.connection_type.value)
        if config.firmware:
            self._set_meta("firmware", normalize_firmware(config.firmware))
        self.apply_services()
        self._restore_values()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self.services.loop is None:
            self.services.loop = asyncio.get_running_loop()
        return self.services.loop

    def _set_meta(self, name: str, value: Any) -> None:
        if self.context.get(name) != value:
            self.context[name] = value

    @property
    def firmware(self) -> str:
        """Return the normalised firmware revision."""

        return normalize_firmware(self.config.firmware or self.context.get("firmware"))

    @property
    def transport(self) -> Transport:
        """Return the transport used for the next refresh or push."""

        transport = select_transport(
            self.config, has_credentials=self.services.has_credentials
        )
        if transport is Transport.BLE and (
            not self.profile.supports_ble or self.services.ble is None
        ):
            if cloud_fallback_allowed(
                self.config, has_credentials=self.services.has_credentials
            ):
                return Transport.CLOUD
            return Transport.OFFLINE
        return transport

    @property
    def values(self) -> dict[str, Any]:
        """Return the cached characteristic values keyed ``Service.Name``."""

        return {char.key: char.value for char in self.accessory.characteristics()}

    def apply_services(self) -> None:
        """Attach the services the profile asks for and drop the others."""

        specs = self.profile.services()
        wanted = [spec.name for spec in specs]
        for name in self.accessory.names:
            if name not in wanted:
                self.accessory.remove(name)
                self.log.debug("Removing %s service", name)
        for spec in specs:
            service = self.accessory.add(spec.name)
            for char_spec in spec.characteristics:
                characteristic = service.add_characteristic(
                    char_spec.name,
                    char_spec.default,
                    writable=char_spec.writable,
                    props=char_spec.props,
                )
                if char_spec.writable and characteristic.set_handler is None:
                    characteristic.set_handler = partial(
                        self._handle_set, characteristic.key
                    )
        self._set_meta("services", wanted)

    def _restore_values(self) -> None:
        for name, value in self.context.values_map.items():
            characteristic = self.accessory.characteristic(name)
            if characteristic is not None:
                characteristic.update(value)

    def read(self, name: str) -> Any:
        """Answer a HomeKit read from the cache, raising while errored."""

        characteristic = self.accessory.characteristic(name)
        if characteristic is None:
            raise KeyError(name)
        if characteristic.error is not None:
            raise characteristic.error
        return characteristic.value

    def _handle_set(self, name: str, value: Any) -> None:
        self.log.debug("Set %s: %s", name, value)
        characteristic = self.accessory.characteristic(name)
        if characteristic is not None:
            characteristic.update(value)
        self._pending[name] = value
        outcome = self.profile.on_set(name, value, self.values)
        self.apply_updates(outcome.updates, persist=False)
        if outcome.hold is not None:
            self._start_hold(outcome.hold)
        self.pipeline.signal()

    def apply_updates(
        self, updates: Mapping[str, Any], *, persist: bool = True, force: bool = False
    ) -> None:
        """Write ``updates`` into the cache and the accessory context."""

        for name, value in updates.items():
            characteristic = self.accessory.characteristic(name)
            if characteristic is None:
                continue
            if characteristic.update(value, force=force):
                self.log.debug("%s: %s", name, value)
            if persist:
                self.context.set_value(name, value)

    def api_error(self, err: Exception, *, action: str = "refresh status") -> None:
        """Log a transport failure and flag every characteristic as unavailable."""

        self.log.error(
            "failed to %s with %s connection, error: %s",
            action,
            self.transport.value,
            err,
        )
        for characteristic in self.accessory.characteristics():
            characteristic.mark_error(err)

    def _offline(self) -> None:
        if self.config.offline:
            self.log.warning("Device is offline, applying the default state")
            self.apply_updates(self.profile.offline_state(), force=True)
        else:
            connection = self.config.connection_type
            self.log.debug_warning(
                "Connection type %s is not usable, skipping update",
                connection.value if connection else None,
            )

    def _cloud_disabled(self) -> None:
        self.log.error(
            "Cloud service is disabled for this device, enable it in the SwitchBot "
            "app or use a BLE connection"
        )

    def _status(self, code: int) -> StatusCodeInfo:
        info = describe_status_code(
            resolve_status_code(
                code,
                device_id=self.config.device_id,
                hub_device_id=self.config.hub_device_id,
            )
        )
        log_status_code(self.log, info)
        return info

    def _status_failed(self, info: StatusCodeInfo, *, action: str) -> None:
        if info.is_offline:
            if self.config.offline:
                self._offline()
            return
        self.api_error(CloudAPIError(info.code, info.message), action=action)

    def _handle_failure(self, err: Exception, *, action: str) -> None:
        if isinstance(err, CloudAPIError) and err.status_code is not None:
            self._status_failed(self._status(err.status_code), action=action)
            return
        self.api_error(err, action=action)

    async def async_refresh(self) -> None:
        """Poll the device unless a push is pending or running."""

        if not self.profile.polls:
            return
        if self.pipeline.busy:
            self.log.debug("Update in progress, skipping refresh")
            return
        transport = self.transport
        if transport is Transport.CLOUD_DISABLED:
            self._cloud_disabled()
            return
        if transport is Transport.OFFLINE:
            self._offline()
            return
        try:
            if transport is Transport.BLE:
                await self._async_refresh_ble()
            else:
                await self._async_refresh_cloud()
        except (SwitchBotError, httpx.HTTPError) as err:
            self._handle_failure(err, action="refresh status")

    async def _async_refresh_ble(self) -> None:
        ble = self.services.ble
        assert ble is not None
        address = self.config.ble_address
        try:
            data = await ble.async_scan(address, self.config.scan_duration)
            if data is None:
                raise BLEError(f"No advertisement received from {address}")
        except BLEError as err:
            if not cloud_fallback_allowed(
                self.config, has_credentials=self.services.has_credentials
            ):
                raise
            self.log.warning("BLE refresh failed (%s), using OpenAPI", err)
            await self._async_refresh_cloud()
            return
        self.log.debug("BLE service data: %s", data)
        try:
            updates = self.profile.parse_ble(data, self.values)
        except (KeyError, TypeError, ValueError) as err:
            self.log.error(
                "failed to parse BLE service data: %s, error: %s", data, err
            )
            return
        self.apply_updates(updates)

    async def _async_refresh_cloud(self) -> None:
        cloud = self.services.cloud
        if cloud is None:
            raise ConfigurationError("Cloud API credentials are not configured")
        response = await cloud.async_retry_request(
            self.config.device_id,
            max_retries=self.config.max_retries,
            delay_between_retries=self.config.delay_between_retries,
        )
        info = self._status(response.status_code)
        if not info.is_success:
            self._status_failed(info, action="refresh status")
            return
        body = response.body
        self.log.debug("OpenAPI status: %s", body)
        if body.get("version"):
            self._set_meta("firmware", normalize_firmware(body["version"]))
        try:
            updates = self.profile.parse_cloud(body, self.values)
        except (KeyError, TypeError, ValueError) as err:
            self.log.error(
                "failed to parse OpenAPI status: %s, error: %s", dict(body), err
            )
            return
        self.apply_updates(updates)

    def handle_webhook(self, fields: Mapping[str, Any]) -> None:
        """Apply status fields pushed through the webhook."""

        self.log.debug("Webhook context: %s", dict(fields))
        try:
            updates = self.profile.parse_webhook(fields, self.values)
        except (KeyError, TypeError, ValueError) as err:
            self.log.error(
                "failed to handle webhook, received: %s, error: %s",
                dict(fields),
                err,
            )
            return
        self.apply_updates(updates)

    async def async_push_changes(self) -> None:
        """Deliver the writes collected since the previous push."""

        pending, self._pending = self._pending, {}
        transport = self.transport
        if transport is Transport.CLOUD_DISABLED:
            self._cloud_disabled()
            return
        if transport is Transport.OFFLINE:
            self._offline()
            return
        try:
            while True:
                outcome = await self._async_push_once(pending, transport)
                if outcome is None or not outcome.repeat:
                    break
        except (SwitchBotError, httpx.HTTPError) as err:
            self.profile.push_failed()
            self._handle_failure(err, action="push changes")
        self._schedule_reconcile()

    async def _async_push_once(
        self, pending: Mapping[str, Any], transport: Transport
    ) -> PushOutcome | None:
        if self.profile.allow_push:
            changes = dict(pending)
        else:
            confirmed = self.context.values_map
            changes = {
                name: value
                for name, value in pending.items()
                if name not in confirmed or confirmed[name] != value
            }
        commands = self.profile.commands(changes, self.values)
        if not commands:
            self.log.debug("No changes to push")
            return None
        for attempt in range(self.profile.push_repeats):
            if attempt:
                await self.services.sleep(self.profile.repeat_interval)
            if not await self._async_send(commands, transport):
                self.profile.push_failed()
                return None
        outcome = self.profile.after_push(changes, self.values)
        self.apply_updates(outcome.updates, force=True)
        if outcome.revert:
            await self.services.sleep(PRESS_REVERT_DELAY)
            self.apply_updates(outcome.revert)
        return outcome

    async def _async_send(self, commands: list[Command], transport: Transport) -> bool:
        fallback = cloud_fallback_allowed(
            self.config, has_credentials=self.services.has_credentials
        )
        ble = self.services.ble
        if (
            transport is Transport.BLE
            and ble is not None
            and all(command.ble_payload is not None for command in commands)
        ):
            try:
                for command in commands:
                    assert command.ble_payload is not None
                    await retry_ble(
                        partial(
                            ble.async_send_command,
                            self.config.ble_address,
                            command.ble_payload,
                        ),
                        max_attempts=self.config.max_retry,
                        delay=self.services.ble_retry_delay,
                        sleep=self.services.sleep,
                        log=self.log,
                    )
                    self.log.info("BLE %s sent", command.command)
                return True
            except BLEError as err:
                if not fallback:
                    raise
                self.log.warning("BLE push failed (%s), using OpenAPI", err)
        elif transport is Transport.BLE and not fallback:
            raise BLEError("Command is not available over BLE")
        return await self._async_send_cloud(commands)

    async def _async_send_cloud(self, commands: list[Command]) -> bool:
        cloud = self.services.cloud
        if cloud is None:
            raise ConfigurationError("Cloud API credentials are not configured")
        for command in commands:
            self.log.debug("Sending request to SwitchBot API, body: %s", command.body())
            response = await cloud.async_send_command(
                self.config.device_id,
                command.command,
                command.parameter,
                command.command_type,
            )
            info = self._status(response.status_code)
            if not info.is_success:
                self._status_failed(info, action="push changes")
                return False
            self.log.info("Sent %s", command.command)
        return True

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = self._get_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _start_hold(self, seconds: float) -> None:
        if self._hold_handle is not None:
            self._hold_handle.cancel()
        self._hold_handle = self._get_loop().call_later(seconds, self._hold_expired)

    def _hold_expired(self) -> None:
        self._hold_handle = None
        self.profile.on_hold_expired()
        self._spawn(self.async_refresh())

    def _schedule_reconcile(self) -> None:
        if self._reconcile_handle is not None:
            self._reconcile_handle.cancel()
        self._reconcile_handle = self._get_loop().call_later(
            self.services.reconcile_delay, self._reconcile
        )

    def _reconcile(self) -> None:
        self._reconcile_handle = None
        self._spawn(self.async_refresh())

    def start(self) -> None:
        """Run a first refresh and schedule the periodic ones."""

        self._spawn(self.async_refresh())
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        self._refresh_handle = self._get_loop().call_later(
            self.config.refresh_rate, self._periodic_refresh
        )

    def _periodic_refresh(self) -> None:
        self._refresh_handle = None
        if self.pipeline.busy:
            self.log.debug("Update in progress, skipping periodic refresh")
        else:
            self._spawn(self.async_refresh())
        self._schedule_refresh()

    def stop(self) -> None:
        """Cancel timers and outstanding work."""

        for handle in (self._refresh_handle, self._reconcile_handle, self._hold_handle):
            if handle is not None:
                handle.cancel()
        self._refresh_handle = self._reconcile_handle = self._hold_handle = None
        self.pipeline.cancel()
        for task in list(self._tasks):
            task.cancel()
