"""Pytest configuration and shared fakes for the SwitchBot bridge tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

import pytest
from pyhap.loader import get_loader

from switchbot_homekit.advertisement import ServiceData
from switchbot_homekit.config import DeviceConfig
from switchbot_homekit.const import ConnectionType
from switchbot_homekit.device_types import DeviceAdapter, DeviceProfile, DeviceServices
from switchbot_homekit.errors import BLEError
from switchbot_homekit.models import CloudResponse
from switchbot_homekit.state import AccessoryContext, ServiceSet


def pytest_configure(config: pytest.Config) -> None:
    """Register markers used throughout the test suite."""

    config.addinivalue_line(
        "markers", "asyncio: mark coroutine tests to execute via asyncio loop"
    )


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute coroutine tests within a dedicated event loop."""

    test_function = pyfuncitem.obj
    if not asyncio.iscoroutinefunction(test_function):
        return None

    funcargs = pyfuncitem.funcargs
    arguments = {name: funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_function(**arguments))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True


def envelope(status_code: int, body: Mapping[str, Any] | None = None) -> CloudResponse:
    """Return a cloud response envelope."""

    return CloudResponse.model_validate(
        {"statusCode": status_code, "message": "", "body": dict(body or {})}
    )


class FakeCloud:
    """Cloud client double recording commands and serving canned statuses."""

    def __init__(
        self,
        *,
        status: CloudResponse | None = None,
        command_status: int = 100,
    ) -> None:
        """Store the canned responses."""

        self.status = status or envelope(100)
        self.command_status = command_status
        self.commands: list[dict[str, Any]] = []
        self.status_requests = 0

    @property
    def has_credentials(self) -> bool:
        """Fake clients always hold credentials."""

        return True

    async def async_retry_request(
        self, device_id: str, *, max_retries: int, delay_between_retries: float
    ) -> CloudResponse:
        """Return the canned status."""

        self.status_requests += 1
        return self.status

    async def async_send_command(
        self,
        device_id: str,
        command: str,
        parameter: Any = "default",
        command_type: str = "command",
    ) -> CloudResponse:
        """Record the command body."""

        self.commands.append(
            {"command": command, "parameter": parameter, "commandType": command_type}
        )
        return envelope(self.command_status)

    @property
    def sent(self) -> list[str]:
        """Return the command names in order."""

        return [body["command"] for body in self.commands]


class FakeBLE:
    """BLE client double failing a configurable number of writes."""

    def __init__(
        self, *, advertisement: ServiceData | None = None, failures: int = 0
    ) -> None:
        """Store the advertisement returned by scans."""

        self.advertisement = advertisement
        self.failures = failures
        self.attempts: list[tuple[str, bytes]] = []

    async def async_scan(self, address: str, duration: float) -> ServiceData | None:
        """Return the canned advertisement."""

        return self.advertisement

    async def async_send_command(self, address: str, payload: bytes) -> bytes:
        """Fail the first ``failures`` writes, then acknowledge."""

        self.attempts.append((address, payload))
        if len(self.attempts) <= self.failures:
            raise BLEError("Device not found")
        return bytes([0x01])


class FakeDriver:
    """HAP accessory driver double recording published values."""

    def __init__(self) -> None:
        """Start with no published values."""

        self.loader = get_loader()
        self.published: list[dict[str, Any]] = []

    def publish(
        self,
        data: dict[str, Any],
        sender_client_addr: Any = None,
        immediate: bool = False,
    ) -> None:
        """Record the notification."""

        self.published.append(data)


class RecordingSleep:
    """Injected sleep that returns immediately and records the delays."""

    def __init__(self) -> None:
        """Start with no recorded delays."""

        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def sleep() -> RecordingSleep:
    """Return a recording sleep."""

    return RecordingSleep()


@pytest.fixture
def make_adapter(sleep: RecordingSleep) -> Callable[..., DeviceAdapter]:
    """Return a factory building adapters around fake transports."""

    def _make(
        profile_cls: type[DeviceProfile],
        *,
        device_type: str,
        connection_type: ConnectionType | None = ConnectionType.OPENAPI,
        sections: Mapping[str, Mapping[str, Any]] | None = None,
        cloud: FakeCloud | None = None,
        ble: FakeBLE | None = None,
        context: AccessoryContext | None = None,
        **config_kwargs: Any,
    ) -> DeviceAdapter:
        config_kwargs.setdefault("push_rate", 0.01)
        config_kwargs.setdefault("device_id", "AABBCCDDEEFF")
        config = DeviceConfig(
            display_name=f"Test {device_type}",
            device_type=device_type,
            connection_type=connection_type,
            sections=dict(sections or {}),
            **config_kwargs,
        )
        context = context if context is not None else AccessoryContext({})
        services = DeviceServices(
            cloud=cloud,  # type: ignore[arg-type]
            ble=ble,  # type: ignore[arg-type]
            sleep=sleep,
            reconcile_delay=60.0,
        )
        accessory = ServiceSet(config.display_name, context.get("services", ()))
        return DeviceAdapter(config, profile_cls, accessory, context, services)

    return _make
