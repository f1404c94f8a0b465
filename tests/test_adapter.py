"""Tests for the generic device adapter."""

from __future__ import annotations

import logging
import math

import pytest

from conftest import FakeBLE, FakeCloud, envelope
from switchbot_homekit.advertisement import ServiceData
from switchbot_homekit.const import (
    BATTERY_LEVEL_LOW,
    BATTERY_LEVEL_NORMAL,
    ConnectionType,
)
from switchbot_homekit.device_types.base import battery_updates, normalize_firmware
from switchbot_homekit.device_types.bot import BotProfile
from switchbot_homekit.device_types.curtain import CurtainProfile
from switchbot_homekit.device_types.humidifier import HumidifierProfile
from switchbot_homekit.device_types.lock import LockProfile
from switchbot_homekit.device_types.plug import PlugProfile
from switchbot_homekit.device_types.sensors import MeterProfile
from switchbot_homekit.errors import BLEError, CloudAPIError, ConfigurationError
from switchbot_homekit.state import AccessoryContext

OUTLET_ON = "Outlet.On"


@pytest.mark.parametrize(
    ("raw", "level", "status"),
    [
        (9, 9, BATTERY_LEVEL_LOW),
        (10, 10, BATTERY_LEVEL_NORMAL),
        (-5, 0, BATTERY_LEVEL_LOW),
        (150, 100, BATTERY_LEVEL_NORMAL),
        ("42", 42, BATTERY_LEVEL_NORMAL),
        (math.nan, 100, BATTERY_LEVEL_NORMAL),
        (None, 100, BATTERY_LEVEL_NORMAL),
    ],
)
def test_battery_updates_threshold(raw, level, status) -> None:
    """Battery readings below ten report low; unparseable ones read full."""

    assert battery_updates(raw) == {
        "BatteryService.BatteryLevel": level,
        "BatteryService.StatusLowBattery": status,
    }


@pytest.mark.parametrize(
    ("version", "expected"),
    [
        ("V4.2", "4.2"),
        ("V6.3-beta", "6.3"),
        ("42", "4.2"),
        (None, "0.0.0"),
        ("", "0.0.0"),
    ],
)
def test_normalize_firmware(version, expected) -> None:
    """Firmware strings are reduced to a dotted revision."""

    assert normalize_firmware(version) == expected


def test_services_follow_bot_presentation(make_adapter) -> None:
    """Switching the Bot type replaces the stale service exactly once."""

    context = AccessoryContext({"services": ["Outlet"]})
    adapter = make_adapter(
        BotProfile,
        device_type="Bot",
        sections={"bot": {"mode": "switch", "deviceType": "switch"}},
        context=context,
    )

    assert adapter.accessory.names == ("Switch",)
    assert context["services"] == ["Switch"]

    adapter.apply_services()

    assert adapter.accessory.names == ("Switch",)
    assert len(adapter.accessory.characteristics()) == 1


def test_ble_bot_gets_battery_service(make_adapter) -> None:
    """Only BLE connected Bots expose a battery."""

    adapter = make_adapter(
        BotProfile,
        device_type="Bot",
        connection_type=ConnectionType.BLE_OPENAPI,
        sections={"bot": {"mode": "switch", "deviceType": "outlet"}},
    )

    assert adapter.accessory.names == ("Outlet", "BatteryService")


def test_invalid_bot_mode_is_rejected(make_adapter) -> None:
    """An unknown Bot mode is a configuration error."""

    with pytest.raises(ConfigurationError):
        make_adapter(
            BotProfile, device_type="Bot", sections={"bot": {"mode": "toggle"}}
        )


def test_restores_persisted_values(make_adapter) -> None:
    """Cached values are seeded from the stored context."""

    context = AccessoryContext({"values": {OUTLET_ON: True}})
    adapter = make_adapter(PlugProfile, device_type="Plug", context=context)

    assert adapter.read(OUTLET_ON) is True


async def test_press_mode_reverts_after_push(make_adapter, sleep) -> None:
    """A press momentarily turns the switch on and then back off."""

    cloud = FakeCloud()
    adapter = make_adapter(
        BotProfile,
        device_type="Bot",
        sections={"bot": {"mode": "press", "deviceType": "switch"}},
        cloud=cloud,
    )

    adapter.accessory.characteristic("Switch.On").handle_set(True)
    assert adapter.values["Switch.On"] is True
    await adapter.pipeline.wait_idle()
    adapter.stop()

    assert cloud.sent == ["press"]
    assert sleep.delays == [0.5]
    assert adapter.values["Switch.On"] is False


async def test_writes_within_push_rate_are_coalesced(make_adapter) -> None:
    """Several writes before the push timer fires produce one command."""

    cloud = FakeCloud()
    adapter = make_adapter(PlugProfile, device_type="Plug", cloud=cloud)
    characteristic = adapter.accessory.characteristic(OUTLET_ON)

    characteristic.handle_set(True)
    characteristic.handle_set(False)
    characteristic.handle_set(True)
    await adapter.pipeline.wait_idle()
    adapter.stop()

    assert cloud.sent == ["turnOn"]
    assert adapter.context.values_map[OUTLET_ON] is True


async def test_confirmed_value_is_not_pushed_again(make_adapter) -> None:
    """Writing the already confirmed state sends nothing."""

    cloud = FakeCloud()
    context = AccessoryContext({"values": {OUTLET_ON: True}})
    adapter = make_adapter(
        PlugProfile, device_type="Plug", cloud=cloud, context=context
    )

    adapter.accessory.characteristic(OUTLET_ON).handle_set(True)
    await adapter.pipeline.wait_idle()
    adapter.stop()

    assert cloud.sent == []


async def test_allow_push_resends_confirmed_state(make_adapter) -> None:
    """``allowPush`` sends the command even when nothing changed."""

    cloud = FakeCloud()
    context = AccessoryContext({"values": {"Switch.On": True}})
    adapter = make_adapter(
        BotProfile,
        device_type="Bot",
        sections={
            "bot": {"mode": "switch", "deviceType": "switch", "allowPush": True}
        },
        cloud=cloud,
        context=context,
    )

    adapter.accessory.characteristic("Switch.On").handle_set(True)
    await adapter.pipeline.wait_idle()
    adapter.stop()

    assert cloud.sent == ["turnOn"]


async def test_double_press_repeats_with_interval(make_adapter, sleep) -> None:
    """``doublePress`` repeats the press after ``pushRatePress`` seconds."""

    cloud = FakeCloud()
    adapter = make_adapter(
        BotProfile,
        device_type="Bot",
        sections={
            "bot": {
                "mode": "press",
                "deviceType": "switch",
                "doublePress": 2,
                "pushRatePress": 3,
            }
        },
        cloud=cloud,
    )

    adapter.accessory.characteristic("Switch.On").handle_set(True)
    await adapter.pipeline.wait_idle()
    adapter.stop()

    assert cloud.sent == ["press", "press"]
    assert sleep.delays == [3.0, 0.5]


async def test_refresh_skipped_while_push_pending(make_adapter) -> None:
    """Polling waits until outstanding writes were delivered."""

    cloud = FakeCloud(status=envelope(100, {"power": "on"}))
    adapter = make_adapter(PlugProfile, device_type="Plug", cloud=cloud)

    adapter.pipeline.signal()
    await adapter.async_refresh()
    adapter.stop()

    assert cloud.status_requests == 0


async def test_cloud_refresh_applies_status(make_adapter) -> None:
    """A successful status body updates and persists the characteristics."""

    cloud = FakeCloud(
        status=envelope(100, {"power": "on", "electricCurrent": 0, "version": "V1.4"})
    )
    adapter = make_adapter(PlugProfile, device_type="Plug Mini (US)", cloud=cloud)

    await adapter.async_refresh()

    assert adapter.values == {"Outlet.On": True, "Outlet.OutletInUse": False}
    assert adapter.context.values_map["Outlet.On"] is True
    assert adapter.firmware == "1.4"


async def test_malformed_cloud_status_is_logged(make_adapter, caplog) -> None:
    """A status body that cannot be parsed keeps the cached values."""

    cloud = FakeCloud(status=envelope(100, {"slidePosition": "n/a"}))
    adapter = make_adapter(CurtainProfile, device_type="Curtain", cloud=cloud)
    before = adapter.values

    with caplog.at_level(logging.ERROR):
        await adapter.async_refresh()

    assert adapter.values == before
    assert "failed to parse OpenAPI status" in caplog.text


async def test_malformed_advertisement_is_logged(make_adapter, caplog) -> None:
    """Service data that cannot be parsed keeps the cached values."""

    ble = FakeBLE(
        advertisement=ServiceData(model="T", model_name="WoSensorTH", celsius="n/a")
    )
    adapter = make_adapter(
        MeterProfile, device_type="Meter", connection_type=ConnectionType.BLE, ble=ble
    )
    before = adapter.values

    with caplog.at_level(logging.ERROR):
        await adapter.async_refresh()

    assert adapter.values == before
    assert "failed to parse BLE service data" in caplog.text


async def test_error_status_flags_characteristics(make_adapter) -> None:
    """A failing status code makes reads raise until the next update."""

    cloud = FakeCloud(status=envelope(190))
    adapter = make_adapter(PlugProfile, device_type="Plug", cloud=cloud)

    await adapter.async_refresh()

    with pytest.raises(CloudAPIError):
        adapter.read(OUTLET_ON)

    cloud.status = envelope(100, {"power": "off"})
    await adapter.async_refresh()

    assert adapter.read(OUTLET_ON) is False


async def test_ble_failure_falls_back_to_cloud(make_adapter, sleep) -> None:
    """BLE/OpenAPI devices use the cloud once BLE retries are exhausted."""

    ble = FakeBLE(failures=10)
    cloud = FakeCloud()
    adapter = make_adapter(
        PlugProfile,
        device_type="Plug",
        connection_type=ConnectionType.BLE_OPENAPI,
        ble=ble,
        cloud=cloud,
        max_retry=3,
    )

    adapter.accessory.characteristic(OUTLET_ON).handle_set(True)
    await adapter.pipeline.wait_idle()
    adapter.stop()

    assert len(ble.attempts) == 3
    assert sleep.delays == [1.0, 1.0]
    assert cloud.sent == ["turnOn"]


async def test_cloud_only_command_over_ble_reports_error(make_adapter) -> None:
    """Commands without a BLE form fail on BLE-only connections."""

    adapter = make_adapter(
        LockProfile,
        device_type="Smart Lock",
        connection_type=ConnectionType.BLE,
        ble=FakeBLE(),
    )

    adapter.accessory.characteristic("LockMechanism.LockTargetState").handle_set(0)
    await adapter.pipeline.wait_idle()
    adapter.stop()

    with pytest.raises(BLEError):
        adapter.read("LockMechanism.LockCurrentState")


async def test_cloud_disabled_device_is_not_polled(make_adapter) -> None:
    """Devices with the cloud service disabled skip cloud refreshes."""

    cloud = FakeCloud()
    adapter = make_adapter(
        PlugProfile, device_type="Plug", cloud=cloud, enable_cloud_service=False
    )

    await adapter.async_refresh()

    assert cloud.status_requests == 0


def test_webhook_updates_state(make_adapter) -> None:
    """Webhook pushes go through the status mapping."""

    adapter = make_adapter(PlugProfile, device_type="Plug")

    adapter.handle_webhook({"power": "on"})

    assert adapter.values[OUTLET_ON] is True


def test_malformed_webhook_is_ignored(make_adapter) -> None:
    """A webhook that cannot be parsed leaves the cache untouched."""

    adapter = make_adapter(HumidifierProfile, device_type="Humidifier")
    before = adapter.values

    adapter.handle_webhook({"power": "on", "humidity": "n/a"})

    assert adapter.values == before
