"""Tests for the webhook receiver."""

from __future__ import annotations

import json

import pytest
from aiohttp import test_utils
from pydantic import ValidationError

from switchbot_homekit.errors import ConfigurationError
from switchbot_homekit.webhook import WebhookServer

PUSH = {
    "eventType": "changeReport",
    "eventVersion": "1",
    "context": {
        "deviceType": "WoPlugUS",
        "deviceMac": "AA:BB:CC:DD:EE:FF",
        "powerState": "ON",
        "timeOfSample": 123456789,
    },
}


def test_url_sets_port_and_path() -> None:
    """The listen port and path come from the public URL."""

    server = WebhookServer("http://192.168.1.2:8080/switchbot")

    assert server.port == 8080
    assert server.path == "/switchbot"
    assert WebhookServer("https://example.com").port == 443


def test_invalid_url_is_rejected() -> None:
    """URLs without a host or HTTP scheme are configuration errors."""

    with pytest.raises(ConfigurationError):
        WebhookServer("ftp://example.com/hook")
    with pytest.raises(ConfigurationError):
        WebhookServer("hook")


def test_dispatch_routes_by_mac() -> None:
    """Pushes reach the handler registered for the device id."""

    received = []
    server = WebhookServer("http://localhost:8080/hook")
    server.register("AABBCCDDEEFF", received.append)

    assert server.dispatch(PUSH) is True
    assert received == [{"powerState": "ON"}]


def test_dispatch_ignores_unknown_devices() -> None:
    """Pushes for unregistered devices are dropped."""

    server = WebhookServer("http://localhost:8080/hook")
    server.register("AABBCCDDEEFF", lambda fields: None)
    server.unregister("aa:bb:cc:dd:ee:ff")

    assert server.dispatch(PUSH) is False
    assert server.device_ids == []


def test_dispatch_rejects_missing_context() -> None:
    """Payloads without a device context fail validation."""

    server = WebhookServer("http://localhost:8080/hook")

    with pytest.raises(ValidationError):
        server.dispatch({"eventType": "changeReport"})


async def test_http_endpoint_answers_posts() -> None:
    """The endpoint acknowledges valid pushes and rejects bad bodies."""

    received = []
    server = WebhookServer("http://localhost:8080/hook")
    server.register("AABBCCDDEEFF", received.append)

    server_app = test_utils.TestServer(server.make_app())
    async with test_utils.TestClient(server_app) as client:
        ok = await client.post("/hook", data=json.dumps(PUSH))
        invalid_json = await client.post("/hook", data="{")
        invalid_payload = await client.post("/hook", data=json.dumps([1, 2]))

        assert ok.status == 200
        assert await ok.text() == "OK"
        assert invalid_json.status == 400
        assert invalid_payload.status == 400

    assert received == [{"powerState": "ON"}]
