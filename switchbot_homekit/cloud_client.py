"""Async client for the SwitchBot cloud API."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from uuid import uuid4

import httpx
from pydantic import ValidationError

from .const import DEVICE_PATH, HOST_DOMAIN, WEBHOOK_PATH
from .errors import CloudAPIError, ConfigurationError
from .models import CloudResponse, DeviceList
from .status_codes import SUCCESS_CODES

_LOGGER = logging.getLogger(__name__)

_TIMEOUT = httpx.Timeout(10.0)


def sign_request(token: str, secret: str, t: str, nonce: str) -> str:
    """Return the base64 HMAC-SHA256 signature of ``token + t + nonce``."""

    digest = hmac.new(
        secret.encode("utf-8"),
        f"{token}{t}{nonce}".encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class SwitchBotCloudClient:
    """Signed REST helper for status, commands and webhook management."""

    def __init__(
        self,
        token: str | None,
        secret: str | None,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = HOST_DOMAIN,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialise the client with account credentials."""

        self._token = token
        self._secret = secret
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url, timeout=_TIMEOUT
        )
        self._sleep = sleep

    @property
    def has_credentials(self) -> bool:
        """Return True when a token and secret are configured."""

        return bool(self._token) and bool(self._secret)

    def _headers(self) -> dict[str, str]:
        token, secret = self._token, self._secret
        if not token or not secret:
            raise ConfigurationError("Missing cloud API token or secret")
        t = str(int(time.time() * 1000))
        nonce = str(uuid4())
        return {
            "Authorization": token,
            "sign": sign_request(token, secret, t, nonce),
            "nonce": nonce,
            "t": t,
            "Content-Type": "application/json",
        }

    async def _request(
        self, method: str, path: str, payload: Mapping[str, Any] | None = None
    ) -> CloudResponse:
        response = await self._client.request(
            method,
            path,
            json=dict(payload) if payload is not None else None,
            headers=self._headers(),
        )
        if response.status_code not in SUCCESS_CODES:
            raise CloudAPIError(
                response.status_code, f"HTTP {response.status_code} for {path}"
            )
        try:
            envelope = CloudResponse.model_validate(response.json())
        except (ValueError, ValidationError) as err:
            raise CloudAPIError(None, f"Malformed response for {path}: {err}") from err
        _LOGGER.debug("%s %s -> %s", method, path, envelope.status_code)
        return envelope

    async def async_get_devices(self) -> DeviceList:
        """Return the physical and infrared devices of the account."""

        envelope = await self._request("GET", DEVICE_PATH)
        if envelope.status_code not in SUCCESS_CODES:
            raise CloudAPIError(envelope.status_code, envelope.message)
        return DeviceList.model_validate(envelope.body)

    async def async_get_status(self, device_id: str) -> CloudResponse:
        """Fetch the status envelope of ``device_id``."""

        return await self._request("GET", f"{DEVICE_PATH}/{device_id}/status")

    async def async_retry_request(
        self, device_id: str, *, max_retries: int, delay_between_retries: float
    ) -> CloudResponse:
        """Fetch status, retrying transport failures ``max_retries`` times."""

        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.async_get_status(device_id)
            except (httpx.HTTPError, CloudAPIError) as err:
                if attempt >= max_retries:
                    raise
                _LOGGER.debug(
                    "Status request for %s failed (%s), retry %s/%s",
                    device_id,
                    err,
                    attempt,
                    max_retries,
                )
                await self._sleep(delay_between_retries)

    async def async_send_command(
        self,
        device_id: str,
        command: str,
        parameter: Any = "default",
        command_type: str = "command",
    ) -> CloudResponse:
        """Issue a command and return the response envelope."""

        body = {
            "command": command,
            "parameter": parameter,
            "commandType": command_type,
        }
        return await self._request("POST", f"{DEVICE_PATH}/{device_id}/commands", body)

    async def async_setup_webhook(self, url: str) -> CloudResponse:
        """Register ``url`` to receive pushes for every device."""

        return await self._request(
            "POST",
            f"{WEBHOOK_PATH}/setupWebhook",
            {"action": "setupWebhook", "url": url, "deviceList": "ALL"},
        )

    async def async_query_webhook(self) -> CloudResponse:
        """Return the webhook URLs registered for the account."""

        return await self._request(
            "POST", f"{WEBHOOK_PATH}/queryWebhook", {"action": "queryUrl"}
        )

    async def async_update_webhook(
        self, url: str, *, enable: bool = True
    ) -> CloudResponse:
        """Enable or disable a registered webhook URL."""

        return await self._request(
            "POST",
            f"{WEBHOOK_PATH}/updateWebhook",
            {"action": "updateWebhook", "config": {"url": url, "enable": enable}},
        )

    async def async_delete_webhook(self, url: str) -> CloudResponse:
        """Unregister ``url``."""

        return await self._request(
            "POST",
            f"{WEBHOOK_PATH}/deleteWebhook",
            {"action": "deleteWebhook", "url": url},
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client when owned."""

        if self._owns_client:
            await self._client.aclose()
