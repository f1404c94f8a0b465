"""HTTP receiver for SwitchBot cloud webhook pushes."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlsplit

from aiohttp import web
from pydantic import ValidationError

from .config import normalize_device_id
from .errors import ConfigurationError
from .models import WebhookEvent

_LOGGER = logging.getLogger(__name__)

WebhookHandler = Callable[[Mapping[str, Any]], None]


class WebhookServer:
    """Serve the webhook endpoint and route pushes by device MAC."""

    def __init__(self, url: str) -> None:
        """Derive the listen port and path from the public ``url``."""

        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ConfigurationError(f"Invalid webhook URL: {url}")
        self.url = url
        self.port = parts.port or (443 if parts.scheme == "https" else 80)
        self.path = parts.path or "/"
        self._handlers: dict[str, WebhookHandler] = {}
        self._runner: web.AppRunner | None = None

    def register(self, device_id: str, handler: WebhookHandler) -> None:
        """Route pushes for ``device_id`` to ``handler``."""

        self._handlers[normalize_device_id(device_id)] = handler

    def unregister(self, device_id: str) -> None:
        """Stop routing pushes for ``device_id``."""

        self._handlers.pop(normalize_device_id(device_id), None)

    @property
    def device_ids(self) -> list[str]:
        """Return the registered device ids."""

        return list(self._handlers)

    def dispatch(self, payload: Any) -> bool:
        """Validate ``payload`` and hand its context to the matching handler.

        Returns True when a handler received the push. Malformed payloads
        raise :class:`pydantic.ValidationError`.
        """

        event = WebhookEvent.model_validate(payload)
        device_id = normalize_device_id(event.context.device_mac)
        handler = self._handlers.get(device_id)
        if handler is None:
            _LOGGER.debug("No webhook handler for %s", device_id)
            return False
        _LOGGER.debug(
            "Webhook %s for %s (%s)",
            event.event_type,
            device_id,
            event.context.device_type,
        )
        handler(event.context.status_fields())
        return True

    async def handle(self, request: web.Request) -> web.Response:
        """Answer one webhook POST."""

        try:
            payload = await request.json()
        except json.JSONDecodeError as err:
            _LOGGER.warning("Ignoring webhook with invalid JSON: %s", err)
            return web.Response(status=400, text="invalid json")
        try:
            self.dispatch(payload)
        except ValidationError as err:
            _LOGGER.warning("Ignoring malformed webhook: %s", err)
            return web.Response(status=400, text="invalid payload")
        return web.Response(text="OK")

    def make_app(self) -> web.Application:
        """Return the aiohttp application serving the webhook path."""

        app = web.Application()
        app.router.add_post(self.path, self.handle)
        return app

    async def async_start(self, host: str = "0.0.0.0") -> None:
        """Start listening on ``host`` and the URL's port."""

        if self._runner is not None:
            return
        runner = web.AppRunner(self.make_app())
        await runner.setup()
        site = web.TCPSite(runner, host, self.port)
        await site.start()
        self._runner = runner
        _LOGGER.info("Listening for webhooks on port %s at %s", self.port, self.path)

    async def async_stop(self) -> None:
        """Stop the HTTP server."""

        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
