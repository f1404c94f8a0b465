"""JSON persistence for accessory contexts."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from .state import AccessoryContext

_LOGGER = logging.getLogger(__name__)

STORAGE_VERSION = 1
STORAGE_KEY = "switchbot_context"
_SAVE_DELAY = 1.0


class ContextStore:
    """Load and persist every accessory context in one storage file."""

    def __init__(
        self,
        path: Path,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        save_delay: float = _SAVE_DELAY,
    ) -> None:
        """Initialise the store backed by ``path``."""

        self._path = path
        self._loop = loop
        self._save_delay = save_delay
        self._data: dict[str, dict[str, Any]] = {}
        self._contexts: dict[str, AccessoryContext] = {}
        self._save_handle: asyncio.TimerHandle | None = None
        self._pending_tasks: set[asyncio.Task[Any]] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    async def async_load(self) -> None:
        """Read the storage file when it exists."""

        def _read() -> dict[str, dict[str, Any]]:
            if not self._path.exists():
                return {}
            try:
                payload = json.loads(self._path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                _LOGGER.warning("Ignoring unreadable context file %s", self._path)
                return {}
            if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
                return payload["data"]
            return {}

        self._data = await self._get_loop().run_in_executor(None, _read)

    async def async_save(self) -> None:
        """Write every context to disk now."""

        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
        envelope = {
            "version": STORAGE_VERSION,
            "key": STORAGE_KEY,
            "data": self._data,
        }
        text = json.dumps(envelope, indent=2, sort_keys=True)

        def _write() -> None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")

        await self._get_loop().run_in_executor(None, _write)

    def async_delay_save(self) -> None:
        """Coalesce saves requested within the save delay into one write."""

        if self._save_handle is not None:
            self._save_handle.cancel()

        def _fire() -> None:
            self._save_handle = None
            task = asyncio.ensure_future(self.async_save())
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)

        self._save_handle = self._get_loop().call_later(self._save_delay, _fire)

    def context_for(self, device_id: str) -> AccessoryContext:
        """Return the context of ``device_id``, creating it on first use."""

        context = self._contexts.get(device_id)
        if context is None:
            data = self._data.setdefault(device_id, {})
            context = AccessoryContext(data, on_change=self.async_delay_save)
            self._contexts[device_id] = context
        return context

    def remove(self, device_id: str) -> None:
        """Forget the context of a removed accessory."""

        self._contexts.pop(device_id, None)
        if self._data.pop(device_id, None) is not None:
            self.async_delay_save()

    @property
    def device_ids(self) -> list[str]:
        """Return the ids with a stored context."""

        return list(self._data)
