"""Debounced, single-flight delivery of pending characteristic writes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_LOGGER = logging.getLogger(__name__)


class PushPipeline:
    """Coalesce update signals and run at most one push at a time.

    ``signal`` raises the pending flag and (re)starts the debounce timer.
    When the timer elapses the push callback runs; signals arriving while
    it runs are folded into one follow-up cycle that starts after the
    current push returns.
    """

    def __init__(
        self,
        push: Callable[[], Awaitable[None]],
        *,
        delay: float,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Initialise the pipeline around the ``push`` coroutine function."""

        self._push = push
        self._delay = delay
        self._loop = loop
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._pending = False
        self._busy = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def pending(self) -> bool:
        """Return True while a push is owed to the transport."""

        return self._pending

    @property
    def busy(self) -> bool:
        """Return True between the first signal and the end of the last push."""

        return self._busy

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def signal(self) -> None:
        """Raise the pending update signal."""

        self._pending = True
        self._busy = True
        self._idle.clear()
        if self._task is not None and not self._task.done():
            # Folded into the cycle started when the running push finishes.
            return
        self._restart_timer()

    def _restart_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._get_loop().call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._task = self._get_loop().create_task(self._run())

    async def _run(self) -> None:
        self._pending = False
        try:
            await self._push()
        except Exception:  # pragma: no cover - push callbacks log their own errors
            _LOGGER.exception("Unhandled error while pushing changes")
        if self._pending:
            self._restart_timer()
            return
        self._busy = False
        self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until no push is pending or running."""

        await self._idle.wait()

    def cancel(self) -> None:
        """Drop any pending timer without running the push."""

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = False
        if self._task is None or self._task.done():
            self._busy = False
            self._idle.set()
