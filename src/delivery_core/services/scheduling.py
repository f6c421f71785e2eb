"""Periodic background tasks with cancellation tokens."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Union[Any, Awaitable[Any]]]


class CancellationToken:
    """One-way flag shared between a task and whoever may stop it."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class PeriodicTask:
    """Invoke ``callback`` every ``interval_seconds`` on the running event loop.

    The callback may be sync or async. Returning ``False`` ends the task.
    Exceptions raised by the callback are logged and the next tick still runs.
    ``stop()`` is idempotent, and the token is rechecked right before each
    invocation so no tick fires once ``stop()`` has returned.
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: TickCallback,
        *,
        name: str = "periodic-task",
        run_immediately: bool = False,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.interval_seconds = interval_seconds
        self.name = name
        self._callback = callback
        self._run_immediately = run_immediately
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self.tick_count = 0

    @property
    def running(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def start(self) -> None:
        """Schedule the loop on the running event loop; no-op when already running."""

        if self.running:
            return
        token = CancellationToken()
        self._token = token
        self._task = asyncio.get_running_loop().create_task(self._run(token), name=self.name)
        logger.debug(f"Started periodic task {self.name} every {self.interval_seconds}s")

    def stop(self) -> None:
        if self._token is None or self._token.cancelled:
            return
        self._token.cancel()
        task = self._task
        self._task = None
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()
        logger.debug(f"Stopped periodic task {self.name} after {self.tick_count} ticks")

    async def run_once(self) -> bool:
        """Invoke the callback immediately; returns False when the task should end."""

        token = self._token or CancellationToken()
        keep_going = await self._invoke(token)
        if not keep_going:
            self.stop()
        return keep_going

    async def _invoke(self, token: CancellationToken) -> bool:
        if token.cancelled:
            return False
        self.tick_count += 1
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(f"Periodic task {self.name} tick failed: {exc}")
            return True
        return result is not False

    async def _run(self, token: CancellationToken) -> None:
        try:
            if self._run_immediately and not await self._invoke(token):
                self._finish(token)
                return
            while not token.cancelled:
                await asyncio.sleep(self.interval_seconds)
                if token.cancelled:
                    break
                if not await self._invoke(token):
                    self._finish(token)
                    break
        except asyncio.CancelledError:
            pass

    def _finish(self, token: CancellationToken) -> None:
        if self._token is token:
            self.stop()
        else:
            token.cancel()
