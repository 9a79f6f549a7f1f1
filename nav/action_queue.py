# ================================
# file: nav/action_queue.py
# ================================
"""Per-robot action serialization and pacing.

A script awaits each request. The queue worker pops requests in FIFO order,
waits ``base_interval / speed`` (read fresh on every dequeue, so a speed
change applies from the next action), re-checks that its run is still
alive, then applies the action and resolves the caller.
"""
from __future__ import annotations
import asyncio
from collections import deque
from typing import Any, Callable, Deque, Optional

from core.config import ACTION_BASE_INTERVAL_S, ACTION_TIME_SCALE


class CancelledRunError(RuntimeError):
    """The run this action belonged to was stopped or reset."""


class ActionRequest:
    __slots__ = ("name", "apply", "future")

    def __init__(self, name: str, apply: Callable[[], Any], future: asyncio.Future) -> None:
        self.name = name
        self.apply = apply
        self.future = future


class ActionQueue:
    def __init__(self, owner: str,
                 speed: Callable[[], float],
                 is_live: Callable[[], bool],
                 base_interval: float = ACTION_BASE_INTERVAL_S,
                 time_scale: float = ACTION_TIME_SCALE,
                 on_applied: Optional[Callable[[str, str, float], None]] = None) -> None:
        self.owner = owner
        self._speed = speed
        self._is_live = is_live
        self.base_interval = base_interval
        self.time_scale = time_scale
        self._on_applied = on_applied
        self._pending: Deque[ActionRequest] = deque()
        self._worker: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def busy(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def interval(self) -> float:
        return self.base_interval / max(self._speed(), 1e-9) * self.time_scale

    async def submit(self, name: str, apply: Callable[[], Any]) -> Any:
        """Enqueue ``apply`` and wait until it has run. Returns its result."""
        if self._closed or not self._is_live():
            raise CancelledRunError(f"{self.owner}: run is no longer active")
        loop = asyncio.get_running_loop()
        request = ActionRequest(name, apply, loop.create_future())
        self._pending.append(request)
        if not self.busy:
            self._worker = loop.create_task(self._drain())
        return await request.future

    async def _drain(self) -> None:
        while self._pending:
            request = self._pending[0]
            if request.future.done():
                # caller went away before we got to it
                self._pending.popleft()
                continue
            interval = self.interval()
            await asyncio.sleep(interval)
            self._pending.popleft()
            if not self._is_live():
                self._fail(request)
                self.close()
                return
            if request.future.done():
                continue
            try:
                result = request.apply()
            except Exception as exc:
                if not request.future.done():
                    request.future.set_exception(exc)
            else:
                # a listener may have ended the run and cancelled the caller
                if not request.future.done():
                    request.future.set_result(result)
                if self._on_applied is not None:
                    self._on_applied(self.owner, request.name, interval)

    def _fail(self, request: ActionRequest) -> None:
        if not request.future.done():
            request.future.set_exception(CancelledRunError(f"{self.owner}: run was cancelled"))

    def close(self) -> None:
        """Reject everything still pending and stop the worker."""
        self._closed = True
        while self._pending:
            self._fail(self._pending.popleft())
        worker, self._worker = self._worker, None
        if worker is None or worker.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if worker is not current:
            worker.cancel()
