# ================================
# file: core/events.py
# ================================
"""Entity event bus.

Listeners are registered per (scope, entity id, event kind) and delivered
synchronously, in registration order, at the moment a world mutation is
applied. A listener that raises is reported through ``on_error`` and the
remaining listeners still run.
"""
from __future__ import annotations
import asyncio
import inspect
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple


class EventKind(Enum):
    MOVE = "move"
    LEAVE = "leave"
    PICKUP = "pickup"
    DROP = "drop"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    ROBOT_CREATED = "robot_created"

    @classmethod
    def parse(cls, value) -> "EventKind":
        if isinstance(value, EventKind):
            return value
        try:
            return cls(str(value))
        except ValueError:
            raise ValueError(f"Unknown event type: {value!r}") from None


class EntityScope(Enum):
    ROBOT = "robot"
    ITEM = "item"
    PLATE = "plate"
    GAME = "game"


# Which events each kind of entity can publish
SCOPE_EVENTS = {
    EntityScope.ROBOT: frozenset({EventKind.MOVE, EventKind.PICKUP, EventKind.DROP}),
    EntityScope.ITEM: frozenset({EventKind.MOVE, EventKind.LEAVE, EventKind.PICKUP, EventKind.DROP}),
    EntityScope.PLATE: frozenset({EventKind.ACTIVATE, EventKind.DEACTIVATE}),
    EntityScope.GAME: frozenset({EventKind.ROBOT_CREATED}),
}

Key = Tuple[EntityScope, Optional[str], EventKind]


def _fit_args(handler: Callable, args: tuple) -> tuple:
    """Trim ``args`` to what ``handler`` accepts, so `lambda: ...` listeners work."""
    try:
        params = inspect.signature(handler).parameters.values()
    except (TypeError, ValueError):
        return args
    positional = 0
    for p in params:
        if p.kind is p.VAR_POSITIONAL:
            return args
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD):
            positional += 1
    return args[:positional]


class EventBus:
    """Typed listener registry keyed by (scope, entity id, kind)."""

    def __init__(self, on_error: Optional[Callable[[EventKind, BaseException], None]] = None) -> None:
        self._handlers: Dict[Key, List[Callable]] = {}
        self._on_error = on_error
        self._tasks: set = set()

    def subscribe(self, scope: EntityScope, entity_id: Optional[str], kind,
                  handler: Callable) -> Callable[[], None]:
        """Register ``handler`` and return a function that removes it again."""
        kind = EventKind.parse(kind)
        if kind not in SCOPE_EVENTS[scope]:
            raise ValueError(f"A {scope.value} does not emit '{kind.value}' events")
        if not callable(handler):
            raise TypeError("Event listener must be callable")
        key = (scope, entity_id, kind)
        self._handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def listener_count(self, scope: EntityScope, entity_id: Optional[str], kind) -> int:
        return len(self._handlers.get((scope, entity_id, EventKind.parse(kind)), []))

    def emit(self, scope: EntityScope, entity_id: Optional[str], kind: EventKind, *args) -> int:
        """Deliver an event to every listener. Returns the number of listeners called."""
        handlers = list(self._handlers.get((scope, entity_id, kind), []))
        for handler in handlers:
            try:
                result = handler(*_fit_args(handler, args))
                if inspect.isawaitable(result):
                    self._spawn(kind, result)
            except Exception as exc:
                self._report(kind, exc)
        return len(handlers)

    def _spawn(self, kind: EventKind, awaitable) -> None:
        # async listeners run as their own task; failures are reported like sync ones
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._report(kind, RuntimeError("async listener fired outside a running event loop"))
            return
        task = loop.create_task(awaitable)
        self._tasks.add(task)

        def done(t: asyncio.Task) -> None:
            self._tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                self._report(kind, t.exception())

        task.add_done_callback(done)

    def _report(self, kind: EventKind, exc: BaseException) -> None:
        if self._on_error is not None:
            self._on_error(kind, exc)

    def clear(self) -> None:
        """Drop every listener and cancel async listeners still running."""
        self._handlers.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
