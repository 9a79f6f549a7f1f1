# ================================
# file: sim/doors.py
# ================================
"""Door lock state machine.

States per door::

    CLOSED_UNLOCKED         --open()------------------> OPEN
    CLOSED_PASSWORD_LOCKED  --open(secret)------------> OPEN
    CLOSED_ITEM_LOCKED      --open(required items)----> OPEN
    OPEN                    --close()-----------------> CLOSED_*

Plate wiring and script overrides go through ``open_door``/``close_door``
like robot requests do; ``override`` only skips the credential check.
"""
from __future__ import annotations
from enum import Enum
from typing import Callable, Iterable, List, Optional

from core.events import EntityScope, EventBus, EventKind
from core.types import LockKind, OpenResult
from .world_state import WorldState


class DoorState(Enum):
    OPEN = "open"
    CLOSED_UNLOCKED = "closed_unlocked"
    CLOSED_PASSWORD_LOCKED = "closed_password_locked"
    CLOSED_ITEM_LOCKED = "closed_item_locked"


_CLOSED_STATES = {
    LockKind.NONE: DoorState.CLOSED_UNLOCKED,
    LockKind.PASSWORD: DoorState.CLOSED_PASSWORD_LOCKED,
    LockKind.ITEM: DoorState.CLOSED_ITEM_LOCKED,
}


def _item_ids(credential) -> Optional[List[str]]:
    """Ids of the item(s) offered as a credential, None when no item was offered."""
    if credential is None or isinstance(credential, str):
        return None
    if isinstance(credential, (list, tuple)):
        ids = []
        for entry in credential:
            if not hasattr(entry, "id") or isinstance(entry, str):
                raise TypeError("Door credential list must contain items")
            ids.append(entry.id)
        return ids
    if hasattr(credential, "id"):
        return [credential.id]
    raise TypeError(f"Unsupported door credential: {type(credential).__name__}")


class DoorController:
    def __init__(self, world: WorldState, logger: Optional[Callable[[str, str], None]] = None) -> None:
        self.world = world
        self._logger = logger

    def _log(self, message: str, module: str = "DOOR") -> None:
        if self._logger:
            self._logger(message, module)

    def state(self, door_id: str) -> DoorState:
        if self.world.is_door_open(door_id):
            return DoorState.OPEN
        return _CLOSED_STATES[self.world.maze.doors[door_id].lock.kind]

    def open_door(self, door_id: str, credential=None, inventory: Iterable = (),
                  override: bool = False) -> OpenResult:
        """Try to open ``door_id``.

        ``credential`` is a password string, an item, or a list of items.
        ``inventory`` holds the items the caller actually carries. Anything
        else raises TypeError; a wrong or missing credential only fails.
        """
        if self.world.is_door_open(door_id):
            return OpenResult(True, "Door is already open.")
        offered = _item_ids(credential)
        lock = self.world.maze.doors[door_id].lock
        if override or lock.kind is LockKind.NONE:
            return self._commit_open(door_id)

        if lock.kind is LockKind.PASSWORD:
            if not isinstance(credential, str):
                return OpenResult(False, "Door is locked (password required).", required_auth="PASSWORD")
            if credential != lock.secret:
                return OpenResult(False, "Incorrect password for door.", required_auth="PASSWORD")
            return self._commit_open(door_id)

        if lock.kind is LockKind.ITEM:
            required = list(lock.required_item_ids)
            if offered is None:
                return OpenResult(False, "Door is locked (item required).",
                                  required_auth="ITEMS", missing_items=required)
            held = {getattr(entry, "id", None) for entry in inventory}
            not_held = [item_id for item_id in offered if item_id not in held]
            if not_held:
                return OpenResult(False, "You do not have the required item(s).",
                                  required_auth="ITEMS", missing_items=not_held)
            missing = [item_id for item_id in required if item_id not in offered]
            if missing:
                return OpenResult(False, "Missing required item(s) for door.",
                                  required_auth="ITEMS", missing_items=missing)
            return self._commit_open(door_id)

        raise AssertionError(f"unhandled lock kind {lock.kind}")

    def _commit_open(self, door_id: str) -> OpenResult:
        self.world.open_door(door_id)
        self._log(f"door {door_id} opened")
        return OpenResult(True, "Opened door.")

    def close_door(self, door_id: str) -> OpenResult:
        """Closing is permitted for every lock kind."""
        if not self.world.is_door_open(door_id):
            return OpenResult(True, "Door is already closed.")
        self.world.close_door(door_id)
        self._log(f"door {door_id} closed")
        return OpenResult(True, "Closed door.")

    def wire_plates(self, bus: EventBus) -> None:
        """Subscribe plate-driven doors declared by the maze."""
        for plate in self.world.maze.plates.values():
            for door_id in plate.door_ids:
                bus.subscribe(EntityScope.PLATE, plate.id, EventKind.ACTIVATE,
                              lambda *_, d=door_id: self.open_door(d, override=True))
                bus.subscribe(EntityScope.PLATE, plate.id, EventKind.DEACTIVATE,
                              lambda *_, d=door_id: self.close_door(d))
