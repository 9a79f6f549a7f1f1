# ================================
# file: sim/world_state.py
# ================================
"""Authoritative mutable state of doors, items and pressure plates.

No behavior beyond consistent storage and change notification: every
mutator calls the ``notify`` hook exactly once, including idempotent
re-opens and re-collects. Plate updates are the exception and only notify
when the plate actually flips.
"""
from __future__ import annotations
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Set

from core.types import Position
from .maze_map import MazeMap


class WorldState:
    def __init__(self, notify: Optional[Callable[[], None]] = None) -> None:
        self._notify = notify or (lambda: None)
        self._maze: Optional[MazeMap] = None
        self._door_states: Dict[str, bool] = {}
        self._revealed: Set[str] = set()
        self._collected: Set[str] = set()
        self._plate_states: Dict[str, bool] = {}
        self._item_positions: Dict[str, Optional[Position]] = {}

    def reset(self, maze: MazeMap) -> None:
        """Rebuild all state from ``maze``. Nothing survives from a previous maze."""
        self._maze = maze
        self._door_states = {d.id: d.is_open for d in maze.doors.values()}
        self._revealed = set()
        self._collected = set()
        self._plate_states = {p.id: p.is_active for p in maze.plates.values()}
        self._item_positions = {i.id: i.position.copy() for i in maze.items.values()}
        self._notify()

    @property
    def maze(self) -> MazeMap:
        if self._maze is None:
            raise RuntimeError("World state used before reset()")
        return self._maze

    def _check(self, table: Mapping, key: str, kind: str) -> None:
        if key not in table:
            raise KeyError(f"Unknown {kind} id: {key}")

    # ---- doors --------------------------------------------------------
    def is_door_open(self, door_id: str) -> bool:
        self._check(self._door_states, door_id, "door")
        return self._door_states[door_id]

    def open_door(self, door_id: str) -> None:
        self._check(self._door_states, door_id, "door")
        self._door_states[door_id] = True
        self._notify()

    def close_door(self, door_id: str) -> None:
        self._check(self._door_states, door_id, "door")
        self._door_states[door_id] = False
        self._notify()

    # ---- items --------------------------------------------------------
    def is_item_collected(self, item_id: str) -> bool:
        self._check(self._item_positions, item_id, "item")
        return item_id in self._collected

    def collect_item(self, item_id: str) -> None:
        """Mark collected and take the item off the grid."""
        self._check(self._item_positions, item_id, "item")
        self._collected.add(item_id)
        self._item_positions[item_id] = None
        self._notify()

    def uncollect_item(self, item_id: str) -> None:
        self._check(self._item_positions, item_id, "item")
        self._collected.discard(item_id)
        if self._item_positions[item_id] is None:
            self._item_positions[item_id] = self.maze.items[item_id].position.copy()
        self._notify()

    def drop_item(self, item_id: str, position: Position) -> None:
        """Put a collected item back on the grid at ``position``."""
        self._check(self._item_positions, item_id, "item")
        self._collected.discard(item_id)
        self._item_positions[item_id] = position.copy()
        self._notify()

    def item_position(self, item_id: str) -> Optional[Position]:
        self._check(self._item_positions, item_id, "item")
        pos = self._item_positions[item_id]
        return pos.copy() if pos is not None else None

    def items_at(self, x: int, y: int) -> List[str]:
        """Ids of items lying on the ground at (x, y), in maze order."""
        return [item_id for item_id, pos in self._item_positions.items()
                if pos is not None and pos.x == x and pos.y == y and item_id not in self._collected]

    def is_item_revealed(self, item_id: str) -> bool:
        self._check(self._item_positions, item_id, "item")
        return item_id in self._revealed or self.maze.items[item_id].is_revealed

    def reveal_item(self, item_id: str) -> None:
        self._check(self._item_positions, item_id, "item")
        self._revealed.add(item_id)
        self._notify()

    # ---- pressure plates ----------------------------------------------
    def is_plate_active(self, plate_id: str) -> bool:
        self._check(self._plate_states, plate_id, "pressure plate")
        return self._plate_states[plate_id]

    def set_plate_active(self, plate_id: str, active: bool) -> bool:
        """Returns True when the plate state changed."""
        self._check(self._plate_states, plate_id, "pressure plate")
        if self._plate_states[plate_id] == bool(active):
            return False
        self._plate_states[plate_id] = bool(active)
        self._notify()
        return True

    def snapshot(self) -> Mapping:
        return MappingProxyType({
            "doorStates": MappingProxyType(dict(self._door_states)),
            "revealedItemIds": tuple(sorted(self._revealed)),
            "collectedItemIds": tuple(sorted(self._collected)),
            "pressurePlateStates": MappingProxyType(dict(self._plate_states)),
            "itemPositions": MappingProxyType({
                item_id: (pos.to_dict() if pos is not None else None)
                for item_id, pos in self._item_positions.items()
            }),
        })
