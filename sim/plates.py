# ================================
# file: sim/plates.py
# ================================
from __future__ import annotations
from typing import Callable, Optional

from core.events import EntityScope, EventBus, EventKind
from .world_state import WorldState


class PlateMonitor:
    """Keeps pressure plates in sync with what stands on them.

    A plate is active while a robot or an uncollected item occupies its
    cell. ``activate``/``deactivate`` fire only on the edge, after the world
    state has been committed.
    """
    def __init__(self, world: WorldState, bus: EventBus,
                 robot_at: Callable[[int, int], bool]) -> None:
        self.world = world
        self.bus = bus
        self.robot_at = robot_at

    def occupied(self, plate_id: str) -> bool:
        pos = self.world.maze.plates[plate_id].position
        return self.robot_at(pos.x, pos.y) or bool(self.world.items_at(pos.x, pos.y))

    def refresh(self, x: Optional[int] = None, y: Optional[int] = None) -> None:
        """Re-evaluate the plate at (x, y), or every plate when no cell is given."""
        if x is not None and y is not None:
            plate_id = self.world.maze.plate_at(x, y)
            plate_ids = [plate_id] if plate_id else []
        else:
            plate_ids = list(self.world.maze.plates)
        for plate_id in plate_ids:
            active = self.occupied(plate_id)
            if self.world.set_plate_active(plate_id, active):
                kind = EventKind.ACTIVATE if active else EventKind.DEACTIVATE
                self.bus.emit(EntityScope.PLATE, plate_id, kind,
                              self.world.maze.plates[plate_id].position.copy())
