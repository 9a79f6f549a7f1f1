# ================================
# file: sim/robot_sim.py
# ================================
from __future__ import annotations
from typing import Dict, List, Optional, Union

from core.config import (
    PEN_DEFAULT_COLOR, PEN_DEFAULT_OPACITY, PEN_DEFAULT_SIZE,
    ROBOT_DEFAULT_APPEARANCE, ROBOT_DEFAULT_COLOR, ROBOT_DEFAULT_HEALTH,
    ROBOT_DEFAULT_SPEED,
)
from core.types import Direction, OpenResult, PenState, Position, RobotState
from .entities import ItemHandle, ScanResult
from .sim_env import SimEnv


class RobotDestroyedError(RuntimeError):
    pass


class RobotSim:
    """Grid robot: pose, inventory and the effect of each action on the world.

    Every method here applies immediately. Pacing and ordering are the
    action queue's job; this class is only ever called from the queue's
    worker or from synchronous script accessors.
    Thread-safety: assume single-threaded calls from the event loop.
    """
    def __init__(self, env: SimEnv, name: str, position: Position,
                 direction: Direction = Direction.NORTH, color: Optional[str] = None) -> None:
        self.env = env
        self.name = name
        self.color = color or ROBOT_DEFAULT_COLOR
        self.position = position.copy()
        self.direction = direction
        self.inventory: List[ItemHandle] = []
        self.speed: float = ROBOT_DEFAULT_SPEED
        self.pen: Optional[PenState] = None
        self.health: int = ROBOT_DEFAULT_HEALTH
        self.appearance: str = ROBOT_DEFAULT_APPEARANCE
        self.is_destroyed: bool = False
        self.handle = self          # replaced by the script-facing adapter
        self.on_destroyed = None    # callback(robot)

    def ensure_alive(self) -> None:
        if self.is_destroyed:
            raise RobotDestroyedError(f"Robot {self.name} has been destroyed")

    def facing_cell(self) -> Position:
        return self.position.step(self.direction)

    # ---- movement -------------------------------------------------------
    def can_move_forward(self) -> bool:
        cell = self.facing_cell()
        return not self.is_destroyed and not self.env.is_blocked(cell.x, cell.y)

    def move_forward(self) -> bool:
        """Step one cell. Returns False, without moving, when the way is blocked."""
        self.ensure_alive()
        target = self.facing_cell()
        if self.env.is_blocked(target.x, target.y):
            return False
        old = self.position
        self.position = target
        self.env.robot_moved(self, old, target)
        return True

    def turn_left(self) -> Direction:
        self.ensure_alive()
        self.direction = self.direction.turn_left()
        return self.direction

    def turn_right(self) -> Direction:
        self.ensure_alive()
        self.direction = self.direction.turn_right()
        return self.direction

    # ---- items ----------------------------------------------------------
    def pickup(self) -> Optional[ItemHandle]:
        """Collect the first item lying here. None when there is nothing."""
        self.ensure_alive()
        items = self.env.ground_items_at(self.position.x, self.position.y)
        if not items:
            return None
        item = items[0]
        self.env.collect_item(item, self)
        return item

    def drop(self, item) -> Optional[ItemHandle]:
        """Put a held item down here. None when not held or the cell is taken."""
        self.ensure_alive()
        if not isinstance(item, ItemHandle):
            raise TypeError(f"drop() expects an item, got {type(item).__name__}")
        if not any(held is item for held in self.inventory):
            return None
        if self.env.world.items_at(self.position.x, self.position.y):
            return None
        self.env.drop_item(item, self, self.position)
        return item

    # ---- doors ----------------------------------------------------------
    def open_door(self, credential=None) -> OpenResult:
        self.ensure_alive()
        cell = self.facing_cell()
        door_id = self.env.maze.door_at(cell.x, cell.y)
        if door_id is None:
            return OpenResult(False, "No door to open.")
        return self.env.doors.open_door(door_id, credential, inventory=self.inventory)

    def close_door(self) -> OpenResult:
        self.ensure_alive()
        if self.env.maze.door_at(self.position.x, self.position.y) is not None:
            return OpenResult(False, "Cannot close door while standing in it!")
        cell = self.facing_cell()
        door_id = self.env.maze.door_at(cell.x, cell.y)
        if door_id is None:
            return OpenResult(False, "No door to close.")
        if self.env.robot_at(cell.x, cell.y):
            return OpenResult(False, "Cannot close door while a robot is standing in it!")
        return self.env.doors.close_door(door_id)

    # ---- sensors --------------------------------------------------------
    def scan(self) -> Optional[ScanResult]:
        """Describe the facing cell, falling back to the robot's own cell."""
        self.ensure_alive()
        for cell in (self.facing_cell(), self.position):
            door_id = self.env.maze.door_at(cell.x, cell.y)
            if door_id is not None:
                return ScanResult("door", self.env.door_handles[door_id])
            items = self.env.ground_items_at(cell.x, cell.y)
            if items:
                if not items[0].is_revealed:
                    self.env.world.reveal_item(items[0].id)
                return ScanResult("item", items[0])
            plate_id = self.env.maze.plate_at(cell.x, cell.y)
            if plate_id is not None:
                return ScanResult("pressure_plate", self.env.plate_handles[plate_id])
        return None

    def echo(self) -> int:
        """Cells to the first wall, closed door or item straight ahead.
        The maze border counts as a wall."""
        self.ensure_alive()
        dx, dy = self.direction.delta
        distance = 0
        x, y = self.position.x, self.position.y
        while True:
            distance += 1
            x += dx
            y += dy
            if self.env.is_blocked(x, y) or self.env.world.items_at(x, y):
                return distance

    # ---- configuration --------------------------------------------------
    def set_speed(self, speed: Union[int, float]) -> None:
        if isinstance(speed, bool) or not isinstance(speed, (int, float)) or not speed > 0:
            raise ValueError(f"Speed must be a positive number, got {speed!r}")
        self.speed = float(speed)

    def set_pen(self, config: Optional[Dict]) -> Optional[PenState]:
        """Merge ``config`` into the pen. ``None`` lifts the pen entirely."""
        if config is None:
            self.pen = None
            return None
        if not isinstance(config, dict):
            raise TypeError("set_pen() expects a dict or None")
        unknown = set(config) - {"color", "size", "opacity"}
        if unknown:
            raise ValueError(f"Unknown pen option(s): {', '.join(sorted(unknown))}")
        base = self.pen.copy() if self.pen else PenState(PEN_DEFAULT_COLOR, PEN_DEFAULT_SIZE, PEN_DEFAULT_OPACITY)
        for key, value in config.items():
            setattr(base, key, value)
        self.pen = base
        return base.copy()

    def set_appearance(self, appearance: str) -> None:
        self.appearance = str(appearance)

    # ---- health ---------------------------------------------------------
    def damage(self, amount: int) -> int:
        self.ensure_alive()
        self.health = max(0, self.health - int(amount))
        if self.health == 0:
            self.destroy()
        return self.health

    def destroy(self) -> None:
        if self.is_destroyed:
            return
        self.is_destroyed = True
        self.health = 0
        old = self.position
        self.env.plates.refresh(old.x, old.y)
        if self.on_destroyed is not None:
            self.on_destroyed(self)

    def state(self) -> RobotState:
        return RobotState(self.name, self.color, self.position.copy(), self.direction,
                          [item.id for item in self.inventory], self.speed, self.health,
                          self.appearance, self.is_destroyed,
                          self.pen.copy() if self.pen else None)
