# ================================
# file: sim/sim_env.py
# ================================
from __future__ import annotations
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

from core.events import EntityScope, EventBus, EventKind
from core.types import Position
from .doors import DoorController
from .entities import DoorHandle, ItemHandle, PlateHandle
from .maze_map import MazeMap
from .plates import PlateMonitor
from .world_state import WorldState

if TYPE_CHECKING:
    from .robot_sim import RobotSim


class SimEnv:
    """Everything one maze run shares: world state, event bus, doors, plates
    and the robots moving through them.

    All mutation helpers commit the world change first and emit events after,
    so a listener always observes the new state.
    """
    def __init__(self, maze: MazeMap, notify: Optional[Callable[[], None]] = None,
                 logger: Optional[Callable[[str, str], None]] = None,
                 on_listener_error: Optional[Callable] = None) -> None:
        self.maze = maze
        self.world = WorldState(notify)
        self.bus = EventBus(on_error=on_listener_error)
        self.doors = DoorController(self.world, logger)
        self.plates = PlateMonitor(self.world, self.bus, self.robot_at)
        self.robots: Dict[str, "RobotSim"] = {}
        self.world.reset(maze)
        self.items: Dict[str, ItemHandle] = {i: ItemHandle(spec, self) for i, spec in maze.items.items()}
        self.door_handles: Dict[str, DoorHandle] = {d: DoorHandle(d, self) for d in maze.doors}
        self.plate_handles: Dict[str, PlateHandle] = {p: PlateHandle(p, self) for p in maze.plates}
        self.doors.wire_plates(self.bus)

    # ---- queries --------------------------------------------------------
    def robot_at(self, x: int, y: int) -> bool:
        return any(not r.is_destroyed and r.position.x == x and r.position.y == y
                   for r in self.robots.values())

    def is_blocked(self, x: int, y: int) -> bool:
        """Closed doors block movement. Without a door, the wall grid decides
        (out-of-bounds counts as wall). A door cell ignores the grid."""
        door_id = self.maze.door_at(x, y)
        if door_id is not None:
            return not self.world.is_door_open(door_id)
        return self.maze.is_wall(x, y)

    def ground_items_at(self, x: int, y: int) -> List[ItemHandle]:
        return [self.items[i] for i in self.world.items_at(x, y)]

    # ---- mutations ------------------------------------------------------
    def robot_moved(self, robot: "RobotSim", old: Position, new: Position) -> None:
        for item in self.ground_items_at(new.x, new.y):
            if not item.is_revealed:
                self.world.reveal_item(item.id)
        self.bus.emit(EntityScope.ROBOT, robot.name, EventKind.MOVE, new.copy())
        for item in self.ground_items_at(old.x, old.y):
            self.bus.emit(EntityScope.ITEM, item.id, EventKind.LEAVE, robot.handle, old.copy())
        for item in self.ground_items_at(new.x, new.y):
            self.bus.emit(EntityScope.ITEM, item.id, EventKind.MOVE, robot.handle, new.copy())
        self.plates.refresh(old.x, old.y)
        self.plates.refresh(new.x, new.y)

    def collect_item(self, item: ItemHandle, robot: Optional["RobotSim"]) -> None:
        pos = item.position
        if item.is_collected:
            return
        self.world.collect_item(item.id)
        if robot is not None:
            robot.inventory.append(item)
        if pos is not None:
            self.plates.refresh(pos.x, pos.y)
        holder = robot.handle if robot is not None else None
        if robot is not None:
            self.bus.emit(EntityScope.ROBOT, robot.name, EventKind.PICKUP, item)
        self.bus.emit(EntityScope.ITEM, item.id, EventKind.PICKUP, holder)

    def drop_item(self, item: ItemHandle, robot: "RobotSim", pos: Position) -> None:
        robot.inventory.remove(item)
        self.world.drop_item(item.id, pos)
        self.plates.refresh(pos.x, pos.y)
        self.bus.emit(EntityScope.ROBOT, robot.name, EventKind.DROP, item)
        self.bus.emit(EntityScope.ITEM, item.id, EventKind.DROP, robot.handle, pos.copy())
