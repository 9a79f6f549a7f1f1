# ================================
# file: sim/maze_map.py
# ================================
from __future__ import annotations
from typing import Dict, List, Optional, Tuple
import json
import numpy as np

from core.config import ROBOT_DEFAULT_DIRECTION
from core.types import (
    Direction, DoorSpec, ItemSpec, Lock, PlateSpec, Position, RobotSpec,
)

# Keys consumed by ItemSpec; anything else on an item goes into its extra bag
_ITEM_KEYS = {"id", "position", "type", "category", "name", "isRevealed"}


class MazeMap:
    """Static maze built from a JSON description.

    The grid is a boolean array indexed ``grid[y, x]``; True marks a wall.
    Doors, items, plates and robots are kept as declared. Runtime state
    (open doors, collected items, robot poses) lives in the world model.
    """
    def __init__(self) -> None:
        self.width: int = 0
        self.height: int = 0
        self.grid: np.ndarray = np.zeros((0, 0), dtype=bool)
        self.robots: List[RobotSpec] = []
        self.doors: Dict[str, DoorSpec] = {}
        self.items: Dict[str, ItemSpec] = {}
        self.plates: Dict[str, PlateSpec] = {}
        self.global_module: Optional[str] = None
        self.name: Optional[str] = None
        self._door_cells: Dict[Tuple[int, int], str] = {}
        self._plate_cells: Dict[Tuple[int, int], str] = {}

    @classmethod
    def from_dict(cls, data: Dict) -> "MazeMap":
        maze = cls()
        maze.load_from_dict(data)
        return maze

    def load_from_json(self, path: str, log_file=None) -> None:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.load_from_dict(data)
        if log_file is not None:
            info = self.get_maze_info()
            log_file.write(f"[MAZE] loaded {path}: {info['width']}x{info['height']}, "
                           f"walls={info['wall_count']} free={info['free_count']}\n")

    def load_from_dict(self, data: Dict) -> None:
        walls = data.get("walls")
        if walls is not None and len(walls) > 0:
            grid = np.array(walls, dtype=bool)
            if grid.ndim != 2:
                raise ValueError("Maze walls must be a rectangular 2D grid")
        else:
            grid = np.zeros((int(data.get("height", 0)), int(data.get("width", 0))), dtype=bool)
        self.grid = grid
        self.height, self.width = grid.shape
        if "width" in data and int(data["width"]) != self.width:
            raise ValueError(f"Maze width {data['width']} does not match walls ({self.width})")
        if "height" in data and int(data["height"]) != self.height:
            raise ValueError(f"Maze height {data['height']} does not match walls ({self.height})")
        self.name = data.get("name")
        self.global_module = data.get("globalModule")

        self.doors = {}
        for raw in data.get("doors", []):
            door = DoorSpec(raw["id"], Position.parse(raw["position"]),
                            is_open=raw.get("isOpen", False), lock=Lock.parse(raw.get("lock")))
            self._add_unique(self.doors, door.id, door, "door")

        self.items = {}
        for raw in data.get("items", []):
            extra = {k: v for k, v in raw.items() if k not in _ITEM_KEYS}
            item = ItemSpec(raw["id"], Position.parse(raw["position"]),
                            type=raw.get("type", "item"), category=raw.get("category"),
                            name=raw.get("name"), is_revealed=raw.get("isRevealed", True) is not False,
                            extra=extra)
            self._add_unique(self.items, item.id, item, "item")

        self.plates = {}
        for raw in data.get("pressurePlates", []):
            door_ids = list(raw.get("doorIds", []))
            if raw.get("doorId"):
                door_ids.append(raw["doorId"])
            plate = PlateSpec(raw["id"], Position.parse(raw["position"]),
                              is_active=raw.get("isActive", False), door_ids=door_ids)
            self._add_unique(self.plates, plate.id, plate, "pressure plate")

        self.robots = []
        for raw in data.get("robots", data.get("initialRobots", [])):
            self.robots.append(RobotSpec(raw["name"], Position.parse(raw["position"]),
                                         Direction.parse(raw.get("direction", ROBOT_DEFAULT_DIRECTION)),
                                         color=raw.get("color")))
        self._validate()
        self._door_cells = {d.position.as_tuple(): d.id for d in self.doors.values()}
        self._plate_cells = {p.position.as_tuple(): p.id for p in self.plates.values()}

    @staticmethod
    def _add_unique(table: Dict, key: str, value, kind: str) -> None:
        if key in table:
            raise ValueError(f"Duplicate {kind} id: {key}")
        table[key] = value

    def _validate(self) -> None:
        for kind, entities in (("door", self.doors.values()), ("item", self.items.values()),
                               ("pressure plate", self.plates.values())):
            for entity in entities:
                if not self.in_bounds(entity.position.x, entity.position.y):
                    raise ValueError(f"{kind} {entity.id} is outside the maze at {entity.position}")
        for door in self.doors.values():
            for item_id in door.lock.required_item_ids:
                if item_id not in self.items:
                    raise ValueError(f"door {door.id} requires unknown item {item_id}")
        for plate in self.plates.values():
            for door_id in plate.door_ids:
                if door_id not in self.doors:
                    raise ValueError(f"pressure plate {plate.id} drives unknown door {door_id}")
        names = set()
        for robot in self.robots:
            if robot.name in names:
                raise ValueError(f"Duplicate robot name: {robot.name}")
            names.add(robot.name)
            if self.is_wall(robot.position.x, robot.position.y):
                raise ValueError(f"robot {robot.name} starts inside a wall at {robot.position}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_wall(self, x: int, y: int) -> bool:
        """Static obstacle test. Out of bounds counts as wall."""
        if not self.in_bounds(x, y):
            return True
        return bool(self.grid[y, x])

    def door_at(self, x: int, y: int) -> Optional[str]:
        return self._door_cells.get((x, y))

    def plate_at(self, x: int, y: int) -> Optional[str]:
        return self._plate_cells.get((x, y))

    def free_cells(self) -> List[Tuple[int, int]]:
        ys, xs = np.nonzero(~self.grid)
        return [(int(x), int(y)) for y, x in zip(ys, xs)]

    def get_maze_info(self) -> Dict:
        wall_count = int(np.count_nonzero(self.grid))
        return {
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "wall_count": wall_count,
            "free_count": int(self.grid.size - wall_count),
            "robots": [r.name for r in self.robots],
            "doors": len(self.doors),
            "items": len(self.items),
            "pressure_plates": len(self.plates),
            "has_global_module": bool(self.global_module),
        }

    def to_dict(self) -> Dict:
        """Serialize back to maze JSON (initial state only)."""
        items = []
        for item in self.items.values():
            raw = dict(item.extra)
            raw.update({"id": item.id, "position": item.position.to_dict(), "type": item.type})
            if item.category is not None:
                raw["category"] = item.category
            if item.name is not None:
                raw["name"] = item.name
            if not item.is_revealed:
                raw["isRevealed"] = False
            items.append(raw)
        doors = []
        for door in self.doors.values():
            lock = {"kind": door.lock.kind.value}
            if door.lock.secret is not None:
                lock["secret"] = door.lock.secret
            if door.lock.required_item_ids:
                lock["itemIds"] = list(door.lock.required_item_ids)
            doors.append({"id": door.id, "position": door.position.to_dict(),
                          "isOpen": door.is_open, "lock": lock})
        data = {
            "width": self.width,
            "height": self.height,
            "walls": self.grid.tolist(),
            "robots": [{"name": r.name, "position": r.position.to_dict(),
                        "direction": r.direction.value, "color": r.color} for r in self.robots],
            "doors": doors,
            "items": items,
            "pressurePlates": [{"id": p.id, "position": p.position.to_dict(), "isActive": p.is_active,
                                "doorIds": list(p.door_ids)} for p in self.plates.values()],
        }
        if self.name:
            data["name"] = self.name
        if self.global_module:
            data["globalModule"] = self.global_module
        return data
