# ================================
# file: core/types.py
# ================================
"""Shared data structures for grid positions, headings, locks and maze entities.
Use minimal typing: Tuple/Optional/Dict/Sequence only.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Any


class Position:
    """Integer grid coordinate. x grows East, y grows South."""
    __slots__ = ("x", "y")

    def __init__(self, x: int, y: int) -> None:
        self.x = int(x)
        self.y = int(y)

    @classmethod
    def parse(cls, value) -> "Position":
        """Accept a Position, a {"x","y"} mapping or an (x, y) pair."""
        if isinstance(value, Position):
            return value.copy()
        if isinstance(value, dict):
            return cls(value["x"], value["y"])
        x, y = value
        return cls(x, y)

    def copy(self) -> "Position":
        return Position(self.x, self.y)

    def step(self, direction: "Direction") -> "Position":
        dx, dy = direction.delta
        return Position(self.x + dx, self.y + dy)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}

    def __eq__(self, other) -> bool:
        if isinstance(other, Position):
            return self.x == other.x and self.y == other.y
        if isinstance(other, tuple):
            return (self.x, self.y) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __iter__(self):
        yield self.x
        yield self.y

    def __repr__(self) -> str:
        return f"Position({self.x}, {self.y})"


class Direction(Enum):
    """Cardinal heading, cyclically ordered clockwise."""
    NORTH = "North"
    EAST = "East"
    SOUTH = "South"
    WEST = "West"

    @classmethod
    def parse(cls, value) -> "Direction":
        if isinstance(value, Direction):
            return value
        text = str(value).strip().capitalize()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"Unknown direction: {value!r}")

    @property
    def delta(self) -> Tuple[int, int]:
        return _DELTAS[self]

    def turn_left(self) -> "Direction":
        order = list(Direction)
        return order[(order.index(self) - 1) % 4]

    def turn_right(self) -> "Direction":
        order = list(Direction)
        return order[(order.index(self) + 1) % 4]

    def __str__(self) -> str:
        return self.value


_DELTAS = {
    Direction.NORTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, 1),
    Direction.WEST: (-1, 0),
}


class LockKind(Enum):
    NONE = "none"
    PASSWORD = "password"
    ITEM = "item"


class Lock:
    """Tagged lock descriptor.

    Attributes
    ----------
    kind : LockKind
    secret : password for PASSWORD locks, otherwise None
    required_item_ids : item ids that must all be presented for ITEM locks
    """
    __slots__ = ("kind", "secret", "required_item_ids")

    def __init__(self, kind: LockKind = LockKind.NONE, secret: Optional[str] = None,
                 required_item_ids: Sequence[str] = ()) -> None:
        self.kind = kind
        self.secret = secret
        self.required_item_ids = tuple(required_item_ids)

    @classmethod
    def parse(cls, raw: Optional[Dict]) -> "Lock":
        """Build a lock from maze JSON.

        Both the `{kind, secret, requiredItemId}` form and the
        `{type: "password", value}` / `{type: "item", itemIds}` form are read.
        """
        if not raw:
            return cls()
        kind = LockKind(str(raw.get("kind", raw.get("type", "none"))).lower())
        if kind is LockKind.PASSWORD:
            secret = raw.get("secret", raw.get("value"))
            return cls(kind, secret=None if secret is None else str(secret))
        if kind is LockKind.ITEM:
            ids = list(raw.get("itemIds", []))
            if raw.get("requiredItemId"):
                ids.insert(0, raw["requiredItemId"])
            if not ids:
                raise ValueError("Item lock without required item ids")
            return cls(kind, required_item_ids=ids)
        return cls()

    def __repr__(self) -> str:
        return f"Lock({self.kind.value}, secret={self.secret!r}, items={list(self.required_item_ids)})"


class ItemSpec:
    """Item as declared by the maze. Runtime state lives in the world model."""
    __slots__ = ("id", "position", "type", "category", "name", "is_revealed", "extra")

    def __init__(self, id: str, position: Position, type: str = "item",
                 category: Optional[str] = None, name: Optional[str] = None,
                 is_revealed: bool = True, extra: Optional[Dict[str, Any]] = None) -> None:
        self.id = id
        self.position = position
        self.type = type
        self.category = category
        self.name = name
        self.is_revealed = is_revealed
        self.extra = dict(extra or {})


class DoorSpec:
    __slots__ = ("id", "position", "is_open", "lock")

    def __init__(self, id: str, position: Position, is_open: bool = False,
                 lock: Optional[Lock] = None) -> None:
        self.id = id
        self.position = position
        self.is_open = bool(is_open)
        self.lock = lock or Lock()


class PlateSpec:
    __slots__ = ("id", "position", "is_active", "door_ids")

    def __init__(self, id: str, position: Position, is_active: bool = False,
                 door_ids: Sequence[str] = ()) -> None:
        self.id = id
        self.position = position
        self.is_active = bool(is_active)
        self.door_ids = tuple(door_ids)


class RobotSpec:
    __slots__ = ("name", "position", "direction", "color")

    def __init__(self, name: str, position: Position, direction: Direction,
                 color: Optional[str] = None) -> None:
        self.name = name
        self.position = position
        self.direction = direction
        self.color = color


class PenState:
    __slots__ = ("color", "size", "opacity")

    def __init__(self, color: str, size: int, opacity: float) -> None:
        self.color = color
        self.size = size
        self.opacity = opacity

    def copy(self) -> "PenState":
        return PenState(self.color, self.size, self.opacity)

    def to_dict(self) -> Dict[str, Any]:
        return {"color": self.color, "size": self.size, "opacity": self.opacity}

    def __eq__(self, other) -> bool:
        if isinstance(other, PenState):
            return self.to_dict() == other.to_dict()
        if isinstance(other, dict):
            return all(self.to_dict().get(k) == v for k, v in other.items())
        return NotImplemented

    def __repr__(self) -> str:
        return f"PenState({self.color!r}, size={self.size}, opacity={self.opacity})"


class OpenResult:
    """Outcome of a door open/close attempt. Falsy when it failed."""
    __slots__ = ("success", "message", "required_auth", "missing_items")

    def __init__(self, success: bool, message: Optional[str] = None,
                 required_auth: Optional[str] = None,
                 missing_items: Sequence[str] = ()) -> None:
        self.success = success
        self.message = message
        self.required_auth = required_auth
        self.missing_items = list(missing_items)

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return f"OpenResult(success={self.success}, message={self.message!r})"


class RobotState:
    """Read-only robot snapshot handed to hosts for rendering."""
    __slots__ = ("name", "color", "position", "direction", "inventory", "speed",
                 "health", "appearance", "is_destroyed", "pen")

    def __init__(self, name: str, color: str, position: Position, direction: Direction,
                 inventory: Sequence[str], speed: float, health: int, appearance: str,
                 is_destroyed: bool, pen: Optional[PenState]) -> None:
        self.name = name
        self.color = color
        self.position = position
        self.direction = direction
        self.inventory = tuple(inventory)
        self.speed = speed
        self.health = health
        self.appearance = appearance
        self.is_destroyed = is_destroyed
        self.pen = pen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "color": self.color,
            "position": self.position.to_dict(),
            "direction": self.direction.value,
            "inventory": list(self.inventory),
            "speed": self.speed,
            "health": self.health,
            "appearance": self.appearance,
            "isDestroyed": self.is_destroyed,
            "pen": self.pen.to_dict() if self.pen else None,
        }
