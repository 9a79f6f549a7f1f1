# ================================
# file: sim/entities.py
# ================================
"""Script-facing handles for maze entities.

One handle exists per entity per run, so identity comparisons between an
inventory entry and ``game.get_item(...)`` hold.
"""
from __future__ import annotations
from typing import Any, Dict, Optional, TYPE_CHECKING

from core.events import EntityScope
from core.types import ItemSpec, Position

if TYPE_CHECKING:
    from .sim_env import SimEnv

# Attributes scripts may not overwrite on an item
_ITEM_CORE = frozenset({"id", "type", "category", "name", "position", "extra",
                        "is_collected", "is_revealed"})


class _Listenable:
    _scope: EntityScope

    def add_event_listener(self, kind, handler):
        return self._env.bus.subscribe(self._scope, self.id, kind, handler)

    on = add_event_listener


class ItemHandle(_Listenable):
    """A collectible item plus its open bag of script-defined fields.

    Unknown attributes read from and write to ``extra``, so setup code can
    do ``item.secret = "1234"`` and a learner can later read ``item.secret``.
    """
    _scope = EntityScope.ITEM

    def __init__(self, spec: ItemSpec, env: "SimEnv") -> None:
        self.__dict__.update({
            "_env": env,
            "id": spec.id,
            "type": spec.type,
            "category": spec.category,
            "name": spec.name,
            "extra": dict(spec.extra),
        })

    @property
    def position(self) -> Optional[Position]:
        return self._env.world.item_position(self.id)

    @property
    def is_collected(self) -> bool:
        return self._env.world.is_item_collected(self.id)

    @property
    def is_revealed(self) -> bool:
        return self._env.world.is_item_revealed(self.id)

    def collect(self) -> None:
        self._env.collect_item(self, robot=None)

    def reveal(self) -> None:
        self._env.world.reveal_item(self.id)

    def __getattr__(self, name: str) -> Any:
        extra = self.__dict__.get("extra", {})
        if name in extra:
            return extra[name]
        raise AttributeError(f"Item {self.__dict__.get('id')!r} has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _ITEM_CORE or name.startswith("_"):
            raise AttributeError(f"Item attribute {name!r} is read-only")
        self.extra[name] = value

    # hook used by the sandbox write guard
    __guarded_setattr__ = __setattr__

    def __getitem__(self, key: str) -> Any:
        return self.extra[key]

    def to_dict(self) -> Dict[str, Any]:
        pos = self.position
        data = dict(self.extra)
        data.update({"id": self.id, "type": self.type, "category": self.category,
                     "position": pos.to_dict() if pos else None,
                     "isCollected": self.is_collected, "isRevealed": self.is_revealed})
        return data

    def __repr__(self) -> str:
        return f"Item({self.id!r}, type={self.type!r})"


class DoorHandle:
    def __init__(self, door_id: str, env: "SimEnv") -> None:
        self._env = env
        self.id = door_id
        spec = env.maze.doors[door_id]
        self.position = spec.position.copy()
        self.lock = spec.lock.kind.value

    @property
    def is_open(self) -> bool:
        return self._env.world.is_door_open(self.id)

    @property
    def state(self) -> str:
        return self._env.doors.state(self.id).value

    def open(self):
        """Open regardless of the lock. Used by maze setup code."""
        return self._env.doors.open_door(self.id, override=True)

    def close(self):
        return self._env.doors.close_door(self.id)

    def __repr__(self) -> str:
        return f"Door({self.id!r}, open={self.is_open})"


class PlateHandle(_Listenable):
    _scope = EntityScope.PLATE

    def __init__(self, plate_id: str, env: "SimEnv") -> None:
        self._env = env
        self.id = plate_id
        self.position = env.maze.plates[plate_id].position.copy()

    @property
    def is_active(self) -> bool:
        return self._env.world.is_plate_active(self.id)

    def __repr__(self) -> str:
        return f"PressurePlate({self.id!r}, active={self.is_active})"


class ScanResult:
    """What a robot sees: an item, a door or a pressure plate."""
    __slots__ = ("kind", "id", "position", "entity")

    def __init__(self, kind: str, entity) -> None:
        self.kind = kind
        self.id = entity.id
        self.position = entity.position
        self.entity = entity

    @property
    def is_open(self) -> Optional[bool]:
        return self.entity.is_open if self.kind == "door" else None

    def __getattr__(self, name: str) -> Any:
        # fall through to the scanned entity (item type and extras, door lock)
        if name == "entity":
            raise AttributeError(name)
        return getattr(self.entity, name)

    def __repr__(self) -> str:
        return f"ScanResult({self.kind!r}, {self.id!r})"
