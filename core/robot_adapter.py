# ================================
# file: core/robot_adapter.py
# ================================
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from core.types import OpenResult, Position, RobotState


class RobotAdapter(ABC):
    """Robot API as seen by learner scripts.

    Actions are coroutines that resolve once the robot's action queue has
    applied them. Accessors and configuration calls are synchronous.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def position(self) -> Position:
        pass

    @property
    @abstractmethod
    def direction(self) -> str:
        pass

    @property
    @abstractmethod
    def inventory(self) -> List[Any]:
        pass

    @abstractmethod
    async def move_forward(self) -> bool:
        """Step one cell ahead. False when blocked."""
        pass

    @abstractmethod
    async def turn_left(self) -> str:
        pass

    @abstractmethod
    async def turn_right(self) -> str:
        pass

    @abstractmethod
    def can_move_forward(self) -> bool:
        """Pure query, costs no pacing tick."""
        pass

    @abstractmethod
    async def pickup(self):
        pass

    @abstractmethod
    async def drop(self, item):
        pass

    @abstractmethod
    async def open_door(self, credential=None) -> OpenResult:
        pass

    @abstractmethod
    async def close_door(self) -> OpenResult:
        pass

    @abstractmethod
    async def scan(self):
        pass

    @abstractmethod
    async def echo(self) -> int:
        pass

    @abstractmethod
    async def execute_path(self, commands: Iterable[str]) -> bool:
        pass

    @abstractmethod
    def set_speed(self, speed: float) -> None:
        pass

    @abstractmethod
    def set_pen(self, config: Optional[Dict]) -> Optional[Dict]:
        pass

    @abstractmethod
    def add_event_listener(self, kind, handler):
        pass

    def on(self, kind, handler):
        return self.add_event_listener(kind, handler)

    @abstractmethod
    def state(self) -> RobotState:
        pass
