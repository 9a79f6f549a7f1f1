# ================================
# file: sim/sim_robot_adapter.py
# ================================
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from core.config import PATH_COMMANDS
from core.events import EntityScope
from core.robot_adapter import RobotAdapter
from core.types import Position, RobotState
from nav.action_queue import ActionQueue
from .robot_sim import RobotSim


class SimRobotAdapter(RobotAdapter):
    """Script-facing robot: routes every action through the robot's queue."""

    def __init__(self, robot_sim: RobotSim, queue: ActionQueue) -> None:
        self._sim = robot_sim
        self._queue = queue
        robot_sim.handle = self

    def shutdown(self) -> None:
        """Reject pending actions. Called when the run is torn down."""
        self._queue.close()

    # ---- accessors ------------------------------------------------------
    @property
    def name(self) -> str:
        return self._sim.name

    @property
    def color(self) -> str:
        return self._sim.color

    @property
    def position(self) -> Position:
        return self._sim.position.copy()

    @property
    def direction(self) -> str:
        return self._sim.direction.value

    @property
    def inventory(self) -> List[Any]:
        return list(self._sim.inventory)

    @property
    def speed(self) -> float:
        return self._sim.speed

    @property
    def pen(self) -> Optional[Dict]:
        pen = self._sim.pen
        return pen.to_dict() if pen else None

    @property
    def health(self) -> int:
        return self._sim.health

    @property
    def appearance(self) -> str:
        return self._sim.appearance

    @property
    def is_destroyed(self) -> bool:
        return self._sim.is_destroyed

    # ---- queued actions -------------------------------------------------
    async def _submit(self, name: str, apply):
        self._sim.ensure_alive()
        return await self._queue.submit(name, apply)

    async def move_forward(self) -> bool:
        return await self._submit("FORWARD", self._sim.move_forward)

    async def turn_left(self) -> str:
        return (await self._submit("LEFT", self._sim.turn_left)).value

    async def turn_right(self) -> str:
        return (await self._submit("RIGHT", self._sim.turn_right)).value

    async def pickup(self):
        return await self._submit("PICKUP", self._sim.pickup)

    async def drop(self, item):
        return await self._submit("DROP", lambda: self._sim.drop(item))

    async def open_door(self, credential=None):
        return await self._submit("OPEN_DOOR", lambda: self._sim.open_door(credential))

    async def close_door(self):
        return await self._submit("CLOSE_DOOR", self._sim.close_door)

    async def scan(self):
        return await self._submit("SCAN", self._sim.scan)

    async def echo(self) -> int:
        return await self._submit("ECHO", self._sim.echo)

    async def execute_path(self, commands: Iterable[str]) -> bool:
        """Run FORWARD/LEFT/RIGHT tokens one paced action at a time.
        Returns False if any FORWARD was blocked."""
        if isinstance(commands, str):
            raise TypeError("execute_path() expects a list of commands")
        tokens = list(commands)
        for token in tokens:
            if not isinstance(token, str) or token.upper() not in PATH_COMMANDS:
                raise ValueError(f"Invalid command: {token}")
        all_moved = True
        for token in tokens:
            command = token.upper()
            if command == "FORWARD":
                all_moved = await self.move_forward() and all_moved
            elif command == "LEFT":
                await self.turn_left()
            else:
                await self.turn_right()
        return all_moved

    # ---- immediate calls ------------------------------------------------
    def can_move_forward(self) -> bool:
        return self._sim.can_move_forward()

    def set_speed(self, speed: float) -> None:
        self._sim.set_speed(speed)

    def set_pen(self, config: Optional[Dict]) -> Optional[Dict]:
        pen = self._sim.set_pen(config)
        return pen.to_dict() if pen else None

    def set_appearance(self, appearance: str) -> None:
        self._sim.set_appearance(appearance)

    def damage(self, amount: int) -> int:
        return self._sim.damage(amount)

    def destroy(self) -> None:
        self._sim.destroy()

    def add_event_listener(self, kind, handler):
        return self._sim.env.bus.subscribe(EntityScope.ROBOT, self.name, kind, handler)

    def state(self) -> RobotState:
        return self._sim.state()

    def __repr__(self) -> str:
        r = self._sim
        return f"Robot({r.name!r}, at=({r.position.x}, {r.position.y}), facing={r.direction.value})"
