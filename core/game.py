# ================================
# file: core/game.py
# ================================
from __future__ import annotations
"""Game coordinator.

Owns one run: the simulation environment built from the maze, the robot
registry, the outcome latch and the script tasks. Every reset bumps
``generation``; queued actions and pending prompts from an older generation
are rejected instead of touching the new world.
"""
import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from core.config import ACTION_BASE_INTERVAL_S, ACTION_TIME_SCALE, ROBOT_DEFAULT_NAME
from core.events import EntityScope, EventKind
from core.robot_factory import RobotFactory
from core.types import Direction, Position
from nav.action_queue import CancelledRunError
from sim.entities import DoorHandle, ItemHandle, PlateHandle
from sim.maze_map import MazeMap
from sim.sim_env import SimEnv
from sim.sim_robot_adapter import SimRobotAdapter


class GameError(RuntimeError):
    """Bad lookup or request made against the game (unknown id, bad robot)."""


class Outcome:
    """How a run ended. ``won``/``failed`` come from the latch; ``error`` and
    ``incomplete`` are decided when the scripts finish without latching."""
    __slots__ = ("kind", "message")

    WON = "won"
    FAILED = "failed"
    ERROR = "error"
    INCOMPLETE = "incomplete"

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        self.message = message

    @property
    def success(self) -> bool:
        return self.kind == Outcome.WON

    def __repr__(self) -> str:
        return f"Outcome({self.kind!r}, {self.message!r})"


class Game:
    def __init__(self, maze: MazeMap,
                 on_log: Optional[Callable[[str, str], None]] = None,
                 on_state_change: Optional[Callable[[], None]] = None,
                 on_robot_update: Optional[Callable[[Dict], None]] = None,
                 on_completion: Optional[Callable[[Outcome], None]] = None,
                 logger_func=None, log_file=None,
                 time_scale: float = ACTION_TIME_SCALE,
                 base_interval: float = ACTION_BASE_INTERVAL_S,
                 input_provider: Optional[Callable[[str], Awaitable[str]]] = None,
                 recorder=None) -> None:
        self._on_log = on_log
        self._on_state_change = on_state_change
        self._on_robot_update = on_robot_update
        self._on_completion = on_completion
        self.logger_func = logger_func
        self.log_file = log_file
        self.time_scale = time_scale
        self.base_interval = base_interval
        self.input_provider = input_provider
        self.recorder = recorder
        self.generation = 0
        self.maze = maze
        self.errors: List[str] = []
        self._tasks: set = set()
        self._robots: Dict[str, SimRobotAdapter] = {}
        self._input_future: Optional[asyncio.Future] = None
        self.input_prompt: Optional[str] = None
        self._outcome: Optional[Outcome] = None
        self._stopped = False
        self._building = False
        self.env: Optional[SimEnv] = None
        self.reset(maze)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def _log(self, message: str, module: str = "GAME") -> None:
        """Log message using the provided logger function"""
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, module)

    def emit_log(self, message: str, kind: str = "robot") -> None:
        """Send a line to the host (``kind`` is "user" or "robot") and the log file."""
        if self._on_log is not None:
            self._on_log(message, kind)
        self._log(message, "USER" if kind == "user" else "ROBOT")
        if self.recorder is not None:
            self.recorder.log_event(message, kind)

    def _listener_error(self, kind: EventKind, exc: BaseException) -> None:
        self.emit_log(f"Listener error ({kind.value}): {exc}", "robot")

    def _notify(self) -> None:
        if not self._building and self._on_state_change is not None:
            self._on_state_change()

    def _action_applied(self, robot: str, action: str, interval: float) -> None:
        if self.recorder is not None:
            sim = self.env.robots[robot]
            self.recorder.log_command(robot, action, interval)
            self.recorder.log_pose(robot, sim.position.x, sim.position.y, sim.direction.value)
        if self._on_robot_update is not None:
            self._on_robot_update(self.robot_states())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def reset(self, maze: Optional[MazeMap] = None) -> None:
        """Tear down the current run and rebuild everything from ``maze``."""
        self._teardown()
        self.generation += 1
        self.maze = maze or self.maze
        self._building = True
        try:
            self.env = SimEnv(self.maze, notify=self._notify, logger=self._log,
                              on_listener_error=self._listener_error)
            self._robots = {}
            for spec in self.maze.robots:
                self._spawn(spec.name, spec.position, spec.direction, spec.color)
        finally:
            self._building = False
        self._outcome = None
        self._stopped = False
        self.errors = []
        self._log(f"reset to generation {self.generation}: {self.maze.width}x{self.maze.height}, "
                  f"{len(self._robots)} robot(s)")
        self._notify()

    def stop(self) -> None:
        """Abort the run without deciding an outcome."""
        if not self._stopped:
            self._log("run stopped")
        self._stopped = True
        self._teardown()

    def _teardown(self) -> None:
        for robot in self._robots.values():
            robot.shutdown()
        if self._input_future is not None and not self._input_future.done():
            self._input_future.set_exception(CancelledRunError("run was cancelled"))
        self._input_future = None
        self.input_prompt = None
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        if self.env is not None:
            self.env.bus.clear()

    def is_live(self, generation: int) -> bool:
        return generation == self.generation and self._outcome is None and not self._stopped

    def is_running(self) -> bool:
        return self._outcome is None and not self._stopped

    @property
    def outcome(self) -> Optional[Outcome]:
        return self._outcome

    # ------------------------------------------------------------------
    # Outcome latch
    # ------------------------------------------------------------------
    def win(self, message: str = "You win!") -> None:
        self._latch(Outcome(Outcome.WON, str(message)))

    def fail(self, message: str = "You failed.") -> None:
        self._latch(Outcome(Outcome.FAILED, str(message)))

    def _latch(self, outcome: Outcome) -> bool:
        """First writer wins; later calls are ignored."""
        if self._outcome is not None or self._stopped:
            self._log(f"ignored {outcome.kind} after run ended: {outcome.message}")
            return False
        self._outcome = outcome
        label = {Outcome.WON: "WIN", Outcome.FAILED: "FAIL"}.get(outcome.kind)
        if label:
            self.emit_log(f"{label}: {outcome.message}", "robot")
        if self.recorder is not None:
            self.recorder.log_outcome(outcome.kind, outcome.message)
        self._teardown()
        if self._on_completion is not None:
            self._on_completion(outcome)
        return True

    def report_error(self, message: str) -> None:
        """Record an uncaught script error. Other scripts keep running."""
        self.errors.append(message)
        self.emit_log(f"Runtime Error: {message}", "robot")

    def finish(self, generation: Optional[int] = None) -> Optional[Outcome]:
        """Decide the outcome once every script has returned.

        A run started under an older ``generation`` was abandoned by a reset:
        it gets an unlatched ``incomplete`` outcome and leaves the new run alone.
        """
        if generation is not None and generation != self.generation:
            return Outcome(Outcome.INCOMPLETE, "Run was reset before it finished.")
        if self._outcome is None and not self._stopped:
            if self.errors:
                self._latch(Outcome(Outcome.ERROR, self.errors[0]))
            else:
                self._latch(Outcome(Outcome.INCOMPLETE, "Script finished without completing the maze."))
        return self._outcome

    # ------------------------------------------------------------------
    # Tasks & input
    # ------------------------------------------------------------------
    def spawn(self, coro, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def is_waiting_for_input(self) -> bool:
        return self._input_future is not None and not self._input_future.done()

    async def request_input(self, prompt: str = "") -> str:
        generation = self.generation
        if self.input_provider is not None:
            value = await self.input_provider(prompt)
        else:
            if self.is_waiting_for_input:
                raise GameError("Another prompt is already waiting for input")
            self._input_future = asyncio.get_running_loop().create_future()
            self.input_prompt = prompt
            try:
                value = await self._input_future
            finally:
                self._input_future = None
                self.input_prompt = None
        if not self.is_live(generation):
            raise CancelledRunError("run was cancelled while waiting for input")
        return value

    def resolve_input(self, value: str) -> bool:
        """Answer the pending prompt. False when nothing is waiting."""
        if not self.is_waiting_for_input:
            return False
        self._input_future.set_result(str(value))
        return True

    # ------------------------------------------------------------------
    # Robots
    # ------------------------------------------------------------------
    def _spawn(self, name: str, position: Position, direction: Direction,
               color: Optional[str]) -> SimRobotAdapter:
        generation = self.generation
        try:
            robot = RobotFactory.create_robot_adapter(
                self.env, name, position, direction, color,
                is_live=lambda: self.is_live(generation),
                base_interval=self.base_interval, time_scale=self.time_scale,
                on_applied=self._action_applied)
        except ValueError as exc:
            raise GameError(str(exc)) from None
        self.env.robots[name].on_destroyed = self._robot_destroyed
        self._robots[name] = robot
        return robot

    def _robot_destroyed(self, robot_sim) -> None:
        self.emit_log(f"{robot_sim.name} was destroyed", "robot")
        if all(r.is_destroyed for r in self.env.robots.values()):
            self.fail("All robots destroyed")

    def create_robot(self, x: Optional[int] = None, y: Optional[int] = None,
                     name: Optional[str] = None, color: Optional[str] = None,
                     direction=Direction.NORTH, position=None) -> SimRobotAdapter:
        """Add a robot mid-run. ``robot_created`` listeners see it before it can act."""
        if position is not None:
            pos = Position.parse(position)
        elif x is not None and y is not None:
            pos = Position(x, y)
        else:
            raise GameError("create_robot() needs x and y or a position")
        if name is None:
            n = len(self._robots) + 1
            while f"{ROBOT_DEFAULT_NAME} {n}" in self._robots:
                n += 1
            name = f"{ROBOT_DEFAULT_NAME} {n}"
        robot = self._spawn(str(name), pos, Direction.parse(direction), color)
        self._log(f"created robot {robot.name} at ({pos.x}, {pos.y})")
        self.env.bus.emit(EntityScope.GAME, None, EventKind.ROBOT_CREATED, robot)
        self._notify()
        return robot

    def get_robot(self, name: str) -> SimRobotAdapter:
        if name not in self._robots:
            raise GameError(f"Robot not found: {name}")
        return self._robots[name]

    @property
    def robots(self) -> List[SimRobotAdapter]:
        return list(self._robots.values())

    def robot_states(self) -> Dict[str, Dict]:
        return {name: robot.state().to_dict() for name, robot in self._robots.items()}

    # ------------------------------------------------------------------
    # Entity lookups
    # ------------------------------------------------------------------
    def get_door(self, door_id: str) -> DoorHandle:
        if door_id not in self.env.door_handles:
            raise GameError(f"Door not found: {door_id}")
        return self.env.door_handles[door_id]

    def get_item(self, item_id: str) -> ItemHandle:
        if item_id not in self.env.items:
            raise GameError(f"Item not found: {item_id}")
        return self.env.items[item_id]

    def get_pressure_plate(self, plate_id: str) -> PlateHandle:
        if plate_id not in self.env.plate_handles:
            raise GameError(f"Pressure plate not found: {plate_id}")
        return self.env.plate_handles[plate_id]

    def get_item_on_position(self, x: int, y: int) -> Optional[ItemHandle]:
        items = self.env.ground_items_at(int(x), int(y))
        return items[0] if items else None

    @property
    def items(self) -> List[ItemHandle]:
        """Items not collected yet."""
        return [item for item in self.env.items.values() if not item.is_collected]

    def add_event_listener(self, kind, handler):
        return self.env.bus.subscribe(EntityScope.GAME, None, kind, handler)

    on = add_event_listener

    def snapshot(self):
        return self.env.world.snapshot()
