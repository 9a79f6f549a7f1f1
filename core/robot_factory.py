# ================================
# file: core/robot_factory.py
# ================================
from typing import Callable, Optional

from core.config import ACTION_BASE_INTERVAL_S, ACTION_TIME_SCALE
from core.types import Direction, Position
from nav.action_queue import ActionQueue
from sim.robot_sim import RobotSim
from sim.sim_env import SimEnv
from sim.sim_robot_adapter import SimRobotAdapter


class RobotFactory:
    """Builds a simulated robot, its action queue and its script-facing adapter."""

    @staticmethod
    def create_robot_adapter(env: SimEnv, name: str, position: Position,
                             direction: Direction = Direction.NORTH,
                             color: Optional[str] = None,
                             is_live: Optional[Callable[[], bool]] = None,
                             base_interval: float = ACTION_BASE_INTERVAL_S,
                             time_scale: float = ACTION_TIME_SCALE,
                             on_applied: Optional[Callable[[str, str, float], None]] = None) -> SimRobotAdapter:
        if name in env.robots:
            raise ValueError(f"Robot name already in use: {name}")
        if env.maze.is_wall(position.x, position.y):
            raise ValueError(f"Cannot place robot {name} on a wall at ({position.x}, {position.y})")
        robot_sim = RobotSim(env, name, position, direction, color)
        queue = ActionQueue(name, speed=lambda: robot_sim.speed,
                            is_live=is_live or (lambda: True),
                            base_interval=base_interval, time_scale=time_scale,
                            on_applied=on_applied)
        env.robots[name] = robot_sim
        return SimRobotAdapter(robot_sim, queue)
