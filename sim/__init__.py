# ================================
# file: sim/__init__.py
# ================================
"""Simulation world: maze grid, world state, doors, plates and grid robots.
NOTE: Nothing here waits or schedules. Pacing lives in nav.action_queue and
orchestration in core.game.
"""
from .maze_map import MazeMap
from .world_state import WorldState
from .doors import DoorController, DoorState
from .plates import PlateMonitor
from .sim_env import SimEnv
from .robot_sim import RobotSim, RobotDestroyedError
from .maze_gen import generate_maze


__all__ = ["MazeMap", "WorldState", "DoorController", "DoorState", "PlateMonitor",
           "SimEnv", "RobotSim", "RobotDestroyedError", "generate_maze"]
