# ================================
# file: core/__init__.py
# ================================
"""
Core Package

Exports fundamental types, configuration, the event bus and the robot API.
The game coordinator lives in core.game (it pulls in sim and nav).
"""
from core.types import (
    Position, Direction, LockKind, Lock, ItemSpec, DoorSpec, PlateSpec, RobotSpec,
    PenState, OpenResult, RobotState,
)
from core.events import EventBus, EventKind, EntityScope
from core.config import (
    # Robot defaults
    ROBOT_DEFAULT_SPEED, ROBOT_DEFAULT_HEALTH,

    # Pacing
    ACTION_BASE_INTERVAL_S, ACTION_TIME_SCALE, PATH_COMMANDS,

    # Sandbox
    AUTO_AWAIT_CALLS, SCRIPT_BRIDGE_NAMES,
)
from core.robot_adapter import RobotAdapter

__all__ = [
    # Types
    'Position', 'Direction', 'LockKind', 'Lock', 'ItemSpec', 'DoorSpec', 'PlateSpec',
    'RobotSpec', 'PenState', 'OpenResult', 'RobotState',

    # Events
    'EventBus', 'EventKind', 'EntityScope',

    # Configuration
    'ROBOT_DEFAULT_SPEED', 'ROBOT_DEFAULT_HEALTH',
    'ACTION_BASE_INTERVAL_S', 'ACTION_TIME_SCALE', 'PATH_COMMANDS',
    'AUTO_AWAIT_CALLS', 'SCRIPT_BRIDGE_NAMES',

    # Adapters
    'RobotAdapter',
]
