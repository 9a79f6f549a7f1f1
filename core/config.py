# ================================
# file: core/config.py
# ================================
"""
Global configuration for the maze robot scripting engine.
Time values are seconds unless the name says otherwise.

Organization:
1. Grid & Maze
2. Robot Defaults
3. Action Pacing
4. Script Sandbox
5. Network Bridge
6. CLI & Logging
"""
from __future__ import annotations

# ================================
# 1. GRID & MAZE
# ================================
MAZE_FILENAME: str = "maze.json"             # maze definition inside a maze directory
GLOBAL_MODULE_FILENAME: str = "globalModule.py"
MAIN_SCRIPT_FILENAME: str = "main.py"
MAZE_GEN_DEFAULT_SIZE: tuple = (15, 11)      # (W, H) for --generate without explicit size
MAZE_GEN_ITEM_COUNT: int = 8                 # items scattered by the generator

# ================================
# 2. ROBOT DEFAULTS
# ================================
ROBOT_DEFAULT_NAME: str = "Robot"
ROBOT_DEFAULT_COLOR: str = "#3b82f6"
ROBOT_DEFAULT_DIRECTION: str = "North"
ROBOT_DEFAULT_SPEED: float = 1.0             # actions per second
ROBOT_DEFAULT_HEALTH: int = 100
ROBOT_DEFAULT_APPEARANCE: str = "robot"

PEN_DEFAULT_COLOR: str = "#000000"
PEN_DEFAULT_SIZE: int = 1
PEN_DEFAULT_OPACITY: float = 1.0

# ================================
# 3. ACTION PACING
# ================================
ACTION_BASE_INTERVAL_S: float = 1.0          # one action per second at speed 1
ACTION_TIME_SCALE: float = 1.0               # multiplies every pacing interval (0 = no waiting)
PATH_COMMANDS: tuple = ("FORWARD", "LEFT", "RIGHT")

# ================================
# 4. SCRIPT SANDBOX
# ================================
SCRIPT_FILENAME: str = "<learner>"
SCRIPT_ENTRY_NAME: str = "learner_script"    # name of the generated async wrapper
SCRIPT_MAIN_NAME: str = "main"               # awaited after the body when defined but never called
SCRIPT_BRIDGE_NAMES: tuple = ("game", "robot", "readline", "fetch", "console", "exports")

# Calls rewritten into awaited form: (object name, attribute)
AUTO_AWAIT_CALLS: frozenset = frozenset({
    ("readline", "question"),
    ("readline", "question_int"),
    ("readline", "question_float"),
})

INVALID_INT_MESSAGE: str = "Please enter a valid integer."
INVALID_FLOAT_MESSAGE: str = "Please enter a valid number."

# ================================
# 5. NETWORK BRIDGE
# ================================
FETCH_TIMEOUT_S: float = 30.0

# ================================
# 6. CLI & LOGGING
# ================================
LOG_DIR: str = "logs"
LOG_FILENAME_PATTERN: str = "maze_run_log_%Y%m%d_%H%M%S.txt"
RECORD_DEFAULT_PATH: str = "maze_run.npz"
