# ================================
# file: appio/logger.py
# ================================
from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import time
import numpy as np

from core.types import Direction

_HEADINGS = [d.value for d in Direction]


def log_to_file(log_file, message, module="MAIN"):
    """Write message to log file with timestamp and module"""
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    log_entry = f"[{timestamp}] [{module}] {message}\n"
    log_file.write(log_entry)
    log_file.flush()  # Ensure immediate write
    print(log_entry.strip())  # Also print to console


class RunLogger:
    """Simple NPZ logger for robot poses, applied commands, log lines and the run outcome."""
    def __init__(self) -> None:
        self.t0 = time.time()
        self.robots: List[str] = []
        self.poses: List[Tuple[float, int, int, int, int]] = []
        self.cmds: List[Tuple[float, int, str, float]] = []
        self.events: List[Tuple[float, str, str]] = []
        self.outcome: Optional[Tuple[str, str]] = None

    def _robot_index(self, name: str) -> int:
        if name not in self.robots:
            self.robots.append(name)
        return self.robots.index(name)

    def log_pose(self, robot: str, x: int, y: int, direction: str) -> None:
        self.poses.append((time.time()-self.t0, self._robot_index(robot), int(x), int(y),
                           _HEADINGS.index(direction)))

    def log_command(self, robot: str, action: str, interval: float) -> None:
        self.cmds.append((time.time()-self.t0, self._robot_index(robot), action, float(interval)))

    def log_event(self, message: str, kind: str) -> None:
        self.events.append((time.time()-self.t0, kind, message))

    def log_outcome(self, kind: str, message: str) -> None:
        self.outcome = (kind, message)

    def commands_for(self, robot: str) -> List[str]:
        if robot not in self.robots:
            return []
        idx = self.robots.index(robot)
        return [action for _, r, action, _ in self.cmds if r == idx]

    def save(self, path: str) -> None:
        # Strings go into unicode arrays so the archive loads without pickle
        poses = np.array(self.poses, dtype=float).reshape(-1, 5)
        np.savez_compressed(
            path,
            robots=np.array(self.robots, dtype=str),
            poses=poses,
            cmd_t=np.array([c[0] for c in self.cmds], dtype=float),
            cmd_robot=np.array([c[1] for c in self.cmds], dtype=int),
            cmd_action=np.array([c[2] for c in self.cmds], dtype=str),
            cmd_interval=np.array([c[3] for c in self.cmds], dtype=float),
            event_t=np.array([e[0] for e in self.events], dtype=float),
            event_kind=np.array([e[1] for e in self.events], dtype=str),
            event_msg=np.array([e[2] for e in self.events], dtype=str),
            outcome=np.array(self.outcome or ("", ""), dtype=str),
        )

    @staticmethod
    def load(path: str) -> Dict[str, np.ndarray]:
        with np.load(path) as data:
            return {key: data[key] for key in data.files}
