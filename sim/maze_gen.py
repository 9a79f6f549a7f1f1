# ================================
# file: sim/maze_gen.py
# ================================
from __future__ import annotations
from typing import Dict, Optional
import numpy as np

from core.config import MAZE_GEN_ITEM_COUNT, ROBOT_DEFAULT_NAME

ITEM_TEMPLATES = [
    ("Apple", "Food"),
    ("Battery", "Energy"),
    ("Gem", "Treasure"),
    ("Key", "Tool"),
    ("Potion", "Consumable"),
    ("Coin", "Treasure"),
    ("Map", "Tool"),
]

# (dx, dy) two cells at a time so walls stay between corridors
_STEPS = np.array([(0, -2), (2, 0), (0, 2), (-2, 0)])


def generate_maze(width: int, height: int, item_count: int = MAZE_GEN_ITEM_COUNT,
                  seed: Optional[int] = None) -> Dict:
    """Recursive-backtracker maze carved from (1, 1), returned as maze JSON.

    Corridors sit on odd coordinates; odd width/height give a closed border.
    A single robot starts at (1, 1) facing East.
    """
    if width < 3 or height < 3:
        raise ValueError("Maze must be at least 3x3")
    rng = np.random.default_rng(seed)
    walls = np.ones((height, width), dtype=bool)

    # iterative DFS; recursion depth would explode on large mazes
    walls[1, 1] = False
    stack = [(1, 1)]
    while stack:
        x, y = stack[-1]
        options = []
        for dx, dy in _STEPS[rng.permutation(4)]:
            nx, ny = x + int(dx), y + int(dy)
            if 0 < nx < width - 1 and 0 < ny < height - 1 and walls[ny, nx]:
                options.append((nx, ny, dx // 2, dy // 2))
        if not options:
            stack.pop()
            continue
        nx, ny, hx, hy = options[0]
        walls[y + int(hy), x + int(hx)] = False
        walls[ny, nx] = False
        stack.append((nx, ny))

    free = [(int(x), int(y)) for y, x in zip(*np.nonzero(~walls)) if (x, y) != (1, 1)]
    count = min(item_count, len(free))
    picks = rng.choice(len(free), size=count, replace=False) if count else []
    items = []
    for i, idx in enumerate(picks):
        x, y = free[int(idx)]
        name, kind = ITEM_TEMPLATES[int(rng.integers(len(ITEM_TEMPLATES)))]
        items.append({"id": f"item-{i}", "name": name, "type": kind, "position": {"x": x, "y": y}})

    return {
        "width": width,
        "height": height,
        "walls": walls.tolist(),
        "robots": [{"name": ROBOT_DEFAULT_NAME, "position": {"x": 1, "y": 1}, "direction": "East"}],
        "doors": [],
        "items": items,
        "pressurePlates": [],
    }
