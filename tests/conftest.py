"""
Pytest configuration for the maze engine tests.

Adds the repository root to sys.path so tests import core, sim, nav, script
and appio the same way main.py does, and provides small maze builders.

NOTE: Do not create __init__.py files in tests/ to avoid shadowing the
top-level packages.
"""

import sys
from pathlib import Path

import pytest

_root_path = str(Path(__file__).resolve().parent.parent)
if _root_path not in sys.path:
    sys.path.insert(0, _root_path)

from core.game import Game  # noqa: E402
from sim.maze_map import MazeMap  # noqa: E402


def bordered_walls(width, height, inner=()):
    """Open room surrounded by a one-cell wall, plus any extra wall cells."""
    walls = [[x in (0, width - 1) or y in (0, height - 1) for x in range(width)]
             for y in range(height)]
    for x, y in inner:
        walls[y][x] = True
    return walls


def build_maze(width=7, height=5, inner=(), robots=None, doors=(), items=(), plates=(),
               global_module=None):
    if robots is None:
        robots = [{"name": "Robot 1", "position": {"x": 1, "y": 1}, "direction": "East"}]
    data = {
        "width": width,
        "height": height,
        "walls": bordered_walls(width, height, inner),
        "robots": robots,
        "doors": list(doors),
        "items": list(items),
        "pressurePlates": list(plates),
    }
    if global_module is not None:
        data["globalModule"] = global_module
    return data


@pytest.fixture
def maze_data():
    """Factory returning maze JSON dicts (see ``build_maze``)."""
    return build_maze


@pytest.fixture
def make_game():
    """Factory building a Game that applies actions without pacing delays."""

    def factory(data=None, **kwargs):
        kwargs.setdefault("time_scale", 0.0)
        return Game(MazeMap.from_dict(data or build_maze()), **kwargs)

    return factory
