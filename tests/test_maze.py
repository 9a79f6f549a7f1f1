"""Maze loading, validation and generation."""

import json

import numpy as np
import pytest

from core.types import Direction, LockKind, Position
from sim.maze_gen import generate_maze
from sim.maze_map import MazeMap


class TestLoading:
    def test_from_dict(self, maze_data):
        maze = MazeMap.from_dict(maze_data(
            doors=[{"id": "d1", "position": {"x": 3, "y": 2},
                    "lock": {"type": "password", "value": "42"}}],
            items=[{"id": "scroll", "position": {"x": 2, "y": 2}, "type": "Note",
                    "isRevealed": False, "url": "https://example.test"}],
            plates=[{"id": "p1", "position": {"x": 1, "y": 3}, "doorId": "d1"}],
            global_module="SETUP = True\n",
        ))
        assert (maze.width, maze.height) == (7, 5)
        assert maze.is_wall(0, 0) and not maze.is_wall(1, 1)
        assert maze.is_wall(-1, 2) and maze.is_wall(7, 2)
        assert maze.doors["d1"].lock.kind is LockKind.PASSWORD
        assert maze.items["scroll"].extra == {"url": "https://example.test"}
        assert maze.items["scroll"].is_revealed is False
        assert maze.plates["p1"].door_ids == ("d1",)
        assert maze.door_at(3, 2) == "d1"
        assert maze.plate_at(1, 3) == "p1"
        assert maze.robots[0].direction is Direction.EAST
        assert maze.global_module == "SETUP = True\n"

    def test_dimensions_derived_from_walls(self):
        maze = MazeMap.from_dict({"walls": [[True, False, True], [True, False, True]],
                                  "initialRobots": [{"name": "R", "position": [1, 0]}]})
        assert (maze.width, maze.height) == (3, 2)
        assert maze.robots[0].position == Position(1, 0)
        assert maze.robots[0].direction is Direction.NORTH

    def test_load_from_json(self, tmp_path, maze_data):
        path = tmp_path / "maze.json"
        path.write_text(json.dumps(maze_data()))
        maze = MazeMap()
        maze.load_from_json(str(path))
        info = maze.get_maze_info()
        assert info["wall_count"] == 20
        assert info["free_count"] == 15
        assert info["robots"] == ["Robot 1"]

    def test_round_trip_through_dict(self, maze_data):
        original = MazeMap.from_dict(maze_data(
            doors=[{"id": "d1", "position": {"x": 3, "y": 2},
                    "lock": {"kind": "item", "requiredItemId": "k"}}],
            items=[{"id": "k", "position": {"x": 2, "y": 2}, "colour": "gold"}],
        ))
        copy = MazeMap.from_dict(original.to_dict())
        assert np.array_equal(copy.grid, original.grid)
        assert copy.doors["d1"].lock.required_item_ids == ("k",)
        assert copy.items["k"].extra == {"colour": "gold"}


class TestValidation:
    @pytest.mark.parametrize("overrides, message", [
        ({"items": [{"id": "a", "position": {"x": 1, "y": 2}}, {"id": "a", "position": {"x": 2, "y": 2}}]},
         "Duplicate item id"),
        ({"doors": [{"id": "d", "position": {"x": 9, "y": 9}}]}, "outside the maze"),
        ({"doors": [{"id": "d", "position": {"x": 2, "y": 2},
                     "lock": {"kind": "item", "requiredItemId": "ghost"}}]}, "unknown item"),
        ({"plates": [{"id": "p", "position": {"x": 2, "y": 2}, "doorIds": ["ghost"]}]}, "unknown door"),
        ({"robots": [{"name": "R", "position": {"x": 0, "y": 0}}]}, "inside a wall"),
        ({"robots": [{"name": "R", "position": {"x": 1, "y": 1}},
                     {"name": "R", "position": {"x": 2, "y": 1}}]}, "Duplicate robot name"),
    ])
    def test_rejects_inconsistent_maze(self, maze_data, overrides, message):
        with pytest.raises(ValueError, match=message):
            MazeMap.from_dict(maze_data(**overrides))

    def test_width_mismatch(self, maze_data):
        data = maze_data()
        data["width"] = 9
        with pytest.raises(ValueError):
            MazeMap.from_dict(data)


class TestGenerator:
    def test_seeded_generation_is_reproducible(self):
        assert generate_maze(11, 9, seed=7) == generate_maze(11, 9, seed=7)

    def test_layout(self):
        data = generate_maze(11, 9, item_count=5, seed=3)
        maze = MazeMap.from_dict(data)
        grid = maze.grid
        assert grid[0, :].all() and grid[-1, :].all()
        assert grid[:, 0].all() and grid[:, -1].all()
        # every odd cell is carved
        assert not grid[1::2, 1::2].any()
        assert len(maze.items) == 5
        for item in maze.items.values():
            assert not maze.is_wall(item.position.x, item.position.y)
            assert item.position != Position(1, 1)
        assert maze.robots[0].position == Position(1, 1)

    def test_perfect_maze_is_connected(self):
        maze = MazeMap.from_dict(generate_maze(13, 11, item_count=0, seed=1))
        free = set(maze.free_cells())
        seen, stack = {(1, 1)}, [(1, 1)]
        while stack:
            x, y = stack.pop()
            for dx, dy in ((0, 1), (1, 0), (0, -1), (-1, 0)):
                cell = (x + dx, y + dy)
                if cell in free and cell not in seen:
                    seen.add(cell)
                    stack.append(cell)
        assert seen == free

    def test_too_small(self):
        with pytest.raises(ValueError):
            generate_maze(2, 5)
