"""Tests for the world model: storage, idempotence and notification."""

import pytest

from core.types import Position
from sim.maze_map import MazeMap
from sim.world_state import WorldState


@pytest.fixture
def maze(maze_data):
    return MazeMap.from_dict(maze_data(
        doors=[
            {"id": "d-open", "position": {"x": 3, "y": 1}, "isOpen": True},
            {"id": "d-closed", "position": {"x": 3, "y": 3}},
        ],
        items=[
            {"id": "gem", "position": {"x": 2, "y": 2}, "type": "Treasure"},
            {"id": "hidden", "position": {"x": 4, "y": 2}, "isRevealed": False},
        ],
        plates=[{"id": "p1", "position": {"x": 5, "y": 1}}],
    ))


@pytest.fixture
def world(maze):
    calls = []
    state = WorldState(notify=lambda: calls.append(1))
    state.reset(maze)
    state.calls = calls
    calls.clear()
    return state


class TestReset:
    def test_door_states_seeded_from_maze(self, world):
        assert world.is_door_open("d-open") is True
        assert world.is_door_open("d-closed") is False

    def test_reset_leaves_no_residue(self, world, maze, maze_data):
        world.collect_item("gem")
        world.reveal_item("hidden")
        world.close_door("d-open")

        world.reset(maze)

        assert world.is_item_collected("gem") is False
        assert world.is_item_revealed("hidden") is False
        assert world.is_door_open("d-open") is True
        assert world.item_position("gem") == Position(2, 2)

    def test_reset_to_other_maze_forgets_old_ids(self, world, maze_data):
        world.reset(MazeMap.from_dict(maze_data()))
        with pytest.raises(KeyError):
            world.is_door_open("d-open")


class TestDoors:
    def test_open_is_idempotent_but_still_notifies(self, world):
        world.open_door("d-open")
        world.open_door("d-open")
        assert world.is_door_open("d-open") is True
        assert len(world.calls) == 2

    def test_close_then_open(self, world):
        world.close_door("d-open")
        assert world.is_door_open("d-open") is False
        world.open_door("d-open")
        assert world.is_door_open("d-open") is True

    def test_unknown_door(self, world):
        with pytest.raises(KeyError):
            world.open_door("nope")


class TestItems:
    def test_collect_twice_keeps_single_entry(self, world):
        world.collect_item("gem")
        world.collect_item("gem")
        snap = world.snapshot()
        assert snap["collectedItemIds"] == ("gem",)
        assert world.item_position("gem") is None
        assert world.items_at(2, 2) == []

    def test_reveal_is_separate_from_collect(self, world):
        assert world.is_item_revealed("hidden") is False
        world.reveal_item("hidden")
        assert world.is_item_revealed("hidden") is True
        assert world.is_item_collected("hidden") is False

    def test_drop_puts_item_back_on_grid(self, world):
        world.collect_item("gem")
        world.drop_item("gem", Position(1, 3))
        assert world.is_item_collected("gem") is False
        assert world.items_at(1, 3) == ["gem"]

    def test_uncollect_restores_original_position(self, world):
        world.collect_item("gem")
        world.uncollect_item("gem")
        assert world.item_position("gem") == Position(2, 2)


class TestPlates:
    def test_notifies_only_on_change(self, world):
        assert world.set_plate_active("p1", True) is True
        assert world.set_plate_active("p1", True) is False
        assert len(world.calls) == 1
        assert world.is_plate_active("p1") is True


class TestSnapshot:
    def test_snapshot_is_read_only(self, world):
        snap = world.snapshot()
        with pytest.raises(TypeError):
            snap["doorStates"]["d-open"] = False
        with pytest.raises(TypeError):
            snap["extra"] = 1
        assert isinstance(snap["collectedItemIds"], tuple)

    def test_snapshot_is_a_copy(self, world):
        snap = world.snapshot()
        world.close_door("d-open")
        assert snap["doorStates"]["d-open"] is True
        assert world.snapshot()["doorStates"]["d-open"] is False

    def test_snapshot_contents(self, world):
        world.reveal_item("hidden")
        snap = world.snapshot()
        assert snap["revealedItemIds"] == ("hidden",)
        assert snap["pressurePlateStates"]["p1"] is False
        assert snap["itemPositions"]["gem"] == {"x": 2, "y": 2}
