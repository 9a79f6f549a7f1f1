# ================================
# file: main.py
# ================================
from __future__ import annotations
"""Project entrypoint: runs a learner script against a maze in the terminal.

Usage (maze directory with maze.json, optional globalModule.py and main.py):
    python main.py ./mazes/doors
Usage (explicit maze + script):
    python main.py ./maze.json ./solution.py
Usage (random maze, built-in wall follower):
    python main.py --generate 15x11 --speed-scale 0.1
"""
import argparse
import asyncio
import json
import os
import sys
import threading
from datetime import datetime
from typing import List, Optional, Tuple

from core.config import (
    GLOBAL_MODULE_FILENAME, LOG_DIR, LOG_FILENAME_PATTERN, MAIN_SCRIPT_FILENAME,
    MAZE_FILENAME, MAZE_GEN_DEFAULT_SIZE,
)
from core.game import Game, Outcome
from core.types import Direction
from sim import MazeMap, generate_maze
from script import ScriptExecutor
from appio import RunLogger, log_to_file

DEFAULT_SCRIPT = """\
# Left-hand wall follower: keep a hand on the left wall, grab whatever is underfoot.
for step in range(1000):
    if not game.items:
        game.win("Collected every item!")
        break
    await robot.pickup()
    await robot.turn_left()
    turns = 0
    while not robot.can_move_forward() and turns < 4:
        await robot.turn_right()
        turns += 1
    await robot.move_forward()
"""

_ARROWS = {Direction.NORTH: "^", Direction.EAST: ">", Direction.SOUTH: "v", Direction.WEST: "<"}


def render_ascii(game: Game) -> str:
    """Text view of the current world: # wall, D/d closed/open door, o/O plate, * item, arrows robots."""
    maze = game.maze
    rows = [["#" if maze.grid[y, x] else "." for x in range(maze.width)] for y in range(maze.height)]
    for door in maze.doors.values():
        rows[door.position.y][door.position.x] = "d" if game.env.world.is_door_open(door.id) else "D"
    for plate in maze.plates.values():
        rows[plate.position.y][plate.position.x] = "O" if game.env.world.is_plate_active(plate.id) else "o"
    for item in game.items:
        pos = item.position
        if pos is not None and item.is_revealed:
            rows[pos.y][pos.x] = "*"
    for robot in game.env.robots.values():
        rows[robot.position.y][robot.position.x] = "x" if robot.is_destroyed else _ARROWS[robot.direction]
    return "\n".join("".join(row) for row in rows)


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _parse_size(text: str) -> Tuple[int, int]:
    try:
        w, h = text.lower().split("x")
        return int(w), int(h)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WxH, got {text!r}") from None


def load_inputs(paths: List[str], generate: Optional[Tuple[int, int]],
                seed: Optional[int]) -> Tuple[MazeMap, str, Optional[str]]:
    """Resolve (maze, main script source, global module source) from CLI arguments."""
    maze = MazeMap()
    script_path = None
    global_module = None
    if generate is not None:
        maze.load_from_dict(generate_maze(generate[0], generate[1], seed=seed))
        script_path = paths[0] if paths else None
    elif paths and os.path.isdir(paths[0]):
        maze_dir = paths[0]
        maze.load_from_json(os.path.join(maze_dir, MAZE_FILENAME))
        global_path = os.path.join(maze_dir, GLOBAL_MODULE_FILENAME)
        if os.path.exists(global_path):
            global_module = _read(global_path)
        main_path = os.path.join(maze_dir, MAIN_SCRIPT_FILENAME)
        script_path = paths[1] if len(paths) > 1 else (main_path if os.path.exists(main_path) else None)
    elif paths:
        maze.load_from_json(paths[0])
        script_path = paths[1] if len(paths) > 1 else None
    else:
        maze.load_from_dict(generate_maze(*MAZE_GEN_DEFAULT_SIZE, seed=seed))
    if global_module is None:
        global_module = maze.global_module
    source = _read(script_path) if script_path else DEFAULT_SCRIPT
    return maze, source, global_module


def _deliver(future: asyncio.Future, value=None, error: Optional[BaseException] = None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)


async def _stdin_input(prompt: str) -> str:
    """Read one line on a daemon thread so a cancelled prompt never holds up shutdown."""
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def reader():
        try:
            args = (input("> "),)
        except (EOFError, OSError) as exc:
            args = (None, exc)
        # the run may have ended while the user was typing
        if not loop.is_closed():
            loop.call_soon_threadsafe(_deliver, future, *args)

    threading.Thread(target=reader, daemon=True).start()
    return await future


async def run_maze(maze: MazeMap, source: str, global_module: Optional[str], time_scale: float,
                   log_file=None, recorder: Optional[RunLogger] = None) -> Tuple[Game, Outcome]:
    on_log = None if log_file else (lambda message, kind: print(message))
    game = Game(maze, on_log=on_log, logger_func=log_to_file if log_file else None, log_file=log_file,
                time_scale=time_scale, input_provider=_stdin_input, recorder=recorder)
    executor = ScriptExecutor(game)
    outcome = await executor.run(source, global_module=global_module)
    return game, outcome


def run(argv: Optional[List[str]] = None) -> int:
    """Wire modules, run the script and return the process exit code."""
    parser = argparse.ArgumentParser(description="Run a robot script through a maze")
    parser.add_argument("paths", nargs="*",
                        help="maze directory, or maze.json [script.py], or [script.py] with --generate")
    parser.add_argument("--generate", type=_parse_size, default=None, metavar="WxH",
                        help="use a freshly generated maze of the given size")
    parser.add_argument("--seed", type=int, default=None, help="seed for --generate")
    parser.add_argument("--speed-scale", type=float, default=1.0,
                        help="multiply every action delay (0 runs as fast as possible)")
    parser.add_argument("--record", default=None, metavar="OUT.npz", help="save a run recording")
    parser.add_argument("--no-log", action="store_true", help="do not write a log file")
    args = parser.parse_args(argv)

    maze, source, global_module = load_inputs(args.paths, args.generate, args.seed)
    recorder = RunLogger() if args.record else None

    log_file = None
    if not args.no_log:
        os.makedirs(LOG_DIR, exist_ok=True)
        log_filepath = os.path.join(LOG_DIR, datetime.now().strftime(LOG_FILENAME_PATTERN))
        log_file = open(log_filepath, "w", encoding="utf-8")
    try:
        if log_file:
            log_to_file(log_file, "=" * 60)
            log_to_file(log_file, f"Start: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            log_to_file(log_file, f"Maze: {json.dumps(maze.get_maze_info())}")
            log_to_file(log_file, "=" * 60)
        game, outcome = asyncio.run(run_maze(maze, source, global_module, args.speed_scale,
                                             log_file=log_file, recorder=recorder))
        print(render_ascii(game))
        print(f"Result: {outcome.kind} - {outcome.message}")
        if recorder is not None:
            recorder.save(args.record)
            print(f"Recording saved to {args.record}")
        return 0 if outcome.success else 1
    except KeyboardInterrupt:
        print("Interrupted")
        return 130
    finally:
        if log_file:
            log_file.close()


if __name__ == "__main__":
    sys.exit(run())
