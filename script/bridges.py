# ================================
# file: script/bridges.py
# ================================
"""Objects injected into learner scripts. Nothing else from the host is visible."""
from __future__ import annotations
import json
from typing import Any, Dict, Optional, Tuple

import aiohttp

from core.config import FETCH_TIMEOUT_S, INVALID_FLOAT_MESSAGE, INVALID_INT_MESSAGE


def _format(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, bool, int, float)) or value is None:
        try:
            return json.dumps(value)
        except (TypeError, ValueError):
            pass
    return repr(value) if not hasattr(value, "to_dict") else json.dumps(value.to_dict(), default=str)


class GameBridge:
    """The part of the game scripts may call."""

    def __init__(self, game) -> None:
        self._game = game

    def win(self, message: str = "You win!") -> None:
        self._game.win(message)

    def fail(self, message: str = "You failed.") -> None:
        self._game.fail(message)

    def is_running(self) -> bool:
        return self._game.is_running()

    @property
    def items(self):
        return self._game.items

    @property
    def robots(self):
        return self._game.robots

    def get_robot(self, name: str):
        return self._game.get_robot(name)

    def create_robot(self, x=None, y=None, name=None, color=None, direction="North", position=None):
        return self._game.create_robot(x, y, name=name, color=color, direction=direction, position=position)

    def get_door(self, door_id: str):
        return self._game.get_door(door_id)

    def get_item(self, item_id: str):
        return self._game.get_item(item_id)

    def get_pressure_plate(self, plate_id: str):
        return self._game.get_pressure_plate(plate_id)

    def get_item_on_position(self, x: int, y: int):
        return self._game.get_item_on_position(x, y)

    @property
    def width(self) -> int:
        return self._game.maze.width

    @property
    def height(self) -> int:
        return self._game.maze.height

    def add_event_listener(self, kind, handler):
        return self._game.add_event_listener(kind, handler)

    on = add_event_listener


class ConsoleBridge:
    def __init__(self, game) -> None:
        self._game = game

    def log(self, *args) -> None:
        self._game.emit_log("LOG: " + " ".join(_format(a) for a in args), "user")

    def error(self, *args) -> None:
        self._game.emit_log("ERR: " + " ".join(_format(a) for a in args), "user")


def make_print_collector(console: ConsoleBridge):
    """``_print_`` factory for RestrictedPython that forwards ``print`` to the console."""

    class ConsolePrint:
        def __init__(self, _getattr_=None) -> None:
            self.lines = []
            self._getattr_ = _getattr_

        def write(self, text: str) -> None:
            self.lines.append(text)

        def _call_print(self, *objects, **kwargs) -> None:
            sep = kwargs.get("sep", " ")
            sep = " " if sep is None else sep
            text = sep.join(_format(o) for o in objects)
            self.lines.append(text + "\n")
            console.log(text)

        def __call__(self) -> str:
            return "".join(self.lines)

    return ConsolePrint


class ReadlineBridge:
    """Prompts answered by the host (``Game.resolve_input``) or its input provider."""

    def __init__(self, game, console: ConsoleBridge) -> None:
        self._game = game
        self._console = console

    async def question(self, prompt: str = "") -> str:
        if prompt:
            self._game.emit_log(str(prompt), "user")
        return await self._game.request_input(str(prompt))

    async def question_int(self, prompt: str = "") -> int:
        while True:
            answer = await self.question(prompt)
            try:
                return int(str(answer).strip())
            except ValueError:
                self._console.error(INVALID_INT_MESSAGE)

    async def question_float(self, prompt: str = "") -> float:
        while True:
            answer = await self.question(prompt)
            try:
                return float(str(answer).strip())
            except ValueError:
                self._console.error(INVALID_FLOAT_MESSAGE)


class Exports(dict):
    """Names published by the maze's global module; readable as attributes."""

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    # hook used by the sandbox write guard
    __guarded_setitem__ = dict.__setitem__


class FetchResponse:
    def __init__(self, url: str, status: int, headers: Dict[str, str], body: bytes) -> None:
        self.url = url
        self.status = status
        self.headers = dict(headers)
        self._body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    async def text(self) -> str:
        return self._body.decode("utf-8", errors="replace")

    async def json(self) -> Any:
        return json.loads(self._body.decode("utf-8"))

    def __repr__(self) -> str:
        return f"FetchResponse({self.url!r}, status={self.status})"


_ALLOWED_SCHEMES: Tuple[str, ...] = ("http://", "https://")


async def aiohttp_fetch(url: str, method: str = "GET", headers: Optional[Dict[str, str]] = None,
                        body: Optional[str] = None, json_body: Any = None,
                        timeout: float = FETCH_TIMEOUT_S) -> FetchResponse:
    """Default network bridge. The whole body is read before returning."""
    if not isinstance(url, str) or not url.lower().startswith(_ALLOWED_SCHEMES):
        raise ValueError(f"fetch() only supports http(s) URLs, got {url!r}")
    async with aiohttp.ClientSession() as session:
        async with session.request(method.upper(), url, headers=headers, data=body, json=json_body,
                                   timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
            payload = await resp.read()
            return FetchResponse(str(resp.url), resp.status, dict(resp.headers), payload)
