# ================================
# file: script/sandbox.py
# ================================
from __future__ import annotations
import asyncio
import json
import math
import operator
import random
from types import ModuleType, SimpleNamespace
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from RestrictedPython import limited_builtins, safe_builtins, utility_builtins
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard, guarded_iter_unpack_sequence, guarded_unpack_sequence, safer_getattr,
)

from core.config import SCRIPT_ENTRY_NAME, SCRIPT_FILENAME
from core.game import Game, Outcome
from nav.action_queue import CancelledRunError
from .bridges import (
    ConsoleBridge, Exports, GameBridge, ReadlineBridge, aiohttp_fetch, make_print_collector,
)
from .compiler import CompiledScript, ScriptCompileError, compile_script

SCRIPT_MODULE_NAME = "learner_script"

_INPLACE_OPS = {
    "+=": operator.iadd, "-=": operator.isub, "*=": operator.imul,
    "/=": operator.itruediv, "//=": operator.ifloordiv, "%=": operator.imod,
    "**=": operator.ipow, "<<=": operator.ilshift, ">>=": operator.irshift,
    "&=": operator.iand, "|=": operator.ior, "^=": operator.ixor,
    "@=": operator.imatmul,
}


def _functions_of(module: ModuleType, names: Optional[Sequence[str]] = None) -> SimpleNamespace:
    """Namespace carrying only the given callables of ``module``, never the module itself."""
    if names is None:
        names = [n for n in dir(module) if not n.startswith("_")]
    return SimpleNamespace(**{n: getattr(module, n) for n in names
                              if not isinstance(getattr(module, n), ModuleType)})


_EXTRA_BUILTINS = {
    "min": min, "max": max, "sum": sum, "enumerate": enumerate, "any": any, "all": all,
    "map": map, "filter": filter, "dict": dict, "reversed": reversed, "list": list,
    "math": _functions_of(math),
    "random": _functions_of(random, ("random", "randint", "randrange", "uniform", "choice", "choices",
                                     "shuffle", "sample", "gauss")),
    "json": _functions_of(json, ("loads", "dumps")),
    "sleep": asyncio.sleep, "gather": asyncio.gather,
}


def guarded_inplacevar(op: str, x, y):
    try:
        return _INPLACE_OPS[op](x, y)
    except KeyError:
        raise ValueError(f"Unsupported augmented assignment: {op}") from None


def guarded_write(ob):
    """Let scripts mutate their own objects; everything else needs a write hook."""
    if getattr(type(ob), "__module__", None) == SCRIPT_MODULE_NAME:
        return ob
    return full_write_guard(ob)


def guarded_getattr(ob, name, default=None, getattr=safer_getattr):
    """Attribute guard that also refuses to hand out module objects."""
    value = getattr(ob, name, default)
    if isinstance(value, ModuleType):
        raise AttributeError(f"access to module {name!r} is not allowed")
    return value


def guarded_apply(func, *args, **kwargs):
    return func(*args, **kwargs)


def build_restricted_globals(console: ConsoleBridge) -> Dict:
    builtins = dict(safe_builtins)
    builtins.update(limited_builtins)
    builtins.update(utility_builtins)
    builtins.update(_EXTRA_BUILTINS)
    return {
        "__builtins__": builtins,
        "__name__": SCRIPT_MODULE_NAME,
        "__metaclass__": type,
        "_getattr_": guarded_getattr,
        "_getitem_": default_guarded_getitem,
        "_getiter_": default_guarded_getiter,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": guarded_write,
        "_inplacevar_": guarded_inplacevar,
        "_apply_": guarded_apply,
        "_print_": make_print_collector(console),
    }


class ScriptEntry:
    """One independently running script, optionally bound to a named robot."""
    __slots__ = ("source", "robot", "filename")

    def __init__(self, source: str, robot: Optional[str] = None, filename: str = SCRIPT_FILENAME) -> None:
        self.source = source
        self.robot = robot
        self.filename = filename


class ScriptExecutor:
    """Runs learner scripts as sandboxed tasks against one game."""

    def __init__(self, game: Game, fetch: Optional[Callable[..., Awaitable]] = None) -> None:
        self.game = game
        self.fetch = fetch or aiohttp_fetch
        self.console = ConsoleBridge(game)
        self.readline = ReadlineBridge(game, self.console)
        self.game_bridge = GameBridge(game)
        self.exports = Exports()

    def _bridges(self, robot_name: Optional[str]) -> Dict:
        if robot_name is not None:
            robot = self.game.get_robot(robot_name)
        else:
            robots = self.game.robots
            robot = robots[0] if robots else None
        return {
            "game": self.game_bridge,
            "robot": robot,
            "readline": self.readline,
            "fetch": self.fetch,
            "console": self.console,
            "exports": self.exports,
        }

    def instantiate(self, compiled: CompiledScript):
        """Exec the compiled module in fresh restricted globals; return the entry coroutine function."""
        glb = build_restricted_globals(self.console)
        exec(compiled.code, glb)
        return glb[SCRIPT_ENTRY_NAME]

    async def run_compiled(self, compiled: CompiledScript, robot_name: Optional[str] = None) -> bool:
        """Task boundary: uncaught errors are reported, never raised. True on clean exit."""
        generation = self.game.generation
        try:
            entry = self.instantiate(compiled)
            await entry(**self._bridges(robot_name))
            return True
        except (asyncio.CancelledError, CancelledRunError):
            if self.game.is_live(generation):
                self.game.report_error(f"{compiled.filename}: script was cancelled")
            return False
        except Exception as exc:
            if self.game.is_live(generation):
                self.game.report_error(str(exc) or type(exc).__name__)
            return False

    async def run(self, scripts: Union[str, Sequence[ScriptEntry]],
                  global_module: Optional[str] = None) -> Outcome:
        """Compile everything, run the global module, then every entry concurrently."""
        if isinstance(scripts, str):
            scripts = [ScriptEntry(scripts)]
        generation = self.game.generation
        try:
            setup = compile_script(global_module, "globalModule", collect_exports=True) \
                if global_module else None
            compiled: List[tuple] = [(compile_script(e.source, e.filename), e.robot) for e in scripts]
        except ScriptCompileError as exc:
            self.game.emit_log(f"Compilation Error: {exc}", "robot")
            self.game.report_error(str(exc))
            return self.game.finish(generation)

        if setup is not None:
            task = self.game.spawn(self.run_compiled(setup), name="globalModule")
            (ok,) = await asyncio.gather(task, return_exceptions=True)
            if ok is not True or not self.game.is_live(generation):
                return self.game.finish(generation)

        tasks = [self.game.spawn(self.run_compiled(code, robot), name=code.filename)
                 for code, robot in compiled]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return self.game.finish(generation)
