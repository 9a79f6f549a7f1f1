# ================================
# file: script/compiler.py
# ================================
"""Learner script compilation.

Pipeline: parse -> strip type annotations -> wrap the module body in an
``async def`` taking the bridge names -> auto-await blocking-style calls ->
compile with RestrictedPython.
"""
from __future__ import annotations
import ast
from typing import Iterable, List, Optional, Sequence, Tuple

from RestrictedPython import compile_restricted_exec
from RestrictedPython.transformer import RestrictingNodeTransformer

from core.config import (
    AUTO_AWAIT_CALLS, SCRIPT_BRIDGE_NAMES, SCRIPT_ENTRY_NAME, SCRIPT_FILENAME,
    SCRIPT_MAIN_NAME,
)

EXPORTS_NAME = "exports"


class ScriptCompileError(Exception):
    def __init__(self, errors: Sequence[str], filename: str = SCRIPT_FILENAME) -> None:
        self.errors = list(errors)
        self.filename = filename
        super().__init__(f"{filename}: " + "; ".join(self.errors))


class AsyncRestrictingNodeTransformer(RestrictingNodeTransformer):
    """RestrictedPython policy that also admits coroutines.

    ``async for`` targets are not routed through ``_getiter_``: the guard
    calls ``iter()`` which async iterables do not support.
    """

    def visit_AsyncFunctionDef(self, node):
        return self.visit_FunctionDef(node)

    def visit_Await(self, node):
        return self.node_contents_visit(node)

    def visit_AsyncFor(self, node):
        return self.node_contents_visit(node)

    def visit_AsyncWith(self, node):
        return self.node_contents_visit(node)


class TypeAnnotationStripper(ast.NodeTransformer):
    """Remove annotations so only plain runtime code is left."""

    _BODY_FIELDS = ("body", "orelse", "finalbody")

    def generic_visit(self, node):
        node = super().generic_visit(node)
        for field in self._BODY_FIELDS:
            body = getattr(node, field, None)
            if isinstance(body, list) and not body and self._needs_body(node, field):
                body.append(ast.copy_location(ast.Pass(), node))
        if hasattr(node, "type_params"):
            node.type_params = []
        return node

    @staticmethod
    def _needs_body(node, field: str) -> bool:
        # orelse/finalbody may legitimately be empty
        return field == "body" and not isinstance(node, ast.Module)

    def visit_AnnAssign(self, node: ast.AnnAssign):
        if node.value is None:
            return None
        assign = ast.Assign(targets=[node.target], value=node.value)
        return ast.copy_location(self.visit(assign), node)

    def visit_arg(self, node: ast.arg):
        node.annotation = None
        return node

    def visit_FunctionDef(self, node):
        node.returns = None
        return self.generic_visit(node)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_TypeAlias(self, node):
        return None


class AutoAwaitTransformer(ast.NodeTransformer):
    """Wrap calls such as ``readline.question(...)`` in ``await``.

    Only calls of the form ``<name>.<attr>(...)`` found in the allow-list are
    touched, only inside coroutine bodies, and never when the call is
    already awaited.
    """

    def __init__(self, calls: Iterable[Tuple[str, str]] = AUTO_AWAIT_CALLS) -> None:
        self.calls = frozenset(calls)
        self._async_scope: List[bool] = [False]
        self.rewritten = 0

    def _matches(self, node) -> bool:
        return (isinstance(node, ast.Call)
                and isinstance(node.func, ast.Attribute)
                and isinstance(node.func.value, ast.Name)
                and (node.func.value.id, node.func.attr) in self.calls)

    def _scoped(self, node, is_async: bool):
        self._async_scope.append(is_async)
        try:
            return self.generic_visit(node)
        finally:
            self._async_scope.pop()

    def visit_AsyncFunctionDef(self, node):
        return self._scoped(node, True)

    def visit_FunctionDef(self, node):
        return self._scoped(node, False)

    def visit_Lambda(self, node):
        return self._scoped(node, False)

    def visit_ClassDef(self, node):
        return self._scoped(node, False)

    def visit_GeneratorExp(self, node):
        return self._scoped(node, False)

    def visit_Await(self, node: ast.Await):
        if self._matches(node.value):
            # already suspended; still rewrite nested arguments
            self.generic_visit(node.value)
            return node
        return self.generic_visit(node)

    def visit_Call(self, node: ast.Call):
        self.generic_visit(node)
        if self._async_scope[-1] and self._matches(node):
            self.rewritten += 1
            return ast.copy_location(ast.Await(value=node), node)
        return node


def _calls_main(statements: Sequence[ast.stmt]) -> bool:
    for stmt in statements:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            continue
        for node in ast.walk(stmt):
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) \
                    and node.func.id == SCRIPT_MAIN_NAME:
                return True
    return False


def _main_call(body: Sequence[ast.stmt]) -> Optional[ast.stmt]:
    """Statement running ``main`` when the script defines it but never calls it."""
    mains = [s for s in body if isinstance(s, (ast.FunctionDef, ast.AsyncFunctionDef))
             and s.name == SCRIPT_MAIN_NAME]
    if not mains or _calls_main(body):
        return None
    call = f"{SCRIPT_MAIN_NAME}()"
    if isinstance(mains[-1], ast.AsyncFunctionDef):
        call = f"await {call}"
    return ast.parse(call).body[0]


def _bound_names(target: ast.expr) -> List[str]:
    # attribute and subscript targets mutate an object; they bind nothing
    if isinstance(target, ast.Name):
        return [target.id]
    if isinstance(target, ast.Starred):
        return _bound_names(target.value)
    if isinstance(target, (ast.Tuple, ast.List)):
        return [name for elt in target.elts for name in _bound_names(elt)]
    return []


def _top_level_names(body: Sequence[ast.stmt]) -> List[str]:
    names: List[str] = []
    for stmt in body:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.append(stmt.name)
        elif isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                names.extend(_bound_names(target))
    seen = set()
    return [n for n in names if not n.startswith("_") and not (n in seen or seen.add(n))]


def _export_statements(names: Sequence[str]) -> List[ast.stmt]:
    """``exports['x'] = x`` for each name, skipping ones never bound at runtime."""
    statements = []
    for name in names:
        statements.extend(ast.parse(
            f"try:\n    {EXPORTS_NAME}[{name!r}] = {name}\nexcept NameError:\n    pass\n").body)
    return statements


def wrap_in_coroutine(module: ast.Module, params: Sequence[str] = SCRIPT_BRIDGE_NAMES,
                      collect_exports: bool = False) -> ast.Module:
    """Move the module body into ``async def learner_script(<params>)``."""
    body = list(module.body)
    extra = _main_call(body)
    if extra is not None:
        body.append(extra)
    if collect_exports:
        body.extend(_export_statements(_top_level_names(module.body)))
    wrapper = ast.parse(f"async def {SCRIPT_ENTRY_NAME}({', '.join(params)}):\n    pass\n")
    func = wrapper.body[0]
    func.body = body or [ast.Pass()]
    return wrapper


class CompiledScript:
    __slots__ = ("code", "filename", "source", "auto_awaited", "warnings")

    def __init__(self, code, filename: str, source: str, auto_awaited: int, warnings: Sequence[str]) -> None:
        self.code = code
        self.filename = filename
        self.source = source
        self.auto_awaited = auto_awaited
        self.warnings = list(warnings)


def compile_script(source: str, filename: str = SCRIPT_FILENAME,
                   collect_exports: bool = False) -> CompiledScript:
    """Compile learner source into restricted bytecode defining the entry coroutine."""
    try:
        module = ast.parse(source, filename=filename, mode="exec", type_comments=False)
    except SyntaxError as exc:
        raise ScriptCompileError([f"SyntaxError: {exc.msg} (line {exc.lineno})"], filename) from None
    module = TypeAnnotationStripper().visit(module)
    module = wrap_in_coroutine(module, collect_exports=collect_exports)
    awaiter = AutoAwaitTransformer()
    module = awaiter.visit(module)
    ast.fix_missing_locations(module)
    result = compile_restricted_exec(module, filename, policy=AsyncRestrictingNodeTransformer)
    if result.errors:
        raise ScriptCompileError(result.errors, filename)
    return CompiledScript(result.code, filename, source, awaiter.rewritten, result.warnings)
