"""Tests for learner script compilation passes."""

import ast

import pytest

from script.compiler import (
    AutoAwaitTransformer, ScriptCompileError, TypeAnnotationStripper, compile_script,
    wrap_in_coroutine,
)


def _wrapped_body(source, **kwargs):
    module = wrap_in_coroutine(ast.parse(source), **kwargs)
    return module.body[0].body


class TestAnnotations:
    def test_annotations_are_stripped(self):
        source = (
            "count: int = 3\n"
            "pending: list\n"
            "def double(value: int) -> int:\n"
            "    return value * 2\n"
        )
        module = TypeAnnotationStripper().visit(ast.parse(source))
        assert not any(isinstance(node, ast.AnnAssign) for node in ast.walk(module))
        func = module.body[-1]
        assert func.returns is None
        assert func.args.args[0].annotation is None
        compile_script(source)

    def test_class_with_only_annotations_keeps_a_body(self):
        module = TypeAnnotationStripper().visit(ast.parse("class Point:\n    x: int\n    y: int\n"))
        assert isinstance(module.body[0].body[0], ast.Pass)


class TestAutoAwait:
    def test_question_is_awaited(self):
        compiled = compile_script("name = readline.question('Who?')\nconsole.log(name)\n")
        assert compiled.auto_awaited == 1

    def test_nested_in_expression(self):
        compiled = compile_script("total = int(readline.question('a')) + readline.question_int('b')\n")
        assert compiled.auto_awaited == 2

    def test_already_awaited_is_left_alone(self):
        compiled = compile_script("name = await readline.question('Who?')\n")
        assert compiled.auto_awaited == 0

    def test_sync_function_is_not_rewritten(self):
        compiled = compile_script("def ask():\n    return readline.question('x')\n")
        assert compiled.auto_awaited == 0

    def test_only_allow_listed_calls(self):
        module = ast.parse("async def f():\n    robot.move_forward()\n    other.question('x')\n")
        awaiter = AutoAwaitTransformer()
        awaiter.visit(module)
        assert awaiter.rewritten == 0


class TestMainCall:
    def test_main_defined_but_not_called(self):
        body = _wrapped_body("async def main():\n    pass\n")
        last = body[-1]
        assert isinstance(last, ast.Expr)
        assert isinstance(last.value, ast.Await)
        assert last.value.value.func.id == "main"

    def test_sync_main_called_without_await(self):
        last = _wrapped_body("def main():\n    pass\n")[-1]
        assert isinstance(last.value, ast.Call)

    def test_main_already_called(self):
        body = _wrapped_body("async def main():\n    pass\nawait main()\n")
        assert len(body) == 2


class TestExports:
    def test_top_level_names_exported(self):
        body = _wrapped_body("SECRET = 1\n_hidden = 2\ndef check():\n    pass\n",
                             collect_exports=True)
        exported = [node.body[0].targets[0].slice for node in body if isinstance(node, ast.Try)]
        names = [getattr(s, "value", None) for s in exported]
        assert names == ["SECRET", "check"]


class TestRestrictions:
    def test_syntax_error(self):
        with pytest.raises(ScriptCompileError) as info:
            compile_script("def broken(:\n    pass\n")
        assert info.value.errors[0].startswith("SyntaxError")

    def test_private_attribute_rejected(self):
        with pytest.raises(ScriptCompileError):
            compile_script("robot._sim.position\n")

    def test_private_name_rejected(self):
        with pytest.raises(ScriptCompileError):
            compile_script("_secret = 1\n")

    def test_dunder_escape_rejected(self):
        with pytest.raises(ScriptCompileError):
            compile_script("().__class__.__bases__\n")

    def test_async_constructs_allowed(self):
        compiled = compile_script(
            "async def walk(n):\n"
            "    for i in range(n):\n"
            "        await robot.move_forward()\n"
            "await walk(2)\n"
        )
        assert compiled.code is not None
