# ================================
# file: script/__init__.py
# ================================
"""
Learner script sandbox (RestrictedPython).

Exports: ScriptExecutor, ScriptEntry, compile_script, build_restricted_globals.
"""
from script.compiler import ScriptCompileError, compile_script
from script.sandbox import ScriptEntry, ScriptExecutor, build_restricted_globals

__all__ = [
    "ScriptCompileError",
    "ScriptEntry",
    "ScriptExecutor",
    "compile_script",
    "build_restricted_globals",
]
