"""Compile-time half: rewrite `.propagate()` sites to pass through wherrapper.

- instrument: pure AST rewrite of one function definition
- instrument_function: recompile a live function with its sites instrumented
- transform_source / find_sites: whole-module source pass for build steps
"""

from .compiler import check_target, instrument_function
from .source import ModuleRewriter, find_sites, transform_source
from .visitor import WherrVisitor, fresh_name, instrument, is_propagation

__all__ = [
    "WherrVisitor",
    "instrument",
    "is_propagation",
    "fresh_name",
    "check_target",
    "instrument_function",
    "ModuleRewriter",
    "transform_source",
    "find_sites",
]
