"""Recompile a live function with its propagation sites instrumented.

The function's source is re-read and parsed, the definition is rewritten by
`instrument`, and the result is compiled inside a generated factory so the new
code object closes over:

- the original closure cells (captured variables stay live and shared),
- a fresh cell holding `wherrapper` under a name no identifier in the function
  uses, so the hook cannot be shadowed or rebound by the function's module.

Decorators, defaults and annotations were already evaluated when the function
was defined; they are stripped from the rewritten definition and the original
values are carried over instead.
"""

from __future__ import annotations

import __future__
import ast
import functools
import inspect
import logging
import operator
import types
from pathlib import Path
from typing import Callable, TypeVar

from wherr.foundation.config import PathStyle, display_path, get_settings
from wherr.foundation.errors import ErrorCode, TransformError
from wherr.runtime import wherrapper

from .visitor import FunctionNode, fresh_name, instrument

logger = logging.getLogger("wherr.transform")

F = TypeVar("F", bound=Callable[..., object])

_FACTORY = "__wherr_factory__"
_SCOPE = "__wherr_scope__"
_CLASS_CELL = "__class__"

# Future-statement flags are kept in co_flags; recompile under the same ones
_FUTURE_FLAGS = functools.reduce(
    operator.or_, (getattr(__future__, name).compiler_flag for name in __future__.all_feature_names), 0
)


def _target_name(obj: object) -> str:
    return getattr(obj, "__qualname__", None) or repr(obj)


def check_target(func: object) -> None:
    """Raise TransformError unless func is a plain function @wherr can rewrite."""
    target = _target_name(func)
    if not inspect.isfunction(func):
        raise TransformError.create(
            ErrorCode.NOT_A_FUNCTION, f"@wherr applies to functions, not {type(func).__name__}", target=target,
        )
    if func.__name__ == "<lambda>":
        raise TransformError.create(
            ErrorCode.NOT_A_FUNCTION, "lambdas have no early-return boundary; use a def", target=target,
        )
    if inspect.isgeneratorfunction(func) or inspect.isasyncgenfunction(func):
        raise TransformError.create(
            ErrorCode.UNSUPPORTED, "generator functions cannot return a Result", target=target,
        )
    if hasattr(func, "__wrapped__"):
        raise TransformError.create(
            ErrorCode.NOT_INNERMOST, "@wherr must be the innermost decorator", target=target,
        )


def _parse_definition(func: types.FunctionType) -> FunctionNode:
    target = func.__qualname__
    try:
        lines, start = inspect.getsourcelines(func)
    except (OSError, TypeError) as exc:
        raise TransformError.from_exc(ErrorCode.SOURCE_UNAVAILABLE, exc, target=target) from exc

    source = "".join(lines)
    offset = start - 1
    indented = source[:1].isspace()
    if indented:
        # Methods and nested functions: parse under a dummy block instead of
        # dedenting, which breaks on multi-line strings flush with column 0
        source = "if True:\n" + source
        offset -= 1
    try:
        tree = ast.parse(source)
    except SyntaxError as exc:
        raise TransformError.from_exc(ErrorCode.PARSE_FAILED, exc, target=target) from exc

    body = tree.body[0].body if indented and isinstance(tree.body[0], ast.If) else tree.body
    for node in body:
        if isinstance(node, FunctionNode) and node.name == func.__name__:
            return ast.increment_lineno(node, offset)
    raise TransformError.create(
        ErrorCode.NOT_A_FUNCTION, f"no definition of {func.__name__!r} at its source position", target=target,
    )


def _strip_definition(node: FunctionNode) -> None:
    node.decorator_list = []
    node.returns = None
    args = node.args
    for arg in (*args.posonlyargs, *args.args, *args.kwonlyargs, args.vararg, args.kwarg):
        if arg is not None:
            arg.annotation = None
    args.defaults = []
    args.kw_defaults = [None] * len(args.kwonlyargs)


def _owner_class(qualname: str) -> str | None:
    """Innermost class enclosing a function, read off its qualified name.

    >>> _owner_class("Reader.load.<locals>.step")
    'Reader'
    """
    parts = qualname.split(".")
    for name, following in zip(reversed(parts[:-1]), reversed(parts[1:])):
        if name != "<locals>" and following != "<locals>":
            return name
    return None


def _factory_module(definition: FunctionNode, hook: str, freevars: tuple[str, ...], owner: str | None) -> ast.Module:
    """def __wherr_factory__(): <hook> = <freevars> = None; [class <owner>:] <definition>"""
    module = ast.parse(f"def {_FACTORY}():\n    pass\n")
    factory = module.body[0]
    assert isinstance(factory, ast.FunctionDef)

    names = [hook, *(name for name in freevars if name != _CLASS_CELL)]
    body: list[ast.stmt] = [
        ast.Assign(targets=[ast.Name(id=name, ctx=ast.Store()) for name in names], value=ast.Constant(value=None)),
    ]
    inner: ast.stmt = definition
    if owner is not None:
        # A class body of the same name keeps private-name mangling and the
        # implicit __class__ cell of zero-argument super() as they were
        if owner not in freevars:
            body.insert(0, ast.Global(names=[owner]))
        scope = ast.parse(f"class {owner}:\n    pass\n").body[0]
        assert isinstance(scope, ast.ClassDef)
        scope.body = [definition]
        inner = scope
    elif definition.name not in freevars:
        # Binding the def in the factory would turn self-references into free variables
        body.insert(0, ast.Global(names=[definition.name]))
    factory.body = [*body, inner]
    return ast.fix_missing_locations(module)


def _child_code(code: types.CodeType, name: str) -> types.CodeType | None:
    return next((c for c in code.co_consts if isinstance(c, types.CodeType) and c.co_name == name), None)


def _extract_code(module_code: types.CodeType, name: str, owner: str | None) -> types.CodeType | None:
    scope = _child_code(module_code, _FACTORY)
    if scope is not None and owner is not None:
        scope = _child_code(scope, owner)
    return None if scope is None else _child_code(scope, name)


def instrument_function(func: F, *, path_style: PathStyle | None = None, path_root: Path | None = None) -> F:
    """Return a copy of func whose propagation sites route through wherrapper.

    Args:
        func: A plain (non-generator) function, undecorated
        path_style: Override for the settings' file-literal style
        path_root: Override for the settings' base directory of relative paths

    Raises:
        TransformError: If func cannot be instrumented; raised at decoration time
    """
    check_target(func)
    assert isinstance(func, types.FunctionType)
    settings = get_settings()
    target = func.__qualname__
    original = func.__code__

    definition = _parse_definition(func)
    _strip_definition(definition)
    shown = display_path(original.co_filename, path_style or settings.path_style, path_root or settings.path_root)
    hook = fresh_name(definition)
    definition, sites = instrument(definition, shown, hook)

    freevars = original.co_freevars
    owner = _owner_class(target)
    if owner is None and _CLASS_CELL in freevars:
        owner = _SCOPE
    module = _factory_module(definition, hook, freevars, owner)
    try:
        module_code = compile(module, original.co_filename, "exec", flags=original.co_flags & _FUTURE_FLAGS, dont_inherit=True)
    except (SyntaxError, ValueError, TypeError) as exc:
        raise TransformError.from_exc(ErrorCode.COMPILE_FAILED, exc, target=target) from exc

    code = _extract_code(module_code, func.__name__, owner)
    if code is None:
        raise TransformError.create(ErrorCode.COMPILE_FAILED, "rewritten code object not found", target=target)
    if hasattr(original, "co_qualname"):
        code = code.replace(co_qualname=original.co_qualname)

    cells = dict(zip(freevars, func.__closure__ or ()))
    closure: list[types.CellType] = []
    for name in code.co_freevars:
        if name == hook:
            closure.append(types.CellType(wherrapper))
        elif name in cells:
            closure.append(cells[name])
        else:
            raise TransformError.create(
                ErrorCode.COMPILE_FAILED, f"rewritten code captures unknown variable {name!r}", target=target,
            )

    rewritten = types.FunctionType(code, func.__globals__, func.__name__, func.__defaults__, tuple(closure) or None)
    rewritten.__kwdefaults__ = func.__kwdefaults__
    functools.update_wrapper(rewritten, func)
    rewritten.__wherr_sites__ = tuple(sites)  # type: ignore[attr-defined]

    logger.debug("instrumented %s: %d propagation site(s)", target, len(sites))
    return rewritten  # type: ignore[return-value]
