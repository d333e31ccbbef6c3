"""AST rewrite of propagation expressions.

A propagation expression is a zero-argument `.propagate()` call:

    value = load(path).propagate()

Inside an annotated function each one becomes

    value = <hook>(load(path), "<file>", <line>).propagate()

where <hook> resolves to `wherr.runtime.wherrapper`. The receiver is visited
first, so propagation expressions nested inside it are rewritten too, each
with its own line. Every other node is left as it was.
"""

from __future__ import annotations

import ast

from wherr.foundation.errors import ErrorCode, Location, TransformError, location

PROPAGATE = "propagate"

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


def is_propagation(node: ast.AST) -> bool:
    """True for `<expr>.propagate()` with no arguments."""
    return (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Attribute)
        and node.func.attr == PROPAGATE
        and not node.args
        and not node.keywords
    )


def hook_expr(hook: str) -> ast.expr:
    """Load expression for a dotted hook path, e.g. "_wherr.wherrapper"."""
    head, *attrs = hook.split(".")
    expr: ast.expr = ast.Name(id=head, ctx=ast.Load())
    for attr in attrs:
        expr = ast.Attribute(value=expr, attr=attr, ctx=ast.Load())
    return expr


def _identifiers(tree: ast.AST) -> set[str]:
    names: set[str] = set()
    for node in ast.walk(tree):
        match node:
            case ast.Name(id=name) | ast.arg(arg=name):
                names.add(name)
            case ast.FunctionDef(name=name) | ast.AsyncFunctionDef(name=name) | ast.ClassDef(name=name):
                names.add(name)
            case ast.alias(name=name, asname=asname):
                names.add(asname or name.partition(".")[0])
            case ast.Global(names=declared) | ast.Nonlocal(names=declared):
                names.update(declared)
            case ast.ExceptHandler(name=str() as name) | ast.MatchAs(name=str() as name) | ast.MatchStar(name=str() as name):
                names.add(name)
            case ast.MatchMapping(rest=str() as name):
                names.add(name)
    return names


def fresh_name(tree: ast.AST, base: str = "_wherr_hook") -> str:
    """Identifier that no name in tree uses. Single underscore: class bodies mangle `__` names."""
    taken = _identifiers(tree)
    name, n = base, 0
    while name in taken:
        n += 1
        name = f"{base}_{n}"
    return name


class WherrVisitor(ast.NodeTransformer):
    """Rewrites every propagation expression it meets; one instance per function.

    Attributes:
        filename: File literal injected at each site
        hook: Dotted name the rewritten calls load the instrumentation function from
        sites: Locations rewritten so far, in traversal order
    """

    def __init__(self, filename: str, hook: str) -> None:
        self.filename = filename
        self.hook = hook
        self.sites: list[Location] = []

    def visit_Call(self, node: ast.Call) -> ast.AST:  # noqa: N802
        if not is_propagation(node):
            return self.generic_visit(node)

        target = node.func
        assert isinstance(target, ast.Attribute)
        receiver = self.visit(target.value)
        # The `propagate` token, not the start of a possibly multi-line receiver
        line = target.end_lineno or node.lineno
        self.sites.append(location(self.filename, line))

        func = hook_expr(self.hook)
        file_arg, line_arg = ast.Constant(value=self.filename), ast.Constant(value=line)
        call = ast.Call(func=func, args=[receiver, file_arg, line_arg], keywords=[])
        attr = ast.Attribute(value=call, attr=PROPAGATE, ctx=ast.Load())
        rewritten = ast.Call(func=attr, args=[], keywords=[])
        for new in (*ast.walk(func), file_arg, line_arg, call, attr, rewritten):
            ast.copy_location(new, node)
        return rewritten


def instrument(func_def: ast.AST, filename: str, hook: str) -> tuple[FunctionNode, list[Location]]:
    """Rewrite the body of one function definition in place.

    Decorators, defaults and annotations are evaluated when the function is
    defined, not when it runs, so only the body is visited.

    Returns:
        The same (mutated) definition and the sites that were instrumented

    Raises:
        TransformError: If func_def is not a function definition
    """
    if not isinstance(func_def, FunctionNode):
        raise TransformError.create(
            ErrorCode.NOT_A_FUNCTION,
            f"@wherr applies to function definitions, not {type(func_def).__name__}",
            node=func_def,
        )
    visitor = WherrVisitor(filename, hook)
    func_def.body = [visitor.visit(stmt) for stmt in func_def.body]
    return func_def, visitor.sites
