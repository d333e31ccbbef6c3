"""Ahead-of-time source pass: instrument every `@wherr` function in a module.

The output no longer needs the decorator's import-time rewrite. Each
`@wherr` becomes `@<alias>.early_return` and the sites call
`<alias>.wherrapper(...)`, where `<alias>` is a fresh module alias for the
`wherr` package. File literals keep the *input* file's line numbers, so
reported locations point at the source the author edits.
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path

from wherr.foundation.config import display_path, get_settings
from wherr.foundation.errors import ErrorCode, Location, TransformError

from .visitor import FunctionNode, fresh_name, hook_expr, instrument

logger = logging.getLogger("wherr.transform")

DECORATOR = "wherr"


def is_wherr_decorator(expr: ast.expr) -> bool:
    """`@wherr` or `@<anything>.wherr`."""
    return (isinstance(expr, ast.Name) and expr.id == DECORATOR) or (
        isinstance(expr, ast.Attribute) and expr.attr == DECORATOR
    )


class ModuleRewriter(ast.NodeTransformer):
    """Instruments the outermost `@wherr` functions of a module.

    Functions nested in an instrumented function were rewritten with it; their
    own `@wherr` is only swapped for the boundary, never applied twice.
    """

    def __init__(self, filename: str, alias: str) -> None:
        self.filename = filename
        self.alias = alias
        self.sites: list[tuple[str, Location]] = []
        self.functions: list[str] = []
        self._scope: list[str] = []

    def _boundary(self, like: ast.expr) -> ast.expr:
        expr = hook_expr(f"{self.alias}.early_return")
        for node in ast.walk(expr):
            ast.copy_location(node, like)
        return expr

    def _visit_function(self, node: FunctionNode) -> ast.AST:
        if not any(is_wherr_decorator(d) for d in node.decorator_list):
            self._scope.append(node.name)
            self.generic_visit(node)
            self._scope.pop()
            return node

        qualname = ".".join([*self._scope, node.name])
        _, sites = instrument(node, self.filename, f"{self.alias}.wherrapper")
        self.functions.append(qualname)
        self.sites.extend((qualname, site) for site in sites)
        for inner in ast.walk(node):
            if isinstance(inner, FunctionNode):
                inner.decorator_list = [
                    self._boundary(d) if is_wherr_decorator(d) else d for d in inner.decorator_list
                ]
        return node

    visit_FunctionDef = _visit_function  # noqa: N815
    visit_AsyncFunctionDef = _visit_function  # noqa: N815

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.AST:  # noqa: N802
        if any(is_wherr_decorator(d) for d in node.decorator_list):
            raise TransformError.create(
                ErrorCode.NOT_A_FUNCTION, f"@wherr applies to functions, not class {node.name}",
                target=self.filename, node=node,
            )
        self._scope.append(node.name)
        self.generic_visit(node)
        self._scope.pop()
        return node


def _import_position(body: list[ast.stmt]) -> int:
    """Index after the module docstring and `from __future__` imports."""
    index = 0
    if body and isinstance(body[0], ast.Expr) and isinstance(body[0].value, ast.Constant) and isinstance(body[0].value.value, str):
        index = 1
    while index < len(body) and isinstance(body[index], ast.ImportFrom) and body[index].module == "__future__":
        index += 1
    return index


def _rewrite(source: str, filename: str) -> tuple[ast.Module, ModuleRewriter]:
    try:
        tree = ast.parse(source, filename)
    except SyntaxError as exc:
        raise TransformError.from_exc(ErrorCode.PARSE_FAILED, exc, target=filename) from exc
    settings = get_settings()
    rewriter = ModuleRewriter(display_path(filename, settings.path_style, settings.path_root), fresh_name(tree, "_wherr"))
    rewriter.visit(tree)
    return tree, rewriter


def transform_source(source: str, filename: str = "<string>") -> str:
    """Return module source with every `@wherr` function instrumented.

    Source without annotated functions is returned unchanged. Otherwise the
    module is regenerated with ast.unparse (comments and formatting are not kept).

    Raises:
        TransformError: PARSE_FAILED for invalid input, COMPILE_FAILED if the
            rewritten module does not compile
    """
    tree, rewriter = _rewrite(source, filename)
    if not rewriter.functions:
        return source

    tree.body.insert(_import_position(tree.body), ast.Import(names=[ast.alias(name="wherr", asname=rewriter.alias)]))
    output = ast.unparse(ast.fix_missing_locations(tree)) + "\n"
    try:
        compile(output, filename, "exec", dont_inherit=True)
    except (SyntaxError, ValueError) as exc:
        raise TransformError.from_exc(ErrorCode.COMPILE_FAILED, exc, target=filename) from exc

    logger.info("rewrote %s: %d function(s), %d site(s)", Path(filename).name, len(rewriter.functions), len(rewriter.sites))
    return output


def find_sites(source: str, filename: str = "<string>") -> list[tuple[str, Location]]:
    """(function, location) for every site transform_source would instrument."""
    return _rewrite(source, filename)[1].sites
