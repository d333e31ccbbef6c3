"""
wherr command line: the ahead-of-time build step.

    wherr rewrite app/service.py -o build/service.py
    wherr sites app/service.py
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from wherr.foundation.config import get_settings
from wherr.foundation.errors import TransformError
from wherr.transform import find_sites, transform_source

app = typer.Typer(help="Instrument Result propagation sites with file:line provenance", no_args_is_help=True)


@app.callback()
def configure() -> None:
    """Configure logging from WHERR_LOG_LEVEL."""
    logging.basicConfig(level=get_settings().logging.level, format="%(levelname)s %(name)s: %(message)s")


def _read(src: Path) -> str:
    return src.read_text(encoding="utf-8")


@app.command("rewrite")
def rewrite(
    src: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Python module to instrument"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
) -> None:
    """Print SRC with every @wherr function instrumented ahead of time."""
    try:
        text = transform_source(_read(src), str(src))
    except TransformError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if output is None:
        typer.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    typer.echo(f"wrote {output}", err=True)


@app.command("sites")
def sites(
    src: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Python module to scan"),
) -> None:
    """List the propagation sites @wherr instruments in SRC."""
    try:
        found = find_sites(_read(src), str(src))
    except TransformError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    for qualname, loc in found:
        typer.echo(f"{loc}\t{qualname}")
    if not found:
        typer.echo("no propagation sites in @wherr functions", err=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
