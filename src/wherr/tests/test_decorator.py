"""Tests for @wherr: import-time rewrite, boundary, and provenance end to end."""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from wherr import (
    Err,
    ErrorCode,
    Location,
    Ok,
    Propagation,
    Result,
    TransformError,
    Wherr,
    is_instrumented,
    wherr,
)
from wherr.foundation.config import clear_settings_cache
from wherr.foundation.errors import location

_SOURCE = Path(__file__).read_text(encoding="utf-8").splitlines()
_NAME = Path(__file__).name


def _line(marker: str) -> int:
    """Line of this file ending with marker."""
    return next(n for n, text in enumerate(_SOURCE, 1) if text.rstrip().endswith(marker))


def _lines(err: Wherr) -> list[int]:
    return [loc.line for loc in err.locations]


class ParseError(Exception):
    def __init__(self, text: str) -> None:
        super().__init__(f"parse failure: {text!r}")
        self.text = text


def parse_digits(text: str) -> Result[int, ParseError]:
    return Ok(int(text)) if text.isdigit() else Err(ParseError(text))


def add_one(n: int) -> Result[int, str]:
    return Ok(n + 1) if n < 100 else Err(f"too large: {n}")


@pytest.fixture
def settings_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[Callable[..., None]]:
    """Set WHERR_* variables for decorations made inside the test."""

    def apply(**env: str) -> None:
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        clear_settings_cache()

    yield apply
    clear_settings_cache()


# ═════════════════════════════════════════════════════════════════════════════
# End to End: A -> B -> C
# ═════════════════════════════════════════════════════════════════════════════


@wherr
def read_port(text: str) -> Result[int, object]:
    port = parse_digits(text).propagate()  # site: C
    return Ok(port)


@wherr
def load_config(text: str) -> Result[dict[str, int], object]:
    return Ok({"port": read_port(text).propagate()})  # site: B


@wherr
def start(text: str) -> Result[str, object]:
    config = load_config(text).propagate()  # site: A
    return Ok(f"listening on {config['port']}")


def test_success_path_is_unchanged() -> None:
    assert start("8080") == Ok("listening on 8080")


def test_error_accumulates_one_location_per_frame() -> None:
    err = start("http").unwrap_err()

    assert isinstance(err, Wherr)
    assert _lines(err) == [_line("# site: C"), _line("# site: B"), _line("# site: A")]
    assert {Path(loc.file).name for loc in err.locations} == {_NAME}


def test_display_lists_original_text_then_locations() -> None:
    err = start("http").unwrap_err()
    rendered = str(err).splitlines()

    assert rendered[0] == "parse failure: 'http'"
    assert rendered[1:] == [f"at {loc}" for loc in err.locations]


def test_inner_error_is_recoverable_after_many_frames() -> None:
    err = start("http").unwrap_err()

    original = err.downcast(ParseError)
    assert original is not None
    assert original.text == "http"
    assert not isinstance(err.inner, Wherr)


def test_each_call_gets_a_fresh_envelope() -> None:
    first, second = start("a").unwrap_err(), start("b").unwrap_err()
    assert first is not second
    assert len(first.locations) == len(second.locations) == 3


# ═════════════════════════════════════════════════════════════════════════════
# Rewrite Completeness
# ═════════════════════════════════════════════════════════════════════════════


@wherr
def bumped(text: str) -> Result[int, object]:
    value = add_one(
        parse_digits(text).propagate()  # site: inner
    ).propagate()  # site: outer
    return Ok(value)


def test_nested_sites_are_both_instrumented() -> None:
    assert [site.line for site in bumped.__wherr_sites__] == [_line("# site: inner"), _line("# site: outer")]
    assert bumped("41") == Ok(42)
    assert _lines(bumped("x").unwrap_err()) == [_line("# site: inner")]

    err = bumped("150").unwrap_err()
    assert err.inner == "too large: 150"
    assert _lines(err) == [_line("# site: outer")]


@wherr
def relay(result: Result[int, object]) -> Result[int, object]:
    return Ok(result.propagate())  # site: relay


def test_prewrapped_error_gains_exactly_one_location() -> None:
    original = ParseError("x")
    envelope = Wherr(original, [location("c.py", 10), location("b.py", 20)])

    out = relay(Err(envelope)).unwrap_err()

    assert out is envelope
    assert out.inner is original
    assert out.locations[:2] == [Location(file="c.py", line=10), Location(file="b.py", line=20)]
    assert out.locations[2].line == _line("# site: relay")


@wherr
def countdown(n: int) -> Result[int, object]:
    if n == 0:
        return Err(ParseError("bottom"))
    return Ok(countdown(n - 1).propagate())  # site: recursion


def test_recursive_function_gains_one_location_per_frame() -> None:
    err = countdown(3).unwrap_err()

    assert isinstance(err, Wherr)
    assert _lines(err) == [_line("# site: recursion")] * 3
    assert err.downcast(ParseError) is not None
    assert countdown(0).unwrap_err().text == "bottom"


def test_propagation_is_not_caught_by_except_exception() -> None:
    @wherr
    def guarded(text: str) -> Result[int, object]:
        try:
            return Ok(parse_digits(text).propagate())
        except Exception:  # noqa: BLE001
            return Ok(-1)

    assert isinstance(guarded("x").unwrap_err(), Wherr)


# ═════════════════════════════════════════════════════════════════════════════
# Recompilation Fidelity
# ═════════════════════════════════════════════════════════════════════════════


wherrapper = "shadowed at module level"


@wherr
def hygienic(text: str) -> Result[tuple[int, str], object]:
    _wherr_hook = "local value"
    return Ok((parse_digits(text).propagate(), _wherr_hook))  # site: hygiene


def test_hook_cannot_be_shadowed() -> None:
    assert hygienic("5") == Ok((5, "local value"))
    assert _lines(hygienic("x").unwrap_err()) == [_line("# site: hygiene")]


def test_closure_cells_stay_live() -> None:
    offset = 1

    @wherr
    def shifted(text: str) -> Result[int, object]:
        return Ok(parse_digits(text).propagate() + offset)

    assert shifted("1") == Ok(2)
    offset = 10
    assert shifted("1") == Ok(11)


def test_defaults_and_metadata_are_preserved() -> None:
    @wherr
    def scaled(text: str, factor: int = 2, *, bias: int = 1) -> Result[int, object]:
        """Scale a parsed number."""
        return Ok(parse_digits(text).propagate() * factor + bias)

    assert scaled("3") == Ok(7)
    assert scaled("3", 3, bias=0) == Ok(9)
    assert scaled.__name__ == "scaled"
    assert scaled.__doc__ == "Scale a parsed number."
    assert scaled.__qualname__.endswith("test_defaults_and_metadata_are_preserved.<locals>.scaled")
    assert is_instrumented(scaled)


class Reader:
    def read(self, text: str) -> Result[int, ParseError]:
        return parse_digits(text)


class CountingReader(Reader):
    def __init__(self) -> None:
        self.calls = 0

    @wherr
    def read(self, text: str) -> Result[int, object]:
        self.calls += 1
        return Ok(super().read(text).propagate())  # site: super

    @staticmethod
    @wherr
    def parse(text: str) -> Result[int, object]:
        return Ok(parse_digits(text).propagate())  # site: static


def test_methods_and_zero_argument_super() -> None:
    reader = CountingReader()

    assert reader.read("7") == Ok(7)
    assert _lines(reader.read("x").unwrap_err()) == [_line("# site: super")]
    assert reader.calls == 2
    assert _lines(CountingReader.parse("x").unwrap_err()) == [_line("# site: static")]


class Vault:
    def __init__(self, secret: str) -> None:
        self.__secret = secret

    @wherr
    def reveal(self) -> Result[int, object]:
        return Ok(parse_digits(self.__secret).propagate())


def test_private_names_keep_their_class_mangling() -> None:
    assert Vault("42").reveal() == Ok(42)
    assert isinstance(Vault("x").reveal().unwrap_err(), Wherr)


async def _parse_later(text: str) -> Result[int, ParseError]:
    return parse_digits(text)


@wherr
async def fetch(text: str) -> Result[int, object]:
    value = (await _parse_later(text)).propagate()  # site: async
    return Ok(value)


@pytest.mark.asyncio
async def test_async_functions() -> None:
    assert await fetch("3") == Ok(3)
    err = (await fetch("x")).unwrap_err()
    assert _lines(err) == [_line("# site: async")]


def test_reapplying_is_a_no_op() -> None:
    assert wherr(start) is start


# ═════════════════════════════════════════════════════════════════════════════
# Configuration
# ═════════════════════════════════════════════════════════════════════════════


def test_disabled_installs_boundary_only(settings_env: Callable[..., None]) -> None:
    settings_env(WHERR_ENABLED="false")

    @wherr
    def plain(text: str) -> Result[int, object]:
        return Ok(parse_digits(text).propagate())

    assert isinstance(plain("x").unwrap_err(), ParseError)
    assert not hasattr(plain, "__wherr_sites__")


def test_path_style_name(settings_env: Callable[..., None]) -> None:
    settings_env(WHERR_PATH_STYLE="name")

    @wherr
    def named(text: str) -> Result[int, object]:
        return Ok(parse_digits(text).propagate())

    assert named("x").unwrap_err().locations[0].file == _NAME


def test_path_style_full(settings_env: Callable[..., None]) -> None:
    settings_env(WHERR_PATH_STYLE="full")

    @wherr
    def full(text: str) -> Result[int, object]:
        return Ok(parse_digits(text).propagate())

    assert full("x").unwrap_err().locations[0].file == full.__wrapped__.__code__.co_filename


# ═════════════════════════════════════════════════════════════════════════════
# Decoration-time Failures
# ═════════════════════════════════════════════════════════════════════════════


def _code(target: object) -> ErrorCode:
    with pytest.raises(TransformError) as info:
        wherr(target)  # type: ignore[arg-type]
    return info.value.code


def test_rejects_non_functions() -> None:
    assert _code(len) == ErrorCode.NOT_A_FUNCTION
    assert _code(Reader) == ErrorCode.NOT_A_FUNCTION
    assert _code(staticmethod(parse_digits)) == ErrorCode.NOT_A_FUNCTION
    assert _code(functools.partial(parse_digits, "1")) == ErrorCode.NOT_A_FUNCTION
    assert _code(lambda: Ok(1)) == ErrorCode.NOT_A_FUNCTION


def test_rejects_generators() -> None:
    def numbers() -> Iterator[int]:
        yield 1

    assert _code(numbers) == ErrorCode.UNSUPPORTED


def test_rejects_functions_wrapped_by_other_decorators() -> None:
    def passthrough(func: Callable[..., object]) -> Callable[..., object]:
        @functools.wraps(func)
        def inner(*args: object) -> object:
            return func(*args)

        return inner

    @passthrough
    def wrapped(text: str) -> Result[int, object]:
        return Ok(parse_digits(text).propagate())

    assert _code(wrapped) == ErrorCode.NOT_INNERMOST


def test_rejects_functions_without_source() -> None:
    namespace: dict[str, object] = {}
    exec("def generated():\n    return 1\n", namespace)  # noqa: S102

    with pytest.raises(TransformError) as info:
        wherr(namespace["generated"])  # type: ignore[arg-type]
    assert info.value.code == ErrorCode.SOURCE_UNAVAILABLE
    assert "generated" in str(info.value)


def test_stray_propagate_outside_boundary() -> None:
    with pytest.raises(Propagation):
        parse_digits("x").propagate()
