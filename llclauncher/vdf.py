"""Reader for Valve's KeyValues (VDF) text format."""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

_LEXEME = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<comment>//[^\n]*)
    |(?P<open>\{)
    |(?P<close>\})
    |(?P<cond>\[[^\]\n]*\])
    |(?P<quoted>"(?:[^"\\]|\\.)*")
    |(?P<bare>[^\s{}"\[\]]+)
    |(?P<error>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPE = re.compile(r"\\(.)", re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"'}


class VdfError(ValueError):
    """Raised when VDF text cannot be parsed."""


def _unescape(body: str) -> str:
    return _ESCAPE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), body)


def _tokenize(text: str) -> Iterator[tuple[str, str, int]]:
    line = 1
    for match in _LEXEME.finditer(text):
        kind = match.lastgroup
        raw = match.group()
        if kind == "error":
            raise VdfError(f"unexpected character {raw!r} at line {line}")
        if kind == "quoted":
            yield "string", _unescape(raw[1:-1]), line
        elif kind == "bare":
            yield "string", raw, line
        elif kind in ("open", "close"):
            yield kind, raw, line
        line += raw.count("\n")


def _parse_block(tokens: Iterator[tuple[str, str, int]], nested: bool) -> dict[str, Any]:
    block: dict[str, Any] = {}
    for kind, key, line in tokens:
        if kind == "close":
            if nested:
                return block
            raise VdfError(f"unexpected '}}' at line {line}")
        if kind == "open":
            raise VdfError(f"expected a key, found '{{' at line {line}")
        try:
            kind, value, line = next(tokens)
        except StopIteration:
            raise VdfError(f"missing value for key {key!r}") from None
        if kind == "open":
            block[key] = _parse_block(tokens, nested=True)
        elif kind == "string":
            block[key] = value
        else:
            raise VdfError(f"expected a value for key {key!r} at line {line}")
    if nested:
        raise VdfError("unexpected end of input: missing '}'")
    return block


def loads(text: str) -> dict[str, Any]:
    """Parse VDF text into nested dictionaries of strings."""
    return _parse_block(_tokenize(text), nested=False)