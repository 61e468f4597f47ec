"""Tokenizer for the subset of CUE needed to read capability templates."""

from __future__ import annotations

import bisect
import re
import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import Any


class CueError(ValueError):
    """Base class for template parsing errors, prefixed with ``line:col``."""

    def __init__(self, message: str, line: int, col: int) -> None:
        self.line = line
        self.col = col
        self.reason = message
        super().__init__(f"{line}:{col}: {message}")


class CueSyntaxError(CueError):
    """Raised for malformed template text (unbalanced brackets, bad strings)."""


class TokenKind(Enum):
    IDENT = "ident"
    STRING = "string"
    BYTES = "bytes"
    NUMBER = "number"
    PUNCT = "punct"
    COMMENT = "comment"
    NEWLINE = "newline"


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    line: int
    col: int
    value: Any = None

    def is_punct(self, *texts: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.text in texts


_WHITESPACE = re.compile(r"[ \t\r\f\v]+")
_COMMENT = re.compile(r"//[^\n]*")
_NUMBER = re.compile(
    r"0[xX][0-9a-fA-F_]+|0[oO][0-7_]+|0[bB][01_]+"
    r"|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d+)?(?:[KMGTP]i?)?"
)
_IDENT = re.compile(r"_?#[A-Za-z_$][A-Za-z0-9_$]*|[A-Za-z_$][A-Za-z0-9_$]*")
_PUNCT = re.compile(r"\.\.\.|=~|!~|<=|>=|==|!=|&&|\|\||[{}\[\]():,?!|&*<>=+\-/.@;]")
_MULTIPLIER = re.compile(r"([KMGTP])(i?)$")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'", "/": "/"}


class _Scanner:
    def __init__(self, source: str) -> None:
        self.src = source
        self.n = len(source)
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", source)]

    def position(self, pos: int) -> tuple[int, int]:
        index = bisect.bisect_right(self._line_starts, pos) - 1
        return index + 1, pos - self._line_starts[index] + 1

    def error(self, message: str, pos: int) -> CueSyntaxError:
        line, col = self.position(pos)
        return CueSyntaxError(message, line, col)

    def is_string_start(self, pos: int) -> bool:
        i = pos
        while i < self.n and self.src[i] == "#":
            i += 1
        return i < self.n and self.src[i] in "\"'"

    def scan_string(self, pos: int) -> tuple[int, str, bool]:
        """Scan a string literal starting at ``pos``.

        Returns the end offset, the decoded text (interpolations kept verbatim)
        and whether the literal was single-quoted (bytes).
        """
        src = self.src
        i = pos
        hashes = 0
        while src[i] == "#":
            hashes += 1
            i += 1
        quote = src[i]
        multiline = src.startswith(quote * 3, i)
        i += 3 if multiline else 1
        close = quote * (3 if multiline else 1) + "#" * hashes
        escape = "\\" + "#" * hashes
        parts: list[str] = []

        while True:
            if i >= self.n:
                raise self.error("string literal not terminated", pos)
            if src.startswith(close, i):
                i += len(close)
                break
            ch = src[i]
            if ch == "\n" and not multiline:
                raise self.error("string literal not terminated", pos)
            if src.startswith(escape, i):
                j = i + len(escape)
                if j >= self.n:
                    raise self.error("string literal not terminated", pos)
                if src[j] == "(":
                    end = self._skip_interpolation(j + 1, pos)
                    parts.append(src[i:end])
                    i = end
                    continue
                parts.append(_ESCAPES.get(src[j], src[j]))
                i = j + 1
                continue
            parts.append(ch)
            i += 1

        text = "".join(parts)
        if multiline:
            text = textwrap.dedent(text.removeprefix("\n")).rstrip(" \t")
            text = text.removesuffix("\n")
        return i, text, quote == "'"

    def _skip_interpolation(self, pos: int, string_pos: int) -> int:
        depth = 1
        i = pos
        while i < self.n:
            if self.is_string_start(i):
                i, _, _ = self.scan_string(i)
                continue
            ch = self.src[i]
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        raise self.error("string interpolation not terminated", string_pos)


def _number_value(text: str) -> tuple[int | float, bool]:
    """Decode a CUE number literal; the flag is True for floats."""
    cleaned = text.replace("_", "")
    multiplier = _MULTIPLIER.search(cleaned)
    if multiplier:
        exponent = "KMGTP".index(multiplier.group(1)) + 1
        base = 1024 if multiplier.group(2) else 1000
        return int(float(cleaned[: multiplier.start()]) * base**exponent), False
    if cleaned[:2].lower() in ("0x", "0o", "0b"):
        return int(cleaned, 0), False
    if "." in cleaned or "e" in cleaned.lower():
        return float(cleaned), True
    return int(cleaned), False


def tokenize(source: str) -> list[Token]:
    """Split template text into tokens, keeping comments and newlines."""
    scanner = _Scanner(source)
    tokens: list[Token] = []
    pos = 0
    src = source

    while pos < scanner.n:
        ch = src[pos]

        if ch == "\n":
            line, col = scanner.position(pos)
            tokens.append(Token(TokenKind.NEWLINE, "\n", line, col))
            pos += 1
            continue

        match = _WHITESPACE.match(src, pos)
        if match:
            pos = match.end()
            continue

        line, col = scanner.position(pos)

        match = _COMMENT.match(src, pos)
        if match:
            tokens.append(Token(TokenKind.COMMENT, match.group(), line, col))
            pos = match.end()
            continue

        if scanner.is_string_start(pos):
            end, text, is_bytes = scanner.scan_string(pos)
            kind = TokenKind.BYTES if is_bytes else TokenKind.STRING
            tokens.append(Token(kind, src[pos:end], line, col, text))
            pos = end
            continue

        if ch.isdigit() or (ch == "." and pos + 1 < scanner.n and src[pos + 1].isdigit()):
            match = _NUMBER.match(src, pos)
            if match:
                value, is_float = _number_value(match.group())
                tokens.append(Token(TokenKind.NUMBER, match.group(), line, col, (value, is_float)))
                pos = match.end()
                continue

        match = _IDENT.match(src, pos)
        if match:
            tokens.append(Token(TokenKind.IDENT, match.group(), line, col))
            pos = match.end()
            continue

        match = _PUNCT.match(src, pos)
        if match:
            tokens.append(Token(TokenKind.PUNCT, match.group(), line, col))
            pos = match.end()
            continue

        raise CueSyntaxError(f"illegal character {ch!r}", line, col)

    return tokens
