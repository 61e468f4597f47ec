"""
Parameter extraction from CUE capability templates.

A capability template declares its user-facing inputs in a top-level
``parameter`` struct:

    parameter: {
        // +usage=Which image would you like to use for your service
        // +short=i
        image: string
        port:  *80 | int
        cmd?: [...string]
    }

`get_parameters` reads that struct without evaluating the rest of the
template. Field kinds are derived from the declared types, literals and
bounds; a concrete ``*default`` makes a field optional and fixes its kind to
the default's kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from velacap.capabilities.specs import Parameter
from velacap.cue.lexer import CueError, CueSyntaxError, Token, TokenKind, tokenize

_BRACKETS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = {v: k for k, v in _BRACKETS.items()}

# Trailing operators that carry an expression over a line break.
_CONTINUATION = {
    "|", "&", ":", "=", "+", "-", "*", "/", "<", ">", "<=", ">=", "==", "!=",
    "=~", "!~", "&&", "||", ".", "!",
}

_ALL_KINDS = frozenset({"null", "bool", "int", "float", "string", "bytes", "list", "struct"})
_KIND_ORDER = ("null", "bool", "int", "float", "string", "bytes", "list", "struct")
_NUMBER_KINDS = frozenset({"int", "float"})

_TYPE_KINDS: dict[str, frozenset[str]] = {
    "string": frozenset({"string"}),
    "bytes": frozenset({"bytes"}),
    "bool": frozenset({"bool"}),
    "number": _NUMBER_KINDS,
    "float": frozenset({"float"}),
    "float32": frozenset({"float"}),
    "float64": frozenset({"float"}),
    "int": frozenset({"int"}),
    "uint": frozenset({"int"}),
    "rune": frozenset({"int"}),
    **{f"{prefix}{bits}": frozenset({"int"}) for prefix in ("int", "uint") for bits in (8, 16, 32, 64, 128)},
}

USAGE_PREFIX = "usage="
SHORT_PREFIX = "short="
ALIAS_PREFIX = "alias="
IGNORE_PREFIX = "ignore"


class CueParameterError(CueError):
    """Raised when the template has no usable ``parameter`` struct."""


@dataclass
class _Field:
    label: str
    optional: bool
    start: int
    end: int
    token: Token
    doc: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Value:
    kinds: frozenset[str]
    concrete: bool = False
    value: Any = None
    default: "_Value | None" = None


_TOP = _Value(_ALL_KINDS)


def _match_brackets(tokens: list[Token]) -> dict[int, int]:
    stack: list[int] = []
    pairs: dict[int, int] = {}
    for i, tok in enumerate(tokens):
        if tok.kind is not TokenKind.PUNCT:
            continue
        if tok.text in _BRACKETS:
            stack.append(i)
        elif tok.text in _CLOSERS:
            if not stack:
                raise CueSyntaxError(f"unexpected '{tok.text}'", tok.line, tok.col)
            opener = stack.pop()
            expected = _BRACKETS[tokens[opener].text]
            if tok.text != expected:
                raise CueSyntaxError(f"expected '{expected}', found '{tok.text}'", tok.line, tok.col)
            pairs[opener] = i
    if stack:
        opener = tokens[stack[-1]]
        raise CueSyntaxError(
            f"expected '{_BRACKETS[opener.text]}', found EOF", opener.line, opener.col
        )
    return pairs


class _TemplateReader:
    """Walks declarations and classifies field values over one token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pairs = _match_brackets(tokens)
        self.definitions: dict[str, _Field] = {}
        self._resolving: set[str] = set()

    # -- declarations -------------------------------------------------------

    def fields(self, start: int, end: int) -> list[_Field]:
        """Return the field declarations found in ``tokens[start:end]``."""
        tokens = self.tokens
        found: list[_Field] = []
        doc: list[str] = []
        after_newline = False
        i = start

        while i < end:
            tok = tokens[i]

            if tok.kind is TokenKind.NEWLINE:
                if after_newline:
                    doc = []
                after_newline = True
                i += 1
                continue
            after_newline = False

            if tok.kind is TokenKind.COMMENT:
                doc.append(tok.text)
                i += 1
                continue

            if tok.is_punct(",", ";"):
                i += 1
                continue

            if tok.kind is TokenKind.IDENT and tok.text in ("if", "for"):
                i = self._skip_comprehension(i + 1, end)
                doc = []
                continue

            if tok.kind is TokenKind.IDENT and tok.text in ("package", "import", "let"):
                i = self._expression_end(i + 1, end)
                doc = []
                continue

            if tok.kind in (TokenKind.IDENT, TokenKind.STRING):
                label = tok.value if tok.kind is TokenKind.STRING else tok.text
                j = i + 1
                # Value alias: X=label: value
                if j < end and tokens[j].is_punct("=") and tok.kind is TokenKind.IDENT:
                    i = j + 1
                    continue
                optional = False
                if j < end and tokens[j].is_punct("?", "!"):
                    optional = tokens[j].text == "?"
                    j += 1
                if j < end and tokens[j].is_punct(":"):
                    value_end = self._expression_end(j + 1, end)
                    found.append(_Field(label, optional, j + 1, value_end, tok, doc))
                    doc = []
                    i = value_end
                    continue

            # Embeddings, pattern constraints, ellipsis and anything else.
            doc = []
            next_i = self._expression_end(i, end)
            i = next_i if next_i > i else i + 1

        return found

    def _skip_comprehension(self, start: int, end: int) -> int:
        i = start
        while i < end:
            tok = self.tokens[i]
            if tok.is_punct("{"):
                return self.pairs[i] + 1
            if tok.kind is TokenKind.PUNCT and tok.text in _BRACKETS:
                i = self.pairs[i] + 1
                continue
            i += 1
        return end

    def _expression_end(self, start: int, end: int) -> int:
        tokens = self.tokens
        last: Token | None = None
        i = start
        while i < end:
            tok = tokens[i]
            if tok.kind is TokenKind.PUNCT and tok.text in _BRACKETS:
                i = self.pairs[i] + 1
                last = tokens[i - 1]
                continue
            if tok.kind is TokenKind.COMMENT:
                i += 1
                continue
            if tok.kind is TokenKind.NEWLINE or tok.is_punct(",", ";"):
                if last is not None and not (
                    last.kind is TokenKind.PUNCT and last.text in _CONTINUATION
                ):
                    return i
                i += 1
                continue
            last = tok
            i += 1
        return end

    # -- values -------------------------------------------------------------

    def significant(self, start: int, end: int) -> list[int]:
        """Indices of value tokens in a range, dropping comments and attributes."""
        tokens = self.tokens
        indices: list[int] = []
        i = start
        while i < end:
            tok = tokens[i]
            if tok.kind in (TokenKind.COMMENT, TokenKind.NEWLINE):
                i += 1
                continue
            if tok.is_punct("@") and i + 2 < end and tokens[i + 2].is_punct("("):
                i = self.pairs[i + 2] + 1
                continue
            indices.append(i)
            i += 1
        return indices

    def _split(self, indices: list[int], op: str) -> list[list[int]]:
        parts: list[list[int]] = [[]]
        k = 0
        while k < len(indices):
            i = indices[k]
            tok = self.tokens[i]
            if tok.kind is TokenKind.PUNCT and tok.text in _BRACKETS:
                close = self.pairs[i]
                while k < len(indices) and indices[k] <= close:
                    parts[-1].append(indices[k])
                    k += 1
                continue
            if tok.is_punct(op):
                parts.append([])
            else:
                parts[-1].append(i)
            k += 1
        return parts

    def _wrapped(self, indices: list[int], opener: str) -> bool:
        return (
            len(indices) >= 2
            and self.tokens[indices[0]].is_punct(opener)
            and self.pairs[indices[0]] == indices[-1]
        )

    def analyze(self, indices: list[int]) -> _Value:
        disjuncts = self._split(indices, "|")
        if len(disjuncts) == 1 and not (
            disjuncts[0] and self.tokens[disjuncts[0][0]].is_punct("*")
        ):
            return self._conjunction(disjuncts[0])

        kinds: set[str] = set()
        default: _Value | None = None
        for disjunct in disjuncts:
            marked = bool(disjunct) and self.tokens[disjunct[0]].is_punct("*")
            value = self._conjunction(disjunct[1:] if marked else disjunct)
            kinds |= value.kinds
            if marked and default is None:
                default = value if value.concrete or value.default is None else value.default
        return _Value(frozenset(kinds), default=default)

    def _conjunction(self, indices: list[int]) -> _Value:
        values = [self._term(part) for part in self._split(indices, "&")]
        if len(values) == 1:
            return values[0]
        kinds = values[0].kinds
        for value in values[1:]:
            kinds = kinds & value.kinds
        concrete = next((v for v in values if v.concrete), None)
        if concrete is not None:
            return _Value(kinds, True, concrete.value)
        return _Value(kinds)

    def _term(self, indices: list[int]) -> _Value:
        if not indices:
            return _TOP
        tokens = self.tokens
        first = tokens[indices[0]]

        if len(indices) == 1:
            return self._single(first)

        if first.is_punct("-", "+") and len(indices) == 2:
            number = tokens[indices[1]]
            if number.kind is TokenKind.NUMBER:
                value, is_float = number.value
                value = -value if first.text == "-" else value
                return _Value(frozenset({"float" if is_float else "int"}), True, value)
            return _TOP

        if first.is_punct("<", "<=", ">", ">="):
            bound = tokens[indices[1]]
            if bound.is_punct("-", "+") and len(indices) > 2:
                bound = tokens[indices[2]]
            if bound.kind is TokenKind.NUMBER:
                return _Value(_NUMBER_KINDS)
            if bound.kind is TokenKind.STRING:
                return _Value(frozenset({"string"}))
            return _TOP

        if first.is_punct("=~", "!~"):
            return _Value(frozenset({"string"}))

        if self._wrapped(indices, "("):
            return self.analyze(indices[1:-1])

        if self._wrapped(indices, "["):
            return self._list(indices)

        if self._wrapped(indices, "{"):
            return self._struct(indices)

        # Pattern-constrained struct: [string]: T
        if first.is_punct("[") and self.pairs[indices[0]] + 1 in indices:
            after = self.pairs[indices[0]] + 1
            if tokens[after].is_punct(":"):
                return _Value(frozenset({"struct"}))

        if first.kind is TokenKind.IDENT and first.text == "close" and self._wrapped(indices[1:], "("):
            return self.analyze(indices[2:-1])

        # Shorthand nested field: a: b: string
        if first.kind in (TokenKind.IDENT, TokenKind.STRING):
            second = tokens[indices[1]]
            if second.is_punct(":") or (
                second.is_punct("?", "!") and len(indices) > 2 and tokens[indices[2]].is_punct(":")
            ):
                return _Value(frozenset({"struct"}))

        # References into other values, calls and arithmetic.
        return _TOP

    def _single(self, tok: Token) -> _Value:
        if tok.kind is TokenKind.STRING:
            return _Value(frozenset({"string"}), True, tok.value)
        if tok.kind is TokenKind.BYTES:
            return _Value(frozenset({"bytes"}), True, tok.value)
        if tok.kind is TokenKind.NUMBER:
            value, is_float = tok.value
            return _Value(frozenset({"float" if is_float else "int"}), True, value)
        if tok.kind is TokenKind.IDENT:
            if tok.text in _TYPE_KINDS:
                return _Value(_TYPE_KINDS[tok.text])
            if tok.text in ("true", "false"):
                return _Value(frozenset({"bool"}), True, tok.text == "true")
            if tok.text == "null":
                return _Value(frozenset({"null"}), True, None)
            if tok.text in self.definitions:
                return self._reference(tok.text)
        return _TOP

    def _reference(self, name: str) -> _Value:
        if name in self._resolving:
            return _TOP
        definition = self.definitions[name]
        self._resolving.add(name)
        try:
            return self.analyze(self.significant(definition.start, definition.end))
        finally:
            self._resolving.discard(name)

    def _list(self, indices: list[int]) -> _Value:
        inner = indices[1:-1]
        kinds = frozenset({"list"})
        if not inner:
            return _Value(kinds, True, [])
        items: list[Any] = []
        for element in self._split(inner, ","):
            if not element:
                continue
            if self.tokens[element[0]].is_punct("..."):
                return _Value(kinds)
            value = self.analyze(element)
            if not value.concrete:
                return _Value(kinds)
            items.append(value.value)
        return _Value(kinds, True, items)

    def _struct(self, indices: list[int]) -> _Value:
        kinds = frozenset({"struct"})
        members = self.fields(indices[0] + 1, indices[-1])
        result: dict[str, Any] = {}
        defaulted = False
        for member in members:
            if member.optional or member.label.startswith(("#", "_")):
                continue
            value = self.analyze(self.significant(member.start, member.end))
            if value.concrete:
                result[member.label] = value.value
            elif value.default is not None and value.default.concrete:
                result[member.label] = value.default.value
                defaulted = True
            else:
                return _Value(kinds)
        if defaulted:
            # Only concrete once member defaults are applied.
            return _Value(kinds, default=_Value(kinds, True, result))
        return _Value(kinds, True, result)

    # -- parameter struct ---------------------------------------------------

    def struct_fields(self, declaration: _Field) -> list[_Field]:
        """Fields of a struct-valued declaration such as ``parameter``."""
        indices = self.significant(declaration.start, declaration.end)
        if not indices:
            tok = declaration.token
            raise CueParameterError(f"{declaration.label} has no value", tok.line, tok.col)
        members: list[_Field] = []
        for part in self._split(indices, "&"):
            members.extend(self._struct_part(part, declaration))
        return members

    def _struct_part(self, indices: list[int], declaration: _Field) -> list[_Field]:
        tokens = self.tokens
        first = tokens[indices[0]] if indices else declaration.token

        if self._wrapped(indices, "{"):
            return self.fields(indices[0] + 1, indices[-1])

        if first.kind is TokenKind.IDENT and first.text == "close" and self._wrapped(indices[1:], "("):
            return self._struct_part(indices[2:-1], declaration)

        if self._wrapped(indices, "("):
            return self._struct_part(indices[1:-1], declaration)

        if len(indices) == 1 and first.kind is TokenKind.IDENT and first.text in self.definitions:
            if first.text in self._resolving:
                return []
            self._resolving.add(first.text)
            try:
                return self.struct_fields(self.definitions[first.text])
            finally:
                self._resolving.discard(first.text)

        # Shorthand declaration: parameter: image: string
        if len(indices) >= 2 and first.kind in (TokenKind.IDENT, TokenKind.STRING):
            second = tokens[indices[1]]
            if second.is_punct(":") or (
                second.is_punct("?", "!") and len(indices) > 2 and tokens[indices[2]].is_punct(":")
            ):
                return self.fields(indices[0], indices[-1] + 1)

        # Pattern constraint only: [string]: T
        if first.is_punct("[") and self.pairs[indices[0]] + 1 <= indices[-1]:
            if tokens[self.pairs[indices[0]] + 1].is_punct(":"):
                return []

        raise CueParameterError(
            f"{declaration.label} must be defined as a struct, found {first.text!r}",
            first.line,
            first.col,
        )


def _retrieve_comments(doc: list[str]) -> tuple[str, str, str, bool]:
    """Read ``+short=``, ``+usage=``, ``+alias=`` and ``+ignore`` directives."""
    short = usage = alias = ""
    ignore = False
    for comment in doc:
        line = comment.removeprefix("//").strip().removeprefix("+")
        if line.startswith(USAGE_PREFIX):
            usage = line.removeprefix(USAGE_PREFIX)
        elif line.startswith(SHORT_PREFIX):
            short = line.removeprefix(SHORT_PREFIX)
        elif line.startswith(ALIAS_PREFIX):
            alias = line.removeprefix(ALIAS_PREFIX)
        elif line.startswith(IGNORE_PREFIX):
            ignore = True
    return short, usage, alias, ignore


def kind_name(kinds: frozenset[str]) -> str:
    """Render a kind set the way CUE prints kinds; top is reported as null."""
    if kinds == _ALL_KINDS:
        return "null"
    if not kinds:
        return "_|_"
    names = [kind for kind in _KIND_ORDER if kind in kinds]
    if _NUMBER_KINDS <= kinds:
        names = ["number" if kind == "int" else kind for kind in names if kind != "float"]
    return "|".join(names)


def get_parameters(template: str) -> list[Parameter]:
    """Extract the parameter schema declared by a CUE template.

    Raises:
        CueSyntaxError: If the template text is malformed
        CueParameterError: If there is no ``parameter`` struct
    """
    reader = _TemplateReader(tokenize(template))
    declarations = reader.fields(0, len(reader.tokens))
    reader.definitions = {d.label: d for d in declarations if d.label.startswith(("#", "_#"))}

    roots = [d for d in declarations if d.label == "parameter"]
    if not roots:
        raise CueParameterError("parameter not exist in template", 1, 1)

    parameters: list[Parameter] = []
    seen: set[str] = set()
    for root in roots:
        for member in reader.struct_fields(root):
            if member.label.startswith(("#", "_")) or member.label in seen:
                continue
            seen.add(member.label)

            value = reader.analyze(reader.significant(member.start, member.end))
            required = not member.optional
            type_name = kind_name(value.kinds)
            default = None
            if value.default is not None and value.default.concrete:
                required = False
                type_name = kind_name(value.default.kinds)
                default = value.default.value

            short, usage, alias, ignore = _retrieve_comments(member.doc)
            parameters.append(
                Parameter(
                    name=member.label,
                    type=type_name,
                    required=required,
                    default=default,
                    description=usage,
                    short=short,
                    alias=alias,
                    ignore=ignore,
                )
            )
    return parameters
