"""Tokenizer for PromQL expressions."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import PromQLParseError

NUMBER = "NUMBER"
DURATION = "DURATION"
STRING = "STRING"
IDENT = "IDENT"
EOF = "EOF"

_NUMBER_PATTERN = re.compile(
    r"0[xX][0-9a-fA-F]+|(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?"
)
_DURATION_PATTERN = re.compile(r"(?:\d+(?:ms|[smhdwy]))+")
_IDENT_PATTERN = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_IDENT_CHAR = re.compile(r"[a-zA-Z0-9_:]")
# Inside brackets ':' separates a subquery range from its step
_BRACKET_IDENT_PATTERN = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_BRACKET_IDENT_CHAR = re.compile(r"[a-zA-Z0-9_]")

# Longest operators first
_OPERATORS = (
    "==", "!=", ">=", "<=", "=~", "!~",
    "+", "-", "*", "/", "%", "^", ">", "<", "=",
    ",", "(", ")", "{", "}", "[", "]", ":", "@",
)

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


@dataclass(frozen=True)
class Token:
    kind: str  # NUMBER, DURATION, STRING, IDENT, EOF or the operator text
    text: str
    pos: int
    value: str = ""  # decoded contents for STRING tokens

    def is_ident(self, *words: str) -> bool:
        return self.kind == IDENT and self.text.lower() in words


def _unquote(body: str, quote: str, pos: int) -> str:
    """Decode a Go-style quoted string body."""
    if quote == "`":
        return body

    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        if i + 1 >= len(body):
            raise PromQLParseError("unterminated escape sequence", pos + i)
        esc = body[i + 1]
        if esc in _SIMPLE_ESCAPES:
            if esc in "\"'" and esc != quote:
                raise PromQLParseError(f"unknown escape sequence \\{esc}", pos + i)
            out.append(_SIMPLE_ESCAPES[esc])
            i += 2
        elif esc in "xuU":
            width = {"x": 2, "u": 4, "U": 8}[esc]
            digits = body[i + 2 : i + 2 + width]
            if len(digits) != width or not re.fullmatch(r"[0-9a-fA-F]+", digits):
                raise PromQLParseError(f"invalid \\{esc} escape", pos + i)
            out.append(chr(int(digits, 16)))
            i += 2 + width
        elif esc in "01234567":
            digits = body[i + 1 : i + 4]
            if len(digits) != 3 or not re.fullmatch(r"[0-7]{3}", digits):
                raise PromQLParseError("invalid octal escape", pos + i)
            out.append(chr(int(digits, 8)))
            i += 4
        else:
            raise PromQLParseError(f"unknown escape sequence \\{esc}", pos + i)
    return "".join(out)


def _scan_string(text: str, start: int) -> tuple[str, int]:
    quote = text[start]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\" and quote != "`":
            i += 2
            continue
        if ch == quote:
            return _unquote(text[start + 1 : i], quote, start + 1), i + 1
        if ch == "\n" and quote != "`":
            break
        i += 1
    raise PromQLParseError("unterminated quoted string", start)


def tokenize(text: str) -> list[Token]:
    """Split an expression into tokens, ending with an EOF token."""
    tokens: list[Token] = []
    bracket_depth = 0
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        in_brackets = bracket_depth > 0
        ident_pattern = _BRACKET_IDENT_PATTERN if in_brackets else _IDENT_PATTERN
        ident_char = _BRACKET_IDENT_CHAR if in_brackets else _IDENT_CHAR

        if ch.isspace():
            i += 1
            continue

        if ch == "#":
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue

        if ch in "\"'`":
            value, end = _scan_string(text, i)
            tokens.append(Token(STRING, text[i:end], i, value))
            i = end
            continue

        if ch.isdigit() or (ch == "." and i + 1 < n and text[i + 1].isdigit()):
            m = _DURATION_PATTERN.match(text, i)
            if m and not (m.end() < n and ident_char.match(text, m.end())):
                tokens.append(Token(DURATION, m.group(0), i))
                i = m.end()
                continue
            m = _NUMBER_PATTERN.match(text, i)
            if m is None:
                raise PromQLParseError(f"bad number {text[i]!r}", i)
            tokens.append(Token(NUMBER, m.group(0), i))
            i = m.end()
            continue

        if ch.isalpha() or ch == "_" or (ch == ":" and not in_brackets):
            m = ident_pattern.match(text, i)
            if m is not None:
                tokens.append(Token(IDENT, m.group(0), i))
                i = m.end()
                continue

        for op in _OPERATORS:
            if text.startswith(op, i):
                if op == "[":
                    bracket_depth += 1
                elif op == "]":
                    bracket_depth = max(0, bracket_depth - 1)
                tokens.append(Token(op, op, i))
                i += len(op)
                break
        else:
            raise PromQLParseError(f"unexpected character {ch!r}", i)

    tokens.append(Token(EOF, "", n))
    return tokens
