"""Label matchers and canonical selector rendering."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Reserved label carrying the metric name
METRIC_NAME_LABEL = "__name__"


class MatchType(str, Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    REGEX_MATCH = "=~"
    REGEX_NOT_MATCH = "!~"


@dataclass(frozen=True)
class Matcher:
    """A single label constraint inside a selector."""

    name: str
    type: MatchType
    value: str

    def __str__(self) -> str:
        return f"{self.name}{self.type.value}{quote(self.value)}"

    def with_value(self, value: str) -> "Matcher":
        return Matcher(self.name, self.type, value)


# An ordered set of matchers for one vector selector
Selector = tuple[Matcher, ...]


_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def quote(value: str) -> str:
    """Double-quote a label value the way Prometheus prints matchers (Go `%q`)."""
    out = []
    for ch in value:
        code = ord(ch)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif code < 0x80:
            out.append(f"\\x{code:02x}")
        elif code < 0x10000:
            out.append(f"\\u{code:04x}")
        else:
            out.append(f"\\U{code:08x}")
    return '"' + "".join(out) + '"'


def metric_name(matchers: Selector) -> str | None:
    """Return the metric name set by an equality `__name__` matcher, if any."""
    for m in matchers:
        if m.name == METRIC_NAME_LABEL and m.type is MatchType.EQUAL:
            return m.value
    return None


def format_selector(matchers: Selector) -> str:
    """Render matchers canonically: `name{label="v",...}`.

    The first equality `__name__` matcher becomes the bare metric name, every
    other matcher stays in the braces in its original order. Braces are left
    out when nothing besides the name remains.
    """
    name = ""
    rest: list[str] = []
    name_taken = False
    for m in matchers:
        if not name_taken and m.name == METRIC_NAME_LABEL and m.type is MatchType.EQUAL:
            name = m.value
            name_taken = True
            continue
        rest.append(str(m))

    if not rest:
        return name
    return f"{name}{{{','.join(rest)}}}"
