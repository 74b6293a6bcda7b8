"""Expression tree produced by the PromQL parser.

The set of node kinds is closed: every node is one of the dataclasses below.
`children()` yields a node's direct sub-expressions in source order and
`walk()` does a pre-order traversal on top of it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union

from .matchers import Selector, format_selector


@dataclass(frozen=True)
class NumberLiteral:
    value: float


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class VectorSelector:
    name: str | None
    matchers: Selector  # includes the __name__ matcher when a name was given
    offset: str | None = None
    at: str | None = None

    def __str__(self) -> str:
        return format_selector(self.matchers)


@dataclass(frozen=True)
class MatrixSelector:
    vector_selector: VectorSelector
    range: str


@dataclass(frozen=True)
class SubqueryExpr:
    expr: "Expr"
    range: str
    step: str | None = None
    offset: str | None = None
    at: str | None = None


@dataclass(frozen=True)
class ParenExpr:
    expr: "Expr"


@dataclass(frozen=True)
class UnaryExpr:
    op: str
    expr: "Expr"


@dataclass(frozen=True)
class VectorMatching:
    """on/ignoring and group_left/group_right modifiers of a binary operation."""

    on: bool = False
    labels: tuple[str, ...] = ()
    card: str = "one-to-one"  # many-to-one, one-to-many, many-to-many
    include: tuple[str, ...] = ()


@dataclass(frozen=True)
class BinaryExpr:
    op: str
    lhs: "Expr"
    rhs: "Expr"
    return_bool: bool = False
    matching: VectorMatching | None = None


@dataclass(frozen=True)
class AggregateExpr:
    op: str
    expr: "Expr"
    param: "Expr | None" = None
    grouping: tuple[str, ...] = ()
    without: bool = False


@dataclass(frozen=True)
class Call:
    func: str
    args: tuple["Expr", ...] = ()


Expr = Union[
    NumberLiteral,
    StringLiteral,
    VectorSelector,
    MatrixSelector,
    SubqueryExpr,
    ParenExpr,
    UnaryExpr,
    BinaryExpr,
    AggregateExpr,
    Call,
]


def children(node: Expr) -> Iterator[Expr]:
    """Yield direct sub-expressions in the order they appear in the query."""
    if isinstance(node, MatrixSelector):
        yield node.vector_selector
    elif isinstance(node, (SubqueryExpr, ParenExpr, UnaryExpr)):
        yield node.expr
    elif isinstance(node, BinaryExpr):
        yield node.lhs
        yield node.rhs
    elif isinstance(node, AggregateExpr):
        if node.param is not None:
            yield node.param
        yield node.expr
    elif isinstance(node, Call):
        yield from node.args


def walk(node: Expr) -> Iterator[Expr]:
    """Pre-order traversal visiting every node exactly once."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(children(current))))


def format_tree(node: Expr, indent: int = 0) -> str:
    """Indented one-node-per-line dump, for debugging."""
    pad = "  " * indent
    if isinstance(node, VectorSelector):
        label = f"VectorSelector :: {node}"
        if node.offset:
            label += f" offset {node.offset}"
    elif isinstance(node, MatrixSelector):
        label = f"MatrixSelector :: [{node.range}]"
    elif isinstance(node, SubqueryExpr):
        label = f"SubqueryExpr :: [{node.range}:{node.step or ''}]"
    elif isinstance(node, NumberLiteral):
        label = f"NumberLiteral :: {node.value:g}"
    elif isinstance(node, StringLiteral):
        label = f"StringLiteral :: {node.value!r}"
    elif isinstance(node, (UnaryExpr, BinaryExpr, AggregateExpr)):
        label = f"{type(node).__name__} :: {node.op}"
    elif isinstance(node, Call):
        label = f"Call :: {node.func}"
    else:
        label = type(node).__name__

    lines = [pad + label]
    for child in children(node):
        lines.append(format_tree(child, indent + 1))
    return "\n".join(lines)
