"""Recursive-descent PromQL parser.

Covers the expression grammar rule files use: selectors, ranges, subqueries,
offset/@ modifiers, unary and binary operators (with vector matching),
aggregations and function calls. Binary precedence follows Prometheus:

    or < and/unless < comparisons < +,- < *,/,%,atan2 < ^ (right-assoc)
"""

from __future__ import annotations

import re
from dataclasses import replace

from .errors import PromQLParseError
from .lexer import DURATION, EOF, IDENT, NUMBER, STRING, Token, tokenize
from .matchers import METRIC_NAME_LABEL, Matcher, MatchType, Selector
from .nodes import (
    AggregateExpr,
    BinaryExpr,
    Call,
    Expr,
    MatrixSelector,
    NumberLiteral,
    ParenExpr,
    StringLiteral,
    SubqueryExpr,
    UnaryExpr,
    VectorMatching,
    VectorSelector,
)

AGGREGATORS = {
    "sum",
    "avg",
    "count",
    "min",
    "max",
    "group",
    "stddev",
    "stdvar",
    "topk",
    "bottomk",
    "count_values",
    "quantile",
    "limitk",
    "limit_ratio",
}
PARAMETRIC_AGGREGATORS = {"topk", "bottomk", "count_values", "quantile", "limitk", "limit_ratio"}

COMPARISON_OPS = {"==", "!=", ">", "<", ">=", "<="}
SET_OPS = {"and", "or", "unless"}

_PRECEDENCE = {
    "or": 1,
    "and": 2,
    "unless": 2,
    "==": 3,
    "!=": 3,
    ">": 3,
    "<": 3,
    ">=": 3,
    "<=": 3,
    "+": 4,
    "-": 4,
    "*": 5,
    "/": 5,
    "%": 5,
    "atan2": 5,
    "^": 6,
}
_POW_PRECEDENCE = 6

_MATCH_OPS = {
    "=": MatchType.EQUAL,
    "!=": MatchType.NOT_EQUAL,
    "=~": MatchType.REGEX_MATCH,
    "!~": MatchType.REGEX_NOT_MATCH,
}

_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
    "y": 31536000,
}
_DURATION_PART = re.compile(r"(\d+)(ms|[smhdwy])")


def duration_seconds(text: str) -> float:
    """Convert a duration literal such as `1h30m` to seconds."""
    return sum(int(n) * _DURATION_UNITS[unit] for n, unit in _DURATION_PART.findall(text))


def _parse_number(text: str) -> float:
    lowered = text.lower()
    if lowered.startswith("0x"):
        return float(int(lowered, 16))
    if lowered == "inf":
        return float("inf")
    if lowered == "nan":
        return float("nan")
    return float(text)


def _matches_empty(matcher: Matcher) -> bool:
    if matcher.type is MatchType.EQUAL:
        return matcher.value == ""
    if matcher.type is MatchType.NOT_EQUAL:
        return matcher.value != ""
    try:
        matched = re.fullmatch(matcher.value, "") is not None
    except re.error:
        # Syntax Python cannot read; count it as selective
        return False
    return matched if matcher.type is MatchType.REGEX_MATCH else not matched


class Parser:
    """Parses one expression string into an `Expr` tree."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    # --- token helpers --------------------------------------------------

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def advance(self) -> Token:
        tok = self.tokens[self.index]
        if tok.kind != EOF:
            self.index += 1
        return tok

    def expect(self, kind: str, what: str | None = None) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise self.error(f"unexpected {self._describe(tok)}, expected {what or kind}")
        return self.advance()

    def error(self, message: str, tok: Token | None = None) -> PromQLParseError:
        tok = tok or self.current
        return PromQLParseError(message, tok.pos)

    @staticmethod
    def _describe(tok: Token) -> str:
        if tok.kind == EOF:
            return "end of input"
        return repr(tok.text)

    # --- entry points ---------------------------------------------------

    def parse(self) -> Expr:
        if self.current.kind == EOF:
            raise self.error("no expression found in input")
        expr = self.parse_expr(0)
        if self.current.kind != EOF:
            raise self.error(f"unexpected {self._describe(self.current)}")
        return expr

    # --- expressions ----------------------------------------------------

    def _binary_op(self) -> str | None:
        tok = self.current
        if tok.kind in _PRECEDENCE:
            return tok.kind
        if tok.kind == IDENT and tok.text.lower() in ("and", "or", "unless", "atan2"):
            return tok.text.lower()
        return None

    def parse_expr(self, min_prec: int) -> Expr:
        lhs = self.parse_unary()
        while True:
            op = self._binary_op()
            if op is None:
                return lhs
            prec = _PRECEDENCE[op]
            if prec < min_prec:
                return lhs
            self.advance()

            return_bool = False
            if self.current.is_ident("bool"):
                if op not in COMPARISON_OPS:
                    raise self.error("bool modifier can only be used on comparison operators")
                self.advance()
                return_bool = True

            matching = self._parse_vector_matching(op)

            # '^' is right-associative, everything else left-associative
            next_min = prec if op == "^" else prec + 1
            rhs = self.parse_expr(next_min)
            lhs = BinaryExpr(op, lhs, rhs, return_bool=return_bool, matching=matching)

    def _parse_vector_matching(self, op: str) -> VectorMatching | None:
        if not self.current.is_ident("on", "ignoring"):
            if op in SET_OPS:
                return VectorMatching(card="many-to-many")
            return None

        on = self.advance().text.lower() == "on"
        labels = self._parse_label_list()
        card = "many-to-many" if op in SET_OPS else "one-to-one"
        include: tuple[str, ...] = ()

        if self.current.is_ident("group_left", "group_right"):
            if op in SET_OPS:
                raise self.error("no grouping allowed for set operations")
            side = self.advance().text.lower()
            card = "many-to-one" if side == "group_left" else "one-to-many"
            if self.current.kind == "(":
                include = self._parse_label_list()

        return VectorMatching(on=on, labels=labels, card=card, include=include)

    def _parse_label_list(self) -> tuple[str, ...]:
        self.expect("(", "'('")
        labels: list[str] = []
        while self.current.kind != ")":
            tok = self.current
            if tok.kind == IDENT:
                labels.append(tok.text)
            elif tok.kind == STRING:
                labels.append(tok.value)
            else:
                raise self.error(f"unexpected {self._describe(tok)} in grouping opts, expected label")
            self.advance()
            if self.current.kind == ",":
                self.advance()
            elif self.current.kind != ")":
                raise self.error(f"unexpected {self._describe(self.current)} in grouping opts, expected ',' or ')'")
        self.advance()
        return tuple(labels)

    def parse_unary(self) -> Expr:
        if self.current.kind in ("+", "-"):
            op = self.advance().kind
            operand = self.parse_expr(_POW_PRECEDENCE)
            if op == "-" and isinstance(operand, NumberLiteral):
                return NumberLiteral(-operand.value)
            return UnaryExpr(op, operand)
        return self.parse_postfix(self.parse_primary())

    def parse_postfix(self, expr: Expr) -> Expr:
        while True:
            tok = self.current
            if tok.kind == "[":
                expr = self._parse_range(expr)
            elif tok.is_ident("offset"):
                self.advance()
                negative = False
                if self.current.kind == "-":
                    self.advance()
                    negative = True
                offset = self._parse_duration_text()
                expr = self._with_modifier(expr, offset=("-" + offset) if negative else offset)
            elif tok.kind == "@":
                self.advance()
                expr = self._with_modifier(expr, at=self._parse_at_value())
            else:
                return expr

    def _parse_duration_text(self) -> str:
        tok = self.current
        if tok.kind in (DURATION, NUMBER):
            self.advance()
            return tok.text
        raise self.error(f"unexpected {self._describe(tok)}, expected duration")

    def _parse_at_value(self) -> str:
        tok = self.current
        if tok.is_ident("start", "end"):
            self.advance()
            self.expect("(", "'('")
            self.expect(")", "')'")
            return f"{tok.text.lower()}()"
        sign = ""
        if tok.kind in ("+", "-"):
            sign = "-" if self.advance().kind == "-" else ""
            tok = self.current
        if tok.kind == NUMBER:
            self.advance()
            return sign + tok.text
        raise self.error(f"unexpected {self._describe(tok)} in @, expected timestamp")

    def _with_modifier(self, expr: Expr, **changes: str) -> Expr:
        key = next(iter(changes))
        if isinstance(expr, (VectorSelector, SubqueryExpr)):
            target = expr
        elif isinstance(expr, MatrixSelector):
            target = expr.vector_selector
        else:
            raise self.error(
                f"{key} modifier must be preceded by an instant vector selector or range vector selector or a subquery"
            )
        if getattr(target, key) is not None:
            raise self.error(f"{key} may not be set multiple times")

        if isinstance(expr, MatrixSelector):
            return replace(expr, vector_selector=replace(target, **changes))
        return replace(expr, **changes)

    def _parse_range(self, expr: Expr) -> Expr:
        open_tok = self.advance()
        rng = self._parse_duration_text()

        if self.current.kind == ":":
            self.advance()
            step = None
            if self.current.kind != "]":
                step = self._parse_duration_text()
            self.expect("]", "']'")
            return SubqueryExpr(expr, rng, step)

        self.expect("]", "']'")
        if not isinstance(expr, VectorSelector):
            raise self.error("ranges only allowed for vector selectors", open_tok)
        if expr.offset is not None or expr.at is not None:
            raise self.error("no offset or @ modifiers allowed before range", open_tok)
        return MatrixSelector(expr, rng)

    def parse_primary(self) -> Expr:
        tok = self.current

        if tok.kind == NUMBER:
            self.advance()
            try:
                return NumberLiteral(_parse_number(tok.text))
            except ValueError as e:
                raise self.error(f"bad number {tok.text!r}", tok) from e
        if tok.kind == DURATION:
            self.advance()
            return NumberLiteral(duration_seconds(tok.text))
        if tok.kind == STRING:
            self.advance()
            return StringLiteral(tok.value)
        if tok.kind == "(":
            self.advance()
            inner = self.parse_expr(0)
            self.expect(")", "')'")
            return ParenExpr(inner)
        if tok.kind == "{":
            return self._parse_vector_selector(None)
        if tok.kind == IDENT:
            return self._parse_identifier()

        raise self.error(f"unexpected {self._describe(tok)}")

    def _parse_identifier(self) -> Expr:
        tok = self.current
        name = tok.text
        lowered = name.lower()
        nxt = self.peek()

        if lowered in ("inf", "nan") and nxt.kind not in ("{", "("):
            self.advance()
            return NumberLiteral(_parse_number(name))

        if lowered in AGGREGATORS and (nxt.kind == "(" or nxt.is_ident("by", "without")):
            return self._parse_aggregate()

        if nxt.kind == "(":
            self.advance()
            return Call(name, self._parse_call_args())

        self.advance()
        return self._parse_vector_selector(name)

    def _parse_call_args(self) -> tuple[Expr, ...]:
        self.expect("(", "'('")
        args: list[Expr] = []
        while self.current.kind != ")":
            args.append(self.parse_expr(0))
            if self.current.kind == ",":
                self.advance()
            elif self.current.kind != ")":
                raise self.error(f"unexpected {self._describe(self.current)} in call, expected ',' or ')'")
        self.advance()
        return tuple(args)

    def _parse_aggregate(self) -> Expr:
        op_tok = self.advance()
        op = op_tok.text.lower()
        grouping: tuple[str, ...] = ()
        without = False
        have_grouping = False

        if self.current.is_ident("by", "without"):
            without = self.advance().text.lower() == "without"
            grouping = self._parse_label_list()
            have_grouping = True

        args = self._parse_call_args()

        if self.current.is_ident("by", "without"):
            if have_grouping:
                raise self.error("aggregation grouping may only be given once")
            without = self.advance().text.lower() == "without"
            grouping = self._parse_label_list()

        expected = 2 if op in PARAMETRIC_AGGREGATORS else 1
        if len(args) != expected:
            raise self.error(
                f"wrong number of arguments for aggregate expression provided, expected {expected}, got {len(args)}",
                op_tok,
            )
        param = args[0] if expected == 2 else None
        return AggregateExpr(op, args[-1], param=param, grouping=grouping, without=without)

    def _parse_vector_selector(self, name: str | None) -> VectorSelector:
        start = self.current
        matchers: list[Matcher] = []
        if name is not None:
            matchers.append(Matcher(METRIC_NAME_LABEL, MatchType.EQUAL, name))

        if self.current.kind == "{":
            self.advance()
            while self.current.kind != "}":
                label_matcher = self._parse_matcher()
                if label_matcher.name == METRIC_NAME_LABEL and name is not None:
                    raise self.error("metric name must not be set twice")
                if label_matcher.name == METRIC_NAME_LABEL and label_matcher.type is MatchType.EQUAL:
                    if any(m.name == METRIC_NAME_LABEL and m.type is MatchType.EQUAL for m in matchers):
                        raise self.error("metric name must not be set twice")
                    name = label_matcher.value
                matchers.append(label_matcher)
                if self.current.kind == ",":
                    self.advance()
                elif self.current.kind != "}":
                    raise self.error(
                        f"unexpected {self._describe(self.current)} in label matching, expected ',' or '}}'"
                    )
            self.advance()

        if name is None and all(_matches_empty(m) for m in matchers):
            raise self.error("vector selector must contain at least one non-empty matcher", start)

        return VectorSelector(name, tuple(matchers))

    def _parse_matcher(self) -> Matcher:
        tok = self.current
        if tok.kind == STRING and self.peek().kind in (",", "}"):
            # {"metric.name"} form
            self.advance()
            return Matcher(METRIC_NAME_LABEL, MatchType.EQUAL, tok.value)
        if tok.kind == IDENT:
            label = tok.text
        elif tok.kind == STRING:
            label = tok.value
        else:
            raise self.error(f"unexpected {self._describe(tok)} in label matching, expected label")
        self.advance()

        op_tok = self.current
        match_type = _MATCH_OPS.get(op_tok.kind)
        if match_type is None:
            raise self.error(f"unexpected {self._describe(op_tok)} in label matching, expected label matching operator")
        self.advance()

        value_tok = self.current
        if value_tok.kind != STRING:
            raise self.error(f"unexpected {self._describe(value_tok)} in label matching, expected string")
        self.advance()
        return Matcher(label, match_type, value_tok.value)


def parse_expr(text: str) -> Expr:
    """Parse a PromQL expression into an expression tree."""
    return Parser(text).parse()


def parse_metric_selector(text: str) -> Selector:
    """Parse a bare selector such as `foo{bar="baz"}` into its matchers."""
    expr = parse_expr(text)
    if not isinstance(expr, VectorSelector) or expr.offset is not None or expr.at is not None:
        raise PromQLParseError(f"not a plain metric selector: {text!r}")
    return expr.matchers
