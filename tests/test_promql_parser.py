"""Tests for the PromQL parser and canonical selector rendering."""

import math

import pytest

from promdead.promql import (
    Matcher,
    MatchType,
    PromQLParseError,
    format_selector,
    metric_name,
    parse_expr,
    parse_metric_selector,
    walk,
)
from promdead.promql.lexer import tokenize
from promdead.promql.matchers import quote
from promdead.promql.nodes import (
    AggregateExpr,
    BinaryExpr,
    Call,
    MatrixSelector,
    NumberLiteral,
    ParenExpr,
    StringLiteral,
    SubqueryExpr,
    UnaryExpr,
    VectorSelector,
)


@pytest.mark.parametrize(
    "selector",
    [
        "foo",
        'foo{bar="baz"}',
        'foo{bar="baz",z="1"}',
    ],
)
def test_canonical_rendering_round_trips(selector: str):
    assert format_selector(parse_metric_selector(selector)) == selector


def test_rendering_normalizes_spacing_and_quotes():
    matchers = parse_metric_selector("foo{ bar = 'baz' , z!~`a.*` , }")
    assert format_selector(matchers) == 'foo{bar="baz",z!~"a.*"}'


def test_name_matcher_inside_braces_becomes_metric_name():
    matchers = parse_metric_selector('{__name__="foo",job="x"}')
    assert metric_name(matchers) == "foo"
    assert format_selector(matchers) == 'foo{job="x"}'


def test_regex_name_matcher_stays_in_braces():
    matchers = parse_metric_selector('{__name__=~"foo|bar"}')
    assert metric_name(matchers) is None
    assert format_selector(matchers) == '{__name__=~"foo|bar"}'


def test_escaped_values_render_escaped():
    matchers = parse_metric_selector('foo{bar=~"a\\\\|b|c"}')
    assert matchers[1].value == "a\\|b|c"
    assert format_selector(matchers) == 'foo{bar=~"a\\\\|b|c"}'


def test_matcher_str():
    assert str(Matcher("job", MatchType.NOT_EQUAL, 'say "hi"')) == 'job!="say \\"hi\\""'


def test_name_matcher_comes_first():
    sel = parse_expr('foo{a="1"}')
    assert isinstance(sel, VectorSelector)
    assert sel.name == "foo"
    assert sel.matchers == (
        Matcher("__name__", MatchType.EQUAL, "foo"),
        Matcher("a", MatchType.EQUAL, "1"),
    )


def test_matrix_selector_and_offset():
    expr = parse_expr('rate(foo{a="1"}[5m] offset 1h)')
    assert isinstance(expr, Call)
    assert expr.func == "rate"
    (arg,) = expr.args
    assert isinstance(arg, MatrixSelector)
    assert arg.range == "5m"
    assert arg.vector_selector.offset == "1h"


def test_negative_offset_and_at_modifier():
    expr = parse_expr("foo offset -5m @ 1609746000")
    assert isinstance(expr, VectorSelector)
    assert expr.offset == "-5m"
    assert expr.at == "1609746000"

    expr = parse_expr("foo @ end()")
    assert expr.at == "end()"


def test_subquery():
    expr = parse_expr('max_over_time(rate(foo[1m])[30m:1m]) > 3')
    assert isinstance(expr, BinaryExpr)
    call = expr.lhs
    assert isinstance(call, Call)
    sub = call.args[0]
    assert isinstance(sub, SubqueryExpr)
    assert (sub.range, sub.step) == ("30m", "1m")

    sub = parse_expr("foo[5m:]")
    assert isinstance(sub, SubqueryExpr)
    assert sub.step is None


def test_aggregation_grouping_before_and_after():
    before = parse_expr('sum by (job, instance) (rate(foo[5m]))')
    after = parse_expr('sum(rate(foo[5m])) by (job, instance)')
    assert isinstance(before, AggregateExpr)
    assert before == after
    assert before.grouping == ("job", "instance")
    assert not before.without


def test_parametric_aggregation():
    expr = parse_expr('topk without (pod) (5, foo)')
    assert isinstance(expr, AggregateExpr)
    assert expr.without
    assert expr.param == NumberLiteral(5.0)

    expr = parse_expr('count_values("version", build_info)')
    assert expr.param == StringLiteral("version")


def test_aggregation_argument_count_is_checked():
    with pytest.raises(PromQLParseError):
        parse_expr("topk(foo)")
    with pytest.raises(PromQLParseError):
        parse_expr("sum(1, foo)")


def test_binary_precedence():
    expr = parse_expr("a + b * c")
    assert isinstance(expr, BinaryExpr) and expr.op == "+"
    assert isinstance(expr.rhs, BinaryExpr) and expr.rhs.op == "*"

    expr = parse_expr("a or b and c")
    assert expr.op == "or"
    assert expr.rhs.op == "and"

    # ^ is right-associative
    expr = parse_expr("a ^ b ^ c")
    assert expr.op == "^"
    assert isinstance(expr.rhs, BinaryExpr) and expr.rhs.op == "^"


def test_unary_minus_binds_looser_than_power():
    expr = parse_expr("-a ^ 2")
    assert isinstance(expr, UnaryExpr)
    assert isinstance(expr.expr, BinaryExpr)

    expr = parse_expr("-a * 2")
    assert isinstance(expr, BinaryExpr)
    assert isinstance(expr.lhs, UnaryExpr)


def test_vector_matching_modifiers():
    expr = parse_expr('foo{a="1"} > bool on(instance) group_left(job) bar{a="1"}')
    assert isinstance(expr, BinaryExpr)
    assert expr.return_bool
    assert expr.matching.on
    assert expr.matching.labels == ("instance",)
    assert expr.matching.card == "many-to-one"
    assert expr.matching.include == ("job",)


def test_bool_only_for_comparisons():
    with pytest.raises(PromQLParseError):
        parse_expr("a + bool b")


def test_keywords_are_valid_label_names():
    matchers = parse_metric_selector('foo{on="x",by="y",offset="z"}')
    assert [m.name for m in matchers[1:]] == ["on", "by", "offset"]


def test_numbers_and_literals():
    assert parse_expr("0x1f") == NumberLiteral(31.0)
    assert parse_expr("1.5e3") == NumberLiteral(1500.0)
    assert parse_expr("-2") == NumberLiteral(-2.0)
    assert math.isinf(parse_expr("Inf").value)
    assert math.isnan(parse_expr("NaN").value)
    assert parse_expr('"hello"') == StringLiteral("hello")


def test_comments_are_skipped():
    expr = parse_expr("foo # trailing comment\n  > 1")
    assert isinstance(expr, BinaryExpr)


def test_recording_rule_names_with_colons():
    expr = parse_expr('job:http_requests:rate5m{job="api"}')
    assert expr.name == "job:http_requests:rate5m"


def test_parenthesized_expression():
    expr = parse_expr("(foo)")
    assert isinstance(expr, ParenExpr)


@pytest.mark.parametrize(
    "query",
    [
        "",
        "foo{",
        'foo{bar="baz"',
        "foo{bar}",
        'foo{bar=baz}',
        "{}",
        '{job=""}',
        'foo{__name__="bar"}',
        "sum(foo",
        "rate(foo)[5m]offset",
        "(foo + bar)[5m]",
        "foo offset 5m offset 1m",
        "1 +",
        '"unterminated',
        'foo{a="\\q"}',
    ],
)
def test_parse_errors(query: str):
    with pytest.raises(PromQLParseError):
        parse_expr(query)


def test_parse_error_reports_position():
    with pytest.raises(PromQLParseError) as exc_info:
        parse_expr("foo{bar=}")
    assert exc_info.value.pos == 8


def test_parse_metric_selector_rejects_expressions():
    with pytest.raises(PromQLParseError):
        parse_metric_selector("rate(foo[5m])")


@pytest.mark.parametrize(
    ("query", "range_", "step"),
    [
        ("foo[5m:]", "5m", None),
        ("foo[1h:5m]", "1h", "5m"),
        ("foo[1h30m:100ms]", "1h30m", "100ms"),
        ("foo[ 10m : 1m ]", "10m", "1m"),
        ("rate(x[5m])[1h:]", "1h", None),
        ("max_over_time(rate(foo[1m])[30m:1m])", "30m", "1m"),
        ("max_over_time(job:x:rate5m[1h:5m])", "1h", "5m"),
    ],
)
def test_subquery_ranges(query: str, range_: str, step: str | None):
    sub = next(n for n in walk(parse_expr(query)) if isinstance(n, SubqueryExpr))
    assert (sub.range, sub.step) == (range_, step)


def test_subquery_body_keeps_recording_rule_name():
    expr = parse_expr("max_over_time(job:x:rate5m[1h:5m])")
    sub = expr.args[0]
    assert isinstance(sub, SubqueryExpr)
    assert sub.expr.name == "job:x:rate5m"


def test_nested_subqueries():
    outer = parse_expr("rate(x[5m])[1h:][2h:10m]")
    assert isinstance(outer, SubqueryExpr)
    assert (outer.range, outer.step) == ("2h", "10m")
    inner = outer.expr
    assert isinstance(inner, SubqueryExpr)
    assert (inner.range, inner.step) == ("1h", None)
    assert isinstance(inner.expr, Call)


@pytest.mark.parametrize(
    ("query", "offset", "at"),
    [
        ("foo[1h:5m] offset 1d", "1d", None),
        ("rate(foo[5m])[30m:] offset -5m", "-5m", None),
        ("foo[10m:1m] @ 1609746000 offset 1h", "1h", "1609746000"),
    ],
)
def test_modifiers_after_subquery(query: str, offset: str, at: str | None):
    sub = parse_expr(query)
    assert isinstance(sub, SubqueryExpr)
    assert (sub.offset, sub.at) == (offset, at)


@pytest.mark.parametrize(
    ("value", "rendered"),
    [
        ("plain", '"plain"'),
        ("a\tb\nc", '"a\\tb\\nc"'),
        ("\a\b\f\v", '"\\a\\b\\f\\v"'),
        ("\x01\x7f", '"\\x01\\x7f"'),
        ("zero\u200bwidth", '"zero\\u200bwidth"'),
        ("café über", '"café über"'),
        ("\U000e0001", '"\\U000e0001"'),
    ],
)
def test_quote_matches_prometheus_matcher_output(value: str, rendered: str):
    assert quote(value) == rendered


def test_colon_inside_brackets_splits_range_and_step():
    kinds = [t.kind for t in tokenize("job:x:rate5m[30m:1m]")]
    assert kinds == ["IDENT", "[", "DURATION", ":", "DURATION", "]", "EOF"]
