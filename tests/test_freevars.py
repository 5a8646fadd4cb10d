"""Tests for free variable detection and closure analysis."""

import logging

import pytest

from closurescope.ast import For, Pos
from closurescope.config import AnalysisConfig
from closurescope.errors import TooDeepError
from closurescope.freevars import analyze_closure, detect_free_variables, is_closure
from closurescope.patterns import VariableReference

from builders import (
    add,
    call,
    case,
    clause,
    fn,
    gen,
    lit,
    mapp,
    ok,
    pin,
    tup,
    v,
)


def _ref(name: str, line: int | None = None) -> VariableReference:
    return VariableReference(name, Pos(line) if line is not None else None)


# ── detect_free_variables ──


def test_identifies_free_variables():
    refs = [_ref("x", 1), _ref("y", 2), _ref("z", 3)]
    analysis = detect_free_variables(refs, ["x"])
    assert analysis.has_captures is True
    assert analysis.free_names() == ["y", "z"]


def test_no_free_variables_when_all_bound():
    refs = [_ref("x", 1), _ref("y", 2)]
    analysis = detect_free_variables(refs, ["x", "y"])
    assert analysis.has_captures is False
    assert analysis.free_variables == ()
    assert analysis.total_capture_count == 0


def test_counts_multiple_references():
    refs = [_ref("y", 1), _ref("y", 2), _ref("y", 5)]
    analysis = detect_free_variables(refs, [])
    fv = analysis.free_variables[0]
    assert fv.reference_count == 3
    assert [p.line for p in fv.reference_locations] == [1, 2, 5]


def test_total_capture_count():
    refs = [_ref("a"), _ref("b"), _ref("a"), _ref("c")]
    analysis = detect_free_variables(refs, ["c"])
    assert analysis.total_capture_count == 3


def test_sorted_by_name():
    refs = [_ref("zeta"), _ref("alpha"), _ref("mid")]
    analysis = detect_free_variables(refs, [])
    assert analysis.free_names() == ["alpha", "mid", "zeta"]


def test_locations_without_position_are_dropped():
    refs = [_ref("y"), _ref("y", 4)]
    fv = detect_free_variables(refs, []).free_variables[0]
    assert fv.reference_count == 2
    assert fv.reference_locations == (Pos(4),)


def test_captured_at_recorded():
    site = Pos(10, 3)
    analysis = detect_free_variables([_ref("y")], [], site)
    assert analysis.free_variables[0].captured_at == site


def test_all_references_and_bound_variables_sorted_unique():
    refs = [_ref("b"), _ref("a"), _ref("b")]
    analysis = detect_free_variables(refs, ["b", "q"])
    assert analysis.all_references == ("a", "b")
    assert analysis.bound_variables == ("b", "q")


def test_bound_name_never_free():
    refs = [_ref("x"), _ref("y"), _ref("x")]
    analysis = detect_free_variables(refs, {"x"})
    assert "x" not in analysis.free_names()


# ── analyze_closure ──


def test_scenario_single_free_variable():
    analysis = analyze_closure(fn(clause([v("x")], add(v("x"), v("y")))))
    assert analysis.free_names() == ["y"]
    assert analysis.free_variables[0].reference_count == 1
    assert analysis.has_captures is True
    assert analysis.bound_variables == ("x",)
    assert analysis.all_references == ("x", "y")


def test_scenario_all_params_bound():
    analysis = analyze_closure(fn(clause([v("x"), v("y")], add(v("x"), v("y")))))
    assert analysis.has_captures is False
    assert analysis.free_variables == ()


def test_literal_only_body():
    analysis = analyze_closure(fn(clause([v("x")], lit(42))))
    assert analysis.has_captures is False
    assert analysis.all_references == ()


def test_empty_body():
    analysis = analyze_closure(fn(clause([], None)))
    assert analysis.has_captures is False


def test_zero_arity_with_free_variables():
    analysis = analyze_closure(fn(clause([], add(v("a"), v("b")))))
    assert analysis.free_names() == ["a", "b"]


def test_multi_clause_bindings_union():
    f = fn(
        clause([ok(v("val"))], add(v("val"), v("offset"))),
        clause([tup(lit("error"), v("reason"))], v("reason")),
    )
    analysis = analyze_closure(f)
    assert analysis.free_names() == ["offset"]
    assert analysis.bound_variables == ("reason", "val")


def test_guard_references_collected():
    f = fn(clause([v("x")], v("x"), guard=call(">", v("x"), v("threshold"))))
    assert analyze_closure(f).free_names() == ["threshold"]


def test_pattern_matched_params():
    f = fn(clause([tup(v("a"), v("b"))], add(add(v("a"), v("b")), v("c"))))
    assert analyze_closure(f).free_names() == ["c"]


def test_map_pattern_params():
    f = fn(clause([mapp((lit("name"), v("name")))], call("greet", v("name"), v("greeting"))))
    assert analyze_closure(f).free_names() == ["greeting"]


def test_pinned_param_is_captured():
    analysis = analyze_closure(fn(clause([pin("x", line=4)], lit(1))))
    assert analysis.free_names() == ["x"]
    assert analysis.has_captures is True
    assert analysis.free_variables[0].reference_locations == (Pos(4),)


def test_pinned_param_inside_compound_pattern():
    f = fn(clause([tup(pin("expected"), v("got"))], call("check", v("got"))))
    analysis = analyze_closure(f)
    assert analysis.free_names() == ["expected"]
    assert analysis.bound_variables == ("got",)


def test_body_with_case():
    f = fn(
        clause(
            [v("input")],
            case(
                v("input"),
                clause([ok(v("value"))], add(v("value"), v("bonus"))),
                clause([v("_")], v("default")),
            ),
        )
    )
    assert analyze_closure(f).free_names() == ["bonus", "default"]


def test_nested_anonymous_function():
    inner = fn(clause([v("y")], add(add(v("x"), v("y")), v("z"))))
    outer = fn(clause([v("x")], inner))
    assert analyze_closure(outer).free_names() == ["z"]


def test_body_with_for_comprehension():
    body = For(None, [gen(v("item"), v("items"))], call("*", v("item"), v("factor")))
    f = fn(clause([v("items")], body))
    assert analyze_closure(f).free_names() == ["factor"]


def test_reference_count_multiple_uses():
    f = fn(clause([], add(v("y"), call("*", v("y"), v("y")))))
    assert analyze_closure(f).free_variables[0].reference_count == 3


def test_captured_at_is_fn_position():
    f = fn(clause([], v("y")), line=7)
    fv = analyze_closure(f).free_variables[0]
    assert fv.captured_at == Pos(7)


def test_not_an_anonymous_function():
    with pytest.raises(ValueError):
        analyze_closure(v("x"))


def test_is_closure():
    assert is_closure(fn(clause([], v("y")))) is True
    assert is_closure(fn(clause([v("y")], v("y")))) is False


def test_analysis_is_deterministic():
    f = fn(clause([v("x")], add(v("b"), add(v("a"), v("x")))))
    assert analyze_closure(f) == analyze_closure(f)


def test_debug_logging(caplog):
    with caplog.at_level(logging.DEBUG, logger="closurescope.freevars"):
        analyze_closure(fn(clause([], v("y"))))
    assert "1 free variable" in caplog.text


def test_deep_body_with_large_limit_raises_too_deep():
    body = v("leaf")
    for _ in range(3000):
        body = call("f", body)
    with pytest.raises(TooDeepError):
        analyze_closure(fn(clause([], body)), AnalysisConfig(max_depth=100000))
