"""Tests for pattern bindings and pin references."""

import pytest

from closurescope.config import AnalysisConfig
from closurescope.errors import TooDeepError
from closurescope.patterns import bindings, pins

from builders import (
    add,
    binary,
    call,
    cons,
    lit,
    lst,
    mapp,
    match,
    names,
    ok,
    pair,
    pin,
    seg,
    struct,
    tup,
    v,
    when,
)


# ── Bindings ──


def test_identifier_binds():
    assert bindings(v("x")) == {"x"}


def test_wildcard_never_binds():
    assert bindings(v("_")) == frozenset()
    assert bindings(tup(v("_"), v("a"))) == {"a"}


def test_underscore_prefixed_name_binds():
    assert bindings(v("_acc")) == {"_acc"}


def test_pinned_identifier_does_not_bind():
    assert bindings(pin("x")) == frozenset()
    assert bindings(tup(pin("x"), v("y"))) == {"y"}


def test_nested_match_binds_both_sides():
    assert bindings(match(ok(v("value")), v("whole"))) == {"value", "whole"}


def test_guarded_pattern_binds_pattern_only():
    assert bindings(when(v("x"), call(">", v("x"), v("limit")))) == {"x"}


def test_cons_binds_head_and_tail():
    assert bindings(cons(v("h"), v("t"))) == {"h", "t"}


def test_map_binds_values_not_keys():
    p = mapp((v("k"), v("val")), (lit("name"), v("n")))
    assert bindings(p) == {"val", "n"}


def test_struct_delegates_to_map():
    assert bindings(struct("User", (lit("name"), v("n")), (lit("age"), v("a")))) == {"n", "a"}


def test_tuple_and_pair_bind_all_elements():
    assert bindings(tup(v("a"), v("b"), v("c"))) == {"a", "b", "c"}
    assert bindings(pair(v("a"), v("b"))) == {"a", "b"}


def test_binary_binds_segment_values_not_specifiers():
    p = binary(seg(v("header"), call("size", v("n"))), seg(v("rest"), v("binary")))
    assert bindings(p) == {"header", "rest"}


def test_list_of_parameters():
    assert bindings([v("a"), tup(v("b"), v("c"))]) == {"a", "b", "c"}


def test_literals_and_calls_bind_nothing():
    assert bindings(lit(1)) == frozenset()
    assert bindings(add(v("a"), v("b"))) == frozenset()


def test_special_form_names_do_not_bind():
    assert bindings(v("__MODULE__")) == frozenset()


def test_unrecognized_shape_binds_nothing():
    assert bindings(object()) == frozenset()
    assert bindings(None) == frozenset()


def test_bindings_depth_limit():
    p = v("x")
    for _ in range(20):
        p = tup(p)
    with pytest.raises(TooDeepError):
        bindings(p, AnalysisConfig(max_depth=10))


# ── Pins ──


def test_pin_is_reference():
    refs = pins(pin("x", line=3))
    assert names(refs) == ["x"]
    assert refs[0].pos.line == 3


def test_plain_identifiers_skipped():
    assert pins(tup(v("a"), v("b"))) == []


def test_pins_found_in_compound_patterns():
    p = tup(
        pin("a"),
        lst(pin("b"), v("c")),
        cons(pin("d"), v("t")),
        mapp((lit("k"), pin("e"))),
        binary(seg(pin("f"), v("binary"))),
        match(pin("g"), v("whole")),
    )
    assert names(pins(p)) == ["a", "b", "d", "e", "f", "g"]


def test_pinned_map_key_is_reference():
    assert names(pins(mapp((pin("key"), v("val"))))) == ["key"]


def test_pins_ignore_guard():
    assert names(pins(when(pin("a"), call("==", pin("b"), lit(1))))) == ["a"]


def test_large_limit_still_raises_too_deep():
    p = v("x")
    for _ in range(3000):
        p = tup(p)
    cfg = AnalysisConfig(max_depth=100000)
    with pytest.raises(TooDeepError) as exc_info:
        bindings(p, cfg)
    assert exc_info.value.depth == 100000
    with pytest.raises(TooDeepError):
        pins(p, cfg)
