"""Tests for tree traversal and whole-tree analysis."""

from closurescope import analyze_tree
from closurescope.ast import Fn, Var, children, find_anonymous_functions, walk

from builders import add, block, call, clause, fn, lit, match, tup, v


def test_children_in_source_order():
    node = call("f", v("a"), tup(v("b")), lit(1))
    kinds = [type(c).__name__ for c in children(node)]
    assert kinds == ["Var", "TupleLit", "Literal"]


def test_children_of_leaf_and_non_node():
    assert children(v("x")) == []
    assert children("text") == []


def test_walk_is_preorder():
    seen: list[str] = []

    def visit(node):
        if isinstance(node, Var):
            seen.append(node.name)

    walk(add(v("a"), call("g", v("b"), v("c"))), visit)
    assert seen == ["a", "b", "c"]


def test_walk_unbounded_depth():
    expr = v("leaf")
    for _ in range(10000):
        expr = call("f", expr)
    count = [0]

    def visit(node):
        count[0] += 1

    walk(expr, visit)
    assert count[0] == 10001


def test_arity():
    assert fn(clause([v("a"), v("b")], None)).arity == 2
    assert fn().arity == 0


def test_find_anonymous_functions_outermost_first():
    inner = fn(clause([v("y")], v("y")))
    outer = fn(clause([v("x")], inner))
    tree = block(match(v("f"), outer), fn(clause([], lit(1))))
    found = find_anonymous_functions(tree)
    assert len(found) == 3
    assert found[0] is outer
    assert found[1] is inner
    assert all(isinstance(f, Fn) for f in found)


def test_analyze_tree():
    inner = fn(clause([v("y")], add(v("x"), v("y"))))
    outer = fn(clause([v("x")], inner))
    results = analyze_tree(block(outer))
    assert [f for f, _ in results] == [outer, inner]
    assert results[0][1].has_captures is False
    assert results[1][1].free_names() == ["x"]


def test_analyze_tree_without_closures():
    assert analyze_tree(add(v("a"), v("b"))) == []
