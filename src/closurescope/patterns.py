"""Pattern analysis: names a pattern binds, and names its pinned sub-patterns read.

Both walks share the same shape table. A plain identifier is a binding, a
pinned identifier is a reference; map keys and binary size/type specifiers
never bind.
"""

from __future__ import annotations

from dataclasses import dataclass

from .ast import (
    BinaryLit,
    Cons,
    ListLit,
    MapLit,
    Match,
    Node,
    Pair,
    Pin,
    Pos,
    Segment,
    StructLit,
    TupleLit,
    Var,
    When,
)
from .config import AnalysisConfig, resolve_config
from .errors import stack_exhausted, too_deep
from .forms import is_reserved, is_wildcard


@dataclass(frozen=True)
class VariableReference:
    """One textual use of a name."""

    name: str
    pos: Pos | None


# ============================================================
# BINDINGS
# ============================================================


def bindings(pattern: object, config: AnalysisConfig | None = None) -> frozenset[str]:
    """Names bound by matching against pattern."""
    cfg = resolve_config(config)
    acc: set[str] = set()
    try:
        _collect_bindings(pattern, acc, cfg, 0)
    except RecursionError:
        raise stack_exhausted("pattern", _pos_of(pattern), cfg.max_depth) from None
    return frozenset(acc)


def is_binding_name(name: str, cfg: AnalysisConfig) -> bool:
    if is_wildcard(name, cfg.wildcard):
        return False
    return not is_reserved(name, cfg.extra_special_forms)


def _collect_bindings(pattern: object, acc: set[str], cfg: AnalysisConfig, depth: int) -> None:
    if depth > cfg.max_depth:
        raise too_deep("pattern", _pos_of(pattern), cfg.max_depth)
    d = depth + 1
    if isinstance(pattern, Var):
        if is_binding_name(pattern.name, cfg):
            acc.add(pattern.name)
    elif isinstance(pattern, Pin):
        return
    elif isinstance(pattern, Match):
        _collect_bindings(pattern.pattern, acc, cfg, d)
        _collect_bindings(pattern.value, acc, cfg, d)
    elif isinstance(pattern, When):
        _collect_bindings(pattern.pattern, acc, cfg, d)
    elif isinstance(pattern, Cons):
        _collect_bindings(pattern.head, acc, cfg, d)
        _collect_bindings(pattern.tail, acc, cfg, d)
    elif isinstance(pattern, MapLit):
        # Keys are matched by value, never bound
        for entry in pattern.entries:
            if isinstance(entry, Pair):
                _collect_bindings(entry.right, acc, cfg, d)
    elif isinstance(pattern, StructLit):
        _collect_bindings(pattern.map, acc, cfg, d)
    elif isinstance(pattern, (TupleLit, ListLit)):
        for e in pattern.elements:
            _collect_bindings(e, acc, cfg, d)
    elif isinstance(pattern, Pair):
        _collect_bindings(pattern.left, acc, cfg, d)
        _collect_bindings(pattern.right, acc, cfg, d)
    elif isinstance(pattern, BinaryLit):
        for seg in pattern.segments:
            if isinstance(seg, Segment):
                _collect_bindings(seg.value, acc, cfg, d)
            else:
                _collect_bindings(seg, acc, cfg, d)
    elif isinstance(pattern, list):
        for p in pattern:
            _collect_bindings(p, acc, cfg, d)


# ============================================================
# PIN REFERENCES
# ============================================================


def pins(pattern: object, config: AnalysisConfig | None = None) -> list[VariableReference]:
    """References made by ^pinned identifiers inside pattern, in source order."""
    cfg = resolve_config(config)
    acc: list[VariableReference] = []
    try:
        _collect_pins(pattern, acc, cfg, 0)
    except RecursionError:
        raise stack_exhausted("pattern", _pos_of(pattern), cfg.max_depth) from None
    return acc


def _collect_pins(
    pattern: object, acc: list[VariableReference], cfg: AnalysisConfig, depth: int
) -> None:
    if depth > cfg.max_depth:
        raise too_deep("pattern", _pos_of(pattern), cfg.max_depth)
    d = depth + 1
    if isinstance(pattern, Pin):
        var = pattern.var
        if isinstance(var, Var) and not is_wildcard(var.name, cfg.wildcard):
            pos = var.pos if var.pos is not None else pattern.pos
            acc.append(VariableReference(var.name, pos))
    elif isinstance(pattern, Match):
        _collect_pins(pattern.pattern, acc, cfg, d)
        _collect_pins(pattern.value, acc, cfg, d)
    elif isinstance(pattern, When):
        _collect_pins(pattern.pattern, acc, cfg, d)
    elif isinstance(pattern, Cons):
        _collect_pins(pattern.head, acc, cfg, d)
        _collect_pins(pattern.tail, acc, cfg, d)
    elif isinstance(pattern, MapLit):
        # %{^key => value}: a pinned key is still a read
        for entry in pattern.entries:
            if isinstance(entry, Pair):
                _collect_pins(entry.left, acc, cfg, d)
                _collect_pins(entry.right, acc, cfg, d)
    elif isinstance(pattern, StructLit):
        _collect_pins(pattern.map, acc, cfg, d)
    elif isinstance(pattern, (TupleLit, ListLit)):
        for e in pattern.elements:
            _collect_pins(e, acc, cfg, d)
    elif isinstance(pattern, Pair):
        _collect_pins(pattern.left, acc, cfg, d)
        _collect_pins(pattern.right, acc, cfg, d)
    elif isinstance(pattern, BinaryLit):
        for seg in pattern.segments:
            if isinstance(seg, Segment):
                _collect_pins(seg.value, acc, cfg, d)
            else:
                _collect_pins(seg, acc, cfg, d)
    elif isinstance(pattern, list):
        for p in pattern:
            _collect_pins(p, acc, cfg, d)


def _pos_of(node: object) -> Pos | None:
    if isinstance(node, Node):
        return node.pos
    return None
