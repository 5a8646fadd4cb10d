"""Serialization of trees and analysis results to and from JSON-compatible values."""

from __future__ import annotations

from dataclasses import MISSING, fields

from .ast import (
    Alias,
    ApplyFn,
    AttrRef,
    BinaryLit,
    Block,
    Call,
    Case,
    Clause,
    Cond,
    Cons,
    Fn,
    For,
    Generator,
    ListLit,
    Literal,
    MapLit,
    Match,
    Node,
    Pair,
    Pin,
    Pos,
    Receive,
    RemoteCall,
    Segment,
    StructLit,
    Try,
    TupleLit,
    Var,
    When,
    With,
)
from .config import AnalysisConfig, resolve_config
from .errors import stack_exhausted, too_deep
from .freevars import FreeVariable, FreeVariableAnalysis
from .patterns import VariableReference
from .scopes import (
    ClosureAnalysis,
    ClosureScope,
    ScopeAnalysis,
    ScopeChain,
    ScopeDef,
)

NODE_TYPES: dict[str, type] = {
    cls.__name__: cls
    for cls in (
        Var,
        Literal,
        Alias,
        AttrRef,
        Pin,
        Call,
        RemoteCall,
        ApplyFn,
        Pair,
        TupleLit,
        ListLit,
        Cons,
        MapLit,
        StructLit,
        Segment,
        BinaryLit,
        Match,
        When,
        Clause,
        Fn,
        Case,
        Cond,
        Receive,
        Try,
        Generator,
        With,
        For,
        Block,
    )
}


# ============================================================
# OUTPUT
# ============================================================


def serialize(obj: object, config: AnalysisConfig | None = None) -> object:
    """Recursively serialize an object to a JSON-compatible structure.

    Tree nodes nested deeper than the configured max_depth raise TooDeepError.
    """
    cfg = resolve_config(config)
    try:
        return _serialize(obj, cfg.max_depth, 0)
    except RecursionError:
        raise stack_exhausted("tree", getattr(obj, "pos", None), cfg.max_depth) from None


def _serialize(obj: object, limit: int, depth: int) -> object:
    if obj is None:
        return None
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, (int, float)):
        return obj
    if isinstance(obj, str):
        return obj
    if isinstance(obj, (list, tuple)):
        return [_serialize(x, limit, depth) for x in obj]
    if isinstance(obj, (set, frozenset)):
        items: list[object] = [_serialize(x, limit, depth) for x in obj]
        try:
            items.sort()
        except TypeError:
            pass
        return items
    if isinstance(obj, dict):
        return {str(k): _serialize(v, limit, depth) for k, v in obj.items()}
    if isinstance(obj, Node):
        return _serialize_node(obj, limit, depth)
    return _result_serialize(obj, limit, depth)


def _result_serialize(obj: object, limit: int, depth: int) -> object:
    """Serialize analysis types via isinstance dispatch."""

    def ser(value: object) -> object:
        return _serialize(value, limit, depth)

    if isinstance(obj, Pos):
        return {"_type": "Pos", "line": obj.line, "col": obj.col}
    if isinstance(obj, VariableReference):
        return {
            "_type": "VariableReference",
            "name": obj.name,
            "pos": ser(obj.pos),
        }
    if isinstance(obj, FreeVariable):
        return {
            "_type": "FreeVariable",
            "name": obj.name,
            "reference_count": obj.reference_count,
            "reference_locations": ser(obj.reference_locations),
            "captured_at": ser(obj.captured_at),
        }
    if isinstance(obj, FreeVariableAnalysis):
        return {
            "_type": "FreeVariableAnalysis",
            "free_variables": ser(obj.free_variables),
            "bound_variables": ser(obj.bound_variables),
            "all_references": ser(obj.all_references),
            "has_captures": obj.has_captures,
            "total_capture_count": obj.total_capture_count,
        }
    if isinstance(obj, ClosureScope):
        return {
            "_type": "ClosureScope",
            "level": obj.level,
            "kind": obj.kind,
            "names": ser(obj.names),
            "name": obj.name,
            "pos": ser(obj.pos),
            "parent": obj.parent,
        }
    if isinstance(obj, ScopeChain):
        return ser(obj.scopes)
    if isinstance(obj, ScopeAnalysis):
        # Sources refer to chain entries by level
        sources: dict[str, object] = {}
        for name in sorted(obj.variable_sources):
            sources[name] = obj.variable_sources[name].level
        return {
            "_type": "ScopeAnalysis",
            "scope_chain": ser(obj.scope_chain),
            "variable_sources": sources,
            "capture_depth": obj.capture_depth,
            "crosses_function_boundary": obj.crosses_function_boundary,
            "captures_module_attributes": obj.captures_module_attributes,
            "unresolved": ser(obj.unresolved),
        }
    if isinstance(obj, ClosureAnalysis):
        return {
            "_type": "ClosureAnalysis",
            "free_variable_analysis": ser(obj.free_variable_analysis),
            "scope_analysis": ser(obj.scope_analysis),
        }
    raise TypeError("cannot serialize " + type(obj).__name__)


def _serialize_node(node: Node, limit: int, depth: int) -> dict[str, object]:
    if depth > limit:
        raise too_deep("tree", node.pos, limit)
    result: dict[str, object] = {"_type": type(node).__name__}
    for f in fields(node):
        result[f.name] = _serialize(getattr(node, f.name), limit, depth + 1)
    return result


# ============================================================
# INPUT
# ============================================================


def pos_from_dict(data: object) -> Pos | None:
    if data is None:
        return None
    if not isinstance(data, dict) or "line" not in data:
        raise ValueError("invalid position: " + repr(data))
    return Pos(line=data["line"], col=data.get("col"))


def node_from_dict(data: object, config: AnalysisConfig | None = None) -> object:
    """Build a tree from _type-tagged dicts. Lists map element-wise."""
    cfg = resolve_config(config)
    try:
        return _node_from_dict(data, cfg.max_depth, 0)
    except RecursionError:
        raise stack_exhausted("tree", None, cfg.max_depth) from None


def _node_from_dict(data: object, limit: int, depth: int) -> object:
    if isinstance(data, list):
        return [_node_from_dict(x, limit, depth) for x in data]
    if not isinstance(data, dict):
        raise ValueError("expected a node dict, got " + type(data).__name__)
    tag = data.get("_type")
    cls = NODE_TYPES.get(tag) if isinstance(tag, str) else None
    if cls is None:
        raise ValueError("unknown node type: " + repr(tag))
    pos = pos_from_dict(data.get("pos"))
    if depth > limit:
        raise too_deep("tree", pos, limit)
    kwargs: dict[str, object] = {"pos": pos}
    for f in fields(cls):
        if f.name == "pos":
            continue
        if f.name not in data:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ValueError(tag + " is missing field '" + f.name + "'")
            continue
        kwargs[f.name] = _value_from_dict(data[f.name], limit, depth + 1)
    return cls(**kwargs)


def _value_from_dict(value: object, limit: int, depth: int) -> object:
    if isinstance(value, dict) and "_type" in value:
        return _node_from_dict(value, limit, depth)
    if isinstance(value, list):
        return [_value_from_dict(v, limit, depth) for v in value]
    return value


def scope_def_from_dict(data: dict[str, object]) -> ScopeDef:
    """{"kind": "function", "names": ["x"], "name": "run", "pos": {...}}."""
    names = data.get("names", [])
    if not isinstance(names, (list, tuple, set, frozenset)):
        raise ValueError("scope names must be a list, got " + type(names).__name__)
    return ScopeDef(
        kind=data.get("kind", "block"),
        names=frozenset(names),
        name=data.get("name"),
        pos=pos_from_dict(data.get("pos")),
    )
