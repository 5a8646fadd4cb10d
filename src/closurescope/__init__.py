"""Closure capture analysis: public API."""

from __future__ import annotations

from .ast import Fn, Pos, find_anonymous_functions
from .config import AnalysisConfig
from .errors import AnalysisError, TooDeepError
from .freevars import (
    FreeVariable,
    FreeVariableAnalysis,
    analyze_closure,
    detect_free_variables,
    is_closure,
)
from .patterns import VariableReference, bindings, pins
from .references import (
    collect,
    find_variable_references,
    find_variable_references_in_list,
)
from .scopes import (
    ClosureAnalysis,
    ClosureScope,
    ScopeAnalysis,
    ScopeChain,
    ScopeDef,
    analyze_closure_scope,
    analyze_closure_with_scope,
    build_scope_chain,
)
from .serialize import node_from_dict, scope_def_from_dict, serialize

__all__ = [
    "AnalysisConfig",
    "AnalysisError",
    "ClosureAnalysis",
    "ClosureScope",
    "Fn",
    "FreeVariable",
    "FreeVariableAnalysis",
    "Pos",
    "ScopeAnalysis",
    "ScopeChain",
    "ScopeDef",
    "TooDeepError",
    "VariableReference",
    "analyze_closure",
    "analyze_closure_scope",
    "analyze_closure_with_scope",
    "analyze_tree",
    "bindings",
    "build_scope_chain",
    "collect",
    "detect_free_variables",
    "find_anonymous_functions",
    "find_variable_references",
    "find_variable_references_in_list",
    "is_closure",
    "node_from_dict",
    "pins",
    "scope_def_from_dict",
    "serialize",
]


def analyze_tree(
    tree: object, config: AnalysisConfig | None = None
) -> list[tuple[Fn, FreeVariableAnalysis]]:
    """Free variable analysis of every anonymous function in tree, outermost first."""
    return [(fn, analyze_closure(fn, config)) for fn in find_anonymous_functions(tree)]
