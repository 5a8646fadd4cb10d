"""Scope chains and capture resolution.

A scope chain lists the lexical levels enclosing a closure, outermost first.
Each free variable of the closure is resolved to the innermost level that
binds it; the closure itself sits one level past the end of the chain.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .ast import Fn, Pos
from .config import AnalysisConfig
from .freevars import FreeVariableAnalysis, analyze_closure

logger = logging.getLogger(__name__)

MODULE = "module"
FUNCTION = "function"
CLOSURE = "closure"
BLOCK = "block"

SCOPE_KINDS: tuple[str, ...] = (MODULE, FUNCTION, CLOSURE, BLOCK)


# ============================================================
# SCOPE DESCRIPTORS AND CHAIN
# ============================================================


@dataclass(frozen=True)
class ScopeDef:
    """Caller-supplied description of one enclosing scope."""

    kind: str = BLOCK
    names: frozenset[str] = field(default_factory=frozenset)
    name: str | None = None
    pos: Pos | None = None


@dataclass(frozen=True)
class ClosureScope:
    """One lexical level. level 0 is outermost; parent is the index of the enclosing level."""

    level: int
    kind: str
    names: frozenset[str]
    name: str | None
    pos: Pos | None
    parent: int | None


@dataclass(frozen=True)
class ScopeChain:
    """Scopes indexed by level, outermost first."""

    scopes: tuple[ClosureScope, ...]

    def __len__(self) -> int:
        return len(self.scopes)

    def __iter__(self):
        return iter(self.scopes)

    def __getitem__(self, level: int) -> ClosureScope:
        return self.scopes[level]

    @property
    def closure_level(self) -> int:
        """Level of the closure being analyzed: one past the innermost scope."""
        return len(self.scopes)

    def innermost_first(self) -> list[ClosureScope]:
        return list(reversed(self.scopes))

    def parent_of(self, scope: ClosureScope) -> ClosureScope | None:
        if scope.parent is None:
            return None
        return self.scopes[scope.parent]

    def find(self, name: str) -> ClosureScope | None:
        """Innermost scope binding name, or None."""
        for scope in self.innermost_first():
            if name in scope.names:
                return scope
        return None


def build_scope_chain(scope_defs: list[ScopeDef]) -> ScopeChain:
    """Index descriptors by position and link each to the one before it."""
    scopes: list[ClosureScope] = []
    for level, sd in enumerate(scope_defs):
        kind = sd.kind if sd.kind is not None else BLOCK
        if kind not in SCOPE_KINDS:
            raise ValueError(
                "unknown scope kind '" + str(kind) + "' at level " + str(level)
            )
        parent = level - 1 if level > 0 else None
        scopes.append(
            ClosureScope(
                level=level,
                kind=kind,
                names=frozenset(sd.names),
                name=sd.name,
                pos=sd.pos,
                parent=parent,
            )
        )
    return ScopeChain(scopes=tuple(scopes))


# ============================================================
# RESOLUTION
# ============================================================


@dataclass(frozen=True)
class ScopeAnalysis:
    """Where each free variable of a closure comes from.

    variable_sources only holds names some chain scope binds; the rest are
    listed in unresolved. capture_depth is 0 when every source is the
    closure's immediate parent.
    """

    scope_chain: ScopeChain
    variable_sources: Mapping[str, ClosureScope]
    capture_depth: int
    crosses_function_boundary: bool
    captures_module_attributes: bool
    unresolved: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Read-only view over a private copy
        sources = MappingProxyType(dict(self.variable_sources))
        object.__setattr__(self, "variable_sources", sources)

    def depth_of(self, name: str) -> int | None:
        """Levels between the closure and the scope providing name."""
        scope = self.variable_sources.get(name)
        if scope is None:
            return None
        return _capture_depth(scope, self.scope_chain.closure_level)


@dataclass(frozen=True)
class ClosureAnalysis:
    free_variable_analysis: FreeVariableAnalysis
    scope_analysis: ScopeAnalysis


def _capture_depth(scope: ClosureScope, closure_level: int) -> int:
    return closure_level - scope.level - 1


def _crosses_function(scope: ClosureScope, chain: ScopeChain, closure_level: int) -> bool:
    """True if a function scope lies strictly between scope and the closure."""
    for s in chain:
        if scope.level < s.level < closure_level and s.kind == FUNCTION:
            return True
    return False


def analyze_closure_scope(free_names: list[str], chain: ScopeChain) -> ScopeAnalysis:
    """Resolve free names against chain, innermost scope first."""
    sources: dict[str, ClosureScope] = {}
    unresolved: list[str] = []
    for name in free_names:
        if name in sources or name in unresolved:
            continue
        scope = chain.find(name)
        if scope is None:
            logger.debug("free variable %s not bound by any enclosing scope", name)
            unresolved.append(name)
        else:
            sources[name] = scope

    closure_level = chain.closure_level
    max_depth = 0
    crosses = False
    captures_module = False
    for scope in sources.values():
        depth = _capture_depth(scope, closure_level)
        if depth > max_depth:
            max_depth = depth
        if not crosses and _crosses_function(scope, chain, closure_level):
            crosses = True
        if scope.kind == MODULE:
            captures_module = True

    return ScopeAnalysis(
        scope_chain=chain,
        variable_sources=sources,
        capture_depth=max_depth,
        crosses_function_boundary=crosses,
        captures_module_attributes=captures_module,
        unresolved=tuple(sorted(unresolved)),
    )


def analyze_closure_with_scope(
    fn: Fn, scope_defs: list[ScopeDef], config: AnalysisConfig | None = None
) -> ClosureAnalysis:
    """Free variable analysis of fn plus resolution against its enclosing scopes."""
    fva = analyze_closure(fn, config)
    chain = build_scope_chain(scope_defs)
    sa = analyze_closure_scope(fva.free_names(), chain)
    return ClosureAnalysis(free_variable_analysis=fva, scope_analysis=sa)
