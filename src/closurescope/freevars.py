"""Free variable detection for closures.

A free variable is a name referenced inside an anonymous function that none
of its clause parameters bind; a function with any is a closure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .ast import Fn, Pos
from .config import AnalysisConfig, resolve_config
from .patterns import VariableReference, bindings, pins
from .references import EMPTY, collect

logger = logging.getLogger(__name__)


# ============================================================
# RESULT TYPES
# ============================================================


@dataclass(frozen=True)
class FreeVariable:
    """A name captured from an enclosing scope."""

    name: str
    reference_count: int
    reference_locations: tuple[Pos, ...]
    captured_at: Pos | None


@dataclass(frozen=True)
class FreeVariableAnalysis:
    """Free variables of one closure.

    bound_variables and all_references are sorted and deduplicated;
    free_variables is sorted by name. total_capture_count sums the
    reference counts of the free variables.
    """

    free_variables: tuple[FreeVariable, ...]
    bound_variables: tuple[str, ...]
    all_references: tuple[str, ...]
    has_captures: bool
    total_capture_count: int

    def free_names(self) -> list[str]:
        return [fv.name for fv in self.free_variables]


# ============================================================
# DETECTION
# ============================================================


def detect_free_variables(
    references: list[VariableReference],
    bound_names: frozenset[str] | set[str] | list[str],
    captured_at: Pos | None = None,
) -> FreeVariableAnalysis:
    """Partition references into free and bound against bound_names."""
    bound_set = frozenset(bound_names)
    by_name: dict[str, list[VariableReference]] = {}
    for ref in references:
        if ref.name not in by_name:
            by_name[ref.name] = []
        by_name[ref.name].append(ref)

    free: list[FreeVariable] = []
    for name in sorted(by_name):
        if name in bound_set:
            continue
        refs = by_name[name]
        locations = tuple(r.pos for r in refs if r.pos is not None)
        free.append(
            FreeVariable(
                name=name,
                reference_count=len(refs),
                reference_locations=locations,
                captured_at=captured_at,
            )
        )

    total = 0
    for fv in free:
        total += fv.reference_count

    return FreeVariableAnalysis(
        free_variables=tuple(free),
        bound_variables=tuple(sorted(bound_set)),
        all_references=tuple(sorted(by_name)),
        has_captures=len(free) > 0,
        total_capture_count=total,
    )


def analyze_closure(fn: Fn, config: AnalysisConfig | None = None) -> FreeVariableAnalysis:
    """Free variables of an anonymous function.

    Bound names are the union of every clause's parameter bindings. Pinned
    parameters are reads of the enclosing scope. Guards and bodies are
    scanned from an empty bound set so that all_references also lists uses
    of the parameters.
    """
    if not isinstance(fn, Fn):
        raise ValueError("not an anonymous function: " + type(fn).__name__)
    cfg = resolve_config(config)
    bound: set[str] = set()
    refs: list[VariableReference] = []
    for clause in fn.clauses:
        bound |= bindings(clause.patterns, cfg)
        refs.extend(pins(clause.patterns, cfg))
        if clause.guard is not None:
            refs.extend(collect(clause.guard, EMPTY, cfg))
        if clause.body is not None:
            refs.extend(collect(clause.body, EMPTY, cfg))
    analysis = detect_free_variables(refs, bound, fn.pos)
    logger.debug(
        "closure at %s: %d clause(s), %d free variable(s) %s",
        fn.pos,
        len(fn.clauses),
        len(analysis.free_variables),
        analysis.free_names(),
    )
    return analysis


def is_closure(fn: Fn, config: AnalysisConfig | None = None) -> bool:
    """True if fn captures anything from its enclosing scope."""
    return analyze_closure(fn, config).has_captures
