"""Reference collection: every variable use in a tree not bound locally.

Walks an expression threading the set of names bound at each point. Binding
constructs extend a copy of that set for the sub-trees they scope over; the
set passed in is never mutated, so sibling clauses never see each other's
bindings.
"""

from __future__ import annotations

from dataclasses import dataclass

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
from .forms import is_reserved, is_wildcard
from .patterns import VariableReference, bindings, is_binding_name, pins

EMPTY: frozenset[str] = frozenset()

# Binary segment specifiers combined with - or *: binary-size(4), size(8)*unit(2)
_SPEC_COMBINATORS: tuple[str, ...] = ("-", "*")


# ============================================================
# WALK CONTEXT
# ============================================================


@dataclass
class _RefCtx:
    cfg: AnalysisConfig
    refs: list[VariableReference]


# ============================================================
# PUBLIC API
# ============================================================


def collect(
    expr: object,
    bound: frozenset[str] = EMPTY,
    config: AnalysisConfig | None = None,
) -> list[VariableReference]:
    """References in expr to names not in bound, in traversal order."""
    ctx = _RefCtx(cfg=resolve_config(config), refs=[])
    try:
        _walk(expr, frozenset(bound), ctx, 0)
    except RecursionError:
        raise stack_exhausted(
            "expression", getattr(expr, "pos", None), ctx.cfg.max_depth
        ) from None
    return ctx.refs


def find_variable_references(
    expr: object, config: AnalysisConfig | None = None
) -> list[VariableReference]:
    """References in expr with nothing bound on entry."""
    return collect(expr, EMPTY, config)


def find_variable_references_in_list(
    exprs: list[object], config: AnalysisConfig | None = None
) -> list[VariableReference]:
    """Concatenated references of each expression, each scanned independently."""
    result: list[VariableReference] = []
    for e in exprs:
        result.extend(collect(e, EMPTY, config))
    return result


# ============================================================
# IDENTIFIERS
# ============================================================


def _visit_var(var: Var, bound: frozenset[str], ctx: _RefCtx) -> None:
    _add_ref(var.name, var.pos, bound, ctx)


def _add_ref(name: str, pos: Pos | None, bound: frozenset[str], ctx: _RefCtx) -> None:
    cfg = ctx.cfg
    if is_wildcard(name, cfg.wildcard):
        return
    if is_reserved(name, cfg.extra_special_forms):
        return
    if name in bound:
        return
    if cfg.attribute_sigil != "" and name.startswith(cfg.attribute_sigil):
        return
    ctx.refs.append(VariableReference(name, pos))


def _add_pin_refs(pattern: object, bound: frozenset[str], ctx: _RefCtx) -> None:
    for ref in pins(pattern, ctx.cfg):
        _add_ref(ref.name, ref.pos, bound, ctx)


# ============================================================
# WALK EXPRESSIONS
# ============================================================


def _walk(expr: object, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    if depth > ctx.cfg.max_depth:
        raise too_deep("expression", getattr(expr, "pos", None), ctx.cfg.max_depth)
    d = depth + 1
    if isinstance(expr, Var):
        _visit_var(expr, bound, ctx)
    elif isinstance(expr, (Literal, Alias, AttrRef)):
        return
    elif isinstance(expr, Pin):
        _walk(expr.var, bound, ctx, d)
    elif isinstance(expr, RemoteCall):
        # Receiver and function name are never variable references
        _walk_all(expr.args, bound, ctx, d)
    elif isinstance(expr, ApplyFn):
        _walk(expr.target, bound, ctx, d)
        _walk_all(expr.args, bound, ctx, d)
    elif isinstance(expr, Fn):
        for clause in expr.clauses:
            _walk_fn_clause(clause, bound, ctx, d)
    elif isinstance(expr, Case):
        _walk(expr.subject, bound, ctx, d)
        _walk_branches(expr.clauses, bound, ctx, d)
    elif isinstance(expr, Cond):
        _walk_cond(expr, bound, ctx, d)
    elif isinstance(expr, Receive):
        _walk_receive(expr, bound, ctx, d)
    elif isinstance(expr, Try):
        _walk_try(expr, bound, ctx, d)
    elif isinstance(expr, With):
        _walk_with(expr, bound, ctx, d)
    elif isinstance(expr, For):
        _walk_for(expr, bound, ctx, d)
    elif isinstance(expr, Match):
        _walk(expr.value, bound, ctx, d)
        _add_pin_refs(expr.pattern, bound, ctx)
    elif isinstance(expr, Block):
        _walk_block(expr.exprs, bound, ctx, d)
    elif isinstance(expr, Call):
        _walk_all(expr.args, bound, ctx, d)
    elif isinstance(expr, Pair):
        _walk(expr.left, bound, ctx, d)
        _walk(expr.right, bound, ctx, d)
    elif isinstance(expr, (TupleLit, ListLit)):
        _walk_all(expr.elements, bound, ctx, d)
    elif isinstance(expr, Cons):
        _walk(expr.head, bound, ctx, d)
        _walk(expr.tail, bound, ctx, d)
    elif isinstance(expr, MapLit):
        _walk_all(expr.entries, bound, ctx, d)
    elif isinstance(expr, StructLit):
        _walk(expr.name, bound, ctx, d)
        _walk(expr.map, bound, ctx, d)
    elif isinstance(expr, BinaryLit):
        _walk_all(expr.segments, bound, ctx, d)
    elif isinstance(expr, Segment):
        _walk(expr.value, bound, ctx, d)
        _walk_segment_spec(expr.spec, bound, ctx, d)
    elif isinstance(expr, When):
        _walk(expr.pattern, bound, ctx, d)
        _walk(expr.guard, bound, ctx, d)
    elif isinstance(expr, Generator):
        _walk(expr.source, bound, ctx, d)
    elif isinstance(expr, Clause):
        _walk_branch(expr, bound, ctx, d)
    elif isinstance(expr, list):
        _walk_all(expr, bound, ctx, d)


def _walk_all(exprs: list, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    for e in exprs:
        _walk(e, bound, ctx, depth)


def _walk_segment_spec(spec: object, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    """Scan a binary segment specifier: type words are skipped, size(n) args are read."""
    if depth > ctx.cfg.max_depth:
        raise too_deep("binary specifier", getattr(spec, "pos", None), ctx.cfg.max_depth)
    if isinstance(spec, Var):
        return
    if isinstance(spec, Call) and spec.op in _SPEC_COMBINATORS:
        for a in spec.args:
            _walk_segment_spec(a, bound, ctx, depth + 1)
        return
    if isinstance(spec, Call):
        _walk_all(spec.args, bound, ctx, depth + 1)
        return
    _walk(spec, bound, ctx, depth + 1)


# ============================================================
# CLOSURE CLAUSES
# ============================================================


def _walk_fn_clause(clause: object, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    """fn params [when guard] -> body. Params bind for guard and body only."""
    if not isinstance(clause, Clause):
        return
    _add_pin_refs(clause.patterns, bound, ctx)
    inner = bound | bindings(clause.patterns, ctx.cfg)
    if clause.guard is not None:
        _walk(clause.guard, inner, ctx, depth)
    if clause.body is not None:
        _walk(clause.body, inner, ctx, depth)


# ============================================================
# BRANCHES: CASE, RECEIVE, TRY
# ============================================================


def _walk_branches(
    clauses: list[Clause],
    bound: frozenset[str],
    ctx: _RefCtx,
    depth: int,
    rescue: bool = False,
) -> None:
    for clause in clauses:
        _walk_branch(clause, bound, ctx, depth, rescue)


def _walk_branch(
    clause: object,
    bound: frozenset[str],
    ctx: _RefCtx,
    depth: int,
    rescue: bool = False,
) -> None:
    """One pattern -> body branch. Its bindings are private to its guard and body."""
    if not isinstance(clause, Clause):
        return
    _add_pin_refs(clause.patterns, bound, ctx)
    if rescue:
        branch_names = _rescue_bindings(clause.patterns, ctx.cfg)
    else:
        branch_names = bindings(clause.patterns, ctx.cfg)
    inner = bound | branch_names
    if clause.guard is not None:
        _walk(clause.guard, inner, ctx, depth)
    if clause.body is not None:
        _walk(clause.body, inner, ctx, depth)


def _rescue_bindings(patterns: list, cfg: AnalysisConfig) -> frozenset[str]:
    """rescue e in [ArgumentError] binds e; a bare rescue e binds e."""
    names: set[str] = set()
    for p in patterns:
        if isinstance(p, Call) and p.op == "in" and len(p.args) == 2:
            target = p.args[0]
            if isinstance(target, Var) and is_binding_name(target.name, cfg):
                names.add(target.name)
        else:
            names |= bindings(p, cfg)
    return frozenset(names)


def _walk_cond(expr: Cond, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    for clause in expr.clauses:
        if not isinstance(clause, Clause):
            continue
        _walk_all(clause.patterns, bound, ctx, depth)
        if clause.body is not None:
            _walk(clause.body, bound, ctx, depth)


def _walk_receive(expr: Receive, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    _walk_branches(expr.clauses, bound, ctx, depth)
    after = expr.after
    if isinstance(after, Clause):
        _walk_all(after.patterns, bound, ctx, depth)
        if after.body is not None:
            _walk(after.body, bound, ctx, depth)


def _walk_try(expr: Try, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    if expr.body is not None:
        _walk(expr.body, bound, ctx, depth)
    _walk_branches(expr.rescue, bound, ctx, depth, rescue=True)
    _walk_branches(expr.catch, bound, ctx, depth)
    _walk_branches(expr.else_, bound, ctx, depth)
    if expr.after is not None:
        _walk(expr.after, bound, ctx, depth)


# ============================================================
# SEQUENTIAL BINDING: WITH, FOR, BLOCK
# ============================================================


def _walk_sequential(
    clauses: list, bound: frozenset[str], ctx: _RefCtx, depth: int
) -> frozenset[str]:
    """Scan generator/match/filter clauses left to right. Returns the final bound set."""
    running = bound
    for c in clauses:
        if isinstance(c, Generator):
            _walk(c.source, running, ctx, depth)
            running = _bind_pattern(c.pattern, running, ctx, depth)
        elif isinstance(c, Match):
            _walk(c.value, running, ctx, depth)
            _add_pin_refs(c.pattern, running, ctx)
            running = running | _match_chain_bindings(c, ctx.cfg)
        else:
            _walk(c, running, ctx, depth)
    return running


def _bind_pattern(
    pattern: object, running: frozenset[str], ctx: _RefCtx, depth: int
) -> frozenset[str]:
    """Extend running with a generator pattern; a guard on it sees the new names."""
    _add_pin_refs(pattern, running, ctx)
    extended = running | bindings(pattern, ctx.cfg)
    if isinstance(pattern, When):
        _walk(pattern.guard, extended, ctx, depth)
    return extended


def _match_chain_bindings(expr: Match, cfg: AnalysisConfig) -> frozenset[str]:
    """a = b = value binds the names of every pattern in the chain."""
    names: frozenset[str] = frozenset()
    cur: object = expr
    while isinstance(cur, Match):
        names = names | bindings(cur.pattern, cfg)
        cur = cur.value
    return names


def _walk_with(expr: With, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    running = _walk_sequential(expr.clauses, bound, ctx, depth)
    if expr.body is not None:
        _walk(expr.body, running, ctx, depth)
    _walk_branches(expr.else_, running, ctx, depth)


def _walk_for(expr: For, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    running = _walk_sequential(expr.clauses, bound, ctx, depth)
    # Options are evaluated outside the comprehension's own bindings
    if expr.into is not None:
        _walk(expr.into, bound, ctx, depth)
    if expr.uniq is not None:
        _walk(expr.uniq, bound, ctx, depth)
    if expr.reduce is not None:
        _walk(expr.reduce, bound, ctx, depth)
    if expr.body is not None:
        _walk(expr.body, running, ctx, depth)
    if expr.reduce_clauses is not None:
        _walk_branches(expr.reduce_clauses, running, ctx, depth)


def _walk_block(exprs: list, bound: frozenset[str], ctx: _RefCtx, depth: int) -> None:
    """Statements in order; a top-level match binds for the statements after it."""
    running = bound
    for e in exprs:
        _walk(e, running, ctx, depth)
        if isinstance(e, Match):
            running = running | _match_chain_bindings(e, ctx.cfg)
