"""Expression tree node definitions consumed by the analysis passes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


# ============================================================
# POSITION
# ============================================================


@dataclass(frozen=True)
class Pos:
    """Source position, 1-indexed. col is None when the parser omits it."""

    line: int
    col: int | None = None


# ============================================================
# BASE
# ============================================================


@dataclass
class Node:
    """Base for all tree nodes."""

    pos: Pos | None


# ============================================================
# LEAVES
# ============================================================


@dataclass
class Var(Node):
    """Identifier."""

    name: str


@dataclass
class Literal(Node):
    """Atom, number, string, boolean, nil."""

    value: object


@dataclass
class Alias(Node):
    """Module name: Foo.Bar."""

    parts: list[str]


@dataclass
class AttrRef(Node):
    """Module attribute read: @name."""

    name: str


@dataclass
class Pin(Node):
    """^var inside a pattern."""

    var: Var


# ============================================================
# CALLS
# ============================================================


@dataclass
class Call(Node):
    """op(args): local calls and operators."""

    op: str
    args: list[Node]


@dataclass
class RemoteCall(Node):
    """receiver.fun(args)."""

    receiver: Node
    fun: str
    args: list[Node]


@dataclass
class ApplyFn(Node):
    """target.(args): invocation of an anonymous function value."""

    target: Node
    args: list[Node]


# ============================================================
# AGGREGATES
# ============================================================


@dataclass
class Pair(Node):
    """{left, right}: two-element tuple, keyword entry, map entry."""

    left: Node
    right: Node


@dataclass
class TupleLit(Node):
    """{a, b, c}."""

    elements: list[Node]


@dataclass
class ListLit(Node):
    """[a, b, c]."""

    elements: list[Node]


@dataclass
class Cons(Node):
    """[head | tail]."""

    head: Node
    tail: Node


@dataclass
class MapLit(Node):
    """%{k => v}. Entries are key/value pairs."""

    entries: list[Pair]


@dataclass
class StructLit(Node):
    """%Name{k: v}."""

    name: Node
    map: MapLit


@dataclass
class Segment(Node):
    """value::spec inside a binary."""

    value: Node
    spec: Node


@dataclass
class BinaryLit(Node):
    """<<segments>>."""

    segments: list[Node]


# ============================================================
# PATTERNS
# ============================================================


@dataclass
class Match(Node):
    """pattern = value."""

    pattern: Node
    value: Node


@dataclass
class When(Node):
    """pattern when guard."""

    pattern: Node
    guard: Node


# ============================================================
# CLAUSES AND BINDING CONSTRUCTS
# ============================================================


@dataclass
class Clause(Node):
    """patterns [when guard] -> body."""

    patterns: list[Node]
    guard: Node | None
    body: Node | None


@dataclass
class Fn(Node):
    """fn clauses end."""

    clauses: list[Clause]

    @property
    def arity(self) -> int:
        if len(self.clauses) == 0:
            return 0
        return len(self.clauses[0].patterns)


@dataclass
class Case(Node):
    """case subject do clauses end."""

    subject: Node
    clauses: list[Clause]


@dataclass
class Cond(Node):
    """cond do condition -> body end. Each clause holds its condition in patterns[0]."""

    clauses: list[Clause]


@dataclass
class Receive(Node):
    """receive do clauses after timeout -> body end."""

    clauses: list[Clause]
    after: Clause | None = None


@dataclass
class Try(Node):
    """try do body rescue .. catch .. else .. after .. end."""

    body: Node | None
    rescue: list[Clause]
    catch: list[Clause]
    else_: list[Clause]
    after: Node | None = None


@dataclass
class Generator(Node):
    """pattern <- source."""

    pattern: Node
    source: Node


@dataclass
class With(Node):
    """with clauses do body else else_ end."""

    clauses: list[Node]
    body: Node | None
    else_: list[Clause]


@dataclass
class For(Node):
    """for clauses, into: .., uniq: .., reduce: .. do body end."""

    clauses: list[Node]
    body: Node | None
    into: Node | None = None
    uniq: Node | None = None
    reduce: Node | None = None
    reduce_clauses: list[Clause] | None = None


@dataclass
class Block(Node):
    """Sequence of expressions; the value is the last one."""

    exprs: list[Node]


# ============================================================
# GENERIC TRAVERSAL
# ============================================================


def children(node: object) -> list[object]:
    """Direct sub-nodes of a node, in source order."""
    if isinstance(node, list):
        return list(node)
    if not isinstance(node, Node):
        return []
    result: list[object] = []
    for name in node.__dataclass_fields__:
        if name == "pos":
            continue
        val = getattr(node, name)
        if isinstance(val, Node):
            result.append(val)
        elif isinstance(val, list):
            for item in val:
                if isinstance(item, Node):
                    result.append(item)
    return result


def walk(node: object, visitor: Callable[[Node], None]) -> None:
    """Pre-order walk calling visitor on every node. Iterative, so depth is unbounded."""
    stack: list[object] = [node]
    while len(stack) > 0:
        cur = stack.pop()
        if isinstance(cur, Node):
            visitor(cur)
        kids = children(cur)
        kids.reverse()
        stack.extend(kids)


def find_anonymous_functions(tree: object) -> list[Fn]:
    """Every fn literal in the tree, outermost first."""
    found: list[Fn] = []

    def visit(node: Node) -> None:
        if isinstance(node, Fn):
            found.append(node)

    walk(tree, visit)
    return found
