"""Analysis errors."""

from __future__ import annotations

from .ast import Pos


class AnalysisError(Exception):
    """Base for errors raised by the analysis passes."""


class TooDeepError(AnalysisError):
    """Tree nesting exceeded the configured depth limit."""

    def __init__(self, msg: str, line: int, col: int, depth: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        self.depth: int = depth
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


def _line_col(pos: Pos | None) -> tuple[int, int]:
    if pos is None:
        return 0, 0
    if pos.col is None:
        return pos.line, 0
    return pos.line, pos.col


def too_deep(what: str, pos: Pos | None, depth: int) -> TooDeepError:
    """Build a TooDeepError for a node at pos."""
    line, col = _line_col(pos)
    return TooDeepError(
        what + " nested deeper than " + str(depth) + " levels", line, col, depth
    )


def stack_exhausted(what: str, pos: Pos | None, depth: int) -> TooDeepError:
    """Build a TooDeepError for a walk that hit the interpreter's recursion limit first."""
    line, col = _line_col(pos)
    return TooDeepError(
        what + " nesting exceeded the interpreter stack before the "
        + str(depth) + " level limit",
        line,
        col,
        depth,
    )
