"""Name tables: wildcard, special forms and operators.

None of these names is ever a variable binding or a variable reference.
"""

from __future__ import annotations

WILDCARD: str = "_"

SPECIAL_FORMS: frozenset[str] = frozenset(
    {
        # Language special forms
        "__block__",
        "__aliases__",
        "__MODULE__",
        "__DIR__",
        "__ENV__",
        "__CALLER__",
        "__STACKTRACE__",
        "fn",
        "do",
        "else",
        "catch",
        "rescue",
        "after",
        # Definition forms
        "def",
        "defp",
        "defmacro",
        "defmacrop",
        "defmodule",
        "defprotocol",
        "defimpl",
        "defstruct",
        "defdelegate",
        "defguard",
        "defguardp",
        "defexception",
        "defoverridable",
        # Import/require/use
        "import",
        "require",
        "use",
        "alias",
        # Control flow
        "if",
        "unless",
        "case",
        "cond",
        "with",
        "for",
        "try",
        "receive",
        "raise",
        "throw",
        "quote",
        "unquote",
        "unquote_splicing",
        # Other
        "super",
        "&",
        "^",
        "=",
        "|>",
        ".",
        "|",
        "::",
        "<<>>",
        "{}",
        "%{}",
        "%",
    }
)

OPERATORS: frozenset[str] = frozenset(
    {
        "+",
        "-",
        "*",
        "/",
        "==",
        "!=",
        "===",
        "!==",
        "<",
        ">",
        "<=",
        ">=",
        "and",
        "or",
        "not",
        "in",
        "|>",
        "++",
        "--",
        "<>",
        "..",
        "|",
        "&",
        "@",
        "^",
        ".",
        "::",
    }
)


def is_special_form(name: str, extra: frozenset[str] = frozenset()) -> bool:
    return name in SPECIAL_FORMS or name in extra


def is_operator(name: str) -> bool:
    return name in OPERATORS


def is_wildcard(name: str, wildcard: str = WILDCARD) -> bool:
    return name == wildcard


def is_reserved(name: str, extra: frozenset[str] = frozenset()) -> bool:
    """True if name can never denote a variable."""
    return is_special_form(name, extra) or is_operator(name)
