"""Repository filter rules for gitback."""

from gitback.filters.engine import (
    BINDINGS,
    RESULT_NAME,
    FilterChain,
    FilterRule,
    compile_filters,
    repository_bindings,
)
from gitback.filters.expression import Program, compile_expression

__all__ = [
    "BINDINGS",
    "RESULT_NAME",
    "FilterChain",
    "FilterRule",
    "Program",
    "compile_expression",
    "compile_filters",
    "repository_bindings",
]
