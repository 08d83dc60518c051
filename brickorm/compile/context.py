"""The quoter pair handed to every clause-level sub-builder.

One context exists per :class:`~brickorm.compile.builder.QueryCompiler`, so
all clauses of a statement (and its sub-queries) share one escape primitive.
"""
from __future__ import annotations

from dataclasses import dataclass

from brickorm.compile.quoting import IdentifierQuoter, ValueQuoter


@dataclass(frozen=True)
class CompilationContext:
    """Immutable context for compiling statements against one engine.

    Attributes:
        values: Value quoter bound to the engine's escape primitive.
        identifiers: Identifier quoter (backtick convention).
    """

    values: ValueQuoter
    identifiers: IdentifierQuoter
