"""brickORM compilation layer: QueryState → SQL."""
from brickorm.compile.builder import CompiledQuery, QueryCompiler
from brickorm.compile.quoting import IdentifierQuoter, ValueQuoter
from brickorm.compile.validator import StateValidator

__all__ = [
    "CompiledQuery",
    "QueryCompiler",
    "IdentifierQuoter",
    "ValueQuoter",
    "StateValidator",
]
