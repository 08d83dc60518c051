"""brickORM schema layer: expressions and query state models."""
from brickorm.schema.expression import Expression
from brickorm.schema.query_state import (
    Condition,
    JoinClause,
    OrderByItem,
    QueryState,
    QueryType,
)

__all__ = [
    "Expression",
    "Condition",
    "JoinClause",
    "OrderByItem",
    "QueryState",
    "QueryType",
]
