"""Raw SQL expressions.

An :class:`Expression` is inserted into compiled SQL verbatim.  It is the
only way to put unescaped text into a statement, so it must never be built
from caller-supplied input::

    from brickorm import expr

    query.select(expr("COUNT(*)"))
    query.where("created_at", ">", expr("NOW() - INTERVAL 1 DAY"))

Parameters can be bound by name; they are quoted through the Value Quoter
when the expression is compiled::

    expr("GET_LOCK(:name, :timeout)", {":name": "jobs", ":timeout": 5})
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from brickorm.errors import QueryBuildError

if TYPE_CHECKING:
    from brickorm.compile.quoting import ValueQuoter


@dataclass
class Expression:
    """An opaque SQL fragment.

    Attributes:
        value: Raw SQL text.
        params: Named placeholders (keys include their ``:`` prefix) mapped
            to values that are quoted on compile.
    """

    value: str
    params: dict[str, Any] = field(default_factory=dict)

    def param(self, name: str, value: Any) -> Expression:
        """Bind a single parameter and return ``self`` for chaining."""
        self.params[name] = value
        return self

    def compile(self, quoter: ValueQuoter | None = None) -> str:
        """Return the SQL text with bound parameters substituted.

        Every placeholder is replaced in a single pass, so quoted values
        that happen to contain another placeholder name are left intact.

        Raises:
            QueryBuildError: If parameters are bound but no quoter is given.
        """
        if not self.params:
            return self.value
        if quoter is None:
            raise QueryBuildError(
                "Expression has bound parameters but no quoter was supplied.",
                clause="expression",
            )
        # Longest names first so ":id" cannot match inside ":id_list".
        names = sorted(self.params, key=len, reverse=True)
        pattern = re.compile("|".join(re.escape(n) for n in names))
        return pattern.sub(lambda m: quoter.quote(self.params[m.group(0)]), self.value)

    def __str__(self) -> str:
        return self.value
