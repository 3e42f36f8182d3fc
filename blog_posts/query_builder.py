"""
Simple QueryBuilder for building SELECT queries.
The goal is to produce SQL queries without execution.
"""

import re
from collections.abc import Callable
from typing import Any

_PLACEHOLDER = re.compile(r"\$(\d+)")


class QueryBuilder:
    """
    Immutable query builder for SELECT statements. Every method returns a new builder.

    Usage:
        builder = QueryBuilder("posts")
        query, params = builder.where("published", True).order_by_desc("created_at").build()
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.select_fields = "*"
        self.where_conditions: list[str] = []
        self.or_where_conditions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_count: int | None = None
        self.offset_count: int | None = None

    def _clone(self) -> "QueryBuilder":
        """Create a copy of the current QueryBuilder instance"""
        new_builder = QueryBuilder(self.table_name)
        new_builder.select_fields = self.select_fields
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.or_where_conditions = self.or_where_conditions.copy()
        new_builder.params = self.params.copy()
        new_builder.order_by_parts = self.order_by_parts.copy()
        new_builder.limit_count = self.limit_count
        new_builder.offset_count = self.offset_count
        return new_builder

    def _add_condition(
        self, field: str, value: Any, operator: str, is_or: bool = False
    ) -> "QueryBuilder":
        """Add a condition to either WHERE or OR WHERE clauses"""
        new_builder = self._clone()

        # None compares with IS NULL / IS NOT NULL
        if value is None and operator == "=":
            condition = f"{field} IS NULL"
        elif value is None and operator in ("!=", "<>"):
            condition = f"{field} IS NOT NULL"
        else:
            param_index = len(new_builder.params) + 1
            condition = f"{field} {operator} ${param_index}"
            new_builder.params.append(value)

        if is_or:
            new_builder.or_where_conditions.append(condition)
        else:
            new_builder.where_conditions.append(condition)

        return new_builder

    def _build_group_condition(self, group_builder: "QueryBuilder") -> str:
        """Build a grouped condition string from a group builder"""
        param_offset = len(self.params)
        total_group_params = len(group_builder.params)

        def shift(condition: str) -> str:
            return _PLACEHOLDER.sub(
                lambda m: (
                    f"${param_offset + int(m.group(1))}"
                    if int(m.group(1)) <= total_group_params
                    else m.group(0)
                ),
                condition,
            )

        adjusted_where = [shift(c) for c in group_builder.where_conditions]
        adjusted_or_where = [shift(c) for c in group_builder.or_where_conditions]

        if adjusted_where and adjusted_or_where:
            return f"{' AND '.join(adjusted_where)} OR {' OR '.join(adjusted_or_where)}"
        if adjusted_or_where:
            return " OR ".join(adjusted_or_where)
        return " AND ".join(adjusted_where)

    def _add_group_condition(
        self,
        group_function: Callable[["QueryBuilder"], "QueryBuilder"],
        is_or: bool = False,
    ) -> "QueryBuilder":
        """Add a grouped condition to either WHERE or OR WHERE clauses"""
        group_builder = QueryBuilder("")
        result = group_function(group_builder)
        if result is not None:
            group_builder = result

        if not group_builder.where_conditions and not group_builder.or_where_conditions:
            return self

        new_builder = self._clone()
        group_condition = self._build_group_condition(group_builder)

        if is_or:
            new_builder.or_where_conditions.append(f"({group_condition})")
        else:
            new_builder.where_conditions.append(f"({group_condition})")

        new_builder.params.extend(group_builder.params)
        return new_builder

    def select(self, *fields: str) -> "QueryBuilder":
        """Set the SELECT fields; defaults to * when none is provided."""
        new_builder = self._clone()
        new_builder.select_fields = ", ".join(fields) if fields else "*"
        return new_builder

    def where(
        self,
        field_or_function: str | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add a WHERE condition or grouped WHERE clause.

        Supports both of the following call styles:
        - where(field, value) -> operator defaults to '='
        - where(field, operator, value) -> explicit operator in the second place

        Grouped conditions via function: where(lambda qb: qb.where(...).or_where(...))
        """
        if callable(field_or_function):
            return self._add_group_condition(field_or_function, is_or=False)

        field = field_or_function
        if len(args) == 2:
            operator, value = args
            return self._add_condition(field, value, operator, is_or=False)
        if len(args) == 1:
            return self._add_condition(field, args[0], "=", is_or=False)
        raise TypeError("where() expects (field, value) or (field, operator, value)")

    def or_where(
        self,
        field_or_function: str | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add an OR WHERE condition or grouped OR WHERE clause.

        Same call styles as where().
        """
        if callable(field_or_function):
            return self._add_group_condition(field_or_function, is_or=True)

        field = field_or_function
        if len(args) == 2:
            operator, value = args
            return self._add_condition(field, value, operator, is_or=True)
        if len(args) == 1:
            return self._add_condition(field, args[0], "=", is_or=True)
        raise TypeError("or_where() expects (field, value) or (field, operator, value)")

    def where_contains(self, fields: list[str], term: str) -> "QueryBuilder":
        """Case-insensitive substring match of `term` against any of `fields`.

        LIKE wildcards inside `term` are escaped so they match literally.
        """
        if not fields:
            raise ValueError("where_contains() needs at least one field")
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"

        def group(qb: "QueryBuilder") -> "QueryBuilder":
            for field in fields:
                qb = qb.or_where(field, "ILIKE", pattern)
            return qb

        return self.where(group)

    def order_by_asc(self, field: str) -> "QueryBuilder":
        """Add an ORDER BY ... ASC on the given field. Can be chained."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field}")
        return new_builder

    def order_by_desc(self, field: str) -> "QueryBuilder":
        """Add an ORDER BY ... DESC on the given field. Can be chained."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} DESC")
        return new_builder

    def limit(self, count: int) -> "QueryBuilder":
        """Set the LIMIT clause"""
        if count < 0:
            raise ValueError("Limit must be 0 or greater")
        new_builder = self._clone()
        new_builder.limit_count = int(count)
        return new_builder

    def offset(self, count: int) -> "QueryBuilder":
        """Set the OFFSET clause"""
        if count < 0:
            raise ValueError("Offset must be 0 or greater")
        new_builder = self._clone()
        new_builder.offset_count = int(count)
        return new_builder

    def _build_where(self) -> str:
        where_parts = []

        if self.where_conditions:
            if len(self.where_conditions) == 1 or not self.or_where_conditions:
                where_parts.append(" AND ".join(self.where_conditions))
            else:
                where_parts.append(f"({' AND '.join(self.where_conditions)})")

        if self.or_where_conditions:
            if len(self.or_where_conditions) == 1:
                where_parts.append(self.or_where_conditions[0])
            else:
                where_parts.append(f"({' OR '.join(self.or_where_conditions)})")

        if not where_parts:
            return ""
        return f"WHERE {' OR '.join(where_parts)}"

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query_parts = [f"SELECT {self.select_fields} FROM {self.table_name}"]

        where_clause = self._build_where()
        if where_clause:
            query_parts.append(where_clause)

        if self.order_by_parts:
            query_parts.append(f"ORDER BY {', '.join(self.order_by_parts)}")

        if self.limit_count is not None:
            query_parts.append(f"LIMIT {self.limit_count}")

        if self.offset_count is not None:
            query_parts.append(f"OFFSET {self.offset_count}")

        return " ".join(query_parts), self.params.copy()

    def build_count(self) -> tuple[str, list[Any]]:
        """Build a COUNT(*) over the same conditions, ignoring ordering and pagination"""
        query_parts = [f"SELECT COUNT(*) FROM {self.table_name}"]
        where_clause = self._build_where()
        if where_clause:
            query_parts.append(where_clause)
        return " ".join(query_parts), self.params.copy()

    def to_sql(self) -> str:
        """Return only the SQL query string without parameters"""
        query, _ = self.build()
        return query

    def __str__(self) -> str:
        query, params = self.build()
        return f"Query: {query}\nParams: {params}"
