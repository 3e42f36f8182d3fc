"""Repository class"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel

from blog_posts.config import RepositoryConfig
from blog_posts.database_operations import DatabaseOperations
from blog_posts.db_context import Database
from blog_posts.entities import SortOrder
from blog_posts.query_builder import QueryBuilder

T = TypeVar("T", bound=BaseModel)
U = TypeVar("U", bound=BaseModel)


class Repository(Generic[T, U]):
    """Fluent repository over a single table.

    Query methods (where, order_by, limit, ...) return a new repository and
    never mutate the receiver, so a configured repository can be shared by
    concurrent requests.

    Type Parameters:
        T: Entity type mapped from each row
        U: Update model type; only fields explicitly set are written
    """

    def __init__(
        self,
        database: Database,
        entity_class: type[T],
        update_class: type[U],
        table_name: str,
        config: RepositoryConfig | None = None,
    ):
        if database is None:
            raise ValueError("database is required")
        if not table_name:
            raise ValueError("table_name is required")

        self.database = database
        self.entity_class = entity_class
        self.update_class = update_class
        self.table_name = table_name
        self.config = config or RepositoryConfig()
        self._qualified_table_name = self.config.qualify(table_name)
        self._query_builder: QueryBuilder | None = None

        entity_fields = entity_class.model_fields
        self._column_names = list(entity_fields)
        self._has_created_at = "created_at" in entity_fields
        self._has_updated_at = "updated_at" in entity_fields

        # Composition: Inject dependencies
        self.db_ops = DatabaseOperations(database)

    def map_row(self, row: Any) -> T:
        """Map a database row to an entity"""
        return self.entity_class(**dict(row))

    def _get_or_create_query_builder(self) -> QueryBuilder:
        if self._query_builder is None:
            return QueryBuilder(self._qualified_table_name)
        return self._query_builder

    def _clone_with_query_builder(self, query_builder: QueryBuilder):
        """Create a shallow copy of this repository carrying the given query builder"""
        new_repo = object.__new__(type(self))
        new_repo.__dict__.update(self.__dict__)
        new_repo._query_builder = query_builder
        return new_repo

    def _automatic_columns(self, is_create: bool) -> dict[str, str]:
        """SQL expressions for the timestamp columns the entity has.

        Stamped by the database clock; statement_timestamp() also advances
        between statements of one transaction.
        """
        columns = {}
        if is_create and self._has_created_at:
            columns["created_at"] = "statement_timestamp()"
        if self._has_updated_at:
            columns["updated_at"] = "statement_timestamp()"
        return columns

    # Fluent query methods that return a new repository instance
    def where(self, field: str, *args: Any):
        """Add a WHERE condition: where(field, value) or where(field, operator, value)"""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().where(field, *args)
        )

    def where_contains(self, fields: list[str], term: str):
        """Case-insensitive substring match against any of the given fields"""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().where_contains(fields, term)
        )

    def order_by(self, field: str, direction: SortOrder = SortOrder.ASC):
        """Add ORDER BY for a field. Can be chained for multiple fields."""
        builder = self._get_or_create_query_builder()
        if SortOrder(direction) is SortOrder.DESC:
            return self._clone_with_query_builder(builder.order_by_desc(field))
        return self._clone_with_query_builder(builder.order_by_asc(field))

    def limit(self, count: int):
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().limit(count)
        )

    def offset(self, count: int):
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().offset(count)
        )

    # Execution methods for fluent queries
    async def get(self) -> list[T]:
        """Execute the query and return all matching entities"""
        query, params = self._get_or_create_query_builder().build()
        rows = await self.db_ops.fetch_all(query, params)
        return [self.map_row(row) for row in rows]

    async def first(self) -> T | None:
        """Execute the query and return the first matching entity"""
        query, params = self._get_or_create_query_builder().limit(1).build()
        row = await self.db_ops.fetch_one(query, params)
        return self.map_row(row) if row else None

    async def count(self) -> int:
        """Count matching records; ordering and pagination are ignored"""
        query, params = self._get_or_create_query_builder().build_count()
        result = await self.db_ops.fetch_value(query, params)
        return result or 0

    async def exists(self) -> bool:
        """Check if any record matches the query"""
        query, params = self._get_or_create_query_builder().select("1").limit(1).build()
        return await self.db_ops.fetch_value(query, params) is not None

    # CRUD operations
    async def find_by_id(self, entity_id: UUID) -> T | None:
        return await self.where("id", entity_id).first()

    async def create(self, fields: dict[str, Any]) -> T:
        """Insert a row and return it as stored.

        Runs in its own transaction (a savepoint when one is already open), so
        a constraint failure leaves any enclosing transaction usable.
        """
        automatic = self._automatic_columns(is_create=True)
        fields = {
            k: v
            for k, v in fields.items()
            if k in self._column_names and k not in automatic
        }

        columns = ", ".join([*fields.keys(), *automatic.keys()])
        values = list(fields.values())
        placeholders = ", ".join(
            [*(f"${i + 1}" for i in range(len(values))), *automatic.values()]
        )

        async with self.database.transaction():
            row = await self.db_ops.fetch_one(
                f"INSERT INTO {self._qualified_table_name} ({columns}) "
                f"VALUES ({placeholders}) RETURNING *",
                values,
            )
        return self.map_row(row)

    async def update(self, entity_id: UUID, update_data: U) -> T | None:
        """Write the fields explicitly set on `update_data` and return the row.

        Returns None when no row has this id. Runs in its own transaction like create().
        """
        automatic = self._automatic_columns(is_create=False)
        update_dict = {
            k: v
            for k, v in update_data.model_dump(exclude_unset=True).items()
            if k not in automatic
        }

        set_clause = ", ".join(
            [
                *(f"{k} = ${i + 2}" for i, k in enumerate(update_dict.keys())),
                *(f"{k} = {expr}" for k, expr in automatic.items()),
            ]
        )
        values = [entity_id, *update_dict.values()]

        async with self.database.transaction():
            row = await self.db_ops.fetch_one(
                f"UPDATE {self._qualified_table_name} SET {set_clause} "
                f"WHERE id = $1 RETURNING *",
                values,
            )
        return self.map_row(row) if row else None

    async def delete(self, entity_id: UUID) -> bool:
        """Hard delete by id; False when no such row existed"""
        result = await self.db_ops.execute_query(
            f"DELETE FROM {self._qualified_table_name} WHERE id = $1", [entity_id]
        )
        return result != "DELETE 0"
