import logging
from typing import Dict, Optional

from sqlalchemy import MetaData, Table, select
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement

from drilldown.core.errors import QueryExecutionError, SchemaError
from drilldown.domain.fields import TableSchema

logger = logging.getLogger(__name__)


class SchemaCatalog:
    """
    Resolves table names to SQLAlchemy Table objects and table names to their
    declared field schema.

    Every name maps to a single shared Table object, so that conditions and
    joins built in different places refer to the same FROM entry.
    """

    def __init__(self, metadata: Optional[MetaData] = None,
                 db: Optional[Session] = None,
                 schema_table: str = "drilldown_tables"):
        self.metadata = metadata if metadata is not None else MetaData()
        self.db = db
        self.schema_table = schema_table
        self._schemas: Dict[str, TableSchema] = {}

    def has_table(self, name: str) -> bool:
        try:
            self.table(name)
        except SchemaError:
            return False
        return True

    def table(self, name: str) -> Table:
        if name in self.metadata.tables:
            return self.metadata.tables[name]
        if self.db is None:
            raise SchemaError(f"Unknown table: {name!r}")
        try:
            return Table(name, self.metadata, autoload_with=self.db.get_bind())
        except NoSuchTableError:
            raise SchemaError(f"Unknown table: {name!r}") from None
        except SQLAlchemyError as exc:
            logger.error("Failed to reflect table %s: %s", name, exc)
            raise QueryExecutionError(f"Could not load table {name!r}") from exc

    def column(self, table_name: str, column_name: str) -> ColumnElement:
        table = self.table(table_name)
        try:
            return table.c[column_name]
        except KeyError:
            raise SchemaError(f"Table {table_name!r} has no column {column_name!r}") from None

    def register_schema(self, schema: TableSchema) -> None:
        self._schemas[schema.table_name] = schema

    def table_schema(self, table_name: str) -> TableSchema:
        """Load the declared field schema of a drill-down table."""
        if table_name in self._schemas:
            return self._schemas[table_name]
        if self.db is None:
            raise SchemaError(f"Table {table_name!r} is not declared")
        schemas = self.table(self.schema_table)
        stmt = select(schemas.c.table_schema).where(schemas.c.main_table == table_name)
        try:
            text = self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Failed to read schema of %s: %s", table_name, exc)
            raise QueryExecutionError(f"Could not read schema of {table_name!r}") from exc
        if text is None:
            raise SchemaError(f"Table {table_name!r} is not declared")
        schema = TableSchema.from_json(table_name, text)
        self._schemas[table_name] = schema
        return schema
