import logging
from typing import Any, List, Optional, Sequence

from sqlalchemy import MetaData
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from drilldown.core.config import Settings, settings as default_settings
from drilldown.core.errors import QueryExecutionError
from drilldown.repositories.catalog import SchemaCatalog
from drilldown.repositories.query_builder import QueryParts, build_select

logger = logging.getLogger(__name__)


class DrilldownRepository:
    """
    Read-only query executor for drill-down tables.

    Holds no state beyond the reflected table objects of the current session,
    so one instance is created per request.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        # Single source of truth for table objects
        self.catalog = SchemaCatalog(MetaData(), db=db, schema_table=self.settings.schema_table)

    def select_rows(self, parts: QueryParts, columns: Sequence[Any],
                    group_by: Sequence[Any] = (), order_by: Sequence[Any] = ()) -> List[Row]:
        """Run a grouped/ordered SELECT over the composed tables and fetch every row."""
        query = build_select(self.catalog, parts, columns, group_by, order_by)
        return self._fetch_all(query)

    def select_one(self, parts: QueryParts, columns: Sequence[Any]) -> Optional[Row]:
        rows = self.select_rows(parts, columns)
        return rows[0] if rows else None

    def _fetch_all(self, query: Select) -> List[Row]:
        try:
            result = self.db.execute(query)
        except SQLAlchemyError as exc:
            logger.error("Drill-down query failed: %s", exc)
            raise QueryExecutionError("Failed to execute drill-down query") from exc
        try:
            return list(result.all())
        except SQLAlchemyError as exc:
            logger.error("Fetching drill-down rows failed: %s", exc)
            raise QueryExecutionError("Failed to fetch drill-down rows") from exc
        finally:
            result.close()
