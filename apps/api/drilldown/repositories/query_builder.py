import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.sql import ColumnElement, Select

from drilldown.repositories.catalog import SchemaCatalog

if TYPE_CHECKING:
    from drilldown.domain.filters import AppliedFilter
    from drilldown.services.full_text import FullTextSearch

logger = logging.getLogger(__name__)

ID_COLUMN = "_ID"
ROW_ID_COLUMN = "_rowID"
PAGE_ID_COLUMN = "_pageID"
VALUE_COLUMN = "_value"


def field_table_name(base_table: str, field_name: str) -> str:
    """Child table holding one row per value of a list field."""
    return f"{base_table}__{field_name}"


def hierarchy_table_name(base_table: str, field_name: str) -> str:
    return f"{base_table}__{field_name}__hierarchy"


@dataclass(frozen=True)
class JoinCondition:
    left_table: str
    left_column: str
    right_table: str
    right_column: str
    outer: bool = True

    def onclause(self, catalog: SchemaCatalog) -> ColumnElement:
        return (catalog.column(self.left_table, self.left_column)
                == catalog.column(self.right_table, self.right_column))


def main_to_field_join(base_table: str, fld_table: str) -> JoinCondition:
    return JoinCondition(base_table, ID_COLUMN, fld_table, ROW_ID_COLUMN)


def field_to_hierarchy_join(fld_table: str, column_name: str, hier_table: str) -> JoinCondition:
    return JoinCondition(fld_table, column_name, hier_table, VALUE_COLUMN)


@dataclass
class QueryParts:
    """
    Tables, conditions and joins defining the row set a facet is counted over.

    Table names are unique and kept in insertion order, the first one being the
    base table. Joins are keyed by the joined table's name: registering a second
    join for the same table replaces the first (last write wins).
    """
    tables: List[str] = field(default_factory=list)
    conditions: List[ColumnElement] = field(default_factory=list)
    joins: Dict[str, JoinCondition] = field(default_factory=dict)

    @property
    def base_table(self) -> str:
        return self.tables[0]

    def add_table(self, name: str) -> None:
        if name not in self.tables:
            self.tables.append(name)

    def add_join(self, join: JoinCondition) -> None:
        self.add_table(join.right_table)
        self.joins[join.right_table] = join

    def merge(self, other: "QueryParts") -> None:
        for name in other.tables:
            self.add_table(name)
        self.conditions.extend(other.conditions)
        self.joins.update(other.joins)


def compose_query_parts(catalog: SchemaCatalog, base_table: str,
                        full_text_term: Optional[str],
                        applied_filters: Sequence["AppliedFilter"],
                        full_text: Optional["FullTextSearch"] = None,
                        searchable_pages: bool = False,
                        searchable_files: bool = False) -> QueryParts:
    """
    Build the (tables, conditions, joins) context for a facet on base_table,
    narrowed by an optional full-text term and by the applied filters.
    """
    parts = QueryParts(tables=[base_table])

    if full_text_term and full_text is not None:
        parts.merge(full_text.query_parts(catalog, full_text_term, base_table,
                                          searchable_pages, searchable_files))
    elif full_text_term:
        logger.debug("No full-text provider; ignoring search term %r on %s", full_text_term, base_table)

    for af in applied_filters:
        parts.conditions.append(af.check_condition(catalog))
        fld_table = base_table
        column_name = af.filter.name
        if af.filter.field_descriptor.is_list:
            fld_table = field_table_name(base_table, af.filter.name)
            parts.add_join(main_to_field_join(base_table, fld_table))
            column_name = VALUE_COLUMN
        if af.filter.field_descriptor.is_hierarchy:
            hier_table = hierarchy_table_name(base_table, af.filter.name)
            parts.add_join(field_to_hierarchy_join(fld_table, column_name, hier_table))

    logger.debug("Composed query parts for %s: tables=%s joins=%s conditions=%d",
                 base_table, parts.tables, list(parts.joins), len(parts.conditions))
    return parts


def build_select(catalog: SchemaCatalog, parts: QueryParts, columns: Sequence[Any],
                 group_by: Sequence[Any] = (), order_by: Sequence[Any] = ()) -> Select:
    """Turn query parts into a SELECT over the joined tables."""
    from_clause = catalog.table(parts.base_table)
    unjoined = []
    for name in parts.tables[1:]:
        join = parts.joins.get(name)
        if join is None:
            unjoined.append(catalog.table(name))
            continue
        from_clause = from_clause.join(catalog.table(name), join.onclause(catalog), isouter=join.outer)

    sel = select(*columns).select_from(from_clause, *unjoined)
    if parts.conditions:
        sel = sel.where(and_(*parts.conditions))
    if group_by:
        sel = sel.group_by(*group_by)
    if order_by:
        sel = sel.order_by(*order_by)
    return sel
