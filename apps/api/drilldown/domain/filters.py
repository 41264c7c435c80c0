"""
Domain model for drill-down filters.

A Filter is a facet of a table, defined once when the table schema is loaded.
An AppliedFilter is a filter with the values a request has selected; it is
built per request and contributes one condition to every facet query.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import and_, or_, select, true
from sqlalchemy.sql import ColumnElement

from drilldown.core.config import Settings, settings as default_settings
from drilldown.core.enums import TimeGranularity
from drilldown.core.errors import SchemaError
from drilldown.domain.fields import FieldDescriptor
from drilldown.repositories.catalog import SchemaCatalog
from drilldown.repositories.query_builder import (
    VALUE_COLUMN, QueryParts, compose_query_parts, field_table_name, hierarchy_table_name,
)
from drilldown.services.facets import NONE_VALUE, aggregate_time_periods, aggregate_values
from drilldown.services.full_text import FILE_DATA_TABLE, PAGE_DATA_TABLE, FullTextSearch
from drilldown.services.time_periods import select_granularity, time_period_bounds


@dataclass
class DrilldownContext:
    """Request-scoped collaborators used to run facet queries."""
    repo: Any  # DrilldownRepository
    full_text: Optional[FullTextSearch] = None


class Filter:
    """A facet of a drill-down table."""

    def __init__(self, name: str, table_name: str, field_descriptor: FieldDescriptor,
                 searchable_pages: bool = False, searchable_files: bool = False):
        self.name = name
        self.table_name = table_name
        self.field_descriptor = field_descriptor
        self.searchable_pages = searchable_pages
        self.searchable_files = searchable_files
        self.required_filters: List[str] = []
        self.possible_applied_filters: List["AppliedFilter"] = []

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Filter):
            return NotImplemented
        return (self.table_name, self.name) == (other.table_name, other.name)

    def __hash__(self) -> int:
        return hash((self.table_name, self.name))

    def __repr__(self) -> str:
        return f"Filter({self.table_name}.{self.name}, {self.field_descriptor.type})"

    def add_required_filter(self, filter_name: str) -> None:
        self.required_filters.append(filter_name)

    def requirements_met(self, applied_names: Iterable[str]) -> bool:
        """Whether every filter this one depends on has been applied."""
        applied = set(applied_names)
        return all(name in applied for name in self.required_filters)

    def query_parts(self, context: DrilldownContext, full_text_term: Optional[str],
                    applied_filters: Sequence["AppliedFilter"]) -> QueryParts:
        return compose_query_parts(
            context.repo.catalog, self.table_name, full_text_term, applied_filters,
            full_text=context.full_text,
            searchable_pages=self.searchable_pages,
            searchable_files=self.searchable_files,
        )

    def time_granularity(self, context: DrilldownContext, full_text_term: Optional[str],
                         applied_filters: Sequence["AppliedFilter"]) -> Optional[TimeGranularity]:
        return select_granularity(context, self, full_text_term, applied_filters)

    def possible_values(self, context: DrilldownContext, full_text_term: Optional[str],
                        applied_filters: Sequence["AppliedFilter"],
                        is_applied: bool = False) -> Dict[str, int]:
        return aggregate_values(context, self, full_text_term, applied_filters, is_applied)

    def possible_time_periods(self, context: DrilldownContext, full_text_term: Optional[str],
                              applied_filters: Sequence["AppliedFilter"]) -> Dict[str, int]:
        return aggregate_time_periods(context, self, full_text_term, applied_filters)


@dataclass
class AppliedFilter:
    """A filter together with the values selected for it in the current request."""
    filter: Filter
    values: List[str] = field(default_factory=list)
    search_terms: List[str] = field(default_factory=list)
    lower_date: Optional[date] = None
    upper_date: Optional[date] = None

    @classmethod
    def for_time_period(cls, flt: Filter, label: str) -> "AppliedFilter":
        """Select the rows of one time-period bucket of a date facet."""
        if label == NONE_VALUE:
            return cls(flt, values=[NONE_VALUE])
        _, lower, upper = time_period_bounds(label)
        return cls(flt, lower_date=lower, upper_date=upper)

    def _column(self, catalog: SchemaCatalog) -> ColumnElement:
        flt = self.filter
        if flt.field_descriptor.is_list:
            return catalog.column(field_table_name(flt.table_name, flt.name), VALUE_COLUMN)
        return catalog.column(flt.table_name, flt.name)

    def _value_condition(self, catalog: SchemaCatalog, col: ColumnElement, value: str) -> ColumnElement:
        if value == NONE_VALUE:
            return or_(col.is_(None), col == "")
        if not self.filter.field_descriptor.is_hierarchy:
            return col == value
        # the node itself and every descendant, by nested-set bounds
        hier = catalog.table(hierarchy_table_name(self.filter.table_name, self.filter.name))
        node = hier.alias()
        left = select(node.c._left).where(node.c._value == value).scalar_subquery()
        right = select(node.c._right).where(node.c._value == value).scalar_subquery()
        return and_(hier.c._left >= left, hier.c._right <= right)

    def check_condition(self, catalog: SchemaCatalog) -> ColumnElement:
        col = self._column(catalog)
        clauses = []
        if self.values:
            clauses.append(or_(*[self._value_condition(catalog, col, v) for v in self.values]))
        if self.search_terms:
            clauses.append(or_(*[col.icontains(t, autoescape=True) for t in self.search_terms]))
        if self.lower_date is not None:
            clauses.append(col >= self.lower_date)
        if self.upper_date is not None:
            clauses.append(col < self.upper_date)
        if not clauses:
            return true()
        return and_(*clauses)


class FilterRegistry:
    """The filters offered for one drill-down table."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        self._filters: Dict[str, Filter] = {}

    @classmethod
    def for_table(cls, catalog: SchemaCatalog, table_name: str,
                  settings: Optional[Settings] = None) -> "FilterRegistry":
        """Build a filter for every filterable field declared on the table."""
        settings = settings or default_settings
        schema = catalog.table_schema(table_name)
        searchable_pages = settings.search_page_text and catalog.has_table(PAGE_DATA_TABLE)
        searchable_files = (settings.search_file_text and schema.has_file_fields()
                            and catalog.has_table(FILE_DATA_TABLE))

        registry = cls(table_name)
        for name, descriptor in schema.fields.items():
            if not descriptor.is_filterable:
                continue
            flt = Filter(name, table_name, descriptor, searchable_pages, searchable_files)
            for required in descriptor.other_params.get("requiredFilters", ()):
                flt.add_required_filter(required)
            flt.possible_applied_filters = [AppliedFilter(flt, values=[v]) for v in descriptor.allowed_values]
            registry.register(flt)
        return registry

    def register(self, flt: Filter) -> None:
        self._filters[flt.name] = flt

    def get(self, name: str) -> Filter:
        try:
            return self._filters[name]
        except KeyError:
            raise SchemaError(f"Table {self.table_name!r} has no facet {name!r}") from None

    def get_all(self) -> List[Filter]:
        return list(self._filters.values())
