import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Sequence

from sqlalchemy import distinct, extract, func

from drilldown.core.enums import DatePrecision, TimeGranularity
from drilldown.repositories.catalog import SchemaCatalog
from drilldown.repositories.query_builder import (
    PAGE_ID_COLUMN, VALUE_COLUMN, QueryParts, field_table_name, main_to_field_join,
)
from drilldown.services.time_periods import bucket_label, select_granularity

if TYPE_CHECKING:
    from drilldown.domain.filters import AppliedFilter, DrilldownContext, Filter

logger = logging.getLogger(__name__)

# Leading space sorts the bucket first and keeps it apart from a real "none" value
NONE_VALUE = " none"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def count_clause(catalog: SchemaCatalog, flt: "Filter"):
    # a page can own several matching file rows; count it once
    if flt.searchable_files:
        return func.count(distinct(catalog.column(flt.table_name, PAGE_ID_COLUMN))).label("total")
    return func.count().label("total")


def fold_value_rows(rows: Iterable[Sequence[Any]]) -> Dict[str, int]:
    values: Dict[str, int] = {}
    for (value, total) in rows:
        key = NONE_VALUE if _is_blank(value) else str(value)
        values[key] = values.get(key, 0) + int(total)
    return values


def fold_time_period_rows(rows: Iterable[Sequence[Any]], granularity: TimeGranularity) -> Dict[str, int]:
    """Map (year[, month[, day]], total) rows to bucket labels, merging years into decades."""
    periods: Dict[str, int] = {}
    for row in rows:
        *date_parts, total = row
        if all(_is_blank(p) or p == 0 for p in date_parts):
            key = NONE_VALUE
        else:
            key = bucket_label(granularity, *date_parts)
        periods[key] = periods.get(key, 0) + int(total)
    return periods


def aggregate_values(context: "DrilldownContext", flt: "Filter",
                     full_text_term: Optional[str],
                     applied_filters: Sequence["AppliedFilter"],
                     is_applied: bool = False) -> Dict[str, int]:
    """
    Count the rows behind every value of a facet.

    When the facet is itself applied, counts are taken over the whole table so
    that every alternative value stays visible.
    """
    catalog = context.repo.catalog
    if is_applied:
        parts = QueryParts(tables=[flt.table_name])
    else:
        parts = flt.query_parts(context, full_text_term, applied_filters)

    if flt.field_descriptor.is_list:
        fld_table = field_table_name(flt.table_name, flt.name)
        # no-op when an applied filter on this field already joined it
        parts.add_join(main_to_field_join(flt.table_name, fld_table))
        value_col = catalog.column(fld_table, VALUE_COLUMN)
    else:
        value_col = catalog.column(flt.table_name, flt.name)

    rows = context.repo.select_rows(
        parts, [value_col.label("value"), count_clause(catalog, flt)],
        group_by=[value_col], order_by=[value_col],
    )
    values = fold_value_rows(rows)
    logger.debug("Facet %s.%s has %d possible values", flt.table_name, flt.name, len(values))
    return values


def aggregate_time_periods(context: "DrilldownContext", flt: "Filter",
                           full_text_term: Optional[str],
                           applied_filters: Sequence["AppliedFilter"]) -> Dict[str, int]:
    """Count the rows behind every time bucket of a date facet."""
    granularity = select_granularity(context, flt, full_text_term, applied_filters)
    if granularity is None:
        return {}

    catalog = context.repo.catalog
    date_col = catalog.column(flt.table_name, flt.name)
    date_parts = [extract("year", date_col)]
    if granularity in (TimeGranularity.month, TimeGranularity.day):
        date_parts.append(extract("month", date_col))
    if granularity == TimeGranularity.day:
        date_parts.append(extract("day", date_col))

    parts = flt.query_parts(context, full_text_term, applied_filters)
    # leave out dates stored coarser than the buckets shown
    precision_col = catalog.column(flt.table_name, f"{flt.name}__precision")
    if granularity == TimeGranularity.month:
        parts.conditions.append(precision_col <= int(DatePrecision.MONTH_ONLY))
    elif granularity == TimeGranularity.day:
        parts.conditions.append(precision_col <= int(DatePrecision.DATE_ONLY))

    labels = ("year_field", "month_field", "day_of_month_field")
    columns = [expr.label(name) for expr, name in zip(date_parts, labels)]
    rows = context.repo.select_rows(
        parts, [*columns, count_clause(catalog, flt)],
        group_by=date_parts, order_by=date_parts,
    )
    return fold_time_period_rows(rows, granularity)
