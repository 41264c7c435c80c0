"""
Time period selection for date facets.

The bucket resolution shown for a date facet depends on how far apart the
earliest and latest dates of the current row set are: decades for spans over
thirty years, years for spans over two years, months when more than one month
apart and single days otherwise.
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple

from sqlalchemy import String, func, type_coerce

from drilldown.core.enums import TimeGranularity

if TYPE_CHECKING:
    from drilldown.domain.filters import AppliedFilter, DrilldownContext, Filter

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

DateParts = Tuple[int, int, int]

_LEADING_INT = re.compile(r"\s*(\d+)")
_DECADE_LABEL = re.compile(r"^(\d{1,4}) - (\d{1,4})$")
_YEAR_LABEL = re.compile(r"^(\d{1,4})$")
_MONTH_LABEL = re.compile(r"^([A-Za-z]+) (\d{1,4})$")
_DAY_LABEL = re.compile(r"^([A-Za-z]+) (\d{1,2}), (\d{1,4})$")


def _to_int(part: Any) -> int:
    m = _LEADING_INT.match(str(part))
    return int(m.group(1)) if m else 0


def get_date_parts(value: Any) -> DateParts:
    """ Split a stored date into (year, month, day). Year-only values get month = day = 0. """
    if isinstance(value, (date, datetime)):
        return value.year, value.month, value.day
    parts = str(value).split("-")
    if len(parts) == 3:
        return _to_int(parts[0]), _to_int(parts[1]), _to_int(parts[2])
    logger.debug("Date value %r lacks month and day, treating it as year-only", value)
    return _to_int(parts[0]), 0, 0


def choose_granularity(min_value: Any, max_value: Any) -> TimeGranularity:
    min_year, min_month, _ = get_date_parts(min_value)
    max_year, max_month, _ = get_date_parts(max_value)
    year_diff = max_year - min_year
    month_diff = 12 * year_diff + (max_month - min_month)
    if year_diff > 30:
        return TimeGranularity.decade
    elif year_diff > 2:
        return TimeGranularity.year
    elif month_diff > 1:
        return TimeGranularity.month
    else:
        return TimeGranularity.day


def select_granularity(context: "DrilldownContext", flt: "Filter",
                       full_text_term: Optional[str],
                       applied_filters: Sequence["AppliedFilter"]) -> Optional[TimeGranularity]:
    """ Pick the bucket resolution for a date facet from the extent of the filtered rows. """
    if not flt.field_descriptor.type.is_date:
        return None

    catalog = context.repo.catalog
    parts = flt.query_parts(context, full_text_term, applied_filters)
    date_col = catalog.column(flt.table_name, flt.name)
    # read raw values so imperfect stored dates still parse
    row = context.repo.select_one(parts, [
        type_coerce(func.min(date_col), String).label("min_date"),
        type_coerce(func.max(date_col), String).label("max_date"),
    ])
    if row is None or row.min_date is None:
        return None

    granularity = choose_granularity(row.min_date, row.max_date)
    logger.debug("Granularity for %s.%s between %s and %s: %s",
                 flt.table_name, flt.name, row.min_date, row.max_date, granularity)
    return granularity


def month_to_string(month: Any) -> str:
    m = _to_int(month)
    if 1 <= m <= 12:
        return MONTH_NAMES[m - 1]
    return str(month)


def decade_label(year: Any) -> str:
    y = int(year)
    start = y - (y % 10)
    return f"{start} - {start + 9}"


def bucket_label(granularity: TimeGranularity, year: Any, month: Any = None, day: Any = None) -> str:
    if granularity == TimeGranularity.day:
        return f"{month_to_string(month)} {int(day)}, {int(year)}"
    elif granularity == TimeGranularity.month:
        return f"{month_to_string(month)} {int(year)}"
    elif granularity == TimeGranularity.year:
        return str(int(year))
    else:
        return decade_label(year)


def _month_number(name: str) -> int:
    try:
        return MONTH_NAMES.index(name.capitalize()) + 1
    except ValueError:
        raise ValueError(f"Unknown month name: {name!r}") from None


def time_period_bounds(label: str) -> Tuple[TimeGranularity, date, date]:
    """
    Turn a bucket label back into its granularity and [lower, upper) date bounds.

    Raises ValueError for a label no bucket could have produced.
    """
    label = label.strip()
    m = _DECADE_LABEL.match(label)
    if m:
        start, end = int(m.group(1)), int(m.group(2))
        return TimeGranularity.decade, date(start, 1, 1), date(end + 1, 1, 1)
    m = _YEAR_LABEL.match(label)
    if m:
        year = int(m.group(1))
        return TimeGranularity.year, date(year, 1, 1), date(year + 1, 1, 1)
    m = _DAY_LABEL.match(label)
    if m:
        day = date(int(m.group(3)), _month_number(m.group(1)), int(m.group(2)))
        try:
            return TimeGranularity.day, day, day + timedelta(days=1)
        except OverflowError:
            raise ValueError(f"Time period out of range: {label!r}") from None
    m = _MONTH_LABEL.match(label)
    if m:
        year, month = int(m.group(2)), _month_number(m.group(1))
        upper = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return TimeGranularity.month, date(year, month, 1), upper
    raise ValueError(f"Not a time period label: {label!r}")
