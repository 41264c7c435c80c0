from enum import IntEnum, StrEnum

from drilldown.core.errors import SchemaError


class FieldType(StrEnum):
    page        = "Page"
    string      = "String"
    text        = "Text"
    integer     = "Integer"
    float       = "Float"
    date        = "Date"
    datetime    = "Datetime"
    boolean     = "Boolean"
    coordinates = "Coordinates"
    wikitext    = "Wikitext"
    searchtext  = "Searchtext"
    file        = "File"
    url         = "URL"
    email       = "Email"
    rating      = "Rating"

    @classmethod
    def parse(cls, name: str) -> "FieldType":
        """ Look up a field type by its declared name, ignoring case. """
        wanted = (name or "").strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise SchemaError(f"Unknown field type: {name!r}")

    @property
    def is_date(self) -> bool:
        return self in (FieldType.date, FieldType.datetime)

    @property
    def is_filterable(self) -> bool:
        # free text and link-like values make poor facets
        return self not in (
            FieldType.text, FieldType.coordinates, FieldType.url, FieldType.email,
            FieldType.wikitext, FieldType.searchtext, FieldType.file,
        )


class TimeGranularity(StrEnum):
    day    = "day"
    month  = "month"
    year   = "year"
    decade = "decade"


class DatePrecision(IntEnum):
    """Stored per-row precision of a date value; larger means coarser."""
    DATE_AND_TIME = 0
    DATE_ONLY     = 1
    MONTH_ONLY    = 2
    YEAR_ONLY     = 3
