class DrilldownError(Exception):
    """Base class for errors raised by the drill-down engine."""


class SchemaError(DrilldownError):
    """A referenced table, field or facet is not declared."""


class InvalidRequestError(DrilldownError):
    """A request selected a value the facet cannot be filtered on."""


class QueryExecutionError(DrilldownError):
    """The storage layer failed to execute a query or fetch its rows."""
