# features/steps/drilldown_steps.py
import parse
from behave import given, register_type, when, then

from drilldown.services.facets import NONE_VALUE


@parse.with_pattern(r'\[.*\]')  # matches a list-like string
def _parse_list(s: str):
    """Convert comma separated string in brackets to list of strings."""
    s = s.strip()[1:-1]
    return [item.strip() for item in s.split(",") if item.strip()]

register_type(List=_parse_list)


def _facet(ctx, name):
    facets = ctx.last_response.json()["facets"]
    assert name in facets, f"facet {name!r} missing from {list(facets)}"
    return facets[name]


def _counts(ctx, name):
    return {v["value"]: v["count"] for v in _facet(ctx, name)["values"]}

# ---------------- Background ----------------
@given('a drill-down database with events and meetings loaded') # type: ignore[no-untyped-def]
def step_seeded(ctx):
    # environment.py already seeded the in-memory DB
    assert ctx.client is not None

@given('the drill-down endpoint is available at "{path}"') # type: ignore[no-untyped-def]
def step_endpoint(ctx, path):
    ctx.drilldown_url = path

# ---------------- Selections ----------------
@given('"{facet}" is applied with values {values:List}') # type: ignore[no-untyped-def]
def step_apply_values(ctx, facet, values):
    ctx.applied[facet] = {"values": values}

@given('"{facet}" is narrowed to the time period "{label}"') # type: ignore[no-untyped-def]
def step_apply_period(ctx, facet, label):
    ctx.applied[facet] = {"time_period": label}

# ---------------- Requests ----------------
@when('I drill down into table "{table}"') # type: ignore[no-untyped-def]
def step_drilldown(ctx, table):
    payload = {"applied": ctx.applied}
    ctx.last_response = ctx.client.post(f"{ctx.drilldown_url}/{table}", json=payload)

# ---------------- Assertions ----------------
@then('the response status is {status:d}') # type: ignore[no-untyped-def]
def step_status(ctx, status):
    assert ctx.last_response.status_code == status, ctx.last_response.text

@then('facet "{facet}" is grouped by {granularity}') # type: ignore[no-untyped-def]
def step_granularity(ctx, facet, granularity):
    assert _facet(ctx, facet)["granularity"] == granularity

@then('facet "{facet}" has the counts') # type: ignore[no-untyped-def]
def step_counts(ctx, facet):
    # "(none)" stands for the bucket of blank values
    expected = {(NONE_VALUE if row["value"] == "(none)" else row["value"]): int(row["count"])
                for row in ctx.table}
    assert _counts(ctx, facet) == expected, _counts(ctx, facet)

@then('facet "{facet}" is marked as applied') # type: ignore[no-untyped-def]
def step_is_applied(ctx, facet):
    assert _facet(ctx, facet)["is_applied"] is True

@then('the error is reported as "{error}"') # type: ignore[no-untyped-def]
def step_error_name(ctx, error):
    data = ctx.last_response.json()
    assert data["error"] == error
    assert data["detail"]
