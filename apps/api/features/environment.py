# features/environment.py
import json
from datetime import date
from typing import Iterator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, Table, Column, MetaData, String, Integer, Date, Text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from drilldown.core.config import Settings
from drilldown.core.enums import DatePrecision
from drilldown.dependencies import get_db, get_settings
from drilldown.main import app


def before_all(context):
    # SQLite in-memory DB
    context.engine = create_engine("sqlite+pysqlite:///:memory:", future=True, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    context.Session = sessionmaker(bind=context.engine, autoflush=False, autocommit=False, future=True)

    # Drill-down tables as the storage layer lays them out
    meta = MetaData()
    context.t_schemas = Table("drilldown_tables", meta,
        Column("main_table", String, primary_key=True),
        Column("table_schema", Text, nullable=False),
    )
    context.t_events = Table("Events", meta,
        Column("_ID", Integer, primary_key=True),
        Column("_pageID", Integer),
        Column("when", Date),
        Column("when__precision", Integer),
        Column("Tags__full", String),
        Column("Status", String),
    )
    context.t_event_tags = Table("Events__Tags", meta,
        Column("_rowID", Integer, nullable=False),
        Column("_value", String),
        Column("_position", Integer),
    )
    context.t_meetings = Table("Meetings", meta,
        Column("_ID", Integer, primary_key=True),
        Column("_pageID", Integer),
        Column("held", Date),
        Column("held__precision", Integer),
    )
    meta.create_all(context.engine)

    # Seed dataset
    seed(context)

    # Override DI to use our in-memory session
    def _get_db() -> Iterator:
        db = context.Session()
        try:
            yield db
        finally:
            db.close()
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: Settings(database_url="sqlite://")

    # HTTP client
    context.client = TestClient(app)

    # Shared test state
    context.drilldown_url = "/api/v1/drilldown"
    context.applied = {}
    context.last_response = None


def before_scenario(context, scenario):
    context.applied = {}
    context.last_response = None


def after_all(context):
    app.dependency_overrides.clear()


def seed(context):
    S = context.Session()
    precise = int(DatePrecision.DATE_ONLY)

    S.execute(context.t_schemas.insert().values(main_table="Events", table_schema=json.dumps({
        "when": {"type": "Date"},
        "Tags": {"type": "String", "isList": True},
        "Status": {"type": "String"},
    })))
    S.execute(context.t_schemas.insert().values(main_table="Meetings", table_schema=json.dumps({
        "held": {"type": "Date"},
    })))

    events = [
        (1, date(1990, 1, 1), ["alpha", "beta"], "open"),
        (2, date(1995, 6, 15), ["alpha"], "closed"),
        (3, date(2021, 11, 30), ["beta"], ""),
    ]
    for (row_id, when, tags, status) in events:
        S.execute(context.t_events.insert().values(
            _ID=row_id, _pageID=100 + row_id, when=when, when__precision=precise,
            Tags__full=";".join(tags), Status=status,
        ))
        for pos, tag in enumerate(tags):
            S.execute(context.t_event_tags.insert().values(_rowID=row_id, _value=tag, _position=pos))

    # the year-only row falls out of month buckets
    meetings = [
        (1, date(2024, 1, 5), precise),
        (2, date(2024, 1, 20), precise),
        (3, date(2024, 3, 2), precise),
        (4, date(2024, 1, 1), int(DatePrecision.YEAR_ONLY)),
    ]
    for (row_id, held, precision) in meetings:
        S.execute(context.t_meetings.insert().values(_ID=row_id, _pageID=200 + row_id, held=held, held__precision=precision))

    S.commit()
    S.close()
