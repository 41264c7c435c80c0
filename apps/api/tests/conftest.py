"""
Shared fixtures: an "Events" drill-down table with list, hierarchy and date
fields, declared both as in-memory metadata (for composition tests) and as a
seeded SQLite database (for end-to-end aggregation tests).
"""

import json
from datetime import date

import pytest
from sqlalchemy import Column, Date, Integer, MetaData, String, Table, Text, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from drilldown.core.config import Settings
from drilldown.core.enums import DatePrecision
from drilldown.domain.filters import DrilldownContext
from drilldown.repositories.catalog import SchemaCatalog
from drilldown.repositories.drilldown_repo import DrilldownRepository
from drilldown.services.full_text import LikeFullTextSearch

EVENTS_SCHEMA = {
    "when": {"type": "Date"},
    "Tags": {"type": "String", "isList": True, "delimiter": ";"},
    "Categories": {"type": "String", "isList": True, "delimiter": ";"},
    "Region": {"type": "String", "hierarchy": True},
    "Status": {"type": "String"},
    "Notes": {"type": "Text"},
}

MEETINGS_SCHEMA = {
    "held": {"type": "Date"},
    "Room": {"type": "String", "requiredFilters": ["held"]},
}

DOCUMENTS_SCHEMA = {
    "Kind": {"type": "String"},
    "Attachment": {"type": "File"},
}


def _child_table(name: str, meta: MetaData) -> Table:
    return Table(name, meta,
        Column("_rowID", Integer, nullable=False),
        Column("_value", String),
        Column("_position", Integer),
    )


def build_metadata() -> MetaData:
    meta = MetaData()
    Table("drilldown_tables", meta,
        Column("main_table", String, primary_key=True),
        Column("table_schema", Text, nullable=False),
    )
    Table("Events", meta,
        Column("_ID", Integer, primary_key=True),
        Column("_pageID", Integer),
        Column("_pageName", String),
        Column("when", Date),
        Column("when__precision", Integer),
        Column("Tags__full", String),
        Column("Categories__full", String),
        Column("Region", String),
        Column("Status", String),
    )
    _child_table("Events__Tags", meta)
    _child_table("Events__Categories", meta)
    Table("Events__Region__hierarchy", meta,
        Column("_value", String, primary_key=True),
        Column("_left", Integer),
        Column("_right", Integer),
    )
    Table("Meetings", meta,
        Column("_ID", Integer, primary_key=True),
        Column("_pageID", Integer),
        Column("held", Date),
        Column("held__precision", Integer),
        Column("Room", String),
    )
    Table("Documents", meta,
        Column("_ID", Integer, primary_key=True),
        Column("_pageID", Integer),
        Column("Kind", String),
        Column("Attachment", String),
    )
    Table("_pageData", meta,
        Column("_pageID", Integer, primary_key=True),
        Column("_fullText", Text),
    )
    Table("_fileData", meta,
        Column("_pageID", Integer),
        Column("_fullText", Text),
    )
    return meta


def seed(conn, meta: MetaData) -> None:
    t = meta.tables
    for name, schema in (("Events", EVENTS_SCHEMA), ("Meetings", MEETINGS_SCHEMA),
                         ("Documents", DOCUMENTS_SCHEMA)):
        conn.execute(t["drilldown_tables"].insert().values(main_table=name, table_schema=json.dumps(schema)))

    precise = int(DatePrecision.DATE_ONLY)
    events = [
        (1, 101, date(1990, 1, 1), ["alpha", "beta"], ["x"], "Paris", "open"),
        (2, 102, date(1995, 6, 15), ["alpha"], ["x", "y"], "Lyon", "closed"),
        (3, 103, date(2021, 11, 30), ["beta"], ["y"], "Berlin", ""),
    ]
    for (row_id, page_id, when, tags, cats, region, status) in events:
        conn.execute(t["Events"].insert().values(
            _ID=row_id, _pageID=page_id, _pageName=f"Event {row_id}", when=when,
            when__precision=precise, Tags__full=";".join(tags), Categories__full=";".join(cats),
            Region=region, Status=status,
        ))
        for pos, tag in enumerate(tags):
            conn.execute(t["Events__Tags"].insert().values(_rowID=row_id, _value=tag, _position=pos))
        for pos, cat in enumerate(cats):
            conn.execute(t["Events__Categories"].insert().values(_rowID=row_id, _value=cat, _position=pos))

    for (value, left, right) in (("Europe", 1, 12), ("France", 2, 7), ("Paris", 3, 4),
                                 ("Lyon", 5, 6), ("Germany", 8, 11), ("Berlin", 9, 10)):
        conn.execute(t["Events__Region__hierarchy"].insert().values(_value=value, _left=left, _right=right))

    for (page_id, text) in ((101, "Annual meeting in Paris"), (102, "Summer fair by the river"),
                            (103, "Winter market")):
        conn.execute(t["_pageData"].insert().values(_pageID=page_id, _fullText=text))

    meetings = [
        (1, date(2024, 1, 5), precise, "A"),
        (2, date(2024, 1, 20), precise, "A"),
        (3, date(2024, 3, 2), precise, "B"),
        (4, date(2024, 1, 1), int(DatePrecision.YEAR_ONLY), "B"),
    ]
    for (row_id, held, precision, room) in meetings:
        conn.execute(t["Meetings"].insert().values(
            _ID=row_id, _pageID=200 + row_id, held=held, held__precision=precision, Room=room,
        ))

    # two file rows of page 500 share one kind
    for (row_id, page_id, kind, attachment) in ((1, 500, "pdf", "a.pdf"), (2, 500, "pdf", "b.pdf"),
                                                (3, 501, "doc", "c.doc")):
        conn.execute(t["Documents"].insert().values(_ID=row_id, _pageID=page_id, Kind=kind, Attachment=attachment))
    for (page_id, text) in ((500, "quarterly report"), (500, "annual report"), (501, "memo")):
        conn.execute(t["_fileData"].insert().values(_pageID=page_id, _fullText=text))


@pytest.fixture
def events_metadata() -> MetaData:
    return build_metadata()


@pytest.fixture
def events_catalog(events_metadata) -> SchemaCatalog:
    return SchemaCatalog(events_metadata)


@pytest.fixture
def engine(events_metadata):
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True,
                           connect_args={"check_same_thread": False}, poolclass=StaticPool)
    events_metadata.create_all(engine)
    with engine.begin() as conn:
        seed(conn, events_metadata)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(database_url="sqlite://", search_page_text=True, search_file_text=True)


@pytest.fixture
def repo(db_session, test_settings) -> DrilldownRepository:
    return DrilldownRepository(db_session, test_settings)


@pytest.fixture
def context(repo) -> DrilldownContext:
    return DrilldownContext(repo=repo, full_text=LikeFullTextSearch())
