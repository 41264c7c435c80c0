from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from drilldown.core.config import Settings, settings

# In tests, get_db() is overridden. This default is only for dev/prod.
_engine = create_engine(settings.database_url, echo=settings.echo_sql, future=True)
_SessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False, future=True)

def get_db() -> Iterator[Session]:
    db = _SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_settings() -> Settings:
    return settings
