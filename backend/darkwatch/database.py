from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from darkwatch.config import settings


@lru_cache(maxsize=4)
def get_engine(database_url: Optional[str] = None) -> Engine:
    url = database_url or settings.DATABASE_URL
    if not url:
        raise ValueError("DATABASE_URL is not configured")

    engine_kwargs: dict = {"pool_pre_ping": True}
    if "sqlite" in url:
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_engine(url, **engine_kwargs)

    if "postgresql" in url:
        @event.listens_for(engine, "connect")
        def _set_statement_timeout(dbapi_conn, connection_record):
            # Snapshot queries must never hang the ingest loop
            timeout_ms = int(settings.VESSEL_FETCH_TIMEOUT * 1000)
            cursor = dbapi_conn.cursor()
            cursor.execute(f"SET statement_timeout = {timeout_ms}")
            cursor.close()

    return engine


def make_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine(database_url))
