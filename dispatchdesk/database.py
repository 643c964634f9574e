"""
Engine and session factory.

The engine is bound lazily from DATABASE_URL so tests and alembic can point
the application at another database before the first session is opened.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from dispatchdesk.core.config import env_str

DEFAULT_DATABASE_URL = "postgresql://localhost/dispatchdesk"

Base = declarative_base()

# expire_on_commit=False: rows are converted to records after commit.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

DATABASE_URL = ""
engine: Optional[Engine] = None


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # TestClient and the reminder task use threads other than the creator's.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def configure_database() -> Engine:
    """(Re)bind the session factory when DATABASE_URL has changed; returns the engine."""
    global DATABASE_URL, engine

    url = env_str("DATABASE_URL", DEFAULT_DATABASE_URL)
    if engine is not None and url == DATABASE_URL:
        return engine

    engine = create_engine(url, **_engine_options(url))
    SessionLocal.configure(bind=engine)
    DATABASE_URL = url
    return engine


configure_database()
