# app/database.py
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Postgres connection in production, SQLite for local runs.
#
# - sslmode=require   : enforce SSL for managed Postgres
# - pool_pre_ping=True: validate connections before using them
#
# The orders table carries a UNIQUE index on order_number; checkout
# relies on it to detect two requests that derived the same number.
# ---------------------------------------------------------

db_url = settings.DATABASE_URL
engine_kwargs: dict = {"echo": False}

if db_url.startswith("sqlite"):
    # FastAPI runs sync endpoints in a threadpool
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    # Append sslmode=require if it is not already present
    if settings.is_production and "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"
    engine_kwargs["pool_pre_ping"] = True

engine = create_engine(db_url, **engine_kwargs)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
