"""
Database engine and session. Supports SQLite (dev, tests) and Postgres via DATABASE_URL.

The engine and session factory are built in main.create_app from Settings and
kept on app.state; get_db is the single dependency for DB access, used by the
auth and document routers.
"""
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    # SQLite needs check_same_thread=False for FastAPI; Postgres does not
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # In-memory databases live per connection; share one across threads
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, connect_args=connect_args, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def get_db(request: Request):
    """FastAPI dependency: yields a DB session and closes it after the request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
