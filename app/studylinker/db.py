"""
Engine and session plumbing.

Request handlers share one session per request through ``db_session``;
scripts and tests open their own with ``session_scope``. Every session comes
from the sessionmaker stored in ``app.extensions``, which is also where the
realtime change capture attaches its listeners.
"""
from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def engine_options(db_url: str) -> dict[str, object]:
    options: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        options.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    elif db_url.startswith("sqlite"):
        # gthread workers share the pool across threads
        options["connect_args"] = {"check_same_thread": False}
    return options


def build_engine(db_url: str) -> Engine:
    engine = create_engine(db_url, **engine_options(db_url))
    if db_url.startswith("sqlite"):
        # ON DELETE CASCADE/SET NULL only apply with foreign_keys enabled per connection.
        @event.listens_for(engine, "connect")
        def _sqlite_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-redef]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(app: Flask) -> sessionmaker:
    engine = build_engine(app.config["DATABASE_URL"])
    if app.config.get("ENV") != "production":
        @event.listens_for(engine, "checkout")
        def _log_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            app.logger.debug("DB connection checkout from pool")

    factory = build_sessionmaker(engine)
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = factory
    return factory


def db_session(app: Flask | None = None) -> Session:
    """Session bound to the current request; created on first use."""
    s: Session | None = g.get("db_session")
    if s is None:
        factory = (app or current_app).extensions["sqlalchemy_sessionmaker"]
        s = g.db_session = factory()
    return s


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is not None:
        s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Commit on success, roll back on any exception."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
