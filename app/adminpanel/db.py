from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, g
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    engine_kwargs: dict[str, object] = {
        "future": True,
        "pool_pre_ping": True,
    }
    if db_url.startswith("postgres"):
        engine_kwargs.update({"pool_recycle": 1800, "pool_size": 5, "max_overflow": 10})
    engine = create_engine(db_url, **engine_kwargs)

    if db_url.startswith("sqlite"):
        # SQLite ships with FK enforcement off; the user/role tables rely on cascades.
        @event.listens_for(engine, "connect")
        def _sqlite_fk_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session, created lazily and closed on app-context teardown.
    """
    s: Session | None = getattr(g, "db_session", None)
    if s is not None:
        return s
    if app is None:
        from flask import current_app

        app = current_app
    g.db_session = app.extensions["sqlalchemy_sessionmaker"]()
    return g.db_session


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        return
    if _exc is not None:
        s.rollback()
    s.close()
    g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Non-request helper for scripts and tests: commits on success, rolls back on error.
    """
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
