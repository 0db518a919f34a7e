"""
Database engine + session factory.

Defaults to SQLite for local dev, Postgres in production. The app factory
builds one session factory and hands it to the stores; nothing here opens a
connection at import time.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase


class Base(DeclarativeBase):
    pass


def make_engine(url):
    # Hosting providers inject postgres://; pin the psycopg2 driver explicitly
    for scheme in ('postgres://', 'postgresql://'):
        if url.startswith(scheme):
            url = 'postgresql+psycopg2://' + url[len(scheme):]

    if url.startswith('sqlite'):
        return create_engine(url, connect_args={'check_same_thread': False})
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)


def make_session_factory(url_or_engine, create_schema=False):
    """
    Return a sessionmaker bound to the given URL or engine.

    create_schema runs Base.metadata.create_all, used for SQLite dev and
    tests; Postgres schema is managed by Alembic.
    """
    engine = make_engine(url_or_engine) if isinstance(url_or_engine, str) else url_or_engine
    if create_schema:
        import factor_relay.models.factor  # noqa: F401  registers tables on Base.metadata
        import factor_relay.models.history  # noqa: F401
        Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
