"""
SQLAlchemy engine + session factory for lead, seizure and threat score tables.

SQLite for local dev, Postgres in production. Schema changes go through
Alembic; nothing here creates tables.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from leadradar.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


def make_engine(database_url):
    # Hosted Postgres URLs often use the postgres:// scheme, which SQLAlchemy 2.x rejects
    url = database_url.replace('postgres://', 'postgresql://', 1)
    if url.startswith('sqlite'):
        return create_engine(url, connect_args={'check_same_thread': False})
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine)


def get_session():
    """New session; callers close it."""
    return SessionLocal()
