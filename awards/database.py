"""
Database engine + session factory.

Always initializes — defaults to SQLite for local dev, Postgres in production.
Callers own the session: open it with get_session() and pass it to services.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from awards.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosts inject postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine)


MODEL_MODULES = [
    'awards.models.nominator',
    'awards.models.nominee',
    'awards.models.bulk_upload',
    'awards.models.nomination',
    'awards.models.vote',
    'awards.models.outbox',
    'awards.models.setting',
]


def get_session():
    """Return a new DB session."""
    return SessionLocal()


def load_models():
    """Import every model module so Base.metadata and relationships resolve.

    Schema itself is managed by Alembic; this never creates tables.
    """
    import importlib
    for name in MODEL_MODULES:
        importlib.import_module(name)
