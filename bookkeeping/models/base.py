"""
Database engine, session factory, and declarative base.

Every journal, account, user, and audit model inherits from Base.
Every request gets its own session from get_db(), and the caller
of a service decides when that session commits or rolls back.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from bookkeeping.config import get_settings

settings = get_settings()

# pool_pre_ping replaces connections that went stale while idle
# in the pool instead of failing the next journal request.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# No autoflush: the journal service decides exactly when the
# version-checked UPDATE is sent, so a conflict surfaces at a
# known point in the request rather than on an incidental query.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


def get_db():
    """
    Provide a database session for a single request.

    FastAPI drives this generator as a dependency; the finally
    block returns the connection to the pool even when the
    endpoint raised.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
