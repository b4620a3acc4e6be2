from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import NullPool

from clarity.config import DATABASE_URL

# ---------------------------------------------------------
# SQLAlchemy Base class
# ---------------------------------------------------------
class Base(DeclarativeBase):
    pass

# ---------------------------------------------------------
# Create engine
# ---------------------------------------------------------
# Batch jobs are short-lived processes; NullPool avoids holding idle connections.
engine = create_engine(
    DATABASE_URL,
    poolclass=NullPool,
    echo=False,  # set True to log SQL
)

# ---------------------------------------------------------
# SessionLocal factory
# ---------------------------------------------------------
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@contextmanager
def session_scope():
    """Yields a database session for one batch invocation."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def dialect_insert(db, table):
    """
    Return an INSERT construct that supports ``on_conflict_do_*`` for the
    session's backend (PostgreSQL in production, SQLite in tests).
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Upserts are not supported on {dialect}")
    return insert(table)
