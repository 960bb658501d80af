"""
Base database model and session management
"""
import os
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

from order_sync.utils.logger import log

# Base class for all models
Base = declarative_base()


def resolve_database_url(database_url: str) -> str:
    """Resolve relative SQLite paths to absolute so cwd changes can't break it"""
    if database_url.startswith("sqlite:///") and not database_url.startswith("sqlite:////"):
        rel_path = database_url[len("sqlite:///"):]
        if rel_path and rel_path != ":memory:":
            return "sqlite:///" + os.path.abspath(rel_path)
    return database_url


def create_db_engine(database_url: str) -> Engine:
    """Create the record store engine"""
    url = resolve_database_url(database_url)

    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 60},
            poolclass=NullPool,
            pool_pre_ping=True
        )

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=3,
        max_overflow=5,
        pool_recycle=300,
    )


def create_session_factory(database_url: str) -> sessionmaker:
    """Create a session factory bound to a new engine"""
    engine = create_db_engine(database_url)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def _migrate_missing_columns(engine: Engine):
    """Add columns defined in models but missing from existing DB tables.

    create_all() only creates missing tables; it cannot add new columns
    to tables that already exist.
    """
    inspector = inspect(engine)
    with engine.connect() as conn:
        for table_name, table in Base.metadata.tables.items():
            if not inspector.has_table(table_name):
                continue  # create_all will handle it
            existing = {c["name"] for c in inspector.get_columns(table_name)}
            for col in table.columns:
                if col.name not in existing:
                    col_type = col.type.compile(dialect=engine.dialect)
                    sql = f'ALTER TABLE {table_name} ADD COLUMN {col.name} {col_type}'
                    log.info(f"Auto-migrating: {sql}")
                    conn.execute(text(sql))
        conn.commit()


def init_db(engine: Engine):
    """Initialize database tables and auto-migrate new columns."""
    # Register every model on Base.metadata
    from order_sync.models import customer, order  # noqa: F401

    Base.metadata.create_all(bind=engine)
    _migrate_missing_columns(engine)
