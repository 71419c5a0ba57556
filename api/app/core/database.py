from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)


def normalize_database_url(db_url: str) -> str:
    """SQLAlchemy prefers postgresql:// over postgres://."""
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql://", 1)
    return db_url


def enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.

    The sqlite3 driver otherwise issues its own BEGIN lazily and releases
    SAVEPOINTs as commits, which breaks the per-operation savepoints used
    by the sync endpoints.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def make_engine(db_url: str, **kwargs) -> Engine:
    """Create an engine with pool settings suited to the backend."""
    db_url = normalize_database_url(db_url)
    if db_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs.setdefault("poolclass", StaticPool)
        engine = create_engine(db_url, echo=False, **kwargs)
        enable_sqlite_savepoints(engine)
        return engine

    return create_engine(
        db_url,
        echo=False,  # Set to True to log SQL statements
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        **kwargs,
    )


logger.info(f"Connecting to database: {settings.database_url[:20]}...")  # Log partial URL for debugging

engine = make_engine(settings.database_url)


def get_session():
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session


def init_db():
    """Initialize database tables."""
    SQLModel.metadata.create_all(engine)
