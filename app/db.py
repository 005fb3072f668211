import sqlite3

from sqlmodel import create_engine, SQLModel, Session
from sqlalchemy import event
from sqlalchemy.engine import Engine

from app.core.config import settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)

DATABASE_URL = settings.DATABASE_URL
IS_SQLITE = DATABASE_URL.startswith("sqlite")

if IS_SQLITE:
    # Local development file database
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        echo=False,  # Disable query logging in production
        pool_size=5,
        max_overflow=10,  # Allow burst connections
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=300,  # Recycle connections every 5 min
        pool_timeout=30,  # Wait up to 30s for a connection
        connect_args={
            "connect_timeout": 10,  # Connection timeout
            "keepalives": 1,  # Enable TCP keepalives
            "keepalives_idle": 30,  # Send keepalive after 30s idle
            "keepalives_interval": 10,  # Retry keepalive every 10s
            "keepalives_count": 5,  # Drop connection after 5 failed keepalives
        },
    )


@event.listens_for(Engine, "connect")
def set_connection_parameters(dbapi_connection, connection_record):
    """Enable cascading deletes on SQLite; cap query time elsewhere."""
    cursor = dbapi_connection.cursor()
    try:
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor.execute("PRAGMA foreign_keys=ON")
        else:
            # Set statement timeout (30 seconds max query time)
            cursor.execute("SET statement_timeout = '30s'")
    except Exception as e:
        logger.warning("Could not set connection parameters", error=str(e))
    finally:
        cursor.close()


def get_session():
    with Session(engine) as session:
        yield session


def create_db_and_tables():
    # Register every table on the metadata before creating
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
