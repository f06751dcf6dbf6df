from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Seconds SQLite waits on a locked database before raising "database is locked"
SQLITE_BUSY_TIMEOUT_SECONDS = 30

# Base for every ORM model
Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine used by the workers.

    Both workers write to the same file, so SQLite runs in WAL mode with a
    busy timeout; the repositories add retry-on-busy on top.
    """
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_SECONDS * 1000}")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """Create missing tables"""
    # Models must be imported so their tables are registered on Base.metadata
    import trackage.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
