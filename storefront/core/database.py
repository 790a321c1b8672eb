from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from storefront.core.config import settings

# Create SQLAlchemy engine
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,  # Verify connections before using them
)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class for models
Base = declarative_base()


def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    # SQLAlchemy emits BEGIN itself from now on
    dbapi_connection.isolation_level = None


def _begin_immediate(conn):
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def enable_sqlite_write_locks(target: Engine) -> None:
    """
    Make every transaction on a SQLite engine take the write lock up front.

    SQLite ignores SELECT ... FOR UPDATE and pysqlite opens transactions
    lazily, so two sessions could read the same row before either writes.
    With BEGIN IMMEDIATE the read-modify-write of one session completes
    before the next one can read. No-op for other databases.
    """
    if target.dialect.name != "sqlite" or event.contains(target, "begin", _begin_immediate):
        return
    event.listen(target, "connect", _disable_pysqlite_transactions)
    event.listen(target, "begin", _begin_immediate)


enable_sqlite_write_locks(engine)


def init_db():
    """
    Create the verification_codes table if it does not exist.

    Only needed when VERIFICATION_STORE_BACKEND is "database".
    """
    from storefront.models import verification_code  # noqa: F401  Import models to register them
    Base.metadata.create_all(bind=engine)
