"""
Bible Marathon SQLite Database Connection
"""
import logging
import os
from typing import Iterator
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from marathon.core.config import settings
from marathon.core.exceptions import DatabaseException
from marathon.db.models import Base

logger = logging.getLogger(__name__)

def create_db_engine(db_file: str) -> Engine:
    """
    Create a SQLite engine with the connection settings the app relies on
    Args:
        db_file: path of the SQLite database file
    Returns:
        Configured engine
    """
    db_dir = os.path.dirname(db_file)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    db_engine = create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
        pool_pre_ping=True
    )

    @event.listens_for(db_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself so SAVEPOINTs nest properly
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")  # write-ahead log for concurrent readers
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=30000")  # 30sec timeout if busy connection
        cursor.close()

    @event.listens_for(db_engine, "begin")
    def do_begin(conn):
        # write lock from the first statement, concurrent writers wait on busy_timeout
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return db_engine

engine = create_db_engine(settings.SQLITE_DB_FILE)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db() -> Iterator[Session]:
    """Get database session dependency."""
    db = SessionLocal()
    try: yield db
    finally: db.close()

def initialise_db(db_engine: Engine = None):
    """Create tables if they don't exist"""
    try:
        Base.metadata.create_all(bind=db_engine or engine)
        logger.info("Database initialised - tables created if they didn't exist")
    except Exception as e:
        raise DatabaseException(f"Failed to initialize database: {str(e)}")

def close_db_connection():
    """Close db connection"""
    try:
        engine.dispose()
        logger.info("Database connection closed")
    except Exception as e:
        logger.error(f"Failed to close database connection: {str(e)}")
