"""Database models for client mount resources"""

from datetime import datetime
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import (
    create_engine, Column, String, Integer, DateTime, Boolean, Text
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, scoped_session, Session

from nodemount.utils.exceptions import DatabaseException
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)
Base = declarative_base()


class ClientMountRecord(Base):
    """Persisted client mount resource, spec and status stored as JSON"""
    __tablename__ = 'client_mounts'

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)
    deleted = Column(Boolean, default=False, nullable=False)
    name = Column(String(253), nullable=False)
    node = Column(String(255), nullable=False, index=True)
    spec = Column(Text, nullable=False)
    status = Column(Text, nullable=True)
    finalizers = Column(Text, nullable=True)
    deletion_requested = Column(Boolean, default=False, nullable=False)
    version = Column(Integer, default=1, nullable=False)

    def __repr__(self):
        return (
            f"<ClientMountRecord(id={self.id}, name={self.name}, node={self.node}, "
            f"version={self.version}, deleted={self.deleted})>"
        )


class DatabaseManager:
    """Database connection and session management"""

    def __init__(self, db_url: str, pool_size: Optional[int] = None,
                 pool_recycle: Optional[int] = None):
        self.db_url = db_url
        self.pool_size = pool_size
        self.pool_recycle = pool_recycle
        self.engine = None
        self.session_factory = None
        self.Session = None

    def initialize(self):
        """Initialize database connection"""
        LOG.info(f"Initializing database connection: {self.db_url.split('@')[-1]}")

        engine_kwargs = {'echo': False, 'pool_pre_ping': True}
        # SQLite pools do not accept sizing options
        if not self.db_url.startswith('sqlite'):
            if self.pool_size:
                engine_kwargs['pool_size'] = self.pool_size
            if self.pool_recycle:
                engine_kwargs['pool_recycle'] = self.pool_recycle

        try:
            self.engine = create_engine(self.db_url, **engine_kwargs)

            # Create tables if they don't exist
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to initialize database: {e}")

        self.session_factory = sessionmaker(bind=self.engine)
        self.Session = scoped_session(self.session_factory)

        LOG.info("Database initialized successfully")

    def get_session(self) -> Session:
        """Get database session"""
        if not self.Session:
            self.initialize()
        return self.Session()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide transactional scope for database operations"""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseException(f"Database operation failed: {e}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Close database connections"""
        if self.Session:
            self.Session.remove()
        if self.engine:
            self.engine.dispose()


# Global database manager instance
_db_manager = None


def initialize_database(db_url: str, pool_size: Optional[int] = None,
                        pool_recycle: Optional[int] = None) -> DatabaseManager:
    """Initialize global database manager"""
    global _db_manager
    if _db_manager:
        _db_manager.close()
    _db_manager = DatabaseManager(db_url, pool_size=pool_size, pool_recycle=pool_recycle)
    _db_manager.initialize()
    return _db_manager


def close_database():
    """Dispose the global database manager"""
    global _db_manager
    if _db_manager:
        _db_manager.close()
    _db_manager = None


def get_session() -> Session:
    """Get database session"""
    if not _db_manager:
        raise RuntimeError("Database not initialized. Call initialize_database() first.")
    return _db_manager.get_session()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Provide transactional scope"""
    if not _db_manager:
        raise RuntimeError("Database not initialized. Call initialize_database() first.")
    with _db_manager.session_scope() as session:
        yield session
