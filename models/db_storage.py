from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from models.base_model import Base
from models.user import User
from models.admin import Admin
from models.refresh_token import RefreshTokenRecord
from models.district import District
from models.taluka import Taluka
from models.category import Category
from models.post import Post
from models.news import News

# Map model names for easy querying
classes = {
    "User": User,
    "Admin": Admin,
    "RefreshTokenRecord": RefreshTokenRecord,
    "District": District,
    "Taluka": Taluka,
    "Category": Category,
    "Post": Post,
    "News": News,
}


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or url.endswith(":memory:")


class DBStorage:
    __engine = None
    __session = None

    def configure(self, url: str, *, echo: bool = False, pool_size: int = 20, max_overflow: int = 0,
                  pool_timeout: int = 2, pool_recycle: int = 30, statement_timeout_ms: int | None = None):
        """Build the engine for `url` and start a scoped session factory.

        A request that cannot get a pooled connection within `pool_timeout`
        seconds fails with sqlalchemy.exc.TimeoutError instead of queuing.
        """
        if self.__session is not None:
            self.__session.remove()
        if self.__engine is not None:
            self.__engine.dispose()

        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if _is_memory_sqlite(url):
                # One shared connection, otherwise every checkout sees an empty database
                kwargs["poolclass"] = StaticPool
            self.__engine = create_engine(url, echo=echo, **kwargs)

            # Enable SQLite foreign keys (needed for ON DELETE RESTRICT/CASCADE)
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        else:
            connect_args = {}
            if statement_timeout_ms and url.startswith("postgresql"):
                connect_args["options"] = f"-c statement_timeout={int(statement_timeout_ms)}"
            self.__engine = create_engine(
                url,
                echo=echo,
                pool_pre_ping=True,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                connect_args=connect_args,
            )
        self.reload()

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def drop_all(self):
        """Drop every table (used by `flask reset-db` and the test suite)"""
        self.__session.remove()
        Base.metadata.drop_all(self.__engine)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def rollback(self):
        self.__session.rollback()

    @contextmanager
    def atomic(self):
        """Run a block of writes as one commit; roll everything back on failure."""
        session = self.__session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise

    def delete(self, obj=None):
        """Delete object if exists (hard delete)"""
        if obj:
            self.__session.delete(obj)

    def get(self, cls, id):
        """Fetch one object by class and ID"""
        if cls in classes.values():
            return self.__session.get(cls, id)
        return None

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session
