"""
Engine and session management.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from steam_apps_db.config import DatabaseConfig, get_settings
from steam_apps_db.logger import get_logger
from steam_apps_db.persistence.models import Base

logger = get_logger(__name__, component="database")


def _enable_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class Database:
    """
    Owns the engine and hands out sessions.

    session() is for reads and short units of work that commit on their
    own. transaction() commits when the block exits normally and rolls
    everything back when it raises.

    Example:
        >>> db = Database()
        >>> db.create_schema()
        >>> with db.transaction() as session:
        ...     session.add(SteamApp(appid=10, name="Counter-Strike"))
    """

    def __init__(self, config: DatabaseConfig | None = None) -> None:
        self.config = config or get_settings().database
        self.engine = self._create_engine()
        self._sessionmaker = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def _create_engine(self) -> Engine:
        url = make_url(self.config.url)
        is_sqlite = url.get_backend_name() == "sqlite"

        engine_kwargs: dict[str, Any] = {"echo": self.config.echo, "pool_pre_ping": True}
        if is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(url, **engine_kwargs)
        if is_sqlite:
            event.listen(engine, "connect", _enable_sqlite_pragmas)

        logger.debug("Engine created", backend=url.get_backend_name())
        return engine

    def create_schema(self) -> None:
        """Create every table that does not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Schema created", tables=len(Base.metadata.tables))

    def session(self) -> Session:
        return self._sessionmaker()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block in one transaction."""
        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
