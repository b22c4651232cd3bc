"""Database engine, session factory and the declarative base."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from onboarding.config import get_settings

Base = declarative_base()


class DatabaseManager:
    """Lazily builds the engine from settings so importing models never connects."""

    def __init__(self, database_url: Optional[str] = None) -> None:
        self._database_url = database_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            settings = get_settings()
            url = self._database_url or settings.database_url
            kwargs = {"pool_pre_ping": True}
            if not str(url).startswith("sqlite"):
                kwargs["pool_size"] = settings.database_pool_size
                kwargs["max_overflow"] = settings.database_max_overflow
            self._engine = create_engine(url, **kwargs)
        return self._engine

    @property
    def SessionLocal(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine, autoflush=False, expire_on_commit=False
            )
        return self._session_factory

    def configure(self, engine: Engine) -> None:
        """Bind the manager to an existing engine (used by tests and scripts)."""
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )

    @contextmanager
    def db_session(self) -> Iterator[Session]:
        """Yield a session that is rolled back on error and always closed."""
        db = self.SessionLocal()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


db_manager = DatabaseManager()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session."""
    with db_manager.db_session() as db:
        yield db
