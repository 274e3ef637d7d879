"""Database configuration and session management."""

import logging
import time
from collections.abc import Generator
from typing import Any

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from gifshare.config import Settings

logger = logging.getLogger(__name__)

Base: Any = declarative_base()


class Database:
    """Engine and session factory owned by one application instance."""

    def __init__(self, settings: Settings):
        self.settings = settings
        url = settings.sqlalchemy_url
        if url.startswith("sqlite"):
            self.engine = create_engine(url, connect_args={"check_same_thread": False})
        else:
            self.engine = create_engine(
                url,
                pool_pre_ping=True,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
            )
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def wait_until_ready(self) -> None:
        """Block until the database answers, retrying with a fixed delay.

        Raises SystemExit(1) once the retries are exhausted.
        """
        attempts = max(1, self.settings.db_connect_retries)
        for attempt in range(1, attempts + 1):
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info("Database connection established")
                return
            except OperationalError as e:
                logger.warning(f"Database connection attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts:
                    time.sleep(self.settings.db_connect_retry_delay)

        logger.critical("Could not connect to the database, giving up")
        raise SystemExit(1)

    def create_all(self) -> None:
        """Create all tables directly (tests and local development)."""
        # Import all models here so they are registered with Base.metadata
        from gifshare import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
