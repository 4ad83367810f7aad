"""Database bootstrap for local SQLite runs (``python -m backoffice.db.init_db``).

With PostgreSQL use Alembic migrations (``alembic upgrade head``) and
call ``seed_defaults`` afterwards.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from backoffice.core.logging_config import configure_logging
from backoffice.db.base import Base
from backoffice.db.session import engine as default_engine
# Import all models to ensure they're registered with Base.metadata
import backoffice.models  # noqa: F401
from backoffice.services import unit_service

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(target_engine: Engine) -> None:
    url = target_engine.url
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def seed_defaults(db: Session) -> None:
    unit_service.create_default_units(db)


def init_db(target_engine: Optional[Engine] = None) -> None:
    """Create missing tables and seed the default units."""
    target_engine = target_engine or default_engine
    _ensure_sqlite_directory(target_engine)

    Base.metadata.create_all(bind=target_engine)
    logger.info("Database tables created")

    db = sessionmaker(autocommit=False, autoflush=False, bind=target_engine)()
    try:
        seed_defaults(db)
    finally:
        db.close()


def drop_db(target_engine: Optional[Engine] = None) -> None:
    """Drop every table.

    SQLite checks foreign keys while emptying a dropped table, and derived
    units restrict deletion of their base unit, so enforcement is switched
    off on the connection for the duration of the drop.
    """
    target_engine = target_engine or default_engine
    with target_engine.connect() as connection:
        is_sqlite = connection.dialect.name == "sqlite"
        if is_sqlite:
            connection.exec_driver_sql("PRAGMA foreign_keys=OFF")
        try:
            Base.metadata.drop_all(bind=connection)
            connection.commit()
        finally:
            if is_sqlite:
                connection.exec_driver_sql("PRAGMA foreign_keys=ON")
    logger.info("Database tables dropped")


if __name__ == "__main__":
    configure_logging()
    init_db()
