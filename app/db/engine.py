# app/db/engine.py

import logging
from functools import lru_cache

from sqlalchemy import create_engine, event, insert, select, update
from sqlalchemy.engine import Engine

from app.config import settings
from app.db.schema import admins, metadata
from app.security import get_password_hash

logger = logging.getLogger(__name__)


def make_engine(url: str) -> Engine:
    # echo=True if you want to see SQL printed in the terminal
    engine = create_engine(url, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@lru_cache()
def get_engine() -> Engine:
    return make_engine(settings.DATABASE_URL)


def init_db(engine: Engine) -> None:
    metadata.create_all(engine)


def seed_admin(engine: Engine, username: str, password: str) -> None:
    """Create the staff account, or reset its password to the configured one."""
    password_hash = get_password_hash(password)

    with engine.begin() as conn:
        existing = conn.execute(
            select(admins.c.id).where(admins.c.username == username)
        ).first()

        if existing is None:
            conn.execute(insert(admins).values(username=username, password_hash=password_hash))
        else:
            conn.execute(
                update(admins)
                .where(admins.c.id == existing.id)
                .values(password_hash=password_hash)
            )

    logger.info("Admin %r patched or created", username)
