# manages connection to db, provides helper methods internal to db package
import asyncio
import os
import random
import string
from contextlib import asynccontextmanager
from datetime import datetime
from sqlite3 import Row
from typing import Optional

import aiosqlite

from utils.config import settings
from utils.logger import get_logger

_logger = get_logger(__name__)

_HERE = os.path.dirname(os.path.abspath(__file__))

DB_PATH = settings.db_path
SCHEMA_SCRIPT = os.path.join(_HERE, "schema.sql")
SEED_SCRIPT = os.path.join(_HERE, "seed.sql")
DB_INIT_SCRIPTS = [SCHEMA_SCRIPT, SEED_SCRIPT] if settings.seed else [SCHEMA_SCRIPT]

_ID_ALPHABET = string.ascii_letters + string.digits
_TS_FORMAT_SPEC = "microseconds"

_initialized = False
_init_lock = asyncio.Lock()


def new_doc_id() -> str:
    """Random 20 character document id, the shape the document store hands out."""
    return "".join(random.choices(_ID_ALPHABET, k=20))


def server_timestamp() -> datetime:
    """Timestamp assigned by the store on write. Local time, naive."""
    return datetime.now()


def to_db_ts(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(sep=" ", timespec=_TS_FORMAT_SPEC)


def from_db_ts(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


async def _init_db(conn: aiosqlite.Connection) -> None:
    for script in DB_INIT_SCRIPTS:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info(f"Initializing database with script {os.path.basename(script)}...")
        with open(script, "r", encoding="utf-8") as f:
            await conn.executescript(f.read())
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection.

    Ensures the database is initialized (tables and seed data) on first use.
    """
    global _initialized
    db_dir = os.path.dirname(DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = await aiosqlite.connect(DB_PATH)
    conn.row_factory = Row

    if not _initialized:
        async with _init_lock:
            if not _initialized:
                exists = await _table_exists(conn, "users")
                if not exists:
                    _logger.info(f"Initializing database at {DB_PATH}...")
                    await _init_db(conn)
                _initialized = True
    try:
        yield conn
    finally:
        await conn.close()
