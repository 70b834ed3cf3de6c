"""SQLite file holding the watchlist snapshot.

The schema revision is tracked in ``PRAGMA user_version``. A file written by
a newer revision is refused rather than silently rewritten.
"""

from pathlib import Path
from typing import Self

import aiosqlite

from tickerboard.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS watchlist_tickers (
    list_type TEXT NOT NULL,
    symbol TEXT NOT NULL,
    position INTEGER NOT NULL,
    display_name TEXT NOT NULL,
    market TEXT NOT NULL,
    current_price TEXT NOT NULL,
    percent_change_24h TEXT NOT NULL,
    is_exchange_listed INTEGER NOT NULL,
    comment TEXT NOT NULL DEFAULT '',
    star_rating INTEGER NOT NULL DEFAULT 0,
    trend_direction TEXT,
    trend_confidence INTEGER,
    added_at TEXT NOT NULL,
    PRIMARY KEY (list_type, symbol)
);

CREATE INDEX IF NOT EXISTS idx_watchlist_tickers_order
    ON watchlist_tickers(list_type, position);
"""


class WatchlistDatabase:
    """Owns the aiosqlite connection used by WatchlistStore.

    Usage:
        async with WatchlistDatabase("data/watchlist.db") as database:
            store = WatchlistStore(database)
    """

    def __init__(self, db_path: str = "data/watchlist.db") -> None:
        self._path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def db(self) -> aiosqlite.Connection:
        """The open connection. Raises RuntimeError before ``connect()``."""
        if self._connection is None:
            raise RuntimeError(f"Watchlist database {self._path} is not open")
        return self._connection

    async def connect(self) -> None:
        """Open the file (creating its directory), enable WAL and migrate the schema."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        connection = await aiosqlite.connect(self._path)
        try:
            await connection.execute("PRAGMA journal_mode=WAL")
            await connection.execute("PRAGMA synchronous=NORMAL")
            version = await self._migrate(connection)
        except Exception:
            await connection.close()
            raise

        self._connection = connection
        logger.info("watchlist_db_opened", path=str(self._path), schema_version=version)

    async def close(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("watchlist_db_closed", path=str(self._path))

    async def schema_version(self) -> int:
        cursor = await self.db.execute("PRAGMA user_version")
        (version,) = await cursor.fetchone()
        return version

    async def _migrate(self, connection: aiosqlite.Connection) -> int:
        cursor = await connection.execute("PRAGMA user_version")
        (current,) = await cursor.fetchone()
        if current > SCHEMA_VERSION:
            raise RuntimeError(
                f"{self._path} has schema version {current}, "
                f"this build supports up to {SCHEMA_VERSION}"
            )
        if current < SCHEMA_VERSION:
            await connection.executescript(_SCHEMA_SQL)
            # PRAGMA does not accept bound parameters
            await connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            await connection.commit()
            logger.info("watchlist_db_migrated", from_version=current, to_version=SCHEMA_VERSION)
        return SCHEMA_VERSION

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
