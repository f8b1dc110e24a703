"""Schema setup and forward migration for the analytics database.

The schema carries no version number. The shape of the ``words`` table is
inferred from SQLite's own catalog (``pragma_table_info`` and
``pragma_index_list``), which also lets files written by the first release
of the bot be opened and upgraded in place.

First release::

    words(guild_id, word, count)   PRIMARY KEY (guild_id, word)

Current::

    words(guild_id, user_id, word, count)   PRIMARY KEY (guild_id, user_id, word)
    UNIQUE INDEX idx_words_guild_user_word (guild_id, user_id, word)

Upgrading rebuilds the table and merges rows that land on the same new key
by summing their counts, so no accumulated count is ever dropped.
"""

import logging
from typing import Dict, List, Sequence

import aiosqlite


logger = logging.getLogger("fentanalytics.migrations")


WORDS_TABLE = "words"
WORDS_TEMP_TABLE = "words_migration"
WORDS_INDEX = "idx_words_guild_user_word"

CURRENT_WORDS_KEY = ("guild_id", "user_id", "word")
LEGACY_WORDS_KEY = ("guild_id", "word")

# Rows of the first release carry no user, they are kept under this id
LEGACY_USER_ID = ""

COUNTER_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS messages (
        guild_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        count INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (guild_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS voice_time (
        guild_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        seconds INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (guild_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS activities (
        guild_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        seconds INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (guild_id, user_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ate_food (
        guild_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        count INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (guild_id, user_id)
    )
    """,
)


class StoreError(Exception):
    """Base class for analytics store failures."""


class MigrationError(StoreError):
    """Raised when the on-disk schema cannot be brought to the current shape."""


def _words_table_sql(table: str) -> str:
    return f"""
        CREATE TABLE {table} (
            guild_id TEXT NOT NULL,
            user_id TEXT NOT NULL DEFAULT '',
            word TEXT NOT NULL,
            count INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (guild_id, user_id, word)
        )
    """


async def table_exists(db: aiosqlite.Connection, table: str) -> bool:
    cursor = await db.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,)
    )
    return await cursor.fetchone() is not None


async def get_columns(db: aiosqlite.Connection, table: str) -> List[str]:
    """Return the column names of ``table`` in declaration order."""
    cursor = await db.execute(
        "SELECT name FROM pragma_table_info(?) ORDER BY cid",
        (table,)
    )
    return [row[0] for row in await cursor.fetchall()]


async def get_primary_key(db: aiosqlite.Connection, table: str) -> List[str]:
    """Return the primary key columns of ``table`` in key order."""
    cursor = await db.execute(
        "SELECT name FROM pragma_table_info(?) WHERE pk > 0 ORDER BY pk",
        (table,)
    )
    return [row[0] for row in await cursor.fetchall()]


async def get_unique_indexes(
    db: aiosqlite.Connection,
    table: str
) -> Dict[str, Dict[str, object]]:
    """
    Describe the unique indexes of a table.

    Returns:
        Mapping of index name -> {"columns": [...], "origin": "c"|"u"|"pk"}
    """
    cursor = await db.execute(
        'SELECT name, origin FROM pragma_index_list(?) WHERE "unique" = 1',
        (table,)
    )
    indexes: Dict[str, Dict[str, object]] = {}
    for name, origin in await cursor.fetchall():
        info = await db.execute(
            "SELECT name FROM pragma_index_info(?) ORDER BY seqno",
            (name,)
        )
        columns = [row[0] for row in await info.fetchall()]
        indexes[name] = {"columns": columns, "origin": origin}
    return indexes


async def find_legacy_word_indexes(db: aiosqlite.Connection) -> List[str]:
    """Names of unique indexes on ``words`` still keyed by (guild_id, word)."""
    indexes = await get_unique_indexes(db, WORDS_TABLE)
    return [
        name
        for name, info in indexes.items()
        if tuple(info["columns"]) == LEGACY_WORDS_KEY
    ]


async def words_table_is_current(db: aiosqlite.Connection) -> bool:
    """
    True when ``words`` has a user column, the (guild_id, user_id, word)
    primary key and no leftover (guild_id, word) unique index.
    """
    columns = await get_columns(db, WORDS_TABLE)
    if "user_id" not in columns:
        return False
    if tuple(await get_primary_key(db, WORDS_TABLE)) != CURRENT_WORDS_KEY:
        return False
    return not await find_legacy_word_indexes(db)


async def _create_words_index(db: aiosqlite.Connection) -> None:
    await db.execute(
        f"CREATE UNIQUE INDEX IF NOT EXISTS {WORDS_INDEX} "
        f"ON {WORDS_TABLE}(guild_id, user_id, word)"
    )


async def _rebuild_words_table(db: aiosqlite.Connection, columns: Sequence[str]) -> int:
    """
    Copy ``words`` into a table of the current shape and swap it in.

    Must run inside an open transaction.

    Returns:
        Number of rows in the rebuilt table
    """
    missing = {"guild_id", "word", "count"} - set(columns)
    if missing:
        raise MigrationError(
            f"Cannot migrate table '{WORDS_TABLE}': missing columns {sorted(missing)}"
        )

    if "user_id" in columns:
        user_expr = f"COALESCE(user_id, '{LEGACY_USER_ID}')"
    else:
        user_expr = f"'{LEGACY_USER_ID}'"

    # Index names are only known after the catalog lookup; drop the ones we
    # created ourselves, the PRIMARY KEY autoindex goes with the old table.
    legacy_indexes = await get_unique_indexes(db, WORDS_TABLE)
    droppable = [
        name
        for name, info in legacy_indexes.items()
        if info["origin"] == "c" and tuple(info["columns"]) == LEGACY_WORDS_KEY
    ]

    await db.execute(f"DROP TABLE IF EXISTS {WORDS_TEMP_TABLE}")
    await db.execute(_words_table_sql(WORDS_TEMP_TABLE))
    await db.execute(
        f"""
        INSERT INTO {WORDS_TEMP_TABLE} (guild_id, user_id, word, count)
        SELECT guild_id, {user_expr}, word, SUM(count)
        FROM {WORDS_TABLE}
        GROUP BY guild_id, {user_expr}, word
        """
    )

    for name in droppable:
        await db.execute(f'DROP INDEX IF EXISTS "{name}"')

    await db.execute(f"DROP TABLE {WORDS_TABLE}")
    await db.execute(f"ALTER TABLE {WORDS_TEMP_TABLE} RENAME TO {WORDS_TABLE}")
    await _create_words_index(db)

    cursor = await db.execute(f"SELECT COUNT(*) FROM {WORDS_TABLE}")
    row = await cursor.fetchone()
    return row[0] if row else 0


async def migrate_words_table(db: aiosqlite.Connection) -> bool:
    """
    Bring the ``words`` table to the current shape.

    Safe to call on every startup: a current table only gets its index
    ensured. Anything else is rebuilt in a single transaction.

    Args:
        db: Open connection to the analytics database

    Returns:
        True if a rebuild took place

    Raises:
        MigrationError: If the table cannot be rebuilt; nothing is changed
    """
    if not await table_exists(db, WORDS_TABLE):
        await db.execute(_words_table_sql(WORDS_TABLE))
        await _create_words_index(db)
        await db.commit()
        logger.info(f"Created table '{WORDS_TABLE}'")
        return False

    if await words_table_is_current(db):
        await _create_words_index(db)
        await db.commit()
        return False

    columns = await get_columns(db, WORDS_TABLE)
    logger.warning(
        f"Table '{WORDS_TABLE}' has a legacy shape (columns={columns}), rebuilding"
    )

    # Finish any implicit transaction before opening our own
    await db.commit()
    await db.execute("BEGIN")
    try:
        row_count = await _rebuild_words_table(db, columns)
    except Exception as e:
        await db.rollback()
        if isinstance(e, MigrationError):
            raise
        raise MigrationError(f"Rebuilding table '{WORDS_TABLE}' failed: {e}") from e

    await db.commit()
    logger.info(f"Migrated table '{WORDS_TABLE}' to per-user word counts ({row_count} rows)")
    return True


async def create_schema(db: aiosqlite.Connection) -> None:
    """Create every table the store needs and migrate ``words`` forward."""
    for statement in COUNTER_TABLES:
        await db.execute(statement)
    await db.commit()

    await migrate_words_table(db)
