"""SQLite database client wrapper with CRUD operations and transactions."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings
from src.core.errors import WriteError


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when a datastore operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record id does not resolve."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and not isinstance(value, bool) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _to_db_value(val: Any) -> Any:
    """Convert a Python value into something sqlite3 can bind."""
    if isinstance(val, datetime):
        return val.isoformat()
    if isinstance(val, dict | list):
        return json.dumps(val)
    return val


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return "%" + value.replace("%", "\\%").replace("_", "\\_") + "%"

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


# Quoted values may contain the other quote character and backslash escapes
_COMPARISON_PATTERN = re.compile(
    r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(?:"((?:[^"\\]|\\.)*)"|'((?:[^'\\]|\\.)*)')$""",
    re.DOTALL,
)


def _unescape(raw: str) -> str:
    """Undo the escaping applied by sanitize_param."""
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return re.sub(r"\\(.)", r"\1", raw, flags=re.DOTALL)


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = _COMPARISON_PATTERN.match(comparison.strip())
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    double_quoted = match.group(3)
    raw_value = _unescape(double_quoted if double_quoted is not None else match.group(4))

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, is_like=is_like)

    if is_like:
        return f"{field} LIKE ? ESCAPE '\\'", value
    return f"{field} {sql_op} ?", value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]  # Remove parentheses
    or_parts = _split_top_level(inner, "||")
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_top_level(text: str, separator: str) -> list[str]:
    """Split ``text`` on ``separator`` outside quoted values and parentheses."""
    parts = []
    current = ""
    paren_depth = 0
    quote: str | None = None
    i = 0

    while i < len(text):
        char = text[i]
        if quote is not None:
            if char == "\\" and i + 1 < len(text):
                current += text[i : i + 2]
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1
        elif paren_depth == 0 and text.startswith(separator, i):
            parts.append(current.strip())
            current = ""
            i += len(separator)
            continue

        current += char
        i += 1

    if current.strip():
        parts.append(current.strip())

    return parts


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    return _split_top_level(filter_query, "&&")


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params = []

    for raw_part in parts:
        part = raw_part.strip()

        # Handle parenthesized OR groups
        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def parse_sort(sort: str) -> str:
    """Translate "-field" / "+field" / "field DESC" into a safe ORDER BY clause."""
    if not sort:
        return "id ASC"

    sort = sort.strip()
    if sort[0] in "+-":
        direction = "DESC" if sort[0] == "-" else "ASC"
        sort = f"{sort[1:]} {direction}"

    if re.match(r"^[A-Za-z_][A-Za-z0-9_]*\s*(ASC|DESC)?$", sort, re.IGNORECASE):
        return f"{sort}, id ASC"

    logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return "id ASC"


_db_connections: dict[tuple[int, int, str, bool], aiosqlite.Connection] = {}
_write_locks: dict[int, asyncio.Lock] = {}
_db_lock = threading.Lock()


def _get_write_lock() -> asyncio.Lock:
    """Get the write lock for the running event loop."""
    loop_id = id(asyncio.get_running_loop())
    with _db_lock:
        lock = _write_locks.get(loop_id)
        if lock is None:
            lock = asyncio.Lock()
            _write_locks[loop_id] = lock
        return lock


async def get_connection(*, db_path: str | None = None, writer: bool = False) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path.

    Writes and transactions use the ``writer`` connection; reads use a separate
    one, so under WAL they only ever see committed data.
    """
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path), writer)

    cached_conn = _db_connections.get(cache_key)
    if cached_conn is not None:
        return cached_conn

    path.parent.mkdir(parents=True, exist_ok=True)

    # Autocommit mode: transactions are opened explicitly in transaction()
    conn = await aiosqlite.connect(str(path), isolation_level=None)
    await conn.execute("PRAGMA foreign_keys = ON")
    await conn.execute("PRAGMA journal_mode = WAL")
    await conn.execute("PRAGMA busy_timeout = 5000")

    # Another coroutine may have connected while we awaited
    existing = _db_connections.setdefault(cache_key, conn)
    if existing is not conn:
        await conn.close()
        return existing

    logger.info(
        "Created new SQLite connection",
        extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id, "writer": writer},
    )
    return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connections for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)

    try:
        for writer in (False, True):
            conn = _db_connections.pop((thread_id, loop_id, str(path), writer), None)
            if conn is None:
                continue
            try:
                await conn.close()
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path), "writer": writer},
                )
            except Exception as e:
                logger.warning(
                    "Error closing SQLite connection",
                    extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
                )
    finally:
        with _db_lock:
            _write_locks.pop(loop_id, None)


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


async def _insert(conn: aiosqlite.Connection, collection: str, data: dict[str, Any]) -> str:
    columns = list(data.keys())
    columns_str = ", ".join(columns)
    placeholders_str = ", ".join("?" for _ in columns)
    values = [_to_db_value(data[key]) for key in columns]

    query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608
    cursor = await conn.execute(query, values)
    return str(cursor.lastrowid)


async def _select_by_id(conn: aiosqlite.Connection, collection: str, record_id: str) -> dict[str, Any] | None:
    query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
    cursor = await conn.execute(query, (int(record_id),))
    row = await cursor.fetchone()
    columns = [description[0] for description in cursor.description]
    await cursor.close()
    if row is None:
        return None
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


async def _update(
    conn: aiosqlite.Connection,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    match: dict[str, Any] | None = None,
) -> int:
    set_clause = ", ".join(f"{key} = ?" for key in data)
    values = [_to_db_value(val) for val in data.values()]
    where = "id = ?"
    values.append(int(record_id))
    for key, val in (match or {}).items():
        where += f" AND {key} = ?"
        values.append(_to_db_value(val))

    query = f"UPDATE {collection} SET {set_clause} WHERE {where}"  # noqa: S608 - collection is validated
    cursor = await conn.execute(query, values)
    return cursor.rowcount


async def _select(
    conn: aiosqlite.Connection,
    collection: str,
    *,
    filter_query: str = "",
    sort: str = "",
    limit: int | None = None,
    offset: int = 0,
) -> list[dict[str, Any]]:
    where_clause = ""
    params: list[Any] = []
    if filter_query:
        where_clause, params = parse_filter(filter_query)
        where_clause = f"WHERE {where_clause}"

    query = f"SELECT * FROM {collection} {where_clause} ORDER BY {parse_sort(sort)}"  # noqa: S608
    if limit is not None:
        query += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])

    cursor = await conn.execute(query, params)
    rows = await cursor.fetchall()
    columns = [description[0] for description in cursor.description]
    return [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]


def _wrap_error(action: str, collection: str, e: Exception) -> DatabaseError:
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        logger.error("Table not found", extra={"collection": collection})
        return DatabaseError(f"Table '{collection}' does not exist. Call init_db() first.")
    return DatabaseError(f"Failed to {action} {collection}: {e}")


class Transaction:
    """Handle for writes that must commit or roll back together.

    Obtained from ``transaction()``; every method runs on the transaction's
    connection and nothing is visible to other connections until commit.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_record(self, *, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a record and return it with its assigned id."""
        _validate_collection_name(collection)
        try:
            record_id = await _insert(self._conn, collection, data)
            record = await _select_by_id(self._conn, collection, record_id)
        except Exception as e:
            raise _wrap_error("create record in", collection, e) from e
        assert record is not None
        return record

    async def get_record(self, *, collection: str, record_id: str) -> dict[str, Any]:
        """Fetch a record by id, raising RecordNotFoundError if absent."""
        _validate_collection_name(collection)
        try:
            record = await _select_by_id(self._conn, collection, record_id)
        except Exception as e:
            raise _wrap_error("get record from", collection, e) from e
        if record is None:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        return record

    async def update_record(
        self,
        *,
        collection: str,
        record_id: str,
        data: dict[str, Any],
        match: dict[str, Any] | None = None,
    ) -> int:
        """Update a record, optionally only when extra columns match. Returns affected row count."""
        _validate_collection_name(collection)
        if not data:
            msg = "Empty update payload"
            raise ValueError(msg)
        try:
            return await _update(self._conn, collection, record_id, data, match)
        except Exception as e:
            raise _wrap_error("update record in", collection, e) from e

    async def upsert_record(
        self,
        *,
        collection: str,
        data: dict[str, Any],
        conflict_columns: list[str],
    ) -> dict[str, Any]:
        """Insert a record, or overwrite the row that collides on ``conflict_columns``."""
        _validate_collection_name(collection)
        columns = list(data.keys())
        updates = ", ".join(f"{key} = excluded.{key}" for key in columns if key not in conflict_columns)
        query = (
            f"INSERT INTO {collection} ({', '.join(columns)}) "  # noqa: S608 - collection is validated
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT({', '.join(conflict_columns)}) DO UPDATE SET {updates}"
        )
        try:
            await self._conn.execute(query, [_to_db_value(data[key]) for key in columns])
            where = " && ".join(f'{key} = "{sanitize_param(data[key])}"' for key in conflict_columns)
            records = await _select(self._conn, collection, filter_query=where, limit=1)
        except Exception as e:
            raise _wrap_error("upsert record in", collection, e) from e
        return records[0]

    async def delete_record(self, *, collection: str, record_id: str) -> int:
        """Delete a record by id. Returns affected row count."""
        _validate_collection_name(collection)
        try:
            query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
            cursor = await self._conn.execute(query, (int(record_id),))
        except Exception as e:
            raise _wrap_error("delete record from", collection, e) from e
        return cursor.rowcount

    async def list_records(self, *, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
        """List records visible inside the transaction."""
        _validate_collection_name(collection)
        try:
            return await _select(self._conn, collection, filter_query=filter_query, sort=sort)
        except Exception as e:
            raise _wrap_error("list records from", collection, e) from e


@asynccontextmanager
async def transaction(*, timeout: float | None = None) -> AsyncIterator[Transaction]:
    """Run a block of writes as one unit: commit on success, roll back on any error.

    Writers on the same event loop are serialized by the write lock, and
    ``BEGIN IMMEDIATE`` takes SQLite's reserved lock so writers in other
    processes wait as well. Cancellation and timeout also roll back.
    """
    limit = timeout if timeout is not None else settings.transaction_timeout_seconds
    conn = await get_connection(writer=True)
    async with _get_write_lock():
        async with asyncio.timeout(limit):
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield Transaction(conn)
            except BaseException:
                await _rollback(conn)
                raise
            try:
                await conn.execute("COMMIT")
            except BaseException as e:
                await _rollback(conn)
                if not isinstance(e, Exception):
                    raise
                logger.error("Transaction commit failed", extra={"error": str(e)})
                raise WriteError(f"Failed to commit transaction: {e}", stage="commit") from e


async def _rollback(conn: aiosqlite.Connection) -> None:
    # A failed COMMIT can leave the transaction open on the connection
    if conn.in_transaction:
        await asyncio.shield(conn.execute("ROLLBACK"))
        logger.warning("Transaction rolled back")


async def _with_read_retry(action: str, collection: str, func: Any) -> Any:
    """Retry an idempotent read on transient failures."""
    last_error: Exception | None = None
    for attempt in range(constants.READ_RETRY_ATTEMPTS):
        try:
            return await func()
        except aiosqlite.OperationalError as e:
            if "no such table" in str(e):
                raise _wrap_error(action, collection, e) from e
            last_error = e
            logger.warning(
                "Read failed, retrying",
                extra={"collection": collection, "attempt": attempt + 1, "error": str(e)},
            )
            await asyncio.sleep(constants.READ_RETRY_BASE_DELAY_SECONDS * 2**attempt)
        except Exception as e:
            raise _wrap_error(action, collection, e) from e
    assert last_error is not None
    raise _wrap_error(action, collection, last_error) from last_error


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection(writer=True)
        async with _get_write_lock():
            record_id = await _insert(conn, collection, data)
            record = await _select_by_id(conn, collection, record_id)
    except Exception as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise _wrap_error("create record in", collection, e) from e

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    assert record is not None
    return record


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not str(record_id).isdigit():
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    async def _read() -> dict[str, Any] | None:
        conn = await get_connection()
        return await _select_by_id(conn, collection, record_id)

    record = await _with_read_retry("get record from", collection, _read)
    if record is None:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return record


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)
    _validate_collection_name(collection)
    if not str(record_id).isdigit():
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    try:
        conn = await get_connection(writer=True)
        async with _get_write_lock():
            rowcount = await _update(conn, collection, record_id, data)
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise _wrap_error("update record in", collection, e) from e

    if rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_collection_name(collection)
    offset = (page - 1) * per_page

    async def _read() -> list[dict[str, Any]]:
        conn = await get_connection()
        return await _select(conn, collection, filter_query=filter_query, sort=sort, limit=per_page, offset=offset)

    records = await _with_read_retry("list records from", collection, _read)
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(*, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
    """List every matching record, reading page by page until a short page."""
    per_page = constants.MAX_PER_PAGE_LIMIT
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection, filter_query=filter_query, sort=sort, page=page, per_page=per_page
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None


@contextmanager
def write_stage(stage: str) -> Iterator[None]:
    """Re-raise datastore failures inside the block as WriteError naming ``stage``."""
    try:
        yield
    except DatabaseError as e:
        logger.error("Write failed", extra={"stage": stage, "error": str(e)})
        raise WriteError(f"Failed to {stage.replace('_', ' ')}: {e}", stage=stage) from e
