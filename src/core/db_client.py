"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, NoReturn

import aiosqlite

from src.core.config import constants, settings
from src.core.errors import DatabaseError, RecordNotFoundError


logger = logging.getLogger(__name__)

__all__ = [
    "DatabaseError",
    "RecordNotFoundError",
    "close_connection",
    "create_record",
    "delete_record",
    "get_connection",
    "get_first_record",
    "get_record",
    "init_db",
    "list_all_records",
    "list_records",
    "parse_filter",
    "sanitize_param",
    "split_comparisons",
    "update_record",
    "upsert_record",
]


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    fk_fields = {"id", "created_by"}

    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key in fk_fields or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _to_sql_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return value.replace("%", "\\%").replace("_", "\\_")

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


_COMPARISON_PATTERN = re.compile(
    r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(?:"((?:[^"\\]|\\.)*)"|'((?:[^'\\]|\\.)*)'|(\w+))$""",
    re.DOTALL,
)


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by ``&&`` outside quoted values."""
    parts = []
    current = ""
    quote = ""
    escaped = False

    for char in filter_query:
        current += char
        if escaped:
            escaped = False
        elif quote:
            if char == "\\":
                escaped = True
            elif char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
        elif current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def _unquote(double_quoted: str | None, single_quoted: str | None, bare: str | None) -> str:
    if double_quoted is not None:
        try:
            return json.loads(f'"{double_quoted}"')
        except ValueError as e:
            msg = f"Invalid escape in filter value: {double_quoted}"
            raise ValueError(msg) from e
    if single_quoted is not None:
        return re.sub(r"\\(.)", r"\1", single_quoted)
    return bare or ""


def split_comparisons(filter_query: str) -> list[tuple[str, str, str]]:
    """Split a filter query into ``(field, operator, value)`` triples.

    Values may be double-quoted (JSON escapes, see ``sanitize_param``),
    single-quoted, or bare words such as ``true`` and numbers.

    Raises:
        ValueError: For invalid filter syntax
    """
    comparisons = []
    for part in _split_and_conditions(filter_query):
        match = _COMPARISON_PATTERN.match(part)
        if not match:
            msg = f"Invalid filter syntax: {part}"
            raise ValueError(msg)
        field, op, double_quoted, single_quoted, bare = match.groups()
        comparisons.append((field, op, _unquote(double_quoted, single_quoted, bare)))
    return comparisons


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    if not filter_query:
        return "", []

    conditions = []
    params = []
    for field, op, raw_value in split_comparisons(filter_query):
        sql_op = _get_sql_operator(op)
        if sql_op == "LIKE":
            conditions.append(f"{field} LIKE ? ESCAPE '\\'")
            params.append(f"%{_parse_value(raw_value, is_like=True)}%")
        else:
            conditions.append(f"{field} {sql_op} ?")
            params.append(_parse_value(raw_value))

    return " AND ".join(conditions), params


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
    if conn is None:
        return

    try:
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": str(path)})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


def _raise_database_error(operation: str, collection: str, error: Exception) -> NoReturn:
    if isinstance(error, aiosqlite.OperationalError) and "no such table" in str(error):
        logger.error("Table not found", extra={"collection": collection})
        msg = f"Table '{collection}' does not exist. Call init_db() first."
        raise DatabaseError(msg) from error
    logger.error(f"{operation}_failed", extra={"collection": collection, "error": str(error)})
    msg = f"Failed to {operation.replace('_', ' ')} in {collection}: {error}"
    raise DatabaseError(msg) from error


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        now = _now_iso()
        row = {"created": now, "updated": now, **data}
        columns = list(row.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_to_sql_value(row[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()
        record_id = cursor.lastrowid
    except Exception as e:
        _raise_database_error("create_record", collection, e)

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=str(record_id))


async def upsert_record(
    *,
    collection: str,
    data: dict[str, Any],
    conflict_fields: Sequence[str],
) -> dict[str, Any]:
    """Insert a record or update the row that already holds the same conflict key.

    Relies on a unique index over ``conflict_fields``. The existing row keeps its id.
    """
    try:
        _validate_collection_name(collection)
        for field in conflict_fields:
            _validate_collection_name(field)
        conn = await get_connection()

        now = _now_iso()
        row = {"created": now, "updated": now, **data}
        columns = list(row.keys())
        update_columns = [c for c in columns if c not in conflict_fields and c != "created"]

        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        conflict_str = ", ".join(conflict_fields)
        set_clause = ", ".join(f"{c} = excluded.{c}" for c in update_columns)
        values = [_to_sql_value(row[key]) for key in columns]

        query = (
            f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str}) "  # noqa: S608 - collection is validated
            f"ON CONFLICT ({conflict_str}) DO UPDATE SET {set_clause}"
        )
        await conn.execute(query, values)
        await conn.commit()
    except Exception as e:
        _raise_database_error("upsert_record", collection, e)

    key_filter = " && ".join(f'{field} = "{sanitize_param(data[field])}"' for field in conflict_fields)
    record = await get_first_record(collection=collection, filter_query=key_filter)
    if record is None:
        msg = f"Upserted record vanished from {collection}"
        raise DatabaseError(msg)

    logger.info("Upserted record", extra={"collection": collection, "record_id": record["id"]})
    return record


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (record_id,))
        row = await cursor.fetchone()
        columns = [description[0] for description in cursor.description]
    except Exception as e:
        _raise_database_error("get_record", collection, e)

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        row = {**data, "updated": _now_iso()}
        set_clause = ", ".join(f"{key} = ?" for key in row)
        values = [_to_sql_value(val) for val in row.values()]
        values.append(record_id)

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()
        rowcount = cursor.rowcount
    except Exception as e:
        _raise_database_error("update_record", collection, e)

    if rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (record_id,))
        await conn.commit()
        rowcount = cursor.rowcount
    except Exception as e:
        _raise_database_error("delete_record", collection, e)

    if rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination.

    ``sort`` takes a field name, prefixed with ``-`` for descending order.
    """
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause = ""
        params: list[Any] = []
        if filter_query:
            where_clause, params = parse_filter(filter_query)
            where_clause = f"WHERE {where_clause}"

        # Only allow: [-]column_name
        safe_sort = "id ASC"
        if sort:
            sort_pattern = re.match(r"^(-?)([A-Za-z_][A-Za-z0-9_]*)$", sort.strip())
            if sort_pattern:
                direction = "DESC" if sort_pattern.group(1) else "ASC"
                safe_sort = f"{sort_pattern.group(2)} {direction}, id ASC"
            else:
                logger.warning("Invalid sort parameter, using default", extra={"sort": sort})

        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {safe_sort} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        columns = [description[0] for description in cursor.description]
    except Exception as e:
        _raise_database_error("list_records", collection, e)

    records = [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """Page through list_records until every matching record is collected."""
    per_page = constants.DEFAULT_PER_PAGE_LIMIT
    page = 1
    records: list[dict[str, Any]] = []
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=per_page,
            filter_query=filter_query,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)

        if where_clause:
            query = f"SELECT * FROM {collection} WHERE {where_clause} ORDER BY id ASC LIMIT 1"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT * FROM {collection} ORDER BY id ASC LIMIT 1"  # noqa: S608 - collection is validated
            params = []

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
        columns = [description[0] for description in cursor.description]
    except Exception as e:
        _raise_database_error("get_first_record", collection, e)

    if row is None:
        return None

    return _convert_record_ids(dict(zip(columns, row, strict=True)))
