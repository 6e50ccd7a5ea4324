"""
Helpers shared by the request, card and log stores.

- UTC timestamps
- SELECT building from optional equality filters
- sqlite3.Row -> camelCase API document
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple


def now() -> str:
    """UTC timestamp in ISO-8601 form, used for every stored time."""
    return datetime.now(timezone.utc).isoformat()


def build_where_clause(
    filters: Dict[str, Any],
    allowed_columns: Optional[set] = None
) -> Tuple[str, List[Any]]:
    """
    Turn equality filters into SQL conditions.

    Filters whose value is None are ignored, as are columns outside
    allowed_columns when a whitelist is given.

    Returns:
        (" AND col = ? ...", params), or ("", []) when nothing applies

    Example:
        build_where_clause({'action': 'assigned', 'card_number': None})
        # (" AND action = ?", ['assigned'])
    """
    active = [
        (column, value) for column, value in filters.items()
        if value is not None and (not allowed_columns or column in allowed_columns)
    ]
    if not active:
        return "", []

    conditions = "".join(f" AND {column} = ?" for column, _ in active)
    return conditions, [value for _, value in active]


def build_list_query(
    table: str,
    filters: Optional[Dict[str, Any]] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
    allowed_columns: Optional[set] = None
) -> Tuple[str, List[Any]]:
    """
    SELECT * over a store table with optional filters, ordering and limit.

    Example:
        build_list_query('requests', {'status': 'pending'}, order_by='created_at DESC')
    """
    conditions, params = build_where_clause(filters or {}, allowed_columns)
    sql = f"SELECT * FROM {table} WHERE 1=1{conditions}"

    if order_by:
        sql += f" ORDER BY {order_by}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return sql, params


def to_camel(name: str) -> str:
    """snake_case column name -> camelCase document key."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def row_to_document(row, booleans: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """
    Convert a sqlite3.Row into the JSON document shape the API returns.

    Args:
        row: Database row, may be None
        booleans: Columns stored as 0/1 integers to expose as bools

    Returns:
        Dict with camelCase keys, or None when row is None
    """
    if row is None:
        return None
    flags = set(booleans)
    doc = {}
    for key in row.keys():
        value = row[key]
        if key in flags:
            value = bool(value)
        doc[to_camel(key)] = value
    return doc


def rows_to_documents(rows, booleans: Iterable[str] = ()) -> List[Dict[str, Any]]:
    """Convert multiple database rows to API documents."""
    flags = tuple(booleans)
    return [row_to_document(row, flags) for row in rows]
