"""Small helpers shared by the pool-backed repositories."""
from typing import Any, Dict, Iterable, List, Optional, Tuple


def row_to_dict(row) -> Optional[Dict[str, Any]]:
    """Convert an asyncpg Record to a plain dict."""
    return dict(row) if row is not None else None


def rows_to_dicts(rows: Iterable) -> List[Dict[str, Any]]:
    return [dict(row) for row in rows]


def build_update(
    table: str,
    fields: Dict[str, Any],
    allowed: Iterable[str],
    key: str = 'id'
) -> Tuple[str, List[Any]]:
    """Build an UPDATE ... RETURNING * statement for the given fields.

    Column names are only taken from ``allowed``, values are always bound.

    Returns:
        Tuple of (query, params) where params[0] is the key value placeholder

    Raises:
        ValueError: If a field is not in ``allowed`` or no fields are given
    """
    allowed = set(allowed)
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if not fields:
        raise ValueError("No fields to update")

    assignments = []
    params: List[Any] = []
    for idx, (column, value) in enumerate(fields.items(), start=2):
        assignments.append(f"{column} = ${idx}")
        params.append(value)

    query = f'''
        UPDATE {table}
        SET {", ".join(assignments)}
        WHERE {key} = $1
        RETURNING *
    '''
    return query, params
