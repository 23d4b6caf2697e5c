"""Field-level diffs and JSON snapshots for audit entries"""

import json
from typing import Any, Iterable, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect


def snapshot(entity: Any, exclude: Iterable[str] = ()) -> dict[str, Any]:
    """JSON-safe dict of a mapped row's column values"""
    skipped = set(exclude)
    mapper = inspect(entity).mapper
    values = {
        attr.key: getattr(entity, attr.key)
        for attr in mapper.column_attrs
        if attr.key not in skipped
    }
    return jsonable_encoder(values)


def _serialized(value: Any) -> str:
    return json.dumps(value, default=str)


def compute_changes(
    old_value: Optional[dict[str, Any]],
    new_value: Optional[dict[str, Any]],
) -> Optional[dict[str, dict[str, Any]]]:
    """Map of changed keys to {"from", "to"}.

    Best effort: values are compared by their JSON serialisation, so two
    nested objects holding the same data with a different key order, or
    lists in a different order, count as changed.
    """
    if old_value is None or new_value is None:
        return None

    changes: dict[str, dict[str, Any]] = {}
    for key in {**old_value, **new_value}:
        before = old_value.get(key)
        after = new_value.get(key)
        if _serialized(before) != _serialized(after):
            changes[key] = {"from": before, "to": after}
    return changes
