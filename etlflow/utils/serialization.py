"""
JSON serialization and content hashing for record sets.
"""

import hashlib
import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


def json_default(value: Any) -> Any:
    """json.dumps default= hook: ISO dates, floats for Decimal, str() otherwise."""
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, set | frozenset):
        return sorted(value, key=str)
    return str(value)


def to_json(data: Any, indent: int | None = None) -> str:
    return json.dumps(data, default=json_default, indent=indent, ensure_ascii=False)


def to_jsonable(data: Any) -> Any:
    """Round-trip through JSON so the result only holds JSON types."""
    return json.loads(to_json(data))


def compute_data_hash(records: list[dict[str, Any]]) -> str:
    """
    Calculate the MD5 content hash of a record set.

    Keys are sorted so that two runs producing the same records produce the
    same hash regardless of dict construction order; record order matters.

    Args:
        records: Successfully transformed records

    Returns:
        Hexadecimal digest string
    """
    data_str = json.dumps(records, sort_keys=True, default=json_default, ensure_ascii=False)
    return hashlib.md5(data_str.encode("utf-8")).hexdigest()
