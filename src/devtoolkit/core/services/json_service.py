import json
from typing import Any


def to_json(data: Any, indent: int = 2) -> str:
    """
    Converts a payload (dicts, lists, report payloads) to pretty-printed JSON.
    Datetimes and other non-JSON values are written with str().
    """
    return json.dumps(data, ensure_ascii=False, indent=indent, default=str)
