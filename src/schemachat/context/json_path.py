# src/schemachat/context/json_path.py
"""
Generic helpers over parsed JSON values (dict/list/str/number/bool/None).

Response paths in provider schemas are arrays mixing object keys (strings)
and array indices (integers), e.g. ``["choices", 0, "message", "content"]``.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence, Union

from ..exceptions import ExtractionError, SchemaError

logger = logging.getLogger(__name__)

PathSegment = Union[str, int]
JsonPath = List[PathSegment]


def parse_json_path(raw_path: Any) -> JsonPath:
    """
    Normalize a schema path declaration into a list of segments.

    Digit-only strings (``"0"``) are read as array indices, the same as
    JSON integers.

    Raises:
        SchemaError: If the declaration is not an array of strings/integers.
    """
    if not isinstance(raw_path, list):
        raise SchemaError(f"JSON path must be an array, got {type(raw_path).__name__}")

    path: JsonPath = []
    for segment in raw_path:
        if isinstance(segment, bool) or not isinstance(segment, (str, int)):
            raise SchemaError(f"Invalid JSON path segment {segment!r} in {raw_path!r}")
        if isinstance(segment, str) and segment.isascii() and segment.isdigit():
            segment = int(segment)
        path.append(segment)
    return path


def resolve_path(data: Any, path: Sequence[PathSegment]) -> Any:
    """
    Walk ``path`` through ``data`` and return the value found.

    Raises:
        ExtractionError: On a missing key, an out-of-range index, or a
            segment whose kind does not match the current node.
    """
    current = data
    for segment in path:
        if isinstance(segment, int) and not isinstance(segment, bool):
            if not isinstance(current, list) or not 0 <= segment < len(current):
                raise ExtractionError(f"Invalid array access: index {segment}", path=list(path))
            current = current[segment]
        else:
            if not isinstance(current, dict) or segment not in current:
                raise ExtractionError(f"Invalid object access: key {segment}", path=list(path))
            current = current[segment]
    return current


def remove_nulls(value: Any) -> Any:
    """
    Return a copy of ``value`` with every ``None``-valued object member removed,
    descending through nested objects and arrays. Array elements themselves are
    never dropped.
    """
    if isinstance(value, dict):
        return {k: remove_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [remove_nulls(item) for item in value]
    return value


def apply_template_values(value: Any, replacements: Mapping[str, str]) -> Any:
    """Return a copy of ``value`` with every placeholder replaced in all string leaves."""
    if isinstance(value, str):
        for placeholder, replacement in replacements.items():
            value = value.replace(placeholder, replacement)
        return value
    if isinstance(value, dict):
        return {k: apply_template_values(v, replacements) for k, v in value.items()}
    if isinstance(value, list):
        return [apply_template_values(item, replacements) for item in value]
    return value


def get_nested(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Lenient lookup used for optional schema sections: ``get_nested(schema, "features", "streaming")``."""
    current: Any = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def get_flag(data: Dict[str, Any], section: str, flag: str) -> bool:
    """Boolean capability flag; anything but a JSON boolean ``true`` counts as unsupported."""
    value = get_nested(data, section, flag)
    return value if isinstance(value, bool) else False
