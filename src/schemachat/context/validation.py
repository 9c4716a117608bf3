# src/schemachat/context/validation.py
"""
Schema-driven parameter and message validation.

Parameter constraints come from the schema's ``parameters`` section, e.g.::

    "temperature": {"type": "float", "min": 0.0, "max": 2.0, "default": 1.0}
    "stop": {"type": ["string", "array"], "maxItems": 4,
             "items": {"type": "string", "maxLength": 64}, "default": null}

Parameters absent from that section are accepted unchecked.
"""

import logging
from typing import Any, Collection, Dict, Mapping

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "array": lambda v: isinstance(v, list),
    "integer": _is_integer,
    "float": _is_number,
    "number": _is_number,
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
}

_TYPE_NAMES = {
    "integer": "an integer",
    "float": "a number",
    "number": "a number",
    "string": "a string",
    "boolean": "a boolean",
    "array": "an array",
    "object": "an object",
}


def matches_type(value: Any, type_name: Any) -> bool:
    """
    True if ``value`` has the schema type ``type_name``.

    ``type_name`` may also be a list of names, matched if any one matches.
    Unknown or malformed type declarations never match.
    """
    if isinstance(type_name, list):
        return any(matches_type(value, t) for t in type_name)
    if not isinstance(type_name, str):
        return False
    check = _TYPE_CHECKS.get(type_name)
    return bool(check and check(value))


def json_equal(a: Any, b: Any) -> bool:
    """JSON value equality: booleans never equal numbers, ints and floats compare by value."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


def _validate_multi_type(key: str, value: Any, spec: Mapping[str, Any]) -> None:
    allowed = [str(t) for t in spec["type"]]
    if not any(matches_type(value, t) for t in allowed):
        raise ValidationError(
            f"Parameter '{key}' must be one of types: [{', '.join(allowed)}]", field=key
        )

    if not isinstance(value, list):
        return

    max_items = spec.get("maxItems")
    if _is_integer(max_items) and len(value) > max_items:
        raise ValidationError(
            f"Parameter '{key}' array exceeds maximum of {max_items} items", field=key
        )

    items_spec = spec.get("items")
    if not isinstance(items_spec, dict):
        return
    item_type = items_spec.get("type")
    if item_type is not None:
        for item in value:
            if not matches_type(item, item_type):
                raise ValidationError(
                    f"Parameter '{key}' array items must be of type {item_type}", field=key
                )
    max_length = items_spec.get("maxLength")
    if _is_integer(max_length):
        for item in value:
            if isinstance(item, str) and len(item) > max_length:
                raise ValidationError(
                    f"Parameter '{key}' array item exceeds maximum length of {max_length}",
                    field=key,
                )


def validate_parameter(key: str, value: Any, parameter_specs: Mapping[str, Any]) -> None:
    """
    Check one parameter against its schema declaration.

    Args:
        key: Parameter name as sent in the request body.
        value: Candidate JSON value.
        parameter_specs: The schema's ``parameters`` section (may be empty).

    Raises:
        ValidationError: Naming the parameter and the violated constraint.
    """
    spec = parameter_specs.get(key) if isinstance(parameter_specs, dict) else None

    if value is None:
        if isinstance(spec, dict) and "default" in spec and spec["default"] is None:
            return
        raise ValidationError(f"Parameter '{key}' cannot be null", field=key)

    if not isinstance(spec, dict):
        return

    declared_type = spec.get("type")
    if isinstance(declared_type, list):
        _validate_multi_type(key, value, spec)
        return

    max_length = spec.get("max_length")
    if isinstance(value, str) and _is_integer(max_length) and len(value) > max_length:
        raise ValidationError(f"Parameter '{key}' exceeds maximum length of {max_length}", field=key)

    enum = spec.get("enum")
    if isinstance(enum, list) and not any(json_equal(value, allowed) for allowed in enum):
        raise ValidationError(
            f"Parameter '{key}' has invalid value {value!r}; allowed: {enum}", field=key
        )

    if isinstance(declared_type, str) and declared_type in _TYPE_CHECKS:
        if not matches_type(value, declared_type):
            raise ValidationError(
                f"Parameter '{key}' must be {_TYPE_NAMES[declared_type]}", field=key
            )

    if _is_number(value):
        minimum = spec.get("min")
        if _is_number(minimum) and value < minimum:
            raise ValidationError(f"Parameter '{key}' must be >= {minimum}", field=key)
        maximum = spec.get("max")
        if _is_number(maximum) and value > maximum:
            raise ValidationError(f"Parameter '{key}' must be <= {maximum}", field=key)


def validate_message(message: Dict[str, Any], valid_roles: Collection[str]) -> None:
    """
    Require ``role`` and ``content`` and, when the schema lists roles, a known role.

    Raises:
        ValidationError: If the message is incomplete or its role is not allowed.
    """
    if "role" not in message or "content" not in message:
        raise ValidationError("Message must contain 'role' and 'content' fields", field="message")

    role = message["role"]
    if valid_roles and role not in valid_roles:
        raise ValidationError(f"Invalid message role: {role}", field="role")
