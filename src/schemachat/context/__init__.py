# src/schemachat/context/__init__.py
"""
Schema-driven context engine and its JSON helpers.
"""

from .engine import REQUIRED_SCHEMA_FIELDS, ChatContext, load_schema_file
from .json_path import apply_template_values, parse_json_path, remove_nulls, resolve_path
from .media import MAX_IMAGE_SIZE, encode_image_to_base64, is_base64_encoded
from .validation import validate_message, validate_parameter

__all__ = [
    "ChatContext",
    "MAX_IMAGE_SIZE",
    "REQUIRED_SCHEMA_FIELDS",
    "apply_template_values",
    "encode_image_to_base64",
    "is_base64_encoded",
    "load_schema_file",
    "parse_json_path",
    "remove_nulls",
    "resolve_path",
    "validate_message",
    "validate_parameter",
]
