# src/schemachat/context/media.py
"""Image payload helpers: base64 detection, file encoding and data-URI handling."""

import base64
import logging
import re
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10 MB

_BASE64_BODY = re.compile(r"^[A-Za-z0-9+/]*(={0,2})$")


def is_base64_encoded(data: str) -> bool:
    """
    Heuristically decide whether ``data`` is already base64.

    A ``data:...;base64,`` URI always qualifies. Otherwise, ignoring
    whitespace, the text must use the base64 alphabet, have a length that is
    a multiple of four, and end in zero or two ``=`` (never exactly one).
    """
    if not data:
        return False
    if data.startswith("data:") and ";base64," in data:
        return True

    compact = "".join(data.split())
    match = _BASE64_BODY.match(compact)
    if not compact or match is None:
        return False
    return len(compact) % 4 == 0 and len(match.group(1)) != 1


def extract_base64(data: str) -> str:
    """Strip a data-URI prefix, returning just the encoded payload."""
    if data.startswith("data:"):
        _, sep, payload = data.partition(",")
        if sep:
            return payload
    return data


def encode_image_to_base64(image_path: Union[str, Path]) -> str:
    """
    Read an image file and return its base64 encoding.

    Raises:
        RuntimeError: If the file does not exist or exceeds MAX_IMAGE_SIZE.
    """
    path = Path(image_path)
    if not path.is_file():
        raise RuntimeError(f"Image file does not exist: {image_path}")

    size = path.stat().st_size
    if size > MAX_IMAGE_SIZE:
        raise RuntimeError(f"Image file too large: {size} bytes (limit {MAX_IMAGE_SIZE})")

    logger.debug(f"Encoding image '{path}' ({size} bytes)")
    return base64.b64encode(path.read_bytes()).decode("ascii")
