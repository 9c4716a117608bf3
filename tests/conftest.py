# tests/conftest.py
"""
Shared fixtures: small provider schemas written to temporary directories.
"""

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from schemachat.context import ChatContext
from schemachat.transport import HttpResponse, Transport


BASE_SCHEMA: Dict[str, Any] = {
    "provider": {"name": "testprov", "display_name": "Test Provider", "version": "1.0"},
    "api": {"endpoint": "https://api.test.local/v1/chat", "method": "POST", "timeout": 15000},
    "authentication": {
        "type": "header",
        "key_name": "Authorization",
        "key_prefix": "Bearer ",
        "key_placeholder": "<API_KEY>",
    },
    "headers": {
        "required": {"Authorization": "Bearer <API_KEY>", "Content-Type": "application/json"},
        "optional": {"X-Org": None, "X-Empty": "", "X-Trace": "on"},
    },
    "models": {"available": ["m1", "m2"], "default": "m1"},
    "request_template": {
        "model": "m1",
        "messages": [],
        "max_tokens": 256,
        "stream": False,
        "stop": None,
    },
    "parameters": {
        "temperature": {"type": "float", "min": 0.0, "max": 2.0, "default": 1.0},
        "max_tokens": {"type": "integer", "min": 1, "max": 4096, "default": 256},
        "top_k": {"type": "integer", "min": 1, "default": None},
        "stop": {
            "type": ["string", "array"],
            "maxItems": 2,
            "items": {"type": "string", "maxLength": 5},
            "default": None,
        },
        "effort": {"type": "string", "enum": ["low", "high"]},
        "user": {"type": "string", "max_length": 8},
        "echo": {"type": "boolean"},
        "stream": {"type": "boolean", "default": False},
    },
    "message_roles": ["system", "user", "assistant"],
    "system_message": {"supported": True},
    "message_format": {
        "structure": {"role": "<ROLE>", "content": []},
        "system_structure": {"role": "system", "content": "<TEXT>"},
        "content_types": {
            "text": {"type": "text", "text": "<TEXT>"},
            "image": {"type": "image_url", "image_url": {"url": "<IMAGE_URL>"}},
        },
    },
    "response_format": {
        "success": {
            "text_path": ["choices", 0, "message", "content"],
            "content_path": ["choices", 0, "message"],
        },
        "error": {"error_path": ["error", "message"]},
        "stream": {"text_path": ["choices", 0, "delta", "content"]},
    },
    "multimodal": {"supported": True, "image_formats": ["image/png", "image/jpeg"]},
    "features": {"streaming": True, "vision": True},
    "validation": {"message_validation": {"last_message_role": "user"}},
}


@pytest.fixture
def schema_dict() -> Dict[str, Any]:
    """A fresh, mutable copy of the OpenAI-style test schema."""
    return copy.deepcopy(BASE_SCHEMA)


@pytest.fixture
def claude_style_schema(schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Schema where 'system' is not a message role and the system prompt is a top-level field."""
    schema_dict["provider"]["name"] = "claudeish"
    schema_dict["message_roles"] = ["user", "assistant"]
    del schema_dict["message_format"]["system_structure"]
    schema_dict["message_format"]["content_types"]["image"] = {
        "type": "image",
        "source": {"type": "base64", "media_type": "<MEDIA_TYPE>", "data": "<BASE64_DATA>"},
    }
    return schema_dict


@pytest.fixture
def text_only_schema() -> Dict[str, Any]:
    """Schema whose messages carry plain string content and no multimodal support."""
    schema_dict = copy.deepcopy(BASE_SCHEMA)
    schema_dict["provider"]["name"] = "plaintext"
    schema_dict["message_format"]["structure"] = {"role": "<ROLE>", "content": "<TEXT_CONTENT>"}
    del schema_dict["message_format"]["system_structure"]
    del schema_dict["message_format"]["content_types"]["image"]
    schema_dict["multimodal"] = {"supported": False}
    schema_dict["features"]["streaming"] = False
    return schema_dict


@pytest.fixture
def write_schema(tmp_path: Path) -> Callable[[str, Dict[str, Any]], Path]:
    """Write a schema as ``<name>.json`` under ``tmp_path/schemas`` and return its path."""
    directory = tmp_path / "schemas"
    directory.mkdir(exist_ok=True)

    def _write(name: str, schema: Dict[str, Any]) -> Path:
        path = directory / f"{name}.json"
        path.write_text(json.dumps(schema), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def context(schema_dict: Dict[str, Any]) -> ChatContext:
    return ChatContext(schema_dict)


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    """A tiny file with PNG magic bytes."""
    path = tmp_path / "pixel.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16)
    return path


class FakeTransport(Transport):
    """In-memory transport returning canned responses and recording requests."""

    def __init__(self, response=None, stream_chunks=None):
        self.response = response or HttpResponse(status_code=200, body="{}", success=True)
        self.stream_chunks = list(stream_chunks or [])
        self.headers = {}
        self.timeout = None
        self.requests = []
        self.closed = False

    def set_headers(self, headers):
        self.headers = dict(headers)

    def set_timeout(self, timeout):
        self.timeout = timeout

    def post(self, url, payload, cancel_check=None):
        self.requests.append((url, payload))
        return self.response

    def post_stream(self, url, payload, on_chunk, on_complete=None, cancel_check=None):
        self.requests.append((url, payload))
        if self.response.success:
            for chunk in self.stream_chunks:
                on_chunk(chunk)
        if on_complete is not None:
            on_complete(self.response)
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
