# src/schemachat/context/engine.py
"""
Schema-driven chat context.

A :class:`ChatContext` interprets one provider schema. It owns the running
conversation (model, optional system message, ordered messages, parameters
and API key) and uses the schema to build request payloads, to validate
mutations and to pull text, content and error messages out of responses.
No provider-specific code lives here; every difference between providers is
expressed in their JSON schema.

A context is not safe for concurrent mutation. Use one per thread, e.g. via
``ContextFactory.get_thread_local_context``.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from ..config.models import ContextConfig
from ..exceptions import ExtractionError, SchemaError, ValidationError
from .json_path import (
    JsonPath,
    apply_template_values,
    get_flag,
    get_nested,
    parse_json_path,
    remove_nulls,
    resolve_path,
)
from .media import encode_image_to_base64, extract_base64, is_base64_encoded
from .validation import validate_message, validate_parameter

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_SCHEMA_FIELDS = ("provider", "api", "request_template", "message_format", "response_format")

ROLE_PLACEHOLDER = "<ROLE>"
TEXT_PLACEHOLDER = "<TEXT>"


def load_schema_file(schema_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read and parse a schema document.

    Raises:
        SchemaError: If the file cannot be opened, is not valid JSON, or is
            not a JSON object.
    """
    path = Path(schema_path)
    logger.debug(f"Loading schema from {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            schema = json.load(f)
    except OSError as e:
        raise SchemaError(f"Failed to open schema file: {path} ({e})", path=str(path))
    except json.JSONDecodeError as e:
        raise SchemaError(f"Failed to parse schema JSON in {path}: {e}", path=str(path))

    if not isinstance(schema, dict):
        raise SchemaError(f"Schema root must be a JSON object: {path}", path=str(path))
    return schema


class ChatContext:
    """
    Conversation state bound to one provider schema.

    Mutators return ``self`` so calls can be chained::

        ctx = ChatContext("schemas/claude.json")
        ctx.set_api_key(key).set_system_message("Be brief").add_user_message("Hi")
        payload = ctx.build_request()

    The schema document is treated as read-only and may be shared between
    contexts (the factory's cache does this); all templates are copied before
    being filled in.
    """

    def __init__(
        self,
        schema: Union[str, Path, Dict[str, Any]],
        config: Optional[ContextConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            schema: Path to a schema file or an already-parsed schema document.
            config: Behaviour switches and request defaults.
            logger: Logger for this context; defaults to the module logger.

        Raises:
            SchemaError: If the schema cannot be loaded or lacks required sections.
            ValidationError: If ``config.custom_parameters`` violate the schema.
        """
        self._logger = logger or logging.getLogger(__name__)
        self._config = config or ContextConfig()

        self._schema_path: Optional[Path] = None
        if isinstance(schema, dict):
            self._schema = schema
        else:
            self._schema_path = Path(schema)
            self._schema = load_schema_file(self._schema_path)

        self._model_name: str = ""
        self._system_message: Optional[str] = None
        self._messages: List[Dict[str, Any]] = []
        self._parameters: Dict[str, Any] = {}
        self._api_key: str = ""
        self._headers: Dict[str, str] = {}

        self._validate_schema()
        self._cache_schema_elements()
        self._build_headers()
        self._apply_defaults()

        self._logger.debug(
            f"ChatContext created for provider '{self._provider_name}' (endpoint: {self._endpoint})"
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _validate_schema(self) -> None:
        schema = self._schema
        path = str(self._schema_path) if self._schema_path else None

        for field in REQUIRED_SCHEMA_FIELDS:
            if field not in schema:
                raise SchemaError(f"Missing required schema field: {field}", path=path)

        if not isinstance(schema["api"], dict) or "endpoint" not in schema["api"]:
            raise SchemaError("Missing API endpoint in schema", path=path)

        message_format = schema["message_format"]
        if (
            not isinstance(message_format, dict)
            or "structure" not in message_format
            or "content_types" not in message_format
        ):
            raise SchemaError("Invalid message format in schema", path=path)
        if not isinstance(message_format["structure"], dict):
            raise SchemaError("message_format.structure must be an object", path=path)
        if not isinstance(schema["request_template"], dict):
            raise SchemaError("request_template must be an object", path=path)

        if get_nested(schema, "response_format", "success", "text_path") is None:
            raise SchemaError("Invalid response format in schema", path=path)

    def _cache_schema_elements(self) -> None:
        schema = self._schema

        provider_name = get_nested(schema, "provider", "name")
        if not isinstance(provider_name, str) or not provider_name:
            provider_name = self._schema_path.stem if self._schema_path else "unknown"
        self._provider_name: str = provider_name
        self._endpoint: str = str(schema["api"]["endpoint"])

        roles = schema.get("message_roles") or []
        self._valid_roles = frozenset(str(r) for r in roles)

        self._request_template: Dict[str, Any] = schema["request_template"]

        self._text_path: JsonPath = parse_json_path(schema["response_format"]["success"]["text_path"])
        error_path = get_nested(schema, "response_format", "error", "error_path")
        self._error_path: JsonPath = parse_json_path(error_path) if error_path is not None else []
        stream_path = get_nested(schema, "response_format", "stream", "text_path")
        self._stream_text_path: Optional[JsonPath] = (
            parse_json_path(stream_path) if stream_path is not None else None
        )

        message_format = schema["message_format"]
        self._message_structure: Dict[str, Any] = message_format["structure"]
        content_types = message_format["content_types"] or {}
        self._text_content_format: Dict[str, Any] = content_types.get("text") or {}
        self._image_content_format: Dict[str, Any] = content_types.get("image") or {}

    def _build_headers(self) -> None:
        headers: Dict[str, str] = {}
        header_section = self._schema.get("headers") or {}
        placeholder = get_nested(self._schema, "authentication", "key_placeholder")

        for name, value in (header_section.get("required") or {}).items():
            header_value = str(value)
            if isinstance(placeholder, str) and placeholder:
                header_value = header_value.replace(placeholder, self._api_key)
            headers[name] = header_value

        for name, value in (header_section.get("optional") or {}).items():
            if isinstance(value, str) and value:
                headers[name] = value

        self._headers = headers

    def _apply_defaults(self) -> None:
        default_model = get_nested(self._schema, "models", "default")
        if isinstance(default_model, str):
            self._model_name = default_model
        if self._config.custom_parameters:
            self.set_parameters(self._config.custom_parameters)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_model(self, model: str) -> "ChatContext":
        """
        Select the model sent in ``model``.

        Raises:
            ValidationError: If validation is enabled, the schema lists
                available models and ``model`` is not among them.
        """
        available = get_nested(self._schema, "models", "available")
        if self._config.enable_validation and isinstance(available, list) and model not in available:
            raise ValidationError(
                f"Model '{model}' is not supported by provider '{self._provider_name}'", field="model"
            )
        self._model_name = model
        return self

    def set_system_message(self, system_text: str) -> "ChatContext":
        if self._config.enable_validation and not self.supports_system_messages():
            raise ValidationError(
                f"Provider '{self._provider_name}' does not support system messages", field="system"
            )
        self._system_message = system_text
        return self

    def set_parameter(self, key: str, value: Any) -> "ChatContext":
        if self._config.enable_validation:
            validate_parameter(key, value, self._schema.get("parameters") or {})
        self._parameters[key] = copy.deepcopy(value)
        return self

    def set_parameters(self, params: Mapping[str, Any]) -> "ChatContext":
        """Set several parameters; nothing is stored unless all of them validate."""
        if self._config.enable_validation:
            specs = self._schema.get("parameters") or {}
            for key, value in params.items():
                validate_parameter(key, value, specs)
        for key, value in params.items():
            self._parameters[key] = copy.deepcopy(value)
        return self

    def set_api_key(self, api_key: str) -> "ChatContext":
        """
        Store the API key and rebuild headers with it substituted.

        Raises:
            ValidationError: If ``api_key`` is empty.
        """
        if not api_key:
            raise ValidationError("API key cannot be empty", field="api_key")
        self._api_key = api_key
        self._build_headers()
        return self

    def add_user_message(
        self, content: str, media_type: Optional[str] = None, media_data: Optional[str] = None
    ) -> "ChatContext":
        return self.add_message("user", content, media_type, media_data)

    def add_assistant_message(self, content: str) -> "ChatContext":
        return self.add_message("assistant", content)

    def add_message(
        self,
        role: str,
        content: str,
        media_type: Optional[str] = None,
        media_data: Optional[str] = None,
    ) -> "ChatContext":
        """
        Build a message from the schema templates and append it to the transcript.

        Args:
            role: Message role; must be a schema role when validation is on.
            content: Message text.
            media_type: MIME type of an attached image (e.g. ``image/png``).
            media_data: Base64 data, a base64 data URI, or a path to an image file.

        Raises:
            ValidationError: On an invalid role, or an image for a provider
                whose message format cannot carry one.
            RuntimeError: If an image path is missing or larger than 10 MB.
        """
        message = self.create_message(role, content, media_type, media_data)
        if self._config.enable_validation:
            validate_message(message, self._valid_roles)
        self._messages.append(message)
        return self

    # ------------------------------------------------------------------
    # Message construction
    # ------------------------------------------------------------------

    def create_message(
        self,
        role: str,
        content: str,
        media_type: Optional[str] = None,
        media_data: Optional[str] = None,
    ) -> Dict[str, Any]:
        has_media = media_type is not None and media_data is not None
        role_structure = self._schema["message_format"].get(f"{role}_structure")

        if role_structure is not None:
            message = copy.deepcopy(role_structure)
            if message.get("role", ROLE_PLACEHOLDER) == ROLE_PLACEHOLDER:
                message["role"] = role
            if message.get("content") == TEXT_PLACEHOLDER:
                message["content"] = content
            if has_media:
                if isinstance(message.get("content"), list):
                    message["content"] = [
                        self.create_text_content(content),
                        self.create_image_content(media_type, media_data),
                    ]
                else:
                    self._reject_media()
            return message

        message = copy.deepcopy(self._message_structure)
        message["role"] = role

        if isinstance(message.get("content"), list):
            parts = [self.create_text_content(content)]
            if has_media:
                if self._config.enable_validation and not self.supports_multimodal():
                    raise ValidationError(
                        f"Provider '{self._provider_name}' does not support multimodal content",
                        field="content",
                    )
                parts.append(self.create_image_content(media_type, media_data))
            message["content"] = parts
        elif "content" in message:
            if has_media:
                self._reject_media()
            message["content"] = content

        return message

    def _reject_media(self) -> None:
        # Plain-string content has nowhere to put an image block
        if self._config.enable_validation:
            raise ValidationError(
                f"Provider '{self._provider_name}' message format cannot carry image content",
                field="content",
            )
        self._logger.warning(
            f"Dropping image for provider '{self._provider_name}': message content is plain text"
        )

    def create_text_content(self, text: str) -> Dict[str, Any]:
        block = copy.deepcopy(self._text_content_format)
        block["text"] = text
        return block

    def create_image_content(self, media_type: str, data: str) -> Dict[str, Any]:
        """Fill the schema's image content template from base64 data, a data URI or a file path."""
        if is_base64_encoded(data):
            base64_data = extract_base64(data)
        else:
            base64_data = encode_image_to_base64(data)

        return apply_template_values(
            self._image_content_format,
            {
                "<IMAGE_URL>": f"data:{media_type};base64,{base64_data}",
                "<BASE64_DATA>": base64_data,
                "<MEDIA_TYPE>": media_type,
            },
        )

    # ------------------------------------------------------------------
    # Request / response
    # ------------------------------------------------------------------

    def build_request(self, streaming: bool = False) -> Dict[str, Any]:
        """
        Build the JSON request body for the current state.

        The body starts from the schema's ``request_template``; user
        parameters override template values, config defaults only fill
        ``max_tokens``/``temperature`` when still absent, and null-valued
        fields are stripped. An explicit ``stream`` parameter wins over
        ``streaming``.
        """
        request = copy.deepcopy(self._request_template)
        messages = copy.deepcopy(self._messages)

        if self._model_name:
            request["model"] = self._model_name

        if self._system_message is not None and self.supports_system_messages():
            if "system" in self._valid_roles:
                messages.insert(0, self.create_message("system", self._system_message))
            else:
                request["system"] = self._system_message

        request["messages"] = messages

        for key, value in self._parameters.items():
            request[key] = copy.deepcopy(value)

        if self._config.default_max_tokens is not None and "max_tokens" not in request:
            request["max_tokens"] = self._config.default_max_tokens
        if self._config.default_temperature is not None and "temperature" not in request:
            request["temperature"] = self._config.default_temperature

        if "stream" not in self._parameters:
            request["stream"] = bool(streaming and self.supports_streaming())

        return remove_nulls(request)

    def _extract_string(self, response: Any, path: JsonPath) -> str:
        try:
            text = resolve_path(response, path)
        except ExtractionError as e:
            raise ExtractionError(f"Failed to extract text response: {e}", path=path)
        if not isinstance(text, str):
            raise ExtractionError(
                f"Failed to extract text response: expected a string, got {type(text).__name__}",
                path=path,
            )
        return text

    def extract_text_response(self, response: Any) -> str:
        """
        Raises:
            ExtractionError: If ``text_path`` does not resolve to a string.
        """
        return self._extract_string(response, self._text_path)

    def extract_stream_text(self, event: Any) -> str:
        """
        Text of one streaming event, read from ``response_format.stream.text_path``
        when the schema declares one and from ``text_path`` otherwise.
        """
        return self._extract_string(event, self._stream_text_path or self._text_path)

    def extract_full_response(self, response: Any) -> Any:
        """Return the node at ``response_format.success.content_path``."""
        raw_path = get_nested(self._schema, "response_format", "success", "content_path")
        if raw_path is None:
            raise ExtractionError("Failed to extract full response: schema declares no content_path")
        content_path = parse_json_path(raw_path)
        try:
            return resolve_path(response, content_path)
        except ExtractionError as e:
            raise ExtractionError(f"Failed to extract full response: {e}", path=content_path)

    def extract_error(self, response: Any) -> str:
        """Best-effort error message; never raises."""
        if not self._error_path:
            return "Unknown error"
        try:
            error = resolve_path(response, self._error_path)
        except ExtractionError:
            return "Failed to parse error message"
        return error if isinstance(error, str) else "Failed to parse error message"

    # ------------------------------------------------------------------
    # Resets
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return to the post-construction state (API key and headers are kept)."""
        self.clear_user_messages()
        self.clear_system_message()
        self.clear_parameters()
        self._model_name = ""
        self._apply_defaults()

    def clear_user_messages(self) -> None:
        self._messages.clear()

    def clear_system_message(self) -> None:
        self._system_message = None

    def clear_parameters(self) -> None:
        self._parameters.clear()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def is_valid_request(self) -> bool:
        return not self.get_validation_errors()

    def get_validation_errors(self) -> List[str]:
        errors: List[str] = []
        if not self._model_name:
            errors.append("Model name is required")
        if not self._messages:
            errors.append("At least one message is required")

        required_role = get_nested(self._schema, "validation", "message_validation", "last_message_role")
        if isinstance(required_role, str) and self._messages:
            if self._messages[-1].get("role") != required_role:
                errors.append(f"Last message must be from: {required_role}")
        return errors

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_supported_models(self) -> List[str]:
        available = get_nested(self._schema, "models", "available")
        return [str(m) for m in available] if isinstance(available, list) else []

    def supports_multimodal(self) -> bool:
        return get_flag(self._schema, "multimodal", "supported")

    def supports_streaming(self) -> bool:
        return get_flag(self._schema, "features", "streaming")

    def supports_system_messages(self) -> bool:
        return get_flag(self._schema, "system_message", "supported")

    def get_headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def get_endpoint(self) -> str:
        return self._endpoint

    def get_provider_name(self) -> str:
        return self._provider_name

    def get_messages(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._messages)

    def get_valid_roles(self) -> frozenset:
        return self._valid_roles

    def get_schema(self) -> Dict[str, Any]:
        """The parsed schema document. Shared with other contexts: do not mutate."""
        return self._schema

    def get_model(self) -> str:
        return self._model_name

    def get_system_message(self) -> Optional[str]:
        return self._system_message

    def get_parameters(self) -> Dict[str, Any]:
        return copy.deepcopy(self._parameters)

    def get_api_key(self) -> str:
        return self._api_key

    def get_config(self) -> ContextConfig:
        return self._config

    def has_parameter(self, key: str) -> bool:
        return key in self._parameters

    def get_parameter(self, key: str) -> Any:
        """
        Raises:
            ValidationError: If the parameter has not been set.
        """
        if key not in self._parameters:
            raise ValidationError(f"Parameter '{key}' not found", field=key)
        return copy.deepcopy(self._parameters[key])

    def get_parameter_as(self, key: str, type_: Type[T]) -> T:
        """
        Return a parameter converted to ``type_``.

        Integers widen to ``float``; any other mismatch (including ``bool``
        where a number is requested) raises ValidationError.
        """
        value = self.get_parameter(key)
        if isinstance(value, bool) and type_ is not bool:
            raise ValidationError(f"Parameter '{key}' is a boolean, not {type_.__name__}", field=key)
        if type_ is float and isinstance(value, int):
            return float(value)  # type: ignore[return-value]
        if not isinstance(value, type_):
            raise ValidationError(
                f"Parameter '{key}' is {type(value).__name__}, not {type_.__name__}", field=key
            )
        return value

    def __repr__(self) -> str:
        return (
            f"ChatContext(provider={self._provider_name!r}, model={self._model_name!r}, "
            f"messages={len(self._messages)})"
        )
