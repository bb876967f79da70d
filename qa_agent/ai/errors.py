"""Classification of AI service failures.

Failures reach us in many shapes: provider error payloads (``{"error": {...}}``),
SDK exceptions carrying a parsed response body, exceptions whose message is a
JSON document, or plain exceptions with free text. ``extract_error`` reduces
any of them to one of three variants, and ``classify_error`` turns the variant
into a user-facing message plus a retry signal for the retry gateway.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
UNAUTHENTICATED = "UNAUTHENTICATED"

# Anthropic error ``type`` values mapped onto the status vocabulary used below.
_ERROR_TYPE_STATUS = {
    "rate_limit_error": RESOURCE_EXHAUSTED,
    "overloaded_error": RESOURCE_EXHAUSTED,
    "authentication_error": UNAUTHENTICATED,
}

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred in the AI service."


class ErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    INVALID_CREDENTIAL = "invalid_credential"
    SAFETY_BLOCK = "safety_block"
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_PRECONDITION = "missing_precondition"
    API_ERROR = "api_error"
    UNKNOWN = "unknown"


class AIServiceError(Exception):
    """The single error type surfaced to callers of the AI service."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN):
        super().__init__(message)
        self.message = message
        self.kind = kind


@dataclass(frozen=True)
class StructuredApiError:
    message: str
    status: Optional[str] = None


@dataclass(frozen=True)
class PlainMessage:
    text: str


@dataclass(frozen=True)
class UnknownError:
    text: str = UNKNOWN_ERROR_MESSAGE


ErrorShape = Union[StructuredApiError, PlainMessage, UnknownError]


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    retryable: bool = False


def _field(obj: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an attribute."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _message_of(error: Any) -> Any:
    """Message text from a mapping key, a ``message`` attribute or ``str(exc)``."""
    message = _field(error, "message")
    if message is None and isinstance(error, BaseException):
        message = str(error)
    return message


def _record_from_mapping(record: Mapping) -> StructuredApiError | None:
    message = record.get("message")
    if not isinstance(message, str):
        return None
    status = record.get("status")
    if not isinstance(status, str):
        status = _ERROR_TYPE_STATUS.get(record.get("type"))
    return StructuredApiError(message=message, status=status)


def _from_nested_error(error: Any) -> StructuredApiError | None:
    nested = _field(error, "error")
    if isinstance(nested, Mapping):
        return _record_from_mapping(nested)
    return None


def _from_response_body(error: Any) -> StructuredApiError | None:
    body = getattr(error, "body", None)
    if isinstance(body, Mapping) and isinstance(body.get("error"), Mapping):
        return _record_from_mapping(body["error"])
    return None


def _from_json_message(error: Any) -> StructuredApiError | None:
    message = _message_of(error)
    if not isinstance(message, str):
        return None
    try:
        parsed = json.loads(message)
    except (json.JSONDecodeError, ValueError):
        return None
    if isinstance(parsed, Mapping) and isinstance(parsed.get("error"), Mapping):
        return _record_from_mapping(parsed["error"])
    return None


_EXTRACTION_STRATEGIES: list[Callable[[Any], Optional[StructuredApiError]]] = [
    _from_nested_error,
    _from_response_body,
    _from_json_message,
]


def extract_error(error: Any) -> ErrorShape:
    """Reduce an arbitrary failure value to a tagged error shape."""
    if error is None:
        return UnknownError()
    for strategy in _EXTRACTION_STRATEGIES:
        record = strategy(error)
        if record is not None:
            return record

    if isinstance(error, str):
        return PlainMessage(error) if error else UnknownError()
    message = _message_of(error)
    if isinstance(message, str) and message:
        return PlainMessage(message)
    return UnknownError()


def _classify_structured(record: StructuredApiError) -> ClassifiedError:
    lower = record.message.lower()
    if record.status == RESOURCE_EXHAUSTED and "quota" in lower:
        return ClassifiedError(
            ErrorKind.QUOTA_EXCEEDED,
            f"API Quota Exceeded: {record.message} This is a hard limit based on your plan. "
            "Please check your AI provider plan and billing details.",
        )
    if record.status == RESOURCE_EXHAUSTED:
        return ClassifiedError(
            ErrorKind.RATE_LIMITED,
            f"API Rate Limit Reached: {record.message} The application is sending requests "
            "too quickly. Please wait a moment and try again.",
            retryable=True,
        )
    if "api key not valid" in lower or record.status == UNAUTHENTICATED:
        return ClassifiedError(
            ErrorKind.INVALID_CREDENTIAL,
            f"Invalid API Key: {record.message}. Please check your API key is correct and enabled.",
        )
    return ClassifiedError(ErrorKind.API_ERROR, f"API Error: {record.message}")


def _classify_text(text: str) -> ClassifiedError:
    lower = text.lower()
    if "quota" in lower:
        return ClassifiedError(
            ErrorKind.QUOTA_EXCEEDED,
            "API Quota Exceeded. Please check your plan and billing details.",
        )
    if "resource_exhausted" in lower or "429" in lower:
        return ClassifiedError(
            ErrorKind.RATE_LIMITED,
            "API rate limit reached. The app attempted to retry but was unsuccessful. "
            "Please wait a few minutes before trying again.",
            retryable=True,
        )
    if "api key not valid" in lower:
        return ClassifiedError(
            ErrorKind.INVALID_CREDENTIAL,
            "Invalid API Key. Please ensure it is set correctly.",
        )
    if "safety" in lower:
        return ClassifiedError(
            ErrorKind.SAFETY_BLOCK,
            "The request was blocked for safety reasons. Please adjust your input.",
        )
    return ClassifiedError(ErrorKind.API_ERROR, text)


def classify_error(error: Any) -> ClassifiedError:
    """Produce a user-facing message and retry signal for any failure value."""
    if isinstance(error, AIServiceError):
        return ClassifiedError(error.kind, error.message)

    shape = extract_error(error)
    if isinstance(shape, StructuredApiError):
        return _classify_structured(shape)
    if isinstance(shape, PlainMessage):
        return _classify_text(shape.text)
    return ClassifiedError(ErrorKind.UNKNOWN, shape.text)


def is_retryable(error: Any) -> bool:
    return classify_error(error).retryable


def to_service_error(error: BaseException) -> AIServiceError:
    """Convert a caught failure into an ``AIServiceError`` for the caller."""
    if isinstance(error, AIServiceError):
        return error
    classified = classify_error(error)
    logger.error("AI service error (%s): %s", classified.kind.value, error)
    return AIServiceError(classified.message, classified.kind)
