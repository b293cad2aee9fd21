"""Error classification for the agent execution layer.

Failures may come from the model client, a tool, or anything the tools
touch, so classification looks only at the lowercased error message.
Keywords are checked in priority order and the first match wins:

    tool/function     -> TOOL_CALLING_ERROR
    context/token     -> CONTEXT_OVERFLOW
    memory/database   -> MEMORY_ERROR
    rate limit/quota  -> API_RATE_LIMIT
    timeout           -> TIMEOUT_ERROR
    api key           -> AUTHENTICATION_ERROR
    safety            -> SAFETY_FILTER_ERROR
    (anything else)   -> UNKNOWN_ERROR
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Closed set of failure causes."""

    TOOL_CALLING_ERROR = "TOOL_CALLING_ERROR"
    CONTEXT_OVERFLOW = "CONTEXT_OVERFLOW"
    MEMORY_ERROR = "MEMORY_ERROR"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    SAFETY_FILTER_ERROR = "SAFETY_FILTER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class ErrorResponse:
    """User-facing outcome for an error kind.

    Attributes:
        user_message: Short, non-technical message for the end user
        http_status: Status code for the surrounding API layer
        retryable: Whether retrying the turn can succeed

    """

    user_message: str
    http_status: int
    retryable: bool

    def to_payload(self) -> dict[str, object]:
        return {"error": self.user_message, "status": self.http_status, "retry": self.retryable}


ERROR_RESPONSES: dict[ErrorKind, ErrorResponse] = {
    ErrorKind.TOOL_CALLING_ERROR: ErrorResponse(
        "I'm having trouble processing your request with the available tools. "
        "Let me try a different approach.",
        500,
        True,
    ),
    ErrorKind.CONTEXT_OVERFLOW: ErrorResponse(
        "The conversation context is too large. Let me summarize and continue.",
        413,
        True,
    ),
    ErrorKind.MEMORY_ERROR: ErrorResponse(
        "There's an issue with the chat memory. Let me continue without previous context.",
        500,
        True,
    ),
    ErrorKind.API_RATE_LIMIT: ErrorResponse(
        "I'm getting too many requests right now. Please wait a moment and try again.",
        429,
        False,
    ),
    ErrorKind.TIMEOUT_ERROR: ErrorResponse(
        "The request is taking too long. Please try again.",
        408,
        True,
    ),
    ErrorKind.AUTHENTICATION_ERROR: ErrorResponse(
        "There's an issue with the AI service configuration. Please contact support.",
        401,
        False,
    ),
    ErrorKind.SAFETY_FILTER_ERROR: ErrorResponse(
        "I can't provide a response to that message. Please try rephrasing your question.",
        400,
        False,
    ),
    ErrorKind.UNKNOWN_ERROR: ErrorResponse(
        "I'm having trouble connecting right now. Let me try again!",
        500,
        True,
    ),
}


@dataclass
class ClassifiedError:
    """Classified error with the response it maps to.

    Attributes:
        kind: Classification of the error
        original_error: The original exception (None if classified from text)
        message: Error message used for classification
        response: Fixed user-facing response for the kind

    """

    kind: ErrorKind
    original_error: BaseException | None
    message: str
    response: ErrorResponse

    @property
    def is_retryable(self) -> bool:
        return self.response.retryable


class ErrorClassifier:
    """Maps runtime errors to ErrorKind by message keywords.

    Example:
        classifier = ErrorClassifier()
        classified = classifier.classify(RuntimeError("rate limit exceeded"))
        if not classified.is_retryable:
            return classified.response.to_payload()

    """

    # Evaluated top to bottom; first match wins
    KEYWORDS: list[tuple[ErrorKind, tuple[str, ...]]] = [
        (ErrorKind.TOOL_CALLING_ERROR, ("tool", "function")),
        (ErrorKind.CONTEXT_OVERFLOW, ("context", "token")),
        (ErrorKind.MEMORY_ERROR, ("memory", "database")),
        (ErrorKind.API_RATE_LIMIT, ("rate limit", "quota")),
        (ErrorKind.TIMEOUT_ERROR, ("timeout",)),
        (ErrorKind.AUTHENTICATION_ERROR, ("api key",)),
        (ErrorKind.SAFETY_FILTER_ERROR, ("safety",)),
    ]

    def categorize(self, error: BaseException | str | None) -> ErrorKind:
        """Return the ErrorKind for an error or a raw error message."""
        message = _message_of(error).lower()
        if not message:
            return ErrorKind.UNKNOWN_ERROR
        for kind, keywords in self.KEYWORDS:
            if any(keyword in message for keyword in keywords):
                return kind
        return ErrorKind.UNKNOWN_ERROR

    def classify(self, error: BaseException | str) -> ClassifiedError:
        """Classify an error and attach its fixed response triple.

        Args:
            error: The exception (or its message) to classify

        Returns:
            ClassifiedError with kind, message and response

        """
        kind = self.categorize(error)
        return ClassifiedError(
            kind=kind,
            original_error=error if isinstance(error, BaseException) else None,
            message=_message_of(error),
            response=ERROR_RESPONSES[kind],
        )

    def handle_error(self, error: BaseException, turn_id: str | None = None) -> ErrorResponse:
        """Log the full error and return only what the user may see."""
        classified = self.classify(error)
        logger.error(
            "turn=%s %s: %s",
            turn_id or "-",
            classified.kind.value,
            classified.message,
            exc_info=(type(error), error, error.__traceback__),
        )
        return classified.response


def _message_of(error: BaseException | str | None) -> str:
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    return str(error) or type(error).__name__


_default_classifier = ErrorClassifier()


def categorize_error(error: BaseException | str | None) -> ErrorKind:
    """Classify with the default classifier."""
    return _default_classifier.categorize(error)
