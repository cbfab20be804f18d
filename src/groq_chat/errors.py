"""Exception types raised by the Groq chat client."""

from typing import Optional


class GroqError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(GroqError):
    """Missing or malformed client configuration, e.g. the API key."""


class RequestValidationError(GroqError):
    """The request was rejected locally before anything was sent."""


class InvalidModelError(RequestValidationError):
    def __init__(self, model: str):
        super().__init__(f"invalid model: {model}")
        self.model = model


class ModelVerificationError(RequestValidationError):
    """The model list could not be fetched, so validity is unknown."""

    def __init__(self, model: str, reason: Exception):
        super().__init__(f"error validating model {model}: {reason}")
        self.model = model
        self.reason = reason


class StreamingNotSupportedError(RequestValidationError):
    def __init__(self):
        super().__init__(
            "streaming is not supported in this method, "
            "use create_chat_completion_stream instead"
        )


class APIError(GroqError):
    """Non-200 response from the API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"API request failed with status code {status_code}: {body}"
        )
        self.status_code = status_code
        self.body = body


class DecodeError(GroqError):
    """A response body, stream frame or JSON-mode content was not valid JSON."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class StreamTruncatedError(DecodeError):
    """The stream ended without the [DONE] sentinel (strict mode only)."""
