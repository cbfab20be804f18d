"""Async client for the Groq chat completions API."""

__version__ = "0.1.0"

from .config import load_config, DEFAULT_BASE_URL
from .client import Client
from .registry import ModelRegistry
from .streaming import ChatCompletionStream, parse_event_line

from .models import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    Message,
    Model,
    ResponseFormat,
)
from .errors import (
    APIError,
    ConfigurationError,
    DecodeError,
    GroqError,
    InvalidModelError,
    ModelVerificationError,
    RequestValidationError,
    StreamingNotSupportedError,
    StreamTruncatedError,
)
from .utils import is_valid_api_key, format_json_content
