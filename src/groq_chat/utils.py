"""Utility functions for the Groq chat client."""

import json
import re

from .errors import DecodeError

API_KEY_PATTERN = re.compile(r"^gsk_[a-zA-Z0-9]{32}$")


def is_valid_api_key(api_key: str) -> bool:
    """Check that an API key has the gsk_ + 32 alphanumerics shape."""
    return bool(api_key) and API_KEY_PATTERN.match(api_key) is not None


def format_json_content(content: str) -> str:
    """
    Re-serialize JSON text with two-space indentation and sorted keys.

    Applying it to its own output returns the same string.

    Args:
        content: JSON text as produced by the model

    Returns:
        Canonically formatted JSON text

    Raises:
        DecodeError: If content is not valid JSON
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise DecodeError(f"error parsing JSON content: {e}", raw=content) from e
    return json.dumps(parsed, indent=2, sort_keys=True, ensure_ascii=False)
