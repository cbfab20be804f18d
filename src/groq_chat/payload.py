"""Outbound request assembly."""

import json
from typing import List, Optional, Sequence

from .models import ChatCompletionRequest, Message


def merge_system_prompts(
    system_prompts: Sequence[Message], messages: Sequence[Message]
) -> List[Message]:
    """Return system prompts followed by the caller's messages, as a new list."""
    return [*system_prompts, *messages]


def build_payload(
    request: ChatCompletionRequest,
    system_prompts: Sequence[Message] = (),
    stream: Optional[bool] = None,
) -> bytes:
    """
    Serialize a request to the JSON body sent to /chat/completions.

    The request object itself is left untouched; system prompts and the
    stream override are applied to a copy.

    Args:
        request: Caller-supplied request
        system_prompts: Client-level system messages, prepended in order
        stream: When given, replaces request.stream

    Returns:
        Request body as bytes
    """
    update = {}
    if system_prompts:
        update["messages"] = merge_system_prompts(system_prompts, request.messages)
    if stream is not None:
        update["stream"] = stream

    outgoing = request.model_copy(update=update) if update else request
    body = outgoing.model_dump(mode="json", exclude_none=True)
    return json.dumps(body).encode()
