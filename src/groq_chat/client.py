"""HTTP client for the Groq chat completions API."""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from .config import (
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_DURATION,
    DEFAULT_STREAM_BUFFER_SIZE,
    DEFAULT_TIMEOUT,
)
from .errors import (
    APIError,
    ConfigurationError,
    DecodeError,
    GroqError,
    InvalidModelError,
    ModelVerificationError,
    StreamingNotSupportedError,
)
from .models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    Message,
    Model,
    ModelList,
)
from .payload import build_payload
from .registry import ModelRegistry
from .streaming import ChatCompletionStream
from .utils import format_json_content, is_valid_api_key

logger = logging.getLogger(__name__)


class Client:
    """
    Client for the Groq OpenAI-compatible API.

    Args:
        api_key: Groq API key, sent as a Bearer token
        base_url: API root, without the trailing slash
        timeout: HTTP timeout in seconds
        registry: Model cache to use; pass the same instance to several
            clients to share it. A private one is created when omitted
        http_client: Optional preconfigured httpx.AsyncClient. It is not
            closed by ``aclose()``
        stream_buffer_size: Number of decoded chunks a stream may hold
            before the background read waits for the consumer; must be at
            least 1
        strict_stream_termination: Raise StreamTruncatedError when a stream
            ends without the [DONE] sentinel
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        registry: Optional[ModelRegistry] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        stream_buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE,
        strict_stream_termination: bool = False,
    ):
        if not api_key:
            raise ConfigurationError("API key is required")
        if stream_buffer_size < 1:
            raise ConfigurationError("stream_buffer_size must be at least 1")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.registry = registry if registry is not None else ModelRegistry()
        self.stream_buffer_size = stream_buffer_size
        self.strict_stream_termination = strict_stream_termination
        self._system_prompts: List[Message] = []
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(
        cls, config: Dict[str, Any], registry: Optional[ModelRegistry] = None, **kwargs
    ) -> "Client":
        """
        Build a client from a ``load_config()`` dictionary.

        Raises:
            ConfigurationError: If the API key is missing or malformed
        """
        api_key = config.get("api_key", "")
        if not api_key:
            raise ConfigurationError("GROQ_API_KEY is not set")
        if not is_valid_api_key(api_key):
            raise ConfigurationError("GROQ_API_KEY is not a valid Groq API key")

        settings = config.get("settings") or {}
        if registry is None:
            registry = ModelRegistry(
                cache_duration=settings.get("model_cache_ttl", DEFAULT_CACHE_DURATION)
            )
        client = cls(
            api_key,
            base_url=config.get("base_url") or DEFAULT_BASE_URL,
            timeout=settings.get("timeout", DEFAULT_TIMEOUT),
            registry=registry,
            stream_buffer_size=settings.get(
                "stream_buffer_size", DEFAULT_STREAM_BUFFER_SIZE
            ),
            strict_stream_termination=settings.get("strict_stream_termination", False),
            **kwargs,
        )
        for prompt in config.get("system_prompts") or []:
            client.add_system_prompt(prompt)
        return client

    def set_base_url(self, url: str) -> None:
        self.base_url = url.rstrip("/")

    def set_timeout(self, timeout: float) -> None:
        """
        Change the HTTP timeout. An injected http_client belongs to the
        caller and keeps its own timeout.
        """
        if not self._owns_http_client:
            logger.warning("set_timeout ignored: http_client was supplied by the caller")
            return
        self.http_client.timeout = httpx.Timeout(timeout)

    @property
    def system_prompts(self) -> Tuple[Message, ...]:
        return tuple(self._system_prompts)

    def add_system_prompt(self, content: str) -> None:
        """Add a system message sent ahead of every conversation."""
        self._system_prompts.append(Message(role="system", content=content))

    def clear_system_prompts(self) -> None:
        self._system_prompts = []

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _get(self, path: str) -> str:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s", url)
        response = await self.http_client.get(url, headers=self._headers())
        if response.status_code != 200:
            raise APIError(response.status_code, response.text)
        return response.text

    async def list_models(self) -> List[Model]:
        """
        Fetch all models from the API and refresh the model cache with them.
        """
        models = await self._fetch_models()
        self.registry.replace(models)
        return models

    async def _fetch_models(self) -> List[Model]:
        body = await self._get("/models")
        try:
            data = json.loads(body)
            # Accept both the list envelope and a bare array of descriptors.
            if isinstance(data, list):
                return [Model.model_validate(item) for item in data]
            return ModelList.model_validate(data).data
        except (json.JSONDecodeError, ValidationError) as e:
            raise DecodeError(f"error unmarshaling model list: {e}", raw=body) from e

    async def get_model(self, model_id: str) -> Model:
        body = await self._get(f"/models/{model_id}")
        try:
            return Model.model_validate_json(body)
        except ValidationError as e:
            raise DecodeError(f"error unmarshaling model: {e}", raw=body) from e

    async def is_valid_model(self, model_id: str) -> bool:
        return await self.registry.is_valid_model(model_id, self._fetch_models)

    async def _check_model(self, model_id: str) -> None:
        try:
            valid = await self.is_valid_model(model_id)
        except (GroqError, httpx.HTTPError) as e:
            raise ModelVerificationError(model_id, e) from e
        if not valid:
            raise InvalidModelError(model_id)

    async def create_chat_completion(
        self, request: ChatCompletionRequest
    ) -> ChatCompletionResponse:
        """
        Send a non-streaming chat completion request.

        In JSON mode the first choice's content is re-serialized in a
        canonical indented form.

        Raises:
            StreamingNotSupportedError: If request.stream is set
            InvalidModelError: If the model is not offered by the API
            ModelVerificationError: If the model list could not be fetched
            APIError: On any non-200 response
            DecodeError: On a malformed body or malformed JSON-mode content
        """
        if request.stream:
            raise StreamingNotSupportedError()

        await self._check_model(request.model)

        body = build_payload(request, self._system_prompts)
        url = f"{self.base_url}/chat/completions"
        logger.info("Calling %s with model %s", url, request.model)

        response = await self.http_client.post(
            url, content=body, headers=self._headers(json_body=True)
        )
        if response.status_code != 200:
            raise APIError(response.status_code, response.text)

        try:
            result = ChatCompletionResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(
                f"error unmarshaling response: {e}", raw=response.text
            ) from e

        if request.wants_json:
            if not result.choices:
                raise DecodeError("JSON mode response contained no choices")
            first = result.choices[0]
            formatted = first.model_copy(
                update={
                    "message": Message(
                        role=first.message.role,
                        content=format_json_content(first.message.content),
                    )
                }
            )
            result = result.model_copy(
                update={"choices": [formatted, *result.choices[1:]]}
            )

        return result

    def create_chat_completion_stream(
        self, request: ChatCompletionRequest
    ) -> ChatCompletionStream:
        """
        Start a streaming chat completion.

        Nothing is sent until the returned stream is entered or iterated.
        The request's stream flag is always sent as true. Errors, including
        model validation failures, are raised from the stream iterator.
        """
        # Snapshot the prompts so later add/clear calls do not affect this call.
        system_prompts = tuple(self._system_prompts)

        @asynccontextmanager
        async def open_response() -> AsyncIterator[httpx.Response]:
            await self._check_model(request.model)
            body = build_payload(request, system_prompts, stream=True)
            url = f"{self.base_url}/chat/completions"
            logger.info("Opening stream to %s with model %s", url, request.model)

            async with self.http_client.stream(
                "POST", url, content=body, headers=self._headers(json_body=True)
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    raise APIError(response.status_code, response.text)
                yield response

        return ChatCompletionStream(
            open_response,
            buffer_size=self.stream_buffer_size,
            strict=self.strict_stream_termination,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
