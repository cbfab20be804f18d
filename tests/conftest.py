import copy
import json
from typing import AsyncIterator, Callable, Iterable, List, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from groq_chat import Client, ModelRegistry

TEST_API_KEY = "gsk_" + "a1B2c3D4" * 4
BASE_URL = "http://testserver/openai/v1"
TEST_MODEL = "llama-3.1-8b-instant"

# Mock response payloads
MOCK_MODELS = [
    {
        "id": "llama-3.1-8b-instant",
        "object": "model",
        "created": 1693721698,
        "owned_by": "Meta",
        "active": True,
        "context_window": 131072,
    },
    {
        "id": "mixtral-8x7b-32768",
        "object": "model",
        "created": 1693721698,
        "owned_by": "Mistral AI",
        "active": True,
        "context_window": 32768,
    },
]

MOCK_COMPLETION_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1677652288,
    "model": TEST_MODEL,
    "system_fingerprint": "fp_44709d6fcb",
    "choices": [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "Hello there, how may I assist you today?",
            },
            "logprobs": None,
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 9, "completion_tokens": 12, "total_tokens": 21},
}

MOCK_STREAMING_CHUNKS = [
    {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": TEST_MODEL,
        "system_fingerprint": "fp_44709d6fcb",
        "choices": [
            {
                "index": 0,
                "delta": {"role": "assistant", "content": ""},
                "logprobs": None,
                "finish_reason": None,
            }
        ],
    },
    {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": TEST_MODEL,
        "system_fingerprint": "fp_44709d6fcb",
        "choices": [
            {
                "index": 0,
                "delta": {"content": "Hello"},
                "logprobs": None,
                "finish_reason": None,
            }
        ],
    },
    {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": TEST_MODEL,
        "system_fingerprint": "fp_44709d6fcb",
        "choices": [
            {"index": 0, "delta": {}, "logprobs": None, "finish_reason": "stop"}
        ],
    },
]


def sse_frame(chunk) -> str:
    return f"data: {json.dumps(chunk)}\n\n"


def sse_body(chunks: Iterable[dict], done: bool = True) -> str:
    body = "".join(sse_frame(chunk) for chunk in chunks)
    if done:
        body += "data: [DONE]\n\n"
    return body


class FakeGroqAPI:
    """In-process stand-in for the Groq API, served through httpx.ASGITransport."""

    def __init__(self):
        self.models = copy.deepcopy(MOCK_MODELS)
        self.model_list_calls = 0
        self.model_list_status = 200
        self.completion = copy.deepcopy(MOCK_COMPLETION_RESPONSE)
        self.raw_completion: Optional[str] = None
        self.completion_status = 200
        self.error_body = ""
        self.stream_body = sse_body(MOCK_STREAMING_CHUNKS)
        self.requests: List[dict] = []
        self.app = self._build_app()

    def set_content(self, content: str) -> None:
        self.completion["choices"][0]["message"]["content"] = content

    def _build_app(self) -> FastAPI:
        app = FastAPI(title="Fake Groq API")

        def authorized(request: Request) -> bool:
            return request.headers.get("authorization") == f"Bearer {TEST_API_KEY}"

        @app.get("/openai/v1/models")
        async def list_models(request: Request):
            self.model_list_calls += 1
            if not authorized(request):
                return Response("invalid api key", status_code=401)
            if self.model_list_status != 200:
                return Response(self.error_body, status_code=self.model_list_status)
            return {"object": "list", "data": self.models}

        @app.get("/openai/v1/models/{model_id}")
        async def get_model(model_id: str, request: Request):
            if not authorized(request):
                return Response("invalid api key", status_code=401)
            for model in self.models:
                if model["id"] == model_id:
                    return model
            return JSONResponse(
                {"error": {"message": f"The model `{model_id}` does not exist"}},
                status_code=404,
            )

        @app.post("/openai/v1/chat/completions")
        async def chat_completions(request: Request):
            body = json.loads(await request.body())
            self.requests.append({"headers": dict(request.headers), "body": body})
            if not authorized(request):
                return Response("invalid api key", status_code=401)
            if self.completion_status != 200:
                return Response(self.error_body, status_code=self.completion_status)
            if body.get("stream"):
                return StreamingResponse(
                    iter([self.stream_body]), media_type="text/event-stream"
                )
            if self.raw_completion is not None:
                return Response(self.raw_completion, media_type="application/json")
            return JSONResponse(self.completion)

        return app


@pytest.fixture
def fake_api():
    return FakeGroqAPI()


@pytest_asyncio.fixture
async def http_client(fake_api):
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=fake_api.app))
    yield client
    await client.aclose()


@pytest.fixture
def registry():
    return ModelRegistry()


@pytest.fixture
def client(http_client, registry):
    return Client(
        TEST_API_KEY, base_url=BASE_URL, registry=registry, http_client=http_client
    )


def mock_transport_client(
    chat_body: Callable[[], AsyncIterator[bytes]],
    status_code: int = 200,
    **kwargs,
) -> Client:
    """
    Client whose /chat/completions response body is produced by ``chat_body``,
    so tests control exactly which bytes arrive and when.
    """

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/models"):
            return httpx.Response(200, json={"object": "list", "data": MOCK_MODELS})
        return httpx.Response(status_code, content=chat_body())

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Client(TEST_API_KEY, base_url=BASE_URL, http_client=http_client, **kwargs)


def body_from(*parts: str) -> Callable[[], AsyncIterator[bytes]]:
    async def body():
        for part in parts:
            yield part.encode()

    return body
