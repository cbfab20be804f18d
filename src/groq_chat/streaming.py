"""Streaming response handling for the Groq chat client."""

import asyncio
import logging
import weakref
from typing import AsyncContextManager, Callable, Optional, Union

import httpx
from pydantic import ValidationError

from .errors import DecodeError, StreamTruncatedError
from .models import ChatCompletionChunk

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

# Marks the end of the stream for the consumer.
_STREAM_END = object()


class _Done:
    def __repr__(self):
        return "DONE"


DONE = _Done()

OpenResponse = Callable[[], AsyncContextManager[httpx.Response]]


def parse_event_line(line: str) -> Optional[Union[ChatCompletionChunk, _Done]]:
    """
    Decode a single line of the event stream.

    Returns:
        None for blank lines and lines that are not data frames, DONE for the
        terminal sentinel, otherwise the decoded chunk

    Raises:
        DecodeError: If a data frame does not hold a valid chunk
    """
    line = line.strip()
    if not line or not line.startswith(DATA_PREFIX):
        return None
    data = line[len(DATA_PREFIX):]
    if data == DONE_SENTINEL:
        return DONE
    try:
        return ChatCompletionChunk.model_validate_json(data)
    except ValidationError as e:
        raise DecodeError(f"error unmarshaling chunk: {e}", raw=data) from e


def _discard_pending(queue: asyncio.Queue) -> None:
    while True:
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            return


def _cancel_abandoned(task: asyncio.Task) -> None:
    if not task.done() and not task.get_loop().is_closed():
        logger.debug("Stream dropped before it finished, cancelling read")
        task.cancel()


class _StreamReader:
    """
    Body of the background task. It holds no reference to the stream, so a
    stream the caller drops can be collected and its read cancelled.
    """

    def __init__(self, open_response: OpenResponse, queue: asyncio.Queue, strict: bool):
        self.open_response = open_response
        self.queue = queue
        self.strict = strict
        self.error: Optional[BaseException] = None

    async def run(self) -> None:
        try:
            try:
                await self._read()
            except Exception as e:
                logger.debug("Stream failed: %s", e)
                self.error = e
            await self.queue.put(_STREAM_END)
        except asyncio.CancelledError:
            logger.debug("Stream cancelled")
            _discard_pending(self.queue)
            self.queue.put_nowait(_STREAM_END)
            raise

    async def _read(self) -> None:
        saw_done = False
        count = 0
        async with self.open_response() as response:
            async for line in response.aiter_lines():
                event = parse_event_line(line)
                if event is None:
                    continue
                if event is DONE:
                    saw_done = True
                    break
                await self.queue.put(event)
                count += 1

        logger.debug("Stream finished after %d chunks (done=%s)", count, saw_done)
        if not saw_done and self.strict:
            raise StreamTruncatedError("stream ended without [DONE]")


class ChatCompletionStream:
    """
    Async iterator over the chunks of one streamed completion.

    A background task owns the HTTP response: it reads the body line by line
    and hands decoded chunks over through a bounded queue, so the network read
    keeps going while the consumer works but never gets more than
    ``buffer_size`` chunks ahead. The task starts on ``__aenter__`` or on the
    first ``__anext__``.

    Iteration ends after the [DONE] sentinel or a clean end of the body. If
    the request or the decode fails, the chunks received before the failure
    are yielded and the error is then raised once; it also stays available
    as ``error``. ``aclose()`` cancels the task, closes the response and
    drops anything not yet consumed. A stream that is abandoned mid-way
    (e.g. ``break`` out of ``async for``) is cancelled the same way once it
    is garbage collected.
    """

    def __init__(
        self,
        open_response: OpenResponse,
        buffer_size: int = 16,
        strict: bool = False,
    ):
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)
        self._reader = _StreamReader(open_response, self._queue, strict)
        self._task: Optional[asyncio.Task] = None
        self._finished = False

    @property
    def error(self) -> Optional[BaseException]:
        return self._reader.error

    @property
    def closed(self) -> bool:
        return self._finished

    def start(self) -> "ChatCompletionStream":
        if self._task is None and not self._finished:
            self._task = asyncio.create_task(self._reader.run())
            finalizer = weakref.finalize(self, _cancel_abandoned, self._task)
            finalizer.atexit = False
        return self

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChatCompletionChunk:
        if self._finished:
            raise StopAsyncIteration
        self.start()
        item = await self._queue.get()
        if item is _STREAM_END:
            self._finished = True
            if self._reader.error is not None:
                raise self._reader.error
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        """Stop the background read and end iteration."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task})
        _discard_pending(self._queue)
        if self._task is not None:
            self._queue.put_nowait(_STREAM_END)
        self._finished = True

    async def __aenter__(self) -> "ChatCompletionStream":
        return self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def collect_content(self) -> str:
        """Consume the stream and join the content of the first choice."""
        parts = []
        async for chunk in self:
            parts.append(chunk.content)
        return "".join(parts)
