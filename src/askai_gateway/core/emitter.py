"""Pseudo-streaming of a complete upstream result.

The upstream API answers with one string. Streaming clients still expect
``chat.completion.chunk`` events, so the text is replayed in fixed-size slices
as server-sent events:

    data: {"choices": [{"delta": {"content": "ab"}, "finish_reason": null}], ...}

    data: {"choices": [{"delta": {}, "finish_reason": "stop"}], ...}

    data: [DONE]

Slices are cut on Python ``str`` indices, i.e. Unicode code points, so a
multi-byte character is never split across two events.
"""
from __future__ import annotations
import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterator

from pydantic import BaseModel

from askai_gateway.common.errors import ConfigError
from askai_gateway.common.schema import ChatCompletionChunk, ChunkChoice, RequestContext

LOGGER = logging.getLogger("askai.core.emitter")

DONE_EVENT = "data: [DONE]\n\n"
STREAM_ERROR_TEXT = "\n[Stream Error]"

DisconnectProbe = Callable[[], Awaitable[bool]]


def format_sse(payload: BaseModel) -> str:
    """Frame one model as an SSE ``data:`` event."""
    return f"data: {payload.model_dump_json()}\n\n"


def make_chunk(
    ctx: RequestContext, content: str | None = None, finish_reason: str | None = None
) -> ChatCompletionChunk:
    delta = {} if content is None else {"content": content}
    return ChatCompletionChunk(
        id=ctx.request_id,
        model=ctx.model,
        choices=[ChunkChoice(delta=delta, finish_reason=finish_reason)],
    )


class PseudoStreamEmitter:
    """Replays text as chunk events with a fixed slice size and pacing delay.

    One instance is built at startup and shared by all requests; it holds only
    its read-only settings, the emission cursor lives in each ``stream`` call.
    """

    def __init__(self, chunk_size: int = 2, delay_ms: int = 0) -> None:
        if chunk_size < 1:
            raise ConfigError(f"chunk_size must be >= 1, got {chunk_size}")
        if delay_ms < 0:
            raise ConfigError(f"delay_ms must be >= 0, got {delay_ms}")
        self.chunk_size = chunk_size
        self.delay_ms = delay_ms

    def iter_slices(self, text: str) -> Iterator[str]:
        for offset in range(0, len(text), self.chunk_size):
            yield text[offset:offset + self.chunk_size]

    def iter_chunks(self, text: str, ctx: RequestContext) -> Iterator[ChatCompletionChunk]:
        """Content chunks in text order, then one terminal ``stop`` chunk."""
        for piece in self.iter_slices(text):
            yield make_chunk(ctx, content=piece)
        yield make_chunk(ctx, finish_reason="stop")

    async def stream(
        self,
        text: str,
        ctx: RequestContext,
        is_disconnected: DisconnectProbe | None = None,
    ) -> AsyncIterator[str]:
        """
        Yield SSE frames for ``text``, ending with ``data: [DONE]``.

        Args:
            text: Complete upstream result.
            ctx: Request id and model stamped on every chunk.
            is_disconnected: Optional probe checked before each content slice;
                emission stops as soon as it reports True.

        A fault while emitting is reported in-band as one error chunk followed by
        the ``[DONE]`` marker. Cancelling the consumer interrupts the pacing sleep.
        """
        delay = self.delay_ms / 1000
        sent = 0
        try:
            for chunk in self.iter_chunks(text, ctx):
                is_content = chunk.choices[0].finish_reason is None
                if is_content and is_disconnected is not None and await is_disconnected():
                    LOGGER.info("[%s] Client disconnected after %s chunks, stopping", ctx.request_id, sent)
                    return
                yield format_sse(chunk)
                sent += 1
                if is_content and delay > 0:
                    await asyncio.sleep(delay)
        except Exception as e:
            LOGGER.exception("[%s] Stream error after %s chunks: %s", ctx.request_id, sent, e)
            yield format_sse(make_chunk(ctx, content=STREAM_ERROR_TEXT, finish_reason="stop"))
        yield DONE_EVENT
        LOGGER.debug("[%s] Stream finished, %s chunks", ctx.request_id, sent)
