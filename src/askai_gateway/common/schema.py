"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
import time
import uuid
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def now_ts() -> int:
    return int(time.time())


@dataclass(frozen=True)
class RequestContext:
    """Per-call correlation data threaded through every emitted object."""
    request_id: str
    model: str

    @classmethod
    def new(cls, model: str, request_id: str | None = None) -> "RequestContext":
        return cls(request_id=request_id or str(uuid.uuid4()), model=model)


@dataclass(frozen=True)
class UpstreamResult:
    """Text produced by one upstream call."""
    text: str
    latency_ms: int = 0


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str  # system/user/assistant
    content: Any = None


class ChatRequest(BaseModel):
    # temperature, max_tokens etc. are accepted and ignored
    model_config = ConfigDict(extra="ignore")

    messages: list[ChatMessage] = Field(default_factory=list)
    model: str | None = None
    stream: bool = False


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class CompletionChoice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: Literal["stop"] = "stop"


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int = Field(default_factory=now_ts)
    model: str
    choices: list[CompletionChoice]
    usage: Usage = Field(default_factory=Usage)


class ChunkChoice(BaseModel):
    index: int = 0
    # {"content": "..."} for content slices, {} for the terminal chunk
    delta: dict[str, str] = Field(default_factory=dict)
    finish_reason: Literal["stop"] | None = None


class ChatCompletionChunk(BaseModel):
    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int = Field(default_factory=now_ts)
    model: str
    choices: list[ChunkChoice]


class ModelCard(BaseModel):
    id: str
    object: Literal["model"] = "model"
    created: int = Field(default_factory=now_ts)
    owned_by: str


class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: list[ModelCard]


class HealthOut(BaseModel):
    status: str = "ok"
    service: str
    version: str
