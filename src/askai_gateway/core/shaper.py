"""Non-streaming response shaping."""
from __future__ import annotations

from askai_gateway.common.schema import (
    AssistantMessage,
    ChatCompletion,
    CompletionChoice,
    RequestContext,
)


def build_completion(text: str, ctx: RequestContext) -> ChatCompletion:
    """Wrap the upstream text in a ``chat.completion`` object. Token usage is not tracked."""
    return ChatCompletion(
        id=ctx.request_id,
        model=ctx.model,
        choices=[CompletionChoice(message=AssistantMessage(content=text))],
    )
