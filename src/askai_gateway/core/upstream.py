"""Client for the askaiquestions summary API.

The backend is not OpenAI-compatible: it takes the chat messages wrapped in a
site envelope and answers with one complete ``summary`` string.
"""
from __future__ import annotations
import logging
import time
from typing import Any, Sequence

import httpx

from askai_gateway.common.config import GatewayConfig
from askai_gateway.common.errors import (
    UpstreamContractViolation,
    UpstreamStatusError,
    UpstreamUnreachable,
)
from askai_gateway.common.schema import UpstreamResult

LOGGER = logging.getLogger("askai.core.upstream")

RESULT_FIELD = "summary"


class UpstreamClient:
    """Makes exactly one POST per call. No timeout and no retries."""

    def __init__(
        self,
        url: str,
        website: str = "ask-ai-questions",
        origin: str = "https://askaiquestions.net",
        referer: str = "https://askaiquestions.net/",
        user_agent: str = "Mozilla/5.0 (compatible; askai-gateway)",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.website = website
        self.origin = origin
        self.referer = referer
        self.user_agent = user_agent
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: GatewayConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> "UpstreamClient":
        return cls(
            config.upstream_url,
            website=config.upstream_website,
            origin=config.upstream_origin,
            referer=config.upstream_referer,
            user_agent=config.upstream_user_agent,
            transport=transport,
        )

    def build_headers(self, request_id: str) -> dict[str, str]:
        return {
            "accept": "*/*",
            "content-type": "application/json",
            "origin": self.origin,
            "referer": self.referer,
            "user-agent": self.user_agent,
            "X-Request-ID": request_id,
        }

    def build_payload(self, messages: Sequence[dict[str, Any]]) -> dict[str, Any]:
        return {"website": self.website, "messages": list(messages)}

    async def fetch_summary(
        self, messages: Sequence[dict[str, Any]], request_id: str
    ) -> UpstreamResult:
        """
        Send the conversation upstream and return its summary text.

        Args:
            messages: Non-empty list of ``{"role", "content"}`` dicts.
            request_id: Correlation id forwarded as ``X-Request-ID``.

        Raises:
            UpstreamUnreachable: transport failure or redirect loop.
            UpstreamStatusError: non-2xx status.
            UpstreamContractViolation: undecodable body or 2xx without a string
                ``summary``.
        """
        headers = self.build_headers(request_id)
        payload = self.build_payload(messages)

        start = time.time()
        try:
            async with httpx.AsyncClient(
                timeout=None, follow_redirects=True, transport=self._transport
            ) as client:
                r = await client.post(self.url, headers=headers, json=payload)
        except httpx.DecodingError as e:
            LOGGER.error("[%s] Upstream body could not be decoded: %r", request_id, e)
            raise UpstreamContractViolation(f"Upstream response could not be decoded: {e}") from e
        except httpx.RequestError as e:
            LOGGER.error("[%s] Upstream unreachable at %s: %r", request_id, self.url, e)
            raise UpstreamUnreachable(f"Upstream unreachable: {e}") from e
        latency = int((time.time() - start) * 1000)

        if not r.is_success:
            LOGGER.error(
                "[%s] Upstream error %s after %sms: %s", request_id, r.status_code, latency, r.text
            )
            raise UpstreamStatusError(r.status_code, r.text)

        try:
            data = r.json()
        except ValueError as e:
            LOGGER.error("[%s] Upstream returned non-JSON body: %.500s", request_id, r.text)
            raise UpstreamContractViolation("Upstream response is not valid JSON.") from e

        summary = data.get(RESULT_FIELD) if isinstance(data, dict) else None
        if not isinstance(summary, str):
            LOGGER.error("[%s] Upstream response missing %r: %.500s", request_id, RESULT_FIELD, r.text)
            raise UpstreamContractViolation(f"Upstream response missing '{RESULT_FIELD}' field.")

        LOGGER.info("[%s] Upstream ok in %sms (%s chars)", request_id, latency, len(summary))
        return UpstreamResult(text=summary, latency_ms=latency)
