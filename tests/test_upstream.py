from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from askai_gateway.common.config import GatewayConfig
from askai_gateway.common.errors import (
    UpstreamContractViolation,
    UpstreamError,
    UpstreamStatusError,
    UpstreamUnreachable,
)
from askai_gateway.core.upstream import UpstreamClient

URL = "http://upstream.test/get-summary"
MESSAGES = [{"role": "user", "content": "What is 2+2?"}]


def _fetch(handler) -> object:  # noqa: ANN001
    client = UpstreamClient(URL, transport=httpx.MockTransport(handler))
    return asyncio.run(client.fetch_summary(MESSAGES, "req-7"))


def test_success_sends_envelope_and_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"summary": "4"})

    result = _fetch(handler)
    assert result.text == "4"
    assert result.latency_ms >= 0

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert json.loads(request.content) == {"website": "ask-ai-questions", "messages": MESSAGES}
    assert request.headers["x-request-id"] == "req-7"
    assert request.headers["origin"] == "https://askaiquestions.net"
    assert request.headers["referer"] == "https://askaiquestions.net/"
    assert request.headers["content-type"] == "application/json"


def test_status_error_keeps_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    with pytest.raises(UpstreamStatusError) as exc_info:
        _fetch(handler)
    err = exc_info.value
    assert err.status == 503
    assert err.body == "maintenance"
    assert err.code == "upstream_503"
    assert err.status_code == 502
    assert err.message == "Upstream error: maintenance"


def test_transport_failure_is_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route to host", request=request)

    with pytest.raises(UpstreamUnreachable):
        _fetch(handler)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"summary": 42}),
        httpx.Response(200, json={"result": "text"}),
        httpx.Response(200, json=["summary"]),
        httpx.Response(200, text="<html>not json</html>"),
    ],
)
def test_contract_violations(response: httpx.Response) -> None:
    with pytest.raises(UpstreamContractViolation) as exc_info:
        _fetch(lambda request: response)
    assert exc_info.value.code == "upstream_contract_violation"


def test_failures_share_gateway_status() -> None:
    for cls in (UpstreamUnreachable, UpstreamContractViolation):
        assert issubclass(cls, UpstreamError)
        assert cls("x").status_code == 502


def test_exactly_one_attempt_per_call() -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        return httpx.Response(500, text="fail")

    with pytest.raises(UpstreamStatusError):
        _fetch(handler)
    assert attempts == 1


def test_from_config_uses_identity_settings() -> None:
    cfg = GatewayConfig(upstream_url=URL, upstream_website="other-site", upstream_origin="https://o.test")
    client = UpstreamClient.from_config(cfg)
    assert client.url == URL
    assert client.build_payload(MESSAGES)["website"] == "other-site"
    assert client.build_headers("id")["origin"] == "https://o.test"


def test_redirect_loop_is_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"location": URL})

    with pytest.raises(UpstreamUnreachable) as exc_info:
        _fetch(handler)
    assert exc_info.value.status_code == 502


def test_corrupt_compressed_body_is_contract_violation() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip")

    with pytest.raises(UpstreamContractViolation) as exc_info:
        _fetch(handler)
    assert exc_info.value.code == "upstream_contract_violation"
