"""Gateway error taxonomy.

Every failure the gateway reports to a client is a ``GatewayError`` carrying the
HTTP status and the ``code`` placed in the error envelope:

    {"error": {"message": ..., "type": "api_error", "code": ...}}
"""
from __future__ import annotations

from typing import Any

ERROR_TYPE = "api_error"


class ConfigError(ValueError):
    """Invalid startup configuration."""


class GatewayError(Exception):
    status_code: int = 500
    code: str = "internal_server_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def envelope(self) -> dict[str, Any]:
        return error_envelope(self.message, self.code)


class InvalidRequest(GatewayError):
    status_code = 400
    code = "invalid_request_error"


class Unauthorized(GatewayError):
    status_code = 401
    code = "invalid_api_key"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFound(GatewayError):
    status_code = 404
    code = "not_found"


class MethodNotAllowed(GatewayError):
    status_code = 405
    code = "method_not_allowed"


class UpstreamError(GatewayError):
    """Base for failures of the single upstream call. Always surfaced as 502."""
    status_code = 502
    code = "upstream_error"


class UpstreamUnreachable(UpstreamError):
    code = "upstream_unreachable"


class UpstreamStatusError(UpstreamError):
    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Upstream error: {body}")
        self.status = status
        self.body = body
        self.code = f"upstream_{status}"


class UpstreamContractViolation(UpstreamError):
    code = "upstream_contract_violation"


def error_envelope(message: str, code: str) -> dict[str, Any]:
    return {"error": {"message": message, "type": ERROR_TYPE, "code": code}}
