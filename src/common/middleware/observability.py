"""Observability middleware for context enrichment."""

import re
import typing as t
import uuid

import structlog
from django.http import HttpRequest, HttpResponse

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class StructlogContextMiddleware:
    """Enriches structlog context with request metadata.

    Every log event emitted while a request is handled (price quotes, reservations,
    amendments) carries the same ``request_id``, which is echoed back in the
    ``X-Request-ID`` response header.
    """

    def __init__(self, get_response: t.Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request_id = self._get_request_id(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.path,
            ip_address=self._get_client_ip(request),
        )
        try:
            response = self.get_response(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response["X-Request-ID"] = request_id
        return response

    def _get_request_id(self, request: HttpRequest) -> str:
        """Reuse a well-formed X-Request-ID from the caller, otherwise generate one."""
        incoming = request.headers.get("X-Request-ID", "")
        if _REQUEST_ID_PATTERN.match(incoming):
            return incoming
        return str(uuid.uuid4())

    def _get_client_ip(self, request: HttpRequest) -> str:
        """Extract client IP address from request.

        Checks X-Forwarded-For header first (for proxied requests),
        then falls back to REMOTE_ADDR.
        """
        x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
        if x_forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first
            return str(x_forwarded_for.split(",")[0].strip())
        return str(request.META.get("REMOTE_ADDR", "unknown"))
