"""
Baggage (trace context) propagation.

The inbound ``baggage`` header is opaque: it is never parsed or validated.
It is read once per request into a ``RequestContext``, which is then passed
explicitly to every component that logs or calls out.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Union

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from payments_service.log import ContextLogger, JsonLogger

BAGGAGE_HEADER = 'baggage'
OUTBOUND_BAGGAGE_HEADER = 'Baggage'
ECHO_HEADER = 'X-Baggage-Received'


@dataclass(frozen=True)
class RequestContext:
    """Per-request state: the inbound baggage and a logger bound to it."""
    baggage: str
    logger: ContextLogger


def extract_baggage(headers: Mapping[str, str]) -> str:
    """
    Return the ``baggage`` header value, matched case-insensitively, or ''.

    Repeated headers on a starlette ``Headers`` are joined with ", ".
    """
    if isinstance(headers, Headers):
        return ', '.join(headers.getlist(BAGGAGE_HEADER))

    value = headers.get(BAGGAGE_HEADER)
    if value is None:
        for name, candidate in headers.items():
            if name.lower() == BAGGAGE_HEADER:
                value = candidate
                break
    return value or ''


def build_request_context(headers: Mapping[str, str], logger: JsonLogger) -> RequestContext:
    baggage = extract_baggage(headers)
    return RequestContext(baggage=baggage, logger=logger.bind(baggage))


def outbound_headers(context: Union[RequestContext, str]) -> Dict[str, str]:
    """Headers to forward on an outbound call; empty when there is no baggage."""
    baggage = context.baggage if isinstance(context, RequestContext) else context
    if not baggage:
        return {}
    return {OUTBOUND_BAGGAGE_HEADER: baggage}


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency returning the context stored by ``BaggageMiddleware``."""
    return request.state.context


class BaggageMiddleware(BaseHTTPMiddleware):
    """Stores the request context on ``request.state`` and echoes the baggage back."""

    def __init__(self, app, logger: JsonLogger) -> None:
        super().__init__(app)
        self.logger = logger

    async def dispatch(self, request: Request, call_next):
        context = build_request_context(request.headers, self.logger)
        request.state.context = context

        response = await call_next(request)

        if context.baggage:
            response.headers[ECHO_HEADER] = context.baggage
        return response
