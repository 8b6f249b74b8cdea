"""Middleware registration."""

from fastapi import FastAPI

from snipstream.config import Settings
from snipstream.middleware.cors import setup_cors
from snipstream.middleware.error_handler import setup_error_handlers
from snipstream.middleware.logging import setup_logging
from snipstream.middleware.rate_limit import RateLimitMiddleware
from snipstream.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Wire logging, error handlers and the HTTP middleware stack.

    Starlette runs middleware outermost-last-added, so CORS goes on last to
    decorate 429s from the limiter and the request id is bound before any
    handler logs.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
