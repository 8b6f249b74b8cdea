"""Shared FastAPI dependencies."""

from fastapi import Request

from snipstream.realtime.hub import NotificationHub


def get_hub(request: Request) -> NotificationHub:
    """The process-wide notification hub created by the app factory."""
    return request.app.state.hub
