"""Response envelopes for the klaw REST API."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body of every non-200 response."""

    error: str


class MonitorStatusResponse(BaseModel):
    cluster: str
    active: bool
    dataPoints: int  # noqa: N815


class MessageResponse(BaseModel):
    message: str


class LogsResponse(BaseModel):
    logs: str
