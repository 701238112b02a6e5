"""Shared utilities for FastAPI routes."""

import json
from collections.abc import AsyncIterator, Mapping
from typing import Any

from fastapi.responses import JSONResponse, StreamingResponse

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def to_sse(event: Mapping[str, Any]) -> str:
    """Serialize one stream event as a server-sent event frame."""
    return f"data: {json.dumps(dict(event), ensure_ascii=False)}\n\n"


def sse_response(frames: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)


def error_response(status_code: int, message: str) -> JSONResponse:
    """The {success: false, error} body used by every failing endpoint."""
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})
