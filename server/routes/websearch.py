"""Web search endpoints."""

from fastapi import APIRouter, Depends, Request, status

from orchestrator.core import ChatOrchestrator
from server.dependencies import get_orchestrator
from server.schemas.requests import WebSearchRequest
from server.schemas.responses import WebSearchResponseDTO
from server.utils import error_response, sse_response, to_sse
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Web Search"])

QUERY_REQUIRED_MESSAGE = "Search query is required"
SEARCH_FAILED_MESSAGE = "Search failed"


@router.post("/websearch", response_model=WebSearchResponseDTO)
async def websearch(
    body: WebSearchRequest,
    http_request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """Run the search provider chain for one query."""
    query = (body.query or "").strip()
    if not query:
        return error_response(status.HTTP_400_BAD_REQUEST, QUERY_REQUIRED_MESSAGE)

    try:
        outcome = await orchestrator.search_chain.search(query)
    except Exception as e:
        logger.error(
            f"Web search failed: {e}",
            extra={
                "extra_fields": {
                    "request_id": getattr(http_request.state, "request_id", "unknown"),
                    "error_type": type(e).__name__,
                }
            },
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, SEARCH_FAILED_MESSAGE)

    return WebSearchResponseDTO.from_outcome(outcome)


@router.post("/websearch/stream")
async def websearch_stream(
    body: WebSearchRequest,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """Stream search progress as server-sent events."""
    query = (body.query or "").strip()
    if not query:
        return error_response(status.HTTP_400_BAD_REQUEST, QUERY_REQUIRED_MESSAGE)

    async def event_stream():
        try:
            async for event in orchestrator.search_chain.stream_search(query):
                yield to_sse(event.to_dict())
        except Exception as e:
            logger.error(f"Web search stream failed: {e}")
            yield to_sse({"error": SEARCH_FAILED_MESSAGE, "done": True})

    return sse_response(event_stream())
