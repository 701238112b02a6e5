"""Compare endpoint for multi-model requests."""

from fastapi import APIRouter, Depends, Request, status

from models.chat import ChatRequestError
from orchestrator.core import ChatOrchestrator
from server.dependencies import get_orchestrator
from server.schemas.requests import CompareRequest
from server.schemas.responses import ChatResponseDTO, CompareResponseDTO
from server.utils import error_response, sse_response, to_sse
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Compare"])


@router.post("/compare", response_model=CompareResponseDTO, response_model_exclude_none=True)
async def compare(
    request: CompareRequest,
    http_request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """Send one message to several models and return every answer."""
    try:
        results = await orchestrator.compare(
            request.message or "",
            request.models,
            mode=request.mode,
            use_web_search=request.use_web_search,
        )
    except ChatRequestError as e:
        logger.warning(
            "Rejected compare request",
            extra={
                "extra_fields": {
                    "request_id": getattr(http_request.state, "request_id", "unknown"),
                    "error": str(e),
                }
            },
        )
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))

    return CompareResponseDTO(
        success=all(r.success for r in results),
        results=[ChatResponseDTO.from_chat_result(r) for r in results],
    )


@router.post("/compare/stream")
async def compare_stream(
    request: CompareRequest,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """Stream several models at once as server-sent events tagged by model and index."""
    try:
        orchestrator.build_compare_requests(
            request.message or "", request.models, request.mode, request.use_web_search
        )
    except ChatRequestError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))

    async def event_stream():
        async for tagged in orchestrator.stream_compare(
            request.message or "",
            request.models,
            mode=request.mode,
            use_web_search=request.use_web_search,
        ):
            yield to_sse(tagged.to_dict())

    return sse_response(event_stream())
