"""Chat endpoint for single AI model requests."""

from fastapi import APIRouter, Depends, Request, status

from models.chat import ChatRequest, ChatRequestError
from orchestrator.core import INTERNAL_ERROR_MESSAGE, ChatOrchestrator
from server.dependencies import get_orchestrator
from server.schemas.requests import ChatRequestBody
from server.schemas.responses import ChatResponseDTO
from server.utils import error_response, sse_response, to_sse
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Chat"])


@router.post("/chat", response_model=ChatResponseDTO, response_model_exclude_none=True)
async def chat(
    body: ChatRequestBody,
    http_request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """
    Send a message to one model.

    With `stream: true` the answer arrives as server-sent events, otherwise
    as a single JSON body.
    """
    request_id = getattr(http_request.state, "request_id", "unknown")
    try:
        request = ChatRequest(
            message=body.message or "",
            model_id=body.model or "",
            mode=body.mode,
            stream=body.stream,
            use_web_search=body.use_web_search,
        )
    except ChatRequestError as e:
        logger.warning(
            "Rejected chat request",
            extra={"extra_fields": {"request_id": request_id, "error": str(e)}},
        )
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))

    if request.stream:

        async def event_stream():
            async for event in orchestrator.stream_chat(request):
                yield to_sse(event.to_dict())

        return sse_response(event_stream())

    result = await orchestrator.chat(request)
    if not result.success:
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, result.error or INTERNAL_ERROR_MESSAGE
        )
    return ChatResponseDTO.from_chat_result(result)
