"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from orchestrator.core import ChatOrchestrator
from server.dependencies import get_orchestrator
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponseDTO)
async def health_check(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Health check endpoint; reports which providers answer live."""
    providers = {
        provider.value: "live" if client.is_configured else "simulated"
        for provider, client in orchestrator.clients.items()
    }
    return HealthResponseDTO(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version=API_VERSION,
        providers=providers,
    )
