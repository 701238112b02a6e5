"""FastAPI dependencies for orchestrator access."""

from orchestrator.core import ChatOrchestrator


def get_orchestrator() -> ChatOrchestrator:
    """Dependency to get orchestrator instance (singleton pattern)."""
    if not hasattr(get_orchestrator, "_instance"):
        get_orchestrator._instance = ChatOrchestrator()
    return get_orchestrator._instance


async def close_orchestrator() -> None:
    """Release the singleton's transports, if it was ever created."""
    instance = getattr(get_orchestrator, "_instance", None)
    if instance is not None:
        await instance.aclose()
        del get_orchestrator._instance
