"""Factory for building one provider client per configured provider."""

import asyncio
from typing import Awaitable, Callable

from config.config import Config, ProviderType
from orchestrator.model_registry import ModelRegistry
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter

from .base_client import BaseAIClient
from .google_gemini_client import GeminiClient
from .mistral_client import MistralClient
from .openrouter_client import OpenRouterClient

logger = get_logger(__name__)


def create_clients(
    config: Config,
    registry: ModelRegistry,
    rate_limiter: RateLimiter | None = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> dict[ProviderType, BaseAIClient]:
    """
    Create a client for every provider listed in the registry.

    Providers without a credential are still created; they answer in
    simulation mode. Only providers the registry marks as rate limited receive
    the shared pacing gate.

    Returns:
        Mapping of provider -> client
    """
    clients: dict[ProviderType, BaseAIClient] = {}
    for provider in registry.providers():
        spec = registry.provider_spec(provider)
        common = {
            "model_map": spec.model_map,
            "default_model": spec.default_model,
            "rate_limiter": rate_limiter if registry.is_rate_limited(provider) else None,
            "simulated_delay_s": config.SIMULATED_DELAY_S,
            "failure_delay_s": config.FAILURE_DELAY_S,
            "sleep": sleep,
        }
        api_key = config.api_key_for(provider)

        if provider == ProviderType.OPENROUTER:
            client = OpenRouterClient(
                api_key,
                site_url=config.SITE_URL,
                app_title=config.APP_TITLE,
                max_tokens=config.MAX_TOKENS,
                temperature=config.TEMPERATURE,
                timeout_s=config.PROVIDER_TIMEOUT_S,
                **common,
            )
        elif provider == ProviderType.MISTRAL:
            client = MistralClient(
                api_key,
                max_tokens=config.MAX_TOKENS,
                temperature=config.TEMPERATURE,
                timeout_s=config.PROVIDER_TIMEOUT_S,
                **common,
            )
        elif provider == ProviderType.GEMINI:
            client = GeminiClient(
                api_key,
                max_output_tokens=config.MAX_TOKENS,
                temperature=config.TEMPERATURE,
                **common,
            )
        else:
            raise ValueError(f"No client implementation for provider {provider.value}")

        clients[provider] = client
        logger.info(
            "Provider client ready",
            extra={
                "extra_fields": {
                    "provider": provider.value,
                    "configured": client.is_configured,
                    "rate_limited": common["rate_limiter"] is not None,
                }
            },
        )
    return clients
