import os

# Must run before utils.logger is imported anywhere.
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest

from api.factory import create_clients
from config.config import Config
from orchestrator.core import ChatOrchestrator
from orchestrator.model_registry import ModelRegistry
from orchestrator.stream_normalizer import StreamNormalizer
from tools.web.factory import create_search_chain_from_env

# Empty rather than unset so a developer's .env cannot switch tests onto live providers.
CREDENTIAL_VARS = (
    "OPENROUTER_API_KEY",
    "MISTRAL_API_KEY",
    "GOOGLE_GEMINI_API_KEY",
    "SERPER_API_KEY",
    "BING_API_KEY",
)

ZERO_DELAY_VARS = (
    "MIN_REQUEST_INTERVAL_S",
    "SIMULATED_DELAY_S",
    "FAILURE_DELAY_S",
    "STREAM_MIN_DELAY_S",
    "STREAM_MAX_DELAY_S",
)


class FakeSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def config(monkeypatch):
    """Offline configuration: no credentials, no pacing delays."""
    for key in CREDENTIAL_VARS:
        monkeypatch.setenv(key, "")
    for key in ZERO_DELAY_VARS:
        monkeypatch.setenv(key, "0")
    return Config()


@pytest.fixture
def registry():
    return ModelRegistry.from_yaml()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def orchestrator(config, registry):
    """Orchestrator whose providers all answer in simulation mode and whose search uses the stub."""
    return ChatOrchestrator(
        config,
        registry=registry,
        clients=create_clients(config, registry),
        search_chain=create_search_chain_from_env(config),
        normalizer=StreamNormalizer.from_config(config),
    )
