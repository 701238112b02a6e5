import os
from dotenv import load_dotenv
from pathlib import Path
from enum import Enum

from utils.logger import get_logger

logger = get_logger(__name__)


class ProviderType(Enum):
    """Supported upstream chat providers."""
    OPENROUTER = "openrouter"
    MISTRAL = "mistral"
    GEMINI = "gemini"


# Credential env var per provider; absence switches the provider into simulation mode.
PROVIDER_KEY_ENV = {
    ProviderType.OPENROUTER: "OPENROUTER_API_KEY",
    ProviderType.MISTRAL: "MISTRAL_API_KEY",
    ProviderType.GEMINI: "GOOGLE_GEMINI_API_KEY",
}


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(
            f"Ignoring non-numeric {name}",
            extra={"extra_fields": {"value": raw, "default": default}},
        )
        return default


def _int_env(name: str, default: int) -> int:
    return int(_float_env(name, float(default)))


class Config:
    """Configuration management for the application."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = Path(__file__).parent.parent / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Provider credentials
        self.OPENROUTER_API_KEY = os.getenv('OPENROUTER_API_KEY')
        self.MISTRAL_API_KEY = os.getenv('MISTRAL_API_KEY')
        self.GOOGLE_GEMINI_API_KEY = os.getenv('GOOGLE_GEMINI_API_KEY')

        # Search credentials
        self.SERPER_API_KEY = os.getenv('SERPER_API_KEY')
        self.BING_API_KEY = os.getenv('BING_API_KEY')

        # OpenRouter attribution headers
        self.SITE_URL = os.getenv('SITE_URL', 'http://localhost:3000')
        self.APP_TITLE = os.getenv('APP_TITLE', 'Mirage AI')

        # Generation defaults
        self.MAX_TOKENS = _int_env('MAX_TOKENS', 1000)
        self.TEMPERATURE = _float_env('TEMPERATURE', 0.7)

        # Pacing and timeouts (seconds)
        self.MIN_REQUEST_INTERVAL_S = _float_env('MIN_REQUEST_INTERVAL_S', 2.0)
        self.SIMULATED_DELAY_S = _float_env('SIMULATED_DELAY_S', 1.0)
        self.FAILURE_DELAY_S = _float_env('FAILURE_DELAY_S', 1.0)
        self.STREAM_MIN_DELAY_S = _float_env('STREAM_MIN_DELAY_S', 0.05)
        self.STREAM_MAX_DELAY_S = _float_env('STREAM_MAX_DELAY_S', 0.15)
        self.STREAM_IDLE_TIMEOUT_S = _float_env('STREAM_IDLE_TIMEOUT_S', 60.0)
        self.PROVIDER_TIMEOUT_S = _float_env('PROVIDER_TIMEOUT_S', 60.0)
        self.SEARCH_TIMEOUT_S = _float_env('SEARCH_TIMEOUT_S', 10.0)
        self.SEARCH_MAX_RESULTS = _int_env('SEARCH_MAX_RESULTS', 5)

    def api_key_for(self, provider: ProviderType) -> str | None:
        return getattr(self, PROVIDER_KEY_ENV[provider])

    def validate(self) -> list[str]:
        """
        Report provider credentials that are not set.

        Missing keys are not fatal: the affected provider answers in simulation mode.

        Returns:
            list[str]: Names of the missing environment variables
        """
        missing = [env for provider, env in PROVIDER_KEY_ENV.items() if not self.api_key_for(provider)]
        if missing:
            logger.warning(
                "Provider credentials missing; simulated responses will be used",
                extra={"extra_fields": {"missing": missing}},
            )
        if not (self.SERPER_API_KEY or self.BING_API_KEY):
            logger.warning("No search credentials configured; web search will use the stub provider")
        return missing

    def get_model_info(self) -> str:
        """
        Get a one-line summary of which providers are live.

        Returns:
            str: e.g. "openrouter=live, mistral=simulated, gemini=simulated"
        """
        return ", ".join(
            f"{provider.value}={'live' if self.api_key_for(provider) else 'simulated'}"
            for provider in ProviderType
        )
