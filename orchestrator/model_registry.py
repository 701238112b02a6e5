from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from config.config import ProviderType


@dataclass(frozen=True)
class ProviderSpec:
    provider: ProviderType
    default_model: str
    model_map: dict[str, str] = field(default_factory=dict)


@dataclass
class ModelRegistry:
    _routes: dict[str, ProviderType]
    _providers: dict[ProviderType, ProviderSpec]
    _routing_defaults: dict[str, Any]

    @classmethod
    def from_yaml(cls, path: str | None = None) -> "ModelRegistry":
        registry_path = Path(path) if path else Path(__file__).resolve().parent.parent / "config" / "model_registry.yaml"
        if not registry_path.exists():
            raise ValueError(f"Model registry not found at {registry_path}")

        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
        if not data or "providers" not in data:
            raise ValueError("Invalid model registry: missing providers")

        providers: dict[ProviderType, ProviderSpec] = {}
        for name, pdata in data["providers"].items():
            provider = _provider_type(name)
            pdata = pdata or {}
            if "default_model" not in pdata:
                raise ValueError(f"Missing default_model for provider {name}")
            model_map = pdata.get("model_map") or {}
            if not isinstance(model_map, dict):
                raise ValueError(f"Invalid model_map for provider {name}")
            providers[provider] = ProviderSpec(
                provider=provider,
                default_model=str(pdata["default_model"]),
                model_map={str(k): str(v) for k, v in model_map.items()},
            )

        routes = {str(model_id): _provider_type(name) for model_id, name in (data.get("models") or {}).items()}
        for model_id, provider in routes.items():
            if provider not in providers:
                raise ValueError(f"Model {model_id} routes to unconfigured provider {provider.value}")

        routing_defaults = data.get("routing_defaults", {}) or {}
        default_provider = _provider_type(routing_defaults.get("default_provider", "mistral"))
        if default_provider not in providers:
            raise ValueError(f"Default provider {default_provider.value} is not configured")

        return cls(_routes=routes, _providers=providers, _routing_defaults=routing_defaults)

    @property
    def default_provider(self) -> ProviderType:
        return _provider_type(self._routing_defaults.get("default_provider", "mistral"))

    def provider_for(self, model_id: str) -> ProviderType:
        """Provider serving a logical model id; unknown ids go to the default provider."""
        return self._routes.get((model_id or "").strip(), self.default_provider)

    def provider_spec(self, provider: ProviderType) -> ProviderSpec:
        return self._providers[provider]

    def providers(self) -> list[ProviderType]:
        return list(self._providers)

    def is_rate_limited(self, provider: ProviderType) -> bool:
        names = self._routing_defaults.get("rate_limited_providers") or []
        return provider.value in {str(n).lower() for n in names}

    def known_models(self) -> list[str]:
        return sorted(self._routes)


def _provider_type(name: Any) -> ProviderType:
    try:
        return ProviderType(str(name).lower().strip())
    except ValueError as e:
        raise ValueError(f"Unknown provider in model registry: {name}") from e
