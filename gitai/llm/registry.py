"""Catalog of supported AI providers and their connection defaults."""

from dataclasses import dataclass
from typing import Optional

from gitai.config.settings import ProviderId


@dataclass(frozen=True)
class ProviderMeta:
    id: ProviderId
    label: str
    default_base_url: str
    default_api_key_env: Optional[str]
    requires_api_key: bool


_PROVIDERS: dict[str, ProviderMeta] = {
    "openai": ProviderMeta(
        id="openai",
        label="OpenAI",
        default_base_url="https://api.openai.com/v1",
        default_api_key_env="OPENAI_API_KEY",
        requires_api_key=True,
    ),
    "gemini": ProviderMeta(
        id="gemini",
        label="Gemini",
        default_base_url="https://generativelanguage.googleapis.com",
        default_api_key_env="GEMINI_API_KEY",
        requires_api_key=True,
    ),
    "anthropic": ProviderMeta(
        id="anthropic",
        label="Anthropic",
        default_base_url="https://api.anthropic.com",
        default_api_key_env="ANTHROPIC_API_KEY",
        requires_api_key=True,
    ),
    "ollama": ProviderMeta(
        id="ollama",
        label="Ollama",
        default_base_url="http://localhost:11434",
        default_api_key_env="OLLAMA_API_KEY",
        requires_api_key=False,
    ),
    "custom-openai-compatible": ProviderMeta(
        id="custom-openai-compatible",
        label="Custom (OpenAI-compatible)",
        default_base_url="https://api.openai.com/v1",
        default_api_key_env="OPENAI_API_KEY",
        requires_api_key=False,
    ),
}


def get_provider_meta(provider: str) -> ProviderMeta:
    return _PROVIDERS[provider]


def list_providers() -> list[ProviderMeta]:
    """All providers, in display order."""
    return list(_PROVIDERS.values())


def provider_requires_api_key(provider: str) -> bool:
    return get_provider_meta(provider).requires_api_key
