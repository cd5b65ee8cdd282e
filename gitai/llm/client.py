"""Provider clients.

One client class per provider, each wrapping the matching LangChain chat
model:

  openai                    → OpenAIClient       (ChatOpenAI)
  custom-openai-compatible  → CustomOpenAIClient (ChatOpenAI + headers)
  gemini                    → GeminiClient       (ChatGoogleGenerativeAI)
  anthropic                 → AnthropicClient    (ChatAnthropic)
  ollama                    → OllamaClient       (ChatOllama, optional)

build_client() resolves the API key, temperature, token limit and base
URL from a profile, then hands a ClientSettings to the provider class.
Provider-specific request shaping lives on the class:

  - OpenAI gpt-5* models reject an explicit temperature, so it is omitted.
  - Only OpenAI reasoning models (o1/o3/o4/gpt-5) receive reasoning_effort.
  - Gemini has no native structured output here (see llm.structured).
  - Ollama needs the optional langchain-ollama package.

The LangChain model is created lazily on first use, so building a client
never touches the network.
"""

import math
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Type

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from gitai.config.settings import LLMProfile
from gitai.llm.errors import (
    BackendUnavailableError,
    ConfigurationError,
    MissingCredentialError,
    ProviderInvocationError,
)
from gitai.llm.profiles import ProfileCandidate, missing_model_message
from gitai.llm.registry import get_provider_meta
from gitai.utils.logging import log, get_logger

MODULE = "llm.client"
logger = get_logger()

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096
DEFAULT_REASONING_EFFORT = "low"
REASONING_MODEL_PREFIXES = ("o1", "o3", "o4", "gpt-5")

# Placeholder for OpenAI-compatible servers that accept any key.
NO_KEY = "not-needed"


@dataclass(frozen=True)
class ClientSettings:
    """Effective request parameters for one provider client.

    ``temperature`` is None when the request must not carry one.
    """

    provider: str
    model: str
    base_url: str
    max_tokens: int
    api_key: Optional[str] = field(default=None, repr=False)
    temperature: Optional[float] = None
    reasoning_effort: Optional[str] = None
    custom_headers: tuple[tuple[str, str], ...] = ()
    base_url_overridden: bool = False


def build_messages(prompt: str, system_prompt: Optional[str] = None) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    messages.append(HumanMessage(content=prompt))
    return messages


def response_text(response: Any) -> str:
    """Flatten a chat response's content into trimmed text.

    Content is either a string or a list of parts (dicts with "text",
    or plain strings) depending on the provider.
    """
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict):
                parts.append(part.get("text") or "")
        return "\n".join(parts).strip()
    return ""


class ProviderClient(ABC):
    """A ready-to-invoke client for a single provider call."""

    provider: ClassVar[str]
    supports_native_structured: ClassVar[bool] = True

    def __init__(self, settings: ClientSettings):
        self.settings = settings
        self._chat_model: Optional[BaseChatModel] = None

    @classmethod
    def sends_temperature(cls, model: str, temperature: Optional[float]) -> bool:
        return temperature is not None and math.isfinite(temperature)

    @classmethod
    def sends_reasoning_effort(cls, model: str) -> bool:
        return False

    @abstractmethod
    def request_kwargs(self) -> dict[str, Any]:
        """Constructor arguments for the underlying LangChain model."""

    @abstractmethod
    def _create_chat_model(self) -> BaseChatModel:
        ...

    @property
    def chat_model(self) -> BaseChatModel:
        if self._chat_model is None:
            self._chat_model = self._create_chat_model()
        return self._chat_model

    def _common_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": self.settings.model}
        if self.settings.temperature is not None:
            kwargs["temperature"] = self.settings.temperature
        return kwargs

    async def invoke(self, messages: list[BaseMessage]) -> str:
        response = await self.chat_model.ainvoke(messages)
        return response_text(response)

    async def invoke_structured(self, schema: Type[BaseModel], messages: list[BaseMessage]) -> Any:
        if not self.supports_native_structured:
            raise ProviderInvocationError(
                f"{self.provider} has no native structured output; use the JSON fallback"
            )
        structured = self.chat_model.with_structured_output(schema)
        return await structured.ainvoke(messages)


class OpenAIClient(ProviderClient):
    provider = "openai"

    @classmethod
    def sends_temperature(cls, model: str, temperature: Optional[float]) -> bool:
        # gpt-5 family only accepts its built-in default temperature
        if model.lower().startswith("gpt-5"):
            return False
        return super().sends_temperature(model, temperature)

    @classmethod
    def sends_reasoning_effort(cls, model: str) -> bool:
        # chat models such as gpt-4o reject the parameter with a 400
        return model.lower().startswith(REASONING_MODEL_PREFIXES)

    def request_kwargs(self) -> dict[str, Any]:
        kwargs = self._common_kwargs()
        kwargs.update(
            api_key=self.settings.api_key or "",
            max_tokens=self.settings.max_tokens,
            base_url=self.settings.base_url,
        )
        if self.settings.reasoning_effort:
            kwargs["reasoning_effort"] = self.settings.reasoning_effort
        return kwargs

    def _create_chat_model(self) -> BaseChatModel:
        return ChatOpenAI(**self.request_kwargs())


class CustomOpenAIClient(ProviderClient):
    provider = "custom-openai-compatible"

    def request_kwargs(self) -> dict[str, Any]:
        kwargs = self._common_kwargs()
        kwargs.update(
            api_key=self.settings.api_key or NO_KEY,
            max_tokens=self.settings.max_tokens,
            base_url=self.settings.base_url,
        )
        if self.settings.custom_headers:
            kwargs["default_headers"] = dict(self.settings.custom_headers)
        return kwargs

    def _create_chat_model(self) -> BaseChatModel:
        return ChatOpenAI(**self.request_kwargs())


class GeminiClient(ProviderClient):
    provider = "gemini"
    supports_native_structured = False

    def request_kwargs(self) -> dict[str, Any]:
        kwargs = self._common_kwargs()
        kwargs.update(
            api_key=self.settings.api_key or "",
            max_output_tokens=self.settings.max_tokens,
        )
        # The SDK knows its own endpoint; only pass an explicit override.
        if self.settings.base_url_overridden:
            kwargs["client_options"] = {"api_endpoint": self.settings.base_url}
        return kwargs

    def _create_chat_model(self) -> BaseChatModel:
        return ChatGoogleGenerativeAI(**self.request_kwargs())


class AnthropicClient(ProviderClient):
    provider = "anthropic"

    def request_kwargs(self) -> dict[str, Any]:
        kwargs = self._common_kwargs()
        kwargs.update(
            api_key=self.settings.api_key or "",
            max_tokens=self.settings.max_tokens,
            base_url=self.settings.base_url,
        )
        return kwargs

    def _create_chat_model(self) -> BaseChatModel:
        return ChatAnthropic(**self.request_kwargs())


class OllamaClient(ProviderClient):
    provider = "ollama"

    def __init__(self, settings: ClientSettings):
        try:
            from langchain_ollama import ChatOllama
        except ImportError as e:
            raise BackendUnavailableError(
                "Ollama provider selected but 'langchain-ollama' is not installed. "
                "Run: pip install 'git-ai[ollama]'"
            ) from e
        super().__init__(settings)
        self._chat_cls = ChatOllama

    def request_kwargs(self) -> dict[str, Any]:
        kwargs = self._common_kwargs()
        kwargs["base_url"] = self.settings.base_url
        return kwargs

    def _create_chat_model(self) -> BaseChatModel:
        return self._chat_cls(**self.request_kwargs())


CLIENT_TYPES: dict[str, Type[ProviderClient]] = {
    cls.provider: cls
    for cls in (OpenAIClient, CustomOpenAIClient, GeminiClient, AnthropicClient, OllamaClient)
}


def resolve_api_key(profile: LLMProfile) -> Optional[str]:
    """Profile-local key first, then the environment variable it names."""
    if profile.api_key:
        return profile.api_key
    if profile.api_key_env:
        return os.environ.get(profile.api_key_env) or None
    return None


def resolve_client_settings(
    profile: LLMProfile,
    *,
    temperature: Optional[float] = None,
    reasoning_effort: Optional[str] = None,
) -> ClientSettings:
    """Apply defaults, overrides and provider quirks to a profile.

    Raises:
        ConfigurationError: profile has no model.
        MissingCredentialError: provider needs a key and none is set.
    """
    model = (profile.model or "").strip()
    if not model:
        raise ConfigurationError(missing_model_message(profile.provider))

    meta = get_provider_meta(profile.provider)
    client_cls = CLIENT_TYPES[profile.provider]

    api_key = resolve_api_key(profile)
    if not api_key and meta.requires_api_key:
        raise MissingCredentialError(profile.provider, profile.api_key_env)

    effective_temperature = temperature
    if effective_temperature is None:
        effective_temperature = profile.temperature
    if effective_temperature is None:
        effective_temperature = DEFAULT_TEMPERATURE
    if not client_cls.sends_temperature(model, effective_temperature):
        effective_temperature = None

    effort = None
    if client_cls.sends_reasoning_effort(model):
        effort = reasoning_effort or profile.reasoning_effort or DEFAULT_REASONING_EFFORT

    base_url = (profile.base_url or "").strip()

    return ClientSettings(
        provider=profile.provider,
        model=model,
        base_url=base_url.rstrip("/") if base_url else meta.default_base_url,
        base_url_overridden=bool(base_url),
        max_tokens=profile.max_tokens or DEFAULT_MAX_TOKENS,
        api_key=api_key,
        temperature=effective_temperature,
        reasoning_effort=effort,
        custom_headers=tuple(sorted((profile.custom_headers or {}).items())),
    )


class ClientCache:
    """Caller-owned cache of built clients.

    Keyed by profile name and the full effective settings (which include
    the resolved key), so a rotated key or a different temperature
    override builds a fresh client.
    """

    def __init__(self):
        self._clients: dict[tuple[str, ClientSettings], ProviderClient] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def get(self, profile_name: str, settings: ClientSettings) -> Optional[ProviderClient]:
        return self._clients.get((profile_name, settings))

    def put(self, profile_name: str, settings: ClientSettings, client: ProviderClient) -> None:
        self._clients[(profile_name, settings)] = client

    def invalidate(self, profile_name: str) -> int:
        """Drop every client built for a profile. Returns how many."""
        keys = [key for key in self._clients if key[0] == profile_name]
        for key in keys:
            del self._clients[key]
        return len(keys)

    def clear(self) -> None:
        self._clients.clear()


def build_client(
    candidate: ProfileCandidate,
    *,
    temperature: Optional[float] = None,
    reasoning_effort: Optional[str] = None,
    cache: Optional[ClientCache] = None,
) -> ProviderClient:
    """Build (or reuse from ``cache``) the client for a resolved profile."""
    settings = resolve_client_settings(
        candidate.profile,
        temperature=temperature,
        reasoning_effort=reasoning_effort,
    )

    if cache is not None:
        cached = cache.get(candidate.name, settings)
        if cached is not None:
            return cached

    client = CLIENT_TYPES[settings.provider](settings)
    log.debug(logger, MODULE, "client_init", "Provider client created",
              profile=candidate.name, provider=settings.provider, model=settings.model,
              base_url=settings.base_url, temperature=settings.temperature,
              reasoning_effort=settings.reasoning_effort)

    if cache is not None:
        cache.put(candidate.name, settings, client)
    return client
