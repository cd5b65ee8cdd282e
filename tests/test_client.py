"""Tests for provider clients and request shaping."""

import sys

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from gitai.config.settings import LLMProfile
from gitai.llm.client import (
    AnthropicClient,
    ClientCache,
    CustomOpenAIClient,
    GeminiClient,
    OpenAIClient,
    build_client,
    build_messages,
    resolve_api_key,
    resolve_client_settings,
    response_text,
)
from gitai.llm.errors import (
    BackendUnavailableError,
    ConfigurationError,
    MissingCredentialError,
    ProviderInvocationError,
)
from gitai.llm.profiles import ProfileCandidate
from gitai.schemas.llm_outputs import PRSuggestion


def test_local_key_wins_over_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    profile = LLMProfile(provider="openai", model="gpt-4o", api_key="sk-local",
                         api_key_env="OPENAI_API_KEY")
    assert resolve_api_key(profile) == "sk-local"


def test_env_key(monkeypatch):
    monkeypatch.setenv("MY_KEY", "sk-env")
    profile = LLMProfile(provider="openai", model="gpt-4o", api_key_env="MY_KEY")
    assert resolve_api_key(profile) == "sk-env"


def test_no_key():
    assert resolve_api_key(LLMProfile(provider="openai", model="gpt-4o")) is None


def test_missing_required_key_names_env():
    profile = LLMProfile(provider="gemini", model="gemini-pro", api_key_env="GEMINI_API_KEY")
    with pytest.raises(MissingCredentialError, match=r"\(set GEMINI_API_KEY\)"):
        resolve_client_settings(profile)


def test_anthropic_without_any_key():
    profile = LLMProfile(provider="anthropic", model="claude-sonnet-4-5")
    with pytest.raises(MissingCredentialError, match="anthropic"):
        resolve_client_settings(profile)


def test_ollama_needs_no_key():
    settings = resolve_client_settings(LLMProfile(provider="ollama", model="llama3"))
    assert settings.api_key is None
    assert settings.base_url == "http://localhost:11434"


def test_blank_model_is_configuration_error():
    with pytest.raises(ConfigurationError, match="Missing model"):
        resolve_client_settings(LLMProfile(provider="ollama", model="  "))


@pytest.mark.parametrize("model", ["gpt-5", "gpt-5.2", "GPT-5-mini", "Gpt-5o"])
@pytest.mark.parametrize("temperature", [None, 0.0, 0.2, 1.5])
def test_gpt5_never_sends_temperature(model, temperature):
    profile = LLMProfile(provider="openai", model=model, api_key="sk-test", temperature=0.9)
    settings = resolve_client_settings(profile, temperature=temperature)
    assert settings.temperature is None
    assert "temperature" not in OpenAIClient(settings).request_kwargs()


def test_gpt5_prefix_only_applies_to_openai():
    profile = LLMProfile(provider="custom-openai-compatible", model="gpt-5.2")
    assert resolve_client_settings(profile).temperature == 0.7


def test_temperature_precedence():
    profile = LLMProfile(provider="openai", model="gpt-4o", api_key="sk-test", temperature=0.3)
    assert resolve_client_settings(profile).temperature == 0.3
    assert resolve_client_settings(profile, temperature=0.0).temperature == 0.0

    bare = LLMProfile(provider="openai", model="gpt-4o", api_key="sk-test")
    assert resolve_client_settings(bare).temperature == 0.7


def test_non_finite_temperature_omitted():
    profile = LLMProfile(provider="anthropic", model="claude", api_key="k")
    settings = resolve_client_settings(profile, temperature=float("nan"))
    assert "temperature" not in AnthropicClient(settings).request_kwargs()


def test_reasoning_effort_only_for_openai():
    openai = LLMProfile(provider="openai", model="gpt-5.2", api_key="sk", reasoning_effort="high")
    assert resolve_client_settings(openai).reasoning_effort == "high"
    assert resolve_client_settings(openai, reasoning_effort="none").reasoning_effort == "none"

    default = LLMProfile(provider="openai", model="gpt-5.2", api_key="sk")
    assert resolve_client_settings(default).reasoning_effort == "low"

    anthropic = LLMProfile(provider="anthropic", model="claude", api_key="k", reasoning_effort="high")
    assert resolve_client_settings(anthropic).reasoning_effort is None


@pytest.mark.parametrize("model", ["gpt-5.2", "o1", "o3-mini", "o4-mini", "O3"])
def test_reasoning_models_send_reasoning_effort(model):
    profile = LLMProfile(provider="openai", model=model, api_key="sk")
    kwargs = OpenAIClient(resolve_client_settings(profile)).request_kwargs()
    assert kwargs["reasoning_effort"] == "low"


@pytest.mark.parametrize("model", ["gpt-4o", "gpt-4.1-mini", "gpt-3.5-turbo"])
def test_chat_models_never_send_reasoning_effort(model):
    """Non-reasoning models reject reasoning_effort, even when configured."""
    profile = LLMProfile(provider="openai", model=model, api_key="sk", reasoning_effort="high")
    settings = resolve_client_settings(profile, reasoning_effort="medium")
    assert settings.reasoning_effort is None

    client = OpenAIClient(settings)
    assert "reasoning_effort" not in client.request_kwargs()
    assert client.chat_model.reasoning_effort is None


def test_openai_request_kwargs():
    profile = LLMProfile(provider="openai", model="gpt-4o", api_key="sk-test",
                         temperature=0.2, max_tokens=1000)
    kwargs = OpenAIClient(resolve_client_settings(profile)).request_kwargs()
    assert kwargs == {
        "model": "gpt-4o",
        "temperature": 0.2,
        "api_key": "sk-test",
        "max_tokens": 1000,
        "base_url": "https://api.openai.com/v1",
    }


def test_custom_provider_headers_and_placeholder_key():
    profile = LLMProfile(provider="custom-openai-compatible", model="qwen",
                         base_url="http://localhost:8080/v1/", custom_headers={"X-Team": "infra"})
    kwargs = CustomOpenAIClient(resolve_client_settings(profile)).request_kwargs()
    assert kwargs["base_url"] == "http://localhost:8080/v1"
    assert kwargs["default_headers"] == {"X-Team": "infra"}
    assert kwargs["api_key"] == "not-needed"
    assert kwargs["max_tokens"] == 4096


def test_gemini_base_url_only_when_overridden():
    profile = LLMProfile(provider="gemini", model="gemini-pro", api_key="g")
    kwargs = GeminiClient(resolve_client_settings(profile)).request_kwargs()
    assert "client_options" not in kwargs
    assert kwargs["max_output_tokens"] == 4096

    proxied = LLMProfile(provider="gemini", model="gemini-pro", api_key="g",
                         base_url="https://proxy.internal")
    kwargs = GeminiClient(resolve_client_settings(proxied)).request_kwargs()
    assert kwargs["client_options"] == {"api_endpoint": "https://proxy.internal"}


def test_gemini_has_no_native_structured_output():
    assert not GeminiClient.supports_native_structured
    assert OpenAIClient.supports_native_structured


@pytest.mark.asyncio
async def test_gemini_native_structured_call_raises_provider_error():
    """Calling the native path directly is a typed, retryable provider error."""
    profile = LLMProfile(provider="gemini", model="gemini-pro", api_key="g")
    client = GeminiClient(resolve_client_settings(profile))
    with pytest.raises(ProviderInvocationError, match="JSON fallback"):
        await client.invoke_structured(PRSuggestion, build_messages("hi"))
    assert client._chat_model is None


def test_ollama_backend_missing(monkeypatch):
    monkeypatch.setitem(sys.modules, "langchain_ollama", None)
    candidate = ProfileCandidate("local", LLMProfile(provider="ollama", model="llama3"))
    with pytest.raises(BackendUnavailableError, match="langchain-ollama"):
        build_client(candidate)


def test_ollama_client_kwargs():
    pytest.importorskip("langchain_ollama")
    candidate = ProfileCandidate("local", LLMProfile(provider="ollama", model="llama3", temperature=0.1))
    client = build_client(candidate)
    assert client.request_kwargs() == {
        "model": "llama3",
        "temperature": 0.1,
        "base_url": "http://localhost:11434",
    }


def test_chat_model_built_lazily():
    candidate = ProfileCandidate("main", LLMProfile(provider="openai", model="gpt-4o", api_key="sk-test"))
    client = build_client(candidate)
    assert client._chat_model is None
    assert isinstance(client.chat_model, ChatOpenAI)
    assert client.chat_model is client.chat_model


def test_cache_reuses_client_for_same_settings():
    cache = ClientCache()
    candidate = ProfileCandidate("main", LLMProfile(provider="openai", model="gpt-4o", api_key="sk-test"))

    first = build_client(candidate, cache=cache)
    assert build_client(candidate, cache=cache) is first
    assert build_client(candidate, temperature=0.1, cache=cache) is not first
    assert len(cache) == 2

    assert cache.invalidate("main") == 2
    assert len(cache) == 0
    assert build_client(candidate, cache=cache) is not first


def test_cache_keyed_by_resolved_key(monkeypatch):
    cache = ClientCache()
    candidate = ProfileCandidate("main", LLMProfile(provider="openai", model="gpt-4o",
                                                    api_key_env="OPENAI_API_KEY"))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-one")
    first = build_client(candidate, cache=cache)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-two")
    assert build_client(candidate, cache=cache) is not first

    cache.clear()
    assert len(cache) == 0


def test_build_messages():
    assert build_messages("hi") == [HumanMessage(content="hi")]
    assert build_messages("hi", "be brief") == [
        SystemMessage(content="be brief"),
        HumanMessage(content="hi"),
    ]


def test_response_text_variants():
    assert response_text(AIMessage(content="  feat: add x \n")) == "feat: add x"
    parts = AIMessage(content=[{"type": "text", "text": "one"}, "two", {"type": "image"}])
    assert response_text(parts) == "one\ntwo"
    assert response_text(object()) == ""
