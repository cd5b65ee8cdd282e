import pytest

from tests.fakes import SleepRecorder


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture(autouse=True)
def _clean_provider_env(monkeypatch):
    for var in ("OPENAI_API_KEY", "GEMINI_API_KEY", "ANTHROPIC_API_KEY", "OLLAMA_API_KEY",
                "GIT_AI_CONFIG", "XDG_CONFIG_HOME", "GIT_AI_LOG_FORMAT", "GIT_AI_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
