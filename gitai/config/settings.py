"""LLM configuration snapshot.

The invocation core reads configuration, it never writes it. The settings
UI owns the file; this module only knows how to load the ``llm`` section
of it into typed models:

  {
    "llm": {
      "defaultProfile": "smart-main",
      "profiles": {
        "smart-main": {"provider": "openai", "model": "gpt-5.2"},
        "local": {"provider": "ollama", "model": "llama3"}
      },
      "taskPresets": {"commit": "local", "release": "smart-main"},
      "retry": {"maxAttempts": 3, "backoffMs": 400},
      "timeouts": {"requestMs": 60000}
    }
  }

Keys are camelCase on disk and snake_case in Python.

File location, first match wins:
  $GIT_AI_CONFIG
  $XDG_CONFIG_HOME/git-ai/config.json
  ~/.config/git-ai/config.json
"""

import json
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from gitai.utils.logging import log, get_logger

MODULE = "config"
logger = get_logger()

ProviderId = Literal[
    "openai",
    "gemini",
    "anthropic",
    "ollama",
    "custom-openai-compatible",
]

ReasoningEffort = Literal["none", "low", "medium", "high", "xhigh"]

Task = Literal["commit", "pr", "branch", "release", "unwrapped", "celebrate"]

TASKS: tuple[str, ...] = ("commit", "pr", "branch", "release", "unwrapped", "celebrate")

DEFAULT_PROFILE_NAME = "smart-main"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class LLMProfile(_CamelModel):
    """A named binding of provider, model and tuning parameters."""

    provider: ProviderId = "openai"
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(default=None, gt=0)
    reasoning_effort: Optional[ReasoningEffort] = None
    base_url: Optional[str] = None
    api_key_env: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)
    custom_headers: Optional[dict[str, str]] = None


class RetryPolicy(_CamelModel):
    max_attempts: int = 3
    backoff_ms: int = 400


class Timeouts(_CamelModel):
    request_ms: int = 60_000


def _default_profiles() -> dict[str, LLMProfile]:
    return {DEFAULT_PROFILE_NAME: LLMProfile(provider="openai", api_key_env="OPENAI_API_KEY")}


def _default_task_presets() -> dict[str, str]:
    return {task: DEFAULT_PROFILE_NAME for task in TASKS}


class LLMSettings(_CamelModel):
    """Everything the invocation core needs from configuration."""

    profiles: dict[str, LLMProfile] = Field(default_factory=_default_profiles)
    task_presets: dict[str, str] = Field(default_factory=_default_task_presets)
    default_profile: str = DEFAULT_PROFILE_NAME
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    timeouts: Timeouts = Field(default_factory=Timeouts)


def config_path() -> Path:
    """Return the path of the config file (which may not exist)."""
    explicit = os.environ.get("GIT_AI_CONFIG")
    if explicit:
        return Path(explicit).expanduser()

    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / "git-ai" / "config.json"
    return Path.home() / ".config" / "git-ai" / "config.json"


def load_settings(path: Optional[Path] = None) -> LLMSettings:
    """Load the LLM settings snapshot.

    A missing file, an unreadable file, or a file without an ``llm``
    section all give the defaults. Bad content is logged, not raised:
    the CLI must stay usable enough to reach the settings command.
    """
    path = path or config_path()
    if not path.exists():
        log.debug(logger, MODULE, "load_skipped", "No config file, using defaults",
                  path=str(path))
        return LLMSettings()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.warning(logger, MODULE, "load_failed", "Could not read config file, using defaults",
                    path=str(path), error=str(e))
        return LLMSettings()

    section = raw.get("llm") if isinstance(raw, dict) else None
    if not section:
        return LLMSettings()

    try:
        settings = LLMSettings.model_validate(section)
    except ValidationError as e:
        log.warning(logger, MODULE, "validate_failed", "Invalid llm section, using defaults",
                    path=str(path), error=str(e))
        return LLMSettings()

    log.debug(logger, MODULE, "load_done", "Loaded LLM settings",
              path=str(path), profiles=len(settings.profiles),
              default_profile=settings.default_profile)
    return settings
