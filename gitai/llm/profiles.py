"""Task → profile resolution.

Resolution order for a task:
  1. explicit profile name from InvokeOptions
  2. the task's preset in ``task_presets``
  3. ``default_profile``

The result is a list (the candidate chain) so the invoker can walk
several profiles in order. Today it always holds exactly one entry.
"""

from dataclasses import dataclass
from typing import Optional

from gitai.config.settings import TASKS, LLMProfile, LLMSettings
from gitai.llm.errors import ConfigurationError
from gitai.utils.logging import log, get_logger

MODULE = "llm.profiles"
logger = get_logger()


@dataclass(frozen=True)
class ProfileCandidate:
    name: str
    profile: LLMProfile


def missing_model_message(provider: str) -> str:
    return f"Missing model for provider '{provider}'. Configure it via 'git-ai settings'."


def resolve_profile_chain(
    task: str,
    settings: LLMSettings,
    override_name: Optional[str] = None,
) -> list[ProfileCandidate]:
    """Return the ordered candidate profiles for a task.

    Raises:
        ConfigurationError: unknown task, unknown profile name, or a
            profile without a model. Nothing here is worth retrying.
    """
    if task not in TASKS:
        raise ConfigurationError(f"Unknown LLM task '{task}'")

    name = override_name or settings.task_presets.get(task) or settings.default_profile
    profile = settings.profiles.get(name)
    if profile is None:
        raise ConfigurationError(f"LLM profile '{name}' not found")

    if not profile.model or not profile.model.strip():
        raise ConfigurationError(missing_model_message(profile.provider))

    log.debug(logger, MODULE, "resolve_done", "Resolved profile for task",
              task=task, profile=name, provider=profile.provider, model=profile.model,
              override=override_name)
    return [ProfileCandidate(name=name, profile=profile)]
