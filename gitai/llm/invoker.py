"""Unified LLM invocation with profile resolution, retry and validation.

Every command that needs generated text goes through this module:

  text  = await invoke_text("commit", prompt)
  notes = await invoke_structured("release", prompt, ReleaseNotes)

Lifecycle of one call:

  1. RESOLVE: task → candidate profile(s); configuration errors raise now
  2. BUILD:   profile → provider client (key, temperature, base URL)
  3. INVOKE:  text call, or structured call (native / JSON fallback)
  4. RETRY:   on failure sleep backoff_ms * attempt, try the same profile
  5. FAIL:    after the last attempt raise one InvocationFailedError

Configuration, credential and missing-backend errors skip steps 2-5
entirely so the CLI can say "configure a model" instead of "service
unavailable".
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from gitai.config.settings import LLMSettings, ReasoningEffort, load_settings
from gitai.llm.client import ClientCache, ProviderClient, build_client, build_messages
from gitai.llm.errors import (
    FAIL_FAST_ERRORS,
    InvocationFailedError,
    ProviderInvocationError,
)
from gitai.llm.profiles import ProfileCandidate, resolve_profile_chain
from gitai.llm.structured import SemanticValidator, invoke_structured_once
from gitai.utils.logging import log, get_logger

MODULE = "llm.invoker"
logger = get_logger()

T = TypeVar("T", bound=BaseModel)

MIN_BACKOFF_MS = 100

SettingsLoader = Callable[[], Union[LLMSettings, Awaitable[LLMSettings]]]
ClientBuilder = Callable[..., ProviderClient]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class InvokeOptions:
    """Per-call overrides."""

    profile_name: Optional[str] = None
    temperature: Optional[float] = None
    reasoning_effort: Optional[ReasoningEffort] = None
    system_prompt: Optional[str] = None


class LLMInvoker:
    """Resolves profiles, builds clients and runs the retry loop.

    Args:
        settings: Configuration snapshot source. Either a snapshot, or a
            callable returning one (sync or async). Read once per call.
        client_builder: Builds a ProviderClient from a candidate.
            Defaults to llm.client.build_client.
        cache: Optional ClientCache shared across calls. Owned by the
            caller; the invoker never clears it.
        sleep: Coroutine used for backoff pauses (seconds).
    """

    def __init__(
        self,
        settings: Union[LLMSettings, SettingsLoader, None] = None,
        *,
        client_builder: ClientBuilder = build_client,
        cache: Optional[ClientCache] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._settings = settings if settings is not None else load_settings
        self._client_builder = client_builder
        self._cache = cache
        self._sleep = sleep

    async def load_settings(self) -> LLMSettings:
        if isinstance(self._settings, LLMSettings):
            return self._settings
        settings = self._settings()
        if inspect.isawaitable(settings):
            settings = await settings
        return settings

    async def invoke_text(
        self,
        task: str,
        prompt: str,
        options: Optional[InvokeOptions] = None,
    ) -> str:
        """Invoke the task's model and return trimmed, non-empty text.

        Raises:
            ConfigurationError: bad task/profile/model, or backend missing.
            MissingCredentialError: provider needs a key, none set.
            InvocationFailedError: every attempt failed.
        """
        options = options or InvokeOptions()

        async def call(client: ProviderClient) -> str:
            text = await client.invoke(build_messages(prompt, options.system_prompt))
            if not text:
                raise ProviderInvocationError("Received empty model response")
            return text

        return await self._run(task, "LLM invocation", options, call)

    async def invoke_structured(
        self,
        task: str,
        prompt: str,
        schema: Type[T],
        options: Optional[InvokeOptions] = None,
        *,
        semantic_validator: Optional[SemanticValidator] = None,
    ) -> T:
        """Invoke the task's model and return a validated ``schema`` instance.

        Args:
            semantic_validator: Optional (model) -> (is_valid, error) check
                run after schema validation. A rejection is retried.

        Raises:
            Same as invoke_text.
        """
        options = options or InvokeOptions()

        async def call(client: ProviderClient) -> T:
            return await invoke_structured_once(
                client, prompt, schema,
                system_prompt=options.system_prompt,
                semantic_validator=semantic_validator,
            )

        return await self._run(task, "LLM structured invocation", options, call,
                               schema=schema.__name__)

    async def _run(
        self,
        task: str,
        label: str,
        options: InvokeOptions,
        call: Callable[[ProviderClient], Awaitable[Any]],
        **log_ctx,
    ) -> Any:
        settings = await self.load_settings()
        attempts = max(1, settings.retry.max_attempts)
        backoff_ms = max(MIN_BACKOFF_MS, settings.retry.backoff_ms)
        timeout_s = settings.timeouts.request_ms / 1000 if settings.timeouts.request_ms > 0 else None

        candidates = resolve_profile_chain(task, settings, options.profile_name)

        log.info(logger, MODULE, "invoke_start", f"{label} for {task}",
                 task=task, profile=candidates[0].name, attempts=attempts, **log_ctx)

        last_error: Optional[BaseException] = None
        total_attempts = 0

        for candidate in candidates:
            for attempt in range(1, attempts + 1):
                total_attempts += 1
                try:
                    _t0 = time.monotonic()
                    client = self._build(candidate, options)
                    result = await asyncio.wait_for(call(client), timeout=timeout_s)
                    latency_ms = int((time.monotonic() - _t0) * 1000)

                    log.info(logger, MODULE, "invoke_done", f"{label} succeeded for {task}",
                             task=task, profile=candidate.name,
                             provider=candidate.profile.provider,
                             attempt=attempt, latency_ms=latency_ms, **log_ctx)
                    return result

                except FAIL_FAST_ERRORS:
                    raise
                except asyncio.TimeoutError:
                    last_error = ProviderInvocationError(
                        f"Request timed out after {settings.timeouts.request_ms}ms"
                    )
                except Exception as e:
                    last_error = e

                log.warning(logger, MODULE, "attempt_failed", f"{label} attempt failed for {task}",
                            task=task, profile=candidate.name,
                            provider=candidate.profile.provider, attempt=attempt,
                            error=str(last_error), error_type=type(last_error).__name__)

                if attempt < attempts:
                    await self._sleep(backoff_ms * attempt / 1000)

        log.error(logger, MODULE, "invoke_failed", f"{label} failed for {task}",
                  error=str(last_error), error_type=type(last_error).__name__,
                  task=task, attempts=total_attempts)
        raise InvocationFailedError(
            f"{label} failed for task '{task}': {last_error}",
            task=task,
            attempts=total_attempts,
            last_error=last_error,
        )

    def _build(self, candidate: ProfileCandidate, options: InvokeOptions) -> ProviderClient:
        kwargs: dict[str, Any] = {
            "temperature": options.temperature,
            "reasoning_effort": options.reasoning_effort,
        }
        if self._cache is not None:
            kwargs["cache"] = self._cache
        return self._client_builder(candidate, **kwargs)


_default_invoker: Optional[LLMInvoker] = None


def get_invoker() -> LLMInvoker:
    """Shared invoker reading configuration from disk on every call."""
    global _default_invoker
    if _default_invoker is None:
        _default_invoker = LLMInvoker()
    return _default_invoker


async def invoke_text(
    task: str,
    prompt: str,
    options: Optional[InvokeOptions] = None,
) -> str:
    return await get_invoker().invoke_text(task, prompt, options)


async def invoke_structured(
    task: str,
    prompt: str,
    schema: Type[T],
    options: Optional[InvokeOptions] = None,
    *,
    semantic_validator: Optional[SemanticValidator] = None,
) -> T:
    return await get_invoker().invoke_structured(
        task, prompt, schema, options, semantic_validator=semantic_validator,
    )
