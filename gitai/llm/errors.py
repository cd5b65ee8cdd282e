"""Exception hierarchy for LLM invocation.

  LLMError
  ├── ConfigurationError          fail fast, never retried
  │   └── BackendUnavailableError  optional provider package missing
  ├── MissingCredentialError      fail fast, never retried
  ├── ProviderInvocationError     transient, retried
  │   ├── SchemaIncompatibilityError
  │   ├── MalformedResponseError
  │   └── ResponseValidationError
  └── InvocationFailedError       terminal, after all attempts

Callers catch ConfigurationError / MissingCredentialError to point the
user at ``git-ai settings`` and InvocationFailedError for everything else.
"""

from typing import Optional


class LLMError(Exception):
    """Base class for all invocation errors."""


class ConfigurationError(LLMError):
    """Unknown profile, missing model or unknown task."""


class BackendUnavailableError(ConfigurationError):
    """The provider's client package is not installed."""


class MissingCredentialError(LLMError):
    """Provider requires an API key and none could be resolved."""

    def __init__(self, provider: str, api_key_env: Optional[str] = None):
        hint = f" (set {api_key_env})" if api_key_env else ""
        super().__init__(f"Missing API key for provider '{provider}'{hint}")
        self.provider = provider
        self.api_key_env = api_key_env


class ProviderInvocationError(LLMError):
    """A provider call failed in a way worth retrying."""


class SchemaIncompatibilityError(ProviderInvocationError):
    """Native structured output rejected the schema."""

    def __init__(self, provider: str, signature: str, message: str):
        super().__init__(message)
        self.provider = provider
        self.signature = signature


class MalformedResponseError(ProviderInvocationError):
    """No JSON object could be recovered from the response text."""

    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output


class ResponseValidationError(ProviderInvocationError):
    """Parsed output did not match the target schema."""


class InvocationFailedError(LLMError):
    """Raised when every candidate profile exhausted its attempts."""

    def __init__(
        self,
        message: str,
        task: str,
        attempts: int = 0,
        last_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.task = task
        self.attempts = attempts
        self.last_error = last_error


# Errors that skip the retry loop entirely.
FAIL_FAST_ERRORS = (ConfigurationError, MissingCredentialError)
