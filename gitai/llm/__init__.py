"""LLM invocation package.

This package is the only way commands talk to a model:

  from gitai.llm import invoke_text, invoke_structured, InvokeOptions

  # Free text (commit message, branch name, report prose)
  message = await invoke_text("commit", prompt)

  # Validated structured output (preferred for anything parsed later)
  notes = await invoke_structured("release", prompt, ReleaseNotes)

  # Explicit profile, hotter sampling
  text = await invoke_text("unwrapped", prompt,
                           InvokeOptions(profile_name="local", temperature=0.9))

Architecture:
  registry.py   → Provider catalog (base URLs, key env vars)
  profiles.py   → Task → profile resolution
  client.py     → One client class per provider, request quirks, ClientCache
  parser.py     → JSON extraction from raw LLM output
  structured.py → Native vs JSON-fallback structured output
  invoker.py    → Resolve-build-invoke-retry orchestration
  errors.py     → Exception hierarchy
"""

# Registry
from gitai.llm.registry import (
    ProviderMeta,
    get_provider_meta,
    list_providers,
    provider_requires_api_key,
)

# Profiles
from gitai.llm.profiles import ProfileCandidate, resolve_profile_chain

# Clients
from gitai.llm.client import (
    ClientCache,
    ClientSettings,
    ProviderClient,
    build_client,
    resolve_api_key,
    resolve_client_settings,
)

# Parsing / structured output
from gitai.llm.parser import extract_json_object
from gitai.llm.structured import (
    build_fallback_prompt,
    match_schema_failure,
    uses_json_fallback,
)

# Unified invocation
from gitai.llm.invoker import (
    InvokeOptions,
    LLMInvoker,
    get_invoker,
    invoke_structured,
    invoke_text,
)

# Errors
from gitai.llm.errors import (
    BackendUnavailableError,
    ConfigurationError,
    InvocationFailedError,
    LLMError,
    MalformedResponseError,
    MissingCredentialError,
    ProviderInvocationError,
    ResponseValidationError,
    SchemaIncompatibilityError,
)

__all__ = [
    # Registry
    "ProviderMeta",
    "get_provider_meta",
    "list_providers",
    "provider_requires_api_key",
    # Profiles
    "ProfileCandidate",
    "resolve_profile_chain",
    # Clients
    "ClientCache",
    "ClientSettings",
    "ProviderClient",
    "build_client",
    "resolve_api_key",
    "resolve_client_settings",
    # Parsing
    "extract_json_object",
    "build_fallback_prompt",
    "match_schema_failure",
    "uses_json_fallback",
    # Invoker
    "InvokeOptions",
    "LLMInvoker",
    "get_invoker",
    "invoke_structured",
    "invoke_text",
    # Errors
    "BackendUnavailableError",
    "ConfigurationError",
    "InvocationFailedError",
    "LLMError",
    "MalformedResponseError",
    "MissingCredentialError",
    "ProviderInvocationError",
    "ResponseValidationError",
    "SchemaIncompatibilityError",
]
