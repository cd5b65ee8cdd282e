"""Structured output across providers.

Providers disagree on schema-constrained responses, so there are two paths:

  NATIVE:   client.invoke_structured(schema, messages)
            (LangChain with_structured_output / tool calling)

  FALLBACK: append "return only JSON" instructions (plus the JSON schema)
            to the prompt, invoke in plain text mode, extract the JSON
            object from the reply, then validate it.

Gemini always takes the fallback path: its native mode rejects common
JSON-schema keywords and additional-property settings. Every other
provider tries native first and escalates to the fallback only when the
error matches one of its known schema-failure signatures. Escalation
happens at most once per attempt.
"""

import json
from typing import Any, Callable, Optional, Type, TypeVar

from pydantic import BaseModel, PydanticUserError, ValidationError

from gitai.llm.client import ProviderClient, build_messages
from gitai.llm.errors import ResponseValidationError, SchemaIncompatibilityError
from gitai.llm.parser import extract_json_object
from gitai.utils.logging import log, get_logger

MODULE = "llm.structured"
logger = get_logger()

T = TypeVar("T", bound=BaseModel)

# (model) -> (is_valid, error_message)
SemanticValidator = Callable[[Any], tuple[bool, str]]

JSON_ONLY_PROVIDERS = frozenset({"gemini"})

# Lower-cased substrings of provider errors caused by the schema itself,
# not by the network or the model's answer.
_SHARED_SIGNATURES = (
    "response_schema",
    "exclusiveminimum",
    "invalid json payload",
)

SCHEMA_FAILURE_SIGNATURES: dict[str, tuple[str, ...]] = {
    "openai": _SHARED_SIGNATURES + ("invalid schema for response_format",),
    "custom-openai-compatible": _SHARED_SIGNATURES + ("invalid schema for response_format",),
    "anthropic": _SHARED_SIGNATURES + ("input_schema",),
    "ollama": _SHARED_SIGNATURES,
    "gemini": _SHARED_SIGNATURES,
}


def uses_json_fallback(provider: str) -> bool:
    """True when a provider must never use native structured output."""
    return provider in JSON_ONLY_PROVIDERS


def match_schema_failure(provider: str, error: BaseException) -> Optional[str]:
    """Return the signature an error matches, or None."""
    message = str(error).lower()
    for signature in SCHEMA_FAILURE_SIGNATURES.get(provider, _SHARED_SIGNATURES):
        if signature in message:
            return signature
    return None


def schema_json(schema: Type[BaseModel]) -> Optional[dict]:
    """JSON schema for a model, or None if pydantic cannot produce one."""
    try:
        return schema.model_json_schema()
    except PydanticUserError as e:
        log.debug(logger, MODULE, "schema_skipped", "No JSON schema for model",
                  schema=schema.__name__, error=str(e))
        return None


def build_fallback_prompt(prompt: str, schema: Type[BaseModel]) -> str:
    json_schema = schema_json(schema)
    lines = [
        prompt,
        "",
        "Return ONLY a valid JSON object.",
        "Do not include markdown fences.",
        "Do not include explanations.",
    ]
    if json_schema is not None:
        lines.append("Match this JSON schema exactly:")
        lines.append(json.dumps(json_schema, indent=2))
    return "\n".join(lines)


def validate_output(
    schema: Type[T],
    data: Any,
    semantic_validator: Optional[SemanticValidator] = None,
) -> T:
    """Validate parsed output against the schema, then semantically.

    Raises:
        ResponseValidationError: schema or semantic check failed.
    """
    try:
        validated = schema.model_validate(data)
    except ValidationError as e:
        raise ResponseValidationError(
            f"Response did not match {schema.__name__}: {e}"
        ) from e

    if semantic_validator:
        is_valid, semantic_error = semantic_validator(validated)
        if not is_valid:
            raise ResponseValidationError(f"Semantic: {semantic_error}")

    return validated


async def invoke_json_fallback(
    client: ProviderClient,
    prompt: str,
    schema: Type[T],
    *,
    system_prompt: Optional[str] = None,
    semantic_validator: Optional[SemanticValidator] = None,
) -> T:
    """Prompt for bare JSON, extract it from the text reply, validate it."""
    messages = build_messages(build_fallback_prompt(prompt, schema), system_prompt)
    raw = await client.invoke(messages)
    parsed = extract_json_object(raw)
    return validate_output(schema, parsed, semantic_validator)


async def invoke_structured_once(
    client: ProviderClient,
    prompt: str,
    schema: Type[T],
    *,
    system_prompt: Optional[str] = None,
    semantic_validator: Optional[SemanticValidator] = None,
) -> T:
    """One structured attempt: native, fallback, or native then fallback."""
    provider = client.provider

    if uses_json_fallback(provider) or not client.supports_native_structured:
        return await invoke_json_fallback(
            client, prompt, schema,
            system_prompt=system_prompt, semantic_validator=semantic_validator,
        )

    try:
        output = await invoke_native(client, schema, prompt, system_prompt=system_prompt)
    except SchemaIncompatibilityError as e:
        log.warning(logger, MODULE, "native_fallback",
                    "Native structured output rejected schema, using JSON fallback",
                    provider=provider, schema=schema.__name__, signature=e.signature,
                    error=str(e))
        return await invoke_json_fallback(
            client, prompt, schema,
            system_prompt=system_prompt, semantic_validator=semantic_validator,
        )

    return validate_output(schema, output, semantic_validator)


async def invoke_native(
    client: ProviderClient,
    schema: Type[BaseModel],
    prompt: str,
    *,
    system_prompt: Optional[str] = None,
) -> Any:
    """Native structured call.

    Raises:
        SchemaIncompatibilityError: the provider rejected the schema.
        Anything else the client raises, unchanged.
    """
    try:
        return await client.invoke_structured(schema, build_messages(prompt, system_prompt))
    except Exception as e:
        signature = match_schema_failure(client.provider, e)
        if signature is None:
            raise
        raise SchemaIncompatibilityError(client.provider, signature, str(e)) from e
