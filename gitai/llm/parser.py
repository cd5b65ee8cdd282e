"""JSON extraction from LLM responses.

Models asked for "only JSON" still wrap it in markdown fences, prepend
"Here is the result:", or (local reasoning models) emit <think> blocks
first. This module recovers the JSON object from raw output.
"""

import json
import re
from typing import Any, Optional

from gitai.llm.errors import MalformedResponseError
from gitai.utils.logging import log, get_logger

MODULE = "llm.parser"
logger = get_logger()

_FENCED = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_THINK = re.compile(r"<think>(.*?)</think>", re.DOTALL)


def strip_think_tags(raw: str) -> tuple[str, Optional[str]]:
    """Strip a leading <think>...</think> block from reasoning model output.

    Returns:
        (content_after_think, thinking) or (raw, None) if there is no block.
    """
    think_match = _THINK.search(raw)
    if think_match:
        thinking = think_match.group(1)
        after = raw[think_match.end():].strip()
        return after, thinking
    return raw, None


def extract_json_object(raw: str) -> Any:
    """Extract the JSON object from LLM output.

    Strategies, first successful parse wins:
      1. Fenced block: ```json\\n{...}\\n``` or bare ```\\n{...}\\n```
      2. The whole trimmed text
      3. Everything from the first "{" to the last "}"

    Raises:
        MalformedResponseError: empty output, or nothing parses.
    """
    text = raw.strip()
    if not text:
        raise MalformedResponseError("Received empty model response", raw_output=raw)

    stripped, thinking = strip_think_tags(text)
    if thinking is not None:
        log.debug(logger, MODULE, "stripped_think", "Stripped <think> tags from response")
        # Keep the full text if the think block was all there was
        text = stripped or text

    fenced = _FENCED.search(text)
    if fenced and fenced.group(1):
        try:
            return json.loads(fenced.group(1))
        except json.JSONDecodeError:
            pass

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise MalformedResponseError(
        f"Could not find valid JSON object in model response ({len(text)} chars)",
        raw_output=raw,
    )
