"""Pydantic schemas for structured data validation.

This package contains:
- llm_outputs.py: Schemas for validating structured LLM outputs

Structured LLM outputs are validated against these models BEFORE being
used by any command. This provides a clear contract and catches
malformed outputs early.
"""

from gitai.schemas.llm_outputs import (
    BranchSuggestion,
    PRSuggestion,
    ReleaseNotes,
)

__all__ = [
    "BranchSuggestion",
    "PRSuggestion",
    "ReleaseNotes",
]
