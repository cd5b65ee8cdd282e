"""Pydantic schemas for structured LLM outputs.

These schemas define the EXACT structure expected from each structured
invocation. Responses are validated against them before any command uses
them, whichever path (native or JSON fallback) produced the data.
"""

import re

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# PULL REQUESTS
# =============================================================================

class PRSuggestion(BaseModel):
    """Title and markdown body for a pull request."""

    title: str = Field(
        min_length=1,
        max_length=120,
        description="Clear, specific PR title (aim for under 72 characters)",
    )
    description: str = Field(
        min_length=1,
        description="Markdown body: summary, key changes, relevant context",
    )

    @field_validator("title", mode="before")
    @classmethod
    def single_line_title(cls, v):
        # Runs before the length check so a long second line does not fail it
        if isinstance(v, str) and v.strip():
            return v.strip().splitlines()[0].strip()
        return v


# =============================================================================
# RELEASES
# =============================================================================

class ReleaseNotes(BaseModel):
    """Release title and notes."""

    title: str = Field(min_length=1, description="Release title, usually the version tag")
    notes: str = Field(description="Markdown release notes")


# =============================================================================
# BRANCHES
# =============================================================================

_BRANCH_INVALID = re.compile(r"[^a-z0-9/._-]+")


class BranchSuggestion(BaseModel):
    """A git branch name and why it fits."""

    name: str = Field(
        min_length=1,
        description="Branch name like feat/add-login (lowercase, dash-separated)",
    )
    reason: str = Field(default="", description="One-line justification")

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Coerce into a valid ref name: lowercase, no spaces."""
        name = _BRANCH_INVALID.sub("-", v.strip().lower()).strip("-/")
        if not name:
            raise ValueError("branch name is empty after normalization")
        return name
