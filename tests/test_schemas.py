"""Tests for Pydantic output schemas."""

import pytest
from gitai.schemas import BranchSuggestion, PRSuggestion, ReleaseNotes


def test_pr_suggestion_valid():
    pr = PRSuggestion(title="Add retry to LLM calls", description="## Summary\n...")
    assert pr.title == "Add retry to LLM calls"


def test_pr_suggestion_title_single_line():
    pr = PRSuggestion(title="  Add retry\nextra line", description="body")
    assert pr.title == "Add retry"


def test_pr_suggestion_long_trailing_lines_do_not_fail_length():
    """Only the first line counts against the title length limit."""
    pr = PRSuggestion(title="A" * 50 + "\n" + "B" * 200, description="body")
    assert pr.title == "A" * 50


def test_pr_suggestion_long_first_line_rejected():
    with pytest.raises(Exception):
        PRSuggestion(title="A" * 121 + "\nshort", description="body")


def test_pr_suggestion_empty_title():
    with pytest.raises(Exception):
        PRSuggestion(title="", description="body")


def test_release_notes_requires_title():
    with pytest.raises(Exception):
        ReleaseNotes(notes="...")


def test_branch_name_normalized():
    branch = BranchSuggestion(name="Feat/Add Login Page!")
    assert branch.name == "feat/add-login-page"
    assert branch.reason == ""


def test_branch_name_unusable():
    with pytest.raises(Exception):
        BranchSuggestion(name="!!!")
