"""Tests for pe2/templates.py - meta-prompt rendering."""

from pe2.schema import RefinementHistoryEntry
from pe2.templates import (
    SessionContext,
    build_initial_prompt,
    build_refinement_prompt,
    format_history,
)


def test_initial_prompt_contains_raw_prompt_and_contract():
    text = build_initial_prompt("Summarize {these} notes")

    assert "Summarize {these} notes" in text
    assert "- Domain: general" in text
    assert "- Average complexity: unknown" in text
    assert "- Adaptive features: standard_optimization" in text
    assert 'Return ONLY the JSON object with keys: "context", "role", "task", "constraints", "output"' in text
    assert "Establishes clear context" in text


def test_initial_prompt_domain_hints():
    code = build_initial_prompt("Fix the bug", SessionContext(domain="code"))
    creative = build_initial_prompt("Write a poem", SessionContext(domain="creative"))
    analytical = build_initial_prompt("Compare vendors", SessionContext(domain="analytical"))

    assert "Include technical background and dependencies" in code
    assert "Creative expert with domain knowledge" in creative
    assert "Step-by-step analytical framework" in analytical


def test_initial_prompt_session_continuity():
    text = build_initial_prompt("Next one", SessionContext(session_length=5, avg_complexity=7.25))
    assert "Preserves conversation continuity" in text
    assert "- Session history: 5 previous prompts" in text
    assert "- Average complexity: 7.2" in text


def test_refinement_prompt():
    history = [RefinementHistoryEntry(iteration=1, edits="Initial prompt generation.")]
    current = '{"context": "c", "role": "r"}'

    text = build_refinement_prompt(current, history)

    assert current in text
    assert "- 1: Initial prompt generation." in text
    assert "- Refinement iteration: 2" in text
    assert "initial optimization phase" in text
    assert "Provide exactly 5 targeted improvements" in text
    assert '"context": "...",' in text
    assert "DOMAIN-SPECIFIC ANALYSIS" not in text


def test_refinement_prompt_domain_checks_and_late_phase():
    history = [RefinementHistoryEntry(iteration=i, edits=f"edit {i}") for i in (1, 2, 3)]
    session = SessionContext(domain="code", avg_complexity=17)

    text = build_refinement_prompt("{}", history, session)

    assert "DOMAIN-SPECIFIC ANALYSIS for code:" in text
    assert "- Ensure error handling is addressed" in text
    assert "iterative improvement needed" in text
    assert "Is complex reasoning properly structured?" in text


def test_format_history_empty():
    assert format_history([]) == "No previous refinements"
