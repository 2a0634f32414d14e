"""Tests for pe2/prompt_parser.py - multi-tier PE2 recovery."""

import json

import pytest

from pe2.llm.errors import ParseError
from pe2.prompt_parser import (
    PLACEHOLDERS,
    brace_extract_parse,
    extract_brace_span,
    extract_field,
    parse_prompt,
    parse_prompt_with_method,
    quote_keys,
    remove_trailing_commas,
    source_templates,
    strict_parse,
)
from pe2.schema import PE2Prompt


@pytest.fixture
def prompt():
    return PE2Prompt(
        context="A team is migrating a monolith to services.",
        role="Principal software architect",
        task=["Identify service boundaries", "Propose a migration order"],
        constraints="Keep downtime under 5 minutes",
        output={"format": "markdown", "sections": ["Summary", "Plan"]},
    )


class TestRepairHelpers:
    """Syntax repair helpers."""

    def test_trailing_comma_in_object(self):
        assert remove_trailing_commas('{"key": "value",}') == '{"key": "value"}'

    def test_nested_trailing_commas(self):
        assert remove_trailing_commas('{"a": [1, 2,], "b": 3,}') == '{"a": [1, 2], "b": 3}'

    def test_unquoted_keys(self):
        assert quote_keys('{key1: "value1", key2: "value2"}') == '{"key1": "value1", "key2": "value2"}'

    def test_already_quoted_keys(self):
        assert quote_keys('{"key": "value"}') == '{"key": "value"}'

    def test_extract_brace_span(self):
        assert extract_brace_span('Sure! {"a": {"b": 1}} Hope it helps') == '{"a": {"b": 1}}'

    def test_extract_brace_span_missing(self):
        with pytest.raises(ParseError):
            extract_brace_span("no braces here")

    def test_extract_brace_span_reversed(self):
        with pytest.raises(ParseError):
            extract_brace_span("} backwards {")


class TestStrictTier:
    """Tier 1: whole-text JSON."""

    def test_round_trip(self, prompt):
        parsed, method = parse_prompt_with_method(prompt.to_json())
        assert method == "strict"
        assert parsed == prompt
        assert parsed.to_dict() == prompt.to_dict()

    def test_surrounding_whitespace(self, prompt):
        parsed, method = parse_prompt_with_method("\n  " + prompt.to_json() + "\n")
        assert method == "strict"
        assert parsed == prompt

    def test_missing_field_rejected(self):
        with pytest.raises(ParseError, match="task"):
            strict_parse(json.dumps({"context": "c", "role": "r", "constraints": "x", "output": "o"}))

    def test_empty_list_rejected(self):
        data = {"context": "c", "role": "r", "task": [], "constraints": "x", "output": "o"}
        with pytest.raises(ParseError):
            strict_parse(json.dumps(data))

    def test_array_rejected(self):
        with pytest.raises(ParseError):
            strict_parse("[1, 2, 3]")


class TestBraceTier:
    """Tier 2: brace extraction with repair."""

    def test_prose_and_fence_wrapped(self, valid_reply):
        text = f"Here is your prompt:\n```json\n{valid_reply()}\n```\nLet me know!"
        parsed, method = parse_prompt_with_method(text)
        assert method == "brace_extraction"
        assert parsed.role == "Senior technical writer"

    def test_trailing_comma(self):
        text = (
            '{"context": "c", "role": "r", "task": "t", '
            '"constraints": "x", "output": "o",}'
        )
        parsed, method = parse_prompt_with_method(text)
        assert method == "brace_extraction"
        assert parsed.output == "o"

    def test_unquoted_keys(self):
        text = '{context: "c", role: "r", task: "t", constraints: "x", output: "o"}'
        parsed, method = parse_prompt_with_method(text)
        assert method == "brace_extraction"
        assert parsed.context == "c"

    def test_missing_fields_filled_with_placeholders(self):
        text = 'Result: {"context": "Quarterly sales data", "role": "Analyst"}'
        parsed, method = parse_prompt_with_method(text)
        assert method == "field_validation"
        assert parsed.context == "Quarterly sales data"
        assert parsed.role == "Analyst"
        assert parsed.task == PLACEHOLDERS["task"]
        assert parsed.constraints == "Follow best practices"
        assert parsed.output == "Provide appropriate output"

    def test_empty_string_field_counts_as_missing(self):
        text = '{"context": "", "role": "r", "task": "t", "constraints": "x", "output": "o"}'
        parsed, method = parse_prompt_with_method(text)
        assert method == "field_validation"
        assert parsed.context == "No context provided"

    def test_idempotent_on_valid_text(self, prompt):
        first, _ = brace_extract_parse(prompt.to_json())
        second, method = brace_extract_parse(first.to_json())
        assert first == prompt
        assert second == first
        assert method == "brace_extraction"

    def test_object_without_fields_rejected(self):
        with pytest.raises(ParseError, match="none of the PE2 fields"):
            brace_extract_parse('{"answer": 42}')


class TestFieldExtractionTier:
    """Tier 3: per-field patterns."""

    def test_markdown_bold_keys(self):
        text = "**Context**: Building a web app\n**Role**: Senior engineer\n"
        parsed, method = parse_prompt_with_method(text, "Build me a web app")
        assert method == "field_extraction"
        assert parsed.context == "Building a web app"
        assert parsed.role == "Senior engineer"
        assert parsed.task == "Complete the task as described in the user's prompt"

    def test_bold_with_colon_inside(self):
        assert extract_field("**Role:** Data scientist", "role") == "Data scientist"

    def test_bare_key_lines(self):
        text = "Context: Legacy billing system\nRole: Refactoring expert\nTask: Split modules"
        parsed, method = parse_prompt_with_method(text)
        assert method == "field_extraction"
        assert parsed.context == "Legacy billing system"
        assert parsed.task == "Split modules"
        assert parsed.constraints == "Ensure accuracy, clarity, and adherence to best practices"
        assert parsed.output == "Deliver a comprehensive and well-structured response"

    def test_single_quoted_pairs(self):
        text = "{'context': 'ctx text', 'role': 'Reviewer'}"
        parsed, method = parse_prompt_with_method(text)
        assert method == "field_extraction"
        assert parsed.context == "ctx text"
        assert parsed.role == "Reviewer"

    def test_double_quoted_with_escapes(self):
        text = 'garbled "context": "say \\"hi\\" twice", oops'
        assert extract_field(text, "context") == 'say "hi" twice'

    def test_context_template_from_source(self):
        parsed = parse_prompt("Role: Analyst", source_prompt="Explain churn drivers")
        assert parsed.context == "Context based on: Explain churn drivers"

    def test_context_template_truncates_long_source(self):
        source = "x" * 300
        context = source_templates(source)["context"]
        assert context == "Context based on: " + "x" * 200 + "..."

    def test_requires_colon_for_bare_key(self):
        assert extract_field("The role of the team is unclear", "role") is None


class TestIrrecoverable:
    """Inputs no tier can use."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "I'm sorry, I can't help with that.",
            "[1, 2, 3]",
            '{"answer": 42}',
        ],
    )
    def test_returns_none(self, text):
        parsed, method = parse_prompt_with_method(text)
        assert parsed is None
        assert method == ""

    def test_none_input(self):
        assert parse_prompt(None) is None

    def test_deeply_nested_array(self):
        parsed, method = parse_prompt_with_method("[" * 100000)
        assert parsed is None
        assert method == ""

    def test_deeply_nested_object(self):
        text = '{"answer": ' + "[" * 100000 + "}"
        assert parse_prompt(text) is None

    def test_deep_nesting_falls_through_to_field_extraction(self):
        text = '{"role": "Release manager", "notes": ' + "[" * 100000 + "}"

        parsed, method = parse_prompt_with_method(text, "Plan a release")

        assert method == "field_extraction"
        assert parsed.role == "Release manager"

    def test_strict_tier_reports_nesting_as_parse_error(self):
        with pytest.raises(ParseError, match="too deep"):
            strict_parse("[" * 100000)
