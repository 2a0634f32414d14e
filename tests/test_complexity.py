"""Tests for pe2/complexity.py - prompt difficulty scoring."""

import pytest

from pe2.complexity import (
    Difficulty,
    analyze_complexity,
    band_for_score,
    length_score,
    special_char_score,
)


def filler(count: int) -> str:
    return " ".join(["lorem"] * count)


class TestBands:
    """Score to tier mapping."""

    @pytest.mark.parametrize(
        "score,difficulty,iterations",
        [
            (0, Difficulty.NOVICE, 1),
            (4, Difficulty.NOVICE, 1),
            (5, Difficulty.INTERMEDIATE, 2),
            (8, Difficulty.INTERMEDIATE, 2),
            (9, Difficulty.ADVANCED, 3),
            (12, Difficulty.ADVANCED, 3),
            (13, Difficulty.EXPERT, 4),
            (16, Difficulty.EXPERT, 4),
            (17, Difficulty.MASTER, 5),
            (20, Difficulty.MASTER, 5),
        ],
    )
    def test_band_for_score(self, score, difficulty, iterations):
        assert band_for_score(score) == (difficulty, iterations)


class TestSubScores:
    """Individual capped factors."""

    @pytest.mark.parametrize(
        "words,expected",
        [(0, 0), (60, 0), (61, 1), (120, 1), (121, 2), (251, 3), (401, 4), (1000, 4)],
    )
    def test_length_score(self, words, expected):
        assert length_score(words) == expected

    def test_special_char_score(self):
        assert special_char_score("plain text") == 0
        assert special_char_score("a; b; c") == 1
        assert special_char_score("a;b;c;d;{e}[f]") == 2

    def test_technical_keywords_capped(self):
        text = "python java rust docker kubernetes database api"
        assert analyze_complexity(text).factors["technical_keywords"] == 4

    def test_keywords_match_inside_words(self):
        # "go" in "good", "ai" in "email"
        assert analyze_complexity("a good email").factors["technical_keywords"] == 2

    def test_cpp_keyword(self):
        assert analyze_complexity("write it in c++ please").factors["technical_keywords"] == 1

    def test_keywords_case_insensitive(self):
        result = analyze_complexity("PYTHON Kubernetes COMPLIANCE")
        assert result.factors["technical_keywords"] == 2
        assert result.factors["domain_keywords"] == 1

    def test_multiword_domain_keyword(self):
        assert analyze_complexity("optimize the supply chain").factors["domain_keywords"] == 1

    def test_structural_cues(self):
        text = "# Plan\n1. first\n- bullet\n```\ncode\n```"
        assert analyze_complexity(text).factors["structural_cues"] == 4

    def test_logical_connectors_capped(self):
        text = "do this then that when ready unless late until done while waiting"
        assert analyze_complexity(text).factors["logical_connectors"] == 3

    def test_logical_connectors_need_surrounding_spaces(self):
        result = analyze_complexity("If needed, verify if, then, ship")
        assert result.factors["logical_connectors"] == 0

    def test_list_markers_need_a_preceding_line(self):
        assert analyze_complexity("1. only item").factors["structural_cues"] == 0
        assert analyze_complexity("intro\n  1. item").factors["structural_cues"] == 1


class TestAnalyzeComplexity:
    """Whole-analysis behaviour."""

    def test_empty_input(self):
        result = analyze_complexity("")
        assert result.score == 0
        assert result.difficulty == Difficulty.NOVICE
        assert result.iterations == 1
        assert result.word_count == 0

    def test_none_input(self):
        assert analyze_complexity(None).difficulty == Difficulty.NOVICE

    def test_simple_prompt_is_novice(self):
        result = analyze_complexity("Write a short poem about autumn")
        assert result.difficulty == Difficulty.NOVICE
        assert result.iterations == 1
        assert result.explanation == "Simple, straightforward request with clear objectives"

    def test_deterministic(self):
        text = "Design a distributed database; if latency spikes then scale.\n1. plan"
        assert analyze_complexity(text).to_dict() == analyze_complexity(text).to_dict()

    def test_long_structured_technical_prompt_is_expert(self):
        text = (
            "# Service plan\n"
            "Build a python api backed by a database, packaged with docker "
            "and deployed on kubernetes.\n"
            + filler(480)
            + "\nScale out when traffic grows and page the engineer if errors appear.\n"
            "1. Design the schema\n"
            "2. Implement endpoints\n"
            "- Keep handlers small\n"
        )
        result = analyze_complexity(text)

        assert result.factors == {
            "length_score": 4,
            "technical_keywords": 4,
            "domain_keywords": 0,
            "structural_cues": 3,
            "logical_connectors": 2,
            "punctuation_density": 0,
        }
        assert result.score == 13
        assert result.difficulty == Difficulty.EXPERT
        assert result.iterations == 4

    def test_score_is_sum_of_factors(self):
        result = analyze_complexity("Use python; then api; then cloud [x] {y}")
        assert result.score == sum(result.factors.values())

    def test_to_dict(self):
        data = analyze_complexity("hello world").to_dict()
        assert data["difficulty"] == "NOVICE"
        assert set(data["factors"]) == {
            "length_score",
            "technical_keywords",
            "domain_keywords",
            "structural_cues",
            "logical_connectors",
            "punctuation_density",
        }
