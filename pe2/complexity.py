"""
Prompt Complexity Analyzer - heuristic difficulty scoring for raw prompts.

The score is the sum of six capped sub-scores; the total picks one of five
difficulty tiers, and each tier fixes how many refinement rounds to run.
"""

import re
from dataclasses import dataclass, field
from enum import Enum


class Difficulty(str, Enum):
    """Ordered difficulty tiers."""

    NOVICE = "NOVICE"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    EXPERT = "EXPERT"
    MASTER = "MASTER"


TECH_KEYWORDS = [
    "algorithm", "framework", "architecture", "microservice", "database", "api",
    "sdk", "ml", "ai", "neural", "blockchain", "docker", "kubernetes", "encryption",
    "protocol", "latency", "throughput", "concurrency", "distributed", "cloud",
    "python", "javascript", "java", "c++", "rust", "go",
]

DOMAIN_KEYWORDS = [
    "regulation", "compliance", "governance", "strategy", "analytics", "research",
    "finance", "biotech", "healthcare", "supply chain", "marketing", "production",
    "enterprise",
]

# Space-padded: "if" inside "verify" is not a hit
LOGIC_WORDS = [" if ", " then ", " when ", " unless ", " until ", "depending on", "while "]

STRUCTURAL_PATTERNS = [
    re.compile(r"\n\s*\d+\."),  # numbered list
    re.compile(r"\n\s*-"),      # bullet list
    re.compile(r"```"),         # code fence
    re.compile(r"#"),           # heading
]

SPECIAL_CHARS = re.compile(r"[;{\[]")

# (upper bound inclusive, difficulty, iterations)
BANDS = [
    (4, Difficulty.NOVICE, 1),
    (8, Difficulty.INTERMEDIATE, 2),
    (12, Difficulty.ADVANCED, 3),
    (16, Difficulty.EXPERT, 4),
]
TOP_BAND = (Difficulty.MASTER, 5)

EXPLANATIONS = {
    Difficulty.NOVICE: "Simple, straightforward request with clear objectives",
    Difficulty.INTERMEDIATE: "Moderate complexity with some technical requirements",
    Difficulty.ADVANCED: "Complex task requiring domain expertise and multiple steps",
    Difficulty.EXPERT: "Highly technical with intricate requirements and constraints",
    Difficulty.MASTER: "Extremely complex, multi-domain, enterprise-level requirements",
}

MAX_SCORE = 20


@dataclass
class ComplexityScore:
    """Result of a complexity analysis."""

    score: int
    difficulty: Difficulty
    iterations: int
    factors: dict[str, int] = field(default_factory=dict)
    word_count: int = 0
    explanation: str = ""

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "difficulty": self.difficulty.value,
            "iterations": self.iterations,
            "factors": dict(self.factors),
            "word_count": self.word_count,
            "explanation": self.explanation,
        }


def _keyword_hits(keywords: list[str], lowered: str) -> int:
    # Plain substring test: "go" counts inside "good"
    return sum(1 for keyword in keywords if keyword in lowered)


def _pattern_hits(patterns: list[re.Pattern], text: str) -> int:
    return sum(1 for pattern in patterns if pattern.search(text))


def length_score(word_count: int) -> int:
    if word_count > 400:
        return 4
    if word_count > 250:
        return 3
    if word_count > 120:
        return 2
    if word_count > 60:
        return 1
    return 0


def special_char_score(text: str) -> int:
    count = len(SPECIAL_CHARS.findall(text))
    if count >= 5:
        return 2
    if count >= 2:
        return 1
    return 0


def band_for_score(score: int) -> tuple[Difficulty, int]:
    """Map a total score to (difficulty, iterations)."""
    for upper, difficulty, iterations in BANDS:
        if score <= upper:
            return difficulty, iterations
    return TOP_BAND


def analyze_complexity(text: str) -> ComplexityScore:
    """Score a raw prompt.

    Args:
        text: Raw prompt text (may be empty)

    Returns:
        ComplexityScore with tier and recommended iteration count
    """
    text = text or ""
    lowered = text.lower()
    word_count = len(text.split())

    factors = {
        "length_score": length_score(word_count),
        "technical_keywords": min(_keyword_hits(TECH_KEYWORDS, lowered), 4),
        "domain_keywords": min(_keyword_hits(DOMAIN_KEYWORDS, lowered), 3),
        "structural_cues": min(_pattern_hits(STRUCTURAL_PATTERNS, text), 4),
        "logical_connectors": min(_keyword_hits(LOGIC_WORDS, lowered), 3),
        "punctuation_density": special_char_score(text),
    }
    score = sum(factors.values())
    difficulty, iterations = band_for_score(score)

    return ComplexityScore(
        score=score,
        difficulty=difficulty,
        iterations=iterations,
        factors=factors,
        word_count=word_count,
        explanation=EXPLANATIONS[difficulty],
    )
