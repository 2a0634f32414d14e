"""
Refinement Orchestrator - drives one optimization run.

One initial generation call turns the raw prompt into a PE2 prompt, then up
to N refinement calls each rewrite the current prompt. Rounds run strictly
one after another on a single provider. The first unusable refinement
(unparsable reply or provider error) ends the run with the last good prompt;
nothing is retried.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from pe2.complexity import ComplexityScore, analyze_complexity
from pe2.llm.errors import ConfigurationError, LLMError, ValidationError
from pe2.llm.providers.base import Provider
from pe2.llm.types import CompletionRequest, CompletionResponse, Message, Usage
from pe2.logger import get_logger
from pe2.prompt_parser import parse_prompt_with_method
from pe2.schema import PE2Prompt, RefinementHistoryEntry
from pe2.templates import (
    INITIAL_DIRECTIVE,
    REFINEMENT_DIRECTIVE,
    SessionContext,
    build_initial_prompt,
    build_refinement_prompt,
)

logger = get_logger(__name__)

MIN_ITERATIONS = 1
MAX_ITERATIONS = 5

INITIAL_EDITS = {
    "strict": "Initial prompt generation.",
    "brace_extraction": "Initial prompt generation.",
    "field_validation": "Initial prompt generation with field validation.",
    "field_extraction": "Initial prompt generation with field extraction fallback.",
}

# Keyed by parse method; strict parses name the round
REFINEMENT_EDITS = {
    "strict": "Refined prompt based on PE2 principles (Iteration {iteration}).",
    "brace_extraction": "Refined prompt generation.",
    "field_validation": "Refined prompt generation with field validation.",
    "field_extraction": "Refined prompt generation with field extraction fallback.",
}

ProgressCallback = Callable[[str, int], None]


class RefinementState(str, Enum):
    IDLE = "IDLE"
    GENERATING = "GENERATING"
    REFINING = "REFINING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class RefinementResult:
    """Final prompt of a run plus everything needed to report on it."""

    prompt: PE2Prompt
    history: list[RefinementHistoryEntry]
    complexity: ComplexityScore
    requested_iterations: int
    completed_iterations: int
    state: RefinementState = RefinementState.DONE
    error: Optional[LLMError] = None
    usage: Usage = field(default_factory=Usage)
    model: str = ""
    provider: str = ""
    domain: str = "general"
    elapsed_ms: int = 0

    @property
    def truncated(self) -> bool:
        """True when fewer refinement rounds succeeded than were requested."""
        return self.completed_iterations < self.requested_iterations

    @property
    def metrics(self) -> dict[str, Any]:
        score = self.complexity.score
        difficulty = self.complexity.difficulty.value
        return {
            "accuracy_gain": (
                f"Estimated {20 + score * 5}% improvement based on {difficulty} "
                f"complexity and {self.domain} domain optimization"
            ),
            "difficulty": difficulty,
            "complexity_score": score,
            "iterations_applied": len(self.history),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt.to_dict(),
            "history": [entry.to_dict() for entry in self.history],
            "complexity": self.complexity.to_dict(),
            "requested_iterations": self.requested_iterations,
            "completed_iterations": self.completed_iterations,
            "truncated": self.truncated,
            "state": self.state.value,
            "error": str(self.error) if self.error else None,
            "usage": {
                "prompt_tokens": self.usage.prompt_tokens,
                "completion_tokens": self.usage.completion_tokens,
                "total_tokens": self.usage.total_tokens,
                "total_cost": self.usage.total_cost,
            },
            "model": self.model,
            "provider": self.provider,
            "metrics": self.metrics,
            "elapsed_ms": self.elapsed_ms,
        }


def clamp_iterations(value: int) -> int:
    return max(MIN_ITERATIONS, min(MAX_ITERATIONS, int(value)))


class RefinementOrchestrator:
    """Runs initial generation plus iterative refinement against one provider."""

    def __init__(
        self,
        provider: Provider,
        model: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        session: Optional[SessionContext] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        """Initialize orchestrator.

        Args:
            provider: Configured provider adapter
            model: Model id (defaults to the provider config's model)
            progress: Optional callback receiving (label, percent)
            session: Session context folded into the meta-prompts
            max_tokens: Optional completion token limit per call
            temperature: Optional sampling temperature per call

        Raises:
            ConfigurationError: If no model is given or configured
        """
        self.provider = provider
        self.model = model or provider.config.model
        if not self.model:
            raise ConfigurationError(
                f"No model configured for provider '{provider.id}'", provider.id
            )
        self.progress = progress
        self.session = session or SessionContext()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.state = RefinementState.IDLE
        self.usage = Usage()

    def _report(self, label: str, percent: int) -> None:
        if self.progress is None:
            return
        try:
            self.progress(label, percent)
        except Exception as e:
            logger.warning("refine.progress.error", label=label, error=str(e))

    async def _complete(self, system_prompt: str, directive: str) -> CompletionResponse:
        request = CompletionRequest(
            model=self.model,
            messages=[
                Message(role="system", content=system_prompt),
                Message(role="user", content=directive),
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        response = await self.provider.complete(request)
        self.usage = self.usage + response.usage
        return response

    async def run(
        self, raw_prompt: str, iterations: Optional[int] = None
    ) -> Optional[RefinementResult]:
        """
        Optimize a raw prompt.

        Args:
            raw_prompt: User's raw prompt text
            iterations: Refinement rounds to run, clamped to [1, 5]
                (defaults to the complexity analyzer's recommendation)

        Returns:
            RefinementResult, or None when the initial generation could not
            be parsed into a PE2 prompt

        Raises:
            ValidationError: If the raw prompt is empty
            LLMError: If the initial generation call fails
        """
        if not raw_prompt or not raw_prompt.strip():
            raise ValidationError("Raw prompt must be a non-empty string")

        started = time.time()
        self.usage = Usage()
        complexity = analyze_complexity(raw_prompt)
        total = clamp_iterations(iterations) if iterations is not None else complexity.iterations

        logger.info(
            "refine.start",
            provider=self.provider.id,
            model=self.model,
            difficulty=complexity.difficulty.value,
            score=complexity.score,
            iterations=total,
        )

        self.state = RefinementState.GENERATING
        self._report("Generating initial prompt", 30)
        try:
            response = await self._complete(
                build_initial_prompt(raw_prompt, self.session), INITIAL_DIRECTIVE
            )
        except LLMError as e:
            self.state = RefinementState.FAILED
            logger.error("refine.initial.error", error=str(e), error_type=type(e).__name__)
            raise

        current, method = parse_prompt_with_method(response.text, raw_prompt)
        if current is None:
            self.state = RefinementState.FAILED
            logger.error("refine.initial.unparsable", response_chars=len(response.text))
            return None

        history = [RefinementHistoryEntry(iteration=1, edits=INITIAL_EDITS[method])]
        logger.info("refine.initial.success", parse_method=method)
        self._report("Initial prompt generated", 50)

        completed = 0
        error = None
        self.state = RefinementState.REFINING
        for round_number in range(1, total + 1):
            iteration = round_number + 1
            self._report(
                f"Refinement {round_number}/{total}", 50 + (round_number - 1) * 40 // total
            )
            try:
                response = await self._complete(
                    build_refinement_prompt(current.to_json(), history, self.session),
                    REFINEMENT_DIRECTIVE,
                )
            except LLMError as e:
                error = e
                logger.warning(
                    "refine.round.error",
                    round=round_number,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                break

            refined, method = parse_prompt_with_method(response.text, raw_prompt)
            if refined is None:
                logger.warning(
                    "refine.round.unparsable",
                    round=round_number,
                    response_chars=len(response.text),
                )
                break

            current = refined
            completed += 1
            history.append(
                RefinementHistoryEntry(
                    iteration=iteration,
                    edits=REFINEMENT_EDITS[method].format(iteration=iteration),
                )
            )
            logger.info("refine.round.success", round=round_number, parse_method=method)

        self._report("Finalizing", 90)
        self.state = RefinementState.DONE
        result = RefinementResult(
            prompt=current,
            history=history,
            complexity=complexity,
            requested_iterations=total,
            completed_iterations=completed,
            state=self.state,
            error=error,
            usage=self.usage,
            model=self.model,
            provider=self.provider.id,
            domain=self.session.domain,
            elapsed_ms=int((time.time() - started) * 1000),
        )
        logger.info(
            "refine.done",
            completed=completed,
            requested=total,
            truncated=result.truncated,
            total_tokens=self.usage.total_tokens,
        )
        self._report("Done", 100)
        return result
