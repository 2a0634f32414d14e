"""
Meta-prompt templates for PE2 generation and refinement.

Both templates are rendered into the system message; the user message
carries a short directive so that backends which require a user turn
(Anthropic, Gemini) always receive one.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from pe2.schema import RefinementHistoryEntry

INITIAL_DIRECTIVE = "Generate the PE2-optimized prompt now. Respond with the JSON object only."
REFINEMENT_DIRECTIVE = (
    "Refine the current PE2 prompt now. List the 5 improvements, then the refined JSON object."
)


@dataclass
class SessionContext:
    """Ambient session state folded into the meta-prompts."""

    domain: str = "general"
    session_length: int = 0
    avg_complexity: Optional[float] = None
    focus: str = "generic"
    adaptive_features: tuple[str, ...] = ()


INITIAL_TEMPLATE = """\
You are an agentic prompt engineer with dynamic adaptation capabilities.

CONTEXT AWARENESS:
- Domain: {domain}
- Session history: {session_length} previous prompts
- Average complexity: {avg_complexity}
- Adaptive features: {adaptive_features}

STRATEGY GUIDANCE:
- Focus: {focus}

DETAILED DESCRIPTION:
- Provide precise, domain-specific descriptions in the Context field
- Clarify expected output format and examples in the Output field

CONTEXT SPECIFICATION:
- Only reference information from the provided raw prompt and context
- Do not hallucinate or assume facts not explicitly given

The PE2 format requires these sections with domain-specific adaptations:
- **Context**: {context_hint}
- **Role**: {role_hint}
- **Task**: {task_hint}
- **Constraints**: Domain-appropriate limitations and requirements
- **Output**: Expected format tailored to {domain} tasks

Raw prompt to optimize:
---
{raw_prompt}
---

Generate a PE2-optimized prompt that:
1. Adapts to the {domain} domain requirements
2. Maintains {focus} as the primary objective
3. {continuity}
4. Employs a step-by-step reasoning plan:
   a) Identify key facts and constraints
   b) Outline logical steps
   c) Draft the final JSON fields

CRITICAL: Return ONLY the JSON object with keys: "context", "role", "task", "constraints", "output".
DO NOT include any explanations or text outside the JSON.
"""

REFINEMENT_TEMPLATE = """\
You are an agentic prompt refinement specialist performing context-aware optimization.

ADAPTIVE CONTEXT:
- Current domain: {domain}
- Refinement iteration: {iteration}
- Strategy focus: {focus}
- Previous refinements show: {phase}

CONTEXT SPECIFICATION:
- Use only the current PE2 prompt and the refinement history as source
- Do not introduce assumptions or hallucinations

Current PE2 Prompt:
{current_json}

Refinement History:
{history}
{domain_checks}
Analyze and improve the prompt considering:
1. Is the {focus} focus adequately emphasized?
2. Are domain-specific requirements met?
3. {reasoning_check}
4. {pattern_check}
5. Employ a structured reasoning sequence:
   a) Identify specific prompt weaknesses
   b) Outline logical refinement steps
   c) Apply refinements in the returned JSON

Provide exactly 5 targeted improvements, then output ONLY the refined JSON.

IMPORTANT: Your ENTIRE response after the 5 improvements must be ONLY the JSON object.
Example of correct response ending:
1. [improvement 1]
2. [improvement 2]
3. [improvement 3]
4. [improvement 4]
5. [improvement 5]

{{
  "context": "...",
  "role": "...",
  "task": "...",
  "constraints": "...",
  "output": "..."
}}
"""

DOMAIN_CHECKS = {
    "code": [
        "Check for precise technical specifications",
        "Ensure error handling is addressed",
        "Verify input/output examples are included",
    ],
    "creative": [
        "Ensure creative freedom is maintained",
        "Check for inspirational elements",
        "Verify constraints don't limit creativity",
    ],
    "analytical": [
        "Verify logical structure is clear",
        "Check for comprehensive analysis steps",
        "Ensure evaluation criteria are defined",
    ],
}


def _avg_complexity(session: SessionContext) -> str:
    if session.avg_complexity is None:
        return "unknown"
    return f"{session.avg_complexity:.1f}"


def build_initial_prompt(raw_prompt: str, session: Optional[SessionContext] = None) -> str:
    """
    Render the system message for the initial generation call.

    Args:
        raw_prompt: User's raw prompt text
        session: Session context (defaults to a fresh general session)

    Returns:
        Rendered meta-prompt
    """
    session = session or SessionContext()
    domain = session.domain

    return INITIAL_TEMPLATE.format(
        domain=domain,
        session_length=session.session_length,
        avg_complexity=_avg_complexity(session),
        adaptive_features=", ".join(session.adaptive_features) or "standard_optimization",
        focus=session.focus,
        context_hint=(
            "Include technical background and dependencies"
            if domain == "code" else "Provide comprehensive problem description"
        ),
        role_hint=(
            "Creative expert with domain knowledge"
            if domain == "creative" else "Specialized expert in the relevant field"
        ),
        task_hint=(
            "Step-by-step analytical framework"
            if domain == "analytical" else "Clear action items with expected outcomes"
        ),
        raw_prompt=raw_prompt,
        continuity=(
            "Preserves conversation continuity"
            if session.session_length > 3 else "Establishes clear context"
        ),
    )


def format_history(history: Sequence[RefinementHistoryEntry]) -> str:
    if not history:
        return "No previous refinements"
    return "\n".join(f"- {entry.iteration}: {entry.edits}" for entry in history)


def build_refinement_prompt(
    current_json: str,
    history: Sequence[RefinementHistoryEntry],
    session: Optional[SessionContext] = None,
) -> str:
    """
    Render the system message for one refinement round.

    Args:
        current_json: Current PE2 prompt serialized as JSON
        history: Refinement history so far (initial generation included)
        session: Session context (defaults to a fresh general session)

    Returns:
        Rendered meta-prompt
    """
    session = session or SessionContext()
    checks = DOMAIN_CHECKS.get(session.domain)
    if checks:
        domain_checks = (
            f"\nDOMAIN-SPECIFIC ANALYSIS for {session.domain}:\n"
            + "\n".join(f"- {check}" for check in checks)
            + "\n"
        )
    else:
        domain_checks = ""

    late_phase = len(history) > 2
    complex_session = session.avg_complexity is not None and session.avg_complexity > 15

    return REFINEMENT_TEMPLATE.format(
        domain=session.domain,
        iteration=len(history) + 1,
        focus=session.focus,
        phase="iterative improvement needed" if late_phase else "initial optimization phase",
        current_json=current_json,
        history=format_history(history),
        domain_checks=domain_checks,
        reasoning_check=(
            "Is complex reasoning properly structured?"
            if complex_session else "Is the task clearly defined?"
        ),
        pattern_check=(
            "What patterns in previous refinements suggest further improvements?"
            if late_phase else "What initial optimizations are most critical?"
        ),
    )
