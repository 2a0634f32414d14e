"""Session history: JSON records, markdown rendering and usage statistics."""

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pe2.logger import get_logger
from pe2.refinement import RefinementResult

logger = get_logger(__name__)

DEFAULT_HOME = Path.home() / ".pe2"
STATS_FILE = "stats.json"
PROMPTS_DIR = "pe2-prompts"

DIFFICULTY_INDICATORS = {
    "NOVICE": "[*]",
    "INTERMEDIATE": "[**]",
    "ADVANCED": "[***]",
    "EXPERT": "[****]",
    "MASTER": "[*****]",
}


def _format_field(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(f"- {item}" for item in value)
    if isinstance(value, dict):
        return "\n".join(f"- **{key}**: {item}" for key, item in value.items())
    return str(value)


def render_markdown(result: RefinementResult, generated_at: Optional[datetime] = None) -> str:
    """Render a refinement result as a markdown document.

    Args:
        result: Completed refinement result
        generated_at: Timestamp shown in the header (defaults to now)

    Returns:
        Markdown text
    """
    generated_at = generated_at or datetime.now()
    complexity = result.complexity
    difficulty = complexity.difficulty.value
    prompt = result.prompt
    metrics = result.metrics

    lines = [
        f"# PE2-Optimized Prompt {DIFFICULTY_INDICATORS[difficulty]}",
        "",
        f"**Difficulty Level:** {difficulty} | "
        f"**Complexity Score:** {complexity.score}/20 | "
        f"**Generated:** {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
    ]
    for title, name in (
        ("Context", "context"),
        ("Role", "role"),
        ("Task", "task"),
        ("Constraints", "constraints"),
        ("Output", "output"),
    ):
        lines += [f"## {title}", _format_field(getattr(prompt, name)), ""]

    lines += ["---", "", "# Refinement History"]
    for entry in result.history:
        lines += [f"### Iteration {entry.iteration}", f"- {entry.edits}", ""]

    if result.truncated:
        reason = f": {result.error}" if result.error else ""
        lines += [
            f"> Refinement stopped after {result.completed_iterations} of "
            f"{result.requested_iterations} rounds{reason}",
            "",
        ]

    lines += [
        "---",
        "",
        "# Performance Metrics",
        f"- **Estimated Accuracy Gain**: {metrics['accuracy_gain']}",
        f"- **Complexity Analysis**: {difficulty} level prompt with "
        f"{complexity.score}/20 complexity score",
        f"- **Optimization Level**: {metrics['iterations_applied']} iterations applied",
        f"- **Model**: {result.provider}/{result.model}",
        f"- **Tokens Used**: {result.usage.total_tokens}",
        "",
    ]
    return "\n".join(lines)


def next_output_path(directory: str | Path = PROMPTS_DIR) -> Path:
    """First unused ``pe2-session-N.md`` in ``directory``."""
    directory = Path(directory)
    number = 1
    while (directory / f"pe2-session-{number}.md").exists():
        number += 1
    return directory / f"pe2-session-{number}.md"


class HistoryStore:
    """Append-only store of session records under ``<home>/sessions``."""

    def __init__(self, home: str | Path | None = None):
        self.home = Path(home) if home else DEFAULT_HOME
        self.sessions_dir = self.home / "sessions"
        self.stats_path = self.home / STATS_FILE

    def record_session(self, raw_prompt: str, result: RefinementResult) -> Path:
        """Write one session record.

        Args:
            raw_prompt: The prompt that was optimized
            result: Refinement result

        Returns:
            Path to the session file
        """
        session_id = uuid.uuid4().hex[:12]
        date_dir = self.sessions_dir / datetime.now().strftime("%Y%m%d")
        date_dir.mkdir(parents=True, exist_ok=True)

        record = {
            "session_id": session_id,
            "timestamp": datetime.now().isoformat(),
            "raw_prompt": raw_prompt,
            **result.to_dict(),
        }

        session_file = date_dir / f"{session_id}.json"
        with open(session_file, "w") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

        logger.info("history.session.recorded", session_id=session_id, path=str(session_file))
        self.track(result)
        return session_file

    def list_sessions(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Return stored session records, newest first.

        Unreadable files are skipped with a warning.
        """
        if not self.sessions_dir.exists():
            return []

        records = []
        for path in self.sessions_dir.glob("*/*.json"):
            try:
                with open(path) as f:
                    records.append(json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("history.session.unreadable", path=str(path), error=str(e))

        records.sort(key=lambda record: record.get("timestamp", ""), reverse=True)
        return records[:limit] if limit else records

    def load_stats(self) -> dict[str, Any]:
        empty = {
            "total_prompts": 0,
            "total_tokens": 0,
            "average_complexity": 0.0,
            "model_usage": {},
            "daily_usage": {},
        }
        if not self.stats_path.exists():
            return empty
        try:
            with open(self.stats_path) as f:
                stats = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("history.stats.unreadable", path=str(self.stats_path), error=str(e))
            return empty
        return {**empty, **stats}

    def track(self, result: RefinementResult) -> dict[str, Any]:
        """Fold one result into the running statistics file."""
        stats = self.load_stats()
        count = stats["total_prompts"]
        score = result.complexity.score

        stats["average_complexity"] = round(
            (stats["average_complexity"] * count + score) / (count + 1), 2
        )
        stats["total_prompts"] = count + 1
        stats["total_tokens"] += result.usage.total_tokens

        model_key = f"{result.provider}/{result.model}"
        stats["model_usage"][model_key] = stats["model_usage"].get(model_key, 0) + 1
        today = datetime.now().strftime("%Y-%m-%d")
        stats["daily_usage"][today] = stats["daily_usage"].get(today, 0) + 1

        self.home.mkdir(parents=True, exist_ok=True)
        with open(self.stats_path, "w") as f:
            json.dump(stats, f, indent=2)
        return stats

    def average_complexity(self) -> float | None:
        """Running mean complexity, None before the first session."""
        stats = self.load_stats()
        return stats["average_complexity"] if stats["total_prompts"] else None

    def session_count(self) -> int:
        return self.load_stats()["total_prompts"]
