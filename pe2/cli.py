"""
PE2 command-line interface - optimize a raw prompt into a PE2 prompt.

Usage:
    pe2-cli "Write a function that sorts a list" --provider openai
    pe2-cli prompt.txt --iterations 3 --output-file result.md
    pe2-cli "Design a microservice" --auto-difficulty
    pe2-cli --history 5
    pe2-cli --provider openrouter --list-models
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from pe2.complexity import analyze_complexity
from pe2.config import config_path, load_settings, save_settings
from pe2.history import HistoryStore, next_output_path, render_markdown
from pe2.llm.errors import ConfigurationError, LLMError
from pe2.llm.providers import get_provider, list_providers
from pe2.logger import get_logger, set_level
from pe2.refinement import RefinementOrchestrator, RefinementResult
from pe2.templates import DOMAIN_CHECKS, SessionContext

logger = get_logger(__name__)

MIN_PROMPT_CHARS = 10
MAX_PROMPT_CHARS = 10000


def validate_prompt(text: str) -> Optional[str]:
    """Return an error message for an unusable prompt, None when it is fine."""
    if not text or not text.strip():
        return "Please enter a prompt"
    length = len(text.strip())
    if length < MIN_PROMPT_CHARS:
        return f"Prompt is too short (minimum {MIN_PROMPT_CHARS} characters)"
    if length > MAX_PROMPT_CHARS:
        return f"Prompt is too long (maximum {MAX_PROMPT_CHARS} characters)"
    return None


def _names_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        # ENAMETOOLONG on long inline prompts
        return False


def read_input(value: str, as_text: bool = False, as_file: bool = False) -> str:
    """Resolve the positional input into prompt text.

    The input is read as a file path when ``as_file`` is set, or when it names
    an existing file and ``as_text`` is not set.

    Raises:
        FileNotFoundError: If ``as_file`` is set and the path does not exist
    """
    path = Path(value).expanduser()
    if as_file or (not as_text and _names_file(path)):
        if not path.is_file():
            raise FileNotFoundError(f"Input file not found: {value}")
        return path.read_text(encoding="utf-8")
    return value


def print_progress(label: str, percent: int) -> None:
    print(f"[{percent:3d}%] {label}", file=sys.stderr)


def print_analysis(text: str) -> None:
    analysis = analyze_complexity(text)
    print("Prompt Complexity Analysis")
    print("=" * 40)
    print(f"Difficulty: {analysis.difficulty.value}")
    print(f"Score: {analysis.score}/20")
    print(f"Recommended iterations: {analysis.iterations}")
    print(f"Words: {analysis.word_count}")
    print(f"Assessment: {analysis.explanation}")
    print()
    print("Factors:")
    for name, value in analysis.factors.items():
        print(f"  - {name}: {value}")


def print_summary(result: RefinementResult, output_file: Optional[Path]) -> None:
    print(f"Difficulty: {result.complexity.difficulty.value} ({result.complexity.score}/20)")
    print(
        f"Refinement rounds: {result.completed_iterations}/{result.requested_iterations}"
        + (" (stopped early)" if result.truncated else "")
    )
    if result.error:
        print(f"Stopped by error: {result.error}")
    print(f"Tokens used: {result.usage.total_tokens}")
    if output_file:
        print(f"Saved to: {output_file}")


def print_sessions(store: HistoryStore, limit: int, as_json: bool = False) -> None:
    sessions = store.list_sessions(limit)
    if as_json:
        print(json.dumps(sessions, indent=2, ensure_ascii=False))
        return
    if not sessions:
        print("No sessions recorded yet")
        return
    for record in sessions:
        difficulty = (record.get("complexity") or {}).get("difficulty", "?")
        prompt = " ".join(str(record.get("raw_prompt", "")).split())
        if len(prompt) > 60:
            prompt = prompt[:57] + "..."
        print(
            f"{record.get('timestamp', '')[:19]}  {difficulty:<12}  "
            f"{record.get('provider')}/{record.get('model')}  {prompt}"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pe2-cli",
        description="Optimize a raw prompt into a structured PE2 prompt",
    )
    parser.add_argument("input", nargs="?", help="Prompt text or path to a prompt file")
    parser.add_argument(
        "--provider",
        help=f"LLM provider ({', '.join(list_providers())})",
    )
    parser.add_argument("--model", help="Model identifier (default: provider's default model)")
    parser.add_argument(
        "--iterations", type=int,
        help="Refinement rounds, 1-5 (default: chosen from prompt complexity)",
    )
    parser.add_argument(
        "--output-file",
        help="Markdown output file (default: pe2-prompts/pe2-session-N.md, "
        "skipped with --json unless given)",
    )
    parser.add_argument(
        "--auto-difficulty", action="store_true",
        help="Only analyze prompt complexity and exit",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--text", action="store_true", help="Treat input as prompt text")
    source.add_argument("--file", action="store_true", help="Treat input as a file path")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument(
        "--domain", default="general",
        choices=["general", *DOMAIN_CHECKS],
        help="Domain the meta-prompts adapt to (default: general)",
    )
    parser.add_argument("--config", help=f"Config file (default: {config_path()})")
    parser.add_argument(
        "--save-config", action="store_true",
        help="Store --provider/--model in the config file",
    )
    parser.add_argument(
        "--no-history", action="store_true", help="Do not record the session",
    )
    parser.add_argument(
        "--history", type=int, nargs="?", const=10, metavar="N",
        help="List the N most recent sessions (default: 10) and exit",
    )
    parser.add_argument(
        "--list-models", action="store_true",
        help="List models available on OpenRouter and exit",
    )
    parser.add_argument(
        "--account", action="store_true",
        help="Show OpenRouter usage and limits for the API key and exit",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Emit debug logs on stderr")
    return parser


def build_provider(args: argparse.Namespace):
    settings = load_settings(
        args.config, overrides={"provider": args.provider, "model": args.model}
    )
    if args.save_config:
        saved = save_settings(settings, args.config)
        print(f"Configuration saved to {saved}", file=sys.stderr)

    provider_config = settings.to_provider_config()
    logger.debug("cli.provider", config=provider_config.redacted())
    return get_provider(settings.provider, provider_config)


def resolve_output_file(args: argparse.Namespace) -> Optional[Path]:
    if args.output_file:
        return Path(args.output_file)
    if args.json:
        return None
    return next_output_path()


async def show_openrouter_info(args: argparse.Namespace) -> int:
    provider = build_provider(args)
    if provider.id != "openrouter":
        raise ConfigurationError(
            "--list-models and --account are only available with --provider openrouter",
            provider.id,
        )

    if args.list_models:
        models = await provider.list_models()
        if args.json:
            print(json.dumps(models, indent=2, ensure_ascii=False))
        else:
            for model in models:
                print(model.get("id", "?"))
    if args.account:
        print(json.dumps(await provider.account_info(), indent=2, ensure_ascii=False))
    return 0


async def optimize(args: argparse.Namespace, text: str) -> int:
    provider = build_provider(args)

    store = None if args.no_history else HistoryStore()
    session = SessionContext(
        domain=args.domain,
        session_length=store.session_count() if store else 0,
        avg_complexity=store.average_complexity() if store else None,
    )

    orchestrator = RefinementOrchestrator(
        provider,
        progress=None if args.json else print_progress,
        session=session,
    )
    result = await orchestrator.run(text, iterations=args.iterations)
    if result is None:
        print("Error: failed to generate initial prompt", file=sys.stderr)
        return 1

    output_file = resolve_output_file(args)
    if output_file:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(render_markdown(result), encoding="utf-8")
    if store:
        store.record_session(text, result)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_summary(result, output_file)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    set_level(logging.DEBUG if args.verbose else logging.WARNING)

    if args.history is not None:
        print_sessions(HistoryStore(), args.history, as_json=args.json)
        return 0

    if args.list_models or args.account:
        return run(show_openrouter_info(args))

    if not args.input:
        parser.print_usage(sys.stderr)
        print("Error: Please enter a prompt", file=sys.stderr)
        return 1

    try:
        text = read_input(args.input, as_text=args.text, as_file=args.file)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.auto_difficulty:
        print_analysis(text)
        return 0

    error = validate_prompt(text)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    return run(optimize(args, text))


def run(command) -> int:
    """Run an async command, turning provider and file errors into exit code 1."""
    try:
        return asyncio.run(command)
    except LLMError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
