"""CLI interface for running single coaching turns."""

import argparse
import asyncio
import json
import logging

from coach.config import (
    LOG_FILE,
    MAX_AGENT_ITERATIONS,
    MAX_RETRIES,
    PROVIDER_DEFAULT,
    VERSION,
    setup_logging,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly, knowledgeable fitness coach. Give safe, specific, "
    "actionable advice on training, nutrition and recovery."
)


def _builtin_status() -> str:
    from coach.tools import default_tools

    tools = ", ".join(tool.name for tool in default_tools())
    return (
        f"Coach status: idle (v{VERSION})\n"
        f"Default provider: {PROVIDER_DEFAULT}\n"
        f"Available tools: {tools}\n"
        f"Max agent iterations: {MAX_AGENT_ITERATIONS}\n"
        f"Fallback attempts: {MAX_RETRIES}\n\n"
        "Usage: python -m coach run 'your question' [--provider vllm|openrouter]"
    )


async def _run_question(args: argparse.Namespace) -> int:
    from coach.context import ContextBundle
    from coach.core.agent import build_model
    from coach.core.runner import run_turn
    from coach.core.types import AgentConfig
    from coach.metrics import metrics
    from coach.tools import default_tools

    config = AgentConfig(
        model=build_model(provider=args.provider),
        tools=tuple(default_tools()),
        user_id="cli",
    )
    context = ContextBundle(
        profile=args.profile,
        diet=args.diet,
        workout=args.workout,
        progress=args.progress,
    )
    response = await run_turn(
        config,
        args.system_prompt or DEFAULT_SYSTEM_PROMPT,
        args.question,
        context=context,
        knowledge=args.knowledge,
    )

    print("\n" + response.output)
    if response.degraded:
        print("\n(answered in degraded mode without tools)")
    if args.metrics:
        print("\n" + json.dumps(metrics.snapshot().as_dict(), indent=2))
    return 0 if response.ok else 1


def _show_logs(n: int) -> None:
    try:
        with open(LOG_FILE) as f:
            lines = f.readlines()
    except FileNotFoundError:
        print(f"Log file not found: {LOG_FILE}")
        return
    tail = lines[-n:] if len(lines) > n else lines
    print(f"--- last {len(tail)} of {len(lines)} log entries ---")
    print("".join(tail), end="")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m coach",
        description=f"Fitness coach agent v{VERSION}",
    )
    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Ask the coach one question")
    run_parser.add_argument("question", nargs="?", default="", help="User message")
    run_parser.add_argument("--provider", choices=["vllm", "openrouter"], help="LLM provider")
    run_parser.add_argument("--system-prompt", help="Override the coaching prompt")
    run_parser.add_argument("--profile", help="Profile context block")
    run_parser.add_argument("--diet", help="Diet context block")
    run_parser.add_argument("--workout", help="Workout context block")
    run_parser.add_argument("--progress", help="Progress context block")
    run_parser.add_argument("--knowledge", help="Retrieved background knowledge")
    run_parser.add_argument("--metrics", action="store_true", help="Print metrics after the turn")

    sub.add_parser("status", help="Show coach status")

    logs_parser = sub.add_parser("logs", help="Show log tail")
    logs_parser.add_argument("n", type=int, nargs="?", default=30, help="Number of lines")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        if not args.question:
            print("Error: Question required")
            print("Usage: python -m coach run 'your question'")
            return 2
        setup_logging()
        return asyncio.run(_run_question(args))
    if args.command == "status":
        print(_builtin_status())
        return 0
    if args.command == "logs":
        _show_logs(args.n)
        return 0
    parser.print_help()
    return 0
