# src/main.py - v2
"""CLI entry point: build and stages commands.

Usage:
    nuggetwise build "<prompt>" --caller <id> [options]
    nuggetwise stages
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from decimal import Decimal
from typing import TYPE_CHECKING

from nuggetwise.version import __version__

if TYPE_CHECKING:
    from nuggetwise.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="nuggetwise",
        description=f"nuggetwise v{__version__} - governed prompt-to-UI pipeline",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- build ---
    p_build = subparsers.add_parser(
        "build", help="Run the pipeline and generate code for a prompt",
    )
    p_build.add_argument("prompt", help="What to build")
    p_build.add_argument(
        "--caller", required=True,
        help="Caller identity the spend cap is tracked under",
    )
    p_build.add_argument(
        "--timeout-ms", type=int, default=None,
        help="Deadline override in milliseconds",
    )
    p_build.add_argument(
        "--budget", type=Decimal, default=None,
        help="Budget constraint passed to the validation stage",
    )
    p_build.add_argument(
        "--model-tier", default=None,
        help="Generation model tier (default: V0_MODEL_ID)",
    )
    p_build.set_defaults(func=_cmd_build)

    # --- stages ---
    p_stages = subparsers.add_parser(
        "stages", help="Show the configured stages and their LLM routing",
    )
    p_stages.set_defaults(func=_cmd_stages)

    return parser


async def _cmd_build(args: argparse.Namespace) -> int:
    """Execute one governed build request."""
    from nuggetwise.api.service import BuildService
    from nuggetwise.config.settings import load_settings

    settings = load_settings()
    _setup_logging(settings, args.verbose)
    service = BuildService.from_settings(settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(service.shutdown()))

    outcome = await service.build({
        "prompt": args.prompt,
        "caller_id": args.caller,
        "budget_override": args.budget,
        "timeout_override_ms": args.timeout_ms,
        "model_tier": args.model_tier,
    })
    await service.drain()

    print(outcome.model_dump_json(indent=2))
    return 0 if outcome.success else 2


async def _cmd_stages(args: argparse.Namespace) -> int:
    """Display the stage order and each stage's resolved provider:model."""
    from nuggetwise.config.settings import load_settings
    from nuggetwise.llm.config import resolve_all
    from nuggetwise.pipeline.runner import Pipeline, describe_stages

    settings = load_settings()
    _setup_logging(settings, args.verbose)
    routing = resolve_all(settings)

    rows = []
    for info in describe_stages(Pipeline(settings=settings)):
        assignment = routing.get(info["name"])
        info["llm"] = assignment.key if assignment else None
        info["source"] = assignment.source if assignment else None
        rows.append(info)
    print(json.dumps(rows, indent=2))
    return 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from nuggetwise.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
