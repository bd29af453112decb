"""CLI entry point — ``stagewire serve`` and ``stagewire submit``."""

from __future__ import annotations

# Phase 1: Singleton logging, before any transitive fastmcp imports
from stagewire.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import json  # noqa: E402
import sys  # noqa: E402

from stagewire import __version__  # noqa: E402
from stagewire.api.app_state import AppState, build_app_state  # noqa: E402
from stagewire.config import Settings  # noqa: E402
from stagewire.constants import EnvelopeType, StageStatus  # noqa: E402
from stagewire.logging_config import (  # noqa: E402
    cleanup_third_party_handlers,
)
from stagewire.pipeline.orchestrator import (  # noqa: E402
    PipelineResult,
    PrimaryStageError,
    SubmissionValidationError,
)
from stagewire.remote.account import AccountConfigError  # noqa: E402

# Phase 2: Clear fastmcp's duplicate handlers after all imports
cleanup_third_party_handlers()


def main() -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.version:
        print(f"stagewire {__version__}")
        return

    if args.command == "serve":
        _run_serve(args)
    elif args.command == "submit":
        sys.exit(_run_submit(args))
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="stagewire",
        description=(
            "Staged MCP tool pipeline with live progress over SSE."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Start the HTTP server")
    serve.add_argument(
        "--host",
        default=None,
        help="Bind address (default: from settings)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port (default: from settings)",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development only)",
    )

    submit = sub.add_parser(
        "submit",
        help="Run one submission through the pipeline",
    )
    submit.add_argument("text", type=str, help="Text to submit")
    submit.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print every stage event",
    )

    return parser


def _run_serve(args: argparse.Namespace) -> None:
    """Execute the serve command."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "stagewire.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


class ConsoleObserver:
    """Observer connection that prints stage updates to stderr.

    stdout is reserved for the final record.
    """

    def __init__(self, verbose: bool = False) -> None:
        self._verbose = verbose
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, data: str) -> None:
        envelope = json.loads(data)
        if envelope.get("type") != EnvelopeType.STAGE_UPDATE:
            return
        status = envelope.get("status", "")
        if self._verbose or status == StageStatus.ERROR:
            print(
                f"  [{status}] {envelope.get('stage')}: "
                f"{envelope.get('message')}",
                file=sys.stderr,
            )

    def close(self) -> None:
        self._closed = True


def _run_submit(args: argparse.Namespace) -> int:
    """Execute the submit command; return the process exit code."""
    settings = Settings()
    try:
        state = build_app_state(settings)
    except AccountConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        result = asyncio.run(
            _submit(state, args.text, verbose=args.verbose)
        )
    except SubmissionValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except PrimaryStageError as exc:
        print(
            f"Error: {exc.message} ({exc.kind.value}): {exc.details}",
            file=sys.stderr,
        )
        return 1

    if result.degraded:
        print(
            f"Warning: stored without enrichment "
            f"({result.dependent_error})",
            file=sys.stderr,
        )
    print(json.dumps(result.submission.to_dict(), indent=2))
    return 0


async def _submit(
    state: AppState, text: str, *, verbose: bool = False
) -> PipelineResult:
    observer = ConsoleObserver(verbose=verbose)
    state.registry.register(observer)
    try:
        return await state.pipeline.run(text)
    finally:
        state.registry.deregister(observer)


if __name__ == "__main__":
    main()
