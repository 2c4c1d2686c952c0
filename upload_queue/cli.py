"""Command line interface for upload_queue package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from rich.logging import RichHandler

from . import __version__
from .cli_progress import QueueProgressDisplay, render_configuration_summary
from .models import DOCUMENT_ACCEPT, QueueConfig, QueueCounts
from .orchestrator import UploadQueueManager
from .orchestrator.file_collector import FileCollector
from .protocols import ITransferExecutor
from .services.executors import HTTPTransferExecutor, SimulatedTransferExecutor


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _resolve_log_level(debug: bool, silent: bool, log_level: Optional[str]) -> Optional[int]:
    """Level requested on the command line, or None to keep the queue quiet."""
    if silent:
        return None
    if debug:
        return logging.DEBUG
    if log_level:
        return getattr(logging, log_level.upper(), logging.INFO)
    return None


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Route queue logs through rich, or mute them entirely.

    Nothing is logged unless --debug or --log-level asks for it; --silent
    wins over both. Returns the effective level name, or "silent".
    """
    root = logging.getLogger()
    root.handlers.clear()
    logging.disable(logging.NOTSET)

    level = _resolve_log_level(debug, silent, log_level)
    if level is None:
        root.setLevel(logging.CRITICAL + 1)
        logging.disable(logging.CRITICAL)
        return "silent"

    rich_handler = RichHandler(rich_tracebacks=True, markup=True, show_time=False, show_path=False)
    rich_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(rich_handler)
    root.setLevel(level)
    return logging.getLevelName(level)


def _parse_env_line(raw: str) -> Optional[Tuple[str, str]]:
    """Split a KEY=value line from a .env file; comments and junk give None."""
    text = raw.strip()
    if text.startswith("export "):
        text = text[7:].lstrip()
    if not text or text[0] == "#":
        return None

    name, sep, value = text.partition("=")
    name = name.strip()
    if not sep or not name:
        return None

    value = value.strip()
    if len(value) > 1 and value[0] in "'\"" and value[-1] == value[0]:
        value = value[1:-1]
    return name, value


def _load_env_file(path: Path, override: bool = False) -> None:
    """Export the variables of a .env file, keeping existing ones unless override is set."""
    if not path.is_file():
        reason = "env path is not a file" if path.exists() else "env file not found"
        raise CLIError(f"{reason}: {path}")

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for entry in filter(None, map(_parse_env_line, lines)):
        name, value = entry
        if override or name not in os.environ:
            os.environ[name] = value


def _resolve_default_env_file() -> Optional[Path]:
    candidate = Path.cwd() / ".env"
    return candidate if candidate.is_file() else None


def _accept_patterns(extra: Optional[Sequence[str]], documents_only: bool) -> Optional[Tuple[str, ...]]:
    patterns = list(DOCUMENT_ACCEPT) if documents_only else []
    patterns.extend(p for p in extra or () if p not in patterns)
    return tuple(patterns) or None


def _build_executor(
    endpoint: Optional[str],
    simulate: bool,
    failure_rate: float,
    delay: Optional[Sequence[float]],
) -> ITransferExecutor:
    if simulate or not endpoint:
        min_delay, max_delay = delay if delay else (2.0, 5.0)
        try:
            return SimulatedTransferExecutor(min_delay, max_delay, failure_rate)
        except ValueError as exc:
            raise CLIError(str(exc)) from exc

    return HTTPTransferExecutor(endpoint)


async def _run_queue(
    paths: List[Path],
    executor: ITransferExecutor,
    config: QueueConfig,
    retry_rounds: int,
    display: QueueProgressDisplay,
) -> QueueCounts:
    try:
        async with UploadQueueManager(executor, config) as queue:
            queue.on_task_start(display.on_task_start)
            queue.on_task_progress(display.on_task_progress)
            queue.on_task_complete(display.on_task_complete)
            queue.on_task_fail(display.on_task_fail)
            queue.on_change(display.on_change)

            rejected = queue.add_files(FileCollector.describe_paths(paths))
            for file in rejected:
                display.on_rejected(file)

            if not queue.submit():
                raise CLIError(queue.error or "nothing to upload")

            counts = await queue.join()
            rounds = 0
            while counts.error and rounds < retry_rounds:
                rounds += 1
                display.on_retry_round(rounds, counts.error)
                queue.retry_failed()
                counts = await queue.join()

            display.on_finish(counts)
            return counts
    finally:
        display.close()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upload-queue",
        description="Upload files through a bounded-concurrency queue.",
    )
    parser.add_argument("paths", nargs="*", type=Path, help="Files or folders to upload")
    parser.add_argument(
        "-e",
        "--endpoint",
        default=None,
        help="Upload URL receiving multipart POSTs (default from UPLOAD_QUEUE_ENDPOINT)",
    )
    parser.add_argument(
        "-s",
        "--simulate",
        action="store_true",
        help="Use the simulated executor instead of HTTP",
    )
    parser.add_argument(
        "-n",
        "--max-concurrent",
        type=int,
        default=None,
        help="Concurrent uploads (default from UPLOAD_QUEUE_MAX_CONCURRENT or 3)",
    )
    parser.add_argument(
        "-r",
        "--retry-failed",
        type=int,
        default=0,
        help="Retry rounds for failed files",
    )
    parser.add_argument(
        "--failure-rate",
        type=float,
        default=0.1,
        help="Failure probability of the simulated executor",
    )
    parser.add_argument(
        "--delay",
        nargs=2,
        type=float,
        metavar=("MIN", "MAX"),
        default=None,
        help="Delay range in seconds of the simulated executor (default 2 5)",
    )
    parser.add_argument(
        "--accept",
        action="append",
        default=None,
        help="Accepted type, repeatable (image/*, application/pdf, .docx)",
    )
    parser.add_argument(
        "--documents-only",
        action="store_true",
        help="Only accept images, PDF, office documents and .txt files",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"upload-queue {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if not args.paths:
        parser.print_help()
        return 0

    paths = [Path(p).expanduser() for p in args.paths]
    missing = [p for p in paths if not p.exists()]
    if missing:
        print(f"ERROR: source does not exist: {missing[0]}", file=sys.stderr)
        return 1

    endpoint = args.endpoint or os.getenv("UPLOAD_QUEUE_ENDPOINT")
    try:
        config = QueueConfig.from_env(
            max_concurrent=args.max_concurrent,
            accept=_accept_patterns(args.accept, args.documents_only),
        )
        executor = _build_executor(endpoint, args.simulate, args.failure_rate, args.delay)
    except (CLIError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    simulated = isinstance(executor, SimulatedTransferExecutor)
    render_configuration_summary(
        {
            "Sources": ", ".join(str(p) for p in paths),
            "Executor": "simulated" if simulated else "http",
            "Endpoint": "-" if simulated else endpoint,
            "Max Concurrent": config.max_concurrent,
            "Retry Rounds": args.retry_failed,
            "Accept": ", ".join(config.accept) if config.accept else "any",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        counts = asyncio.run(
            _run_queue(
                paths=paths,
                executor=executor,
                config=config,
                retry_rounds=max(args.retry_failed, 0),
                display=QueueProgressDisplay(),
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    return 0 if counts.all_complete else 1


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
