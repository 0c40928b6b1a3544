# =============================================================================
# dreamembed/cli/worker.py -- Operator CLI for the Embedding Pipeline
# =============================================================================
#
# Standalone CLI for running and operating the dream-narration embedding
# pipeline. Everything here talks to the same SQLite database the worker
# uses, so operators can inspect and nudge the queue while workers run.
#
# Supported subcommands:
#
#   run           -- Run the worker pool and the stale-job reaper until
#                   SIGINT/SIGTERM
#   process-once  -- Claim one batch of jobs, process them, and exit
#   submit        -- Create a document from text (or a file) and enqueue it
#   enqueue       -- Idempotently create a job for an existing document
#   requeue       -- Force a document back to pending, whatever its status
#   reset         -- Return a failed document (or, with --all-failed, every
#                   failed or orphaned document) to pending
#   backfill      -- Create jobs for every pending document that has none
#   status        -- Per-status document/job counts as JSON
#   reap          -- Run one stale-job sweep now
#   seed-themes   -- Load the theme catalog from YAML and backfill embeddings
#   themes        -- Show a document's ranked themes
#
# Exit codes: 0 success, 1 operation failed, 2 configuration error.
#
# Usage examples:
#   dreamembed run
#   dreamembed submit --text "I was falling from a tall tower..."
#   dreamembed requeue 6f1c2e
#   dreamembed backfill --limit 500
#   dreamembed reset --all-failed
#   dreamembed status
#   dreamembed seed-themes --file config/themes.yaml
# =============================================================================

"""Operator CLI for the dreamembed worker and job queue.

Usage::

    dreamembed run
    dreamembed submit --file dream.txt
    dreamembed status
    python -m dreamembed.cli requeue <document-id>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path
from typing import Any

from dreamembed.config.loader import load_settings
from dreamembed.config.settings import Settings
from dreamembed.utils.errors import ConfigurationError, DreamEmbedError
from dreamembed.utils.logging import configure_logging

_DEFAULT_THEMES_FILE = "config/themes.yaml"


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_run(args: argparse.Namespace, app_settings: Settings) -> int:
    """Run the worker pool and reaper until a shutdown signal arrives."""
    from dreamembed.main import build_pipeline, run_worker

    pipeline = build_pipeline(app_settings, worker_id=args.worker_id)
    await run_worker(pipeline)
    return 0


async def _handle_process_once(args: argparse.Namespace, app_settings: Settings) -> int:
    """Claim up to ``concurrency_limit`` jobs, process them, report counters."""
    from dreamembed.main import build_pipeline

    pipeline = build_pipeline(app_settings, worker_id=args.worker_id)
    await pipeline.initialize()
    claimed = await pipeline.worker.run_once()
    status = pipeline.worker.get_status()
    _print_json({"claimed": claimed, "counters": status["counters"]})
    return 0


async def _handle_submit(args: argparse.Namespace, app_settings: Settings) -> int:
    """Create a document and enqueue it, standing in for the capture trigger."""
    from dreamembed.main import build_store

    if args.file:
        text = Path(args.file).read_text(encoding="utf-8")
    else:
        text = args.text

    store = build_store(app_settings)
    await store.initialize()
    document_id = args.id or str(uuid.uuid4())
    await store.create_document(document_id, text, language=args.language)
    await store.enqueue(document_id, priority=args.priority)
    _print_json({"document_id": document_id, "queued": True})
    return 0


async def _handle_enqueue(args: argparse.Namespace, app_settings: Settings) -> int:
    from dreamembed.main import build_store

    store = build_store(app_settings)
    await store.initialize()
    created = await store.enqueue(args.document_id, priority=args.priority)
    _print_json({"document_id": args.document_id, "created": created})
    return 0


async def _handle_requeue(args: argparse.Namespace, app_settings: Settings) -> int:
    """Manual trigger: re-enqueue regardless of current status."""
    from dreamembed.main import build_store

    store = build_store(app_settings)
    await store.initialize()
    job = await store.requeue(args.document_id, priority=args.priority)
    _print_json(job.model_dump(mode="json"))
    return 0


async def _handle_reset(args: argparse.Namespace, app_settings: Settings) -> int:
    from dreamembed.main import build_store

    store = build_store(app_settings)
    await store.initialize()
    if args.all_failed:
        reset_ids = await store.reset_all_failed(attempts=args.attempts)
        _print_json({"reset": reset_ids, "count": len(reset_ids), "attempts": args.attempts})
        return 0
    if not await store.reset_failed(args.document_id, attempts=args.attempts):
        print(f"Document {args.document_id} is not in 'failed' state.", file=sys.stderr)
        return 1
    _print_json({"document_id": args.document_id, "reset": True, "attempts": args.attempts})
    return 0


async def _handle_backfill(args: argparse.Namespace, app_settings: Settings) -> int:
    """Queue every pending document that was captured before the trigger existed."""
    from dreamembed.main import build_store

    store = build_store(app_settings)
    await store.initialize()
    created = await store.enqueue_missing(priority=args.priority, limit=args.limit)
    _print_json({"enqueued": created})
    return 0


async def _handle_status(args: argparse.Namespace, app_settings: Settings) -> int:
    """Print per-status counts for dashboards and alerting."""
    from dreamembed.main import build_store

    store = build_store(app_settings)
    await store.initialize()
    stats = await store.get_status_counts()
    _print_json(
        {
            "documents": stats.documents,
            "jobs": stats.jobs,
            "backlog": stats.backlog,
            "config": {
                "poll_interval_seconds": app_settings.poll_interval_seconds,
                "concurrency_limit": app_settings.concurrency_limit,
                "job_max_attempts": app_settings.job_max_attempts,
                "stale_job_timeout_seconds": app_settings.stale_job_timeout_seconds,
            },
        }
    )
    return 0


async def _handle_reap(args: argparse.Namespace, app_settings: Settings) -> int:
    from dreamembed.main import build_store
    from dreamembed.worker.reaper import StaleJobReaper

    store = build_store(app_settings)
    await store.initialize()
    reaper = StaleJobReaper(
        store=store,
        stale_timeout_seconds=args.timeout_seconds or app_settings.stale_job_timeout_seconds,
        interval_seconds=app_settings.reaper_interval_seconds,
    )
    reaped = await reaper.sweep()
    _print_json(
        [{"document_id": j.document_id, "status": j.status.value, "attempts": j.attempts} for j in reaped]
    )
    return 0


async def _handle_seed_themes(args: argparse.Namespace, app_settings: Settings) -> int:
    """Upsert catalog themes from YAML, then embed the ones without vectors."""
    from dreamembed.main import build_catalog, build_embedding_provider, build_store
    from dreamembed.services.theme_seeder import ThemeSeeder, load_themes_yaml

    themes = load_themes_yaml(args.file)
    # The store owns the full schema; document_themes references themes.
    await build_store(app_settings).initialize()
    catalog = build_catalog(app_settings)
    await catalog.initialize()

    embedder = None if args.no_embed else build_embedding_provider(app_settings)
    if embedder is None:
        for theme in themes:
            await catalog.upsert_theme(theme)
        _print_json({"seeded": len(themes), "embedded": 0})
        return 0

    seeder = ThemeSeeder(catalog=catalog, embedding_provider=embedder)
    seeded = await seeder.seed(themes)
    embedded = await seeder.backfill_embeddings()
    _print_json({"seeded": seeded, "embedded": embedded, "provider": embedder.get_provider_name()})
    return 0


async def _handle_themes(args: argparse.Namespace, app_settings: Settings) -> int:
    from dreamembed.main import build_store

    store = build_store(app_settings)
    await store.initialize()
    document = await store.get_document(args.document_id)
    if document is None:
        print(f"Document {args.document_id} not found.", file=sys.stderr)
        return 1
    themes = await store.get_document_themes(args.document_id)
    _print_json(
        {
            "document_id": document.id,
            "embedding_status": document.embedding_status.value,
            "embedding_error": document.embedding_error,
            "themes": [t.model_dump(mode="json", exclude={"document_id"}) for t in themes],
        }
    )
    return 0


_HANDLERS = {
    "run": _handle_run,
    "process-once": _handle_process_once,
    "submit": _handle_submit,
    "enqueue": _handle_enqueue,
    "requeue": _handle_requeue,
    "reset": _handle_reset,
    "backfill": _handle_backfill,
    "status": _handle_status,
    "reap": _handle_reap,
    "seed-themes": _handle_seed_themes,
    "themes": _handle_themes,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the operator CLI."""
    parser = argparse.ArgumentParser(
        prog="dreamembed",
        description="Run and operate the dream-narration embedding pipeline.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="YAML config file (default: config/config.yaml)"
    )
    parser.add_argument("--database", help="SQLite database path (overrides config)")
    parser.add_argument("--log-level", dest="log_level", help="Log level (overrides config)")
    subparsers = parser.add_subparsers(dest="command", help="Pipeline commands")

    # -- run / process-once --
    run_parser = subparsers.add_parser("run", help="Run worker pool and reaper until stopped")
    run_parser.add_argument("--worker-id", dest="worker_id", help="Label for this worker's logs")
    once_parser = subparsers.add_parser("process-once", help="Process one batch of jobs and exit")
    once_parser.add_argument("--worker-id", dest="worker_id", help="Label for this worker's logs")

    # -- submit --
    submit_parser = subparsers.add_parser("submit", help="Create a document and enqueue it")
    source = submit_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Narration text")
    source.add_argument("--file", help="Path to a UTF-8 text file with the narration")
    submit_parser.add_argument("--id", help="Document id (default: random UUID)")
    submit_parser.add_argument("--priority", type=int, default=0, help="Job priority (default: 0)")
    submit_parser.add_argument("--language", help="Language code reported at capture, e.g. en-US")

    # -- enqueue / requeue / reset --
    enqueue_parser = subparsers.add_parser("enqueue", help="Create a job for a document if it has none")
    enqueue_parser.add_argument("document_id")
    enqueue_parser.add_argument("--priority", type=int, default=0)

    requeue_parser = subparsers.add_parser(
        "requeue", help="Re-enqueue a document regardless of its current status"
    )
    requeue_parser.add_argument("document_id")
    requeue_parser.add_argument("--priority", type=int, default=1, help="Job priority (default: 1)")

    reset_parser = subparsers.add_parser("reset", help="Return failed documents to pending")
    target = reset_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("document_id", nargs="?")
    target.add_argument(
        "--all-failed",
        action="store_true",
        dest="all_failed",
        help="Reset every failed document and every processing document no job holds",
    )
    reset_parser.add_argument(
        "--attempts", type=int, default=0, help="Attempt count to restart from (default: 0)"
    )

    backfill_parser = subparsers.add_parser(
        "backfill", help="Create jobs for pending documents that have none, newest first"
    )
    backfill_parser.add_argument("--priority", type=int, default=0, help="Job priority (default: 0)")
    backfill_parser.add_argument("--limit", type=int, help="Create at most this many jobs")

    # -- status / reap --
    subparsers.add_parser("status", help="Show per-status document and job counts")
    reap_parser = subparsers.add_parser("reap", help="Run one stale-job sweep now")
    reap_parser.add_argument(
        "--timeout-seconds",
        dest="timeout_seconds",
        type=float,
        help="Stale timeout for this sweep (default: from config)",
    )

    # -- themes --
    seed_parser = subparsers.add_parser("seed-themes", help="Load and embed the theme catalog")
    seed_parser.add_argument(
        "--file", default=_DEFAULT_THEMES_FILE, help=f"Theme YAML (default: {_DEFAULT_THEMES_FILE})"
    )
    seed_parser.add_argument(
        "--no-embed",
        action="store_true",
        dest="no_embed",
        help="Only upsert catalog rows; skip embedding backfill",
    )

    themes_parser = subparsers.add_parser("themes", help="Show a document's ranked themes")
    themes_parser.add_argument("document_id")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Loads settings (YAML, then environment, then command-line overrides),
    configures logging to stderr so stdout stays machine-readable, and
    dispatches to the subcommand handler.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    overrides: dict[str, Any] = {}
    if args.database:
        overrides["database_path"] = args.database
    if args.log_level:
        overrides["log_level"] = args.log_level

    try:
        app_settings = load_settings(args.config, **overrides)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
        stream=sys.stderr,
    )

    handler = _HANDLERS[args.command]
    try:
        return asyncio.run(handler(args, app_settings))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    except (DreamEmbedError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
