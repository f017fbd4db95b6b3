"""
Jarvis - Database Setup & Maintenance Script
=============================================
CLI entry point that:
    1. Loads settings (fail-fast on a missing ``GOOGLE_API_KEY`` / ``MONGO_URI``).
    2. Connects to MongoDB and provisions the vector search index.
    3. Reports how many exchanges are stored.
    4. Optionally runs one retention sweep right away.

Flags:
    --sweep        Delete exchanges older than the retention window now.
    --skip-index   Do not touch the vector index.

Usage:
    python -m jarvis.scripts.setup_db             # Provision index + report
    python -m jarvis.scripts.setup_db --sweep     # ...and prune old exchanges
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from datetime import timedelta
from pathlib import Path

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="setup_db", description="Jarvis — Provision the vector index and maintain the chat history.")
    parser.add_argument("--sweep", action="store_true", default=False, help="Delete exchanges older than the retention window immediately.")
    parser.add_argument("--skip-index", action="store_true", default=False, help="Do not check or create the vector search index.")
    return parser.parse_args(argv)


# ── Main Orchestration ─────────────────────────────────────────────────

async def run(args: argparse.Namespace, store: object, retention_days: int) -> dict[str, int | bool]:
    """Run the requested maintenance steps against *store* and return a summary."""
    from jarvis.src.core.retention import RetentionSweeper

    summary: dict[str, int | bool] = {"index_created": False, "before": 0, "deleted": 0, "after": 0}

    if not args.skip_index:
        summary["index_created"] = await store.ensure_vector_index()  # type: ignore[attr-defined]

    summary["before"] = await store.count_exchanges()  # type: ignore[attr-defined]

    if args.sweep:
        sweeper = RetentionSweeper(store, retention=timedelta(days=retention_days))  # type: ignore[arg-type]
        summary["deleted"] = await sweeper.sweep_once()

    summary["after"] = await store.count_exchanges()  # type: ignore[attr-defined]
    return summary


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    try:
        from jarvis.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)

    # Now that settings is loaded, we can safely import the logger
    from jarvis.src.utils.logger import configure_library_logging, get_logger
    configure_library_logging()
    logger = get_logger(__name__)

    _print_header(settings)

    from jarvis.src.database.exchange_store import ExchangeStore, build_mongo_client

    client = build_mongo_client(settings)
    store = ExchangeStore(client)
    try:
        summary = asyncio.run(run(args, store, settings.RETENTION_DAYS))
    except Exception:
        logger.exception("Maintenance run failed.")
        sys.exit(1)
    finally:
        client.close()

    _print_footer(summary, time.perf_counter() - t_start)


# ── Pretty-print helpers ──────────────────────────────────────────────

def _mongo_host(uri: str) -> str:
    """Strip scheme, credentials and options: ``mongodb+srv://u:p@host/?x=1`` → ``host``."""
    rest = uri.split("://", 1)[-1]
    rest = rest.rsplit("@", 1)[-1]
    return rest.split("/", 1)[0].split("?", 1)[0]


def _print_header(settings: object) -> None:
    mongo_host = _mongo_host(settings.MONGO_URI.get_secret_value())  # type: ignore[attr-defined]

    print()
    print("=" * 60)
    print("  JARVIS - Database Setup & Maintenance")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                   # type: ignore[attr-defined]
    print(f"  MongoDB      : {mongo_host} (db: {settings.MONGO_DB_NAME}, collection: {settings.MONGO_COLLECTION_NAME})")  # type: ignore[attr-defined]
    print(f"  Vector index : {settings.VECTOR_INDEX_NAME} ({settings.EMBEDDING_DIMENSIONS} dims)")  # type: ignore[attr-defined]
    print(f"  Retention    : {settings.RETENTION_DAYS} days")   # type: ignore[attr-defined]
    print("=" * 60)
    print()


def _print_footer(summary: dict[str, int | bool], elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Index created        : {'yes' if summary['index_created'] else 'no'}")
    print(f"  Exchanges before     : {summary['before']}")
    print(f"  Exchanges deleted    : {summary['deleted']}")
    print(f"  Exchanges after      : {summary['after']}")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
