"""Command line runner for the chat automation sweep.

Runs :meth:`app.chat.automation.AutomationSweeper.run` against the database
either once (for cron style schedulers) or in a loop every ``--interval``
seconds. Overlapping runs are safe because fired rules are recognised from
the room's message history.
"""

from __future__ import annotations

import argparse
import logging
import time

from dotenv import load_dotenv

from app.app_logging import init_logging
from app.chat.engine import build_engine
from app.chat.models import SweepResult
from app.chat.store import PostgresChatStore
from app.core.config import get_settings
from app.core.db import connect
from app.models.session import safe_url

log = logging.getLogger("app.sweep")


def run_once(database_url: str | None = None) -> SweepResult:
    """Open an autocommit connection and run a single sweep."""

    conn = connect(database_url, autocommit=True)
    try:
        engine = build_engine(PostgresChatStore(conn))
        return engine.sweeper.run()
    finally:
        conn.close()


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and run the sweep once or forever."""

    load_dotenv()
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run chat automation rules")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="PostgreSQL DSN (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=settings.sweep_interval_seconds,
        help="Seconds to wait between sweeps (CHAT_SWEEP_INTERVAL_SECONDS)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )
    args = parser.parse_args(argv)

    if not args.database_url:
        parser.error("--database-url is required (or set DATABASE_URL)")
    if args.interval <= 0:
        parser.error("--interval must be a positive number of seconds")

    init_logging(console=True)
    log.info("automation sweep using %s", safe_url(args.database_url))

    while True:
        try:
            result = run_once(args.database_url)
        except Exception:
            log.exception("automation sweep aborted")
            if args.once:
                return 1
        else:
            log.info(
                "sweep done: processed=%d tenants=%d rooms=%d failures=%d",
                result.processed,
                result.tenants,
                result.rooms,
                result.failures,
            )
            if args.once:
                return 1 if result.failures else 0
        time.sleep(args.interval)


if __name__ == "__main__":  # pragma: no cover - CLI execution
    raise SystemExit(main())
