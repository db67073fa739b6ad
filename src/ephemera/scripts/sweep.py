"""Run one retention sweep from the command line, for cron and similar schedulers."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from ephemera.core.errors import StoreUnavailable
from ephemera.core.log import configure_logging
from ephemera.db.session import SessionLocal
from ephemera.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Delete messages older than the fixed 48 hour retention window"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run.",
    )
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    sweeper = RetentionSweeper()
    with SessionLocal() as session:
        try:
            result = sweeper.sweep(session)
        except StoreUnavailable as exc:
            print(f"[sweep] ERROR: {exc.detail}", file=sys.stderr)
            return 1
    print(json.dumps(result.as_dict()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
