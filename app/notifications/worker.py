"""
Detached email worker.

Started by WorkerSpawner as `python -m notifications.worker <job-file>`.
Loads the batch written by the request, deletes the file, and runs every
job through the configured gateway. Exit codes:

    0  batch processed (individual send failures are only logged)
    1  missing argument, unreadable file or malformed batch
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger("notifications.worker")


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        sys.stderr.write("usage: python -m notifications.worker <job-file>\n")
        return 1

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

    import django

    django.setup()

    from notifications.dispatcher import build_runner
    from notifications.jobs import JobFormatError, deserialize_batch

    path = Path(args[0])
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot read job file {path}: {e}")
        return 1

    # Delete first so a crashing job is never retried from the same file
    try:
        path.unlink()
    except OSError as e:
        logger.warning(f"Could not remove job file {path}: {e}")

    try:
        jobs = deserialize_batch(text)
    except JobFormatError as e:
        logger.error(f"Rejected job file {path}: {e.message}")
        return 1

    sent = build_runner().run_batch(jobs)
    logger.info(f"Email worker finished: {sent}/{len(jobs)} job(s) sent")
    return 0


if __name__ == "__main__":
    sys.exit(main())
