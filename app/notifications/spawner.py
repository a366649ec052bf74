"""
Detached worker handoff.

WorkerSpawner writes a batch of jobs to a private temp file and launches
`python -m notifications.worker <file>` as a detached process. The parent
does not wait for, poll, or hear back from the worker.

File ownership:
    - Created right before the launch, mode 0600 inside a 0700 directory
      owned by this user (an existing directory is checked, not trusted)
    - Removed by the parent if anything goes wrong before the launch succeeds
    - Owned by the worker afterwards (it deletes the file once read)

Settings:
    NOTIFICATION_JOB_DIR: Directory for job files
    NOTIFICATION_WORKER_PYTHON: Interpreter for the worker (default sys.executable)
"""

from __future__ import annotations

import logging
import os
import stat
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import ExternalServiceError
from notifications.jobs import serialize_batch

if TYPE_CHECKING:
    from collections.abc import Sequence

    from notifications.jobs import EmailJob

logger = logging.getLogger(__name__)

WORKER_MODULE = "notifications.worker"


class SpawnError(ExternalServiceError):
    """The worker could not be started; the caller must run the jobs itself."""

    default_error_code = "WORKER_SPAWN_FAILED"


class WorkerSpawner:
    """
    Launches a detached worker for one batch of jobs.

    Args:
        job_dir: Where to write job files (default NOTIFICATION_JOB_DIR)
        python: Interpreter path (default NOTIFICATION_WORKER_PYTHON or
            sys.executable)
        cwd: Working directory for the worker, must have the project
            packages importable (default BASE_DIR)
    """

    def __init__(
        self,
        job_dir: str | Path | None = None,
        python: str | None = None,
        cwd: str | Path | None = None,
    ):
        self.job_dir = Path(job_dir or settings.NOTIFICATION_JOB_DIR)
        if python is None:
            python = settings.NOTIFICATION_WORKER_PYTHON or sys.executable
        self.python = python
        self.cwd = Path(cwd or settings.BASE_DIR)

    def spawn(self, jobs: Sequence[EmailJob]) -> str:
        """
        Hand `jobs` to a new worker process.

        Returns:
            Path of the job file given to the worker

        Raises:
            SpawnError: No interpreter, file write failed, or launch failed.
                No job file is left behind in any of these cases.
        """
        if not self.python:
            raise SpawnError(
                "No Python interpreter available for the email worker",
                error_code="NO_INTERPRETER",
            )

        path = self._write_job_file(jobs)

        try:
            subprocess.Popen(
                [self.python, "-m", WORKER_MODULE, path],
                cwd=str(self.cwd),
                env=self._worker_env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
                start_new_session=True,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self._discard(path)
            raise SpawnError(
                f"Failed to launch email worker: {e}",
                details={"python": self.python},
            ) from e

        logger.info(f"Spawned email worker for {len(jobs)} job(s): {path}")
        return path

    def _write_job_file(self, jobs: Sequence[EmailJob]) -> str:
        try:
            data = serialize_batch(jobs).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SpawnError(f"Could not serialize email jobs: {e}") from e

        try:
            self._ensure_private_dir()
            fd, path = tempfile.mkstemp(
                prefix="jobs-", suffix=".json", dir=str(self.job_dir)
            )
        except OSError as e:
            raise SpawnError(f"Could not create job file in {self.job_dir}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
        except (OSError, ValueError) as e:
            self._discard(path)
            raise SpawnError(f"Could not write job file {path}: {e}") from e
        except BaseException:
            self._discard(path)
            raise

        return path

    def _ensure_private_dir(self) -> None:
        """
        Create the job dir owner-only, or check an existing one.

        The default location sits in the shared temp dir, so an existing
        directory must be a real directory owned by this user. Group or
        other permission bits are stripped.
        """
        self.job_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

        info = os.lstat(self.job_dir)
        if not stat.S_ISDIR(info.st_mode):
            raise SpawnError(
                f"Job dir {self.job_dir} is not a directory",
                error_code="UNSAFE_JOB_DIR",
            )
        if info.st_uid != os.getuid():
            raise SpawnError(
                f"Job dir {self.job_dir} is owned by uid {info.st_uid}",
                error_code="UNSAFE_JOB_DIR",
            )
        if stat.S_IMODE(info.st_mode) & 0o077:
            logger.warning(
                f"Job dir {self.job_dir} had mode "
                f"{oct(stat.S_IMODE(info.st_mode))}, resetting to 0700"
            )
            os.chmod(self.job_dir, 0o700)

    @staticmethod
    def _discard(path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove job file {path}: {e}")

    @staticmethod
    def _worker_env() -> dict[str, str]:
        env = os.environ.copy()
        env.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
        return env
