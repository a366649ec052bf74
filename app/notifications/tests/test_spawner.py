"""
Tests for WorkerSpawner.

Popen is always mocked; no process is started.
"""

import json
import os
import stat
import subprocess
import sys

import pytest

from notifications.jobs import MessageNotificationJob
from notifications.spawner import WORKER_MODULE, SpawnError, WorkerSpawner


def _jobs():
    return [
        MessageNotificationJob(email="a@example.com", name="A", subject="S", content="C")
    ]


@pytest.fixture
def job_dir(tmp_path):
    return tmp_path / "jobs"


class TestSpawn:
    """Tests for WorkerSpawner.spawn()."""

    def test_writes_batch_and_launches_worker(self, job_dir, mocker):
        """The worker gets an argument list with the job file path."""
        popen = mocker.patch("notifications.spawner.subprocess.Popen")
        spawner = WorkerSpawner(job_dir=job_dir, python="/usr/bin/python3", cwd="/srv/app")

        path = spawner.spawn(_jobs())

        args, kwargs = popen.call_args
        assert args[0] == ["/usr/bin/python3", "-m", WORKER_MODULE, path]
        assert kwargs["cwd"] == "/srv/app"
        assert kwargs["start_new_session"] is True
        assert kwargs["stdout"] is subprocess.DEVNULL
        assert "shell" not in kwargs

        with open(path, encoding="utf-8") as handle:
            document = json.load(handle)
        assert document == {"jobs": [job.to_dict() for job in _jobs()]}

    def test_job_dir_is_private(self, job_dir, mocker):
        """The directory is created owner-only."""
        mocker.patch("notifications.spawner.subprocess.Popen")

        WorkerSpawner(job_dir=job_dir, python=sys.executable).spawn(_jobs())

        assert stat.S_IMODE(os.stat(job_dir).st_mode) & 0o077 == 0

    def test_worker_env_has_settings_module(self, job_dir, mocker):
        """The worker can find the Django settings."""
        popen = mocker.patch("notifications.spawner.subprocess.Popen")

        WorkerSpawner(job_dir=job_dir, python=sys.executable).spawn(_jobs())

        assert popen.call_args.kwargs["env"]["DJANGO_SETTINGS_MODULE"]

    def test_launch_failure_removes_file(self, job_dir, mocker):
        """A failed launch raises SpawnError and leaves no job file."""
        mocker.patch(
            "notifications.spawner.subprocess.Popen",
            side_effect=OSError("fork failed"),
        )

        with pytest.raises(SpawnError) as exc_info:
            WorkerSpawner(job_dir=job_dir, python=sys.executable).spawn(_jobs())

        assert exc_info.value.error_code == "WORKER_SPAWN_FAILED"
        assert list(job_dir.glob("jobs-*.json")) == []

    def test_no_interpreter(self, job_dir, mocker):
        """An empty interpreter path fails before anything is written."""
        popen = mocker.patch("notifications.spawner.subprocess.Popen")

        with pytest.raises(SpawnError) as exc_info:
            WorkerSpawner(job_dir=job_dir, python="").spawn(_jobs())

        assert exc_info.value.error_code == "NO_INTERPRETER"
        popen.assert_not_called()
        assert not job_dir.exists()

    def test_unwritable_job_dir(self, tmp_path, mocker):
        """A job dir that cannot be created raises SpawnError."""
        popen = mocker.patch("notifications.spawner.subprocess.Popen")
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(SpawnError):
            WorkerSpawner(job_dir=blocker / "jobs", python=sys.executable).spawn(_jobs())

        popen.assert_not_called()

    def test_defaults_from_settings(self, settings, tmp_path):
        """Job dir and interpreter come from settings."""
        settings.NOTIFICATION_JOB_DIR = str(tmp_path / "spool")
        settings.NOTIFICATION_WORKER_PYTHON = ""

        spawner = WorkerSpawner()

        assert spawner.job_dir == tmp_path / "spool"
        assert spawner.python == sys.executable
        assert spawner.cwd == settings.BASE_DIR


class TestJobDirSafety:
    """An existing job dir is checked before any file goes into it."""

    def test_existing_open_dir_is_tightened(self, job_dir, mocker):
        """Group and other bits are stripped from a pre-existing dir."""
        mocker.patch("notifications.spawner.subprocess.Popen")
        job_dir.mkdir()
        os.chmod(job_dir, 0o777)

        WorkerSpawner(job_dir=job_dir, python=sys.executable).spawn(_jobs())

        assert stat.S_IMODE(os.stat(job_dir).st_mode) == 0o700

    def test_symlinked_dir_rejected(self, tmp_path, job_dir, mocker):
        """A symlink in place of the dir is refused and nothing is written."""
        popen = mocker.patch("notifications.spawner.subprocess.Popen")
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir(mode=0o700)
        job_dir.symlink_to(elsewhere, target_is_directory=True)

        with pytest.raises(SpawnError) as exc_info:
            WorkerSpawner(job_dir=job_dir, python=sys.executable).spawn(_jobs())

        assert exc_info.value.error_code == "UNSAFE_JOB_DIR"
        assert list(elsewhere.iterdir()) == []
        popen.assert_not_called()

    def test_foreign_owner_rejected(self, job_dir, mocker):
        """A dir owned by another uid is refused."""
        popen = mocker.patch("notifications.spawner.subprocess.Popen")
        job_dir.mkdir(mode=0o700)
        mocker.patch("notifications.spawner.os.getuid", return_value=os.getuid() + 1)

        with pytest.raises(SpawnError) as exc_info:
            WorkerSpawner(job_dir=job_dir, python=sys.executable).spawn(_jobs())

        assert exc_info.value.error_code == "UNSAFE_JOB_DIR"
        assert list(job_dir.iterdir()) == []
        popen.assert_not_called()


class TestUnencodablePayload:
    """Jobs whose text cannot be written as UTF-8."""

    def test_lone_surrogate_leaves_no_file(self, job_dir, mocker):
        """Encoding fails before the file exists; SpawnError, no leftovers."""
        popen = mocker.patch("notifications.spawner.subprocess.Popen")
        jobs = [
            MessageNotificationJob(
                email="a@example.com", name="A", subject="S", content="bad \ud800"
            )
        ]

        with pytest.raises(SpawnError):
            WorkerSpawner(job_dir=job_dir, python=sys.executable).spawn(jobs)

        popen.assert_not_called()
        assert not job_dir.exists() or list(job_dir.glob("jobs-*.json")) == []

    def test_queue_falls_back_without_leftovers(self, job_dir, mocker):
        """Through the queue the jobs still run and the spool stays empty."""
        from notifications.queue import DeferredJobQueue, FlushState

        mocker.patch("notifications.spawner.subprocess.Popen")
        runner = mocker.Mock()
        runner.run_batch.return_value = 1
        queue = DeferredJobQueue(
            runner=runner,
            spawner=WorkerSpawner(job_dir=job_dir, python=sys.executable),
        )
        queue.enqueue(
            MessageNotificationJob(
                email="a@example.com", name="A", subject="S", content="bad \ud800"
            )
        )

        assert queue.flush() is FlushState.SYNCHRONOUS_FALLBACK
        assert not job_dir.exists() or list(job_dir.glob("jobs-*.json")) == []
