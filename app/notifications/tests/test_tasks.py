"""
Tests for notification Celery tasks.

Tasks are called directly (synchronously); no broker is involved.
"""

import os
import time

from notifications.tasks import purge_stale_job_files


def _touch(path, age_hours):
    path.write_text('{"jobs": []}', encoding="utf-8")
    stamp = time.time() - age_hours * 3600
    os.utime(path, (stamp, stamp))


class TestPurgeStaleJobFiles:
    """Tests for purge_stale_job_files."""

    def test_removes_only_old_job_files(self, settings, tmp_path):
        """Old job files go; fresh ones and unrelated files stay."""
        job_dir = tmp_path / "spool"
        job_dir.mkdir()
        settings.NOTIFICATION_JOB_DIR = str(job_dir)
        _touch(job_dir / "jobs-old.json", age_hours=30)
        _touch(job_dir / "jobs-new.json", age_hours=1)
        _touch(job_dir / "notes.json", age_hours=30)

        removed = purge_stale_job_files(max_age_hours=24)

        assert removed == 1
        assert sorted(p.name for p in job_dir.iterdir()) == ["jobs-new.json", "notes.json"]

    def test_default_age_from_settings(self, settings, tmp_path):
        """Without an argument the configured age is used."""
        settings.NOTIFICATION_JOB_DIR = str(tmp_path)
        settings.NOTIFICATION_JOB_FILE_MAX_AGE_HOURS = 2
        _touch(tmp_path / "jobs-a.json", age_hours=3)

        assert purge_stale_job_files() == 1

    def test_missing_directory(self, settings, tmp_path):
        """Nothing spawned yet means nothing to purge."""
        settings.NOTIFICATION_JOB_DIR = str(tmp_path / "never-created")

        assert purge_stale_job_files() == 0

    def test_delay_signature(self):
        """The task is registered under its module path."""
        assert purge_stale_job_files.name == "notifications.tasks.purge_stale_job_files"
