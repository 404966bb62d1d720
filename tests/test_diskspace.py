"""
Tests for disk-space reclamation.
"""

import os
import sys
from datetime import datetime, timedelta

import pytest

from msp_toolkit.windows.diskspace import DiskCleanupTarget, default_targets, format_bytes, reclaim

NOW = datetime(2026, 6, 1, 12, 0, 0)


def make_file(path, size=10, age_days=30):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    timestamp = (NOW - timedelta(days=age_days)).timestamp()
    os.utime(path, (timestamp, timestamp))
    return path


@pytest.fixture
def temp_dir(tmp_path):
    root = tmp_path / "Temp"
    make_file(root / "old.tmp", size=100, age_days=30)
    make_file(root / "sub" / "older.log", size=50, age_days=60)
    make_file(root / "fresh.tmp", size=10, age_days=1)
    return root


class TestReclaim:
    """Tests for reclaim."""

    def test_report_only(self, temp_dir):
        """Test that without apply nothing is deleted."""
        report = reclaim([DiskCleanupTarget(temp_dir, older_than_days=7)], now=NOW)

        assert report.files_matched == 2
        assert report.bytes_matched == 150
        assert report.files_removed == 0
        assert (temp_dir / "old.tmp").exists()

    def test_apply_removes_old_files_and_empty_dirs(self, temp_dir):
        report = reclaim([DiskCleanupTarget(temp_dir, older_than_days=7)], apply=True, now=NOW)

        assert report.files_removed == 2
        assert report.bytes_removed == 150
        assert report.dirs_removed == 1
        assert not (temp_dir / "old.tmp").exists()
        assert not (temp_dir / "sub").exists()
        assert (temp_dir / "fresh.tmp").exists()
        assert temp_dir.exists()

    def test_rerun_finds_nothing(self, temp_dir):
        target = DiskCleanupTarget(temp_dir, older_than_days=7)
        reclaim([target], apply=True, now=NOW)

        report = reclaim([target], apply=True, now=NOW)

        assert report.files_matched == 0
        assert report.errors == 0

    def test_pattern(self, temp_dir):
        report = reclaim([DiskCleanupTarget(temp_dir, pattern="*.log", older_than_days=7)], now=NOW)

        assert report.files_matched == 1

    def test_missing_target_skipped(self, tmp_path):
        report = reclaim([DiskCleanupTarget(tmp_path / "nope")], apply=True, now=NOW)

        assert report.skipped_targets == [str(tmp_path / "nope")]
        assert report.errors == 0

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlinks_not_followed(self, tmp_path, temp_dir):
        """Test that files outside the target reached through a link survive."""
        outside = make_file(tmp_path / "keep" / "important.doc", age_days=90)
        os.symlink(outside.parent, temp_dir / "link-dir")
        os.symlink(outside, temp_dir / "link-file.doc")

        reclaim([DiskCleanupTarget(temp_dir, older_than_days=7)], apply=True, now=NOW)

        assert outside.exists()
        assert (temp_dir / "link-dir").is_symlink()
        assert (temp_dir / "link-file.doc").is_symlink()


class TestDefaults:
    """Tests for configured targets and formatting."""

    def test_default_targets_expand_variables(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MSP_TEST_ROOT", str(tmp_path))
        config = {"cleanup": {"disk": {"older_than_days": 3, "paths": ["$MSP_TEST_ROOT/Temp"]}}}

        targets = default_targets(config)

        assert [t.path for t in targets] == [tmp_path / "Temp"]
        assert targets[0].older_than_days == 3

    def test_default_targets_empty_config(self):
        assert default_targets({}) == []

    @pytest.mark.parametrize(
        "size,expected",
        [(0, "0 B"), (1023, "1023 B"), (1536, "1.5 KB"), (5 * 1024**2, "5.0 MB"), (3 * 1024**4, "3072.0 GB")],
    )
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected
