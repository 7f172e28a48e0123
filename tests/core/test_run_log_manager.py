# tests/core/test_run_log_manager.py
import json
from unittest import mock

import pytest

from sitealign.core.managers.run_log_manager import RunLogManager
from sitealign.model import RunProgress, RunRecord


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "scripts" / ".align-log.json"


def _record(**kwargs):
    return RunRecord(
        timestamp="2024-01-01T10:00:00.000Z",
        duration_ms=1234,
        progress=RunProgress(total_files=2, files_changed=1, total_fixes=3, warnings=1),
        **kwargs,
    )


def test_missing_log_loads_empty(log_path):
    manager = RunLogManager(log_path)
    assert manager.load() == {}
    assert manager.flush() is False
    assert not log_path.exists()


def test_record_and_flush_uses_camel_case_keys(log_path):
    manager = RunLogManager(log_path)
    manager.load()
    manager.record("enforce", _record(changes=["public/index.html: Added robots meta"], warnings=["w"]))
    assert manager.flush() is True
    assert manager.flush() is False

    data = json.loads(log_path.read_text(encoding="utf-8"))
    section = data["enforce"]
    assert section["durationMs"] == 1234
    assert section["progress"] == {"totalFiles": 2, "filesChanged": 1, "totalFixes": 3, "warnings": 1}
    assert section["changes"] == ["public/index.html: Added robots meta"]
    assert section["errors"] == []
    assert list(log_path.parent.glob(".align-log-*.tmp")) == []


def test_other_sections_are_preserved(log_path):
    log_path.parent.mkdir(parents=True)
    log_path.write_text(json.dumps({"inject": {"timestamp": "old"}, "custom": [1, 2]}), encoding="utf-8")

    manager = RunLogManager(log_path)
    manager.load()
    manager.record("enforce", _record())
    manager.flush()

    data = json.loads(log_path.read_text(encoding="utf-8"))
    assert data["inject"] == {"timestamp": "old"}
    assert data["custom"] == [1, 2]
    assert manager.get_section("custom") is None
    assert manager.get_section("enforce")["timestamp"] == "2024-01-01T10:00:00.000Z"


@pytest.mark.parametrize("content", ["{not json", "[]"])
def test_corrupt_log_starts_over(log_path, content):
    log_path.parent.mkdir(parents=True)
    log_path.write_text(content, encoding="utf-8")
    manager = RunLogManager(log_path)
    assert manager.load() == {}
    manager.record("assets", _record())
    manager.flush()
    assert set(json.loads(log_path.read_text(encoding="utf-8"))) == {"assets"}


def test_failed_write_leaves_previous_log_intact(log_path):
    log_path.parent.mkdir(parents=True)
    log_path.write_text('{"enforce": {"timestamp": "old"}}', encoding="utf-8")
    manager = RunLogManager(log_path)
    manager.load()
    manager.record("enforce", _record())

    with mock.patch("sitealign.core.managers.run_log_manager.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            manager.flush()

    assert json.loads(log_path.read_text(encoding="utf-8")) == {"enforce": {"timestamp": "old"}}
    assert list(log_path.parent.glob(".align-log-*.tmp")) == []


def test_exit_code_follows_warnings_and_errors():
    assert RunRecord().exit_code == 0
    assert RunRecord(warnings=["w"]).exit_code == 1
    assert RunRecord(errors=["e"]).exit_code == 1
