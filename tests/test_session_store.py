from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tazz.errors import NotFoundError, StorageError
from tazz.storage import SessionRecord, SessionStatus, SessionStore
from tazz.tasks import TaskDescriptor

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_record(session_id: str = "auth", **overrides) -> SessionRecord:
    values = {
        "id": session_id,
        "branch": f"feature/{session_id}",
        "worktree_path": f"/work/{session_id}",
        "tasks": [TaskDescriptor(name="Build", description="Implement X", slug="build-1")],
        "created_at": BASE_TIME,
        "last_active": BASE_TIME,
    }
    values.update(overrides)
    return SessionRecord(**values)


def make_store(tmp_path: Path) -> SessionStore:
    return SessionStore(
        tmp_path / ".tazz" / "sessions.json",
        clock=lambda: BASE_TIME + timedelta(hours=1),
    )


def test_missing_file_is_empty(tmp_path: Path) -> None:
    store = make_store(tmp_path)

    assert store.get_all() == []
    assert store.get("auth") is None


def test_save_then_get_returns_equal_record(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    record = make_record()

    store.save(record)

    assert store.get("auth") == record


def test_save_overwrites_existing_id(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(make_record())
    store.save(make_record("billing"))
    store.save(make_record(branch="feature/auth-v2"))

    records = store.get_all()

    assert [record.id for record in records] == ["auth", "billing"]
    assert records[0].branch == "feature/auth-v2"


def test_file_shape_uses_camel_case(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(make_record())

    document = json.loads(store.path.read_text(encoding="utf-8"))

    assert set(document) == {"sessions", "lastUpdated"}
    session = document["sessions"][0]
    assert session["worktreePath"] == "/work/auth"
    assert session["status"] == "active"
    assert session["tasks"] == [{"name": "Build", "description": "Implement X", "slug": "build-1"}]
    assert "createdAt" in session and "lastActive" in session


def test_update_status_stamps_last_active(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(make_record())

    updated = store.update_status("auth", SessionStatus.STOPPED)

    assert updated.status is SessionStatus.STOPPED
    assert updated.last_active == BASE_TIME + timedelta(hours=1)
    assert store.get("auth") == updated


def test_update_status_unknown_id_leaves_store_untouched(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(make_record())
    before = store.path.read_bytes()

    with pytest.raises(NotFoundError):
        store.update_status("missing", SessionStatus.STOPPED)

    assert store.path.read_bytes() == before


def test_remove(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(make_record())
    store.save(make_record("billing"))

    store.remove("auth")

    assert [record.id for record in store.get_all()] == ["billing"]


def test_remove_unknown_id_is_noop(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(make_record())
    before = store.path.read_bytes()

    store.remove("missing")

    assert store.path.read_bytes() == before


def test_corrupt_file_raises_storage_error(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("invalid json", encoding="utf-8")

    with pytest.raises(StorageError) as excinfo:
        store.get_all()

    assert excinfo.value.path == store.path


def test_write_failure_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = SessionStore(blocker / "sessions.json")

    with pytest.raises(StorageError):
        store.save(make_record())


def test_write_leaves_no_temp_files(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(make_record())
    store.update_status("auth", SessionStatus.PAUSED)

    leftovers = [path.name for path in store.path.parent.iterdir() if path.suffix == ".tmp"]

    assert leftovers == []
