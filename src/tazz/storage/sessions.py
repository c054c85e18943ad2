"""JSON file persistence for session records."""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator

from pydantic import ValidationError

from ..errors import NotFoundError, StorageError
from .models import SessionData, SessionRecord, SessionStatus

logger = logging.getLogger(__name__)


class SessionStore:
    """Read-modify-write store of instance-level session records.

    Every mutation holds an exclusive ``flock`` on a sidecar lock file for the
    whole read-modify-write cycle and replaces the store file atomically, so
    concurrent invocations serialize instead of losing updates.
    """

    def __init__(
        self,
        path: Path,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._lock_path = self._path.with_name(f"{self._path.name}.lock")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def path(self) -> Path:
        return self._path

    def get_all(self) -> list[SessionRecord]:
        return self._read().sessions

    def get(self, session_id: str) -> SessionRecord | None:
        for record in self.get_all():
            if record.id == session_id:
                return record
        return None

    def save(self, record: SessionRecord) -> SessionRecord:
        """Insert or replace the record with ``record.id``."""

        with self._locked():
            data = self._read()
            sessions = list(data.sessions)
            for index, existing in enumerate(sessions):
                if existing.id == record.id:
                    sessions[index] = record
                    break
            else:
                sessions.append(record)
            self._write(sessions)
        logger.debug("Saved session record", extra={"session_id": record.id})
        return record

    def remove(self, session_id: str) -> None:
        """Delete the record; unknown ids are ignored."""

        with self._locked():
            data = self._read()
            sessions = [record for record in data.sessions if record.id != session_id]
            if len(sessions) == len(data.sessions):
                return
            self._write(sessions)
        logger.debug("Removed session record", extra={"session_id": session_id})

    def update_status(self, session_id: str, status: SessionStatus) -> SessionRecord:
        with self._locked():
            data = self._read()
            for index, record in enumerate(data.sessions):
                if record.id == session_id:
                    break
            else:
                raise NotFoundError(f"Session '{session_id}' not found")

            updated = record.model_copy(
                update={"status": SessionStatus(status), "last_active": self._clock()}
            )
            data.sessions[index] = updated
            self._write(data.sessions)
        logger.info(
            "Session status updated",
            extra={"session_id": session_id, "status": updated.status.value},
        )
        return updated

    @contextmanager
    def _locked(self) -> Iterator[None]:
        try:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self._lock_path, "a+")
        except OSError as exc:
            raise StorageError(f"Failed to lock session store: {exc}", path=self._path) from exc
        with handle:
            fcntl.flock(handle, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle, fcntl.LOCK_UN)

    def _read(self) -> SessionData:
        if not self._path.exists():
            return SessionData()
        try:
            raw = self._path.read_text(encoding="utf-8")
            if not raw.strip():
                return SessionData()
            return SessionData.model_validate(json.loads(raw))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            raise StorageError(f"Failed to read sessions file: {exc}", path=self._path) from exc

    def _write(self, sessions: list[SessionRecord]) -> None:
        payload = SessionData(sessions=sessions, last_updated=self._clock())
        document = payload.model_dump(mode="json", by_alias=True)
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                delete=False,
                dir=str(self._path.parent),
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                encoding="utf-8",
            ) as tmp:
                tmp_name = tmp.name
                json.dump(document, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to write sessions file: {exc}", path=self._path) from exc


__all__ = ["SessionStore"]
