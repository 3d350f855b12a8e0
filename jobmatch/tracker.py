"""Track archived applications per user in CSV files with file locking."""
from __future__ import annotations

import csv
import fcntl
import json
import re
import uuid
from dataclasses import asdict, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jobmatch.config import DATA_DIR
from jobmatch.errors import PersistenceError
from jobmatch.log import get_logger
from jobmatch.models import ApplicationRecord

log = get_logger(__name__)

HEADERS: list[str] = [f.name for f in fields(ApplicationRecord)]
_LIST_FIELDS = ("matching_skills", "lacking_skills")


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _to_row(record: ApplicationRecord) -> dict[str, str]:
    row = asdict(record)
    for name in _LIST_FIELDS:
        row[name] = json.dumps(row[name])
    row["applied"] = "true" if record.applied else "false"
    row["matching_score"] = str(record.matching_score)
    return row


def _from_row(row: dict[str, str]) -> ApplicationRecord:
    data: dict[str, Any] = dict(row)
    for name in _LIST_FIELDS:
        data[name] = json.loads(data.get(name) or "[]")
    data["applied"] = (data.get("applied") or "").lower() == "true"
    data["matching_score"] = int(data.get("matching_score") or 0)
    return ApplicationRecord(**{h: data.get(h, "") for h in HEADERS})


class ApplicationTracker:
    """One CSV per user under ``<data_dir>/applications``."""

    def __init__(self, data_dir: Path = DATA_DIR) -> None:
        self.root = Path(data_dir) / "applications"

    def path_for(self, user_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id)
        return self.root / f"{safe}.csv"

    def _ensure(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            with open(path, "w", newline="", encoding="utf-8") as f:
                _lock(f)
                csv.writer(f).writerow(HEADERS)
                _unlock(f)
            log.info("Created application tracker → %s", path.name)

    def create(self, user_id: str, **record_fields: Any) -> ApplicationRecord:
        """Append one record; the id and ``created_at`` are assigned here."""
        record = ApplicationRecord(
            id=uuid.uuid4().hex,
            user_id=user_id,
            created_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            **record_fields,
        )
        path = self.path_for(user_id)
        try:
            self._ensure(path)
            with open(path, "a", newline="", encoding="utf-8") as f:
                _lock(f)
                csv.DictWriter(f, fieldnames=HEADERS).writerow(_to_row(record))
                _unlock(f)
        except (OSError, csv.Error) as exc:
            raise PersistenceError(f"Could not save application: {exc}") from exc
        log.debug("Tracked: %s @ %s [%s]", record.job_title, record.company, record.id)
        return record

    def get_applications(self, user_id: str) -> list[ApplicationRecord]:
        """All records of *user_id*, newest first."""
        path = self.path_for(user_id)
        if not path.exists():
            return []
        try:
            with open(path, "r", newline="", encoding="utf-8") as f:
                _lock(f, exclusive=False)
                rows = list(csv.DictReader(f))
                _unlock(f)
            records = [_from_row(r) for r in rows]
        except (OSError, csv.Error, ValueError, TypeError) as exc:
            raise PersistenceError(f"Could not read applications: {exc}") from exc
        return sorted(records, key=lambda r: r.created_at, reverse=True)
