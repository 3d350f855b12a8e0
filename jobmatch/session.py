"""Persist search state in a per-tab mapping.

In the app the backing mapping comes from :class:`TabStorageRegistry`, keyed
by a token the browser tab keeps in its URL, so a reload of the tab finds
its state again. Tests use a plain dict. State lives under one key as a
JSON blob; the score map is written as ``[job_id, score]`` pairs and the
saved ids as a list.
"""
from __future__ import annotations

import json
import re
import threading
import uuid
from collections import OrderedDict
from typing import Any, Callable, MutableMapping, TypeVar

from jobmatch.log import get_logger
from jobmatch.models import Job, MatchScore, ScoreMap, SearchFilters, SearchSessionState

log = get_logger(__name__)

STATE_KEY = "jobSearchState"

_Item = TypeVar("_Item")


def _decode_items(raw: Any, decode: Callable[[Any], _Item], label: str) -> list[_Item]:
    """Decode each list entry on its own; broken entries are dropped."""
    if not isinstance(raw, list):
        if raw is not None:
            log.warning("Discarding stored %s: expected a list", label)
        return []
    items: list[_Item] = []
    for entry in raw:
        try:
            items.append(decode(entry))
        except (KeyError, TypeError, ValueError, IndexError, OverflowError) as exc:
            log.warning("Skipping corrupt stored %s entry: %s", label, exc)
    return items


def _score_pair(entry: Any) -> tuple[str, MatchScore]:
    job_id, score = entry
    return str(job_id), MatchScore.from_dict(score)


def _job_id(entry: Any) -> str:
    if isinstance(entry, bool) or not isinstance(entry, (str, int)):
        raise TypeError(f"unexpected job id {entry!r}")
    return str(entry)


def encode_state(state: SearchSessionState) -> str:
    return json.dumps(
        {
            "filters": state.filters.to_dict(),
            "jobs": [job.to_dict() for job in state.jobs],
            "matchScores": [[job_id, score.to_dict()] for job_id, score in state.score_map.items()],
            "savedJobIds": sorted(state.saved_job_ids),
        }
    )


def decode_state(blob: Any, default_filters: SearchFilters) -> SearchSessionState | None:
    """Field-by-field decode; ``None`` only when *blob* is not a JSON object."""
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as exc:
        log.warning("Stored search state is unreadable: %s", exc)
        return None
    if not isinstance(data, dict):
        log.warning("Stored search state is not an object")
        return None

    filters = default_filters
    if isinstance(data.get("filters"), dict):
        try:
            filters = SearchFilters.from_dict(data["filters"])
        except (TypeError, ValueError, OverflowError) as exc:
            log.warning("Discarding stored filters: %s", exc)

    jobs = _decode_items(data.get("jobs"), Job.from_dict, "job")
    score_map: ScoreMap = dict(_decode_items(data.get("matchScores"), _score_pair, "score"))
    saved = _decode_items(data.get("savedJobIds"), _job_id, "saved id")

    return SearchSessionState(
        filters=filters,
        jobs=tuple(jobs),
        score_map=score_map,
        saved_job_ids=frozenset(saved),
    )


class SessionStateStore:
    def __init__(
        self,
        storage: MutableMapping[str, Any],
        key: str = STATE_KEY,
        default_filters: SearchFilters | None = None,
    ) -> None:
        self.storage = storage
        self.key = key
        self.default_filters = default_filters or SearchFilters()

    def save(self, state: SearchSessionState) -> None:
        self.storage[self.key] = encode_state(state)

    def load(self) -> SearchSessionState | None:
        blob = self.storage.get(self.key)
        if blob is None:
            return None
        return decode_state(blob, self.default_filters)

    def clear(self) -> None:
        self.storage.pop(self.key, None)


_TOKEN_RE = re.compile(r"[0-9a-f]{32}")


class TabStorageRegistry:
    """Process-wide storage mappings, one per browser tab token.

    Outlives Streamlit sessions, which end on every page reload. The least
    recently used tabs are dropped once more than *max_tabs* are held.
    """

    def __init__(self, max_tabs: int = 500) -> None:
        if max_tabs < 1:
            raise ValueError("max_tabs must be >= 1")
        self.max_tabs = max_tabs
        self._tabs: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def new_token() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def is_valid_token(token: Any) -> bool:
        return isinstance(token, str) and _TOKEN_RE.fullmatch(token) is not None

    def storage_for(self, token: str) -> MutableMapping[str, Any]:
        if not self.is_valid_token(token):
            raise ValueError(f"invalid tab token {token!r}")
        with self._lock:
            storage = self._tabs.get(token)
            if storage is None:
                storage = self._tabs[token] = {}
                while len(self._tabs) > self.max_tabs:
                    dropped, _ = self._tabs.popitem(last=False)
                    log.debug("Dropped stored state of idle tab %s", dropped[:8])
            else:
                self._tabs.move_to_end(token)
            return storage

    def __len__(self) -> int:
        with self._lock:
            return len(self._tabs)
