"""Order jobs for display by match score."""
from __future__ import annotations

from typing import Mapping, Sequence

from jobmatch.models import Job, MatchScore

UNSCORED = -1


def rank(jobs: Sequence[Job], score_map: Mapping[str, MatchScore], sort_enabled: bool) -> Sequence[Job]:
    """Jobs by descending score, unscored last; source order when disabled.

    ``sorted`` is stable (also with ``reverse=True``), so equal scores keep
    their input order. Neither argument is modified.
    """
    if not sort_enabled:
        return jobs

    def key(job: Job) -> int:
        score = score_map.get(job.id)
        return score.matching_score if score is not None else UNSCORED

    return sorted(jobs, key=key, reverse=True)
