"""Incremental batch scoring of a job list against one resume.

Each call scores at most ``batch_limit`` not-yet-scored jobs, in groups of
``concurrency`` calls issued together. A group is fully awaited before the
next one starts. The returned delta is never merged here; the caller owns
the authoritative score map.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from jobmatch.errors import ValidationError
from jobmatch.log import get_logger
from jobmatch.models import Job, MatchScore, Result, ScoreMap
from jobmatch.scorer import MatchScorer

log = get_logger(__name__)


@dataclass(frozen=True)
class BatchOutcome:
    delta: ScoreMap = field(default_factory=dict)
    attempted: int = 0
    failed: tuple[str, ...] = ()
    nothing_to_do: bool = False

    @property
    def scored(self) -> int:
        return len(self.delta)

    def summary(self, total_scored: int, total_jobs: int) -> str:
        if self.nothing_to_do:
            return "All jobs analyzed. Search for more jobs to continue."
        text = f"Scored {self.scored} of {self.attempted} jobs ({total_scored}/{total_jobs} total)."
        remaining = total_jobs - total_scored
        if remaining > 0:
            text += f" {remaining} left to analyze."
        else:
            text += " All jobs scored!"
        return text


def select_unscored(jobs: Sequence[Job], already_scored: Mapping[str, MatchScore], limit: int) -> list[Job]:
    """First *limit* jobs without a score, in list order."""
    picked: list[Job] = []
    seen: set[str] = set()
    for job in jobs:
        if len(picked) >= limit:
            break
        if job.id in already_scored or job.id in seen:
            continue
        seen.add(job.id)
        picked.append(job)
    return picked


def score_next_batch(
    jobs: Sequence[Job],
    resume: str,
    already_scored: Mapping[str, MatchScore],
    scorer: MatchScorer,
    batch_limit: int = 10,
    concurrency: int = 3,
    timeout: float | None = None,
) -> Result[BatchOutcome]:
    """Score the next slice of unscored jobs.

    *timeout* bounds how long one group may take; jobs still running when
    it expires count as failed and stay eligible for the next call.
    """
    if batch_limit < 1 or concurrency < 1:
        return Result.failure(ValidationError("batch_limit and concurrency must be positive"))
    if not (resume or "").strip():
        return Result.failure(ValidationError("A resume is required to score jobs"))

    selection = select_unscored(jobs, already_scored, batch_limit)
    if not selection:
        log.info("All %d jobs already scored", len(jobs))
        return Result.success(BatchOutcome(nothing_to_do=True))

    log.info("Scoring %d job(s) in groups of %d", len(selection), concurrency)
    delta: ScoreMap = {}
    failed: list[str] = []

    pool = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="match")
    try:
        for start in range(0, len(selection), concurrency):
            group = selection[start : start + concurrency]
            futures = {
                pool.submit(scorer.score, resume, job.description, job.title): job
                for job in group
            }
            _, pending = wait(futures, timeout=timeout)

            for future, job in futures.items():
                if future in pending:
                    future.cancel()
                    log.warning("Scoring timed out for %s (%s)", job.id, job.title)
                    failed.append(job.id)
                    continue
                try:
                    result = future.result()
                except Exception as exc:
                    log.warning("Scoring raised for %s (%s): %s", job.id, job.title, exc)
                    failed.append(job.id)
                    continue
                if result.ok:
                    delta[job.id] = result.value
                else:
                    failed.append(job.id)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    log.info("Batch done: scored=%d, failed=%d", len(delta), len(failed))
    return Result.success(BatchOutcome(delta=delta, attempted=len(selection), failed=tuple(failed)))
