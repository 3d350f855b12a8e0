"""
Job search agent for one user session.

Flow: search → score in batches → rank for display → archive on demand.
The agent is the only writer of the session state. Every change replaces
the state object and re-saves it to the session store.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Sequence

from jobmatch.archiver import ApplicationArchiver
from jobmatch.batch import BatchOutcome, score_next_batch
from jobmatch.config import SearchConfig
from jobmatch.errors import OracleError, ValidationError
from jobmatch.log import get_logger
from jobmatch.models import Job, Result, ScoreMap, SearchFilters, SearchPage, SearchSessionState
from jobmatch.oracle import Oracle
from jobmatch.ranking import rank
from jobmatch.scorer import MatchScorer
from jobmatch.session import SessionStateStore
from jobmatch.sources import JobSource

log = get_logger(__name__)


@dataclass(frozen=True)
class BatchTicket:
    """Snapshot taken when a batch is dispatched."""

    generation: int
    resume: str
    jobs: tuple[Job, ...]
    already_scored: ScoreMap


class JobSearchAgent:
    def __init__(
        self,
        source: JobSource,
        scorer: MatchScorer,
        archiver: ApplicationArchiver,
        oracle: Oracle,
        store: SessionStateStore,
        config: SearchConfig,
    ) -> None:
        self.source = source
        self.scorer = scorer
        self.archiver = archiver
        self.oracle = oracle
        self.store = store
        self.config = config
        # bumped on every search/reset; batches from older generations are dropped
        self.generation = 0

        restored = store.load()
        if restored is not None:
            log.info(
                "Restored search state: %d jobs, %d scored, %d saved",
                len(restored.jobs), len(restored.score_map), len(restored.saved_job_ids),
            )
        self.state = restored or SearchSessionState.empty(config.default_filters)

    def _commit(self, state: SearchSessionState) -> None:
        self.state = state
        self.store.save(state)

    # ── Filters & search ────────────────────────────────────────────────

    def update_filters(self, **changes: Any) -> SearchFilters:
        filters = self.state.filters.with_changes(**changes)
        self._commit(replace(self.state, filters=filters))
        return filters

    def search(self, filters: SearchFilters | None = None) -> Result[SearchPage]:
        """Run a new search; on success the job list and scores are replaced."""
        if filters is not None:
            self._commit(replace(self.state, filters=filters))
        self.generation += 1

        result = self.source.search(self.state.filters)
        if not result.ok:
            log.warning("Search failed: %s", result.error)
            return result

        page = result.value
        self._commit(replace(self.state, jobs=page.jobs, score_map={}))
        log.info("Search returned %d jobs (%d available)", len(page.jobs), page.count)
        return result

    def reset(self) -> None:
        """Back to default filters with no jobs or scores; saved ids stay."""
        self.generation += 1
        self._commit(
            SearchSessionState(
                filters=self.config.default_filters,
                saved_job_ids=self.state.saved_job_ids,
            )
        )

    # ── Batch scoring ───────────────────────────────────────────────────

    def begin_batch(self, resume: str) -> BatchTicket:
        return BatchTicket(
            generation=self.generation,
            resume=resume,
            jobs=self.state.jobs,
            already_scored=dict(self.state.score_map),
        )

    def run_batch(self, ticket: BatchTicket) -> Result[BatchOutcome]:
        return score_next_batch(
            ticket.jobs,
            ticket.resume,
            ticket.already_scored,
            self.scorer,
            batch_limit=self.config.batch_limit,
            concurrency=self.config.concurrency,
            timeout=self.config.oracle_timeout,
        )

    def merge(self, ticket: BatchTicket, outcome: BatchOutcome) -> bool:
        """Apply *outcome* unless a newer search superseded *ticket*."""
        if ticket.generation != self.generation:
            log.info(
                "Dropping %d stale score(s) from generation %d (now %d)",
                len(outcome.delta), ticket.generation, self.generation,
            )
            return False
        if outcome.delta:
            self._commit(replace(self.state, score_map={**self.state.score_map, **outcome.delta}))
        return True

    def analyze_next_batch(self, resume: str) -> Result[BatchOutcome]:
        if not self.state.jobs:
            return Result.failure(ValidationError("Search for jobs first"))
        ticket = self.begin_batch(resume)
        result = self.run_batch(ticket)
        if result.ok:
            self.merge(ticket, result.value)
        return result

    @property
    def scored_count(self) -> int:
        return sum(1 for job in self.state.jobs if job.id in self.state.score_map)

    def ranked_jobs(self, sort_enabled: bool) -> Sequence[Job]:
        return rank(self.state.jobs, self.state.score_map, sort_enabled)

    # ── Archiving ───────────────────────────────────────────────────────

    def is_saved(self, job_id: str) -> bool:
        return job_id in self.state.saved_job_ids

    def archive(self, job: Job, resume: str, user_id: str | None) -> Result[str]:
        """Save *job* to the application history; marks it saved on success only."""
        score = self.state.score_map.get(job.id)
        if score is None:
            return Result.failure(ValidationError("Analyze this job before saving it"))

        result = self.archiver.archive(job, score, resume, user_id)
        if result.ok:
            self._commit(replace(self.state, saved_job_ids=self.state.saved_job_ids | {job.id}))
        return result

    # ── Suggestions ─────────────────────────────────────────────────────

    def suggest_titles(self, resume: str) -> Result[list[str]]:
        if not (resume or "").strip():
            return Result.failure(ValidationError("Please add a base resume first"))
        try:
            titles = self.oracle.suggest_titles(resume)
        except OracleError as exc:
            log.warning("Title suggestions failed: %s", exc)
            return Result.failure(exc)
        except Exception as exc:
            log.warning("Title suggestions failed: %s", exc)
            return Result.failure(OracleError(f"Failed to generate job title suggestions: {exc}"))
        return Result.success(titles)
