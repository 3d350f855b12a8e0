"""Score one resume against one job through the match oracle."""
from __future__ import annotations

from jobmatch.errors import OracleError, ValidationError
from jobmatch.log import get_logger
from jobmatch.models import MatchScore, Result
from jobmatch.oracle import Oracle

log = get_logger(__name__)


class MatchScorer:
    """Single-shot scoring: validates input, clamps and dedupes output, never retries."""

    def __init__(self, oracle: Oracle) -> None:
        self.oracle = oracle

    def score(self, resume: str, job_description: str, job_title: str) -> Result[MatchScore]:
        missing = [
            name
            for name, value in (
                ("resume", resume),
                ("job description", job_description),
                ("job title", job_title),
            )
            if not (value or "").strip()
        ]
        if missing:
            return Result.failure(ValidationError(f"Missing required fields: {', '.join(missing)}"))

        try:
            out = self.oracle.score_match(resume, job_description, job_title)
            score = MatchScore.create(out.matching_score, out.matching_skills, out.lacking_skills)
        except OracleError as exc:
            log.warning("Match scoring failed for %r: %s", job_title, exc)
            return Result.failure(exc)
        except Exception as exc:
            log.warning("Match scoring failed for %r: %s", job_title, exc)
            return Result.failure(OracleError(f"Failed to calculate job match: {exc}"))

        log.debug("Scored %r: %d", job_title, score.matching_score)
        return Result.success(score)
