"""Turn a scored job into a saved application with tailored documents."""
from __future__ import annotations

from jobmatch.errors import OracleError, PersistenceError, ValidationError
from jobmatch.log import get_logger
from jobmatch.models import Job, MatchScore, Result
from jobmatch.oracle import Oracle
from jobmatch.tracker import ApplicationTracker

log = get_logger(__name__)


class ApplicationArchiver:
    def __init__(self, oracle: Oracle, tracker: ApplicationTracker, language: str = "English") -> None:
        self.oracle = oracle
        self.tracker = tracker
        self.language = language

    def archive(self, job: Job, score: MatchScore, resume: str, user_id: str | None) -> Result[str]:
        """Tailor the resume for *job* and persist one application record.

        Returns the new record id. No dedupe: archiving twice creates two
        records. *score* is the quick match shown to the user; the stored
        score comes from the tailoring pass, which reads the full resume.
        """
        if not user_id:
            return Result.failure(ValidationError("Please sign in to save jobs"))
        if not (resume or "").strip():
            return Result.failure(ValidationError("Please add a base resume first"))

        log.info("Generating application for %s @ %s (match %d)", job.title, job.company, score.matching_score)
        try:
            tailored = self.oracle.tailor_application(resume, job.description, self.language)
            final = MatchScore.create(tailored.matching_score, tailored.matching_skills, tailored.lacking_skills)
        except OracleError as exc:
            log.warning("Resume tailoring failed for %s: %s", job.id, exc)
            return Result.failure(exc)
        except Exception as exc:
            log.warning("Resume tailoring failed for %s: %s", job.id, exc)
            return Result.failure(OracleError(f"Failed to generate application: {exc}"))

        try:
            record = self.tracker.create(
                user_id,
                job_title=tailored.job_title.strip() or job.title,
                company=job.company,
                job_description=job.description,
                application_link=job.url or "",
                tailored_resume=tailored.resume,
                cover_letter=tailored.cover_letter,
                language=self.language,
                matching_score=final.matching_score,
                matching_skills=list(final.matching_skills),
                lacking_skills=list(final.lacking_skills),
                applied=False,
            )
        except PersistenceError as exc:
            log.error("Saving application for %s failed: %s", job.id, exc)
            return Result.failure(exc)

        log.info("Saved application %s for job %s", record.id, job.id)
        return Result.success(record.id)
