import threading
import time

import pytest

from jobmatch.archiver import ApplicationArchiver
from jobmatch.config import SearchConfig
from jobmatch.errors import OracleError
from jobmatch.models import Job, SearchFilters
from jobmatch.oracle import Oracle
from jobmatch.schemas import MatchOracleOutput, TailoredApplicationOutput
from jobmatch.scorer import MatchScorer
from jobmatch.session import SessionStateStore
from jobmatch.tracker import ApplicationTracker

RESUME = "Python developer with Django, PostgreSQL and AWS experience."


def make_job(i, **overrides) -> Job:
    data = {
        "id": f"job-{i}",
        "title": f"Job {i}",
        "company": "Acme",
        "location": "Montreal, QC",
        "description": f"Description for job {i}",
        "url": f"https://example.com/jobs/{i}",
        "date_posted": "2026-10-01T00:00:00Z",
        "category": "IT Jobs",
    }
    data.update(overrides)
    return Job(**data)


class FakeOracle(Oracle):
    """Thread-safe oracle double that records call order and concurrency."""

    def __init__(self, scores=None, fail_titles=(), delay=0.0):
        self.scores = scores or {}
        self.fail_titles = set(fail_titles)
        self.delay = delay
        self.calls = []
        self.events = []
        self.active = 0
        self.max_active = 0
        self.tailor_calls = []
        self.tailor_error = None
        self.titles = ["Data Analyst Intern", "Junior Developer"]
        self._lock = threading.Lock()

    def score_match(self, resume, job_description, job_title):
        with self._lock:
            self.calls.append(job_title)
            self.events.append(("start", job_title))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if job_title in self.fail_titles:
                raise OracleError(f"oracle failed for {job_title}")
            return MatchOracleOutput(
                matching_score=self.scores.get(job_title, 50),
                matching_skills=["Python", "python", "SQL"],
                lacking_skills=["Go"],
            )
        finally:
            with self._lock:
                self.active -= 1
                self.events.append(("end", job_title))

    def tailor_application(self, resume, job_description, language):
        self.tailor_calls.append((resume, job_description, language))
        if self.tailor_error is not None:
            raise self.tailor_error
        return TailoredApplicationOutput(
            job_title="Backend Engineer",
            resume="Tailored resume",
            cover_letter="Dear Hiring Team, ...",
            matching_score=72,
            matching_skills=["Python", "PYTHON", "AWS"],
            lacking_skills=["Kubernetes"],
        )

    def suggest_titles(self, resume):
        return list(self.titles)


@pytest.fixture
def config():
    return SearchConfig(
        default_country="fr",
        batch_limit=10,
        concurrency=3,
        oracle_timeout=5.0,
        default_filters=SearchFilters(where="Montreal", max_days_old=14, country="ca"),
    )


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def scorer(oracle):
    return MatchScorer(oracle)


@pytest.fixture
def tracker(tmp_path):
    return ApplicationTracker(tmp_path)


@pytest.fixture
def archiver(oracle, tracker):
    return ApplicationArchiver(oracle, tracker, "English")


@pytest.fixture
def storage():
    return {}


@pytest.fixture
def store(storage, config):
    return SessionStateStore(storage, default_filters=config.default_filters)


@pytest.fixture
def jobs():
    return [make_job(i) for i in range(12)]
