"""Adzuna job search, one page of results per call.

Sign up for app credentials at https://developer.adzuna.com/
"""
from __future__ import annotations

import re

import requests
from pydantic import ValidationError as SchemaError

from jobmatch.config import SearchConfig, get_env
from jobmatch.errors import ConfigurationError, NetworkError, TransportError
from jobmatch.log import get_logger, mask
from jobmatch.models import Job, Result, SearchFilters, SearchPage
from jobmatch.retry import retry
from jobmatch.schemas import AdzunaResponse, AdzunaResult
from jobmatch.sources.base import JobSource

log = get_logger(__name__)

BASE_URL = "https://api.adzuna.com/v1/api/jobs"

_TAG_RE = re.compile(r"<[^>]*>")


def strip_tags(text: str) -> str:
    return _TAG_RE.sub("", text or "")


def _amount(value: float | None) -> str:
    if value is None:
        return ""
    return str(int(value)) if float(value).is_integer() else str(value)


def format_salary(salary_min: float | None, salary_max: float | None) -> str | None:
    """``"{min} - {max}"`` when a minimum is listed; max may be blank."""
    if not salary_min:
        return None
    return f"{_amount(salary_min)} - {_amount(salary_max)}"


def to_job(hit: AdzunaResult) -> Job:
    return Job(
        id=hit.id,
        title=strip_tags(hit.title),
        company=hit.company.display_name if hit.company else "",
        location=hit.location.display_name if hit.location else "",
        description=strip_tags(hit.description),
        url=hit.redirect_url,
        date_posted=hit.created,
        category=hit.category.label if hit.category else "",
        salary=format_salary(hit.salary_min, hit.salary_max),
    )


def build_params(app_id: str, app_key: str, filters: SearchFilters, per_page: int) -> dict:
    """Query string for one search; optional filters only when set."""
    params: dict = {
        "app_id": app_id,
        "app_key": app_key,
        "results_per_page": per_page,
    }
    if filters.what and filters.what.strip():
        params["what"] = filters.what.strip()
    if filters.where and filters.where.strip():
        params["where"] = filters.where.strip()
    if filters.max_days_old:
        params["max_days_old"] = int(filters.max_days_old)
    if filters.category and filters.category.strip():
        params["category"] = filters.category.strip()
    return params


class AdzunaSource(JobSource):
    def __init__(
        self,
        app_id: str,
        app_key: str,
        config: SearchConfig,
        session: requests.Session | None = None,
    ) -> None:
        self.app_id = app_id
        self.app_key = app_key
        self.config = config
        self.http = session or requests.Session()

    @classmethod
    def from_env(cls, config: SearchConfig, env_getter=get_env) -> "AdzunaSource":
        return cls(env_getter("ADZUNA_APP_ID"), env_getter("ADZUNA_APP_KEY"), config)

    def _redact(self, text: str) -> str:
        return mask(text, self.app_id, self.app_key)

    @retry(max_attempts=3, base_delay=2.0, retryable=(NetworkError,))
    def _fetch(self, url: str, params: dict) -> requests.Response:
        try:
            return self.http.get(url, params=params, timeout=self.config.request_timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NetworkError(self._redact(f"Network error: {exc}")) from None
        except requests.RequestException as exc:
            raise TransportError(self._redact(f"Request failed: {exc}")) from None

    def search(self, filters: SearchFilters) -> Result[SearchPage]:
        if not self.app_id or not self.app_key:
            log.error("Adzuna API credentials missing")
            return Result.failure(ConfigurationError("API configuration error"))

        country = (filters.country or self.config.default_country).lower()
        page = filters.page or 1
        url = f"{BASE_URL}/{country}/search/{page}"
        params = build_params(self.app_id, self.app_key, filters, self.config.results_per_page)
        shown = {k: v for k, v in params.items() if k not in ("app_id", "app_key")}
        log.info("Fetching jobs from Adzuna: %s %s", url, shown)

        try:
            r = self._fetch(url, params)
        except TransportError as exc:
            return Result.failure(exc)

        if not r.ok:
            log.error("Adzuna API error: %s %s", r.status_code, r.reason)
            log.error("Adzuna API error details: %s", self._redact(r.text[:2000]))
            return Result.failure(TransportError(f"API Error: {r.reason or r.status_code}"))

        try:
            data = AdzunaResponse.model_validate(r.json())
        except ValueError as exc:
            # requests' JSONDecodeError and pydantic's ValidationError are both ValueErrors
            kind = "schema mismatch" if isinstance(exc, SchemaError) else "malformed JSON"
            log.error("Adzuna response rejected (%s): %s", kind, exc)
            return Result.failure(TransportError(f"Unexpected response from job search API ({kind})"))

        jobs = tuple(to_job(hit) for hit in data.results)
        log.info("Adzuna page %d returned %d of %d jobs", page, len(jobs), data.count)
        return Result.success(SearchPage(jobs=jobs, count=data.count))
