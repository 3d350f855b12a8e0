"""Data models for jobs, match scores, search state and applications."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Generic, Iterable, Mapping, TypeVar

from jobmatch.errors import JobSearchError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Tagged outcome of a component call: a value or an error, never both."""

    value: T | None = None
    error: JobSearchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: JobSearchError) -> "Result[T]":
        return cls(error=error)


@dataclass(frozen=True)
class Job:
    id: str
    title: str
    company: str
    location: str
    description: str
    url: str
    date_posted: str = ""
    category: str = ""
    salary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "description": self.description,
            "url": self.url,
            "datePosted": self.date_posted,
            "category": self.category,
        }
        if self.salary is not None:
            data["salary"] = self.salary
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Job":
        salary = data.get("salary")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            company=str(data.get("company", "")),
            location=str(data.get("location", "")),
            description=str(data.get("description", "")),
            url=str(data.get("url", "")),
            date_posted=str(data.get("datePosted", "")),
            category=str(data.get("category", "")),
            salary=str(salary) if salary is not None else None,
        )


@dataclass(frozen=True)
class SearchFilters:
    what: str = ""
    where: str = ""
    max_days_old: int | None = None
    category: str | None = None
    country: str | None = None
    page: int = 1

    def has_criteria(self) -> bool:
        return bool(self.what or self.where or self.max_days_old)

    def with_changes(self, **changes: Any) -> "SearchFilters":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "what": self.what,
            "where": self.where,
            "max_days_old": self.max_days_old,
            "category": self.category,
            "country": self.country,
            "page": self.page,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SearchFilters":
        max_days = data.get("max_days_old")
        page = data.get("page") or 1
        return cls(
            what=str(data.get("what") or ""),
            where=str(data.get("where") or ""),
            max_days_old=int(max_days) if max_days not in (None, "") else None,
            category=data.get("category") or None,
            country=data.get("country") or None,
            page=max(int(page), 1),
        )


def _dedupe_skills(skills: Iterable[Any]) -> tuple[str, ...]:
    """Case-insensitive dedupe keeping the first spelling; blanks dropped."""
    seen: set[str] = set()
    out: list[str] = []
    for raw in skills:
        skill = str(raw).strip()
        key = skill.casefold()
        if skill and key not in seen:
            seen.add(key)
            out.append(skill)
    return tuple(out)


@dataclass(frozen=True)
class MatchScore:
    """Use :meth:`create`; the plain constructor skips validation."""

    matching_score: int
    matching_skills: tuple[str, ...] = ()
    lacking_skills: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        matching_score: float,
        matching_skills: Iterable[Any] = (),
        lacking_skills: Iterable[Any] = (),
    ) -> "MatchScore":
        raw = float(matching_score)
        if not math.isfinite(raw):
            raise ValueError(f"matching score must be finite, got {raw}")
        score = int(round(raw))
        return cls(
            matching_score=min(max(score, 0), 100),
            matching_skills=_dedupe_skills(matching_skills),
            lacking_skills=_dedupe_skills(lacking_skills),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchingScore": self.matching_score,
            "matchingSkills": list(self.matching_skills),
            "lackingSkills": list(self.lacking_skills),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchScore":
        return cls.create(
            data["matchingScore"],
            data.get("matchingSkills") or (),
            data.get("lackingSkills") or (),
        )


ScoreMap = dict[str, MatchScore]


@dataclass(frozen=True)
class SearchPage:
    jobs: tuple[Job, ...]
    count: int


@dataclass(frozen=True)
class SearchSessionState:
    filters: SearchFilters
    jobs: tuple[Job, ...] = ()
    score_map: ScoreMap = field(default_factory=dict)
    saved_job_ids: frozenset[str] = frozenset()

    @classmethod
    def empty(cls, filters: SearchFilters | None = None) -> "SearchSessionState":
        return cls(filters=filters or SearchFilters())


@dataclass
class ApplicationRecord:
    id: str
    user_id: str
    job_title: str
    company: str
    job_description: str
    application_link: str
    tailored_resume: str
    cover_letter: str
    language: str
    matching_score: int
    matching_skills: list[str]
    lacking_skills: list[str]
    applied: bool = False
    created_at: str = ""
