"""
Schemas for every external payload, validated on receipt.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, allow_inf_nan=False)


# --- Job search API ---------------------------------------------------------


class AdzunaDisplay(_Payload):
    display_name: str = ""


class AdzunaCategory(_Payload):
    label: str = ""
    tag: str = ""


class AdzunaResult(_Payload):
    """A single record of the job search response."""

    id: str
    title: str = ""
    description: str = ""
    company: Optional[AdzunaDisplay] = None
    location: Optional[AdzunaDisplay] = None
    created: str = ""
    redirect_url: str = ""
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    category: Optional[AdzunaCategory] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value):
        if value is None or value == "":
            raise ValueError("result id is required")
        return str(value)


class AdzunaResponse(_Payload):
    results: list[AdzunaResult]
    count: int = 0


# --- Oracles ----------------------------------------------------------------


class MatchOracleOutput(_Payload):
    matching_score: float = Field(alias="matchingScore")
    matching_skills: list[str] = Field(default_factory=list, alias="matchingSkills")
    lacking_skills: list[str] = Field(default_factory=list, alias="lackingSkills")


class TailoredApplicationOutput(_Payload):
    job_title: str = Field(alias="jobTitle")
    resume: str
    cover_letter: str = Field(alias="coverLetter")
    matching_score: float = Field(alias="matchingScore")
    matching_skills: list[str] = Field(default_factory=list, alias="matchingSkills")
    lacking_skills: list[str] = Field(default_factory=list, alias="lackingSkills")


class TitleSuggestionsOutput(_Payload):
    suggestions: list[str]
