"""Language-model oracles for match scoring, resume tailoring and title ideas.

``GroqOracle`` calls an OpenAI-compatible endpoint on Groq; ``KeywordOracle``
is the offline fallback used when no API key is configured.
"""
from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from collections import Counter

from openai import OpenAI, OpenAIError

from jobmatch.config import DEFAULT_LLM_MODEL, SearchConfig, get_env
from jobmatch.errors import OracleError
from jobmatch.log import get_logger
from jobmatch.schemas import (
    MatchOracleOutput,
    TailoredApplicationOutput,
    TitleSuggestionsOutput,
)

log = get_logger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class Oracle(ABC):
    @abstractmethod
    def score_match(self, resume: str, job_description: str, job_title: str) -> MatchOracleOutput:
        pass

    @abstractmethod
    def tailor_application(
        self, resume: str, job_description: str, language: str
    ) -> TailoredApplicationOutput:
        pass

    @abstractmethod
    def suggest_titles(self, resume: str) -> list[str]:
        pass


# ── Groq ────────────────────────────────────────────────────────────────

_SYSTEM = "You are an expert career coach. Reply with a single JSON object and nothing else."

_MATCH_PROMPT = """Assess how well this resume fits the job "{job_title}".
Be strict: perfect matches (90-100) are rare, most fits land between 40 and 70.
Judge only from what the resume states; a missing key requirement must lower the score.

Resume:
---
{resume}
---

Job description:
---
{job_description}
---

Return JSON: {{"matchingScore": <0-100>, "matchingSkills": [..], "lackingSkills": [..]}}"""

_TAILOR_PROMPT = """Tailor the resume below to the job description and write a cover letter, in {language}.
Never invent experience, skills or qualifications; only rephrase, reorder and emphasize what the resume contains.
The cover letter highlights 2-3 relevant experiences and keeps a confident, professional tone.

Resume:
---
{resume}
---

Job description:
---
{job_description}
---

Return JSON: {{"jobTitle": "..", "resume": "..", "coverLetter": "..", "matchingScore": <0-100>,
"matchingSkills": [..], "lackingSkills": [..]}}"""

_TITLES_PROMPT = """Suggest 5 to 7 job titles this candidate should search for.
Students and early-career candidates get internships and entry-level titles first.
Use common title wording that yields good job board results.

Resume:
{resume}

Return JSON: {{"suggestions": [..]}}"""


def _parse_json(text: str) -> dict:
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.strip("`")
        text = text[4:] if text.lower().startswith("json") else text
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        raise ValueError("no JSON object in model output")
    return json.loads(match.group(0))


class GroqOracle(Oracle):
    def __init__(self, api_key: str, model: str = DEFAULT_LLM_MODEL, timeout: float = 30.0) -> None:
        self.model = model
        # retries belong to the callers, not the client
        self.client = OpenAI(api_key=api_key, base_url=GROQ_BASE_URL, timeout=timeout, max_retries=0)

    def _complete(self, prompt: str, max_tokens: int) -> dict:
        try:
            r = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": _SYSTEM},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.2,
                max_tokens=max_tokens,
            )
            return _parse_json(r.choices[0].message.content or "")
        except OpenAIError as exc:
            raise OracleError(f"Language model call failed: {exc.__class__.__name__}") from exc
        except ValueError as exc:
            raise OracleError(f"Language model returned malformed output: {exc}") from exc

    def score_match(self, resume: str, job_description: str, job_title: str) -> MatchOracleOutput:
        prompt = _MATCH_PROMPT.format(resume=resume, job_description=job_description, job_title=job_title)
        data = self._complete(prompt, max_tokens=600)
        try:
            return MatchOracleOutput.model_validate(data)
        except ValueError as exc:
            raise OracleError(f"Match output failed validation: {exc}") from exc

    def tailor_application(
        self, resume: str, job_description: str, language: str
    ) -> TailoredApplicationOutput:
        prompt = _TAILOR_PROMPT.format(resume=resume, job_description=job_description, language=language)
        data = self._complete(prompt, max_tokens=4000)
        try:
            return TailoredApplicationOutput.model_validate(data)
        except ValueError as exc:
            raise OracleError(f"Tailoring output failed validation: {exc}") from exc

    def suggest_titles(self, resume: str) -> list[str]:
        data = self._complete(_TITLES_PROMPT.format(resume=resume), max_tokens=300)
        try:
            out = TitleSuggestionsOutput.model_validate(data)
        except ValueError as exc:
            raise OracleError(f"Suggestion output failed validation: {exc}") from exc
        return [s.strip() for s in out.suggestions if s.strip()][:7]


# ── Offline fallback ────────────────────────────────────────────────────

STOPWORDS: set[str] = {
    "the", "and", "for", "with", "from", "into", "are", "was", "were", "been",
    "have", "has", "had", "will", "would", "could", "should", "can", "not",
    "you", "your", "our", "their", "they", "this", "that", "these", "those",
    "all", "more", "most", "other", "some", "such", "very", "also", "both",
    "each", "must", "need", "able", "per", "etc", "inc", "ltd", "role", "job",
    "work", "team", "join", "help", "make", "use", "new", "get", "good",
    "great", "key", "including", "experience", "years", "skills", "strong",
    "who", "what", "when", "where", "how", "which", "about", "over", "within",
}

_TITLE_RE = re.compile(
    r"\b((?:[A-Z][A-Za-z+#.]*\s){0,2}"
    r"(?:Engineer|Developer|Analyst|Scientist|Designer|Manager|Consultant|Architect|Administrator|Intern))\b"
)

# Minimum token length; shorter tokens ("ai", "go") match too much prose.
_MIN_TOKEN_LEN = 3


def keywords(text: str) -> Counter:
    """Frequency of meaningful tokens, keeping tech tokens like c++ and .net."""
    words = re.findall(r"[a-z][a-z0-9+#.\-]*[a-z0-9+#]|[a-z]", (text or "").lower())
    return Counter(w for w in words if len(w) >= _MIN_TOKEN_LEN and w not in STOPWORDS)


class KeywordOracle(Oracle):
    """Keyword-overlap stand-in for the language model."""

    def __init__(self, max_skills: int = 10) -> None:
        self.max_skills = max_skills

    def score_match(self, resume: str, job_description: str, job_title: str) -> MatchOracleOutput:
        job_words = keywords(f"{job_title} {job_description}")
        resume_words = set(keywords(resume))
        if not job_words:
            return MatchOracleOutput(matching_score=0, matching_skills=[], lacking_skills=[])

        ranked = [w for w, _ in job_words.most_common()]
        matched = [w for w in ranked if w in resume_words]
        lacking = [w for w in ranked if w not in resume_words]
        score = round(100 * len(matched) / len(ranked))
        return MatchOracleOutput(
            matching_score=score,
            matching_skills=matched[: self.max_skills],
            lacking_skills=lacking[: self.max_skills],
        )

    def tailor_application(
        self, resume: str, job_description: str, language: str
    ) -> TailoredApplicationOutput:
        match = self.score_match(resume, job_description, "")
        skills = ", ".join(match.matching_skills[:5]) or "my background"
        letter = f"""Dear Hiring Team,

I am writing to apply for this position. The role's focus on {skills} matches my experience closely.

I would welcome the opportunity to discuss how my background can contribute to your team.

Best regards"""
        return TailoredApplicationOutput(
            job_title="",
            resume=resume,
            cover_letter=letter,
            matching_score=match.matching_score,
            matching_skills=match.matching_skills,
            lacking_skills=match.lacking_skills,
        )

    def suggest_titles(self, resume: str) -> list[str]:
        counts = Counter(m.strip() for m in _TITLE_RE.findall(resume or ""))
        return [title for title, _ in counts.most_common(7)]


def build_oracle(config: SearchConfig, env_getter=get_env) -> Oracle:
    api_key = env_getter("GROQ_API_KEY")
    if not api_key:
        log.info("No GROQ_API_KEY — using keyword oracle")
        return KeywordOracle()
    model = env_getter("GROQ_LLM_MODEL") or DEFAULT_LLM_MODEL
    log.info("Using Groq oracle (%s)", model)
    return GroqOracle(api_key, model=model, timeout=config.oracle_timeout)
