"""Load search settings and env configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobmatch.log import get_logger
from jobmatch.models import SearchFilters

log = get_logger(__name__)

load_dotenv()

CONFIG_DIR: Path = Path(__file__).resolve().parent.parent / "config"
SEARCH_CONFIG_PATH: Path = CONFIG_DIR / "search.yaml"
DATA_DIR: Path = Path(__file__).resolve().parent.parent / "data"
RESUME_DIR: Path = Path(__file__).resolve().parent.parent / "resume"

DEFAULT_LLM_MODEL = "llama-3.3-70b-versatile"


def _default_filters() -> SearchFilters:
    return SearchFilters(what="", where="Montreal", max_days_old=14, country="ca", page=1)


@dataclass(frozen=True)
class SearchConfig:
    default_country: str = "fr"
    results_per_page: int = 20
    batch_limit: int = 10
    concurrency: int = 3
    oracle_timeout: float = 30.0
    request_timeout: float = 15.0
    language: str = "English"
    default_filters: SearchFilters = field(default_factory=_default_filters)


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def ensure_dirs() -> None:
    for d in (DATA_DIR, RESUME_DIR):
        d.mkdir(parents=True, exist_ok=True)


def load_search_config(path: Path = SEARCH_CONFIG_PATH) -> SearchConfig:
    """Read tunables from *path*; a missing file means built-in defaults.

    ``ADZUNA_COUNTRY`` in the environment overrides ``default_country``.
    """
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            log.warning("Ignoring %s: expected a mapping, got %s", path.name, type(data).__name__)
            data = {}

    defaults = SearchConfig()
    filters = _default_filters()
    if isinstance(data.get("default_filters"), dict):
        filters = SearchFilters.from_dict({**filters.to_dict(), **data["default_filters"]})

    country = get_env("ADZUNA_COUNTRY") or str(data.get("default_country", defaults.default_country))

    return SearchConfig(
        default_country=country.lower(),
        results_per_page=int(data.get("results_per_page", defaults.results_per_page)),
        batch_limit=int(data.get("batch_limit", defaults.batch_limit)),
        concurrency=int(data.get("concurrency", defaults.concurrency)),
        oracle_timeout=float(data.get("oracle_timeout", defaults.oracle_timeout)),
        request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
        language=str(data.get("language", defaults.language)),
        default_filters=filters,
    )
