from .base import JobSource
from .adzuna import AdzunaSource

from jobmatch.config import SearchConfig, get_env
from jobmatch.log import get_logger

log = get_logger(__name__)

__all__ = ["JobSource", "AdzunaSource", "get_source"]


def get_source(config: SearchConfig, env_getter=get_env) -> JobSource:
    """Build the job source; missing credentials surface on first search."""
    source = AdzunaSource.from_env(config, env_getter)
    if source.app_id and source.app_key:
        log.info("Registered source: Adzuna (default country %s)", config.default_country)
    else:
        log.warning("ADZUNA_APP_ID / ADZUNA_APP_KEY not set — searches will fail")
    return source
