"""
Runtime configuration read from the environment.

`.env` is loaded by the app factory (python-dotenv) before Settings.from_env()
runs, so every value below can live there.

    SOLOTOON_CONSUMET_URL          Consumet API root
    SOLOTOON_REQUEST_TIMEOUT       seconds per provider request (10)
    SOLOTOON_RETRY_BACKOFF         seconds before retrying a 429/503 without Retry-After (2)
    SOLOTOON_RATE_LIMIT_TOKENS     token bucket size per host (3)
    SOLOTOON_RATE_LIMIT_PERIOD     seconds to refill a full bucket (3)
    SOLOTOON_PAGE_SIZE             search page size (20)
    SOLOTOON_SEARCH_CACHE_SIZE     cached search responses (50)
    SOLOTOON_DETAILS_CACHE_SIZE    cached details (100)
    SOLOTOON_CHAPTERS_CACHE_SIZE   cached chapter lists (100)
    SOLOTOON_MATCH_THRESHOLD       dedup similarity threshold (0.85)
    SOLOTOON_STORE_PATH            settings store file (instance/store.json)
    FLASK_HOST / FLASK_PORT / FLASK_DEBUG
    RATELIMIT_STORAGE_URI          Flask-Limiter storage (memory://)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from sources.providers import DEFAULT_CONSUMET_URL


def _env_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    consumet_url: str = DEFAULT_CONSUMET_URL
    request_timeout: float = 10.0
    retry_backoff: float = 2.0
    rate_limit_tokens: int = 3
    rate_limit_period: float = 3.0
    page_size: int = 20
    search_cache_size: int = 50
    details_cache_size: int = 100
    chapters_cache_size: int = 100
    match_threshold: float = 0.85
    store_path: Optional[str] = None
    host: str = '127.0.0.1'
    port: int = 5000
    debug: bool = False
    ratelimit_storage_uri: str = 'memory://'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            consumet_url=env.get('SOLOTOON_CONSUMET_URL', defaults.consumet_url),
            request_timeout=float(env.get('SOLOTOON_REQUEST_TIMEOUT', defaults.request_timeout)),
            retry_backoff=float(env.get('SOLOTOON_RETRY_BACKOFF', defaults.retry_backoff)),
            rate_limit_tokens=int(env.get('SOLOTOON_RATE_LIMIT_TOKENS', defaults.rate_limit_tokens)),
            rate_limit_period=float(env.get('SOLOTOON_RATE_LIMIT_PERIOD', defaults.rate_limit_period)),
            page_size=int(env.get('SOLOTOON_PAGE_SIZE', defaults.page_size)),
            search_cache_size=int(env.get('SOLOTOON_SEARCH_CACHE_SIZE', defaults.search_cache_size)),
            details_cache_size=int(env.get('SOLOTOON_DETAILS_CACHE_SIZE', defaults.details_cache_size)),
            chapters_cache_size=int(env.get('SOLOTOON_CHAPTERS_CACHE_SIZE', defaults.chapters_cache_size)),
            match_threshold=float(env.get('SOLOTOON_MATCH_THRESHOLD', defaults.match_threshold)),
            store_path=env.get('SOLOTOON_STORE_PATH') or None,
            host=env.get('FLASK_HOST', defaults.host),
            port=int(env.get('FLASK_PORT', defaults.port)),
            debug=_env_bool(env.get('FLASK_DEBUG'), defaults.debug),
            ratelimit_storage_uri=env.get('RATELIMIT_STORAGE_URI', defaults.ratelimit_storage_uri),
        )
