"""
Static provider table.

Registration order is priority order, which is also the order search fan-out
results are handed to the deduplicator.
"""

from typing import Dict, List

from .base import ProviderConfig

DEFAULT_CONSUMET_URL = "https://apiconsumetorg-kappa.vercel.app"

# Source priority (higher = preferred representative when titles merge)
PROVIDER_PRIORITY: Dict[str, int] = {
    'mangadex': 100,       # Primary - official API, broadest language coverage
    'comick': 90,
    'mangasee123': 80,
    'mangakakalot': 70,
    'mangapark': 60,
}

_PROVIDERS = [
    ('mangadex', 'MangaDex', ['en', 'ja', 'ko', 'zh', 'es', 'fr', 'de', 'pt-br', 'ru']),
    ('comick', 'ComicK', ['en', 'ja', 'ko', 'zh']),
    ('mangasee123', 'MangaSee123', ['en']),
    ('mangakakalot', 'Mangakakalot', ['en']),
    ('mangapark', 'MangaPark', ['en', 'ja', 'ko', 'zh']),
]


def default_provider_configs(base_url: str = DEFAULT_CONSUMET_URL) -> List[ProviderConfig]:
    """Configs for every built-in provider, highest priority first."""
    return [
        ProviderConfig(
            id=provider_id,
            name=name,
            languages=languages,
            priority=PROVIDER_PRIORITY[provider_id],
            supports_pages=True,
            base_url=base_url,
        )
        for provider_id, name, languages in _PROVIDERS
    ]
