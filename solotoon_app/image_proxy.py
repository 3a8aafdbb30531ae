"""Image URL rewriting and the proxy allow-list.

Page and cover URLs are never fetched by the aggregation core. Clients get URLs
pointing at /api/proxy/image, which passes allowed images through unchanged.
"""

from typing import Iterable, Optional
from urllib.parse import quote, urlparse

from .models import PLACEHOLDER_COVER

PROXY_PATH = '/api/proxy/image'

# Whitelist of allowed image hosting domains (SSRF protection)
ALLOWED_IMAGE_DOMAINS = {
    'mangadex.org',
    'mangadex.network',
    'meo.comick.pictures',
    'comick.pictures',
    'comick.io',
    'mangasee123.com',
    'temp.compsci88.com',
    'mangakakalot.com',
    'manganato.com',
    'mkklcdnv6temp.com',
    'mangapark.net',
    'mpcdn.org',
    'mpqsc.org',
    'cdn.myanimelist.net',
    'i.imgur.com',
}


class ImageProxy:
    """Rewrites provider image URLs to go through the local proxy."""

    def __init__(self, allowed_domains: Optional[Iterable[str]] = None, proxy_path: str = PROXY_PATH):
        self.allowed_domains = set(allowed_domains) if allowed_domains is not None else set(ALLOWED_IMAGE_DOMAINS)
        self.proxy_path = proxy_path

    def to_display_url(self, original_url: Optional[str], data_saver: bool = False) -> str:
        if not original_url:
            return PLACEHOLDER_COVER
        url = f"{self.proxy_path}?src={quote(original_url, safe='')}"
        return f"{url}&quality=low" if data_saver else url

    def is_allowed_url(self, url: Optional[str]) -> bool:
        if not url or not url.startswith(('http://', 'https://')):
            return False
        hostname = (urlparse(url).hostname or '').lower()
        return any(
            hostname == domain or hostname.endswith('.' + domain)
            for domain in self.allowed_domains
        )
