"""
ucp_core/profile.py — Fetching and caching platform UCP profiles.

Platforms publish their profile at /.well-known/ucp: capabilities,
signing keys (JWKs) and webhook settings. The profile URL arrives in
the UCP-Agent request header:

    UCP-Agent: UCP/2026-01-11 profile="https://agent.example/.well-known/ucp"

Fetched profiles are cached in memory per URL for `ttl` seconds, at
most `max_entries` of them: expired entries are dropped on every write,
then the oldest entry goes when the cache is full. Any failure (bad URL,
network, status, JSON, structure) yields None.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from . import __version__

logger = logging.getLogger(__name__)


DEFAULT_CACHE_TTL = 3600
DEFAULT_TIMEOUT = 10.0
DEFAULT_CACHE_MAX_ENTRIES = 256

_PROFILE_PARAM = re.compile(r'profile="([^"]+)"')


def parse_ucp_agent_header(header: Optional[str]) -> Optional[str]:
    """Extract the `profile="..."` URL from a UCP-Agent header value."""
    if not header:
        return None
    match = _PROFILE_PARAM.search(header)
    return match.group(1) if match else None


def is_valid_profile_url(url: str) -> bool:
    """Profile URLs must be https with a host."""
    parsed = urlparse(url)
    return parsed.scheme == "https" and bool(parsed.hostname)


def is_valid_profile(profile: Any) -> bool:
    """A profile is a JSON object with a `ucp` object carrying `version`."""
    if not isinstance(profile, dict):
        return False
    ucp = profile.get("ucp")
    return isinstance(ucp, dict) and "version" in ucp


class PlatformProfileFetcher:
    """HTTP fetcher for platform profiles with a TTL cache.

    Args:
        client:      httpx.Client to use; one is created if omitted.
        ttl:         Cache lifetime in seconds.
        timeout:     Request timeout in seconds.
        max_entries: Upper bound on cached profiles.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        ttl: float = DEFAULT_CACHE_TTL,
        timeout: float = DEFAULT_TIMEOUT,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None
        self.ttl = ttl
        self.timeout = timeout
        self.max_entries = max_entries
        self._cache: dict[str, tuple[dict, float]] = {}
        self._lock = threading.Lock()

    def fetch_profile(self, url: str) -> Optional[dict]:
        """Fetch (or serve from cache) the profile at `url`."""
        with self._lock:
            cached = self._cache.get(url)
        if cached is not None and cached[1] > time.monotonic():
            return cached[0]

        if not is_valid_profile_url(url):
            logger.warning("Rejected profile URL %s: https with host required", url)
            return None

        try:
            response = self._client.get(
                url,
                timeout=self.timeout,
                headers={
                    "Accept": "application/json",
                    "User-Agent": f"ucp-core/{__version__}",
                },
            )
            response.raise_for_status()
            profile = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch profile %s: %s", url, exc)
            return None

        if not is_valid_profile(profile):
            logger.warning("Profile %s lacks a ucp.version section", url)
            return None

        self._store(url, profile)
        return profile

    def _store(self, url: str, profile: dict) -> None:
        now = time.monotonic()
        with self._lock:
            for key in [k for k, (_, expires) in self._cache.items() if expires <= now]:
                del self._cache[key]
            # Re-insert so the dict stays ordered oldest first
            self._cache.pop(url, None)
            while len(self._cache) >= self.max_entries:
                del self._cache[next(iter(self._cache))]
            self._cache[url] = (profile, now + self.ttl)

    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_signing_keys(self, url: str) -> list:
        """The `signing_keys` JWK list of the profile at `url`, or []."""
        profile = self.fetch_profile(url)
        if profile is None:
            return []
        keys = profile.get("signing_keys")
        return keys if isinstance(keys, list) else []

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
