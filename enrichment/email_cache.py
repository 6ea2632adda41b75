"""
MAPLEAD — Domain Cache
Host-keyed memo of resolved email strings. One instance per run, owned by
the worker pool coordinator; workers never touch it.
"""

import logging
from typing import Dict, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> Optional[str]:
    """
    Canonical origin (scheme + host[:port]) of a site URL, or None when the
    value cannot be a website. Bare domains are assumed https.
    """
    if not url or not url.strip():
        return None
    url = url.strip()
    if not url.startswith("http"):
        url = "https://" + url
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError:
        return None
    if not host or "." not in host or " " in host:
        return None
    return f"{parsed.scheme}://{parsed.netloc.lower()}"


def extract_host(url: str) -> str:
    """Lowercase hostname used as the cache key."""
    if not url.startswith("http"):
        url = "https://" + url
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    if host:
        return host
    return url.split("://", 1)[-1].split("/", 1)[0].lower()


class DomainCache:
    """
    host → comma-joined emails (or "NA"). Each host is written at most once;
    later writes for the same host are ignored.
    """

    def __init__(self):
        self._entries: Dict[str, str] = {}
        self._stats = {"hits": 0, "misses": 0, "writes": 0}

    def get(self, host: str) -> Optional[str]:
        value = self._entries.get(host)
        if value is None:
            self._stats["misses"] += 1
        else:
            self._stats["hits"] += 1
        return value

    def set(self, host: str, result: str) -> bool:
        if host in self._entries:
            return False
        self._entries[host] = result
        self._stats["writes"] += 1
        logger.debug(f"  Cached {host} → {result}")
        return True

    def __contains__(self, host: str) -> bool:
        return host in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> dict:
        return {**self._stats, "entries": len(self._entries)}
