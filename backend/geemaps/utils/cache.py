from typing import Optional

from cachetools import TTLCache

from ..models import ServerConfig
from .logging import get_logger

logger = get_logger(__name__)


class ServerDefsCache:
    """Parsed server definitions keyed by the definitions URL."""

    def __init__(self, max_size: int = 64, ttl: int = 900):
        self._entries: TTLCache = TTLCache(maxsize=max_size, ttl=ttl)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, url: str) -> Optional[ServerConfig]:
        config = self._entries.get(url)
        logger.debug(f"Server defs cache {'hit' if config is not None else 'miss'}: {url}")
        return config

    def set(self, url: str, config: ServerConfig) -> None:
        self._entries[url] = config

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Server defs cache cleared")


_cache = None


def get_cache(ttl: int = 900, max_size: int = 64) -> ServerDefsCache:
    """Get the process-wide server-defs cache."""
    global _cache
    if _cache is None:
        _cache = ServerDefsCache(max_size=max_size, ttl=ttl)
        logger.info(f"Initialized server defs cache with TTL={ttl}s, max_size={max_size}")
    return _cache
