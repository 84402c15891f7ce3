"""Cache providers.

MemoryCacheProvider is a TTLCache-backed store: fast but not shared across
processes.  For multi-worker deployments, swap in a Redis adapter
implementing ICacheProvider without changing any business logic.
"""

from psychic_homily.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
