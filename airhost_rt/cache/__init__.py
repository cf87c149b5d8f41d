"""
Time-to-live snapshot caching for expensive aggregations.
"""
from .snapshot_cache import CacheResult, CachedSnapshot, SnapshotCache

__all__ = ["CacheResult", "CachedSnapshot", "SnapshotCache"]
