"""Caches used by the correction pipeline."""

from .correction_cache import CacheEntry, CacheStats, CorrectionCache

__all__ = ["CacheEntry", "CacheStats", "CorrectionCache"]
