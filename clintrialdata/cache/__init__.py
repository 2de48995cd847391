"""Persisted state under the cache root."""

from .listing import SNAPSHOT_NAME, StaleListingCache

__all__ = ["StaleListingCache", "SNAPSHOT_NAME"]
