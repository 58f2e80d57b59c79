"""Disk cache with time-to-live semantics for yaoaic.

This package provides :class:`Cache`, which stores named values as
timestamped YAML documents under a single directory and hands them back
while they are younger than a configurable maximum age. Its
:meth:`~Cache.with_cached` method implements the compute-or-reuse pattern
used for the prompt catalog and conversation transcripts.

The cache is consumed by :class:`~yaoaic.session.Session` and is
controlled by the ``cache`` section of the global configuration
(:class:`~yaoaic.models.CacheConfig`).
"""

from yaoaic.cache.cache import Cache, CacheEntryInfo, CacheLookup, LookupStatus, init
from yaoaic.cache.envelope import Envelope

__all__ = [
    "Cache",
    "CacheEntryInfo",
    "CacheLookup",
    "Envelope",
    "LookupStatus",
    "init",
]
