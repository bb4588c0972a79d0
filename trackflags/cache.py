"""
Flag definition cache.

Definitions are published as whole generations. A writer builds a new
mapping and swaps the reference; readers take one snapshot per evaluation
and never lock.
"""

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from trackflags.types import FlagDefinition


@dataclass(frozen=True)
class DefinitionSnapshot:
    """One published generation of flag definitions."""

    flags: Mapping[str, FlagDefinition] = field(
        default_factory=lambda: MappingProxyType({})
    )
    version: int = 0
    """Monotonic generation counter, 0 before the first publish."""

    fetched_at: Optional[float] = None
    """Epoch seconds of the publish."""


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    size: int = 0
    version: int = 0


class FlagDefinitionCache:
    """
    Holds the most recent generation of flag definitions.

    The poller is the only writer. ``replace`` never mutates a published
    generation, so an evaluation in flight keeps a consistent view.
    """

    def __init__(self):
        self._snapshot = DefinitionSnapshot()
        self._hits = 0
        self._misses = 0

    def snapshot(self) -> DefinitionSnapshot:
        """Get the current generation."""
        return self._snapshot

    def replace(self, flags: Dict[str, FlagDefinition]) -> DefinitionSnapshot:
        """
        Publish a new generation.

        Args:
            flags: Mapping of flag key to definition; copied, not retained

        Returns:
            The published snapshot
        """
        snapshot = DefinitionSnapshot(
            flags=MappingProxyType(dict(flags)),
            version=self._snapshot.version + 1,
            fetched_at=time.time(),
        )
        self._snapshot = snapshot
        return snapshot

    def get(self, key: str) -> Optional[FlagDefinition]:
        """Look up a flag in the current generation."""
        flag = self._snapshot.flags.get(key)
        if flag is None:
            self._misses += 1
        else:
            self._hits += 1
        return flag

    def has(self, key: str) -> bool:
        return key in self._snapshot.flags

    @property
    def version(self) -> int:
        return self._snapshot.version

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        snapshot = self._snapshot
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            size=len(snapshot.flags),
            version=snapshot.version,
        )
