"""
Random byte sources for padding and serial filler bytes.

The vendor tool draws every filler byte from ``Random.Next(0, 255)``, so
values are in ``0..254``. Tests inject a deterministic source to get
byte-exact output.
"""

from __future__ import annotations

import random
from typing import Optional, Protocol


class RandomByteSource(Protocol):
    """Anything that can hand out filler bytes."""

    def random_bytes(self, count: int) -> bytes:
        ...


class SystemRandomSource:
    """Default source backed by the OS random generator."""

    def __init__(self) -> None:
        self._rng = random.SystemRandom()

    def random_bytes(self, count: int) -> bytes:
        return bytes(self._rng.randrange(255) for _ in range(count))


class SeededRandomSource:
    """Reproducible source, mostly useful for tests and scripted rebuilds."""

    def __init__(self, seed: int = 0) -> None:
        self._rng = random.Random(seed)

    def random_bytes(self, count: int) -> bytes:
        return bytes(self._rng.randrange(255) for _ in range(count))


def default_source(rng: Optional[RandomByteSource] = None) -> RandomByteSource:
    """Return ``rng`` or a fresh SystemRandomSource."""
    return rng if rng is not None else SystemRandomSource()
