"""Domain-separated deterministic RNG using xxhash.

The outcome of tick T depends only on the seed and the World at T-1.
Evaluation order must not matter, so every draw is a pure function of its
coordinates rather than of how many draws came before it.

Formula: RNG_Value = Hash(Seed, Domain, Tick, Salt, Key)
"""

from __future__ import annotations

import struct
from typing import Sequence, TypeVar

import xxhash

from stagecraft.core.enums import Domain

T = TypeVar("T")


class DeterministicRNG:
    """Stateless domain-separated pseudo-random number generator.

    *key* identifies the consumer (for RANDOM flow groups: actor id, group id
    and loop iteration), so two consumers never share a stream.
    """

    __slots__ = ("_seed",)

    _MAX_UINT64 = (1 << 64) - 1

    def __init__(self, seed: int) -> None:
        # any int is accepted; the hash sees it modulo 2**64
        self._seed = seed & self._MAX_UINT64

    @property
    def seed(self) -> int:
        return self._seed

    def _hash(self, domain: Domain, key: str, tick: int, salt: int) -> int:
        payload = struct.pack("<Qiqi", self._seed, domain.value, tick, salt) + key.encode("utf-8")
        return xxhash.xxh64(payload).intdigest()

    def next_float(self, domain: Domain, key: str, tick: int, salt: int = 0) -> float:
        """Return a deterministic float in [0.0, 1.0)."""
        return self._hash(domain, key, tick, salt) / (self._MAX_UINT64 + 1)

    def next_int(self, domain: Domain, key: str, tick: int, low: int, high: int, salt: int = 0) -> int:
        """Return a deterministic integer in [low, high] inclusive."""
        f = self.next_float(domain, key, tick, salt)
        return low + int(f * (high - low + 1))

    def shuffled(self, items: Sequence[T], domain: Domain, key: str, tick: int) -> list[T]:
        """Fisher-Yates shuffle of a copy of *items*; the input is left untouched."""
        result = list(items)
        for c in range(len(result) - 1, 0, -1):
            b = self.next_int(domain, key, tick, 0, c, salt=c)
            result[c], result[b] = result[b], result[c]
        return result
