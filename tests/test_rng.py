"""Tests for the domain-separated deterministic RNG."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from stagecraft.core.enums import Domain
from stagecraft.systems.rng import DeterministicRNG


class TestSeeds:
    """Any Python int works as a seed; the hash sees it modulo 2**64."""

    def test_seeds_beyond_64_bits(self):
        huge = DeterministicRNG(2**70 + 5)
        assert huge.seed == 5
        assert huge.next_float(Domain.FLOW_RANDOM, "a1", 3) == DeterministicRNG(5).next_float(Domain.FLOW_RANDOM, "a1", 3)

    def test_negative_seed_wraps(self):
        rng = DeterministicRNG(-1)
        assert rng.seed == 2**64 - 1
        value = rng.next_float(Domain.FLOW_RANDOM, "a1", 0)
        assert 0.0 <= value < 1.0
        assert value == DeterministicRNG(2**64 - 1).next_float(Domain.FLOW_RANDOM, "a1", 0)


class TestDraws:
    def test_domains_and_keys_are_separate(self):
        rng = DeterministicRNG(42)
        base = rng.next_float(Domain.FLOW_RANDOM, "a1", 1)
        assert rng.next_float(Domain.ACTION, "a1", 1) != base
        assert rng.next_float(Domain.FLOW_RANDOM, "a2", 1) != base
        assert rng.next_float(Domain.FLOW_RANDOM, "a1", 1) == base

    def test_next_int_stays_in_range(self):
        rng = DeterministicRNG(7)
        draws = {rng.next_int(Domain.ACTION, "k", tick, 2, 4) for tick in range(200)}
        assert draws == {2, 3, 4}

    def test_shuffle_keeps_input(self):
        items = ["a", "b", "c", "d"]
        shuffled = DeterministicRNG(1).shuffled(items, Domain.FLOW_RANDOM, "g", 0)
        assert sorted(shuffled) == items
        assert items == ["a", "b", "c", "d"]
