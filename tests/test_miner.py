"""Tests for services.miner."""
import itertools

import pytest

from services.miner import MAX_DIFFICULTY, PuzzleMiner

BASE = "ab" * 32
PREVIOUS = "0" * 64


def fixed_clock(value: int = 1_700_000_000_000):
    return lambda: value


class TestPuzzleMiner:

    def test_mined_hash_meets_difficulty(self):
        miner = PuzzleMiner(difficulty=2, max_iterations=100_000)
        result = miner.mine(BASE, PREVIOUS)
        assert not result.exhausted
        assert result.hash.startswith("00")
        assert result.attempts == result.nonce >= 1

    def test_explicit_difficulty_overrides_default(self):
        miner = PuzzleMiner(difficulty=0, max_iterations=100_000)
        result = miner.mine(BASE, PREVIOUS, difficulty=1)
        assert result.hash.startswith("0")

    def test_difficulty_zero_accepts_first_attempt(self):
        result = PuzzleMiner(difficulty=0).mine(BASE, PREVIOUS)
        assert result.nonce == 1
        assert not result.exhausted

    def test_winning_hash_is_reproducible_from_its_inputs(self):
        clock = fixed_clock()
        miner = PuzzleMiner(difficulty=1, max_iterations=10_000, clock=clock)
        result = miner.mine(BASE, PREVIOUS)
        assert miner.attempt_hash(BASE, PREVIOUS, result.nonce, clock()) == result.hash

    def test_fixed_clock_makes_mining_deterministic(self):
        first = PuzzleMiner(difficulty=1, max_iterations=10_000, clock=fixed_clock()).mine(BASE, PREVIOUS)
        second = PuzzleMiner(difficulty=1, max_iterations=10_000, clock=fixed_clock()).mine(BASE, PREVIOUS)
        assert first.hash == second.hash
        assert first.nonce == second.nonce

    def test_attempt_timestamp_is_part_of_the_hash(self):
        miner = PuzzleMiner(difficulty=0)
        assert miner.attempt_hash(BASE, PREVIOUS, 1, 1000) != miner.attempt_hash(BASE, PREVIOUS, 1, 1001)

    def test_iteration_cap_returns_last_hash(self):
        miner = PuzzleMiner(difficulty=MAX_DIFFICULTY, max_iterations=25, clock=fixed_clock())
        result = miner.mine(BASE, PREVIOUS)
        assert result.exhausted
        assert result.attempts == 25
        assert len(result.hash) == 64
        assert result.hash == miner.attempt_hash(BASE, PREVIOUS, 25, fixed_clock()())

    def test_deadline_stops_the_search(self):
        ticks = itertools.count()
        miner = PuzzleMiner(
            difficulty=MAX_DIFFICULTY,
            max_iterations=10_000_000,
            max_seconds=0.01,
            clock=lambda: next(ticks),
        )
        result = miner.mine(BASE, PREVIOUS)
        assert result.exhausted
        assert result.attempts < 10_000_000

    @pytest.mark.parametrize("difficulty", [-1, MAX_DIFFICULTY + 1])
    def test_invalid_difficulty_rejected(self, difficulty):
        with pytest.raises(ValueError):
            PuzzleMiner(difficulty=difficulty)
        with pytest.raises(ValueError):
            PuzzleMiner(difficulty=1).mine(BASE, PREVIOUS, difficulty=difficulty)

    def test_iteration_cap_must_be_positive(self):
        with pytest.raises(ValueError):
            PuzzleMiner(max_iterations=0)
