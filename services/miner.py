# services/miner.py
"""
Bounded proof-of-work puzzle for ledger blocks.

Each attempt hashes {base_hash, previous_hash, nonce, timestamp}; a hash is
accepted once it starts with `difficulty` hexadecimal zeros. The search is
capped by an iteration limit and an optional deadline. When the cap is hit
the last computed hash is returned with exhausted=True; such blocks are
still written but count as lower-assurance.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import config
from .canonical import encode_canonical, sha256_hex

logger = logging.getLogger(__name__)

MAX_DIFFICULTY = 64  # hex characters in a SHA-256 digest


def _epoch_millis() -> int:
     return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class MiningResult:
     hash: str
     nonce: int
     attempts: int
     exhausted: bool
     elapsed_ms: float


class PuzzleMiner:
     """
     Searches nonces until the block hash meets the difficulty target.

     Args:
          difficulty: Default number of leading hex zeros required
          max_iterations: Hard cap on attempts per block
          max_seconds: Optional deadline per block (0 or None disables it)
          clock: Returns the attempt timestamp in epoch milliseconds
     """

     def __init__(
          self,
          difficulty: int = config.MINING_DIFFICULTY,
          max_iterations: int = config.MINING_MAX_ITERATIONS,
          max_seconds: Optional[float] = config.MINING_MAX_SECONDS,
          clock: Callable[[], int] = _epoch_millis,
     ):
          self._check_difficulty(difficulty)
          if max_iterations < 1:
               raise ValueError("max_iterations must be at least 1")
          self.difficulty = difficulty
          self.max_iterations = max_iterations
          self.max_seconds = max_seconds or None
          self.clock = clock

     @staticmethod
     def _check_difficulty(difficulty: int) -> None:
          if not 0 <= difficulty <= MAX_DIFFICULTY:
               raise ValueError(f"Difficulty must be between 0 and {MAX_DIFFICULTY}")

     @staticmethod
     def meets_difficulty(block_hash: str, difficulty: int) -> bool:
          return block_hash.startswith("0" * difficulty)

     def attempt_hash(self, base_hash: str, previous_hash: str, nonce: int, timestamp: int) -> str:
          """Hash of a single attempt. Pure function of its arguments."""
          return sha256_hex(encode_canonical({
               "base_hash": base_hash,
               "previous_hash": previous_hash,
               "nonce": nonce,
               "timestamp": timestamp,
          }))

     def mine(self, base_hash: str, previous_hash: str, difficulty: Optional[int] = None) -> MiningResult:
          """
          Search for a hash meeting the difficulty target.

          Returns:
               MiningResult; exhausted is True when the iteration cap or the
               deadline stopped the search first.
          """
          if difficulty is None:
               difficulty = self.difficulty
          self._check_difficulty(difficulty)

          started = time.monotonic()
          deadline = started + self.max_seconds if self.max_seconds else None
          block_hash = ""
          nonce = 0
          exhausted = True

          while nonce < self.max_iterations:
               nonce += 1
               block_hash = self.attempt_hash(base_hash, previous_hash, nonce, self.clock())
               if self.meets_difficulty(block_hash, difficulty):
                    exhausted = False
                    break
               if deadline is not None and time.monotonic() >= deadline:
                    break

          elapsed_ms = (time.monotonic() - started) * 1000
          if exhausted:
               logger.warning(
                    "Mining stopped after %d attempts (difficulty=%d); using current hash %s",
                    nonce, difficulty, block_hash,
               )
          else:
               logger.debug("Block mined: %s (nonce: %d, time: %.1fms)", block_hash, nonce, elapsed_ms)

          return MiningResult(
               hash=block_hash,
               nonce=nonce,
               attempts=nonce,
               exhausted=exhausted,
               elapsed_ms=elapsed_ms,
          )
