# services/chain_verifier.py
"""
Chain Verifier - replays ledger records and checks previous_hash linkage.

Verification never raises on a broken chain; integrity violations are
returned as diagnostic results for operators and dashboards.
"""
import logging
from typing import Sequence

import config
from models.supply_chain_transaction import TransactionType
from schemas.ledger import (
     BatchChainIntegrity,
     BrokenLink,
     ChainVerification,
     TransactionRecord,
)

logger = logging.getLogger(__name__)


class ChainVerifier:
     """Checks link continuity of the global chain or a batch subsequence."""

     def __init__(self, genesis_hash: str = config.GENESIS_HASH):
          self.genesis_hash = genesis_hash

     def verify_global_chain(self, records: Sequence[TransactionRecord]) -> ChainVerification:
          """
          Verify the full chain ordered by block_number.

          Block 1 must point at the genesis sentinel; every later block must
          point at the hash of the block before it. Each mismatch is reported
          once, at the block whose previous_hash is wrong.
          """
          broken_links = []
          expected_previous = self.genesis_hash

          for record in records:
               if record.previous_hash != expected_previous:
                    broken_links.append(BrokenLink(
                         block_number=record.block_number,
                         transaction_id=record.id,
                         expected_previous_hash=expected_previous,
                         actual_previous_hash=record.previous_hash,
                    ))
               expected_previous = record.hash

          if broken_links:
               logger.warning(
                    "Chain verification failed: %d broken link(s), first at block %d",
                    len(broken_links), broken_links[0].block_number,
               )

          return ChainVerification(
               is_valid=not broken_links,
               total_blocks=len(records),
               broken_links=broken_links,
          )

     def verify_batch_chain(self, records: Sequence[TransactionRecord]) -> BatchChainIntegrity:
          """
          Verify one batch's subsequence ordered by block_number.

          Continuity is checked between consecutive records of the batch, not
          against the interleaved global chain: a batch whose blocks are
          separated by other batches' blocks reports a broken link.
          """
          if not records:
               return BatchChainIntegrity(is_valid=True, message="No transactions found", transaction_count=0)

          if records[0].transaction_type != TransactionType.MANUFACTURE:
               return BatchChainIntegrity(
                    is_valid=False,
                    message="Chain does not start with manufacture transaction",
                    transaction_count=len(records),
               )

          for previous, current in zip(records, records[1:]):
               if current.previous_hash != previous.hash:
                    return BatchChainIntegrity(
                         is_valid=False,
                         message=f"Broken chain at block {current.block_number}",
                         transaction_count=len(records),
                    )

          return BatchChainIntegrity(
               is_valid=True,
               message="Chain integrity verified",
               transaction_count=len(records),
          )
