# models/supply_chain_transaction.py
"""
SupplyChainTransaction model - one block of the supply-chain ledger.

Each row records a manufacture/transfer/sale/return/recall event for a drug
batch. previous_hash links every row to the row with the preceding
block_number, forming a single global chain. Rows are append-only: the ORM
refuses to update or delete them.
"""
import enum

from sqlalchemy import (
     Boolean,
     CheckConstraint,
     Column,
     DateTime,
     Enum,
     Integer,
     JSON,
     Numeric,
     String,
     Text,
     event,
     func,
)
from .base import Base


class TransactionType(str, enum.Enum):
     """Supply-chain event kinds."""
     MANUFACTURE = "manufacture"
     TRANSFER = "transfer"
     SALE = "sale"
     RETURN = "return"
     RECALL = "recall"


class SupplyChainTransaction(Base):
     """
     Immutable ledger block. Created only by the ledger writer.
     Table name: supply_chain_transactions
     """
     __table_args__ = (
          CheckConstraint("quantity > 0", name="ck_supply_chain_transactions_quantity_positive"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)

     # Chain linkage
     hash = Column(String(64), nullable=False, unique=True, index=True)  # SHA-256 hex length
     previous_hash = Column(String(64), nullable=False, index=True)  # genesis sentinel for block 1
     block_number = Column(Integer, nullable=False, unique=True, index=True)

     # Opaque references resolved by the calling layer
     batch_id = Column(Integer, nullable=False, index=True)
     from_entity_id = Column(Integer, nullable=True, index=True)  # absent for manufacture
     to_entity_id = Column(Integer, nullable=False, index=True)

     transaction_type = Column(
          Enum(
               TransactionType,
               name="transaction_type",
               create_constraint=True,
               values_callable=lambda kinds: [kind.value for kind in kinds],
          ),
          nullable=False,
     )
     quantity = Column(Integer, nullable=False)
     unit_price = Column(Numeric(10, 2), nullable=False, default=0)
     total_amount = Column(Numeric(12, 2), nullable=False, default=0)
     transaction_date = Column(DateTime(timezone=True), nullable=False, index=True)

     shipping_details = Column(JSON, nullable=True)
     temperature_log = Column(JSON, nullable=True)  # [{"temperature": 4.5, "timestamp": "..."}]
     digital_signature = Column(Text, nullable=True)
     notes = Column(Text, nullable=True)

     # Mining outcome
     nonce = Column(Integer, nullable=False, default=0)
     mining_exhausted = Column(Boolean, nullable=False, default=False)  # lower-assurance hash

     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return (
               f"<SupplyChainTransaction(block={self.block_number}, batch_id={self.batch_id}, "
               f"type='{self.transaction_type}', hash={self.hash[:16]}...)>"
          )


@event.listens_for(SupplyChainTransaction, "before_update")
def _reject_update(mapper, connection, target):
     raise ValueError(f"Ledger block {target.block_number} is append-only and cannot be updated")


@event.listens_for(SupplyChainTransaction, "before_delete")
def _reject_delete(mapper, connection, target):
     raise ValueError(f"Ledger block {target.block_number} is append-only and cannot be deleted")
