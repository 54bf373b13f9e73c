# models/__init__.py
from .base import Base
from .supply_chain_transaction import SupplyChainTransaction, TransactionType
from .audit_trail import AuditTrail

__all__ = [
     "Base",
     "SupplyChainTransaction",
     "TransactionType",
     "AuditTrail",
]
