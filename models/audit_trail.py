# models/audit_trail.py
from sqlalchemy import Column, DateTime, Integer, JSON, String, func
from .base import Base


class AuditTrail(Base):
     """
     Audit log of ledger events (block created, chain verified).
     Written by the ledger store alongside the chain itself.
     """
     __tablename__ = "audit_trail"

     id = Column(Integer, primary_key=True, autoincrement=True)
     action = Column(String(100), nullable=False, index=True)  # TRANSACTION_CREATED, CHAIN_VERIFICATION
     table_name = Column(String(50), nullable=False)
     record_id = Column(Integer, nullable=False, default=0)
     new_values = Column(JSON, nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return f"<AuditTrail(id={self.id}, action='{self.action}', record_id={self.record_id})>"
