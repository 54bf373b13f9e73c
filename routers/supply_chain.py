# routers/supply_chain.py
"""
Supply-chain ledger API routes.

Thin HTTP layer over SupplyChainLedger. Writes are awaited on the ledger's
writer thread so the event loop keeps serving tracking and verification
requests while a block is being mined. Authentication and batch/entity
existence checks belong to the calling layer.
"""
import asyncio
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status

from models.supply_chain_transaction import TransactionType
from schemas.ledger import (
     AnomalyReport,
     BatchChainIntegrity,
     HealthStatus,
     StatsResponse,
     SupplyChainHistory,
     TrackResponse,
     TransactionCreate,
     TransactionReceipt,
     TransactionPage,
     VerifyResponse,
)
from services.errors import ChainWriteError, InvalidTransactionInput
from services.ledger_service import MAX_PAGE_SIZE, SupplyChainLedger

router = APIRouter(prefix="/api/supply-chain", tags=["supply-chain"])


def get_ledger(request: Request) -> SupplyChainLedger:
     """FastAPI dependency returning the application's ledger."""
     return request.app.state.ledger


BatchId = Annotated[int, Path(gt=0, description="Drug batch ID")]


@router.post(
     "/transaction",
     response_model=TransactionReceipt,
     status_code=status.HTTP_201_CREATED,
     summary="Append a supply chain transaction",
)
async def create_transaction(
     body: TransactionCreate,
     ledger: SupplyChainLedger = Depends(get_ledger),
):
     """
     Append a manufacture/transfer/sale/return/recall event to the ledger.

     - **to_entity_id** and a positive **quantity** are required
     - **from_entity_id** is omitted for manufacture
     - **transaction_date** defaults to now (UTC)

     The caller is responsible for decrementing the batch's remaining
     quantity after a successful append.
     """
     try:
          future = ledger.submit_transaction(body)
     except InvalidTransactionInput as e:
          raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

     try:
          return await asyncio.wrap_future(future)
     except ChainWriteError as e:
          raise HTTPException(
               status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
               detail=f"Failed to create blockchain transaction: {e}",
          )


@router.get(
     "/track/{batch_id}",
     response_model=TrackResponse,
     summary="Track a batch through the supply chain",
)
def track_batch(
     batch_id: BatchId,
     ledger: SupplyChainLedger = Depends(get_ledger),
):
     """Complete history of a batch with anomaly analysis."""
     history = ledger.get_supply_chain_history(batch_id)
     if history.total_transactions == 0:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail="No supply chain data found for this batch",
          )

     return TrackResponse(
          batch_id=batch_id,
          supply_chain=history,
          anomalies=ledger.detect_anomalies(batch_id),
          integrity_verified=history.chain_integrity.is_valid,
     )


@router.get("/history/{batch_id}", response_model=SupplyChainHistory)
def get_history(
     batch_id: BatchId,
     ledger: SupplyChainLedger = Depends(get_ledger),
):
     return ledger.get_supply_chain_history(batch_id)


@router.get("/anomalies/{batch_id}", response_model=AnomalyReport)
def get_anomalies(
     batch_id: BatchId,
     ledger: SupplyChainLedger = Depends(get_ledger),
):
     return ledger.detect_anomalies(batch_id)


@router.get(
     "/verify",
     response_model=VerifyResponse,
     summary="Verify global chain integrity",
)
def verify_chain(ledger: SupplyChainLedger = Depends(get_ledger)):
     return VerifyResponse(
          blockchain_verification=ledger.verify_global_chain(),
          timestamp=datetime.now(timezone.utc),
     )


@router.get("/verify/{batch_id}", response_model=BatchChainIntegrity)
def verify_batch(
     batch_id: BatchId,
     ledger: SupplyChainLedger = Depends(get_ledger),
):
     return ledger.verify_batch_chain(batch_id)


@router.get(
     "/stats",
     response_model=StatsResponse,
     summary="Ledger and supply chain statistics",
)
def get_stats(ledger: SupplyChainLedger = Depends(get_ledger)):
     return StatsResponse(
          stats=ledger.get_ledger_stats(),
          timestamp=datetime.now(timezone.utc),
     )


@router.get(
     "/transactions",
     response_model=TransactionPage,
     summary="List supply chain transactions",
)
def list_transactions(
     page: int = Query(1, ge=1, description="Page number"),
     limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE, description="Records per page"),
     batch_id: Optional[int] = Query(None, gt=0, description="Filter by drug batch"),
     transaction_type: Optional[TransactionType] = Query(None, description="Filter by event kind"),
     ledger: SupplyChainLedger = Depends(get_ledger),
):
     """Ledger records newest block first, with pagination details."""
     return ledger.list_transactions(
          page=page,
          limit=limit,
          batch_id=batch_id,
          transaction_type=transaction_type,
     )


@router.get(
     "/health",
     response_model=HealthStatus,
     summary="Supply chain service health",
)
def health(response: Response, ledger: SupplyChainLedger = Depends(get_ledger)):
     status_report = ledger.health()
     if not status_report.database:
          response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
     return status_report
