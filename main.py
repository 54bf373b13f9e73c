import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from database import SessionLocal, init_db
from routers import supply_chain_router
from services import SqlAlchemyLedgerStore, SupplyChainLedger

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(ledger: Optional[SupplyChainLedger] = None) -> FastAPI:
    """
    Build the API application.

    With no ledger given, the app owns one backed by the configured database:
    tables are created on startup and the writer thread is stopped on shutdown.
    An injected ledger is used as-is and left open.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if ledger is None:
            init_db()
            app.state.ledger = SupplyChainLedger(SqlAlchemyLedgerStore(SessionLocal))
            logger.info("Ledger ready (database: %s)", config.DATABASE_URL.split("@")[-1])
        else:
            app.state.ledger = ledger
        try:
            yield
        finally:
            if ledger is None:
                app.state.ledger.close()

    app = FastAPI(title="Supply Chain Ledger", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(supply_chain_router)

    return app


# App instance
app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
