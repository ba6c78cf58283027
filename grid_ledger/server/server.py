"""
FastAPI Server for the Grid Ledger
==================================
REST surface over one client session.

Endpoints:
- GET  /status                  - Operation status and in-flight flags
- GET  /records                 - List records (optional ?search=)
- POST /records                 - Encrypt and record a load value
- GET  /records/{id}            - One record with its load view
- POST /records/{id}/verify     - Request on-chain verification
- POST /records/{id}/close      - Drop the provisional value for a record
- GET  /records/{id}/analysis   - Derived display scores
- GET  /statistics              - Totals and average capacity
- POST /refresh                 - Reload from the ledger
- GET  /security-logs           - Audit trail
- GET  /realtime                - Cosmetic load feed
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import GridLedgerConfig
from ..coordinator.operation_status import OperationOutcome
from ..session import GridLedgerSession, build_session


class CreateGridRequest(BaseModel):
    """Body for POST /records"""
    name: str
    load_value: int
    capacity: int


def _outcome_response(outcome: OperationOutcome) -> JSONResponse:
    return JSONResponse(outcome.to_dict(), status_code=200 if outcome.ok else 400)


def create_app(config: Optional[GridLedgerConfig] = None) -> FastAPI:
    """Build the API app; the session is created in the lifespan"""
    config = config or GridLedgerConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        session = build_session(config)
        app.state.session = session
        await session.store.initialize_encryption()
        await session.store.refresh()
        session.feed.start()
        try:
            yield
        finally:
            await session.feed.stop()

    app = FastAPI(
        title="Confidential Grid Load Ledger",
        description="FHE-encrypted grid load records with on-chain verification",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def session_of() -> GridLedgerSession:
        return app.state.session

    def record_or_404(record_id: str):
        record = session_of().store.get(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Unknown record {record_id}")
        return record

    @app.get("/status")
    async def get_status():
        store = session_of().store
        return {
            **store.status.to_dict(),
            'account': store.account,
            'encryption_ready': store.encryption.is_ready,
            'loading': store.loading,
            'refreshing': store.refreshing,
            'creating': store.creating,
            'decrypting': store.decrypting,
        }

    @app.get("/records")
    async def list_records(search: str = ""):
        return [r.to_dict() for r in session_of().store.search(search)]

    @app.post("/records")
    async def create_record(body: CreateGridRequest):
        outcome = await session_of().store.create(body.name, body.load_value, body.capacity)
        return _outcome_response(outcome)

    @app.get("/records/{record_id}")
    async def get_record(record_id: str):
        record = record_or_404(record_id)
        return {
            **record.to_dict(),
            'load': session_of().store.load_view(record_id).to_dict(),
        }

    @app.post("/records/{record_id}/verify")
    async def verify_record(record_id: str):
        outcome = await session_of().store.request_verification(record_id)
        return _outcome_response(outcome)

    @app.post("/records/{record_id}/close")
    async def close_record(record_id: str):
        record_or_404(record_id)
        session_of().store.close_detail(record_id)
        return {'closed': record_id}

    @app.get("/records/{record_id}/analysis")
    async def analyze_record(record_id: str):
        record_or_404(record_id)
        return session_of().store.analyze(record_id).to_dict()

    @app.get("/statistics")
    async def get_statistics():
        return session_of().store.statistics().to_dict()

    @app.post("/refresh")
    async def refresh():
        return _outcome_response(await session_of().store.refresh())

    @app.get("/security-logs")
    async def get_security_logs(limit: int = 50):
        return session_of().security_logger.to_display_format(limit)

    @app.get("/realtime")
    async def get_realtime():
        return {'samples': session_of().feed.samples()}

    return app


def run_server(config: Optional[GridLedgerConfig] = None):
    config = config or GridLedgerConfig.from_env()
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    run_server()
