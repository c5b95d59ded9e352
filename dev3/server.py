"""FastAPI request layer for Dev3.

Exposes the Decision Store and the consensus step as a JSON API under
/api. The store is opened from configuration in the app lifespan unless
one is handed to ``create_app`` directly (tests, embedding).

Requires the 'server' optional dependency group:
    pip install dev3[server]
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from dev3 import __version__
from dev3.errors import (
    DecisionNotFoundError,
    IncompleteResponsesError,
    ValidationFailedError,
)
from dev3.persistence import DecisionStore, open_store
from dev3.schemas.config import Dev3Config
from dev3.schemas.decision import (
    AIResponse,
    Consensus,
    Decision,
    DecisionCreate,
    DecisionUpdate,
    ResponseCreate,
    ResponseSubmission,
)
from dev3.schemas.stats import DecisionStats
from dev3.schemas.voters import VOTER_PROFILES
from dev3.stats import compute_stats

logger = logging.getLogger(__name__)


def get_store(request: Request) -> DecisionStore:
    """Return the store bound to the running app."""
    return request.app.state.store


def create_app(
    store: DecisionStore | None = None,
    config: Dev3Config | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: An already-open store. The caller keeps ownership and must
            close it. When omitted, the lifespan opens one from ``config``
            and closes it on shutdown.
        config: Configuration used to open the store. Defaults to Dev3Config().
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.store is None
        if owned:
            app.state.store = await open_store(config)
            logger.info("Opened %s", type(app.state.store).__name__)
        try:
            yield
        finally:
            if owned:
                await app.state.store.close()
                app.state.store = None

    app = FastAPI(
        title="Dev3 API",
        description="Multi-model decision deliberation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error mapping ────────────────────────────────────────────

    @app.exception_handler(DecisionNotFoundError)
    async def _not_found(request: Request, exc: DecisionNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "Decision not found"})

    @app.exception_handler(IncompleteResponsesError)
    async def _incomplete(request: Request, exc: IncompleteResponsesError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Cannot reach consensus",
                "message": (
                    f"All {len(get_store(request).voters)} voters must respond "
                    "before consensus can be reached"
                ),
                "responded": [v.value for v in exc.responded],
                "missing": [v.value for v in exc.missing],
            },
        )

    @app.exception_handler(ValidationFailedError)
    async def _invalid(request: Request, exc: ValidationFailedError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": jsonable_encoder(exc.details)},
        )

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # ── Voters ───────────────────────────────────────────────────

    @app.get("/api/voters")
    async def list_voters(store: DecisionStore = Depends(get_store)) -> dict:
        """Required voters and their roles."""
        return {
            "voters": [v.value for v in store.voters],
            "roles": {
                v.value: VOTER_PROFILES[v].model_dump(mode="json") for v in store.voters
            },
        }

    # ── Decisions ────────────────────────────────────────────────

    @app.post("/api/decisions", status_code=201, response_model=Decision)
    async def create_decision(
        body: DecisionCreate, store: DecisionStore = Depends(get_store),
    ) -> Decision:
        return await store.create_decision(body)

    @app.get("/api/decisions", response_model=list[Decision])
    async def list_decisions(store: DecisionStore = Depends(get_store)) -> list[Decision]:
        return await store.list_decisions()

    @app.get("/api/decisions/{decision_id}", response_model=Decision)
    async def get_decision(
        decision_id: str, store: DecisionStore = Depends(get_store),
    ) -> Decision:
        return await store.get_decision(decision_id)

    @app.patch("/api/decisions/{decision_id}", response_model=Decision)
    async def update_decision(
        decision_id: str,
        body: DecisionUpdate,
        store: DecisionStore = Depends(get_store),
    ) -> Decision:
        return await store.update_decision(decision_id, body)

    @app.delete("/api/decisions/{decision_id}", status_code=204)
    async def delete_decision(
        decision_id: str, store: DecisionStore = Depends(get_store),
    ) -> Response:
        if not await store.delete_decision(decision_id):
            raise DecisionNotFoundError(decision_id)
        return Response(status_code=204)

    # ── Responses ────────────────────────────────────────────────

    @app.post(
        "/api/decisions/{decision_id}/responses",
        status_code=201,
        response_model=AIResponse,
    )
    async def submit_response(
        decision_id: str,
        body: ResponseSubmission,
        store: DecisionStore = Depends(get_store),
    ) -> AIResponse:
        """Add a voter's response, replacing that voter's earlier one."""
        payload = ResponseCreate(**body.model_dump(), decision_id=decision_id)
        return await store.submit_response(payload)

    @app.get("/api/decisions/{decision_id}/responses", response_model=list[AIResponse])
    async def list_responses(
        decision_id: str, store: DecisionStore = Depends(get_store),
    ) -> list[AIResponse]:
        return await store.list_responses(decision_id)

    # ── Consensus ────────────────────────────────────────────────

    @app.post(
        "/api/decisions/{decision_id}/consensus",
        status_code=201,
        response_model=Consensus,
    )
    async def reach_consensus(
        decision_id: str, store: DecisionStore = Depends(get_store),
    ) -> Consensus:
        """Calculate the consensus. Every required voter must have responded."""
        return await store.reach_consensus(decision_id)

    @app.get("/api/decisions/{decision_id}/consensus", response_model=Consensus)
    async def get_consensus(
        decision_id: str, store: DecisionStore = Depends(get_store),
    ):
        await store.get_decision(decision_id)
        consensus = await store.get_consensus(decision_id)
        if consensus is None:
            return JSONResponse(status_code=404, content={"error": "No consensus reached yet"})
        return consensus

    # ── Stats / health ───────────────────────────────────────────

    @app.get("/api/stats", response_model=DecisionStats)
    async def get_stats(store: DecisionStore = Depends(get_store)) -> DecisionStats:
        return compute_stats(await store.list_decisions())

    @app.get("/api/health")
    async def health() -> dict:
        return {
            "status": "healthy",
            "service": "dev3-api",
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app
