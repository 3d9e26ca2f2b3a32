"""
Reputation Read API
===================

Read-only HTTP surface over the published read models.

Endpoints:
- GET /health
- GET /api/v1/threads/{discussion_id}  -> assembled comment tree
- GET /api/v1/proofs?search=           -> reputation proof aggregates
- GET /api/v1/types                    -> type NFT registry
- GET /api/v1/profile                  -> last resolved profile

Usage:
    uvicorn reputation.api.server:app --reload
"""
from contextlib import asynccontextmanager
from typing import List, Optional
import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..contracts.base import ConfigError
from ..service import ReputationService
from .mapper import map_profile, map_proofs, map_thread, map_types

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    network: str
    explorer: str


class TypeModel(BaseModel):
    tokenId: str
    boxId: Optional[str] = None
    typeName: str
    description: str
    schemaURI: str
    isRepProof: bool
    kind: str


class TypesResponse(BaseModel):
    types: List[TypeModel]


def create_app(service: Optional[ReputationService] = None) -> FastAPI:
    """
    Build the API.

    Without an injected service one is created from configuration on
    startup and closed on shutdown.
    """
    state = {"service": service}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = state["service"] is None
        if owned:
            try:
                state["service"] = ReputationService.from_config()
            except ConfigError as e:
                logger.error("Failed to initialize reputation service: %s", e.message)
                raise
            logger.info("Reputation service initialized")
        yield
        if owned and state["service"] is not None:
            await state["service"].aclose()
            state["service"] = None

    app = FastAPI(
        title="Reputation Read API",
        version="1.0.0",
        description="Read models derived from reputation ledger boxes",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    def current() -> ReputationService:
        if state["service"] is None:
            raise HTTPException(status_code=503, detail="Service not initialized")
        return state["service"]

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        svc = current()
        return HealthResponse(
            status="online",
            network=svc.config.network.value,
            explorer=svc.config.explorer_uri,
        )

    @app.get("/api/v1/threads/{discussion_id}")
    async def get_thread(discussion_id: str, refresh: bool = False):
        svc = current()
        snapshot = svc.store.get_thread(discussion_id)
        if snapshot is None or refresh:
            snapshot = await svc.load_threads(discussion_id)
        return map_thread(snapshot)

    @app.get("/api/v1/proofs")
    async def get_proofs(search: Optional[str] = None, refresh: bool = False):
        svc = current()
        result = svc.store.proofs
        if result is None or refresh or search:
            result = await svc.load_proofs(search=search, all_owners=True)
        return map_proofs(result)

    @app.get("/api/v1/types", response_model=TypesResponse)
    async def get_types(refresh: bool = False):
        svc = current()
        registry = svc.store.types
        if registry is None or refresh:
            registry = await svc.load_types()
        return map_types(registry)

    @app.get("/api/v1/profile")
    async def get_profile(refresh: bool = False):
        svc = current()
        if refresh:
            await svc.load_profile()
        return map_profile(svc.profiles.repository.get())

    return app


app = create_app()
