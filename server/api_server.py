"""FastAPI application entry point for the plan retrieval service."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.models.responses import HealthResponse
from server.routers.DocumentRouter import router as document_router
from server.routers.QueryRouter import router as query_router
from services.ingestion.IngestionService import IngestionService
from services.retrieval.HybridRetriever import HybridRetriever
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.exceptions import ConfigurationError, IngestionFailed, ProviderError, StoreUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [embed_client, rag_client]:
        await client.boot()
    logging.info("All clients booted successfully.")

    app.state.embed_client = embed_client
    app.state.rag_client = rag_client

    app.state.ingestion_service = IngestionService(
        helper_config=app.state.helper_config,
        embed_client=embed_client,
        rag_client=rag_client,
    )
    app.state.retriever = HybridRetriever(
        helper_config=app.state.helper_config,
        embed_client=embed_client,
        rag_client=rag_client,
    )

    await check_connections(app)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [embed_client, rag_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="plan_retrieval",
    description=(
        "Chunking, embedding and hybrid retrieval for multi-year plan documents. "
        "Extracted document text is ingested via POST /documents/{id}/embeddings, "
        "and plan content for a date or question is served via the search endpoints."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(document_router)
app.include_router(query_router)


##########################################
############ ERROR HANDLING ##############
##########################################

@app.exception_handler(ConfigurationError)
async def handle_configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logging.error("Configuration error: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(ProviderError)
async def handle_provider_error(request: Request, exc: ProviderError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc), "upstream_status": exc.status_code})


@app.exception_handler(StoreUnavailable)
async def handle_store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(IngestionFailed)
async def handle_ingestion_failed(request: Request, exc: IngestionFailed) -> JSONResponse:
    report = exc.report.model_dump() if exc.report is not None else None
    return JSONResponse(status_code=422, content={"detail": str(exc), "report": report})


@app.exception_handler(asyncio.TimeoutError)
async def handle_timeout(request: Request, exc: asyncio.TimeoutError) -> JSONResponse:
    logging.error("Request to %s timed out.", request.url.path)
    return JSONResponse(status_code=504, content={"detail": "Operation timed out."})


@app.get("/health", tags=["health"])
async def health(request: Request) -> HealthResponse:
    """Report whether the vector store is reachable. Does not require an API key."""
    rag_client = request.app.state.rag_client
    embed_client = request.app.state.embed_client
    try:
        await rag_client.do_healthcheck()
        status = "ok"
    except Exception as exc:
        logging.warning("Health check of RAG client '%s' failed: %s", rag_client.get_engine_name(), exc)
        status = "degraded"
    return HealthResponse(
        status=status,
        embed_engine=embed_client.get_engine_name(),
        rag_engine=rag_client.get_engine_name(),
    )


async def check_connections(app: FastAPI) -> None:
    """Check connectivity to the configured backends on startup.

    An embedding provider without credentials is non-fatal (ingestion and
    search will fail with 503, but the server stays up). A store failure is
    fatal, nothing can be served without it.

    Raises:
        Exception: If the vector store is not reachable.
    """
    try:
        app.state.embed_client.ensure_available()
    except ConfigurationError as exc:
        logging.warning("Embedding provider is not usable: %s", exc)

    await app.state.rag_client.do_healthcheck()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting plan_retrieval API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
