"""
Jarvis - Application Entry Point
=================================
FastAPI application factory.  ``create_app`` wires the collaborators,
registers the routes from ``jarvis.src.api.routes``, enables CORS and
serves the static front-end.

Lifespan
--------
Startup:
    1. Build the Gemini ``GenerationClient`` (unless injected).
    2. Build the pooled MongoDB client and ``ExchangeStore`` (unless injected).
    3. Provision the vector index (failure is logged, never fatal).
    4. Start the ``RetentionSweeper`` background task.
Shutdown:
    Stop the sweeper, close the MongoDB client if this app created it.

Run:
    python -m jarvis.src.main
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from jarvis.config.settings import Settings, settings
from jarvis.src.api.routes import router
from jarvis.src.core.chat_engine import ChatEngine
from jarvis.src.core.generation import GenerationClient, build_generation_client
from jarvis.src.core.retention import RetentionSweeper
from jarvis.src.database.exchange_store import ExchangeStore, build_mongo_client
from jarvis.src.utils.logger import configure_library_logging, get_logger

logger = get_logger(__name__)


def create_app(config: Settings = settings, store: ExchangeStore | None = None, generator: GenerationClient | None = None, sweeper: RetentionSweeper | None = None, static_dir: Path | None = None) -> FastAPI:
    """
    Build the Jarvis FastAPI application.

    Parameters
    ----------
    config
        Settings to build production collaborators from.
    store / generator / sweeper
        Optional pre-built collaborators (tests inject in-memory doubles).
    static_dir
        Directory holding ``index.html`` and other assets.  Defaults to
        ``config.STATIC_DIR``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        generation_client = generator or build_generation_client(config)

        owned_client = None
        retention_sweeper = None
        try:
            exchange_store = store
            if exchange_store is None:
                owned_client = build_mongo_client(config)
                exchange_store = ExchangeStore(owned_client, db_name=config.MONGO_DB_NAME, collection_name=config.MONGO_COLLECTION_NAME, index_name=config.VECTOR_INDEX_NAME, dimensions=config.EMBEDDING_DIMENSIONS)

            app.state.engine = ChatEngine(exchange_store, generation_client, similarity_limit=config.SIMILARITY_LIMIT, similarity_candidates=config.SIMILARITY_CANDIDATES, history_limit=config.HISTORY_LIMIT)

            try:
                await exchange_store.ensure_vector_index()
            except Exception:
                logger.exception("Error checking/creating vector index.")

            retention_sweeper = sweeper or RetentionSweeper(exchange_store)
            retention_sweeper.start()
            logger.info("Server is running on http://localhost:%d", config.PORT)

            yield
        finally:
            if retention_sweeper is not None:
                await retention_sweeper.stop()
            if owned_client is not None:
                owned_client.close()
                logger.info("MongoDB client closed.")

    resolved_static = Path(static_dir or config.STATIC_DIR)

    app = FastAPI(title="Jarvis", description="Personal AI companion with vector-retrieved conversation memory", version="1.0.0", lifespan=lifespan)
    app.state.static_dir = resolved_static
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.include_router(router)
    # Registered last so explicit routes win over static paths.
    app.mount("/", StaticFiles(directory=resolved_static), name="static")
    return app


def main() -> None:
    configure_library_logging()
    # log_config=None keeps uvicorn from replacing the handlers set above.
    uvicorn.run(create_app(), host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
