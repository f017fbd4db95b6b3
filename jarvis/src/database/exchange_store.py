"""
Jarvis - ExchangeStore
=======================
Async gateway over the MongoDB collection that holds every chat
exchange.  It is the only module that speaks to MongoDB.

Collection schema (``chats``)::

    {
        "user": str,
        "assistant": str,
        "embedding": [float, ...],
        "timestamp": datetime (UTC)
    }

Design decisions:
  • **Dependency Injection**: the ``AsyncIOMotorClient`` is injected,
    never created here, so tests can hand in an in-memory double.
  • **Pooled connections**: the motor client owns the connection
    pool; every public method borrows it through ``_operation()``,
    which scopes the call and turns driver failures into
    ``StorageError``.
  • **Vector search is delegated**: ranking comes from the Atlas
    ``$vectorSearch`` stage; this class imposes no ordering of its own.

Usage:
    client = build_mongo_client(settings)
    store = ExchangeStore(client)
    await store.ensure_vector_index()
    similar = await store.query_by_similarity(vector, k=50, num_candidates=10000)
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import motor.motor_asyncio
from pymongo import DESCENDING
from pymongo.errors import PyMongoError
from pymongo.operations import SearchIndexModel

from jarvis.config.settings import Settings, settings
from jarvis.src.core.errors import StorageError
from jarvis.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
ExchangeRecord = dict[str, str | list[float] | datetime]
ScoredExchange = dict[str, str | float | datetime]


def build_mongo_client(config: Settings = settings) -> motor.motor_asyncio.AsyncIOMotorClient:
    """Create the pooled async MongoDB client used for the process lifetime."""
    client = motor.motor_asyncio.AsyncIOMotorClient(config.MONGO_URI.get_secret_value(), tz_aware=True, maxPoolSize=config.MONGO_MAX_POOL_SIZE)
    logger.info("[STORE] MongoDB async client created (maxPoolSize=%d).", config.MONGO_MAX_POOL_SIZE)
    return client


class ExchangeStore:
    """
    Append-only store of chat exchanges with vector similarity lookup.

    Parameters
    ----------
    client
        An ``AsyncIOMotorClient`` (or anything indexable as
        ``client[db][collection]`` with the same collection API).
    db_name
        Override the database name.  Defaults to ``settings.MONGO_DB_NAME``.
    collection_name
        Override the collection.  Defaults to ``settings.MONGO_COLLECTION_NAME``.
    index_name
        Name of the vector search index.  Defaults to ``settings.VECTOR_INDEX_NAME``.
    dimensions
        Embedding size declared in the index.  Defaults to ``settings.EMBEDDING_DIMENSIONS``.
    """

    __slots__ = ("_collection", "_index_name", "_dimensions")

    def __init__(self, client: object, db_name: str | None = None, collection_name: str | None = None, index_name: str | None = None, dimensions: int | None = None) -> None:
        db = client[db_name or settings.MONGO_DB_NAME]  # type: ignore[index]
        self._collection = db[collection_name or settings.MONGO_COLLECTION_NAME]
        self._index_name: str = index_name or settings.VECTOR_INDEX_NAME
        self._dimensions: int = dimensions or settings.EMBEDDING_DIMENSIONS

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _operation(self, action: str) -> AsyncIterator[object]:
        """Scope one store call; driver errors leave as ``StorageError``."""
        try:
            yield self._collection
        except PyMongoError as exc:
            logger.error("[STORE] %s failed: %s", action, exc)
            raise StorageError(f"{action} failed") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ensure_vector_index(self) -> bool:
        """
        Provision the ``vectorSearch`` index over ``embedding`` if missing.

        Returns
        -------
        bool
            ``True`` if the index was created, ``False`` if it already existed.
        """
        async with self._operation("ensure_vector_index") as collection:
            existing = await collection.list_search_indexes(self._index_name).to_list(length=None)
            if existing:
                logger.info("[STORE] Vector index '%s' already exists on embedding field.", self._index_name)
                return False

            definition = {"fields": [{"type": "vector", "path": "embedding", "numDimensions": self._dimensions, "similarity": "cosine"}]}
            await collection.create_search_index(SearchIndexModel(definition=definition, name=self._index_name, type="vectorSearch"))

        logger.info("[STORE] Vector index '%s' created on embedding field (%d dims).", self._index_name, self._dimensions)
        return True


    async def insert_exchange(self, user_message: str, assistant_reply: str, embedding: list[float], timestamp: datetime) -> str:
        """Append one exchange.  Duplicates are allowed.  Returns the new id."""
        document: ExchangeRecord = {"user": user_message, "assistant": assistant_reply, "embedding": embedding, "timestamp": timestamp}
        async with self._operation("insert_exchange") as collection:
            result = await collection.insert_one(document)
        logger.debug("[STORE] Exchange %s saved.", result.inserted_id)
        return str(result.inserted_id)


    async def query_by_similarity(self, query_vector: list[float], k: int, num_candidates: int) -> list[ScoredExchange]:
        """
        Return the *k* exchanges closest to *query_vector*.

        Each result carries ``user``, ``assistant``, ``timestamp`` and the
        ``score`` reported by ``$vectorSearch``, in the store's order.
        """
        pipeline = [
            {"$vectorSearch": {"index": self._index_name, "path": "embedding", "queryVector": query_vector, "numCandidates": num_candidates, "limit": k}},
            {"$project": {"_id": 0, "user": 1, "assistant": 1, "timestamp": 1, "score": {"$meta": "vectorSearchScore"}}},
        ]
        async with self._operation("query_by_similarity") as collection:
            results: list[ScoredExchange] = await collection.aggregate(pipeline).to_list(length=None)
        logger.info("[STORE] Similar exchanges found: %d", len(results))
        return results


    async def query_recent_exchanges(self, limit: int) -> list[ExchangeRecord]:
        """Return the *limit* most recent exchanges, oldest first."""
        async with self._operation("query_recent_exchanges") as collection:
            cursor = collection.find({}, {"_id": 0}).sort("timestamp", DESCENDING).limit(limit)
            newest_first: list[ExchangeRecord] = await cursor.to_list(length=limit)
        newest_first.reverse()
        return newest_first


    async def delete_older_than(self, cutoff: datetime) -> int:
        """Remove every exchange with ``timestamp < cutoff``.  Returns the count."""
        async with self._operation("delete_older_than") as collection:
            result = await collection.delete_many({"timestamp": {"$lt": cutoff}})
        return result.deleted_count


    async def count_exchanges(self) -> int:
        """Return the total number of stored exchanges."""
        async with self._operation("count_exchanges") as collection:
            return await collection.count_documents({})


    def __repr__(self) -> str:
        return f"ExchangeStore(collection='{self._collection.name}', index='{self._index_name}')"
