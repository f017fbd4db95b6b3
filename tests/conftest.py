"""
Shared fixtures and in-memory doubles.

Required settings are seeded into the environment *before* any
``jarvis`` module is imported, because ``jarvis.config.settings``
builds its singleton at import time.
"""

import math
import os
from datetime import datetime, timezone
from types import SimpleNamespace

os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("ENV", "prod")

import pytest  # noqa: E402

from jarvis.src.core.errors import StorageError, UpstreamError  # noqa: E402


# ══════════════════════════════════════════════════════════════════════
#  MOTOR-LIKE COLLECTION
# ══════════════════════════════════════════════════════════════════════


class FakeCursor:
    def __init__(self, docs):
        self._docs = list(docs)

    def sort(self, key, direction):
        self._docs.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        return self._docs if length is None else self._docs[:length]


def _cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def _project(doc, projection):
    if projection == {"_id": 0}:
        return {k: v for k, v in doc.items() if k != "_id"}
    return {k: doc[k] for k, v in projection.items() if v == 1 and k in doc}


class FakeCollection:
    """Implements just the motor collection calls ``ExchangeStore`` makes."""

    def __init__(self, name="chats"):
        self.name = name
        self.docs = []
        self.search_indexes = []
        self.last_pipeline = None
        self._next_id = 0
        self.fail_with = None

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def insert_one(self, document):
        self._maybe_fail()
        self._next_id += 1
        document["_id"] = self._next_id
        self.docs.append(dict(document))
        return SimpleNamespace(inserted_id=self._next_id)

    def find(self, filter, projection):
        self._maybe_fail()
        return FakeCursor(_project(d, projection) for d in self.docs)

    def aggregate(self, pipeline):
        self._maybe_fail()
        self.last_pipeline = pipeline
        search = pipeline[0]["$vectorSearch"]
        projection = pipeline[1]["$project"]
        scored = sorted(((_cosine(search["queryVector"], d["embedding"]), d) for d in self.docs), key=lambda pair: pair[0], reverse=True)
        results = []
        for score, doc in scored[: search["limit"]]:
            row = _project(doc, {k: v for k, v in projection.items() if v == 1})
            row["score"] = score
            results.append(row)
        return FakeCursor(results)

    async def delete_many(self, filter):
        self._maybe_fail()
        cutoff = filter["timestamp"]["$lt"]
        kept = [d for d in self.docs if not d["timestamp"] < cutoff]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)

    async def count_documents(self, filter):
        self._maybe_fail()
        return len(self.docs)

    def list_search_indexes(self, name=None):
        self._maybe_fail()
        return FakeCursor(ix for ix in self.search_indexes if name is None or ix["name"] == name)

    async def create_search_index(self, model):
        self._maybe_fail()
        self.search_indexes.append(model.document)
        return model.document["name"]


@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture
def fake_client(fake_collection):
    return {"chatbot_db": {"chats": fake_collection}}


# ══════════════════════════════════════════════════════════════════════
#  ENGINE-LEVEL DOUBLES
# ══════════════════════════════════════════════════════════════════════


class InMemoryExchangeStore:
    """Drop-in for ``ExchangeStore`` keeping exchanges in a list."""

    def __init__(self):
        self.exchanges = []
        self.similarity_calls = []
        self.index_checks = 0
        self.fail_insert = False
        self.fail_similarity = False

    async def ensure_vector_index(self):
        self.index_checks += 1
        return self.index_checks == 1

    async def insert_exchange(self, user_message, assistant_reply, embedding, timestamp):
        if self.fail_insert:
            raise StorageError("insert_exchange failed")
        self.exchanges.append({"user": user_message, "assistant": assistant_reply, "embedding": embedding, "timestamp": timestamp})
        return str(len(self.exchanges))

    async def query_by_similarity(self, query_vector, k, num_candidates):
        if self.fail_similarity:
            raise StorageError("query_by_similarity failed")
        self.similarity_calls.append((query_vector, k, num_candidates))
        return [{"user": ex["user"], "assistant": ex["assistant"], "timestamp": ex["timestamp"], "score": 1.0} for ex in self.exchanges[:k]]

    async def query_recent_exchanges(self, limit):
        newest_first = sorted(self.exchanges, key=lambda ex: ex["timestamp"], reverse=True)[:limit]
        return list(reversed(newest_first))

    async def delete_older_than(self, cutoff):
        before = len(self.exchanges)
        self.exchanges = [ex for ex in self.exchanges if ex["timestamp"] >= cutoff]
        return before - len(self.exchanges)

    async def count_exchanges(self):
        return len(self.exchanges)


class StubGenerator:
    """Drop-in for ``GenerationClient`` with scripted outputs."""

    def __init__(self, reply="Hi there!", vector=None):
        self.reply = reply
        self.vector = vector or [0.1, 0.2, 0.3]
        self.fail_embed = False
        self.fail_complete = False
        self.completions = []

    async def embed(self, text):
        if self.fail_embed:
            raise UpstreamError("embedding down")
        return list(self.vector)

    async def complete(self, system_prompt, conversation_context, user_message):
        if self.fail_complete:
            raise UpstreamError("completion down")
        self.completions.append((system_prompt, conversation_context, user_message))
        return self.reply


@pytest.fixture
def memory_store():
    return InMemoryExchangeStore()


@pytest.fixture
def stub_generator():
    return StubGenerator()


@pytest.fixture
def utc_now():
    return datetime.now(timezone.utc)
