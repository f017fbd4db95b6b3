from datetime import timedelta

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from jarvis.src.core.errors import StorageError
from jarvis.src.database.exchange_store import ExchangeStore


@pytest.fixture
def store(fake_client):
    return ExchangeStore(fake_client, dimensions=3)


async def test_insert_exchange_persists_all_fields(store, fake_collection, utc_now):
    inserted_id = await store.insert_exchange("Hello", "Hi!", [0.1, 0.2, 0.3], utc_now)

    assert inserted_id == "1"
    assert len(fake_collection.docs) == 1
    doc = fake_collection.docs[0]
    assert doc["user"] == "Hello"
    assert doc["assistant"] == "Hi!"
    assert doc["embedding"] == [0.1, 0.2, 0.3]
    assert doc["timestamp"] == utc_now


async def test_insert_allows_duplicates(store, fake_collection, utc_now):
    await store.insert_exchange("same", "same", [1.0, 0.0, 0.0], utc_now)
    await store.insert_exchange("same", "same", [1.0, 0.0, 0.0], utc_now)

    assert await store.count_exchanges() == 2


async def test_recent_exchanges_are_oldest_first_and_limited(store, utc_now):
    for i in range(60):
        await store.insert_exchange(f"q{i}", f"a{i}", [1.0, 0.0, 0.0], utc_now - timedelta(minutes=60 - i))

    recent = await store.query_recent_exchanges(50)

    assert len(recent) == 50
    assert [ex["user"] for ex in recent] == [f"q{i}" for i in range(10, 60)]
    timestamps = [ex["timestamp"] for ex in recent]
    assert timestamps == sorted(timestamps)
    assert all("_id" not in ex for ex in recent)


async def test_similarity_query_uses_vector_search_pipeline(store, fake_collection, utc_now):
    await store.insert_exchange("cats", "meow", [1.0, 0.0, 0.0], utc_now)
    await store.insert_exchange("dogs", "woof", [0.0, 1.0, 0.0], utc_now)

    results = await store.query_by_similarity([0.9, 0.1, 0.0], k=50, num_candidates=10000)

    stage = fake_collection.last_pipeline[0]["$vectorSearch"]
    assert stage["index"] == "vector_index"
    assert stage["path"] == "embedding"
    assert stage["numCandidates"] == 10000
    assert stage["limit"] == 50
    assert fake_collection.last_pipeline[1]["$project"]["score"] == {"$meta": "vectorSearchScore"}
    assert [r["user"] for r in results] == ["cats", "dogs"]
    assert all("score" in r and "embedding" not in r for r in results)


async def test_delete_older_than_keeps_newer_exchanges(store, fake_collection, utc_now):
    cutoff = utc_now - timedelta(days=7)
    await store.insert_exchange("old", "x", [1.0, 0.0, 0.0], utc_now - timedelta(days=8))
    await store.insert_exchange("edge", "y", [1.0, 0.0, 0.0], cutoff)
    await store.insert_exchange("new", "z", [1.0, 0.0, 0.0], utc_now - timedelta(days=1))

    deleted = await store.delete_older_than(cutoff)

    assert deleted == 1
    assert [d["user"] for d in fake_collection.docs] == ["edge", "new"]
    assert all(d["timestamp"] >= cutoff for d in fake_collection.docs)


async def test_ensure_vector_index_is_idempotent(store, fake_collection):
    assert await store.ensure_vector_index() is True
    assert await store.ensure_vector_index() is False

    assert len(fake_collection.search_indexes) == 1
    index = fake_collection.search_indexes[0]
    assert index["name"] == "vector_index"
    assert index["type"] == "vectorSearch"
    assert index["definition"]["fields"][0] == {"type": "vector", "path": "embedding", "numDimensions": 3, "similarity": "cosine"}


async def test_driver_errors_become_storage_errors(store, fake_collection, utc_now):
    fake_collection.fail_with = ServerSelectionTimeoutError("no servers")

    with pytest.raises(StorageError):
        await store.insert_exchange("Hello", "Hi", [1.0, 0.0, 0.0], utc_now)
    with pytest.raises(StorageError):
        await store.query_recent_exchanges(50)
    with pytest.raises(StorageError):
        await store.delete_older_than(utc_now)
    with pytest.raises(StorageError):
        await store.query_by_similarity([1.0, 0.0, 0.0], k=50, num_candidates=10000)
    with pytest.raises(StorageError):
        await store.ensure_vector_index()
