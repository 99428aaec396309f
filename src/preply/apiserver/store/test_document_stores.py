import pytest

from preply.apiserver.store.document_store import DocumentQuery, FilterOp, StoreError
from preply.apiserver.store.memory_store import MemoryDocumentStore
from preply.apiserver.store.sql_store import SqlDocumentStore


@pytest.fixture(name="store", params=["memory", "sqlite"])
async def fixture_store(request, tmp_path):
    """Yields an empty store of each implementation."""
    if request.param == "memory":
        store = MemoryDocumentStore()
    else:
        store = SqlDocumentStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    await store.prepare()
    try:
        yield store
    finally:
        await store.close()


async def seed(store, collection, docs: dict[str, dict]):
    for doc_id, data in docs.items():
        await store.set(collection, doc_id, data)


async def test_get_missing(store):
    assert await store.get("users", "nobody") is None


async def test_set_then_get(store):
    await store.set("users", "u1", {"name": "Ada", "email": "a@x.com"})
    doc = await store.get("users", "u1")
    assert doc.id == "u1"
    assert doc.data == {"name": "Ada", "email": "a@x.com"}
    # Same id in a different collection is a different document.
    assert await store.get("user", "u1") is None


async def test_set_replaces(store):
    await store.set("users", "u1", {"name": "Ada", "email": "a@x.com"})
    await store.set("users", "u1", {"name": "Ada L.", "email": "a@x.com"})
    assert (await store.get("users", "u1")).data["name"] == "Ada L."


async def test_query_filters_and_order(store):
    await seed(
        store,
        "interviews",
        {
            "i1": {"userId": "u1", "finalized": True, "createdAt": "2025-01-01T00:00:00Z"},
            "i2": {"userId": "u2", "finalized": True, "createdAt": "2025-01-03T00:00:00Z"},
            "i3": {"userId": "u2", "finalized": False, "createdAt": "2025-01-02T00:00:00Z"},
            "i4": {"userId": "u3", "finalized": True, "createdAt": "2025-01-04T00:00:00Z"},
            "i5": {"userId": "u3", "finalized": True},
        },
    )
    query = (
        DocumentQuery("interviews")
        .where("finalized", FilterOp.EQ, True)
        .where("userId", "!=", "u1")
        .order_by("createdAt", descending=True)
    )
    assert [doc.id for doc in await store.query(query)] == ["i4", "i2"]
    assert [doc.id for doc in await store.query(query.limit(1))] == ["i4"]

    ascending = DocumentQuery("interviews").where("userId", "==", "u2").order_by("createdAt")
    assert [doc.id for doc in await store.query(ascending)] == ["i3", "i2"]


async def test_query_ne_excludes_missing_field(store):
    await seed(store, "interviews", {"i1": {"finalized": True}, "i2": {"userId": "u2", "finalized": True}})
    query = DocumentQuery("interviews").where("userId", FilterOp.NE, "u1")
    assert [doc.id for doc in await store.query(query)] == ["i2"]


async def test_query_range_filters(store):
    await seed(store, "scores", {"a": {"score": 1}, "b": {"score": 5}, "c": {"score": 10}})
    query = DocumentQuery("scores").where("score", ">=", 5).where("score", "<", 10)
    assert [doc.id for doc in await store.query(query)] == ["b"]


async def test_query_empty_collection(store):
    assert await store.query(DocumentQuery("interviews").order_by("createdAt")) == []


async def test_ping(store):
    await store.ping()


def test_query_limit_must_be_positive():
    with pytest.raises(ValueError):
        DocumentQuery("interviews").limit(0)


def test_query_rejects_unsupported_values():
    with pytest.raises(TypeError):
        DocumentQuery("interviews").where("createdAt", "==", None)


def test_query_builder_is_immutable():
    base = DocumentQuery("interviews")
    filtered = base.where("userId", "==", "u1")
    assert base.filters == ()
    assert len(filtered.filters) == 1


async def test_sql_store_wraps_errors(tmp_path):
    store = SqlDocumentStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    try:
        # Tables have not been created yet.
        with pytest.raises(StoreError):
            await store.get("users", "u1")
    finally:
        await store.close()
