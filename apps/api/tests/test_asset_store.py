import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import asset_dict
from notra.db.session import SessionLocal, init_db
from notra.schemas.learning_asset import ContentType, GenerationContext, LearningAsset
from notra.services.asset_store import InMemoryAssetStore, SqlAlchemyAssetStore, fingerprint


def _asset(**overrides) -> LearningAsset:
    return LearningAsset.model_validate(asset_dict(**overrides))


def test_fingerprint_is_deterministic_sha256():
    a = fingerprint("F = ma")
    assert a == fingerprint("F = ma")
    assert len(a) == 64
    assert a != fingerprint("F = mb")


def test_memory_store_lookup_miss_then_hit():
    store = InMemoryAssetStore()
    key = fingerprint("some text")
    assert store.lookup(key) is None

    saved = store.store(key, _asset(), GenerationContext())
    hit = store.lookup(key)
    assert hit is not None
    assert hit.session_id == saved.session_id
    assert hit.asset == saved.asset


def test_memory_store_first_writer_wins():
    store = InMemoryAssetStore()
    key = fingerprint("same text")
    first = store.store(key, _asset(title="First"), GenerationContext())
    second = store.store(key, _asset(title="Second"), GenerationContext(content_type="audio"))
    assert second.session_id == first.session_id
    assert store.lookup(key).title == "First"


def test_memory_store_concurrent_writes_agree():
    store = InMemoryAssetStore()
    key = fingerprint("raced text")

    def _write(i):
        return store.store(key, _asset(title=f"Writer {i}"), GenerationContext()).session_id

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = set(pool.map(_write, range(32)))
    assert len(ids) == 1


def test_memory_store_session_operations():
    store = InMemoryAssetStore()
    a = store.store(fingerprint("a"), _asset(title="A"), GenerationContext())
    b = store.store(fingerprint("b"), _asset(title="B"), GenerationContext())

    assert store.get_session(a.session_id).title == "A"
    recent = store.list_recent(10)
    assert {s.session_id for s in recent} == {a.session_id, b.session_id}
    assert len(store.list_recent(1)) == 1
    assert store.delete_session(a.session_id) is True
    assert store.delete_session(a.session_id) is False
    assert store.lookup(fingerprint("a")) is None


@pytest.fixture
def sql_store():
    init_db()
    return SqlAlchemyAssetStore(SessionLocal)


def test_sql_store_roundtrip(sql_store):
    key = fingerprint(f"sql {uuid.uuid4()}")
    ctx = GenerationContext(content_type=ContentType.video, metadata={"platform": "YouTube"})
    saved = sql_store.store(key, _asset(), ctx)

    hit = sql_store.lookup(key)
    assert hit is not None
    assert hit.session_id == saved.session_id
    assert hit.content_type == ContentType.video
    assert hit.asset == _asset()
    assert hit.asset.quizzes[0].correct_index == 1


def test_sql_store_duplicate_insert_returns_existing_row(sql_store):
    key = fingerprint(f"dup {uuid.uuid4()}")
    first = sql_store.store(key, _asset(title="First"), GenerationContext())
    second = sql_store.store(key, _asset(title="Second"), GenerationContext())
    assert second.session_id == first.session_id
    assert sql_store.lookup(key).title == "First"


def test_sql_store_session_operations(sql_store):
    key = fingerprint(f"ops {uuid.uuid4()}")
    saved = sql_store.store(key, _asset(title="Ops"), GenerationContext())

    assert sql_store.get_session(saved.session_id).title == "Ops"
    assert saved.session_id in [s.session_id for s in sql_store.list_recent(100)]

    assert sql_store.delete_session(saved.session_id) is True
    assert sql_store.get_session(saved.session_id) is None
    assert sql_store.lookup(key) is None
    assert sql_store.delete_session(saved.session_id) is False


def test_sql_store_stamps_created_at(sql_store):
    saved = sql_store.store(fingerprint(f"ts {uuid.uuid4()}"), _asset(), GenerationContext())
    assert saved.created_at is not None
    assert sql_store.get_session(saved.session_id).created_at == saved.created_at
