"""文档存储单元测试（内存实现与 SQLite 实现共用同一组用例）。"""

import pytest

from travelmatch.services.store_service import (
    ArrayRemove,
    ArrayUnion,
    DocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    Predicate,
    RemoteOperationError,
    SQLiteDocumentStore,
    apply_update,
)


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryDocumentStore()
    return SQLiteDocumentStore(tmp_path / "store.db")


class TestApplyUpdate:
    """测试字段合并与数组变换。"""

    def test_array_union_skips_existing(self):
        merged = apply_update({"tags": ["a", "b"]}, {"tags": ArrayUnion(["b", "c"])})

        assert merged["tags"] == ["a", "b", "c"]

    def test_array_union_on_missing_field(self):
        assert apply_update({}, {"tags": ArrayUnion(["a"])}) == {"tags": ["a"]}

    def test_array_remove(self):
        merged = apply_update({"tags": ["a", "b", "a"]}, {"tags": ArrayRemove(["a"])})

        assert merged["tags"] == ["b"]

    def test_original_not_mutated(self):
        original = {"tags": ["a"]}
        apply_update(original, {"tags": ArrayUnion(["b"])})

        assert original == {"tags": ["a"]}


class TestPredicate:
    """测试查询谓词。"""

    def test_missing_field_never_matches(self):
        assert Predicate("userId", "!=", "x").matches({}) is False

    def test_operators(self):
        doc = {"a": 1, "tags": ["x"]}

        assert Predicate("a", "==", 1).matches(doc)
        assert Predicate("a", "!=", 2).matches(doc)
        assert Predicate("tags", "array_contains", "x").matches(doc)
        assert Predicate("a", "in", [1, 2]).matches(doc)

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            Predicate("a", ">", 1)


class TestDocumentStore:
    """测试两种存储实现的公共行为。"""

    def test_get_missing_returns_none(self, any_store):
        assert any_store.get_document("users", "nobody") is None

    def test_set_and_get_includes_id(self, any_store):
        any_store.set_document("users", "u1", {"displayName": "Mia"})

        assert any_store.get_document("users", "u1") == {"displayName": "Mia", "id": "u1"}

    def test_set_replaces(self, any_store):
        any_store.set_document("users", "u1", {"a": 1, "b": 2})
        any_store.set_document("users", "u1", {"a": 3})

        assert any_store.get_document("users", "u1") == {"a": 3, "id": "u1"}

    def test_update_merges(self, any_store):
        any_store.set_document("users", "u1", {"a": 1, "likedUsers": ["x"]})
        any_store.update_document("users", "u1", {"b": 2, "likedUsers": ArrayUnion(["y", "x"])})

        doc = any_store.get_document("users", "u1")
        assert doc["a"] == 1
        assert doc["b"] == 2
        assert doc["likedUsers"] == ["x", "y"]

    def test_update_missing_raises(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.update_document("users", "nobody", {"a": 1})

    def test_query_preserves_insertion_order(self, any_store):
        for doc_id in ("c", "a", "b"):
            any_store.set_document("users", doc_id, {"userId": doc_id, "ok": True})
        any_store.set_document("users", "c", {"userId": "c", "ok": True})

        docs = any_store.query_documents("users", Predicate("ok", "==", True))

        assert [d["id"] for d in docs] == ["c", "a", "b"]

    def test_query_order_and_limit(self, any_store):
        for doc_id, rating in (("x", 3.0), ("y", 4.5), ("z", 4.0), ("w", None)):
            any_store.set_document("destinations", doc_id, {"rating": rating})

        docs = any_store.query_documents("destinations", order_by="rating", descending=True, limit=2)

        assert [d["id"] for d in docs] == ["y", "z"]

    def test_add_document_generates_id(self, any_store):
        doc_id = any_store.add_document("destinations", {"name": "Bali"})

        assert any_store.get_document("destinations", doc_id)["name"] == "Bali"

    def test_failed_transaction_writes_nothing(self, any_store):
        any_store.set_document("users", "u1", {"a": 1})

        def broken(txn):
            txn.update("users", "u1", {"a": 2})
            txn.update("users", "missing", {"a": 2})

        with pytest.raises(NotFoundError):
            any_store.run_transaction(broken)

        assert any_store.get_document("users", "u1")["a"] == 1

    def test_transaction_reads_own_writes(self, any_store):
        def write_then_read(txn):
            txn.set("users", "u1", {"a": 1})
            txn.update("users", "u1", {"b": 2})
            return txn.get("users", "u1")

        assert any_store.run_transaction(write_then_read) == {"a": 1, "b": 2, "id": "u1"}


class TestSQLiteErrors:
    """测试 SQLite 错误转换。"""

    def test_unopenable_database_raises_remote_error(self, tmp_path):
        directory = tmp_path / "db_dir"
        directory.mkdir()

        with pytest.raises(RemoteOperationError):
            SQLiteDocumentStore(directory)

    def test_in_memory_database_rejected(self):
        """每次调用都新开连接，:memory: 数据库会随连接一起消失。"""
        with pytest.raises(ValueError):
            SQLiteDocumentStore(":memory:")

    def test_file_store_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "store.db"
        SQLiteDocumentStore(path).set_document("users", "alice", {"displayName": "Alice"})

        assert SQLiteDocumentStore(path).get_document("users", "alice") == {"displayName": "Alice", "id": "alice"}


class TestDocumentStoreFacade:
    """测试全局 Store 单例。"""

    def test_set_instance(self):
        store = InMemoryDocumentStore()
        DocumentStore.set_instance(store)

        assert DocumentStore.get_instance() is store

    def test_reset(self):
        DocumentStore.set_instance(InMemoryDocumentStore())
        DocumentStore.reset()

        assert DocumentStore._instance is None
