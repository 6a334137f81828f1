"""Store Service - Document store abstraction.

This module provides a small document-store interface (collections of JSON-like
documents addressed by id) with consistent error handling, so the matching logic
never depends on a specific backend.

Interface Contract:
- get_document(collection, doc_id) -> dict | None (the dict carries its "id")
- set_document / update_document / add_document / query_documents
- run_transaction(fn) runs fn(transaction) as one serialisable read-modify-write
- ArrayUnion / ArrayRemove give set-like updates of list fields
- Backend failures raise RemoteOperationError, missing documents NotFoundError
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Iterable, TypeVar

from config import DATABASE_FILE, STORE_BACKEND

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreServiceError(Exception):
    """Base class for document store failures."""
    pass


class NotFoundError(StoreServiceError):
    """Raised when a referenced document does not exist."""
    pass


class RemoteOperationError(StoreServiceError):
    """Raised when the backend fails to read or write."""
    pass


class ValidationError(Exception):
    """Raised when an operation receives malformed input."""
    pass


# Collection names
USERS = "users"
MATCHES = "matches"


# ============================================================================
# Field transforms and query predicates
# ============================================================================

class ArrayUnion:
    """Add values to a list field, skipping ones already present."""

    def __init__(self, values: Iterable[Any]):
        self.values = list(values)

    def __repr__(self) -> str:
        return f"ArrayUnion({self.values!r})"


class ArrayRemove:
    """Remove every occurrence of values from a list field."""

    def __init__(self, values: Iterable[Any]):
        self.values = list(values)

    def __repr__(self) -> str:
        return f"ArrayRemove({self.values!r})"


_MISSING = object()


@dataclass
class Predicate:
    """A single field filter. A document lacking the field never matches."""
    field: str
    op: str
    value: Any

    OPERATORS = ("==", "!=", "array_contains", "in")

    def __post_init__(self):
        if self.op not in self.OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")

    def matches(self, document: dict[str, Any]) -> bool:
        actual = document.get(self.field, _MISSING)
        if actual is _MISSING:
            return False
        if self.op == "==":
            return actual == self.value
        if self.op == "!=":
            return actual != self.value
        if self.op == "array_contains":
            return isinstance(actual, list) and self.value in actual
        return actual in self.value


def apply_update(data: dict[str, Any], partial: dict[str, Any]) -> dict[str, Any]:
    """Merge partial fields into a copy of data, resolving array transforms."""
    merged = copy.deepcopy(data)
    for key, value in partial.items():
        if isinstance(value, ArrayUnion):
            current = list(merged.get(key) or [])
            for item in value.values:
                if item not in current:
                    current.append(item)
            merged[key] = current
        elif isinstance(value, ArrayRemove):
            merged[key] = [item for item in (merged.get(key) or []) if item not in value.values]
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _resolve_new(fields: dict[str, Any]) -> dict[str, Any]:
    """Transforms on a fresh document behave as if applied to an empty one."""
    return apply_update({}, fields)


def select_documents(
    documents: Iterable[dict[str, Any]],
    predicates: Iterable[Predicate] = (),
    *,
    order_by: str | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Filter, order and cap documents. Ordering is stable on ties."""
    predicates = list(predicates)
    selected = [doc for doc in documents if all(p.matches(doc) for p in predicates)]
    if order_by:
        selected = [doc for doc in selected if doc.get(order_by) is not None]
        selected.sort(key=lambda doc: doc[order_by], reverse=descending)
    if limit is not None:
        selected = selected[:limit]
    return selected


def _with_id(doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
    document = copy.deepcopy(data)
    document["id"] = doc_id
    return document


# ============================================================================
# Transactions
# ============================================================================

class Transaction:
    """Buffered read-modify-write unit.

    Reads see the transaction's own pending writes. Nothing reaches the store
    until the owning backend commits, so a failure inside the callable leaves
    every document untouched.
    """

    def __init__(self, reader: Callable[[str, str], dict[str, Any] | None]):
        self._reader = reader
        self._pending: dict[tuple[str, str], dict[str, Any]] = {}

    def _current(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        key = (collection, doc_id)
        if key in self._pending:
            return self._pending[key]
        return self._reader(collection, doc_id)

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._current(collection, doc_id)
        if data is None:
            return None
        return _with_id(doc_id, data)

    def set(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self._pending[(collection, doc_id)] = _resolve_new(fields)

    def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        data = self._current(collection, doc_id)
        if data is None:
            raise NotFoundError(f"No document {collection}/{doc_id}")
        self._pending[(collection, doc_id)] = apply_update(data, partial)

    @property
    def writes(self) -> dict[tuple[str, str], dict[str, Any]]:
        return self._pending


# ============================================================================
# Backends
# ============================================================================

class BaseDocumentStore(ABC):
    """Abstract base class for document stores."""

    @abstractmethod
    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document.

        Returns:
            dict: Document fields plus "id", or None if it does not exist

        Raises:
            RemoteOperationError: If the backend fails
        """
        pass

    @abstractmethod
    def set_document(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Create or replace a document."""
        pass

    @abstractmethod
    def query_documents(
        self,
        collection: str,
        *predicates: Predicate,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching documents in store order unless order_by is given."""
        pass

    @abstractmethod
    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """Run fn atomically and return its result.

        Raises:
            RemoteOperationError: If the backend fails; no write is applied
        """
        pass

    def update_document(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        """Merge fields into an existing document.

        Raises:
            NotFoundError: If the document does not exist
        """
        self.run_transaction(lambda txn: txn.update(collection, doc_id, partial))

    def add_document(self, collection: str, fields: dict[str, Any]) -> str:
        """Create a document under a generated id and return the id."""
        doc_id = uuid.uuid4().hex
        self.set_document(collection, doc_id, fields)
        return doc_id


class InMemoryDocumentStore(BaseDocumentStore):
    """Dict-backed store. A single re-entrant lock serialises transactions."""

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = RLock()

    def _read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            data = self._read(collection, doc_id)
        return _with_id(doc_id, data) if data is not None else None

    def set_document(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = _resolve_new(fields)

    def query_documents(
        self,
        collection: str,
        *predicates: Predicate,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            documents = [
                _with_id(doc_id, data)
                for doc_id, data in self._collections.get(collection, {}).items()
            ]
        return select_documents(
            documents, predicates, order_by=order_by, descending=descending, limit=limit
        )

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        with self._lock:
            txn = Transaction(self._read)
            result = fn(txn)
            for (collection, doc_id), data in txn.writes.items():
                self._collections.setdefault(collection, {})[doc_id] = data
            return result


class SQLiteDocumentStore(BaseDocumentStore):
    """SQLite-backed store: one JSON row per document.

    Every call opens its own connection, so the store is safe to share
    across threads. Transactions take the write lock up front
    (BEGIN IMMEDIATE), which serialises concurrent read-modify-writes.
    """

    def __init__(self, database_file: str | Path = DATABASE_FILE, *, timeout: float = 10.0):
        # Each call opens a fresh connection, and an in-memory database dies with its connection
        if str(database_file) == ":memory:":
            raise ValueError("SQLiteDocumentStore needs a database file; use InMemoryDocumentStore instead")
        self.database_file = str(database_file)
        self.timeout = timeout
        self.init_db()

    def get_conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.database_file, timeout=self.timeout, isolation_level=None)

    def init_db(self) -> None:
        """Create the documents table if it doesn't exist."""
        Path(self.database_file).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = self.get_conn()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS documents (
                        collection TEXT NOT NULL,
                        doc_id TEXT NOT NULL,
                        data TEXT NOT NULL,
                        PRIMARY KEY (collection, doc_id)
                    )
                """)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise RemoteOperationError(f"Failed to initialise database: {e}") from e

    @staticmethod
    def _read_with(conn: sqlite3.Connection, collection: str, doc_id: str) -> dict[str, Any] | None:
        row = conn.execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        ).fetchone()
        return json.loads(row[0]) if row else None

    @staticmethod
    def _write_with(conn: sqlite3.Connection, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        # Upsert keeps the original rowid, so fetch order stays insertion order
        conn.execute("""
            INSERT INTO documents (collection, doc_id, data)
            VALUES (?, ?, ?)
            ON CONFLICT(collection, doc_id) DO UPDATE SET data = excluded.data
        """, (collection, doc_id, json.dumps(data)))

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            conn = self.get_conn()
            try:
                data = self._read_with(conn, collection, doc_id)
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning("[store] get failed %s/%s: %s", collection, doc_id, e)
            raise RemoteOperationError(f"Failed to read {collection}/{doc_id}: {e}") from e
        return _with_id(doc_id, data) if data is not None else None

    def set_document(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self.run_transaction(lambda txn: txn.set(collection, doc_id, fields))

    def query_documents(
        self,
        collection: str,
        *predicates: Predicate,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        try:
            conn = self.get_conn()
            try:
                rows = conn.execute(
                    "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY rowid",
                    (collection,),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning("[store] query failed %s: %s", collection, e)
            raise RemoteOperationError(f"Failed to query {collection}: {e}") from e

        documents = [_with_id(doc_id, json.loads(data)) for doc_id, data in rows]
        return select_documents(
            documents, predicates, order_by=order_by, descending=descending, limit=limit
        )

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        try:
            conn = self.get_conn()
        except sqlite3.Error as e:
            raise RemoteOperationError(f"Failed to open database: {e}") from e
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                txn = Transaction(lambda c, d: self._read_with(conn, c, d))
                result = fn(txn)
                for (collection, doc_id), data in txn.writes.items():
                    self._write_with(conn, collection, doc_id, data)
                conn.execute("COMMIT")
                return result
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            logger.warning("[store] transaction failed: %s", e)
            raise RemoteOperationError(f"Store transaction failed: {e}") from e
        finally:
            conn.close()


# Default store instance (can be swapped for testing)
class DocumentStore:
    """Facade returning the configured document store."""

    _instance: BaseDocumentStore | None = None

    @classmethod
    def get_instance(cls) -> BaseDocumentStore:
        """Get the configured store, creating it on first use."""
        if cls._instance is None:
            if STORE_BACKEND == "memory":
                cls._instance = InMemoryDocumentStore()
            else:
                cls._instance = SQLiteDocumentStore(DATABASE_FILE)
            logger.info("[store] backend=%s", type(cls._instance).__name__)
        return cls._instance

    @classmethod
    def set_instance(cls, store: BaseDocumentStore) -> None:
        """Set a custom store (useful for testing)."""
        cls._instance = store

    @classmethod
    def reset(cls) -> None:
        """Reset to the default store."""
        cls._instance = None
