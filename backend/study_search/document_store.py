# document_store.py
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

from .db import get_db_conn
from .schemas import StoredDocument


COURSES = "courses"
EXAMS = "exams"
RESOURCES = "resources"

DOCUMENT_SELECT = """
    SELECT d.doc_id, d.path, d.parent_path, d.data
    FROM documents d
"""


class StoreUnavailableError(RuntimeError):
    """The document store could not be reached at all."""


class DocumentStore(Protocol):
    def ping(self) -> None:
        ...

    def list_documents(self, collection: str) -> List[StoredDocument]:
        ...

    def list_subdocuments(self, collection: str, parent_id: str, subcollection: str) -> List[StoredDocument]:
        ...

    def collection_group(self, subcollection: str) -> List[StoredDocument]:
        ...


def row_to_document(row: Any) -> StoredDocument:
    doc_id, path, parent_path, data = row
    parent_id = parent_path.rsplit("/", 1)[-1] if parent_path else None
    return StoredDocument(
        id=doc_id,
        path=path,
        parent_id=parent_id,
        data=data if isinstance(data, dict) else {},
    )


class PostgresDocumentStore:
    """
    Collection / sub-collection document store on a single JSONB table.

    Every document lives at a slash-separated path such as
    "courses/CS_61A/exams/fa23-mt1". A top-level document has no parent_path;
    a sub-document's parent_path is the path of the document it hangs off.
    """

    def __init__(self, connect: Callable[[], Any] = get_db_conn):
        self._connect = connect

    def _fetch(self, where_sql: str, params: Sequence[Any], limit: Optional[int] = None) -> List[StoredDocument]:
        limit_clause = f"LIMIT {int(limit)}" if limit else ""
        sql = f"""
            {DOCUMENT_SELECT}
            {where_sql}
            ORDER BY d.path
            {limit_clause};
        """
        conn = self._connect()
        try:
            cur = conn.cursor()
            try:
                cur.execute(sql, params)
                return [row_to_document(row) for row in cur.fetchall()]
            finally:
                cur.close()
        finally:
            conn.close()

    def ping(self) -> None:
        """Round-trip to the store; raises if it is unreachable or the table is missing."""
        self._fetch("WHERE d.collection = %s AND d.parent_path IS NULL", (COURSES,), limit=1)

    def list_documents(self, collection: str) -> List[StoredDocument]:
        return self._fetch("WHERE d.collection = %s AND d.parent_path IS NULL", (collection,))

    def list_subdocuments(self, collection: str, parent_id: str, subcollection: str) -> List[StoredDocument]:
        return self._fetch(
            "WHERE d.parent_path = %s AND d.collection = %s",
            (f"{collection}/{parent_id}", subcollection),
        )

    def collection_group(self, subcollection: str) -> List[StoredDocument]:
        return self._fetch("WHERE d.collection = %s AND d.parent_path IS NOT NULL", (subcollection,))

    def sample_document(self, collection: str = COURSES) -> Optional[StoredDocument]:
        docs = self._fetch("WHERE d.collection = %s AND d.parent_path IS NULL", (collection,), limit=1)
        return docs[0] if docs else None


def document_path(*parts: Tuple[str, str]) -> str:
    """Join (collection, doc_id) pairs into a store path."""
    return "/".join(f"{collection}/{doc_id}" for collection, doc_id in parts)


_store: Optional[PostgresDocumentStore] = None


def get_document_store() -> PostgresDocumentStore:
    """FastAPI dependency returning the process-wide store."""
    global _store
    if _store is None:
        _store = PostgresDocumentStore()
    return _store
