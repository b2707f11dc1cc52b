"""
Shared fixtures: an in-memory document store and scripted completers
"""
from typing import Dict, List, Optional, Set

import pytest

from study_search.ai_analysis import CompletionError
from study_search.schemas import StoredDocument


class FakeDocumentStore:
    """Dict-backed stand-in for PostgresDocumentStore."""

    def __init__(self):
        self.docs: List[StoredDocument] = []
        self.ping_error: Optional[Exception] = None
        self.failing_parents: Set[str] = set()
        self.failing_groups: Set[str] = set()

    @staticmethod
    def _collection(doc: StoredDocument) -> str:
        return doc.path.split("/")[-2]

    def add_course(self, course_id: str, **data) -> StoredDocument:
        doc = StoredDocument(id=course_id, path=f"courses/{course_id}", data=data)
        self.docs.append(doc)
        return doc

    def add_sub(self, course_id: str, subcollection: str, doc_id: str, **data) -> StoredDocument:
        doc = StoredDocument(
            id=doc_id,
            path=f"courses/{course_id}/{subcollection}/{doc_id}",
            parent_id=course_id,
            data=data,
        )
        self.docs.append(doc)
        return doc

    def ping(self) -> None:
        if self.ping_error is not None:
            raise self.ping_error

    def list_documents(self, collection: str) -> List[StoredDocument]:
        return [d for d in self.docs if d.parent_id is None and self._collection(d) == collection]

    def list_subdocuments(self, collection: str, parent_id: str, subcollection: str) -> List[StoredDocument]:
        if parent_id in self.failing_parents:
            raise PermissionError(f"cannot read {collection}/{parent_id}/{subcollection}")
        return [
            d for d in self.docs
            if d.parent_id == parent_id and self._collection(d) == subcollection
        ]

    def collection_group(self, subcollection: str) -> List[StoredDocument]:
        if subcollection in self.failing_groups:
            raise PermissionError(f"cannot scan {subcollection}")
        return [d for d in self.docs if d.parent_id is not None and self._collection(d) == subcollection]

    def sample_document(self, collection: str = "courses") -> Optional[StoredDocument]:
        if self.ping_error is not None:
            raise self.ping_error
        docs = self.list_documents(collection)
        return docs[0] if docs else None


class ScriptedCompleter:
    """Returns a canned completion, or raises when given an exception."""

    def __init__(self, content=None, error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.calls: List[Dict[str, str]] = []
        self.transport_used = "scripted"

    def complete(self, system_instruction: str, user_prompt: str) -> str:
        self.calls.append({"system": system_instruction, "user": user_prompt})
        if self.error is not None:
            raise self.error
        return self.content


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def physics_store(store: FakeDocumentStore) -> FakeDocumentStore:
    """One Physics 8B course with two exams a year apart."""
    store.add_course("phys8b")
    store.add_sub(
        "phys8b", "exams", "phys8b-fa23-mt1",
        semester="Fall", year="2023", resource_type="midterm",
        resource_url="https://example.edu/phys8b/fa23-mt1.pdf",
        metadata={"resource_type": "midterm", "source": "HKN", "department": "Physics"},
    )
    store.add_sub(
        "phys8b", "exams", "phys8b-sp24-final",
        semester="Spring", year="2024", resource_type="final",
        resource_url="https://example.edu/phys8b/sp24-final.pdf",
        metadata={"resource_type": "final", "source": "HKN", "department": "Physics"},
    )
    return store


@pytest.fixture
def failing_completer() -> ScriptedCompleter:
    return ScriptedCompleter(error=CompletionError("service down"))
