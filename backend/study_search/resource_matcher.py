# resource_matcher.py
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from . import config
from .document_store import COURSES, EXAMS, RESOURCES, DocumentStore, StoreUnavailableError
from .entity_extractor import course_numbers, normalize_code, normalized_code_variants, subjects
from .schemas import CourseResource, ExtractionResult, ResourceMetadata, StoredDocument

log = logging.getLogger(__name__)


METADATA_SCAN_FIELDS = ("resource_type", "semester", "year")
METADATA_BAG_FIELDS = ("resource_type", "source", "department", "instructor")


def _text(value: Any) -> str:
    """Stored fields are schemaless: None -> "", numbers -> their string form."""
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def project_resource(doc: StoredDocument, course_code: Optional[str] = None) -> CourseResource:
    """
    Read a stored exam/resource document into a CourseResource.

    When course_code is given (identifier matches) the record is taken as an
    exam under that course: course name, department and school are not on
    exam records and stay empty.
    """
    data = doc.data
    raw_meta = data.get("metadata")
    meta = raw_meta if isinstance(raw_meta, dict) else {}
    metadata = ResourceMetadata(
        **{
            **{k: v for k, v in meta.items() if k not in ResourceMetadata.model_fields},
            "instructor": _text(meta.get("instructor")) or None,
            "resource_type": _text(meta.get("resource_type")),
            "source": _text(meta.get("source")),
            "department": _text(meta.get("department")),
        }
    )
    resource_type = _text(data.get("resource_type")) or metadata.resource_type

    if course_code is not None:
        return CourseResource(
            id=doc.id,
            course_code=course_code,
            semester=_text(data.get("semester")),
            year=_text(data.get("year")),
            resource_type=resource_type,
            resource_url=_text(data.get("resource_url")),
            metadata=metadata,
            parent_course_id=doc.parent_id,
            collection_path=doc.path,
        )

    return CourseResource(
        id=doc.id,
        course_code=_text(data.get("course_code")) or (doc.parent_id or ""),
        course_name=_text(data.get("course_name")),
        department=_text(data.get("department")),
        school=_text(data.get("school")),
        semester=_text(data.get("semester")),
        year=_text(data.get("year")),
        resource_type=resource_type,
        resource_url=_text(data.get("resource_url")),
        metadata=metadata,
        parent_course_id=doc.parent_id,
        collection_path=doc.path,
    )


def metadata_text(resource: CourseResource) -> str:
    """Lowercased concatenation of every metadata value."""
    values = resource.metadata.model_dump().values()
    return " ".join(_text(v) for v in values).lower()


class CandidatePool:
    """Candidates gathered across strategies, in discovery order (duplicates kept)."""

    def __init__(self) -> None:
        self.candidates: List[CourseResource] = []
        self.scanned: List[CourseResource] = []
        self.hits: Dict[str, int] = {}
        self.matched_course_ids: List[str] = []

    def extend(self, strategy: str, resources: Iterable[CourseResource]) -> None:
        found = list(resources)
        self.candidates.extend(found)
        self.hits[strategy] = self.hits.get(strategy, 0) + len(found)


def matches_course_id(course_id: str, variants: Sequence[str]) -> bool:
    """Equals, ends with, or contains any normalized code variant."""
    doc_norm = normalize_code(course_id)
    if not doc_norm:
        return False
    return any(
        doc_norm == variant or doc_norm.endswith(variant) or variant in doc_norm
        for variant in variants
    )


def match_subject_number(
    resources: Iterable[CourseResource],
    subject_tokens: Sequence[str],
    numbers: Sequence[str],
) -> List[CourseResource]:
    """Keep records whose course code or name mentions both a subject and a course number."""
    subject_lowers = [s.lower() for s in subject_tokens]
    number_lowers = [n.lower() for n in numbers]
    matched: List[CourseResource] = []
    for resource in resources:
        haystacks = (resource.course_code.lower(), resource.course_name.lower())
        for number in number_lowers:
            if any(
                number in hay and any(subject in hay for subject in subject_lowers)
                for hay in haystacks
            ):
                matched.append(resource)
                break  # first matching number wins for this record
    return matched


def match_code_or_term(
    resources: Iterable[CourseResource],
    codes: Iterable[str],
    terms: Iterable[str],
) -> List[CourseResource]:
    code_lowers = [c.lower() for c in codes if c]
    term_lowers = [t.lower() for t in terms if t]
    matched: List[CourseResource] = []
    for resource in resources:
        code = resource.course_code.lower()
        name = resource.course_name.lower()
        if any(c in code for c in code_lowers) or (name and any(t in name for t in term_lowers)):
            matched.append(resource)
    return matched


def match_metadata(resources: Iterable[CourseResource], search_terms: Sequence[str]) -> List[CourseResource]:
    """Keep records whose type, term, year or metadata bag mentions a search term."""
    term_lowers = [t.lower() for t in search_terms if t]
    matched: List[CourseResource] = []
    for term in term_lowers:
        for resource in resources:
            fields = [getattr(resource, name) for name in METADATA_SCAN_FIELDS]
            fields.extend(_text(getattr(resource.metadata, name)) for name in METADATA_BAG_FIELDS)
            if any(term in field.lower() for field in fields if field):
                matched.append(resource)
    return matched


def dedupe_resources(resources: Iterable[CourseResource]) -> List[CourseResource]:
    """First occurrence of each document id wins; later duplicates are dropped."""
    seen = set()
    unique: List[CourseResource] = []
    for resource in resources:
        if resource.id in seen:
            continue
        seen.add(resource.id)
        unique.append(resource)
    return unique


def rank_resources(
    resources: Sequence[CourseResource],
    course_codes: Iterable[str],
    search_terms: Sequence[str],
) -> List[CourseResource]:
    """
    Stable sort: exact course-code hits first, then metadata hits on a search
    term, then newest year first.

    Years compare as strings, which only orders same-width years correctly.
    """
    code_set = {c.lower() for c in course_codes}
    term_lowers = [t.lower() for t in search_terms if t]

    by_year = sorted(resources, key=lambda r: r.year, reverse=True)

    def priority(resource: CourseResource):
        exact = resource.course_code.lower() in code_set
        meta = metadata_text(resource)
        meta_hit = any(term in meta for term in term_lowers)
        return (not exact, not meta_hit)

    return sorted(by_year, key=priority)


class ResourceMatcher:
    def __init__(self, store: DocumentStore, limit: int = config.MAX_RESULTS):
        self.store = store
        self.limit = limit

    def check_connection(self) -> None:
        try:
            self.store.ping()
        except Exception as exc:
            log.error("Document store connection error: %s", exc)
            raise StoreUnavailableError("Failed to connect to database") from exc

    def _scan_group(self, subcollection: str) -> List[CourseResource]:
        try:
            docs = self.store.collection_group(subcollection)
        except Exception as exc:
            log.warning("Skipping collection group %r: %s", subcollection, exc)
            return []
        return [project_resource(doc) for doc in docs]

    def _match_course_ids(self, extraction: ExtractionResult, pool: CandidatePool) -> List[CourseResource]:
        variants = normalized_code_variants(extraction.course_codes)
        if not variants:
            return []

        courses = self.store.list_documents(COURSES)
        log.debug("Scanning %d course documents for %s", len(courses), variants)

        found: List[CourseResource] = []
        for course in courses:
            if not matches_course_id(course.id, variants):
                continue
            pool.matched_course_ids.append(course.id)
            try:
                exams = self.store.list_subdocuments(COURSES, course.id, EXAMS)
            except Exception as exc:
                log.warning("Skipping exams for %s/%s: %s", COURSES, course.id, exc)
                continue
            found.extend(project_resource(exam, course_code=course.id) for exam in exams)
        return found

    def collect(self, extraction: ExtractionResult) -> CandidatePool:
        """Run every store scan that depends only on the extraction."""
        self.check_connection()
        pool = CandidatePool()

        try:
            pool.extend("course_id", self._match_course_ids(extraction, pool))
        except Exception as exc:
            log.warning("Skipping course identifier scan: %s", exc)
            pool.extend("course_id", [])

        exams = self._scan_group(EXAMS)
        resources = self._scan_group(RESOURCES)
        pool.scanned = exams + resources

        subject_tokens = subjects(extraction)
        numbers = course_numbers(extraction)
        if subject_tokens and numbers:
            pool.extend("subject_number", match_subject_number(exams, subject_tokens, numbers))
            pool.extend("subject_number", match_subject_number(resources, subject_tokens, numbers))
        elif extraction.course_codes or extraction.all_terms:
            pool.extend(
                "code_or_term",
                match_code_or_term(pool.scanned, extraction.course_codes, extraction.all_terms),
            )
        return pool

    def rank(
        self,
        pool: CandidatePool,
        extraction: ExtractionResult,
        search_terms: Sequence[str],
    ) -> List[CourseResource]:
        """Fold in metadata matches for the search terms, dedupe, rank and cap."""
        pool.extend("metadata", match_metadata(pool.scanned, search_terms))
        unique = dedupe_resources(pool.candidates)
        ranked = rank_resources(unique, extraction.course_codes, search_terms)
        return ranked[: self.limit]

    def search(self, extraction: ExtractionResult, search_terms: Sequence[str]) -> List[CourseResource]:
        return self.rank(self.collect(extraction), extraction, search_terms)
