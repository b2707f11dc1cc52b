# entity_extractor.py
import re
from typing import Any, Dict, FrozenSet, List, Set

from .schemas import ExtractionResult
from .subject_map import (
    DEPARTMENT_TO_PREFIXES,
    PREFIX_TO_DEPARTMENT,
    RESOURCE_TYPE_TERMS,
    SUBJECT_SYNONYMS,
    canonical_prefix,
)


# Pre-compiled regex helpers
COURSE_CODE_RE = re.compile(r"\b[A-Z]{2,6}\s*\d+[A-Z]?\b", re.IGNORECASE)
BARE_NUMBER_RE = re.compile(r"\b\d+[A-Z]?\b", re.IGNORECASE)
COURSE_NUMBER_RE = re.compile(r"^\d+[A-Z]?$", re.IGNORECASE)
LEADING_ALPHA_RE = re.compile(r"^[A-Za-z]+")
WHITESPACE_RE = re.compile(r"\s+")
NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")

# One word-boundary pattern per known prefix, compiled once.
PREFIX_PATTERNS = tuple(
    (prefix, re.compile(rf"\b{re.escape(prefix)}\b", re.IGNORECASE))
    for prefix in PREFIX_TO_DEPARTMENT
)


def normalize_code(code: str) -> str:
    """Strip everything but letters and digits and lowercase, e.g. "CS 61A" -> "cs61a"."""
    return NON_ALNUM_RE.sub("", code).lower()


def code_variants(code: str) -> List[str]:
    """Underscore-joined and no-space forms of a spaced course code."""
    if " " not in code:
        return []
    return [WHITESPACE_RE.sub("_", code), WHITESPACE_RE.sub("", code)]


def _add(bucket: Dict[str, str], value: str) -> None:
    # case-insensitive set; the first casing seen is the one kept
    bucket.setdefault(value.lower(), value)


def extract_course_info(text: Any) -> ExtractionResult:
    """
    Pull course codes, departments, prefixes and resource types out of a query.

    Every step adds to the running sets; nothing short-circuits. Unknown or
    empty input produces an empty result rather than an error. Each set holds
    at most one casing of a value.
    """
    if not isinstance(text, str) or not text:
        return ExtractionResult()

    lowered = text.lower()
    course_codes: Dict[str, str] = {}
    departments: Dict[str, str] = {}
    prefixes: Dict[str, str] = {}
    resource_types: Dict[str, str] = {}
    all_terms: Dict[str, str] = {}

    # Full course codes like "CS 61A", "MATH 1A", "CS61A"
    for match in COURSE_CODE_RE.finditer(text):
        normalized = WHITESPACE_RE.sub(" ", match.group(0)).strip()
        _add(course_codes, normalized)
        _add(all_terms, normalized)

        lead = LEADING_ALPHA_RE.match(normalized)
        prefix = canonical_prefix(lead.group(0)) if lead else None
        if prefix:
            _add(prefixes, prefix)
            _add(departments, PREFIX_TO_DEPARTMENT[prefix])

    # Bare course numbers like "61A", later paired with a subject
    for match in BARE_NUMBER_RE.finditer(text):
        _add(course_codes, match.group(0))
        _add(all_terms, match.group(0))

    for code in list(course_codes.values()):
        for variant in code_variants(code):
            _add(course_codes, variant)
            _add(all_terms, variant)

    for department, dept_prefixes in DEPARTMENT_TO_PREFIXES.items():
        if department.lower() in lowered:
            _add(departments, department)
            for prefix in dept_prefixes:
                _add(prefixes, prefix)
            _add(all_terms, department)

    for prefix, pattern in PREFIX_PATTERNS:
        if pattern.search(text):
            _add(prefixes, prefix)
            _add(departments, PREFIX_TO_DEPARTMENT[prefix])
            _add(all_terms, prefix)

    for synonym, prefix in SUBJECT_SYNONYMS.items():
        if synonym in lowered:
            _add(prefixes, prefix)
            _add(departments, PREFIX_TO_DEPARTMENT[prefix])
            _add(all_terms, synonym)

    for term in RESOURCE_TYPE_TERMS:
        if term in lowered:
            _add(resource_types, term)
            _add(all_terms, term)

    return ExtractionResult(
        course_codes=frozenset(course_codes.values()),
        departments=frozenset(departments.values()),
        prefixes=frozenset(prefixes.values()),
        resource_types=frozenset(resource_types.values()),
        all_terms=frozenset(all_terms.values()),
    )


def course_numbers(extraction: ExtractionResult) -> List[str]:
    """Bare numeric course codes ("61A", "8B"), sorted for a stable scan order."""
    return sorted(code for code in extraction.course_codes if COURSE_NUMBER_RE.match(code))


def subjects(extraction: ExtractionResult) -> List[str]:
    """Departments and prefixes, usable as subject tokens against a course code or name."""
    return sorted(extraction.departments | extraction.prefixes)


def normalized_code_variants(codes: FrozenSet[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for code in sorted(codes):
        norm = normalize_code(code)
        if norm and norm not in seen:
            seen.add(norm)
            out.append(norm)
    return out
