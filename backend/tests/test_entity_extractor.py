"""
Tests for entity extraction module
"""
import pytest

from study_search.entity_extractor import (
    code_variants,
    course_numbers,
    extract_course_info,
    normalize_code,
    normalized_code_variants,
    subjects,
)
from study_search.subject_map import DEPARTMENT_TO_PREFIXES, PREFIX_TO_DEPARTMENT, lookup_department


def test_extract_course_code_with_variants():
    """Test spaced course code plus its underscore / no-space variants"""
    result = extract_course_info("CS 61A midterm")

    assert {"CS 61A", "CS_61A", "CS61A"} <= result.course_codes
    assert "Computer Science" in result.departments
    assert "CS" in result.prefixes
    assert "midterm" in result.resource_types


def test_extract_empty_query():
    """Test empty input yields five empty sets"""
    result = extract_course_info("")

    assert result.course_codes == frozenset()
    assert result.departments == frozenset()
    assert result.prefixes == frozenset()
    assert result.resource_types == frozenset()
    assert result.all_terms == frozenset()


@pytest.mark.parametrize("value", [None, 42, ["CS 61A"]])
def test_extract_non_string_query(value):
    """Test non-string input is treated as empty rather than raising"""
    result = extract_course_info(value)

    assert not result.course_codes
    assert not result.all_terms


def test_no_space_variant_infers_same_department():
    """Test CS61A resolves the same department as CS 61A"""
    spaced = extract_course_info("CS 61A")
    joined = extract_course_info("CS61A")

    assert joined.departments == spaced.departments == frozenset({"Computer Science"})
    assert "CS61A" in joined.course_codes


def test_whitespace_collapsed_in_course_code():
    """Test internal whitespace is collapsed to one space"""
    result = extract_course_info("  MATH    1A  ")

    assert "MATH 1A" in result.course_codes
    assert "Mathematics" in result.departments


def test_prefix_lookup_is_case_insensitive():
    """Test lowercase prefix maps to the directory spelling"""
    result = extract_course_info("math 1a homework")

    assert "math 1a" in result.course_codes
    assert "Math" in result.prefixes
    assert "Mathematics" in result.departments
    assert "homework" in result.resource_types


def test_extract_bare_course_number():
    """Test standalone course numbers are kept for compound matching"""
    result = extract_course_info("Physics 8B electromagnetic waves")

    assert "8B" in result.course_codes
    assert "Physics" in result.departments
    assert "Phys" in result.prefixes
    assert course_numbers(result) == ["8B"]


def test_department_literal_adds_all_prefixes():
    """Test a department shared by several prefixes adds each of them"""
    result = extract_course_info("Civil and Environmental Engineering final")

    assert "Civil and Environmental Engineering" in result.departments
    assert set(DEPARTMENT_TO_PREFIXES["Civil and Environmental Engineering"]) <= result.prefixes
    assert "Civil and Environmental Engineering" in result.all_terms


def test_prefix_literal_requires_word_boundary():
    """Test prefixes only match as standalone tokens"""
    standalone = extract_course_info("need EECS help, especially EE")
    embedded = extract_course_info("steep learning curve")

    assert "EE" in standalone.prefixes
    assert "Electrical Engineering" in standalone.departments
    assert "EE" not in embedded.prefixes


def test_subject_synonym():
    """Test natural-language subject names map to canonical prefixes"""
    result = extract_course_info("intro programming practice")

    assert "CS" in result.prefixes
    assert "Computer Science" in result.departments
    assert "programming" in result.all_terms


def test_resource_type_keywords():
    """Test resource-type vocabulary is matched by substring"""
    result = extract_course_info("HW and Lecture Notes before the Quiz")

    assert {"hw", "lecture", "notes", "quiz"} <= result.resource_types


def test_all_terms_pool_covers_other_sets():
    """Test allTerms is a flat pool containing codes and resource types"""
    result = extract_course_info("CS 61A midterm and final")

    assert result.course_codes <= result.all_terms
    assert result.resource_types <= result.all_terms


@pytest.mark.parametrize("query", ["Math 1A", "Physics 8B physics", "CS 61A cs 61a"])
def test_sets_hold_one_casing_per_value(query):
    """Test no set carries the same value twice in different casings"""
    result = extract_course_info(query)

    for values in (
        result.course_codes,
        result.departments,
        result.prefixes,
        result.resource_types,
        result.all_terms,
    ):
        assert len({v.lower() for v in values}) == len(values)


def test_first_casing_seen_is_kept():
    """Test the prefix spelling wins over the lowercase subject synonym"""
    result = extract_course_info("Math 1A")

    assert "Math" in result.all_terms
    assert "math" not in result.all_terms
    assert "Math 1A" in result.course_codes


def test_unknown_prefix_adds_no_department():
    """Test an unrecognized prefix still yields a course code but no department"""
    result = extract_course_info("XYZQ 101")

    assert "XYZQ 101" in result.course_codes
    assert not result.departments
    assert not result.prefixes


def test_extraction_is_immutable():
    """Test the extraction result cannot be mutated"""
    result = extract_course_info("CS 61A")

    with pytest.raises(Exception):
        result.course_codes = frozenset()


def test_normalize_code():
    """Test course code normalization"""
    assert normalize_code("CS 61A") == "cs61a"
    assert normalize_code("CS_61A") == "cs61a"
    assert normalize_code("Math-1A") == "math1a"


def test_code_variants():
    """Test variants only exist for spaced codes"""
    assert code_variants("CS 61A") == ["CS_61A", "CS61A"]
    assert code_variants("61A") == []


def test_normalized_code_variants_dedupes():
    """Test spaced / underscore / joined forms collapse to one variant"""
    variants = normalized_code_variants(frozenset({"CS 61A", "CS_61A", "CS61A", "61A"}))

    assert sorted(variants) == ["61a", "cs61a"]


def test_subjects_combines_departments_and_prefixes():
    """Test subject tokens include both departments and prefixes"""
    result = extract_course_info("CS 61A")

    assert subjects(result) == ["CS", "Computer Science"]


def test_directory_is_read_only():
    """Test the prefix directory cannot be mutated"""
    with pytest.raises(TypeError):
        PREFIX_TO_DEPARTMENT["XX"] = "Nowhere"  # type: ignore[index]

    assert lookup_department("phys") == "Physics"
    assert lookup_department("nope") is None
