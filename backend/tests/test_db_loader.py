"""
Tests for the exam CSV -> document SQL seed loader
"""
import json

import pytest

from db_loader import (
    convert_to_documents,
    department_for_course,
    load_exams_from_csv,
    write_sql_to_file,
)


ROWS = [
    ["CS_61A", "fa23-mt1", "Structure and Interpretation", "Fall", "2023", "midterm",
     "https://example.edu/mt1.pdf", "DeNero", "HKN", "UC Berkeley"],
    ["CS_61A", "sp24-final", "Structure and Interpretation", "Spring", "2024", "final",
     "https://example.edu/final.pdf", "", "HKN", "UC Berkeley"],
    ["Phys8B", "fa22-mt2", "Introductory Physics", "Fall", "2022", "midterm",
     "https://example.edu/p.pdf", "O'Neil", "dept", "UC Berkeley"],
]


def test_department_for_course():
    """Test department lookup from the course id prefix"""
    assert department_for_course("CS_61A") == "Computer Science"
    assert department_for_course("Phys8B") == "Physics"
    assert department_for_course("ZZZ1") == ""
    assert department_for_course("61A") == ""


def test_convert_to_documents():
    """Test courses are emitted once and exams hang off them"""
    docs = convert_to_documents(ROWS)

    assert [c["path"] for c in docs["courses"]] == ["courses/CS_61A", "courses/Phys8B"]
    assert [e["path"] for e in docs["exams"]] == [
        "courses/CS_61A/exams/fa23-mt1",
        "courses/CS_61A/exams/sp24-final",
        "courses/Phys8B/exams/fa22-mt2",
    ]
    first = docs["exams"][0]
    assert first["parent_path"] == "courses/CS_61A"
    assert first["data"]["metadata"] == {
        "resource_type": "midterm",
        "source": "HKN",
        "department": "Computer Science",
        "instructor": "DeNero",
    }
    assert "instructor" not in docs["exams"][1]["data"]["metadata"]


def test_convert_rejects_short_rows():
    """Test rows missing columns fail loudly"""
    with pytest.raises(ValueError):
        convert_to_documents([["CS_61A", "mt1"]])


def test_csv_to_sql_roundtrip(tmp_path):
    """Test CSV in, escaped SQL out"""
    csv_path = tmp_path / "exams.csv"
    header = "course_id,exam_id,course_name,semester,year,resource_type,resource_url,instructor,source,school\n"
    body = "\n".join(",".join(row) for row in ROWS) + "\n\n"
    csv_path.write_text(header + body, encoding="utf-8")

    rows = load_exams_from_csv(str(csv_path))
    assert len(rows) == 3

    sql_path = tmp_path / "exams.sql"
    write_sql_to_file(str(sql_path), convert_to_documents(rows))
    sql = sql_path.read_text(encoding="utf-8")

    assert sql.count("INSERT INTO documents") == 2
    assert sql.index("-- courses") < sql.index("-- exams")
    assert "O''Neil" in sql
    assert "'courses/CS_61A', 'courses', 'CS_61A', NULL" in sql
    assert json.dumps({"course_code": "CS_61A"})[1:-1] in sql
