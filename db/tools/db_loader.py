import csv
import json
import re
import argparse
from typing import Any, Dict, List

from study_search.document_store import COURSES, EXAMS, document_path
from study_search.subject_map import lookup_department


EXPECTED_COLUMNS = 10
LEADING_ALPHA_RE = re.compile(r"^[A-Za-z]+")


def load_exams_from_csv(file_path: str):
    """
    Loads exam rows from a CSV file.
    :param file_path: Path to the CSV file containing exam data
    :return: list of rows (each row is a list of strings)
    """
    exams = []
    with open(file_path, "r", encoding="utf-8", newline="") as csvfile:
        reader = csv.reader(csvfile)
        # Skip header
        header = next(reader, None)
        for row in reader:
            # Normalize whitespace
            row = [col.strip() if isinstance(col, str) else col for col in row]
            # Skip empty rows defensively
            if not any(row):
                continue
            exams.append(row)
    return exams


def department_for_course(course_id: str) -> str:
    """Resolve "CS_61A" / "Math1A" to a department via its leading letters."""
    match = LEADING_ALPHA_RE.match(course_id)
    if not match:
        return ""
    return lookup_department(match.group(0)) or ""


def convert_to_documents(exams) -> Dict[str, List[Dict[str, Any]]]:
    """
    Converts exam rows into course documents and their exam sub-documents.

    Columns:
        course_id, exam_id, course_name, semester, year,
        resource_type, resource_url, instructor, source, school
    """
    documents: Dict[str, List[Dict[str, Any]]] = {
        "courses": [],
        "exams": [],
    }

    seen_courses = set()
    seen_exams = set()

    for row in exams:
        if len(row) < EXPECTED_COLUMNS:
            raise ValueError(f"Expected {EXPECTED_COLUMNS} columns, got {len(row)}: {row}")

        (
            course_id,
            exam_id,
            course_name,
            semester,
            year,
            resource_type,
            resource_url,
            instructor,
            source,
            school,
        ) = row[:EXPECTED_COLUMNS]

        if not course_id or not exam_id:
            raise ValueError(f"course_id and exam_id are required: {row}")

        department = department_for_course(course_id)

        # --- COURSE ---
        course_path = document_path((COURSES, course_id))
        if course_path not in seen_courses:
            seen_courses.add(course_path)
            documents["courses"].append({
                "path": course_path,
                "collection": COURSES,
                "doc_id": course_id,
                "parent_path": None,
                "data": {
                    "course_code": course_id,
                    "course_name": course_name,
                    "department": department,
                    "school": school,
                },
            })

        # --- EXAM ---
        exam_path = document_path((COURSES, course_id), (EXAMS, exam_id))
        if exam_path not in seen_exams:
            seen_exams.add(exam_path)
            metadata = {
                "resource_type": resource_type,
                "source": source,
                "department": department,
            }
            if instructor:
                metadata["instructor"] = instructor
            documents["exams"].append({
                "path": exam_path,
                "collection": EXAMS,
                "doc_id": exam_id,
                "parent_path": course_path,
                "data": {
                    "course_code": course_id,
                    "semester": semester,
                    "year": year,
                    "resource_type": resource_type,
                    "resource_url": resource_url,
                    "metadata": metadata,
                },
            })

    return documents


def sql_escape(value: str) -> str:
    if value is None:
        return ""
    return value.replace("'", "''")


def document_to_values(doc: Dict[str, Any]) -> str:
    parent = f"'{sql_escape(doc['parent_path'])}'" if doc["parent_path"] else "NULL"
    data = sql_escape(json.dumps(doc["data"], ensure_ascii=False))
    return (
        f"('{sql_escape(doc['path'])}', '{sql_escape(doc['collection'])}', "
        f"'{sql_escape(doc['doc_id'])}', {parent}, '{data}'::jsonb)"
    )


def write_sql_to_file(output_file, documents):
    """
    Writes document inserts to a file. Courses go first so every exam's
    parent exists when the file is replayed in order.
    """
    columns = ["path", "collection", "doc_id", "parent_path", "data"]
    with open(output_file, "w", encoding="utf-8") as f:
        f.write("-- Auto-generated SQL insert statements\n\n")

        for group, entries in documents.items():
            if not entries:
                continue

            f.write(f"-- {group}\n")
            f.write(f"INSERT INTO documents ({', '.join(columns)})\nVALUES\n")

            for i, doc in enumerate(entries):
                comma = "," if i < len(entries) - 1 else ""
                f.write(f"  {document_to_values(doc)}{comma}\n")

            f.write("ON CONFLICT DO NOTHING;\n\n")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Convert a course exam CSV into document-store SQL seed inserts."
    )

    parser.add_argument(
        "-i", "--in", "--input", dest="input_file", required=True,
        help="Path to the CSV file to process"
    )

    parser.add_argument(
        "-o", "--out", "--output", dest="output_file", required=False,
        help="Path to write the generated SQL file (default: input_name.sql)"
    )

    args = parser.parse_args()

    input_path = args.input_file

    # Default output name: if input is exams.csv → output is exams.sql
    if args.output_file:
        output_path = args.output_file
    else:
        if input_path.lower().endswith(".csv"):
            output_path = input_path[:-4] + ".sql"
        else:
            output_path = input_path + ".sql"

    print(f"[+] Loading CSV: {input_path}")
    rows = load_exams_from_csv(input_path)

    print(f"[+] Converting {len(rows)} rows to documents…")
    docs = convert_to_documents(rows)

    print(f"[+] Writing SQL to: {output_path}")
    write_sql_to_file(output_path, docs)

    print("[:)] Completed successfully.")
