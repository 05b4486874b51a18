"""
Student registry operations shared by the API routes.

Usage:
    from student_enquiry.core.registry import register_student

    student = register_student(store, body.student)
"""

import logging
from datetime import date
from typing import Any, Mapping, Optional

from pydantic.alias_generators import to_snake

from student_enquiry.core.admission import normalize_student, to_document
from student_enquiry.core.exceptions import DuplicateKeyError, NotFoundError
from student_enquiry.core.store import StudentStore, utc_now
from student_enquiry.core.tokens import current_token_date

logger = logging.getLogger(__name__)

# Maintained by the server; ignored when clients send them
SYSTEM_FIELDS = {
    "id",
    "token_number",
    "token_date",
    "visit_count",
    "update_count",
    "created_at",
    "updated_at",
}
# Derived from other fields, never taken from input
DERIVED_FIELDS = {"cutoff"}
IGNORED_INPUT = SYSTEM_FIELDS | DERIVED_FIELDS


def snake_case_keys(data: Mapping[str, Any]) -> dict:
    return {to_snake(key): value for key, value in data.items()}


def register_student(
    store: StudentStore,
    raw: Mapping[str, Any],
    token_date: Optional[str] = None,
    today: Optional[date] = None,
) -> dict:
    """
    Validate, check the register number, then store the student together
    with the next token of the day. Nothing is written if any step fails.
    """
    raw = {k: v for k, v in snake_case_keys(raw).items() if k not in IGNORED_INPUT}
    document = to_document(normalize_student(raw, today=today))

    # Early answer only; insert_with_token enforces uniqueness atomically
    if store.find_by_register_number(document["register_number"]) is not None:
        raise DuplicateKeyError(document["register_number"])

    document.update(visit_count=0, update_count=1, created_at=utc_now())
    token_date = token_date or current_token_date()
    student = store.insert_with_token(document, token_date)
    logger.info(
        f"Registered student {student['name']} ({student['register_number']}) "
        f"with token {student['token_number']} for {token_date}"
    )
    return student


def update_student(
    store: StudentStore,
    student_id: str,
    patch: Mapping[str, Any],
    today: Optional[date] = None,
) -> dict:
    """
    Merge patch onto the stored record and re-normalize the result. Fields
    of a branch the student no longer follows are removed, and the cutoff
    is recomputed from the marks.
    """
    current = store.get_student(student_id)
    if current is None:
        raise NotFoundError()

    merged = {k: v for k, v in current.items() if k not in IGNORED_INPUT}
    merged.update({k: v for k, v in snake_case_keys(patch).items() if k not in IGNORED_INPUT})
    document = to_document(normalize_student(merged, today=today))

    register_number = document["register_number"]
    if register_number != current.get("register_number"):
        existing = store.find_by_register_number(register_number)
        if existing is not None and existing["id"] != student_id:
            raise DuplicateKeyError(register_number)

    removed = [k for k in current if k not in document and k not in SYSTEM_FIELDS]
    student = store.update_student(student_id, document, removed=removed)
    if removed:
        logger.info(f"Student {student_id} changed path, dropped fields: {', '.join(sorted(removed))}")
    return student


def matches_search(student: Mapping[str, Any], term: str) -> bool:
    term = term.lower()
    return (
        term in str(student.get("name") or "").lower()
        or term in str(student.get("register_number") or "").lower()
    )


def list_students(
    store: StudentStore,
    search: Optional[str] = None,
    course_type: Optional[str] = None,
    token_date: Optional[str] = None,
) -> list[dict]:
    students = store.list_students()
    if search:
        students = [s for s in students if matches_search(s, search.strip())]
    if course_type:
        students = [s for s in students if s.get("course_type") == course_type]
    if token_date:
        students = [s for s in students if s.get("token_date") == token_date]
    return sorted(students, key=lambda s: s.get("created_at") or "", reverse=True)
