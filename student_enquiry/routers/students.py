"""
Students router: register, list/search, view, edit, delete.

Handlers are plain functions because store calls block; FastAPI runs
them in its threadpool.
"""

from typing import Any, Literal, Optional

from fastapi import APIRouter, Body, Depends, status

from student_enquiry.core import registry
from student_enquiry.core.database import get_store
from student_enquiry.core.security import get_current_admin
from student_enquiry.core.store import StudentStore
from student_enquiry.schemas.student import StudentSubmission
from student_enquiry.utils.response import success_response

router = APIRouter(
    prefix="/api/students",
    tags=["Students"],
    dependencies=[Depends(get_current_admin)],
)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_student(
    body: StudentSubmission,
    store: StudentStore = Depends(get_store),
):
    student = registry.register_student(store, body.student)
    return success_response(data=student, message=f"Student registered with token {student['token_number']}")


@router.get("")
def list_students(
    search: Optional[str] = None,
    course_type: Optional[Literal["UG", "PG"]] = None,
    token_date: Optional[str] = None,
    store: StudentStore = Depends(get_store),
):
    students = registry.list_students(store, search=search, course_type=course_type, token_date=token_date)
    return success_response(data=students)


@router.get("/{student_id}")
def view_student(
    student_id: str,
    store: StudentStore = Depends(get_store),
):
    """Fetch one student; every view counts as a visit."""
    student = store.record_visit(student_id)
    return success_response(data=student)


@router.put("/{student_id}")
def edit_student(
    student_id: str,
    body: dict[str, Any] = Body(...),
    store: StudentStore = Depends(get_store),
):
    student = registry.update_student(store, student_id, body)
    return success_response(data=student, message="Student updated")


@router.delete("/{student_id}")
def delete_student(
    student_id: str,
    store: StudentStore = Depends(get_store),
):
    store.delete_student(student_id)
    return success_response(message="Student deleted")
