import pytest
from fastapi.testclient import TestClient

from student_enquiry.core.config import settings
from student_enquiry.core.database import get_store
from student_enquiry.core.store import MemoryStudentStore
from student_enquiry.main import app


@pytest.fixture(autouse=True)
def open_gate(monkeypatch):
    """Tests run with the admin gate off unless they switch it on."""
    monkeypatch.setattr(settings, "AUTH_MODE", "off")


@pytest.fixture()
def store():
    return MemoryStudentStore()


@pytest.fixture()
def client(store):
    """TestClient wired to a fresh in-memory store."""
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as client_instance:
        yield client_instance
    app.dependency_overrides.clear()


@pytest.fixture()
def hsc_student():
    return {
        "name": "Priya",
        "course_type": "UG",
        "qualification": "HSC",
        "board": "CBSE",
        "register_number": "HSC-1001",
        "dob": "2007-03-14",
        "result_declared": True,
        "physics_marks": "88",
        "chemistry_marks": "92",
        "maths_marks": "95",
        "contact_no": "+91 98765-43210",
    }


@pytest.fixture()
def pg_student():
    return {
        "name": "Sam",
        "course_type": "PG",
        "ug_degree": "B.E. CSE",
        "ug_status": "Completed",
        "register_number": "UG-2201",
        "cgpa": "8.4",
        "contact_no": "9876543211",
        "age": 22,
    }
