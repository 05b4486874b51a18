from datetime import date

import pydantic
import pytest

from student_enquiry.core.admission import compute_cutoff, normalize_student, to_document
from student_enquiry.core.exceptions import ValidationError
from student_enquiry.schemas.student import (
    DiplomaAdmission,
    HscOtherBoardAdmission,
    HscStateBoardAdmission,
    PostgraduateAdmission,
)

TODAY = date(2025, 6, 1)

OTHER_FIELDS = ("percentage", "cgpa", "ug_degree", "ug_status")
MARK_FIELDS = ("physics_marks", "chemistry_marks", "maths_marks", "cutoff")


def normalized(raw):
    return to_document(normalize_student(raw, today=TODAY))


def test_state_board_with_results_computes_cutoff(hsc_student):
    record = normalize_student(hsc_student, today=TODAY)
    doc = to_document(record)

    assert isinstance(record, HscStateBoardAdmission)
    assert doc["cutoff"] == 95 + (88 + 92) / 2
    assert doc["physics_marks"] == 88.0
    assert doc["dob"] == "2007-03-14"
    assert doc["age"] == 18
    for field in OTHER_FIELDS:
        assert field not in doc


@pytest.mark.parametrize(
    "physics,chemistry,maths",
    [(0, 0, 0), (100, 100, 100), (45.5, 67.25, 99.75), ("70", "81.5", "64")],
)
def test_cutoff_formula(hsc_student, physics, chemistry, maths):
    hsc_student.update(physics_marks=physics, chemistry_marks=chemistry, maths_marks=maths)
    doc = normalized(hsc_student)
    expected = float(maths) + (float(physics) + float(chemistry)) / 2
    assert doc["cutoff"] == pytest.approx(expected)


def test_user_supplied_cutoff_is_ignored(hsc_student):
    hsc_student["cutoff"] = 1
    assert normalized(hsc_student)["cutoff"] == 185.0


def test_state_board_without_results_drops_marks(hsc_student):
    hsc_student["result_declared"] = False
    doc = normalized(hsc_student)

    assert doc["result_declared"] is False
    for field in MARK_FIELDS:
        assert field not in doc


def test_state_board_requires_dob(hsc_student):
    del hsc_student["dob"]
    with pytest.raises(ValidationError) as exc:
        normalize_student(hsc_student, today=TODAY)
    assert exc.value.field == "dob"


@pytest.mark.parametrize("subject", ["physics_marks", "chemistry_marks", "maths_marks"])
def test_declared_results_require_each_mark(hsc_student, subject):
    hsc_student[subject] = ""
    with pytest.raises(ValidationError) as exc:
        normalize_student(hsc_student, today=TODAY)
    assert exc.value.field == subject


def test_non_numeric_mark_is_rejected(hsc_student):
    hsc_student["chemistry_marks"] = "ninety"
    with pytest.raises(ValidationError) as exc:
        normalize_student(hsc_student, today=TODAY)
    assert exc.value.field == "chemistry_marks"
    assert "number" in exc.value.message


@pytest.mark.parametrize("bad", ["NaN", "inf", True])
def test_non_finite_or_boolean_mark_is_rejected(hsc_student, bad):
    hsc_student["maths_marks"] = bad
    with pytest.raises(ValidationError):
        normalize_student(hsc_student, today=TODAY)


def test_number_too_large_for_a_float_is_rejected(hsc_student, pg_student):
    hsc_student["physics_marks"] = 10**400
    with pytest.raises(ValidationError) as exc:
        normalize_student(hsc_student, today=TODAY)
    assert exc.value.field == "physics_marks"
    assert exc.value.message == "Physics marks must be a number"

    pg_student["age"] = 10**400
    with pytest.raises(ValidationError) as exc:
        normalize_student(pg_student, today=TODAY)
    assert exc.value.field == "age"


def test_negative_mark_is_rejected(hsc_student):
    hsc_student["physics_marks"] = -1
    with pytest.raises(ValidationError) as exc:
        normalize_student(hsc_student, today=TODAY)
    assert exc.value.field == "physics_marks"


def test_scenario_a_other_board_keeps_percentage_only():
    raw = {
        "name": "Alex",
        "course_type": "UG",
        "qualification": "HSC",
        "board": "Other",
        "register_number": "REG-001",
        "percentage": 78.5,
        "contact_no": "9876543210",
    }
    record = normalize_student(raw, today=TODAY)
    doc = to_document(record)

    assert isinstance(record, HscOtherBoardAdmission)
    assert doc["percentage"] == 78.5
    assert doc["register_number"] == "REG-001"
    for field in MARK_FIELDS + ("result_declared", "cgpa"):
        assert field not in doc


def test_other_board_strips_abandoned_marks():
    raw = {
        "name": "Alex",
        "course_type": "UG",
        "qualification": "HSC",
        "board": "Other",
        "register_number": "REG-001",
        "percentage": "81",
        "physics_marks": 90,
        "result_declared": True,
        "ug_degree": "B.Sc",
        "contact_no": "9876543210",
    }
    doc = normalized(raw)
    assert set(doc) == {
        "name", "course_type", "qualification", "board",
        "register_number", "percentage", "contact_no",
    }


def test_other_board_requires_percentage():
    raw = {
        "name": "Alex",
        "course_type": "UG",
        "qualification": "HSC",
        "board": "Other",
        "register_number": "REG-001",
        "contact_no": "9876543210",
    }
    with pytest.raises(ValidationError) as exc:
        normalize_student(raw, today=TODAY)
    assert exc.value.field == "percentage"


def test_diploma_percentage_only_when_declared():
    raw = {
        "name": "Kiran",
        "course_type": "UG",
        "qualification": "Diploma",
        "register_number": "DIP-7",
        "percentage": "72",
        "contact_no": "9876500000",
    }
    record = normalize_student(raw, today=TODAY)
    assert isinstance(record, DiplomaAdmission)
    assert "percentage" not in to_document(record)

    raw["result_declared"] = "true"
    assert normalized(raw)["percentage"] == 72.0

    raw["percentage"] = ""
    with pytest.raises(ValidationError) as exc:
        normalize_student(raw, today=TODAY)
    assert exc.value.field == "percentage"


def test_scenario_b_pg_pursuing_needs_no_scores():
    raw = {
        "name": "Sam",
        "course_type": "PG",
        "ug_degree": "B.E. CSE",
        "ug_status": "Pursuing",
        "register_number": "REG-002",
        "contact_no": "9876543211",
        "percentage": 70,
    }
    record = normalize_student(raw, today=TODAY)
    doc = to_document(record)

    assert isinstance(record, PostgraduateAdmission)
    assert "percentage" not in doc
    assert "cgpa" not in doc


def test_scenario_c_pg_completed_without_scores_fails():
    raw = {
        "name": "Sam",
        "course_type": "PG",
        "ug_degree": "B.E. CSE",
        "ug_status": "Completed",
        "register_number": "REG-003",
        "contact_no": "9876543211",
    }
    with pytest.raises(ValidationError) as exc:
        normalize_student(raw, today=TODAY)
    assert exc.value.field == "percentage"
    assert exc.value.message == "Percentage or CGPA is required"


@pytest.mark.parametrize(
    "scores,expected",
    [
        ({"percentage": "68"}, {"percentage": 68.0}),
        ({"cgpa": 8.4}, {"cgpa": 8.4}),
        ({"percentage": 68, "cgpa": "7.9"}, {"percentage": 68.0, "cgpa": 7.9}),
        ({"percentage": "", "cgpa": "7"}, {"cgpa": 7.0}),
    ],
)
def test_pg_completed_accepts_either_score(pg_student, scores, expected):
    pg_student.pop("cgpa")
    pg_student.update(scores)
    doc = normalized(pg_student)
    for field in ("percentage", "cgpa"):
        assert doc.get(field) == expected.get(field)
    for field in MARK_FIELDS + ("qualification", "board"):
        assert field not in doc


def test_first_failure_follows_chosen_path():
    # Qualification is checked before anything under it
    with pytest.raises(ValidationError) as exc:
        normalize_student({"name": "A", "course_type": "UG"}, today=TODAY)
    assert exc.value.field == "qualification"

    with pytest.raises(ValidationError) as exc:
        normalize_student({"name": "A", "course_type": "UG", "qualification": "HSC"}, today=TODAY)
    assert exc.value.field == "board"

    with pytest.raises(ValidationError) as exc:
        normalize_student({"name": "A", "course_type": "PG"}, today=TODAY)
    assert exc.value.field == "ug_degree"


@pytest.mark.parametrize(
    "raw,field",
    [
        ({}, "name"),
        ({"name": "   "}, "name"),
        ({"name": "A"}, "course_type"),
        ({"name": "A", "course_type": "MBA"}, "course_type"),
        ({"name": "A", "course_type": "UG", "qualification": "Degree"}, "qualification"),
        ({"name": "A", "course_type": "PG", "ug_degree": "BA", "ug_status": "Done"}, "ug_status"),
    ],
)
def test_missing_or_unknown_discriminators(raw, field):
    with pytest.raises(ValidationError) as exc:
        normalize_student(raw, today=TODAY)
    assert exc.value.field == field


@pytest.mark.parametrize("contact_no", ["12345", "98765abc10", "++9876543210", ""])
def test_invalid_contact_number(pg_student, contact_no):
    pg_student["contact_no"] = contact_no
    with pytest.raises(ValidationError) as exc:
        normalize_student(pg_student, today=TODAY)
    assert exc.value.field == "contact_no"


def test_age_derived_from_dob_overrides_input(pg_student):
    pg_student.update(dob="2003-06-02", age=40)
    doc = normalized(pg_student)
    assert doc["age"] == 21
    assert doc["dob"] == "2003-06-02"


@pytest.mark.parametrize("age", ["0", -3, "21.5", "twenty"])
def test_invalid_age(pg_student, age):
    pg_student["age"] = age
    with pytest.raises(ValidationError) as exc:
        normalize_student(pg_student, today=TODAY)
    assert exc.value.field == "age"


def test_future_dob_is_rejected(hsc_student):
    hsc_student["dob"] = "2030-01-01"
    with pytest.raises(ValidationError) as exc:
        normalize_student(hsc_student, today=TODAY)
    assert exc.value.field == "dob"


def test_normalization_is_idempotent(hsc_student, pg_student):
    for raw in (hsc_student, pg_student):
        assert normalized(raw) == normalized(raw)
        assert normalize_student(raw, today=TODAY) == normalize_student(raw, today=TODAY)


def test_branch_models_reject_illegal_combinations():
    with pytest.raises(pydantic.ValidationError):
        HscStateBoardAdmission(
            name="A", register_number="R", contact_no="9876543210",
            board="CBSE", dob=date(2007, 1, 1), result_declared=True,
        )
    with pytest.raises(pydantic.ValidationError):
        PostgraduateAdmission(
            name="A", register_number="R", contact_no="9876543210",
            ug_degree="BA", ug_status="Pursuing", cgpa=8.0,
        )


def test_compute_cutoff():
    assert compute_cutoff(80, 90, 100) == 185
