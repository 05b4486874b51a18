"""
Admission form validation and normalization.

The form branches on course type, then qualification, then board or UG
status. Validation walks the branch the applicant already chose and stops
at the first unmet requirement. The result is one of the branch models in
schemas.student, carrying only the fields of that branch.

Usage:
    from student_enquiry.core.admission import normalize_student, to_document

    record = normalize_student(body.student)
    document = to_document(record)
"""

import math
import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

from dateutil import parser as date_parser

from student_enquiry.core.exceptions import ValidationError
from student_enquiry.schemas.student import (
    AdmissionRecord,
    DiplomaAdmission,
    HscOtherBoardAdmission,
    HscStateBoardAdmission,
    PostgraduateAdmission,
)

COURSE_TYPES = ("UG", "PG")
QUALIFICATIONS = ("HSC", "Diploma")
BOARDS = ("Matric", "CBSE", "Other")
STATE_BOARDS = ("Matric", "CBSE")
UG_STATUSES = ("Completed", "Pursuing")

PHONE_PATTERN = re.compile(r"^\+?[\d\s-]+$")
MIN_PHONE_DIGITS = 10

LABELS = {
    "name": "Name",
    "course_type": "Course type",
    "qualification": "Qualification",
    "board": "Board",
    "register_number": "Register Number",
    "dob": "Date of birth",
    "result_declared": "Result declared",
    "physics_marks": "Physics marks",
    "chemistry_marks": "Chemistry marks",
    "maths_marks": "Maths marks",
    "percentage": "Percentage",
    "cgpa": "CGPA",
    "ug_degree": "UG Degree",
    "ug_status": "UG Status",
    "contact_no": "Contact number",
    "age": "Age",
}


def compute_cutoff(physics: float, chemistry: float, maths: float) -> float:
    return maths + (physics + chemistry) / 2


def normalize_student(raw: Mapping[str, Any], today: Optional[date] = None) -> AdmissionRecord:
    """
    Validate raw form input and build the normalized admission record.
    Raises ValidationError naming the first field that fails.
    """
    today = today or date.today()
    form = _Form(raw)

    common = {"name": form.text("name", required=True)}
    course_type = form.choice("course_type", COURSE_TYPES)

    if course_type == "UG":
        model, fields = _undergraduate(form)
    else:
        model, fields = _postgraduate(form)

    common["contact_no"] = _contact_no(form)

    dob = fields.get("dob") or form.date_value("dob", required=False)
    if dob is not None:
        if dob > today:
            raise ValidationError("dob", "Date of birth cannot be in the future")
        common["dob"] = dob
        common["age"] = _age_on(dob, today)
        if common["age"] < 1:
            raise ValidationError("dob", "Date of birth gives an age below one year")
    else:
        common["age"] = form.positive_int("age", required=False)

    return model(**{**common, **fields})


def to_document(record: AdmissionRecord) -> dict:
    """JSON-ready dict of the record with unset optional fields left out."""
    return record.model_dump(mode="json", exclude_none=True)


def _undergraduate(form: "_Form"):
    qualification = form.choice("qualification", QUALIFICATIONS)

    if qualification == "HSC":
        board = form.choice("board", BOARDS)
        if board in STATE_BOARDS:
            fields = {
                "board": board,
                "register_number": form.text("register_number", required=True),
                "dob": form.date_value("dob", required=True),
                "result_declared": form.flag("result_declared"),
            }
            if fields["result_declared"]:
                for subject in ("physics_marks", "chemistry_marks", "maths_marks"):
                    fields[subject] = form.number(subject, required=True, minimum=0)
                fields["cutoff"] = compute_cutoff(
                    fields["physics_marks"], fields["chemistry_marks"], fields["maths_marks"]
                )
            return HscStateBoardAdmission, fields

        return HscOtherBoardAdmission, {
            "register_number": form.text("register_number", required=True),
            "percentage": form.number("percentage", required=True),
        }

    fields = {
        "register_number": form.text("register_number", required=True),
        "result_declared": form.flag("result_declared"),
    }
    if fields["result_declared"]:
        fields["percentage"] = form.number("percentage", required=True)
    return DiplomaAdmission, fields


def _postgraduate(form: "_Form"):
    fields = {
        "ug_degree": form.text("ug_degree", required=True),
        "ug_status": form.choice("ug_status", UG_STATUSES),
        "register_number": form.text("register_number", required=True),
    }
    if fields["ug_status"] == "Completed":
        percentage = form.number("percentage", required=False)
        cgpa = form.number("cgpa", required=False)
        if percentage is None and cgpa is None:
            raise ValidationError("percentage", "Percentage or CGPA is required")
        if percentage is not None:
            fields["percentage"] = percentage
        if cgpa is not None:
            fields["cgpa"] = cgpa
    return PostgraduateAdmission, fields


def _contact_no(form: "_Form") -> str:
    contact_no = form.text("contact_no", required=True)
    digits = sum(ch.isdigit() for ch in contact_no)
    if not PHONE_PATTERN.match(contact_no) or digits < MIN_PHONE_DIGITS:
        raise ValidationError("contact_no", "Invalid contact number")
    return contact_no


def _age_on(dob: date, today: date) -> int:
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


class _Form:
    """Read access to raw snake_case input, with coercion."""

    def __init__(self, raw: Mapping[str, Any]):
        self.raw = raw

    def get(self, field: str) -> Any:
        value = self.raw.get(field)
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                return None
        return value

    def text(self, field: str, required: bool) -> Optional[str]:
        value = self.get(field)
        if value is None:
            if required:
                raise ValidationError(field, f"{LABELS[field]} is required")
            return None
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValidationError(field, f"{LABELS[field]} must be text")
        return str(value)

    def choice(self, field: str, options: tuple) -> str:
        value = self.get(field)
        if value is None:
            raise ValidationError(field, f"{LABELS[field]} is required")
        if value not in options:
            raise ValidationError(field, f"{LABELS[field]} must be one of: {', '.join(options)}")
        return value

    def flag(self, field: str) -> bool:
        value = self.get(field)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValidationError(field, f"{LABELS[field]} must be true or false")

    def number(self, field: str, required: bool, minimum: Optional[float] = None) -> Optional[float]:
        value = self.get(field)
        if value is None:
            if required:
                raise ValidationError(field, f"{LABELS[field]} is required")
            return None
        if isinstance(value, bool):
            raise ValidationError(field, f"{LABELS[field]} must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError(field, f"{LABELS[field]} must be a number")
        if not math.isfinite(number):
            raise ValidationError(field, f"{LABELS[field]} must be a number")
        if minimum is not None and number < minimum:
            raise ValidationError(field, f"{LABELS[field]} cannot be negative")
        return number

    def positive_int(self, field: str, required: bool) -> Optional[int]:
        number = self.number(field, required=required)
        if number is None:
            return None
        if number != int(number) or number < 1:
            raise ValidationError(field, f"{LABELS[field]} must be a positive whole number")
        return int(number)

    def date_value(self, field: str, required: bool) -> Optional[date]:
        value = self.get(field)
        if value is None:
            if required:
                raise ValidationError(field, f"{LABELS[field]} is required")
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if not isinstance(value, str):
            raise ValidationError(field, f"{LABELS[field]} must be a date (YYYY-MM-DD)")
        try:
            return date_parser.isoparse(value).date()
        except ValueError:
            raise ValidationError(field, f"{LABELS[field]} must be a date (YYYY-MM-DD)")
