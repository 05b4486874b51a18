"""
Pydantic schemas for student admission records.

A normalized admission is one of four branch models. Each branch only
declares the fields that belong to it, so a record can never carry marks
from an abandoned HSC path or a CGPA on an undergraduate application.
"""

from datetime import date
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AdmissionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    age: Optional[int] = Field(None, gt=0)
    course_type: Literal["UG", "PG"]
    register_number: str = Field(..., min_length=1)
    contact_no: str
    dob: Optional[date] = None


class HscStateBoardAdmission(AdmissionBase):
    """UG applicant with HSC from the Matric or CBSE board."""

    course_type: Literal["UG"] = "UG"
    qualification: Literal["HSC"] = "HSC"
    board: Literal["Matric", "CBSE"]
    dob: date
    result_declared: bool = False
    physics_marks: Optional[float] = Field(None, ge=0)
    chemistry_marks: Optional[float] = Field(None, ge=0)
    maths_marks: Optional[float] = Field(None, ge=0)
    cutoff: Optional[float] = None

    @model_validator(mode="after")
    def marks_follow_result(self):
        marks = (self.physics_marks, self.chemistry_marks, self.maths_marks, self.cutoff)
        if self.result_declared and any(m is None for m in marks):
            raise ValueError("declared results need all three marks and the cutoff")
        if not self.result_declared and any(m is not None for m in marks):
            raise ValueError("marks are only recorded once results are declared")
        return self


class HscOtherBoardAdmission(AdmissionBase):
    """UG applicant with HSC from another state board."""

    course_type: Literal["UG"] = "UG"
    qualification: Literal["HSC"] = "HSC"
    board: Literal["Other"] = "Other"
    percentage: float


class DiplomaAdmission(AdmissionBase):
    course_type: Literal["UG"] = "UG"
    qualification: Literal["Diploma"] = "Diploma"
    result_declared: bool = False
    percentage: Optional[float] = None

    @model_validator(mode="after")
    def percentage_follows_result(self):
        if self.result_declared != (self.percentage is not None):
            raise ValueError("percentage is recorded exactly when results are declared")
        return self


class PostgraduateAdmission(AdmissionBase):
    course_type: Literal["PG"] = "PG"
    ug_degree: str = Field(..., min_length=1)
    ug_status: Literal["Completed", "Pursuing"]
    percentage: Optional[float] = None
    cgpa: Optional[float] = None

    @model_validator(mode="after")
    def scores_follow_status(self):
        has_score = self.percentage is not None or self.cgpa is not None
        if self.ug_status == "Completed" and not has_score:
            raise ValueError("completed degrees need a percentage or CGPA")
        if self.ug_status == "Pursuing" and has_score:
            raise ValueError("scores are only recorded for completed degrees")
        return self


AdmissionRecord = Union[
    HscStateBoardAdmission,
    HscOtherBoardAdmission,
    DiplomaAdmission,
    PostgraduateAdmission,
]


# ---- Request bodies ----
class StudentSubmission(BaseModel):
    student: dict[str, Any]

