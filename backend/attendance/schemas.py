"""
Pydantic schemas for week records and request bodies.

WeekRecord is the typed form of one element of ``Student.weeks``. It is
built from stored JSON only through services.weeks.load_weeks(), which
normalizes legacy values first, so a WeekRecord never holds a raw boolean
homework flag.

Request bodies accept both the snake_case names the dashboard posts
(``parents_phone``, ``main_center``) and the camelCase ones used in the
stored documents.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class HomeworkStatus(str, Enum):
    """Homework state of one week."""
    DONE = "Done"
    NOT_COMPLETED = "Not Completed"
    NOT_DONE = "Not Done"
    NO_HOMEWORK = "No Homework"


QuizValue = Optional[Union[int, float, str]]


class WeekRecord(BaseModel):
    """One of the 20 week slots of a student."""
    model_config = ConfigDict(populate_by_name=True)

    week: int = Field(..., ge=1, description="Week number, equal to list position + 1")
    attended: bool = Field(False)
    last_attendance: Optional[datetime] = Field(None, alias="lastAttendance")
    last_attendance_center: Optional[str] = Field(None, alias="lastAttendanceCenter")
    hw_done: HomeworkStatus = Field(HomeworkStatus.NO_HOMEWORK, alias="hwDone")
    quiz_degree: QuizValue = Field(None, alias="quizDegree",
                                   description="Free-form 'scored/total' value, stored verbatim")
    message_state: bool = Field(False,
                                validation_alias=AliasChoices("message_state", "messageState"),
                                serialization_alias="message_state")

    def to_document(self) -> dict:
        """JSON-ready dict in the stored/wire key format."""
        return self.model_dump(mode="json", by_alias=True)


# ── Request bodies ───────────────────────────────────────────

class StudentFields(BaseModel):
    """
    Student profile fields. Everything is optional at the schema level;
    WeekRecordStore decides what is required so that a missing field is
    reported as InvalidArgument like every other validation failure.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    name: Optional[str] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    phone: Optional[str] = None
    parents_phone: Optional[str] = Field(
        None, validation_alias=AliasChoices("parents_phone", "parentsPhone"))
    main_center: Optional[str] = Field(
        None, validation_alias=AliasChoices("main_center", "mainCenter"))
    center: Optional[str] = None
    age: Optional[int] = None


class AttendanceRequest(BaseModel):
    """Body of POST /api/students/{id}/attend."""
    center: str = Field(..., description="Center where the student showed up")
    timestamp: Optional[datetime] = Field(None, description="Defaults to now (UTC)")
    week: Optional[int] = Field(None, description="Explicit week; current week when omitted")


class HomeworkRequest(BaseModel):
    """Body of POST /api/students/{id}/hw."""
    model_config = ConfigDict(populate_by_name=True)

    hw_done: Optional[Union[bool, str]] = Field(
        ..., validation_alias=AliasChoices("hwDone", "hw_done"))
    week: Optional[int] = None


class QuizRequest(BaseModel):
    """Body of POST /api/students/{id}/quiz_degree."""
    model_config = ConfigDict(populate_by_name=True)

    quiz_degree: QuizValue = Field(
        ..., validation_alias=AliasChoices("quizDegree", "quiz_degree"))
    week: Optional[int] = None


class MessageStateRequest(BaseModel):
    """Body of POST /api/students/{id}/message_state."""
    model_config = ConfigDict(populate_by_name=True)

    message_state: bool = Field(
        ..., validation_alias=AliasChoices("message_state", "messageState"))
    week: Optional[int] = None
