"""
Student API routes.

Provides endpoints for:
- Listing students with their current week pulled up
- Attendance history across all students
- Registering, editing and deleting students
- Per-week updates: attendance, homework, quiz grade, message state

Every endpoint requires a bearer token. The verified caller is passed into
WeekRecordStore together with the request's database session.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from attendance.auth import Caller, get_current_caller
from attendance.cache import mark_cacheable, mark_invalidated
from attendance.database import get_db
from attendance.schemas import (
    AttendanceRequest, HomeworkRequest, MessageStateRequest, QuizRequest, StudentFields
)
from attendance.services.projector import project_student
from attendance.services.week_store import WeekRecordStore

router = APIRouter(prefix="/api/students")


def get_store(db: Session = Depends(get_db),
              caller: Caller = Depends(get_current_caller)) -> WeekRecordStore:
    """Per-request store bound to the caller's identity."""
    return WeekRecordStore(db, caller)


def _week_response(student_id: int, record, message: str) -> dict:
    return {
        "message": message,
        "id": student_id,
        "week": record.to_document(),
    }


# ── Reads ────────────────────────────────────────────────────

@router.get("")
def list_students(response: Response, store: WeekRecordStore = Depends(get_store)):
    """All students, each with its current week flattened in."""
    mark_cacheable(response)
    return store.list_students()


@router.get("/history")
def attendance_history(response: Response, store: WeekRecordStore = Depends(get_store)):
    """Every attended week across all students, newest first."""
    mark_cacheable(response)
    return store.attendance_history()


@router.get("/{student_id}")
def get_student(student_id: int, response: Response,
                store: WeekRecordStore = Depends(get_store)):
    """One student in the projected shape."""
    mark_cacheable(response)
    return project_student(store.get_student(student_id))


# ── Student lifecycle ────────────────────────────────────────

@router.post("")
def create_student(payload: StudentFields, response: Response,
                   store: WeekRecordStore = Depends(get_store)):
    """Register a student; the id is chosen by the center."""
    student = store.create_student(payload.model_dump(exclude_unset=True))
    mark_invalidated(response, student.id)
    return {"id": student.id}


@router.put("/{student_id}")
def update_student(student_id: int, payload: StudentFields, response: Response,
                   store: WeekRecordStore = Depends(get_store)):
    """Edit profile fields. Only fields present in the body are changed."""
    student = store.update_student(student_id, payload.model_dump(exclude_unset=True))
    mark_invalidated(response, student_id)
    return project_student(student)


@router.delete("/{student_id}")
def delete_student(student_id: int, response: Response,
                   store: WeekRecordStore = Depends(get_store)):
    """Delete a student and all of its week records."""
    store.delete_student(student_id)
    mark_invalidated(response, student_id)
    return {"message": "Student deleted successfully", "id": student_id}


# ── Week updates ─────────────────────────────────────────────

@router.post("/{student_id}/attend")
def record_attendance(student_id: int, body: AttendanceRequest, response: Response,
                      store: WeekRecordStore = Depends(get_store)):
    """Mark the current (or given) week attended at a center."""
    record = store.apply_attendance(student_id, body.center, body.timestamp, body.week)
    mark_invalidated(response, student_id)
    return _week_response(student_id, record, "Attendance recorded")


@router.post("/{student_id}/hw")
def update_homework(student_id: int, body: HomeworkRequest, response: Response,
                    store: WeekRecordStore = Depends(get_store)):
    """Set the homework status of the current (or given) week."""
    record = store.apply_homework(student_id, body.hw_done, body.week)
    mark_invalidated(response, student_id)
    return _week_response(student_id, record, "Homework status updated")


@router.post("/{student_id}/quiz_degree")
def update_quiz_degree(student_id: int, body: QuizRequest, response: Response,
                       store: WeekRecordStore = Depends(get_store)):
    """Store the quiz grade of the current (or given) week as sent."""
    record = store.apply_quiz_grade(student_id, body.quiz_degree, body.week)
    mark_invalidated(response, student_id)
    return _week_response(student_id, record, "Quiz grade updated")


@router.post("/{student_id}/message_state")
def update_message_state(student_id: int, body: MessageStateRequest, response: Response,
                         store: WeekRecordStore = Depends(get_store)):
    """Record whether the WhatsApp message for the week was sent."""
    record = store.apply_message_state(student_id, body.message_state, body.week)
    mark_invalidated(response, student_id)
    return _week_response(student_id, record, "Message state updated")
