"""
WeekRecordStore - reads and writes student documents and their weeks.

Every write is a read-modify-write of one student row guarded by the
row's ``revision`` (SQLAlchemy version_id_col). If another request
committed in between, the UPDATE matches no row, SQLAlchemy raises
StaleDataError, and the store reloads the student and re-applies the
change. Week targets are recomputed from the reloaded data on every
attempt. After UPDATE_MAX_ATTEMPTS lost races the store gives up with
Conflict.

Validation runs before anything is assigned on the ORM object, so a
rejected request never leaves a partial change behind.
"""

import re
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from attendance.auth import Caller
from attendance.config import AGE_MAX, AGE_MIN, PHONE_LENGTH, UPDATE_MAX_ATTEMPTS
from attendance.errors import Conflict, DashboardError, InternalError, InvalidArgument, NotFound
from attendance.models.student import Student
from attendance.schemas import WeekRecord
from attendance.services.projector import history_entries, project_student
from attendance.services.weeks import (
    dump_weeks, load_weeks, new_weeks, normalize_timestamp, parse_homework_value,
    resolve_week_index
)
from attendance.logging_config import get_logger, log_with_context

logger = get_logger("weeks")
db_logger = get_logger("db")

# ──────────────────────────────────────────────────────────────
# Profile field rules
# ──────────────────────────────────────────────────────────────
REQUIRED_FIELDS = ["id", "name", "grade", "phone", "parents_phone", "main_center", "school"]
PROFILE_FIELDS = ["name", "grade", "school", "phone", "parents_phone", "main_center", "center", "age"]
FIELD_LABELS = {
    "id": "Student ID",
    "name": "Name",
    "grade": "Grade",
    "phone": "Student phone number",
    "parents_phone": "Parent's phone number",
    "main_center": "Main center",
    "school": "School",
}
PHONE_PATTERN = re.compile(r"[0-9]{%d}" % PHONE_LENGTH)
NEVER_ATTENDED = datetime.min.replace(tzinfo=timezone.utc)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _history_key(entry: dict):
    # Compare instants, not serialized strings
    attended_at = normalize_timestamp(entry["lastAttendance"]) or NEVER_ATTENDED
    return attended_at, entry["id"], entry["week"]


def validate_profile(fields: dict) -> dict:
    """
    Check a complete set of profile fields and return a cleaned copy.

    Raises:
        InvalidArgument: a required field is missing or blank, the id is
            not a positive integer, a phone is not exactly 11 digits, both
            phones are equal, or age is outside AGE_MIN..AGE_MAX.
    """
    missing = [FIELD_LABELS[f] for f in REQUIRED_FIELDS if _is_blank(fields.get(f))]
    if missing:
        raise InvalidArgument("Missing required fields: {}".format(", ".join(missing)))

    student_id = fields["id"]
    if isinstance(student_id, bool) or not isinstance(student_id, int) or student_id <= 0:
        raise InvalidArgument("Student ID must be a positive number.")

    cleaned = {f: fields.get(f) for f in ["id"] + PROFILE_FIELDS}
    for key in ("name", "grade", "school", "main_center", "center"):
        if isinstance(cleaned[key], str):
            cleaned[key] = cleaned[key].strip() or None

    phone, parents_phone = cleaned["phone"], cleaned["parents_phone"]
    if not isinstance(phone, str) or not PHONE_PATTERN.fullmatch(phone):
        raise InvalidArgument("Student phone number must be exactly {} digits".format(PHONE_LENGTH))
    if not isinstance(parents_phone, str) or not PHONE_PATTERN.fullmatch(parents_phone):
        raise InvalidArgument("Parent's phone number must be exactly {} digits".format(PHONE_LENGTH))
    if phone == parents_phone:
        raise InvalidArgument("Student phone number cannot be the same as parent phone number")

    age = cleaned["age"]
    if age is not None:
        if isinstance(age, bool) or not isinstance(age, int) or not AGE_MIN <= age <= AGE_MAX:
            raise InvalidArgument("Age must be between {} and {}".format(AGE_MIN, AGE_MAX))

    return cleaned


class WeekRecordStore:
    """
    Per-request facade over the students table.

    Args:
        db: Session used for every read and write
        caller: Verified identity of the requester, recorded in logs
        max_attempts: Revision-conflict attempts before giving up
    """

    def __init__(self, db: Session, caller: Caller, max_attempts: int = UPDATE_MAX_ATTEMPTS):
        self.db = db
        self.caller = caller
        self.max_attempts = max_attempts

    def _context(self, student_id=None, **extra) -> dict:
        context = {"actor": self.caller.subject}
        if student_id is not None:
            context["student_id"] = student_id
        context.update(extra)
        return context

    def _load_student(self, student_id: int) -> Student:
        try:
            student = self.db.get(Student, student_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise self._store_failure("load", e, student_id)
        if student is None:
            raise NotFound("Student not found")
        return student

    def _store_failure(self, action: str, error: Exception, student_id=None) -> InternalError:
        self.db.rollback()
        log_with_context(db_logger, "ERROR",
            "Store failure during {}: {}".format(action, error),
            context=self._context(student_id), exc_info=True)
        return InternalError("Internal server error")

    # ── Reads ────────────────────────────────────────────────

    def get_student(self, student_id: int) -> Student:
        """Return the student or raise NotFound."""
        return self._load_student(student_id)

    def list_students(self) -> List[dict]:
        """All students ordered by id, each projected with its current week."""
        start_time = time.time()
        try:
            students = self.db.query(Student).order_by(Student.id).all()
        except SQLAlchemyError as e:
            raise self._store_failure("list", e)

        result = [project_student(s) for s in students]
        log_with_context(logger, "INFO", "Listed {} students".format(len(result)),
            context=self._context(),
            extra_data={"duration_ms": round((time.time() - start_time) * 1000, 2)})
        return result

    def attendance_history(self) -> List[dict]:
        """Every attended week of every student, newest attendance first."""
        try:
            students = self.db.query(Student).order_by(Student.id).all()
        except SQLAlchemyError as e:
            raise self._store_failure("history", e)

        entries = []
        for student in students:
            entries.extend(history_entries(student))
        entries.sort(key=_history_key, reverse=True)
        return entries

    # ── Student lifecycle ────────────────────────────────────

    def create_student(self, fields: dict) -> Student:
        """
        Register a student with 20 zero-state weeks.

        Raises:
            InvalidArgument: see validate_profile()
            Conflict: a student with this id already exists
        """
        data = validate_profile(fields)

        try:
            existing = self.db.get(Student, data["id"])
        except SQLAlchemyError as e:
            raise self._store_failure("create", e, data["id"])
        if existing is not None:
            raise Conflict("Student ID already exists")

        student = Student(weeks=dump_weeks(new_weeks()), **data)
        self.db.add(student)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request registered the same id after our lookup
            self.db.rollback()
            raise Conflict("Student ID already exists")
        except SQLAlchemyError as e:
            raise self._store_failure("create", e, data["id"])

        self.db.refresh(student)
        log_with_context(logger, "INFO", "Student {} registered".format(student.id),
            context=self._context(student.id))
        return student

    def update_student(self, student_id: int, fields: dict) -> Student:
        """
        Apply a partial profile edit. The merged profile must still pass
        validate_profile(); the id itself cannot change.
        """
        if "id" in fields and fields["id"] is not None and fields["id"] != student_id:
            raise InvalidArgument("Student ID cannot be changed")
        changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}

        def mutate(student: Student) -> Student:
            merged = {f: getattr(student, f) for f in PROFILE_FIELDS}
            merged.update(changes)
            merged["id"] = student.id
            cleaned = validate_profile(merged)
            for key in PROFILE_FIELDS:
                setattr(student, key, cleaned[key])
            return student

        student = self._write(student_id, mutate, "profile update")
        self.db.refresh(student)
        return student

    def delete_student(self, student_id: int) -> None:
        """Remove a student and all of its week records."""
        student = self._load_student(student_id)
        self.db.delete(student)
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise Conflict("Student {} was modified concurrently, please retry".format(student_id))
        except SQLAlchemyError as e:
            raise self._store_failure("delete", e, student_id)
        log_with_context(logger, "INFO", "Student {} deleted".format(student_id),
            context=self._context(student_id))

    # ── Week updates ─────────────────────────────────────────

    def apply_attendance(self, student_id: int, center: str,
                         timestamp: Optional[datetime] = None,
                         week: Optional[int] = None) -> WeekRecord:
        """
        Mark a week attended at ``center``. Re-applying to an attended week
        overwrites the timestamp and center; it never un-marks the week.
        Timestamps are stored in UTC; naive ones are taken to be UTC.
        """
        if _is_blank(center):
            raise InvalidArgument("Attendance center is required")
        changes = {
            "attended": True,
            "last_attendance": normalize_timestamp(timestamp) or datetime.now(timezone.utc),
            "last_attendance_center": center.strip(),
        }
        return self._update_week(student_id, week, changes, "attendance")

    def apply_homework(self, student_id: int, value, week: Optional[int] = None) -> WeekRecord:
        """Set the homework status; only the four enumerated strings are accepted."""
        status = parse_homework_value(value)
        return self._update_week(student_id, week, {"hw_done": status}, "homework")

    def apply_quiz_grade(self, student_id: int, value, week: Optional[int] = None) -> WeekRecord:
        """Store a quiz grade verbatim (string, number or null)."""
        return self._update_week(student_id, week, {"quiz_degree": value}, "quiz grade")

    def apply_message_state(self, student_id: int, sent: bool,
                            week: Optional[int] = None) -> WeekRecord:
        """Record whether the WhatsApp notification for a week was sent."""
        if not isinstance(sent, bool):
            raise InvalidArgument("message_state must be a boolean")
        return self._update_week(student_id, week, {"message_state": sent}, "message state")

    def _update_week(self, student_id: int, week: Optional[int],
                     changes: dict, action: str) -> WeekRecord:
        if week is not None:
            # Reject a bad explicit week before touching the store
            resolve_week_index(new_weeks(), week)

        def mutate(student: Student) -> WeekRecord:
            weeks = load_weeks(student.weeks)
            index = resolve_week_index(weeks, week)
            weeks[index] = weeks[index].model_copy(update=changes)
            student.weeks = dump_weeks(weeks)
            return weeks[index]

        record = self._write(student_id, mutate, action)
        log_with_context(logger, "INFO",
            "Week {} {} updated for student {}".format(record.week, action, student_id),
            context=self._context(student_id, week=record.week),
            extra_data={"fields": sorted(changes)})
        return record

    def _write(self, student_id: int, mutate: Callable[[Student], object], action: str):
        """
        Load, mutate and commit one student with revision checking,
        retrying on StaleDataError up to max_attempts times.
        """
        for attempt in range(1, self.max_attempts + 1):
            student = self._load_student(student_id)
            try:
                result = mutate(student)
            except DashboardError:
                self.db.rollback()
                raise

            try:
                self.db.commit()
                return result
            except StaleDataError:
                self.db.rollback()
                log_with_context(db_logger, "WARNING",
                    "Revision conflict on {} for student {}".format(action, student_id),
                    context=self._context(student_id),
                    extra_data={"attempt": attempt, "max_attempts": self.max_attempts})
            except SQLAlchemyError as e:
                raise self._store_failure(action, e, student_id)

        log_with_context(db_logger, "ERROR",
            "Giving up on {} for student {} after {} conflicts".format(action, student_id, self.max_attempts),
            context=self._context(student_id))
        raise Conflict("Student {} was modified concurrently, please retry".format(student_id))
