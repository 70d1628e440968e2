"""Normalize legacy homework values in week documents

Revision ID: 002_normalize_homework
Revises: 001_initial
Create Date: 2026-10-05

Students imported from the first dashboard stored ``hwDone`` as a
boolean (or not at all) and used ``message_state``/``messageState``
interchangeably. This rewrites every week document once so stored data
matches what the service writes today:

- hwDone: true -> "Done", false -> "Not Done", null/missing -> "No Homework",
  "Not Complete" -> "Not Completed"
- messageState -> message_state
- null attended / message_state -> false
- lastAttendance that is not ISO 8601 -> null, others rewritten in UTC
- missing weeks array -> 20 zero-state weeks
"""
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = '002_normalize_homework'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

WEEK_COUNT = 20
HOMEWORK_VALUES = {"Done", "Not Completed", "Not Done", "No Homework"}

students = sa.table(
    'students',
    sa.column('id', sa.Integer()),
    sa.column('weeks', postgresql.JSONB()),
    sa.column('revision', sa.Integer()),
)


def _zero_week(number: int) -> dict:
    return {
        "week": number,
        "attended": False,
        "lastAttendance": None,
        "lastAttendanceCenter": None,
        "hwDone": "No Homework",
        "quizDegree": None,
        "message_state": False,
    }


def _homework(value) -> str:
    if value is True:
        return "Done"
    if value is None or value == "":
        return "No Homework"
    if value == "Not Complete":
        return "Not Completed"
    if value in HOMEWORK_VALUES:
        return value
    return "Not Done"


def _flag(value) -> bool:
    return value if isinstance(value, bool) else False


def _timestamp(value) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _normalize_week(doc: dict) -> dict:
    week = dict(_zero_week(doc["week"]), **doc)
    week["hwDone"] = _homework(doc.get("hwDone"))
    week["attended"] = _flag(doc.get("attended"))
    week["lastAttendance"] = _timestamp(doc.get("lastAttendance"))
    message_state = week.pop("messageState", None)
    if "message_state" not in doc:
        week["message_state"] = message_state
    week["message_state"] = _flag(week["message_state"])
    return week


def _normalize_weeks(raw_weeks) -> list:
    by_number = {
        w["week"]: w for w in (raw_weeks or [])
        if isinstance(w, dict) and isinstance(w.get("week"), int) and not isinstance(w["week"], bool)
    }
    return [
        _normalize_week(by_number[n]) if n in by_number else _zero_week(n)
        for n in range(1, WEEK_COUNT + 1)
    ]


def upgrade() -> None:
    conn = op.get_bind()
    rows = conn.execute(sa.select(students.c.id, students.c.weeks, students.c.revision)).fetchall()
    for row in rows:
        weeks = _normalize_weeks(row.weeks)
        if weeks != row.weeks:
            conn.execute(
                students.update()
                .where(students.c.id == row.id)
                .values(weeks=weeks, revision=row.revision + 1)
            )


def downgrade() -> None:
    """Data normalization is one-way; the new values are valid for old readers."""
    pass
