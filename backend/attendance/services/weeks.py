"""
Week record helpers - the persistence boundary for ``Student.weeks``.

Stored week documents have been written by several generations of the
dashboard. Homework was once a boolean, flags were sometimes saved as null,
timestamps were not always ISO 8601, some early students were saved
without a weeks array, and the dropdown briefly wrote "Not Complete".
load_weeks() is the only place that looks at those raw shapes; everything
past it works with typed WeekRecord objects that satisfy
``weeks[i].week == i + 1`` for exactly WEEK_COUNT slots.

current_week() holds the selection rule for "the current week" and is the
single implementation used by both the store and the projector.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from attendance.config import WEEK_COUNT
from attendance.errors import InvalidArgument
from attendance.schemas import HomeworkStatus, WeekRecord
from attendance.logging_config import get_logger, log_with_context

logger = get_logger("weeks")

_DATETIME = TypeAdapter(datetime)

# Spellings written by older dashboard builds
LEGACY_HOMEWORK_STRINGS = {
    "Not Complete": HomeworkStatus.NOT_COMPLETED,
}


def normalize_homework(raw) -> HomeworkStatus:
    """
    Map a stored homework value of any generation to a HomeworkStatus.

    - True -> Done, False -> Not Done
    - None / missing / empty string -> No Homework
    - One of the four enumerated strings -> itself
    - Known legacy spellings -> their current value
    - Anything else -> Not Done (what the dashboard has always displayed)
    """
    if raw is True:
        return HomeworkStatus.DONE
    if raw is False:
        return HomeworkStatus.NOT_DONE
    if raw is None or raw == "":
        return HomeworkStatus.NO_HOMEWORK
    if isinstance(raw, HomeworkStatus):
        return raw
    if isinstance(raw, str):
        if raw in LEGACY_HOMEWORK_STRINGS:
            return LEGACY_HOMEWORK_STRINGS[raw]
        try:
            return HomeworkStatus(raw)
        except ValueError:
            pass
    log_with_context(logger, "WARNING",
        "Unrecognised stored homework value {!r}, reading as Not Done".format(raw))
    return HomeworkStatus.NOT_DONE


def parse_homework_value(value) -> HomeworkStatus:
    """
    Validate a homework value coming from a client write.

    Only the four enumerated strings are accepted; legacy booleans are a
    read-only format and are rejected here.
    """
    if isinstance(value, str):
        try:
            return HomeworkStatus(value)
        except ValueError:
            pass
    allowed = ", ".join('"{}"'.format(s.value) for s in HomeworkStatus)
    raise InvalidArgument("Homework status must be one of {}".format(allowed))


def new_weeks() -> List[WeekRecord]:
    """Zero-state week records for a newly registered student."""
    return [WeekRecord(week=i) for i in range(1, WEEK_COUNT + 1)]


def normalize_flag(raw, field: str) -> bool:
    """
    Read a stored boolean. Null or missing reads as False; any other
    non-boolean is logged and also read as False.
    """
    if isinstance(raw, bool):
        return raw
    if raw is not None:
        log_with_context(logger, "WARNING",
            "Unrecognised stored {} value {!r}, reading as False".format(field, raw))
    return False


def normalize_timestamp(raw) -> Optional[datetime]:
    """
    Read a stored or incoming attendance timestamp as an aware UTC datetime.

    Naive values are taken to be UTC. Values that do not parse as ISO 8601
    are logged and read as None.
    """
    if raw is None or raw == "":
        return None
    try:
        value = raw if isinstance(raw, datetime) else _DATETIME.validate_python(raw)
    except ValidationError:
        log_with_context(logger, "WARNING",
            "Unparseable stored lastAttendance {!r}, reading as None".format(raw))
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalize_document(raw: dict, number: int) -> dict:
    center = raw.get("lastAttendanceCenter")
    quiz = raw.get("quizDegree")
    if isinstance(quiz, bool) or not isinstance(quiz, (int, float, str, type(None))):
        quiz = str(quiz)
    message_state = raw.get("message_state", raw.get("messageState"))
    return {
        "week": number,
        "attended": normalize_flag(raw.get("attended"), "attended"),
        "lastAttendance": normalize_timestamp(raw.get("lastAttendance")),
        "lastAttendanceCenter": None if center is None else str(center),
        "hwDone": normalize_homework(raw.get("hwDone")),
        "quizDegree": quiz,
        "message_state": normalize_flag(message_state, "message_state"),
    }


def load_weeks(raw_weeks) -> List[WeekRecord]:
    """
    Build the typed week list from a stored ``weeks`` value.

    Entries are placed by their own ``week`` number; entries with a missing
    or out-of-range number are dropped and empty slots get zero-state
    records, so the result always has WEEK_COUNT correctly numbered slots.
    Every field is coerced to its current type first; a document that still
    fails validation is logged and read as a zero-state week.
    """
    slots: List[Optional[WeekRecord]] = [None] * WEEK_COUNT
    for raw in raw_weeks or []:
        if not isinstance(raw, dict):
            continue
        number = raw.get("week")
        if not isinstance(number, int) or isinstance(number, bool) or not 1 <= number <= WEEK_COUNT:
            continue
        try:
            slots[number - 1] = WeekRecord.model_validate(_normalize_document(raw, number))
        except ValidationError as e:
            log_with_context(logger, "ERROR",
                "Unreadable stored document for week {}, reading as empty".format(number),
                extra_data={"error": str(e)})
    return [slot or WeekRecord(week=i + 1) for i, slot in enumerate(slots)]


def dump_weeks(weeks: Sequence[WeekRecord]) -> list:
    """Serialize typed week records back to the stored JSON shape."""
    return [w.to_document() for w in weeks]


def current_week_index(weeks: Sequence[WeekRecord]) -> int:
    """
    Index of the current week: the first attended week in list order,
    or 0 (week 1) when no week has been attended yet.
    """
    for i, record in enumerate(weeks):
        if record.attended:
            return i
    return 0


def current_week(weeks: Sequence[WeekRecord]) -> WeekRecord:
    """The WeekRecord selected by current_week_index()."""
    return weeks[current_week_index(weeks)]


def resolve_week_index(weeks: Sequence[WeekRecord], week: Optional[int]) -> int:
    """
    List index targeted by an update: the explicit week when given,
    otherwise the current week computed from ``weeks`` right now.
    """
    if week is None:
        return current_week_index(weeks)
    if isinstance(week, bool) or not isinstance(week, int) or not 1 <= week <= WEEK_COUNT:
        raise InvalidArgument("Week must be an integer between 1 and {}".format(WEEK_COUNT))
    return week - 1
