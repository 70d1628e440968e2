"""
Student projector - flattened, UI-facing views of a student.

The dashboard tables show one row per student with the fields of a single
"current" week pulled up next to the profile. These functions are pure:
same student in, same dict out, no session or clock access.
"""

from attendance.models.student import Student
from attendance.services.weeks import current_week, load_weeks


def format_week_label(week: int) -> str:
    """'week 01' style label used by the dashboard."""
    return "week {:02d}".format(week)


def project_student(student: Student) -> dict:
    """
    Flatten a student and its current week into the list/detail shape.

    The full normalized history is included under ``weeks``.
    """
    weeks = load_weeks(student.weeks)
    view = current_week(weeks)
    view_doc = view.to_document()

    return {
        "id": student.id,
        "name": student.name,
        "grade": student.grade,
        "phone": student.phone,
        "parents_phone": student.parents_phone,
        "center": student.center,
        "main_center": student.main_center,
        "attended_the_session": view.attended,
        "lastAttendance": view_doc["lastAttendance"],
        "lastAttendanceCenter": view.last_attendance_center,
        "attendanceWeek": format_week_label(view.week),
        "hwDone": view_doc["hwDone"],
        "quizDegree": view.quiz_degree,
        "school": student.school,
        "age": student.age,
        "message_state": view.message_state,
        "weeks": [w.to_document() for w in weeks],
    }


def history_entries(student: Student) -> list:
    """One flattened entry per attended week of a student."""
    entries = []
    for record in load_weeks(student.weeks):
        if not record.attended:
            continue
        doc = record.to_document()
        entries.append({
            "id": student.id,
            "name": student.name,
            "grade": student.grade,
            "school": student.school,
            "phone": student.phone,
            "parents_phone": student.parents_phone,
            "main_center": student.main_center,
            "week": record.week,
            "attendanceWeek": format_week_label(record.week),
            "lastAttendance": doc["lastAttendance"],
            "lastAttendanceCenter": record.last_attendance_center,
            "hwDone": doc["hwDone"],
            "quizDegree": record.quiz_degree,
            "message_state": record.message_state,
        })
    return entries
