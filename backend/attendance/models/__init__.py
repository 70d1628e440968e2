from attendance.models.student import Student

__all__ = ["Student"]
