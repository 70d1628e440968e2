"""
Student model - one row per registered student.

The 20 week records are stored as a JSON array in the ``weeks`` column so a
student and its attendance history are read and written as one document.
``revision`` is the SQLAlchemy version counter: every UPDATE is issued with
``WHERE revision = <loaded value>`` and bumps it, which is how concurrent
writers to the same student detect each other.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, Text, DateTime, JSON
from attendance.database import Base


class Student(Base):
    """
    SQLAlchemy model for the students table.

    ``id`` is supplied by the center at registration and never generated
    by the database.
    """
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=False,
                doc="Center-assigned student id, immutable")
    name = Column(Text, nullable=False,
                  doc="Student's full name")
    grade = Column(Text, nullable=False,
                   doc="School grade / year")
    school = Column(Text, nullable=False,
                    doc="School the student attends")
    phone = Column(Text, nullable=False,
                   doc="Student phone, 11 digits, stored as text to keep leading zeros")
    parents_phone = Column(Text, nullable=False,
                           doc="Parent phone, 11 digits, must differ from the student phone")
    main_center = Column(Text, nullable=False,
                         doc="Center the student is registered at")
    center = Column(Text, nullable=True,
                    doc="Optional secondary center")
    age = Column(Integer, nullable=True,
                 doc="Optional age")
    weeks = Column(JSON, nullable=False, default=list,
                   doc="Week documents, index i holds week i+1")
    revision = Column(Integer, nullable=False,
                      doc="Optimistic concurrency version")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="When the student was registered")

    __mapper_args__ = {"version_id_col": revision}

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', revision={self.revision})>"
