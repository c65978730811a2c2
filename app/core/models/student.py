import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Student(Base):
    """
    Enrollment record: one row per student per academic year. Re-enrollment creates a NEW
    row with the same roll_number; rows are never promoted in place.

    fee_details is an embedded snapshot keyed by studying-year label:
        {"1st Year": [{"id": "...", "name": "Tuition Fee", "amount": 50000, "concession": 5000}]}
    Updates replace the whole document. version is bumped by the ORM on every UPDATE, so two
    writers racing on the same row cannot silently overwrite each other.
    """

    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    roll_number = Column(String(50), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    class_name = Column("class", String(100), nullable=False)
    section = Column(String(50), nullable=False)
    studying_year = Column(String(50), nullable=False)  # e.g. "1st Year"
    student_type_id = Column(Uuid(as_uuid=True), ForeignKey("student_types.id", ondelete="SET NULL"), nullable=True)
    academic_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True)
    caste = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    fee_details = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student_type = relationship("StudentType", lazy="joined")
    academic_year = relationship("AcademicYear", lazy="joined")

    __mapper_args__ = {"version_id_col": version}
