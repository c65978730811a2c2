import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Uuid

from app.db.session import Base


class AcademicYear(Base):
    """
    Academic year, named "YYYY-YYYY". is_active is advisory: the service clears it on other
    rows when one is activated, but nothing in the schema enforces a single active year.
    An active year cannot be deleted.
    """

    __tablename__ = "academic_years"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    year_name = Column(String(20), nullable=False, unique=True)  # e.g. "2024-2025"
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
