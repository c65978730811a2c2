"""Cashier activity trail. Written best-effort after fee-collection actions."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    cashier_id = Column(Uuid(as_uuid=True), ForeignKey("cashiers.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(100), nullable=False)  # "Fee Collection", "Invoice Payment", ...
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    cashier = relationship("Cashier")
    student = relationship("Student")
