"""Fee structure catalog: a template copied by value into invoices at generation time."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class FeeStructure(Base):
    __tablename__ = "fee_structures"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fee_name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    fee_type = Column(String(20), nullable=False, default="Custom")  # Tuition | Custom
    class_group_id = Column(Uuid(as_uuid=True), ForeignKey("class_groups.id", ondelete="SET NULL"), nullable=True)
    student_type_id = Column(Uuid(as_uuid=True), ForeignKey("student_types.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    class_group = relationship("ClassGroup")
    student_type = relationship("StudentType")
