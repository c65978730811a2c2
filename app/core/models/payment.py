"""Payment ledger. Rows are immutable once created."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Payment(Base):
    """
    Payment against one enrollment record. fee_type is the displayed label
    ("<year> - <fee item>", "<year> - Invoice: <batch>", or free text for other charges).
    fee_year / fee_item_id link the payment to a fee_details item explicitly when known.
    """

    __tablename__ = "payments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    fee_type = Column(String(255), nullable=False)
    payment_method = Column(String(10), nullable=False)  # cash | upi
    notes = Column(Text, nullable=True)
    utr_number = Column(String(100), nullable=True)
    cashier_id = Column(Uuid(as_uuid=True), ForeignKey("cashiers.id", ondelete="SET NULL"), nullable=True)
    fee_year = Column(String(50), nullable=True)
    fee_item_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student")
    cashier = relationship("Cashier")
