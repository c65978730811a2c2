import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(Date, nullable=False)
    department_id = Column(Uuid(as_uuid=True), ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    # Set when a cashier (rather than an admin) entered the expense
    cashier_id = Column(Uuid(as_uuid=True), ForeignKey("cashiers.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    department = relationship("Department")
    cashier = relationship("Cashier")
