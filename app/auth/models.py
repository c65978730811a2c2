import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class User(Base):
    """Authentication identity. role is "admin" or "cashier"; cashiers also own a Cashier profile."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    cashier_profile = relationship(
        "Cashier", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
