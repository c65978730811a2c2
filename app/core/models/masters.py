"""Small lookup tables: student types, class groups, expense departments."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid

from app.db.session import Base


class StudentType(Base):
    __tablename__ = "student_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)  # e.g. "Day Scholar", "Hosteller"
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ClassGroup(Base):
    __tablename__ = "class_groups"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)  # e.g. "BSc"
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Department(Base):
    __tablename__ = "departments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
