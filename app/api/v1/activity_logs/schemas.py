from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class ActivityLogResponse(BaseModel):
    id: UUID
    cashier_id: UUID
    cashier_name: Optional[str] = None
    student_id: Optional[UUID] = None
    student_name: Optional[str] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
