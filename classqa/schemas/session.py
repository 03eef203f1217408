from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from classqa.models.session import SessionStatus
from classqa.schemas.base import BaseSchema


# Request schemas
class SessionStatusUpdate(BaseModel):
    """Move a session along SCHEDULED -> ACTIVE -> ENDED."""
    status: SessionStatus


class SessionSubmissionsUpdate(BaseModel):
    is_submissions_enabled: bool


# Response schemas
class SessionResponse(BaseSchema):
    id: str
    course_id: str
    title: str
    join_code: str
    status: SessionStatus
    is_submissions_enabled: bool
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
