from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from classqa.models.user import Role
from classqa.schemas.base import BaseSchema


# Request schemas
class AnswerCreate(BaseModel):
    content: Optional[str] = None


# Response schemas
class AnswerAuthor(BaseSchema):
    id: str
    name: str
    role: Role


class AnswerResponse(BaseSchema):
    id: str
    question_id: str
    content: str
    is_accepted: bool
    created_at: datetime
    author: AnswerAuthor


class AnswerListResponse(BaseModel):
    question_id: str
    answers: List[AnswerResponse]
    next_cursor: Optional[str] = None
    count: int
