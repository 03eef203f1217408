from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
from classqa.models.question import QuestionStatus, Visibility
from classqa.schemas.base import BaseSchema


# Request schemas
class QuestionCreate(BaseModel):
    # Content and visibility are checked by the question service so the
    # caller gets its exact messages rather than a generic 422
    content: Optional[str] = None
    visibility: Optional[str] = None
    is_anonymous: bool = False
    slide_id: Optional[str] = None


# Response schemas
class AuthorSummary(BaseSchema):
    id: str
    name: str


class QuestionResponse(BaseSchema):
    id: str
    session_id: str
    slide_id: Optional[str] = None
    content: str
    visibility: Visibility
    status: QuestionStatus
    is_anonymous: bool
    upvote_count: int
    created_at: datetime
    author: Optional[AuthorSummary] = None


class QuestionListEntry(QuestionResponse):
    answer_count: int = 0
    has_accepted_answer: bool = False
    accepted_answer_id: Optional[str] = None


class QuestionListResponse(BaseModel):
    session_id: str
    questions: List[QuestionListEntry]
    next_cursor: Optional[str] = None
    count: int
    total: Optional[int] = None


class UpvoteResponse(BaseModel):
    question_id: str
    applied: Literal["added", "removed"]
    new_count: int
