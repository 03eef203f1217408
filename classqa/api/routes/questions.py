from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from classqa.api.deps import get_rate_limiter
from classqa.api.errors import database_error, to_http_exception
from classqa.core.auth import get_current_user_id
from classqa.core.database import get_db
from classqa.core.errors import ValidationError
from classqa.schemas.answer import AnswerCreate, AnswerListResponse, AnswerResponse
from classqa.schemas.question import QuestionResponse, UpvoteResponse
from classqa.services.answers import list_answers, submit_answer
from classqa.services.questions import DEFAULT_PAGE_SIZE, resolve_question
from classqa.services.rate_limiter import RateLimiter
from classqa.services.upvotes import toggle_upvote


router = APIRouter()


@router.post("/{question_id}/upvote", response_model=UpvoteResponse)
def toggle_question_upvote(
    question_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Add the caller's upvote, or remove it if already present."""
    try:
        result = toggle_upvote(db, question_id, user_id, limiter=limiter)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if isinstance(result, ValidationError):
        raise to_http_exception(result)
    return UpvoteResponse(question_id=result.question_id, applied=result.applied, new_count=result.new_count)


@router.post("/{question_id}/resolve", response_model=QuestionResponse)
def resolve(
    question_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Mark a question resolved (instructor/TA action)."""
    try:
        result = resolve_question(db, question_id, user_id)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if isinstance(result, ValidationError):
        raise to_http_exception(result)
    return result


@router.get("/{question_id}/answers", response_model=AnswerListResponse)
def get_question_answers(
    question_id: str,
    cursor: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Answers for a question: the accepted one first, then oldest first."""
    try:
        page = list_answers(db, question_id, user_id, cursor=cursor, limit=limit)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if isinstance(page, ValidationError):
        raise to_http_exception(page)
    return AnswerListResponse(
        question_id=page.question_id,
        answers=[AnswerResponse.model_validate(a) for a in page.items],
        next_cursor=page.next_cursor,
        count=len(page.items),
    )


@router.post(
    "/{question_id}/answers",
    response_model=AnswerResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_question_answer(
    question_id: str,
    answer: AnswerCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Answer a question.

    Validations, in order:
    1. Content length (1-1000 characters after trimming)
    2. Rate limit (15 answers per 60 seconds per user)
    3. Question exists and its session has not ended

    The first answer to an OPEN question marks it ANSWERED.
    """
    try:
        result = submit_answer(db, limiter, question_id, user_id, answer.content)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if isinstance(result, ValidationError):
        raise to_http_exception(result)
    return result
