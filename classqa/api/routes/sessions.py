from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from classqa.api.deps import get_rate_limiter
from classqa.api.errors import database_error, to_http_exception
from classqa.core.auth import get_current_user_id
from classqa.core.database import get_db
from classqa.core.errors import ValidationError
from classqa.models.session import Session as SessionModel
from classqa.schemas.question import QuestionCreate, QuestionListEntry, QuestionListResponse, QuestionResponse
from classqa.schemas.session import SessionResponse, SessionStatusUpdate, SessionSubmissionsUpdate
from classqa.services.authorization import course_staff_authorizer
from classqa.services.questions import DEFAULT_PAGE_SIZE, QuestionFilters, create_question, list_questions
from classqa.services.rate_limiter import RateLimiter
from classqa.services.session_gate import set_submissions_enabled, transition_session

router = APIRouter()


def _get_staff_session(db: Session, session_id: str, user_id: str) -> SessionModel:
    session = db.query(SessionModel).filter(SessionModel.id == session_id).first()
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    if not course_staff_authorizer(db, user_id, session.course_id):
        raise HTTPException(
            status_code=403,
            detail="You don't have permission to manage this session",
        )
    return session


@router.patch("/{session_id}/status", response_model=SessionResponse)
def update_session_status(
    session_id: str,
    status_update: SessionStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Update session status.

    Valid transitions:
    - SCHEDULED -> ACTIVE (session goes live)
    - ACTIVE -> ENDED
    - SCHEDULED -> ENDED (cancelled before it started)

    ENDED is terminal.
    """
    session = _get_staff_session(db, session_id, user_id)
    try:
        rejected = transition_session(db, session, status_update.status)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if rejected:
        raise to_http_exception(rejected)
    return session


@router.patch("/{session_id}/submissions", response_model=SessionResponse)
def update_session_submissions(
    session_id: str,
    update: SessionSubmissionsUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Pause or resume new questions without changing the session status."""
    session = _get_staff_session(db, session_id, user_id)
    try:
        return set_submissions_enabled(db, session, update.is_submissions_enabled)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e


@router.get("/{session_id}/questions", response_model=QuestionListResponse)
def get_session_questions(
    session_id: str,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    cursor: Optional[str] = None,
    search: Optional[str] = None,
    slide_id: Optional[str] = Query(None, alias="slideId"),
    question_status: Optional[str] = Query(None, alias="status"),
    sort_by: str = Query("newest", alias="sortBy"),
    include_total: bool = Query(False, alias="includeTotal"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List questions for a session with cursor pagination and filters.

    Students never receive INSTRUCTOR_ONLY questions; the filter is applied
    in the query itself. An unknown sortBy falls back to newest and an
    unknown status is ignored.
    """
    filters = QuestionFilters(
        search=search,
        slide_id=slide_id,
        status=question_status,
        sort_by=sort_by,
        cursor=cursor,
        limit=limit,
        include_total=include_total,
    )
    try:
        page = list_questions(db, session_id, user_id, filters)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if isinstance(page, ValidationError):
        raise to_http_exception(page)

    entries = [
        QuestionListEntry.model_validate(item.question).model_copy(
            update={
                "answer_count": item.answer_count,
                "has_accepted_answer": item.accepted_answer_id is not None,
                "accepted_answer_id": item.accepted_answer_id,
            }
        )
        for item in page.items
    ]
    return QuestionListResponse(
        session_id=page.session_id,
        questions=entries,
        next_cursor=page.next_cursor,
        count=len(entries),
        total=page.total,
    )


@router.post(
    "/{session_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_session_question(
    session_id: str,
    question: QuestionCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Ask a question in a session.

    Validations, in order:
    1. Content length (5-500 characters after trimming)
    2. Visibility is PUBLIC or INSTRUCTOR_ONLY if provided
    3. Rate limit (10 questions per 60 seconds per user)
    4. Session exists, has not ended and accepts submissions
    """
    try:
        created = create_question(
            db,
            limiter,
            session_id=session_id,
            author_id=user_id,
            content=question.content,
            visibility=question.visibility,
            is_anonymous=question.is_anonymous,
            slide_id=question.slide_id,
        )
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if isinstance(created, ValidationError):
        raise to_http_exception(created)
    return created
