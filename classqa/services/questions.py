"""Question lifecycle: creation, status transitions and visibility.

Status only moves forward (OPEN -> ANSWERED -> RESOLVED, or OPEN -> RESOLVED)
and is written by this module alone. Visibility is enforced in the query, so a
student never loads an INSTRUCTOR_ONLY row in the first place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import and_, func, or_, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from classqa.core.config import get_settings
from classqa.core.errors import ErrorKind, ValidationError, ValidationResult
from classqa.models.answer import Answer
from classqa.models.question import Question, QuestionStatus, Visibility
from classqa.models.session import Session, Slide
from classqa.models.user import Role
from classqa.services.authorization import Authorizer, course_staff_authorizer, get_course_role, is_staff
from classqa.services.rate_limiter import RateLimiter, check_rate_limit
from classqa.services.redis_keys import question_rate_limit
from classqa.services.session_gate import SessionAction, assert_allowed

logger = logging.getLogger(__name__)

QUESTION_MIN_LENGTH = 5
QUESTION_MAX_LENGTH = 500

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50

SORT_NEWEST = "newest"
SORT_VOTES = "votes"

QUESTION_TRANSITIONS = {
    QuestionStatus.OPEN: frozenset({QuestionStatus.ANSWERED, QuestionStatus.RESOLVED}),
    QuestionStatus.ANSWERED: frozenset({QuestionStatus.RESOLVED}),
    QuestionStatus.RESOLVED: frozenset(),
}


def can_transition_question(current: QuestionStatus, target: QuestionStatus) -> bool:
    return target in QUESTION_TRANSITIONS[QuestionStatus(current)]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_question_content(content: Any) -> ValidationResult:
    if not content or not isinstance(content, str):
        return ValidationResult.fail(ErrorKind.INVALID_INPUT, "Question content is required.")

    trimmed = content.strip()
    if len(trimmed) < QUESTION_MIN_LENGTH:
        return ValidationResult.fail(
            ErrorKind.INVALID_INPUT,
            f"Question must be at least {QUESTION_MIN_LENGTH} characters.",
        )
    if len(trimmed) > QUESTION_MAX_LENGTH:
        return ValidationResult.fail(
            ErrorKind.INVALID_INPUT,
            f"Question must be no more than {QUESTION_MAX_LENGTH} characters.",
        )
    return ValidationResult.ok()


def validate_visibility(visibility: Any) -> ValidationResult:
    if visibility is None:
        return ValidationResult.ok()
    try:
        Visibility(visibility)
    except ValueError:
        allowed = ", ".join(v.value for v in Visibility)
        return ValidationResult.fail(ErrorKind.INVALID_INPUT, f"Visibility must be one of: {allowed}.")
    return ValidationResult.ok()


def check_question_rate_limit(limiter: RateLimiter, user_id: str) -> bool:
    """True when ``user_id`` has asked too many questions in the current window."""
    settings = get_settings()
    return check_rate_limit(
        limiter,
        question_rate_limit(user_id),
        settings.question_rate_limit_count,
        settings.question_rate_limit_window_seconds,
    )


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

def visible_to(question: Question, role: Optional[Role]) -> bool:
    if role is None:
        return False
    if is_staff(role):
        return True
    return Visibility(question.visibility) == Visibility.PUBLIC


def visibility_clause(role: Optional[Role]):
    """SQL form of ``visible_to`` for use in question queries."""
    if is_staff(role):
        return true()
    return Question.visibility == Visibility.PUBLIC


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def create_question(
    db: DBSession,
    limiter: RateLimiter,
    session_id: str,
    author_id: str,
    content: Any,
    visibility: Optional[Union[str, Visibility]] = None,
    is_anonymous: bool = False,
    slide_id: Optional[str] = None,
) -> Union[Question, ValidationError]:
    """Validate and persist a new question.

    Checks run cheapest first: content and visibility, then the rate limiter,
    then the session lookup and gate. Anonymous questions are stored without
    an author at all.
    """
    for result in (validate_question_content(content), validate_visibility(visibility)):
        if not result.valid:
            return result.as_error()

    if check_question_rate_limit(limiter, author_id):
        return ValidationError(
            ErrorKind.RATE_LIMITED,
            "Rate limit exceeded. Please wait before asking another question.",
        )

    session = db.query(Session).filter(Session.id == session_id).first()
    if not session:
        return ValidationError(ErrorKind.NOT_FOUND, "Session not found.")

    if get_course_role(db, author_id, session.course_id) is None:
        return ValidationError(ErrorKind.FORBIDDEN, "You are not enrolled in this course.")

    denied = assert_allowed(session, SessionAction.ASK_QUESTION)
    if denied:
        return denied

    if slide_id is not None:
        slide = db.query(Slide).filter(Slide.id == slide_id).first()
        if not slide or slide.session_id != session.id:
            return ValidationError(ErrorKind.INVALID_INPUT, "Slide does not belong to this session.")

    question = Question(
        session_id=session.id,
        slide_id=slide_id,
        author_id=None if is_anonymous else author_id,
        content=content.strip(),
        is_anonymous=is_anonymous,
        visibility=Visibility(visibility) if visibility is not None else Visibility.PUBLIC,
        status=QuestionStatus.OPEN,
        upvote_count=0,
    )
    try:
        db.add(question)
        db.commit()
        db.refresh(question)
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("Question %s created in session %s", question.id, session.id)
    return question


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def advance_to_answered(db: DBSession, question_id: str) -> bool:
    """Flip OPEN -> ANSWERED inside the caller's transaction.

    The status condition is part of the UPDATE itself, so an ANSWERED or
    RESOLVED question is never touched. Returns whether a row changed.
    """
    updated = (
        db.query(Question)
        .filter(Question.id == question_id, Question.status == QuestionStatus.OPEN)
        .update({Question.status: QuestionStatus.ANSWERED}, synchronize_session="fetch")
    )
    return updated == 1


def resolve_question(
    db: DBSession,
    question_id: str,
    actor_id: str,
    authorize: Authorizer = course_staff_authorizer,
) -> Union[Question, ValidationError]:
    """Mark a question RESOLVED. Staff only; resolving twice is a no-op."""
    question = db.query(Question).filter(Question.id == question_id).with_for_update().first()
    if not question:
        return ValidationError(ErrorKind.NOT_FOUND, "Question not found.")

    session = question.session
    denied = assert_allowed(session, SessionAction.RESOLVE_QUESTION)
    if denied:
        db.rollback()
        return denied

    if not authorize(db, actor_id, session.course_id):
        db.rollback()
        return ValidationError(ErrorKind.FORBIDDEN, "Only instructors and TAs can resolve questions.")

    current = QuestionStatus(question.status)
    if current == QuestionStatus.RESOLVED:
        db.rollback()
        return question

    if not can_transition_question(current, QuestionStatus.RESOLVED):
        db.rollback()
        return ValidationError(
            ErrorKind.INVALID_TRANSITION,
            f"Cannot resolve a question that is {current.value}.",
        )

    try:
        question.status = QuestionStatus.RESOLVED
        db.commit()
        db.refresh(question)
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("Question %s resolved by %s", question.id, actor_id)
    return question


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@dataclass
class QuestionFilters:
    search: Optional[str] = None
    slide_id: Optional[str] = None
    status: Optional[Union[str, QuestionStatus]] = None
    sort_by: str = SORT_NEWEST
    cursor: Optional[str] = None
    limit: int = DEFAULT_PAGE_SIZE
    include_total: bool = False


@dataclass
class QuestionListItem:
    question: Question
    answer_count: int = 0
    accepted_answer_id: Optional[str] = None


@dataclass
class QuestionPage:
    session_id: str
    role: Role
    items: List[QuestionListItem] = field(default_factory=list)
    next_cursor: Optional[str] = None
    total: Optional[int] = None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_status(value: Optional[Union[str, QuestionStatus]]) -> Optional[QuestionStatus]:
    if not value:
        return None
    try:
        return QuestionStatus(value)
    except ValueError:
        return None


def _order_by(sort_by: str):
    if sort_by == SORT_VOTES:
        return [Question.upvote_count.desc(), Question.created_at.desc(), Question.id.desc()]
    return [Question.created_at.desc(), Question.id.desc()]


def _after_cursor(cursor: Question, sort_by: str):
    """Rows strictly after ``cursor`` in the page ordering."""
    same_time_older_id = and_(Question.created_at == cursor.created_at, Question.id < cursor.id)
    older = or_(Question.created_at < cursor.created_at, same_time_older_id)
    if sort_by == SORT_VOTES:
        return or_(
            Question.upvote_count < cursor.upvote_count,
            and_(Question.upvote_count == cursor.upvote_count, older),
        )
    return older


def list_questions(
    db: DBSession,
    session_id: str,
    viewer_id: str,
    filters: Optional[QuestionFilters] = None,
) -> Union[QuestionPage, ValidationError]:
    """One page of a session's questions as ``viewer_id`` is allowed to see them."""
    filters = filters or QuestionFilters()

    session = db.query(Session).filter(Session.id == session_id).first()
    if not session:
        return ValidationError(ErrorKind.NOT_FOUND, "Session not found.")

    role = get_course_role(db, viewer_id, session.course_id)
    if role is None:
        return ValidationError(ErrorKind.FORBIDDEN, "You are not enrolled in this course.")

    # Unknown sort and status values fall back to the defaults
    sort_by = filters.sort_by if filters.sort_by in (SORT_NEWEST, SORT_VOTES) else SORT_NEWEST
    limit = max(1, min(filters.limit, MAX_PAGE_SIZE))

    query = db.query(Question).filter(Question.session_id == session_id, visibility_clause(role))
    if filters.search:
        query = query.filter(Question.content.ilike(f"%{_escape_like(filters.search.strip())}%", escape="\\"))
    if filters.slide_id:
        query = query.filter(Question.slide_id == filters.slide_id)
    status = _parse_status(filters.status)
    if status:
        query = query.filter(Question.status == status)

    total = query.count() if filters.include_total else None

    if filters.cursor:
        cursor = query.filter(Question.id == filters.cursor).first()
        if not cursor:
            return ValidationError(ErrorKind.INVALID_INPUT, "Invalid cursor.")
        query = query.filter(_after_cursor(cursor, sort_by))

    rows = query.order_by(*_order_by(sort_by)).limit(limit + 1).all()
    has_more = len(rows) > limit
    rows = rows[:limit]

    answer_counts: Dict[str, int] = {}
    accepted: Dict[str, str] = {}
    ids = [q.id for q in rows]
    if ids:
        answer_counts = dict(
            db.query(Answer.question_id, func.count(Answer.id))
            .filter(Answer.question_id.in_(ids))
            .group_by(Answer.question_id)
            .all()
        )
        accepted = dict(
            db.query(Answer.question_id, Answer.id)
            .filter(Answer.question_id.in_(ids), Answer.is_accepted.is_(True))
            .all()
        )

    items = [
        QuestionListItem(
            question=q,
            answer_count=answer_counts.get(q.id, 0),
            accepted_answer_id=accepted.get(q.id),
        )
        for q in rows
    ]
    return QuestionPage(
        session_id=session_id,
        role=role,
        items=items,
        next_cursor=rows[-1].id if has_more and rows else None,
        total=total,
    )
