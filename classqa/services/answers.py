"""Answer validation and submission.

``submit_answer`` runs its checks in a fixed order and stops at the first
failure: content (no I/O), rate limit (Redis), question/session lookup
(database), then the insert. Malformed input therefore never spends a
rate-limit slot or a database round-trip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession, joinedload

from classqa.core.errors import ErrorKind, ValidationError, ValidationResult
from classqa.models.answer import Answer
from classqa.models.question import Question
from classqa.services.authorization import Authorizer, course_staff_authorizer, get_course_role
from classqa.services.questions import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, advance_to_answered, visible_to
from classqa.services.rate_limiter import RateLimiter, check_rate_limit
from classqa.services.redis_keys import answer_rate_limit
from classqa.services.session_gate import SessionAction, assert_allowed

logger = logging.getLogger(__name__)

ANSWER_MIN_LENGTH = 1
ANSWER_MAX_LENGTH = 1000
RATE_LIMIT_COUNT = 15
RATE_LIMIT_WINDOW_SECONDS = 60


@dataclass(frozen=True)
class QuestionRef:
    id: str
    session_id: str


@dataclass(frozen=True)
class QuestionValidationResult:
    valid: bool
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    question: Optional[QuestionRef] = None


def validate_answer_content(content: Any) -> ValidationResult:
    """Content must be a string whose trimmed length is within bounds."""
    if not content or not isinstance(content, str):
        return ValidationResult.fail(ErrorKind.INVALID_INPUT, "Answer content is required.")

    trimmed = content.strip()
    if len(trimmed) < ANSWER_MIN_LENGTH:
        return ValidationResult.fail(
            ErrorKind.INVALID_INPUT,
            f"Answer must be at least {ANSWER_MIN_LENGTH} character.",
        )
    if len(trimmed) > ANSWER_MAX_LENGTH:
        return ValidationResult.fail(
            ErrorKind.INVALID_INPUT,
            f"Answer must be no more than {ANSWER_MAX_LENGTH} characters.",
        )
    return ValidationResult.ok()


def check_answer_rate_limit(limiter: RateLimiter, user_id: str) -> bool:
    """True when the user has exceeded 15 answers per 60-second window."""
    return check_rate_limit(limiter, answer_rate_limit(user_id), RATE_LIMIT_COUNT, RATE_LIMIT_WINDOW_SECONDS)


def find_question_with_session_status(db: DBSession, question_id: str) -> Optional[Question]:
    return (
        db.query(Question)
        .options(joinedload(Question.session))
        .filter(Question.id == question_id)
        .first()
    )


def validate_question_for_answers(
    db: DBSession,
    question_id: str,
    author_id: Optional[str] = None,
) -> QuestionValidationResult:
    """The question must exist and its session must not have ended.

    With ``author_id`` the question must also be visible to that user; a
    question they cannot see is reported exactly like a missing one.
    """
    question = find_question_with_session_status(db, question_id)
    if not question:
        return QuestionValidationResult(valid=False, kind=ErrorKind.NOT_FOUND, error="Question not found.")

    if author_id is not None:
        role = get_course_role(db, author_id, question.session.course_id)
        if not visible_to(question, role):
            return QuestionValidationResult(valid=False, kind=ErrorKind.NOT_FOUND, error="Question not found.")

    denied = assert_allowed(question.session, SessionAction.POST_ANSWER)
    if denied:
        return QuestionValidationResult(valid=False, kind=denied.kind, error=denied.error)

    return QuestionValidationResult(
        valid=True,
        question=QuestionRef(id=question.id, session_id=question.session_id),
    )


def create_answer(db: DBSession, question_id: str, author_id: str, content: str) -> Answer:
    """Insert the answer and advance OPEN -> ANSWERED in one transaction."""
    answer = Answer(question_id=question_id, author_id=author_id, content=content.strip())
    try:
        db.add(answer)
        db.flush()
        advanced = advance_to_answered(db, question_id)
        db.commit()
        db.refresh(answer)
    except SQLAlchemyError:
        db.rollback()
        raise

    if advanced:
        logger.info("Question %s marked ANSWERED by answer %s", question_id, answer.id)
    return answer


def submit_answer(
    db: DBSession,
    limiter: RateLimiter,
    question_id: str,
    author_id: str,
    content: Any,
) -> Union[Answer, ValidationError]:
    content_check = validate_answer_content(content)
    if not content_check.valid:
        return content_check.as_error()

    if check_answer_rate_limit(limiter, author_id):
        return ValidationError(
            ErrorKind.RATE_LIMITED,
            "Rate limit exceeded. Please wait before submitting another answer.",
        )

    question_check = validate_question_for_answers(db, question_id, author_id)
    if not question_check.valid:
        return ValidationError(question_check.kind, question_check.error)

    return create_answer(db, question_check.question.id, author_id, content)


# ---------------------------------------------------------------------------
# Reading and accepting
# ---------------------------------------------------------------------------

@dataclass
class AnswerPage:
    question_id: str
    items: List[Answer] = field(default_factory=list)
    next_cursor: Optional[str] = None


def _after_answer_cursor(cursor: Answer):
    later = or_(
        Answer.created_at > cursor.created_at,
        and_(Answer.created_at == cursor.created_at, Answer.id > cursor.id),
    )
    if cursor.is_accepted:
        # The accepted answer always comes first; everything else follows it
        return Answer.is_accepted.is_(False)
    return and_(Answer.is_accepted.is_(False), later)


def list_answers(
    db: DBSession,
    question_id: str,
    viewer_id: str,
    cursor: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
) -> Union[AnswerPage, ValidationError]:
    """Accepted answer first, then oldest first."""
    question = find_question_with_session_status(db, question_id)
    if not question:
        return ValidationError(ErrorKind.NOT_FOUND, "Question not found.")

    role = get_course_role(db, viewer_id, question.session.course_id)
    if role is None:
        return ValidationError(ErrorKind.FORBIDDEN, "You are not enrolled in this course.")
    if not visible_to(question, role):
        return ValidationError(ErrorKind.NOT_FOUND, "Question not found.")

    limit = max(1, min(limit, MAX_PAGE_SIZE))
    query = db.query(Answer).options(joinedload(Answer.author)).filter(Answer.question_id == question_id)
    if cursor:
        cursor_row = query.filter(Answer.id == cursor).first()
        if not cursor_row:
            return ValidationError(ErrorKind.INVALID_INPUT, "Invalid cursor.")
        query = query.filter(_after_answer_cursor(cursor_row))

    rows = (
        query.order_by(Answer.is_accepted.desc(), Answer.created_at.asc(), Answer.id.asc())
        .limit(limit + 1)
        .all()
    )
    has_more = len(rows) > limit
    rows = rows[:limit]
    return AnswerPage(
        question_id=question_id,
        items=rows,
        next_cursor=rows[-1].id if has_more and rows else None,
    )


def accept_answer(
    db: DBSession,
    answer_id: str,
    actor_id: str,
    authorize: Authorizer = course_staff_authorizer,
) -> Union[Answer, ValidationError]:
    """Mark ``answer_id`` accepted, un-accepting any previous pick for its question."""
    answer = db.query(Answer).filter(Answer.id == answer_id).first()
    if not answer:
        return ValidationError(ErrorKind.NOT_FOUND, "Answer not found.")

    question = db.query(Question).filter(Question.id == answer.question_id).with_for_update().first()
    session = question.session

    denied = assert_allowed(session, SessionAction.ACCEPT_ANSWER)
    if denied:
        db.rollback()
        return denied
    if not authorize(db, actor_id, session.course_id):
        db.rollback()
        return ValidationError(ErrorKind.FORBIDDEN, "Only instructors and TAs can accept answers.")

    if answer.is_accepted:
        db.rollback()
        return answer

    try:
        (
            db.query(Answer)
            .filter(Answer.question_id == question.id, Answer.is_accepted.is_(True))
            .update({Answer.is_accepted: False}, synchronize_session="fetch")
        )
        # The partial unique index rejects two accepted rows, so the old pick
        # is cleared first
        answer.is_accepted = True
        db.commit()
        db.refresh(answer)
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("Answer %s accepted for question %s by %s", answer.id, question.id, actor_id)
    return answer
