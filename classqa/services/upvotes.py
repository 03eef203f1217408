"""Upvote toggling.

The set of ``QuestionUpvote`` rows is the source of truth and the unique
(question_id, user_id) constraint is the final arbiter of races. The
``upvote_count`` column is recomputed from the rows inside the same
transaction as every row change, so readers never see the two disagree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from classqa.core.config import get_settings
from classqa.core.errors import ErrorKind, ValidationError
from classqa.models.question import Question, QuestionUpvote
from classqa.services.authorization import get_course_role
from classqa.services.questions import visible_to
from classqa.services.rate_limiter import RateLimiter, check_rate_limit
from classqa.services.redis_keys import upvote_rate_limit
from classqa.services.session_gate import SessionAction, assert_allowed

logger = logging.getLogger(__name__)

UpvoteApplied = Literal["added", "removed"]


@dataclass(frozen=True)
class UpvoteToggleResult:
    question_id: str
    applied: UpvoteApplied
    new_count: int


def count_upvotes(db: DBSession, question_id: str) -> int:
    return (
        db.query(func.count(QuestionUpvote.id))
        .filter(QuestionUpvote.question_id == question_id)
        .scalar()
    )


def _find_upvote(db: DBSession, question_id: str, user_id: str) -> Optional[QuestionUpvote]:
    return (
        db.query(QuestionUpvote)
        .filter(QuestionUpvote.question_id == question_id, QuestionUpvote.user_id == user_id)
        .first()
    )


def _delete_upvote(db: DBSession, question_id: str, user_id: str) -> None:
    (
        db.query(QuestionUpvote)
        .filter(QuestionUpvote.question_id == question_id, QuestionUpvote.user_id == user_id)
        .delete(synchronize_session="fetch")
    )


def toggle_question_upvote(db: DBSession, question_id: str, user_id: str) -> bool:
    """Flip the (question, user) row inside the caller's transaction.

    Returns whether an upvote existed before the call. The insert runs in a
    SAVEPOINT; if a concurrent request inserted the same row first, the unique
    violation rolls back only the savepoint and the toggle becomes a removal.
    """
    if _find_upvote(db, question_id, user_id) is not None:
        _delete_upvote(db, question_id, user_id)
        return True

    try:
        with db.begin_nested():
            db.add(QuestionUpvote(question_id=question_id, user_id=user_id))
    except IntegrityError:
        logger.info("Concurrent upvote on question %s by %s, removing instead", question_id, user_id)
        _delete_upvote(db, question_id, user_id)
        return True
    return False


def check_upvote_rate_limit(limiter: Optional[RateLimiter], user_id: str) -> bool:
    """True when the optional upvote limiter is configured and exceeded."""
    settings = get_settings()
    if limiter is None or settings.upvote_rate_limit_count <= 0:
        return False
    return check_rate_limit(
        limiter,
        upvote_rate_limit(user_id),
        settings.upvote_rate_limit_count,
        settings.upvote_rate_limit_window_seconds,
    )


def toggle_upvote(
    db: DBSession,
    question_id: str,
    user_id: str,
    limiter: Optional[RateLimiter] = None,
) -> Union[UpvoteToggleResult, ValidationError]:
    """Add the user's upvote if absent, remove it if present."""
    if check_upvote_rate_limit(limiter, user_id):
        return ValidationError(
            ErrorKind.RATE_LIMITED,
            "Rate limit exceeded. Please wait before upvoting again.",
        )

    try:
        # Lock the question row so toggles on one question serialize
        question = db.query(Question).filter(Question.id == question_id).with_for_update().first()
        if not question:
            db.rollback()
            return ValidationError(ErrorKind.NOT_FOUND, "Question not found.")

        session = question.session
        if not visible_to(question, get_course_role(db, user_id, session.course_id)):
            db.rollback()
            return ValidationError(ErrorKind.NOT_FOUND, "Question not found.")

        denied = assert_allowed(session, SessionAction.UPVOTE)
        if denied:
            db.rollback()
            return denied

        existed = toggle_question_upvote(db, question_id, user_id)
        db.flush()
        question.upvote_count = count_upvotes(db, question_id)
        db.commit()
        db.refresh(question)
    except SQLAlchemyError:
        db.rollback()
        raise

    applied: UpvoteApplied = "removed" if existed else "added"
    logger.info("Upvote %s on question %s by %s (count=%s)", applied, question_id, user_id, question.upvote_count)
    return UpvoteToggleResult(question_id=question_id, applied=applied, new_count=question.upvote_count)


def reconcile_upvote_count(db: DBSession, question_id: str) -> Optional[int]:
    """Rewrite ``upvote_count`` from the rows. Returns the count, or None if missing."""
    question = db.query(Question).filter(Question.id == question_id).with_for_update().first()
    if not question:
        return None
    actual = count_upvotes(db, question_id)
    if question.upvote_count != actual:
        logger.warning(
            "Question %s upvote_count drifted: cached=%s actual=%s",
            question_id, question.upvote_count, actual,
        )
        question.upvote_count = actual
    db.commit()
    return actual
