"""Session lifecycle rules.

Every Q&A write is checked here before it reaches the database. The gate only
reads session state; the setters at the bottom of this module are what the
session management endpoints call to move a session along.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from classqa.core.config import get_settings
from classqa.core.errors import ErrorKind, ValidationError
from classqa.models.session import Session, SessionStatus

logger = logging.getLogger(__name__)


class SessionAction(str, enum.Enum):
    ASK_QUESTION = "ask"
    POST_ANSWER = "answer"
    UPVOTE = "upvote"
    RESOLVE_QUESTION = "resolve"
    ACCEPT_ANSWER = "accept"


# Linear lifecycle; forward skips allowed, ENDED is terminal.
SESSION_TRANSITIONS = {
    SessionStatus.SCHEDULED: frozenset({SessionStatus.ACTIVE, SessionStatus.ENDED}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.ENDED}),
    SessionStatus.ENDED: frozenset(),
}

# Actions held back while a session is SCHEDULED, when that is configured
PRE_OPEN_ACTIONS = frozenset({
    SessionAction.ASK_QUESTION,
    SessionAction.POST_ANSWER,
    SessionAction.UPVOTE,
})


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in SESSION_TRANSITIONS[SessionStatus(current)]


ENDED_SESSION_MESSAGES = {
    SessionAction.ASK_QUESTION: "Cannot ask questions in an ended session.",
    SessionAction.POST_ANSWER: "Cannot answer questions in an ended session.",
    SessionAction.UPVOTE: "Cannot upvote questions in an ended session.",
    SessionAction.RESOLVE_QUESTION: "Cannot resolve questions in an ended session.",
    SessionAction.ACCEPT_ANSWER: "Cannot accept answers in an ended session.",
}


def assert_allowed(session: Session, action: SessionAction) -> Optional[ValidationError]:
    """Return the rule ``action`` would break in ``session``, or None."""
    status = SessionStatus(session.status)

    if status == SessionStatus.ENDED:
        return ValidationError(ErrorKind.SESSION_ENDED, ENDED_SESSION_MESSAGES[action])

    if (
        status == SessionStatus.SCHEDULED
        and action in PRE_OPEN_ACTIONS
        and get_settings().block_scheduled_submissions
    ):
        return ValidationError(ErrorKind.SESSION_NOT_STARTED, "This session has not started yet.")

    if action == SessionAction.ASK_QUESTION and not session.is_submissions_enabled:
        return ValidationError(
            ErrorKind.SUBMISSIONS_DISABLED,
            "Question submissions are disabled for this session.",
        )

    return None


def transition_session(db: DBSession, session: Session, target: SessionStatus) -> Optional[ValidationError]:
    """Move ``session`` to ``target`` and commit, stamping start/end times."""
    current = SessionStatus(session.status)
    if current == target:
        return None
    if not can_transition(current, target):
        return ValidationError(
            ErrorKind.INVALID_TRANSITION,
            f"Cannot move a session from {current.value} to {target.value}.",
        )

    now = datetime.now(timezone.utc)
    session.status = target
    if target == SessionStatus.ACTIVE and session.start_time is None:
        session.start_time = now
    if target == SessionStatus.ENDED:
        session.end_time = now
        if session.start_time is None:
            session.start_time = now
    db.commit()
    db.refresh(session)
    logger.info("Session %s moved %s -> %s", session.id, current.value, target.value)
    return None


def set_submissions_enabled(db: DBSession, session: Session, enabled: bool) -> Session:
    """Toggle the new-question soft lock; legal in every status."""
    session.is_submissions_enabled = enabled
    db.commit()
    db.refresh(session)
    logger.info("Session %s submissions %s", session.id, "enabled" if enabled else "disabled")
    return session
