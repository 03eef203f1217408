import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from classqa.core.database import Base
from classqa.models.common import generate_id, utcnow


class Visibility(str, enum.Enum):
    PUBLIC = "PUBLIC"
    INSTRUCTOR_ONLY = "INSTRUCTOR_ONLY"


class QuestionStatus(str, enum.Enum):
    OPEN = "OPEN"
    ANSWERED = "ANSWERED"
    RESOLVED = "RESOLVED"


class Question(Base):
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=generate_id)
    session_id = Column(String(36), ForeignKey("sessions.id"), nullable=False, index=True)
    slide_id = Column(String(36), ForeignKey("slides.id", ondelete="SET NULL"), nullable=True, index=True)
    # NULL for anonymous questions; the author is never written, not just hidden
    author_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    visibility = Column(
        SAEnum(Visibility, name="visibility"),
        nullable=False,
        default=Visibility.PUBLIC,
        index=True,
    )
    status = Column(
        SAEnum(QuestionStatus, name="question_status"),
        nullable=False,
        default=QuestionStatus.OPEN,
        index=True,
    )
    # Cache of count(question_upvotes); written only by the upvote service
    upvote_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    # Relationships
    session = relationship("Session", back_populates="questions")
    slide = relationship("Slide", back_populates="questions")
    author = relationship("User", back_populates="questions")
    answers = relationship("Answer", back_populates="question")
    upvotes = relationship("QuestionUpvote", back_populates="question")


class QuestionUpvote(Base):
    __tablename__ = "question_upvotes"
    __table_args__ = (
        UniqueConstraint("question_id", "user_id", name="uq_question_upvote_question_user"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    question = relationship("Question", back_populates="upvotes")
    user = relationship("User", back_populates="upvotes")
