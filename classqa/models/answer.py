from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from classqa.core.database import Base
from classqa.models.common import generate_id, utcnow


class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        # At most one accepted answer per question
        Index(
            "uq_answers_accepted_per_question",
            "question_id",
            unique=True,
            postgresql_where=text("is_accepted"),
            sqlite_where=text("is_accepted = 1"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False, index=True)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_accepted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    # Relationships
    question = relationship("Question", back_populates="answers")
    author = relationship("User", back_populates="answers")
