import enum

from sqlalchemy import Column, String, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from classqa.core.database import Base
from classqa.models.common import generate_id


class Role(str, enum.Enum):
    STUDENT = "STUDENT"
    TA = "TA"
    PROFESSOR = "PROFESSOR"


STAFF_ROLES = frozenset({Role.TA, Role.PROFESSOR})


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    utorid = Column(String(64), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(SAEnum(Role, name="role"), nullable=False, default=Role.STUDENT, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    enrollments = relationship("CourseEnrollment", back_populates="user", cascade="all, delete-orphan")
    questions = relationship("Question", back_populates="author")
    answers = relationship("Answer", back_populates="author")
    upvotes = relationship("QuestionUpvote", back_populates="user")
