import enum
import secrets
import string

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from classqa.core.database import Base
from classqa.models.common import generate_id


def generate_join_code(length: int = 6) -> str:
    """Generate a random alphanumeric join code."""
    alphabet = string.ascii_uppercase + string.digits
    # Exclude confusing characters like 0, O, I, 1
    alphabet = alphabet.replace('0', '').replace('O', '').replace('I', '').replace('1', '')
    return ''.join(secrets.choice(alphabet) for _ in range(length))


class SessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class Session(Base):
    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    join_code = Column(String(20), unique=True, nullable=False, default=generate_join_code)
    status = Column(
        SAEnum(SessionStatus, name="session_status"),
        nullable=False,
        default=SessionStatus.SCHEDULED,
        index=True,
    )
    is_submissions_enabled = Column(Boolean, nullable=False, default=False)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    course = relationship("Course", back_populates="sessions")
    creator = relationship("User", foreign_keys=[created_by_id])
    slides = relationship("Slide", back_populates="session", order_by="Slide.slide_number")
    questions = relationship("Question", back_populates="session")


class Slide(Base):
    __tablename__ = "slides"

    id = Column(String(36), primary_key=True, default=generate_id)
    session_id = Column(String(36), ForeignKey("sessions.id"), nullable=False, index=True)
    slide_number = Column(Integer, nullable=False)
    content_url = Column(String(500), nullable=False)

    # Relationships
    session = relationship("Session", back_populates="slides")
    questions = relationship("Question", back_populates="slide")
