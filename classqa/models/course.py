from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from classqa.core.database import Base
from classqa.models.common import generate_id
from classqa.models.user import Role


class Course(Base):
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=generate_id)
    code = Column(String(32), nullable=False)
    name = Column(String(255), nullable=False)
    semester = Column(String(64), nullable=False, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    creator = relationship("User", foreign_keys=[created_by_id])
    enrollments = relationship("CourseEnrollment", back_populates="course", cascade="all, delete-orphan")
    sessions = relationship("Session", back_populates="course")


class CourseEnrollment(Base):
    """A user's membership in a course, with a course-specific role."""
    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_course_enrollment_user_course"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    role = Column(SAEnum(Role, name="role"), nullable=False)

    # Relationships
    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
