# Import all models here so Base.metadata is complete for Alembic
from classqa.models.user import User, Role
from classqa.models.course import Course, CourseEnrollment
from classqa.models.session import Session, SessionStatus, Slide
from classqa.models.question import Question, QuestionStatus, QuestionUpvote, Visibility
from classqa.models.answer import Answer

__all__ = [
    "User",
    "Role",
    "Course",
    "CourseEnrollment",
    "Session",
    "SessionStatus",
    "Slide",
    "Question",
    "QuestionStatus",
    "QuestionUpvote",
    "Visibility",
    "Answer",
]
