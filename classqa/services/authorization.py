"""Course-level role resolution for staff-only actions."""

from typing import Callable, Optional

from sqlalchemy.orm import Session as DBSession

from classqa.models.course import Course, CourseEnrollment
from classqa.models.user import Role, STAFF_ROLES

# (db, user_id, course_id) -> allowed
Authorizer = Callable[[DBSession, str, str], bool]


def get_course_role(db: DBSession, user_id: str, course_id: str) -> Optional[Role]:
    """The user's role inside ``course_id``, or None when not a member.

    The enrollment role wins over the user's global role; the course creator
    counts as PROFESSOR even without an enrollment row.
    """
    enrollment = (
        db.query(CourseEnrollment)
        .filter(CourseEnrollment.user_id == user_id, CourseEnrollment.course_id == course_id)
        .first()
    )
    if enrollment:
        return Role(enrollment.role)

    course = db.query(Course).filter(Course.id == course_id).first()
    if course and course.created_by_id == user_id:
        return Role.PROFESSOR
    return None


def is_staff(role: Optional[Role]) -> bool:
    return role in STAFF_ROLES


def course_staff_authorizer(db: DBSession, user_id: str, course_id: str) -> bool:
    """Default hook: caller must be PROFESSOR or TA in the course."""
    return is_staff(get_course_role(db, user_id, course_id))
