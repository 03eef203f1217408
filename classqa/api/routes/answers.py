from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from classqa.api.errors import database_error, to_http_exception
from classqa.core.auth import get_current_user_id
from classqa.core.database import get_db
from classqa.core.errors import ValidationError
from classqa.schemas.answer import AnswerResponse
from classqa.services.answers import accept_answer

router = APIRouter()


@router.post("/{answer_id}/accept", response_model=AnswerResponse)
def accept(
    answer_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Accept an answer (instructor/TA action). Replaces any earlier pick."""
    try:
        result = accept_answer(db, answer_id, user_id)
    except SQLAlchemyError as e:
        raise database_error(db, e) from e
    if isinstance(result, ValidationError):
        raise to_http_exception(result)
    return result
