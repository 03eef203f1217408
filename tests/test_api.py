from sqlalchemy.exc import IntegrityError, OperationalError

from classqa.api.deps import get_rate_limiter
from classqa.api.routes import questions, sessions
from classqa.main import app
from classqa.models import Answer, Question, QuestionStatus, SessionStatus, Visibility
from classqa.services.rate_limiter import RedisRateLimiter
from tests.fakes import DownRedis
from tests.helpers import auth, end_session


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_requires_identity(client, classroom):
    response = client.get(f"/api/sessions/{classroom.session.id}/questions")
    assert response.status_code == 401


def test_bearer_identity(client, classroom):
    response = client.get(
        f"/api/sessions/{classroom.session.id}/questions",
        headers={"Authorization": f"Bearer {classroom.student.id}"},
    )
    assert response.status_code == 200


def test_post_question(client, classroom):
    response = client.post(
        f"/api/sessions/{classroom.session.id}/questions",
        json={"content": "What is a generator?", "visibility": "INSTRUCTOR_ONLY"},
        headers=auth(classroom.student),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "OPEN"
    assert body["visibility"] == "INSTRUCTOR_ONLY"
    assert body["author"]["id"] == classroom.student.id


def test_post_anonymous_question_hides_author(client, classroom):
    response = client.post(
        f"/api/sessions/{classroom.session.id}/questions",
        json={"content": "Is this on the midterm?", "is_anonymous": True},
        headers=auth(classroom.student),
    )
    assert response.status_code == 201
    assert response.json()["author"] is None


def test_question_errors_map_to_status(client, db, classroom):
    url = f"/api/sessions/{classroom.session.id}/questions"

    short = client.post(url, json={"content": "hey"}, headers=auth(classroom.student))
    assert short.status_code == 400
    assert short.json()["detail"] == {"error": "Question must be at least 5 characters.", "kind": "invalid_input"}

    missing = client.post("/api/sessions/nope/questions", json={"content": "Hello there"},
                          headers=auth(classroom.student))
    assert missing.status_code == 404

    classroom.session.is_submissions_enabled = False
    db.commit()
    disabled = client.post(url, json={"content": "Hello there"}, headers=auth(classroom.student))
    assert disabled.status_code == 403
    assert disabled.json()["detail"]["kind"] == "submissions_disabled"


def test_question_rate_limit_returns_429(client, classroom):
    url = f"/api/sessions/{classroom.session.id}/questions"
    for i in range(10):
        assert client.post(url, json={"content": f"Question {i}"}, headers=auth(classroom.student)).status_code == 201
    response = client.post(url, json={"content": "Question 11"}, headers=auth(classroom.student))
    assert response.status_code == 429


def test_limiter_outage_returns_503(client, classroom, make_question):
    question = make_question()
    app.dependency_overrides[get_rate_limiter] = lambda: RedisRateLimiter(redis_client=DownRedis())

    response = client.post(
        f"/api/questions/{question.id}/answers",
        json={"content": "An answer"},
        headers=auth(classroom.ta),
    )
    assert response.status_code == 503
    assert response.json()["detail"]["kind"] == "unavailable"


def test_list_questions_hides_instructor_only(client, classroom, make_question):
    make_question("Public question here")
    make_question("Private question here", visibility=Visibility.INSTRUCTOR_ONLY)
    url = f"/api/sessions/{classroom.session.id}/questions"

    student = client.get(url, headers=auth(classroom.other_student)).json()
    assert [q["content"] for q in student["questions"]] == ["Public question here"]

    staff = client.get(url, params={"includeTotal": "true"}, headers=auth(classroom.ta)).json()
    assert staff["count"] == 2
    assert staff["total"] == 2

    outsider = client.get(url, headers=auth(classroom.outsider))
    assert outsider.status_code == 403


def test_list_questions_ignores_unknown_sort_and_status(client, classroom, make_question):
    make_question()
    response = client.get(
        f"/api/sessions/{classroom.session.id}/questions",
        params={"sortBy": "loudest", "status": "PENDING"},
        headers=auth(classroom.student),
    )
    assert response.status_code == 200
    assert response.json()["count"] == 1


def test_upvote_toggle(client, classroom, make_question):
    question = make_question()
    url = f"/api/questions/{question.id}/upvote"

    added = client.post(url, headers=auth(classroom.other_student))
    assert added.status_code == 200
    assert added.json() == {"question_id": question.id, "applied": "added", "new_count": 1}

    removed = client.post(url, headers=auth(classroom.other_student)).json()
    assert removed["applied"] == "removed"
    assert removed["new_count"] == 0


def test_answer_flow(client, db, classroom, make_question):
    question = make_question()
    url = f"/api/questions/{question.id}/answers"

    created = client.post(url, json={"content": "It returns a value."}, headers=auth(classroom.ta))
    assert created.status_code == 201
    answer_id = created.json()["id"]
    assert created.json()["author"]["role"] == "PROFESSOR"

    db.expire_all()
    assert db.query(Question).filter(Question.id == question.id).one().status == QuestionStatus.ANSWERED

    forbidden = client.post(f"/api/answers/{answer_id}/accept", headers=auth(classroom.student))
    assert forbidden.status_code == 403

    accepted = client.post(f"/api/answers/{answer_id}/accept", headers=auth(classroom.ta))
    assert accepted.status_code == 200
    assert accepted.json()["is_accepted"] is True

    listing = client.get(url, headers=auth(classroom.student)).json()
    assert listing["count"] == 1
    assert listing["answers"][0]["id"] == answer_id


def test_answer_errors_map_to_status(client, db, classroom, make_question):
    question = make_question()
    url = f"/api/questions/{question.id}/answers"

    empty = client.post(url, json={"content": ""}, headers=auth(classroom.student))
    assert empty.status_code == 400
    assert empty.json()["detail"]["error"] == "Answer content is required."

    unknown = client.post("/api/questions/unknown/answers", json={"content": "Hi"}, headers=auth(classroom.student))
    assert unknown.status_code == 404

    end_session(db, classroom.session)
    ended = client.post(url, json={"content": "Hi"}, headers=auth(classroom.student))
    assert ended.status_code == 403
    assert ended.json()["detail"] == {
        "error": "Cannot answer questions in an ended session.",
        "kind": "session_ended",
    }
    db.expire_all()
    assert db.query(Answer).count() == 0


def test_resolve_endpoint(client, db, classroom, make_question):
    question = make_question()
    url = f"/api/questions/{question.id}/resolve"

    assert client.post(url, headers=auth(classroom.student)).status_code == 403
    response = client.post(url, headers=auth(classroom.professor))
    assert response.status_code == 200
    assert response.json()["status"] == "RESOLVED"


def test_session_status_endpoint(client, classroom):
    url = f"/api/sessions/{classroom.session.id}/status"

    assert client.patch(url, json={"status": "ENDED"}, headers=auth(classroom.student)).status_code == 403

    ended = client.patch(url, json={"status": "ENDED"}, headers=auth(classroom.ta))
    assert ended.status_code == 200
    assert ended.json()["status"] == SessionStatus.ENDED.value
    assert ended.json()["end_time"] is not None

    reopened = client.patch(url, json={"status": "ACTIVE"}, headers=auth(classroom.ta))
    assert reopened.status_code == 409
    assert reopened.json()["detail"]["kind"] == "invalid_transition"


def test_session_submissions_endpoint(client, classroom):
    response = client.patch(
        f"/api/sessions/{classroom.session.id}/submissions",
        json={"is_submissions_enabled": False},
        headers=auth(classroom.professor),
    )
    assert response.status_code == 200
    assert response.json()["is_submissions_enabled"] is False

    rejected = client.post(
        f"/api/sessions/{classroom.session.id}/questions",
        json={"content": "Can I still ask?"},
        headers=auth(classroom.student),
    )
    assert rejected.status_code == 403


def test_unknown_session_management(client, classroom):
    response = client.patch("/api/sessions/nope/status", json={"status": "ENDED"}, headers=auth(classroom.ta))
    assert response.status_code == 404


def _connection_lost(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("server closed the connection unexpectedly"))


def test_database_outage_returns_503(monkeypatch, client, classroom, make_question):
    question = make_question()
    monkeypatch.setattr(sessions, "list_questions", _connection_lost)
    monkeypatch.setattr(questions, "list_answers", _connection_lost)

    listing = client.get(f"/api/sessions/{classroom.session.id}/questions", headers=auth(classroom.student))
    assert listing.status_code == 503
    assert listing.json()["detail"]["kind"] == "unavailable"

    answers = client.get(f"/api/questions/{question.id}/answers", headers=auth(classroom.student))
    assert answers.status_code == 503


def test_other_database_errors_return_500(monkeypatch, client, classroom):
    def broken(*args, **kwargs):
        raise IntegrityError("INSERT", {}, Exception("constraint failed"))

    monkeypatch.setattr(sessions, "create_question", broken)
    response = client.post(
        f"/api/sessions/{classroom.session.id}/questions",
        json={"content": "What is a tuple?"},
        headers=auth(classroom.student),
    )
    assert response.status_code == 500
    assert response.json()["detail"].startswith("Database error")


def test_hidden_question_answer_is_404(client, db, classroom, make_question):
    question = make_question(visibility=Visibility.INSTRUCTOR_ONLY)
    response = client.post(
        f"/api/questions/{question.id}/answers",
        json={"content": "Peeking"},
        headers=auth(classroom.student),
    )
    assert response.status_code == 404
    db.expire_all()
    assert db.query(Question).filter(Question.id == question.id).one().status == QuestionStatus.OPEN
