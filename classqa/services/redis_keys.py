"""Redis key builders. Every rate-limit key is namespaced by action kind."""

RATE_LIMIT_PREFIX = "rate-limit"


def answer_rate_limit(user_id: str) -> str:
    return f"{RATE_LIMIT_PREFIX}:answer:{user_id}"


def question_rate_limit(user_id: str) -> str:
    return f"{RATE_LIMIT_PREFIX}:question:{user_id}"


def upvote_rate_limit(user_id: str) -> str:
    return f"{RATE_LIMIT_PREFIX}:upvote:{user_id}"
