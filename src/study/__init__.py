"""Spaced-repetition scheduling and study-session engine."""

from .errors import (
    InvalidInputError,
    NotFoundError,
    ServerError,
    StudyServiceError,
    UnauthorizedError,
)
from .service import ServiceStudyBackend, StudyService
from .session import SessionStatus, StudySession

__all__ = [
    "InvalidInputError",
    "NotFoundError",
    "ServerError",
    "ServiceStudyBackend",
    "SessionStatus",
    "StudyService",
    "StudyServiceError",
    "StudySession",
    "UnauthorizedError",
]
