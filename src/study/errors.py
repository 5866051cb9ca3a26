"""Error kinds raised by the study engine and its storage boundary."""

from __future__ import annotations


ERROR_MESSAGES = {
    "unauthorized": "Your session has expired. Send /start to sign in again.",
    "network_error": "Connection problem. Check your network and try again.",
    "server_error": "Server error. Please try again later.",
    "flashcard_not_found": "Flashcard not found.",
    "invalid_review": "Invalid review data.",
}


class StudyServiceError(Exception):
    """Base error carrying a user-facing message and an HTTP-like status code."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthorizedError(StudyServiceError):
    """The caller has no valid identity and must authenticate again."""

    status_code = 401

    def __init__(self, message: str = ERROR_MESSAGES["unauthorized"]) -> None:
        super().__init__(message)


class NotFoundError(StudyServiceError):
    """The flashcard does not exist or belongs to somebody else."""

    status_code = 404

    def __init__(self, message: str = ERROR_MESSAGES["flashcard_not_found"]) -> None:
        super().__init__(message)


class InvalidInputError(StudyServiceError):
    """A request carried a malformed identifier or judgment."""

    status_code = 400

    def __init__(self, message: str = ERROR_MESSAGES["invalid_review"]) -> None:
        super().__init__(message)


class ServerError(StudyServiceError):
    """Storage failed; the message is deliberately generic."""

    status_code = 500

    def __init__(self, message: str = ERROR_MESSAGES["server_error"]) -> None:
        super().__init__(message)
