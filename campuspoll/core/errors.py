"""Domain errors; main.py maps each one to an HTTP failure envelope."""
from typing import Any, Dict, Optional


class PollError(Exception):
    """Base class for errors the API turns into a failure envelope"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(PollError):
    status_code = 400


class AuthenticationError(PollError):
    status_code = 401


class PermissionDeniedError(PollError):
    status_code = 403


class NotFoundError(PollError):
    status_code = 404


class AlreadyRespondedError(PollError):
    """Raised when a user answers a prompt they have already answered.

    Carries the stored response so the client can render the prior answer.
    """

    status_code = 400

    def __init__(self, existing: Optional[Dict[str, Any]]):
        super().__init__("User has already responded to this prompt")
        self.existing = existing
