"""
Domain exceptions - Semantic error types for authentication.

Business outcomes are returned as ResultKind values, never raised.
These exceptions cover the few conditions that cross a port boundary
and must be translated by the orchestrator.
"""


class AuthError(Exception):
    """Base class for authentication domain errors."""

    pass


class AccountConflict(AuthError):
    """The credential store rejected a write on a unique field."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"{field} already taken: {value}")
        self.field = field
        self.value = value


class HandleAllocationExhausted(AuthError):
    """Every handle candidate collided within the retry budget."""

    def __init__(self, username: str, attempts: int) -> None:
        super().__init__(f"no free handle for {username} after {attempts} attempts")
        self.username = username
        self.attempts = attempts
