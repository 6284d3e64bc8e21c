"""Domain exceptions raised by the article core."""


class ConduitError(Exception):
    """Base class for Conduit domain errors."""

    def __init__(self, message: str = "A conduit error occurred") -> None:
        super().__init__(message)
        self.message = message


class AuthorizationError(ConduitError):
    """Raised when a user tries to modify an article written by someone else."""

    def __init__(self, message: str = "You can't edit articles written by others.") -> None:
        super().__init__(message)
