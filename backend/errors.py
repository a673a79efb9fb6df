"""Exception hierarchy shared by the services, the API and the CLI.

Every failure is scoped to a single user action. The HTTP layer maps each
class to a status code in ``backend.main``; the message is surfaced verbatim.
"""


class FlashdeckError(Exception):
    """Base class for all application errors."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(FlashdeckError):
    """A required setting is missing."""

    status_code = 503


class StoreError(FlashdeckError):
    """A fetch/insert/update/delete against the database failed."""

    status_code = 502


class ValidationError(FlashdeckError):
    """Input rejected before any request was made."""

    status_code = 422


class NotFoundError(FlashdeckError):
    status_code = 404


class AuthenticationError(FlashdeckError):
    status_code = 401


class PermissionDeniedError(FlashdeckError):
    status_code = 403


class NoCardsAvailableError(FlashdeckError):
    """The chosen study scope has no eligible cards. Not retryable."""

    status_code = 404

    def __init__(self, message: str = "No flashcards found for this selection.") -> None:
        super().__init__(message)


class SessionStateError(FlashdeckError):
    """A study action is not legal in the session's current status."""

    status_code = 409


class CapabilityError(FlashdeckError):
    """The database schema lacks a feature the operation needs."""

    status_code = 409
