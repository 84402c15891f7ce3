"""Custom exception hierarchy for Psychic Homily.

All application exceptions inherit from :class:`PsychicHomilyError`, which
carries a human-readable ``message`` and a machine-readable ``code`` so the
API layer can hand clients something stable to branch on.

The hierarchy is organized by the HTTP outcome the error maps to:

    PsychicHomilyError  (base -- catch-all, 500)
    +-- NotFoundError            (404; one subclass per entity)
    +-- ValidationError          (422; bad input that passed schema checks)
    +-- ConflictError            (409; uniqueness violations)
    |   +-- DuplicateShowError   (409; same headliner/venue/date exists)
    +-- InvalidTransitionError   (409; moderation state machine guard)
    +-- PermissionDeniedError    (403)
    +-- AuthenticationError      (401)
    |   +-- TokenExpiredError
    |   +-- TokenInvalidError
    +-- AccountLockedError       (423)
    +-- RateLimitError           (429)
    +-- ConfigurationError       (500; startup / missing config)

``ErrorHandlingMiddleware`` reads ``status_code`` off the exception class,
so adding a new error type never requires touching the middleware.
"""

from __future__ import annotations


class PsychicHomilyError(Exception):
    """Base exception for all Psychic Homily errors.

    The ``__str__`` method prefixes the error code in brackets for
    structured log output, e.g. ``[SHOW_NOT_FOUND] Show 12 not found``.
    """

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        code: str | None = None,
    ) -> None:
        self._message = message
        self._code = code or self.default_code
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def code(self) -> str:
        return self._code

    def __str__(self) -> str:
        return f"[{self._code}] {self._message}"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

class NotFoundError(PsychicHomilyError):
    """Raised when a requested entity does not exist."""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", code: str | None = None) -> None:
        super().__init__(message=message, code=code)


class ShowNotFoundError(NotFoundError):
    default_code = "SHOW_NOT_FOUND"

    def __init__(self, show_id: int | str | None = None) -> None:
        message = f"Show {show_id} not found" if show_id is not None else "Show not found"
        super().__init__(message=message)


class VenueNotFoundError(NotFoundError):
    default_code = "VENUE_NOT_FOUND"

    def __init__(self, venue_id: int | str | None = None) -> None:
        message = f"Venue {venue_id} not found" if venue_id is not None else "Venue not found"
        super().__init__(message=message)


class ArtistNotFoundError(NotFoundError):
    default_code = "ARTIST_NOT_FOUND"

    def __init__(self, artist_id: int | str | None = None) -> None:
        message = f"Artist {artist_id} not found" if artist_id is not None else "Artist not found"
        super().__init__(message=message)


class UserNotFoundError(NotFoundError):
    default_code = "USER_NOT_FOUND"

    def __init__(self, user_id: int | str | None = None) -> None:
        message = f"User {user_id} not found" if user_id is not None else "User not found"
        super().__init__(message=message)


class ReportNotFoundError(NotFoundError):
    default_code = "REPORT_NOT_FOUND"

    def __init__(self, report_id: int | None = None) -> None:
        message = f"Report {report_id} not found" if report_id is not None else "Report not found"
        super().__init__(message=message)


class VenueEditNotFoundError(NotFoundError):
    default_code = "VENUE_EDIT_NOT_FOUND"

    def __init__(self, edit_id: int | None = None) -> None:
        message = (
            f"Pending venue edit {edit_id} not found"
            if edit_id is not None
            else "Pending venue edit not found"
        )
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# Input and state errors
# ---------------------------------------------------------------------------

class ValidationError(PsychicHomilyError):
    """Raised when input is well-formed but semantically invalid."""

    status_code = 422
    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Invalid input",
        code: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        self.errors = list(errors or [])
        super().__init__(message=message, code=code)


class ConflictError(PsychicHomilyError):
    """Raised when a write would violate a uniqueness rule."""

    status_code = 409
    default_code = "CONFLICT"

    def __init__(self, message: str = "Resource already exists", code: str | None = None) -> None:
        super().__init__(message=message, code=code)


class DuplicateShowError(ConflictError):
    """Raised when a show with the same headliner, venue and date exists.

    ``existing_show_id`` points at the show that blocked the submission so
    clients can link to it instead of retrying.
    """

    default_code = "DUPLICATE_SHOW"

    def __init__(
        self,
        headliner: str,
        venue: str,
        event_date: str,
        existing_show_id: int,
    ) -> None:
        self.existing_show_id = existing_show_id
        super().__init__(
            message=(
                f"headliner '{headliner}' is already performing at venue "
                f"'{venue}' on {event_date}"
            ),
        )


class InvalidTransitionError(PsychicHomilyError):
    """Raised when a moderation transition is attempted from the wrong status."""

    status_code = 409
    default_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, message: str, current_status: str | None = None) -> None:
        self.current_status = current_status
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# Auth errors
# ---------------------------------------------------------------------------

class PermissionDeniedError(PsychicHomilyError):
    """Raised when an authenticated user may not perform an action."""

    status_code = 403
    default_code = "FORBIDDEN"

    def __init__(self, message: str = "Permission denied", code: str | None = None) -> None:
        super().__init__(message=message, code=code)


class AuthenticationError(PsychicHomilyError):
    """Raised when credentials are missing or wrong."""

    status_code = 401
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required", code: str | None = None) -> None:
        super().__init__(message=message, code=code)


class TokenExpiredError(AuthenticationError):
    default_code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Token has expired") -> None:
        super().__init__(message=message)


class TokenInvalidError(AuthenticationError):
    default_code = "TOKEN_INVALID"

    def __init__(self, message: str = "Token is invalid") -> None:
        super().__init__(message=message)


class AccountLockedError(PsychicHomilyError):
    """Raised when login is attempted on a temporarily locked account."""

    status_code = 423
    default_code = "ACCOUNT_LOCKED"

    def __init__(self, minutes_remaining: int) -> None:
        self.minutes_remaining = minutes_remaining
        super().__init__(
            message=(
                "Account is temporarily locked due to too many failed login "
                f"attempts. Try again in {minutes_remaining} minute(s)."
            ),
        )


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------

class RateLimitError(PsychicHomilyError):
    """Raised when a client exceeds its request budget."""

    status_code = 429
    default_code = "TOO_MANY_REQUESTS"

    def __init__(self, retry_after: int = 60) -> None:
        self.retry_after = retry_after
        super().__init__(
            message=f"Rate limit exceeded. Please try again in {retry_after} seconds.",
        )


class ConfigurationError(PsychicHomilyError):
    """Raised at startup when required configuration is missing or invalid."""

    default_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str = "Invalid configuration") -> None:
        super().__init__(message=message)
