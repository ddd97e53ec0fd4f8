"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class PermissionDeniedError(AppError):
    """Raised when the current role may not perform an action."""

    def __init__(self, message="You are not authorized to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class DuplicateSessionError(DuplicateResourceError):
    """Raised when a backend already holds a session with the same id."""

    def __init__(self, session_id):
        """Initialize the error."""
        super().__init__(f"Session {session_id} already exists.")
        self.session_id = session_id


class SessionClosedError(AppError):
    """Raised when a result is submitted to a CLOSED session."""

    def __init__(self, message="This session is closed for reporting."):
        """Initialize the error."""
        super().__init__(message, 409)


class UnknownRefereeError(ValidationError):
    """Raised when the reporting referee is not on the session roster."""

    def __init__(self, name):
        """Initialize the error."""
        super().__init__(f"{name} is not a referee of this session.")
        self.name = name


class ImportFormatError(ValidationError):
    """Raised when a spreadsheet cannot be turned into tables."""

    def __init__(self, message="The file could not be read as a table sheet."):
        """Initialize the error."""
        super().__init__(message)
