class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the allocator is handed input it cannot work with."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)

class PreflightFailedError(AppError):
    """Raised when schedulability checks block generation."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class TimetableExistsError(AppError):
    """Raised when a term already has slots and regeneration was not requested."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)

class GenerationInProgressError(AppError):
    """Raised when another generation run holds the term."""
    def __init__(self, term_id: str):
        super().__init__(
            f"Timetable generation is already running for term {term_id}",
            status_code=409,
            details={"term_id": term_id},
        )

class RegenerationWindowError(AppError):
    """Raised when an existing timetable is past its regeneration window."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=403, details=details)

class GenerationLockedError(AppError):
    """Raised while the configured generation deadline has not passed."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=403, details=details)

class PersistenceError(AppError):
    """Raised when the timetable could not be written; nothing was committed."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=500, details=details)
