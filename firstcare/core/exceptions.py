"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    code = "APP_ERROR"

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ConflictException(AppException):
    """Conflict exception."""

    code = "CONFLICT"

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class RateLimitException(AppException):
    """Rate limit exceeded exception."""

    code = "RATE_LIMITED"

    def __init__(self, message: str = "Rate limit exceeded"):
        """Initialize with 429 status code."""
        super().__init__(message, status_code=429)


# ============================================================================
# Scheduling errors
# ============================================================================


class InvalidDateException(ValidationException):
    """Appointment date is in the past or beyond the booking horizon."""

    code = "INVALID_DATE"

    def __init__(self, message: str = "Invalid appointment date"):
        super().__init__(message)


class InvalidTimeException(ValidationException):
    """Appointment time is malformed or off the half-hour grid."""

    code = "INVALID_TIME"

    def __init__(self, message: str = "Invalid appointment time"):
        super().__init__(message)


class InvalidDurationException(ValidationException):
    """Appointment duration is outside the allowed bounds."""

    code = "INVALID_DURATION"

    def __init__(self, message: str = "Appointment duration must be between 15 and 240 minutes"):
        super().__init__(message)


class IncompatibleFacilityException(ValidationException):
    """Urgency level cannot be served by the facility type."""

    code = "INCOMPATIBLE_FACILITY"

    def __init__(self, message: str = "Emergency appointments require hospital facilities"):
        super().__init__(message)


class DistrictAccessDeniedException(ForbiddenException):
    """Actor may not book in the requested district."""

    code = "DISTRICT_ACCESS_DENIED"

    def __init__(
        self,
        message: str = "You can only book appointments in your registered health district",
    ):
        super().__init__(message)


class PatientDoubleBookingException(ConflictException):
    """Patient already holds an active booking at the same date and time."""

    code = "PATIENT_DOUBLE_BOOKING"

    def __init__(
        self,
        message: str = "You already have an appointment scheduled at this date and time",
    ):
        super().__init__(message)


class ProviderUnavailableException(ConflictException):
    """Provider already has an overlapping active booking."""

    code = "PROVIDER_UNAVAILABLE"

    def __init__(
        self,
        message: str = "The selected healthcare provider is not available at this time",
    ):
        super().__init__(message)


class CancellationNotAllowedException(ConflictException):
    """Appointment is outside its cancellation or reschedule window."""

    code = "CANCELLATION_NOT_ALLOWED"

    def __init__(
        self,
        message: str = "This appointment can no longer be cancelled. "
        "Please contact the healthcare facility directly.",
    ):
        super().__init__(message)


class InvalidTransitionException(ConflictException):
    """Requested status change is not part of the appointment lifecycle."""

    code = "INVALID_TRANSITION"

    def __init__(self, source: str, target: str):
        """Initialize with the attempted source and target statuses."""
        self.source = source
        self.target = target
        super().__init__(f"Cannot change appointment status from '{source}' to '{target}'")


class StaleAppointmentException(ConflictException):
    """Appointment was changed by another request after it was loaded."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(
        self,
        message: str = "This appointment was changed by another request. "
        "Please reload it and try again.",
    ):
        super().__init__(message)


class PersistenceFailureException(AppException):
    """Opaque wrapper around a storage error."""

    code = "PERSISTENCE_FAILURE"

    def __init__(self, message: str = "Failed to store appointment"):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)
