class DomainError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    status_code = 400
    default_message = "Invalid input"


class Unauthenticated(DomainError):
    status_code = 401
    default_message = "Not authorized"


class Forbidden(DomainError):
    status_code = 403
    default_message = "Access denied. Insufficient permissions."


class NotFound(DomainError):
    status_code = 404
    default_message = "Not found"


class Conflict(DomainError):
    status_code = 400
    default_message = "Already exists"


class CapacityExceeded(Conflict):
    default_message = "This course is full"


class InternalError(DomainError):
    """Storage failure; details are logged, the client only sees a generic message."""
