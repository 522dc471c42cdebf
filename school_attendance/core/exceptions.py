# school_attendance/core/exceptions.py


class ServiceError(Exception):
    """Base class for business-rule failures raised by the service layer."""
    status_code = 400

    def __init__(self, message: str, **payload):
        super().__init__(message)
        self.message = message
        self.payload = payload


class ValidationError(ServiceError):
    status_code = 400


class InvalidStateError(ServiceError):
    """The target object is not in a state that allows the operation."""
    status_code = 400


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409
