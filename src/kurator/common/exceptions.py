"""Kurator exception hierarchy."""


class KuratorError(Exception):
    """Base exception for all Kurator errors."""

    status_code = 500

    def __init__(self, message: str = "", code: str = "KURATOR_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(KuratorError):
    """Raised when a referenced entity does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class ForbiddenError(KuratorError):
    """Raised when a role or block-scope check fails on a write path."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="FORBIDDEN")


class InvalidArgumentError(KuratorError):
    """Raised when a required field is missing or a referenced entity is invalid."""

    status_code = 400

    def __init__(self, message: str = "Invalid argument"):
        super().__init__(message, code="INVALID_ARGUMENT")


class ConflictError(KuratorError):
    """Raised when a unique value is already taken."""

    status_code = 409

    def __init__(self, message: str = "Already exists"):
        super().__init__(message, code="CONFLICT")


class MalformedPayloadError(KuratorError):
    """Raised when an optional embedded JSON payload cannot be parsed.

    Callers log and skip it; it never fails the parent operation.
    """

    status_code = 400

    def __init__(self, message: str = "Malformed payload"):
        super().__init__(message, code="MALFORMED_PAYLOAD")
