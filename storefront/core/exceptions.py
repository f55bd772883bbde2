from typing import Optional, Any

class StorefrontError(Exception):
    """
    Base exception for the storefront API.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class BadRequestError(StorefrontError):
    """
    Raised when a request is missing input or carries invalid input.
    """
    def __init__(self, message: str = "Bad request", details: Optional[Any] = None):
        super().__init__(message, code="BAD_REQUEST", status_code=400, details=details)

class AuthenticationError(StorefrontError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class ForbiddenError(StorefrontError):
    """
    Raised when an operation is not allowed in the current environment.
    """
    def __init__(self, message: str = "Forbidden", details: Optional[Any] = None):
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)

class ResourceNotFoundError(StorefrontError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class ConflictError(StorefrontError):
    """
    Raised when a document changed between read and write.
    """
    def __init__(self, message: str = "Document was modified concurrently", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)

