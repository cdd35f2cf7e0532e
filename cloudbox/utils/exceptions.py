class CloudBoxException(Exception):
    """Base exception for the application"""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CloudBoxException):
    """Malformed or missing request fields"""
    status_code = 400
    default_message = "Invalid request"


class FileTooLargeError(ValidationError):
    """Upload exceeded the configured size cap"""
    status_code = 413
    default_message = "File too large"


class AuthenticationError(CloudBoxException):
    """No identity presented, or the presented token did not verify"""
    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(CloudBoxException):
    """Identity resolved but not allowed to act on the resource"""
    status_code = 403
    default_message = "Access denied"


class NotFoundError(CloudBoxException):
    """Resource not found errors"""
    status_code = 404
    default_message = "Not found"


class BlobNotFoundError(NotFoundError):
    """Catalog row exists but the stored bytes do not"""
    default_message = "File not found on disk"


class ConflictError(CloudBoxException):
    """Resource conflict errors"""
    status_code = 409
    default_message = "Conflict"


class FileOperationError(CloudBoxException):
    """Blob store failures other than a missing object"""
    status_code = 500
    default_message = "File operation failed"
