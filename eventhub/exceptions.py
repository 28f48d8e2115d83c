"""
Custom exceptions for better error handling and member feedback
"""
from typing import Any


class ApiError(Exception):
    """An error rendered in the ``/api`` response envelope."""

    def __init__(self, status_code: int, message: Any):
        self.status_code = status_code
        self.message = message
        super().__init__(message if isinstance(message, str) else repr(message))


class NotFoundError(ApiError):
    def __init__(self, what: Any):
        super().__init__(404, f"{what} is not found")


class ForbiddenError(ApiError):
    def __init__(self):
        super().__init__(403, "403 Forbidden: No permission")


class AccountLinkError(Exception):
    """Raised when an OAuth identity cannot be linked or signed in."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProviderError(Exception):
    """Raised when an OAuth provider call fails."""


class ImageValidationError(Exception):
    """Base class for image validation errors"""
    status_code = 400


class ImageTooLargeError(ImageValidationError):
    """Raised when uploaded image exceeds size limit"""
    status_code = 413

    def __init__(self, max_size_mb: int):
        self.max_size_mb = max_size_mb
        super().__init__(f"File size > {max_size_mb}MB")


class UnsupportedImageFormatError(ImageValidationError):
    """Raised when uploaded file is not an allowed image type"""
    status_code = 415

    def __init__(self, allowed: str = "jpeg|jpg|png"):
        super().__init__(
            f"File upload only supports the following file types - {allowed}")


class CorruptedImageError(ImageValidationError):
    """Raised when image file is corrupted or unreadable"""

    def __init__(self):
        super().__init__("The image file appears to be corrupted or damaged. Please try uploading a different image.")


class RedirectRequired(Exception):
    """Raised by web dependencies to send the browser elsewhere."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(location)
