"""Custom exception hierarchy for Sedia Arcive.

Missing targets and targets the caller does not own raise the same
NotFound errors so responses never reveal whether another user's item exists.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    SHARE_LINK_NOT_FOUND = "SHARE_LINK_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"

    # Folder hierarchy errors
    SELF_PARENT = "SELF_PARENT"
    CIRCULAR_MOVE = "CIRCULAR_MOVE"

    # Quota / admission
    UPLOAD_REJECTED = "UPLOAD_REJECTED"

    # Public links
    SHARE_LINK_EXPIRED = "SHARE_LINK_EXPIRED"
    PASSWORD_REQUIRED = "PASSWORD_REQUIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth & rate limiting
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    # Infrastructure
    STORAGE_ERROR = "STORAGE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ArciveException(Exception):
    """
    Base exception for all Sedia Arcive errors.

    Provides structured error responses with:
    - Human-readable message (rendered as the top-level ``error`` string)
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the JSON error body."""
        return {
            "error": self.message,
            "code": self.error_code.value,
            "details": self.details
        }


class NotFoundError(ArciveException):
    """Target is absent or not visible to the caller."""

    def __init__(
        self,
        message: str = "Not found",
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, status_code=404, details=details)


class FileRecordNotFoundError(NotFoundError):
    """File missing, not owned by the caller, or not in the expected lifecycle state."""

    def __init__(self, file_id: str, message: str = "File not found"):
        super().__init__(message, ErrorCode.FILE_NOT_FOUND, details={"fileId": file_id})


class FolderNotFoundError(NotFoundError):
    """Folder missing or not owned by the caller."""

    def __init__(self, folder_id: str, message: str = "Folder not found"):
        super().__init__(message, ErrorCode.FOLDER_NOT_FOUND, details={"folderId": folder_id})


class ShareLinkNotFoundError(NotFoundError):
    """Unknown share token or share link id."""

    def __init__(self, message: str = "Share link not found"):
        super().__init__(message, ErrorCode.SHARE_LINK_NOT_FOUND)


class UserNotFoundError(NotFoundError):
    """No user matches the given identifier."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, ErrorCode.USER_NOT_FOUND)


class ValidationError(ArciveException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class SelfParentError(ArciveException):
    """A folder cannot become its own parent."""

    def __init__(self, folder_id: str):
        super().__init__(
            "Cannot move folder into itself",
            ErrorCode.SELF_PARENT,
            status_code=400,
            details={"folderId": folder_id}
        )


class CircularMoveError(ArciveException):
    """Moving the folder would put it under one of its own descendants."""

    def __init__(self, folder_id: str, parent_id: str):
        super().__init__(
            "Cannot move folder into its own subfolder",
            ErrorCode.CIRCULAR_MOVE,
            status_code=400,
            details={"folderId": folder_id, "parentId": parent_id}
        )


class QuotaExceededError(ArciveException):
    """Upload rejected by the admission checks."""

    def __init__(self, message: str, reason: str):
        super().__init__(
            message,
            ErrorCode.UPLOAD_REJECTED,
            status_code=403,
            details={"reason": reason}
        )


class ShareLinkExpiredError(ArciveException):
    """Share link exists but its expiry has passed."""

    def __init__(self):
        super().__init__(
            "Share link has expired",
            ErrorCode.SHARE_LINK_EXPIRED,
            status_code=410,
        )


class PasswordRequiredError(ArciveException):
    """Share link is password protected and no valid password was supplied."""

    def __init__(self):
        super().__init__(
            "Password required",
            ErrorCode.PASSWORD_REQUIRED,
            status_code=401,
            details={"requiresPassword": True}
        )


class InvalidSignatureError(ArciveException):
    """Signed download URL is malformed, tampered with, or expired."""

    def __init__(self, message: str = "Invalid or expired download link"):
        super().__init__(message, ErrorCode.INVALID_SIGNATURE, status_code=403)


class AuthenticationError(ArciveException):
    """Request lacks a valid session."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(ArciveException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class StorageError(ArciveException):
    """Object store operation failed."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, ErrorCode.STORAGE_ERROR, status_code=500)
