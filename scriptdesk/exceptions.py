"""Custom exception hierarchy for scriptdesk."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    SCRIPT_NOT_FOUND = "SCRIPT_NOT_FOUND"
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"

    # Version errors
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"

    # Folder hierarchy errors
    INVALID_HIERARCHY = "INVALID_HIERARCHY"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Store errors
    DUPLICATE_KEY = "DUPLICATE_KEY"
    CONFLICT = "CONFLICT"


class ScriptDeskException(Exception):
    """
    Base exception for all scriptdesk errors.

    Provides structured error responses with:
    - Human-readable message
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
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code the request layer should return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(ScriptDeskException):
    """A referenced project, script, folder or stored document does not exist."""

    error_code = ErrorCode.DOCUMENT_NOT_FOUND
    resource = "Document"
    id_field = "doc_id"

    def __init__(self, entity_id: str):
        super().__init__(
            f"{self.resource} not found: {entity_id}",
            type(self).error_code,
            status_code=404,
            details={self.id_field: entity_id}
        )


class ProjectNotFoundError(NotFoundError):
    """Project not found in the store."""

    error_code = ErrorCode.PROJECT_NOT_FOUND
    resource = "Project"
    id_field = "project_id"


class ScriptNotFoundError(NotFoundError):
    """Script not found in the store."""

    error_code = ErrorCode.SCRIPT_NOT_FOUND
    resource = "Script"
    id_field = "script_id"


class FolderNotFoundError(NotFoundError):
    """Folder id not present in the project's folder forest."""

    error_code = ErrorCode.FOLDER_NOT_FOUND
    resource = "Folder"
    id_field = "folder_id"


class VersionNotFoundError(ScriptDeskException):
    """Revert or lookup against a version number the script never had."""

    def __init__(self, script_id: str, version: int):
        super().__init__(
            f"Version {version} not found for script {script_id}",
            ErrorCode.VERSION_NOT_FOUND,
            status_code=404,
            details={"script_id": script_id, "version": version}
        )


class InvalidHierarchyError(ScriptDeskException):
    """A folder mutation would introduce a cycle or a duplicate id."""

    def __init__(self, message: str, folder_id: Optional[str] = None):
        details = {"folder_id": folder_id} if folder_id else {}
        super().__init__(
            message,
            ErrorCode.INVALID_HIERARCHY,
            status_code=400,
            details=details
        )


class ValidationError(ScriptDeskException):
    """Validation failed for a document or user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class DuplicateKeyError(ScriptDeskException):
    """A write would violate a unique index declared on the collection."""

    def __init__(self, collection: str, index_name: str):
        super().__init__(
            f"Duplicate value for unique index {index_name} on {collection}",
            ErrorCode.DUPLICATE_KEY,
            status_code=409,
            details={"collection": collection, "index": index_name}
        )


class ConflictError(ScriptDeskException):
    """Update conflicts with a concurrent modification."""

    def __init__(self, doc_id: str, message: str = "Document was modified by another writer"):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details={"doc_id": doc_id}
        )
