"""Exceptions raised by local context operations.

Failures local to a single reference never surface as exceptions; they are
skipped or rendered inline by the resolver. The errors here belong to
operations that cannot proceed at all.
"""

from typing import List, Optional


class LocalContextError(Exception):
    """Base exception for local context errors."""

    pass


class ProjectNotFoundError(LocalContextError):
    """Raised when a project-scoped action runs outside any project."""

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory

        message = "No project found"
        if directory:
            message += f" for {directory}"
        message += (
            ".\n"
            "Project file listing needs an enclosing git repository or a "
            "directory containing a .project marker file."
        )
        super().__init__(message)


class PersistenceError(LocalContextError):
    """Raised when saved references in a document cannot be decoded."""

    def __init__(self, document_name: str, reason: str):
        self.document_name = document_name
        self.reason = reason
        super().__init__(
            f"Cannot restore local context for '{document_name}': {reason}"
        )


class ConfigValidationError(LocalContextError):
    """Raised when configuration validation fails."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Configuration validation failed: {'; '.join(errors)}")
