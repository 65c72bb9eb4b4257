"""Data models for local context resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SourceKind(Enum):
    """Where the text of a resolved reference came from."""
    BUFFER = "buffer"              # Open document, text taken from memory
    FILE = "file"                  # Path on disk relative to the scope
    PROJECT_FILE = "project_file"  # Base-name match in the project index
    FUNCTION = "function"          # Zero-argument callable registered with the host


class DocumentKind(Enum):
    """Document flavour, selects the persistence encoding."""
    OUTLINE = "outline"  # Org-style outline with a property drawer
    TEXT = "text"        # Any other text, trailing local-variables block


@dataclass(frozen=True)
class ResolvedBlock:
    """Text produced for one reference during one merge.

    Attributes:
        kind: Which classifier matched.
        label: Name shown to the model (document name, path or function name).
        body: Literal text of the source.
        span: 1-based inclusive line range for buffer sources.
        path: Filesystem path for file sources, used for language hints.
    """
    kind: SourceKind
    label: str
    body: str
    span: Optional[Tuple[int, int]] = None
    path: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.body
