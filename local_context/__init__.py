"""Local context: per-document references spliced into LLM request context.

A document keeps an ordered list of references (open document names, file
paths, project file names, callable names). When a request is built, each
reference is resolved to its current text, wrapped in a labelled fence and
appended to the context the request pipeline computed on its own.
"""

# Plugin kind for discovery by a plugin registry
PLUGIN_KIND = "tool"

from .config_loader import (
    DEFAULT_DENIED_EXTENSIONS,
    LocalContextConfig,
    load_config,
)
from .enumeration import directory_files, project_files, visible_document_names
from .errors import (
    ConfigValidationError,
    LocalContextError,
    PersistenceError,
    ProjectNotFoundError,
)
from .hook import inject_local_context, wrap_compute_context
from .host import Document, Host, Project, WorkspaceHost, find_project
from .merger import ContextMerger
from .models import DocumentKind, ResolvedBlock, SourceKind
from .persistence import restore, save, wrap_restore, wrap_save
from .plugin import LocalContextPlugin, create_plugin
from .resolver import SourceResolver
from .store import ReferenceStore
from .wrapper import wrap

__all__ = [
    "PLUGIN_KIND",
    # Core
    "ReferenceStore",
    "SourceResolver",
    "ContextMerger",
    "inject_local_context",
    "wrap_compute_context",
    "wrap",
    # Host
    "Document",
    "DocumentKind",
    "Host",
    "Project",
    "WorkspaceHost",
    "find_project",
    # Models
    "ResolvedBlock",
    "SourceKind",
    # Enumeration
    "visible_document_names",
    "project_files",
    "directory_files",
    # Persistence
    "save",
    "restore",
    "wrap_save",
    "wrap_restore",
    # Configuration
    "LocalContextConfig",
    "load_config",
    "DEFAULT_DENIED_EXTENSIONS",
    # Errors
    "LocalContextError",
    "ProjectNotFoundError",
    "PersistenceError",
    "ConfigValidationError",
    # Plugin
    "LocalContextPlugin",
    "create_plugin",
]
