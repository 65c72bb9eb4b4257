"""Host environment seams.

The resolver and enumeration helpers never talk to an editor directly. They
go through the ``Host`` protocol, which answers four questions: which
documents are open, which are visible, which callables exist, and which
project encloses a directory. ``WorkspaceHost`` is the in-process
implementation used by the plugin and the tests; editors embedding the
package supply their own.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable,
)

from .models import DocumentKind
from .store import ReferenceStore
from .utils.gitignore import GitignoreParser

logger = logging.getLogger(__name__)

# Directory entries that mark a project root, checked nearest-first.
PROJECT_MARKERS = (".git", ".hg", ".project")

OUTLINE_SUFFIXES = (".org",)

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(eq=False)
class Document:
    """An open document and the local context it owns.

    Attributes:
        name: Unique display name (buffer name).
        text: Current in-memory content.
        path: Backing file, if any.
        kind: Outline or plain text; inferred from the path suffix when omitted.
        ephemeral: UI-only scratch surface, never offered as context.
        references: Reference store, created on first add.
    """
    name: str
    text: str = ""
    path: Optional[str] = None
    kind: Optional[DocumentKind] = None
    ephemeral: bool = False
    references: Optional[ReferenceStore] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.kind is None:
            if self.path and Path(self.path).suffix in OUTLINE_SUFFIXES:
                self.kind = DocumentKind.OUTLINE
            else:
                self.kind = DocumentKind.TEXT

    @property
    def directory(self) -> Optional[Path]:
        """Directory of the backing file, or None for unsaved documents."""
        if not self.path:
            return None
        return Path(self.path).expanduser().resolve().parent

    def ensure_references(self) -> ReferenceStore:
        """Return the document's store, creating an empty one if absent."""
        if self.references is None:
            self.references = ReferenceStore()
        return self.references

    def line_count(self) -> int:
        if not self.text:
            return 0
        return self.text.count("\n") + (0 if self.text.endswith("\n") else 1)

    def close(self) -> None:
        """Drop the document's local context."""
        self.references = None


@runtime_checkable
class Project(Protocol):
    """A project root with an ordered file index."""

    root: Path

    def files(self) -> List[Path]:
        """Absolute paths of the project's tracked files, in index order."""
        ...


class DirectoryProject:
    """Project whose index is a ``.gitignore``-filtered directory walk."""

    def __init__(self, root: PathLike):
        self.root = Path(root).resolve()

    def files(self) -> List[Path]:
        return list(GitignoreParser(self.root).iter_files())

    def __repr__(self) -> str:
        return f"DirectoryProject({str(self.root)!r})"


class GitProject:
    """Project backed by a git checkout.

    Tracked and untracked-but-not-ignored files come from ``git ls-files``.
    If git cannot be run the index falls back to a filtered directory walk.
    """

    def __init__(self, root: PathLike, timeout: float = 30.0):
        self.root = Path(root).resolve()
        self._timeout = timeout

    def files(self) -> List[Path]:
        try:
            result = subprocess.run(
                ["git", "ls-files", "-z", "--cached", "--others", "--exclude-standard"],
                cwd=str(self.root),
                capture_output=True,
                timeout=self._timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("git ls-files failed in %s (%s), walking directory", self.root, e)
            return DirectoryProject(self.root).files()

        names = result.stdout.decode("utf-8", errors="surrogateescape").split("\0")
        paths: List[Path] = []
        seen = set()
        for name in names:
            if not name or name in seen:
                continue
            seen.add(name)
            candidate = self.root / name
            # Deleted-but-tracked files are still listed by --cached
            if candidate.is_file():
                paths.append(candidate)
        return paths

    def __repr__(self) -> str:
        return f"GitProject({str(self.root)!r})"


def find_project(directory: PathLike, use_git_index: bool = True) -> Optional[Project]:
    """Locate the project enclosing ``directory``.

    Walks from ``directory`` up to the filesystem root and stops at the first
    directory holding one of PROJECT_MARKERS.
    """
    start = Path(directory).expanduser().resolve()
    for candidate in (start, *start.parents):
        for marker in PROJECT_MARKERS:
            if (candidate / marker).exists():
                if marker == ".git" and use_git_index:
                    return GitProject(candidate)
                return DirectoryProject(candidate)
    return None


@runtime_checkable
class Host(Protocol):
    """Interface the host editing environment provides."""

    @property
    def working_directory(self) -> Path:
        """Session working directory, used for unsaved documents."""
        ...

    def get_document(self, name: str) -> Optional[Document]:
        """Return the open document called ``name``, if any."""
        ...

    def visible_documents(self) -> List[Document]:
        """Documents currently displayed in any viewport, in display order."""
        ...

    def active_document(self) -> Optional[Document]:
        """The document the user is working in."""
        ...

    def get_callable(self, name: str) -> Optional[Callable[..., Any]]:
        """Look up a named callable in the host environment."""
        ...

    def find_project(self, directory: Path) -> Optional[Project]:
        """Project enclosing ``directory``, or None."""
        ...


def scope_directory(host: Host, scope: Optional[Document]) -> Path:
    """Directory relative paths are interpreted against for ``scope``."""
    if scope is not None and scope.directory is not None:
        return scope.directory
    return host.working_directory


class WorkspaceHost:
    """In-process host: a registry of documents and callables over the real filesystem.

    Example:
        host = WorkspaceHost("/path/to/project")
        doc = host.open_file("notes.org")
        host.show(doc.name)

        @host.register_function("git-branch")
        def current_branch():
            return "main"
    """

    def __init__(
        self,
        working_directory: Optional[PathLike] = None,
        use_git_index: bool = True,
    ):
        self._working_directory = Path(working_directory or os.getcwd()).resolve()
        self._use_git_index = use_git_index
        self._documents: Dict[str, Document] = {}
        self._visible: List[str] = []
        self._active: Optional[str] = None
        self._functions: Dict[str, Callable[..., Any]] = {}

    @property
    def working_directory(self) -> Path:
        return self._working_directory

    def set_working_directory(self, path: PathLike) -> None:
        self._working_directory = Path(path).resolve()

    # Documents

    def open_document(
        self,
        name: str,
        text: str = "",
        path: Optional[PathLike] = None,
        kind: Optional[DocumentKind] = None,
        ephemeral: bool = False,
    ) -> Document:
        """Register a document. Re-opening a name returns the existing document."""
        existing = self._documents.get(name)
        if existing is not None:
            return existing
        doc = Document(
            name=name,
            text=text,
            path=str(path) if path is not None else None,
            kind=kind,
            ephemeral=ephemeral,
        )
        self._documents[name] = doc
        if self._active is None and not ephemeral:
            self._active = name
        logger.debug("Opened document %s (path=%s)", name, doc.path)
        return doc

    def open_file(self, path: PathLike, name: Optional[str] = None) -> Document:
        """Open a document backed by a file, reading its current content.

        Relative paths are taken from the working directory; the document is
        named after the file unless ``name`` is given.
        """
        file_path = Path(path).expanduser()
        if not file_path.is_absolute():
            file_path = self._working_directory / file_path
        text = file_path.read_text(encoding="utf-8") if file_path.is_file() else ""
        return self.open_document(name or file_path.name, text=text, path=file_path)

    def close_document(self, name: str) -> bool:
        """Close a document, destroying its local context."""
        doc = self._documents.pop(name, None)
        if doc is None:
            return False
        doc.close()
        self._visible = [n for n in self._visible if n != name]
        if self._active == name:
            self._active = self._visible[0] if self._visible else None
        return True

    def documents(self) -> List[Document]:
        return list(self._documents.values())

    def get_document(self, name: str) -> Optional[Document]:
        return self._documents.get(name)

    def show(self, *names: str) -> None:
        """Set which documents are displayed, in viewport order."""
        self._visible = [n for n in names if n in self._documents]

    def visible_documents(self) -> List[Document]:
        return [self._documents[n] for n in self._visible if n in self._documents]

    def set_active(self, name: str) -> None:
        if name not in self._documents:
            raise KeyError(f"No open document named '{name}'")
        self._active = name

    def active_document(self) -> Optional[Document]:
        if self._active is None:
            return None
        return self._documents.get(self._active)

    # Callables

    def register_function(
        self,
        name: str,
        func: Optional[Callable[..., Any]] = None,
    ) -> Any:
        """Register a named callable; usable directly or as a decorator."""
        if func is not None:
            self._functions[name] = func
            return func

        def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
            self._functions[name] = f
            return f
        return decorator

    def unregister_function(self, name: str) -> None:
        self._functions.pop(name, None)

    def get_callable(self, name: str) -> Optional[Callable[..., Any]]:
        return self._functions.get(name)

    # Projects

    def find_project(self, directory: Path) -> Optional[Project]:
        return find_project(directory, use_git_index=self._use_git_index)
