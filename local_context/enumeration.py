"""Candidate reference discovery.

These helpers only produce reference strings. Adding them to a document goes
through ``ReferenceStore.add``, the same path manual additions take.
"""

import logging
import os
import re
from fnmatch import translate
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .config_loader import DEFAULT_DENIED_EXTENSIONS
from .errors import ProjectNotFoundError
from .host import Document, Host, PathLike, scope_directory

logger = logging.getLogger(__name__)

MATCH_ALL = "*"


def wildcard_matcher(pattern: Optional[str]) -> Callable[[str], bool]:
    """Build a predicate from a shell wildcard. ``*`` (or empty) matches everything."""
    if not pattern or pattern == MATCH_ALL:
        return lambda _path: True
    regex = re.compile(translate(pattern))
    return lambda path: regex.match(path) is not None


def has_denied_extension(path: str, denied: Iterable[str] = DEFAULT_DENIED_EXTENSIONS) -> bool:
    """Case-sensitive check for ``.<ext>`` at the end of ``path``."""
    return any(path.endswith("." + ext) for ext in denied)


def _relative(path: Path, base: Path) -> str:
    return Path(os.path.relpath(path, base)).as_posix()


def visible_document_names(host: Host, exclude_active: bool = False) -> List[str]:
    """Distinct names of displayed documents, in viewport order.

    Ephemeral documents (UI scratch surfaces) are never included.
    """
    active = host.active_document() if exclude_active else None
    names: List[str] = []
    for doc in host.visible_documents():
        if doc.ephemeral:
            continue
        if active is not None and doc.name == active.name:
            continue
        if doc.name not in names:
            names.append(doc.name)
    return names


def project_files(
    host: Host,
    scope: Optional[Document],
    pattern: str = MATCH_ALL,
    relative_to: Optional[PathLike] = None,
    denied_extensions: Sequence[str] = DEFAULT_DENIED_EXTENSIONS,
) -> List[str]:
    """List project files as paths relative to ``relative_to``.

    Args:
        host: Host used to locate the project.
        scope: Document whose project is listed; its own file is excluded.
        pattern: Shell wildcard applied to the relative path.
        relative_to: Base of the returned paths (default: the scope's directory).
        denied_extensions: Suffixes to drop.

    Raises:
        ProjectNotFoundError: If no project encloses the scope's directory.
    """
    directory = scope_directory(host, scope)
    project = host.find_project(directory)
    if project is None:
        raise ProjectNotFoundError(str(directory))

    base = Path(relative_to).expanduser().resolve() if relative_to else directory
    own_file = Path(scope.path).expanduser().resolve() if scope is not None and scope.path else None
    matches = wildcard_matcher(pattern)

    results: List[str] = []
    for file_path in project.files():
        if own_file is not None and file_path.resolve() == own_file:
            continue
        rel = _relative(file_path, base)
        if has_denied_extension(rel, denied_extensions):
            continue
        if not matches(rel):
            continue
        results.append(rel)

    logger.info("Project %s: %d file(s) match %r", project.root, len(results), pattern)
    return results


def directory_files(
    host: Host,
    scope: Optional[Document],
    directory: PathLike,
    recursive: bool = False,
    pattern: str = MATCH_ALL,
) -> List[str]:
    """List files in ``directory``, relative to the scope's directory.

    Relative ``directory`` arguments are taken from the scope's directory
    too (the working directory for unsaved documents), which is where the
    resolver looks up relative file references. The wildcard is matched
    against the returned relative path.

    Raises:
        NotADirectoryError: If ``directory`` does not exist or is a file.
    """
    base = scope_directory(host, scope)
    root = Path(directory).expanduser()
    if not root.is_absolute():
        root = base / root
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")

    candidates = root.rglob("*") if recursive else root.iterdir()
    matches = wildcard_matcher(pattern)

    results = sorted(
        rel for rel in (_relative(p, base) for p in candidates if p.is_file())
        if matches(rel)
    )
    logger.info("Directory %s: %d file(s) match %r", root, len(results), pattern)
    return results


def add_references(scope: Document, references: Iterable[str]) -> List[str]:
    """Add candidates to the scope's store. Returns the newly added ones."""
    return scope.ensure_references().add(references)


def add_visible_documents(host: Host, scope: Document) -> List[str]:
    """Add every other visible document to the scope's context."""
    names = [n for n in visible_document_names(host) if n != scope.name]
    return add_references(scope, names)


def add_project_files(
    host: Host,
    scope: Document,
    pattern: str = MATCH_ALL,
    denied_extensions: Sequence[str] = DEFAULT_DENIED_EXTENSIONS,
) -> List[str]:
    """Add matching project files to the scope's context."""
    return add_references(
        scope,
        project_files(host, scope, pattern, denied_extensions=denied_extensions),
    )


def add_directory_files(
    host: Host,
    scope: Document,
    directory: PathLike,
    recursive: bool = False,
    pattern: str = MATCH_ALL,
) -> List[str]:
    """Add matching files under ``directory`` to the scope's context."""
    return add_references(scope, directory_files(host, scope, directory, recursive, pattern))
