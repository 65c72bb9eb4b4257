"""Reference classification and content extraction.

A reference is a bare string. Its meaning is decided at resolution time by
probing the host in a fixed priority order; the first classifier that
matches produces the block:

1. BUFFER        open document with that name
2. FILE          existing file, absolute or relative to the scope's directory
3. PROJECT_FILE  file in the enclosing project whose base name equals the reference
4. FUNCTION      zero-argument callable registered with the host

Anything else resolves to None and is dropped from the context. Resolution
only reads; no source is modified.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config_loader import LocalContextConfig
from .host import Document, Host, scope_directory
from .models import ResolvedBlock, SourceKind
from .trace import trace

logger = logging.getLogger(__name__)

Classifier = Callable[["SourceResolver", str, Optional[Document]], Optional[ResolvedBlock]]


class SourceResolver:
    """Turns reference strings into ResolvedBlock values.

    Example:
        resolver = SourceResolver(host)
        block = resolver.resolve("notes.txt", scope=host.active_document())
    """

    def __init__(self, host: Host, config: Optional[LocalContextConfig] = None):
        self._host = host
        self._config = config or LocalContextConfig()

    @property
    def host(self) -> Host:
        return self._host

    def resolve(self, reference: str, scope: Optional[Document] = None) -> Optional[ResolvedBlock]:
        """Resolve one reference against ``scope``.

        Returns:
            The block from the first matching classifier, or None when no
            classifier recognises the reference.
        """
        if not reference:
            return None

        for kind, classifier in self.CLASSIFIERS:
            block = classifier(self, reference, scope)
            if block is not None:
                logger.debug("Resolved %r as %s (%d chars)", reference, kind.value, len(block.body))
                return block

        logger.debug("Reference %r did not resolve, skipping", reference)
        return None

    # Classifiers

    def _from_open_document(self, reference: str, scope: Optional[Document]) -> Optional[ResolvedBlock]:
        doc = self._host.get_document(reference)
        if doc is None or doc.ephemeral:
            return None
        return ResolvedBlock(
            kind=SourceKind.BUFFER,
            label=doc.name,
            body=doc.text,
            span=(1, doc.line_count()),
            path=doc.path,
        )

    def _from_filesystem(self, reference: str, scope: Optional[Document]) -> Optional[ResolvedBlock]:
        candidate = Path(reference).expanduser()
        if not candidate.is_absolute():
            candidate = scope_directory(self._host, scope) / candidate

        body = self._read_file(candidate)
        if body is None:
            return None
        return ResolvedBlock(
            kind=SourceKind.FILE,
            label=reference,
            body=body,
            path=str(candidate),
        )

    def _from_project(self, reference: str, scope: Optional[Document]) -> Optional[ResolvedBlock]:
        # Only bare file names are looked up in the project index
        if "/" in reference or "\\" in reference:
            return None

        project = self._host.find_project(scope_directory(self._host, scope))
        if project is None:
            return None

        matches: List[Tuple[str, Path]] = []
        for file_path in project.files():
            if file_path.name == reference:
                matches.append((file_path.relative_to(project.root).as_posix(), file_path))
        if not matches:
            return None

        # Several files may share a base name; lowest project-relative path wins
        matches.sort(key=lambda m: m[0])
        if len(matches) > 1:
            logger.debug(
                "Reference %r matches %d project files, using %s",
                reference, len(matches), matches[0][0],
            )

        for rel_path, file_path in matches:
            body = self._read_file(file_path)
            if body is not None:
                return ResolvedBlock(
                    kind=SourceKind.PROJECT_FILE,
                    label=rel_path,
                    body=body,
                    path=str(file_path),
                )
        return None

    def _from_callable(self, reference: str, scope: Optional[Document]) -> Optional[ResolvedBlock]:
        func = self._host.get_callable(reference)
        if func is None or not callable(func):
            return None

        try:
            result = func()
        except Exception as e:
            logger.warning("Context function %s raised %s: %s", reference, type(e).__name__, e)
            trace("RESOLVER", f"function {reference} failed: {e}", include_traceback=True)
            body = f"Error calling function {reference}: {e}"
        else:
            body = "" if result is None else str(result)

        return ResolvedBlock(kind=SourceKind.FUNCTION, label=reference, body=body)

    # Priority order, first match wins
    CLASSIFIERS: List[Tuple[SourceKind, Classifier]] = [
        (SourceKind.BUFFER, _from_open_document),
        (SourceKind.FILE, _from_filesystem),
        (SourceKind.PROJECT_FILE, _from_project),
        (SourceKind.FUNCTION, _from_callable),
    ]

    def _read_file(self, path: Path) -> Optional[str]:
        """Read a text file, or None if it is missing, too large or unreadable."""
        try:
            if not path.is_file():
                return None
            max_bytes = self._config.max_file_bytes
            if max_bytes is not None and path.stat().st_size > max_bytes:
                logger.debug("Skipping %s: larger than %d bytes", path, max_bytes)
                return None
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read %s: %s", path, e)
            return None
