"""Saving and restoring a document's references inside its own text.

Two encodings, chosen by the document kind:

Outline documents keep a file-level property drawer at the top, holding the
references as one multi-valued property (values are space separated, with
whitespace and ``%`` percent-escaped):

    :PROPERTIES:
    :LOCAL_CONTEXT: notes.txt src/app.py my%20file.md
    :END:

Other documents carry a trailing local-variables block whose value is a
sequence of strings:

    # Local Variables:
    # local-context: ["notes.txt", "src/app.py"]
    # End:

``save`` writes into ``document.text``; writing the file is left to the
host. ``wrap_save`` / ``wrap_restore`` layer persistence on top of a host's
own state routines without replacing them.
"""

import functools
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from .config_loader import DEFAULT_LOCAL_VARIABLE_NAME, DEFAULT_PROPERTY_NAME, LocalContextConfig
from .errors import PersistenceError
from .host import Document
from .models import DocumentKind
from .store import ReferenceStore

logger = logging.getLogger(__name__)


class ReferencePersistence(ABC):
    """Base class for in-document reference encodings."""

    @abstractmethod
    def read(self, text: str) -> Optional[List[str]]:
        """Decode saved references, or None if the text holds none."""
        ...

    @abstractmethod
    def write(self, text: str, references: List[str]) -> str:
        """Return ``text`` with its saved references replaced by ``references``."""
        ...


# Outline property drawer

_ESCAPES = {"%": "%25", " ": "%20", "\t": "%09", "\n": "%0A", "\r": "%0D"}
_ESCAPED = re.compile(r"%([0-9A-Fa-f]{2})")
_DRAWER_START = ":PROPERTIES:"
_DRAWER_END = ":END:"
_PROPERTY_LINE = re.compile(r"^\s*:(?P<name>[^:\s]+?)(?P<append>\+)?:(?:\s+(?P<value>.*?))?\s*$")


def escape_value(value: str) -> str:
    return "".join(_ESCAPES.get(c, c) for c in value)


def unescape_value(value: str) -> str:
    return _ESCAPED.sub(lambda m: chr(int(m.group(1), 16)), value)


class OutlinePersistence(ReferencePersistence):
    """Multi-valued property in the document-level property drawer."""

    def __init__(self, property_name: str = DEFAULT_PROPERTY_NAME):
        self._property = property_name

    @staticmethod
    def _find_drawer(lines: List[str]) -> Optional[Tuple[int, int]]:
        """Index of the :PROPERTIES: and :END: lines of the top drawer."""
        start = None
        for i, line in enumerate(lines):
            stripped = line.strip()
            if not stripped or (stripped.startswith("#") and not stripped.startswith("#+")):
                continue  # blank lines and comments may precede the drawer
            if stripped.upper() == _DRAWER_START:
                start = i
            break
        if start is None:
            return None
        for j in range(start + 1, len(lines)):
            if lines[j].strip().upper() == _DRAWER_END:
                return start, j
        return None

    def _is_ours(self, line: str) -> bool:
        m = _PROPERTY_LINE.match(line)
        return m is not None and m.group("name").upper() == self._property.upper()

    def read(self, text: str) -> Optional[List[str]]:
        lines = text.splitlines()
        drawer = self._find_drawer(lines)
        if drawer is None:
            return None

        values: Optional[List[str]] = None
        for line in lines[drawer[0] + 1:drawer[1]]:
            m = _PROPERTY_LINE.match(line)
            if m is None or m.group("name").upper() != self._property.upper():
                continue
            tokens = [unescape_value(t) for t in (m.group("value") or "").split()]
            if m.group("append") and values is not None:
                values.extend(tokens)
            else:
                values = tokens
        return values

    def write(self, text: str, references: List[str]) -> str:
        lines = text.splitlines()
        trailing_newline = text.endswith("\n")
        drawer = self._find_drawer(lines)
        new_line = (
            f":{self._property}: " + " ".join(escape_value(r) for r in references)
            if references else None
        )

        if drawer is None:
            if new_line is None:
                return text
            header = [_DRAWER_START, new_line, _DRAWER_END]
            body = "\n".join(header + lines)
            return body + "\n" if trailing_newline or not lines else body

        start, end = drawer
        kept = [line for line in lines[start + 1:end] if not self._is_ours(line)]
        if new_line is not None:
            kept.append(new_line)

        if kept:
            lines[start:end + 1] = [lines[start]] + kept + [lines[end]]
        else:
            del lines[start:end + 1]

        result = "\n".join(lines)
        return result + "\n" if trailing_newline and lines else result


# Trailing local-variables block

# Comment prefix/suffix for a new block, by file suffix
COMMENT_STYLES: Dict[str, Tuple[str, str]] = {
    ".el": (";; ", ""),
    ".lisp": (";; ", ""),
    ".c": ("/* ", " */"),
    ".h": ("/* ", " */"),
    ".css": ("/* ", " */"),
    ".js": ("// ", ""),
    ".ts": ("// ", ""),
    ".java": ("// ", ""),
    ".go": ("// ", ""),
    ".rs": ("// ", ""),
    ".cpp": ("// ", ""),
    ".md": ("<!-- ", " -->"),
    ".html": ("<!-- ", " -->"),
    ".tex": ("% ", ""),
    ".sql": ("-- ", ""),
    ".lua": ("-- ", ""),
}
DEFAULT_COMMENT_STYLE = ("# ", "")

_BLOCK_START = re.compile(r"^(?P<prefix>.*?)Local Variables:(?P<suffix>.*)$")


def encode_references(references: List[str]) -> str:
    """Single-line YAML flow sequence of double-quoted strings."""
    return yaml.safe_dump(
        list(references),
        default_flow_style=True,
        default_style='"',
        width=float("inf"),
        allow_unicode=True,
    ).strip()


def decode_references(value: str) -> List[str]:
    """Parse a saved sequence. Raises ValueError for anything but a list of strings."""
    try:
        data = yaml.safe_load(value)
    except yaml.YAMLError as e:
        raise ValueError(f"invalid sequence literal: {e}") from e
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(r, str) for r in data):
        raise ValueError("expected a sequence of strings")
    return data


class LocalVariablesPersistence(ReferencePersistence):
    """One variable in a trailing ``Local Variables:`` block."""

    def __init__(
        self,
        variable_name: str = DEFAULT_LOCAL_VARIABLE_NAME,
        comment_style: Tuple[str, str] = DEFAULT_COMMENT_STYLE,
    ):
        self._variable = variable_name
        self._comment_style = comment_style

    @staticmethod
    def _find_block(lines: List[str]) -> Optional[Tuple[int, int, str, str]]:
        """Locate the last local-variables block: (start, end, prefix, suffix)."""
        for i in range(len(lines) - 1, -1, -1):
            m = _BLOCK_START.match(lines[i])
            if m is None:
                continue
            prefix, suffix = m.group("prefix"), m.group("suffix").strip()
            end_marker = prefix + "End:"
            for j in range(i + 1, len(lines)):
                if lines[j].rstrip().startswith(end_marker.rstrip()):
                    return i, j, prefix, suffix
            return None
        return None

    def _variable_line(self, line: str, prefix: str, suffix: str) -> Optional[str]:
        """Value part of ``line`` if it assigns our variable."""
        if not line.startswith(prefix):
            return None
        body = line[len(prefix):]
        if suffix and body.rstrip().endswith(suffix):
            body = body.rstrip()[:-len(suffix)]
        name, sep, value = body.partition(":")
        if not sep or name.strip() != self._variable:
            return None
        return value.strip()

    def read(self, text: str) -> Optional[List[str]]:
        lines = text.splitlines()
        block = self._find_block(lines)
        if block is None:
            return None
        start, end, prefix, suffix = block
        for line in lines[start + 1:end]:
            value = self._variable_line(line, prefix, suffix)
            if value is not None:
                return decode_references(value)
        return None

    def write(self, text: str, references: List[str]) -> str:
        lines = text.splitlines()
        block = self._find_block(lines)

        if block is None:
            if not references:
                return text
            prefix, suffix = self._comment_style
            tail = f" {suffix.strip()}" if suffix else ""
            new_block = [
                f"{prefix}Local Variables:{tail}",
                f"{prefix}{self._variable}: {encode_references(references)}{tail}",
                f"{prefix}End:{tail}",
            ]
            if lines and lines[-1].strip():
                lines.append("")
            return "\n".join(lines + new_block) + "\n"

        start, end, prefix, suffix = block
        tail = f" {suffix}" if suffix else ""
        kept = [
            line for line in lines[start + 1:end]
            if self._variable_line(line, prefix, suffix) is None
        ]
        if references:
            kept.append(f"{prefix}{self._variable}: {encode_references(references)}{tail}")

        if kept:
            lines[start:end + 1] = [lines[start]] + kept + [lines[end]]
        else:
            del lines[start:end + 1]
            while lines and not lines[-1].strip():
                lines.pop()

        return "\n".join(lines) + "\n" if lines else ""


def persistence_for(
    document: Document,
    config: Optional[LocalContextConfig] = None,
) -> ReferencePersistence:
    """Pick the encoding for ``document``."""
    config = config or LocalContextConfig()
    if document.kind == DocumentKind.OUTLINE:
        return OutlinePersistence(config.property_name)
    style = DEFAULT_COMMENT_STYLE
    if document.path:
        style = COMMENT_STYLES.get(Path(document.path).suffix, DEFAULT_COMMENT_STYLE)
    return LocalVariablesPersistence(config.local_variable_name, style)


def save(document: Document, config: Optional[LocalContextConfig] = None) -> None:
    """Write the document's current references into its text."""
    references = list(document.references.snapshot()) if document.references else []
    document.text = persistence_for(document, config).write(document.text, references)
    logger.info("Saved %d reference(s) into %s", len(references), document.name)


def restore(document: Document, config: Optional[LocalContextConfig] = None) -> List[str]:
    """Load saved references from the document's text into its store.

    An existing in-memory store is replaced. When the text holds no saved
    references the store is left as it is and ``[]`` is returned.

    Raises:
        PersistenceError: If the saved value cannot be decoded.
    """
    try:
        saved = persistence_for(document, config).read(document.text)
    except ValueError as e:
        raise PersistenceError(document.name, str(e)) from e

    if saved is None:
        return []
    if document.references is None:
        document.references = ReferenceStore()
    document.references.replace(saved)
    logger.info("Restored %d reference(s) for %s", document.references.count(), document.name)
    return list(document.references.snapshot())


def wrap_save(
    original: Callable[..., Any],
    config: Optional[LocalContextConfig] = None,
) -> Callable[..., Any]:
    """Run the host's save-state routine, then write references into the document.

    The wrapped callable must take the document as its first argument.
    """
    @functools.wraps(original)
    def wrapper(document: Document, *args: Any, **kwargs: Any) -> Any:
        result = original(document, *args, **kwargs)
        save(document, config)
        return result
    return wrapper


def wrap_restore(
    original: Callable[..., Any],
    config: Optional[LocalContextConfig] = None,
) -> Callable[..., Any]:
    """Run the host's restore-state routine, then load references from the document."""
    @functools.wraps(original)
    def wrapper(document: Document, *args: Any, **kwargs: Any) -> Any:
        result = original(document, *args, **kwargs)
        restore(document, config)
        return result
    return wrapper
