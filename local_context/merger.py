"""Merging of resolved references into an existing context string."""

import logging
from typing import Iterable, Optional

from .config_loader import LocalContextConfig
from .host import Document
from .resolver import SourceResolver
from .trace import trace
from .wrapper import wrap

logger = logging.getLogger(__name__)


def _separator(accumulated: str) -> str:
    """Blank line between blocks, nothing before the first one."""
    if not accumulated:
        return ""
    return "\n" if accumulated.endswith("\n") else "\n\n"


class ContextMerger:
    """Appends one wrapped block per resolvable reference to a base context.

    For a fixed set of references and fixed source content, ``merge`` is
    pure: calling it twice yields identical text. Nothing is cached between
    calls, so every merge reflects the sources as they are right now.
    """

    def __init__(
        self,
        resolver: SourceResolver,
        config: Optional[LocalContextConfig] = None,
    ):
        self._resolver = resolver
        self._config = config or LocalContextConfig()

    @property
    def resolver(self) -> SourceResolver:
        return self._resolver

    def merge(
        self,
        base: Optional[str],
        references: Iterable[str],
        scope: Optional[Document] = None,
    ) -> str:
        """Return ``base`` followed by the wrapped block of each reference.

        Unresolvable references contribute nothing, not even a separator.
        """
        accumulated = base or ""
        refs = tuple(references)
        included = 0

        for reference in refs:
            block = self._resolver.resolve(reference, scope)
            text = wrap(block, language_hints=self._config.language_hints)
            if not text:
                continue
            accumulated += _separator(accumulated) + text
            included += 1

        if refs:
            trace(
                "MERGER",
                f"merge: scope={scope.name if scope else None} "
                f"refs={len(refs)} included={included} chars={len(accumulated)}",
            )
        return accumulated

    def merge_document(self, base: Optional[str], scope: Optional[Document]) -> str:
        """Merge the references stored on ``scope`` into ``base``.

        The store is snapshotted first, so edits made while resolving do not
        affect this merge. A scope without references returns ``base`` as is.
        """
        if scope is None or scope.references is None:
            return base if base is not None else ""
        snapshot = scope.references.snapshot()
        if not snapshot:
            return base if base is not None else ""
        logger.debug("Merging %d reference(s) for %s", len(snapshot), scope.name)
        return self.merge(base, snapshot, scope)
