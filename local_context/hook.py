"""Injection of local context into an external context builder.

The request pipeline that owns the model call computes its own context
string. Rather than replacing that step, ``inject_local_context`` wraps it:
the original function runs untouched and its return value becomes the base
that local references are appended to.

Example:
    merger = ContextMerger(SourceResolver(host))

    @inject_local_context(merger, scope_of=lambda request: request.document)
    def compute_context(request):
        return pipeline.build_context(request)
"""

import functools
from typing import Any, Callable, Optional, TypeVar

from .host import Document
from .merger import ContextMerger

F = TypeVar("F", bound=Callable[..., Any])


def _identity_scope(request_scope: Any) -> Optional[Document]:
    return request_scope if isinstance(request_scope, Document) else None


def inject_local_context(
    merger: ContextMerger,
    scope_of: Optional[Callable[[Any], Optional[Document]]] = None,
) -> Callable[[F], F]:
    """Decorator factory adding local context to a ``compute_context`` function.

    Args:
        merger: Merger used at call time.
        scope_of: Maps the request scope (first positional argument) to the
            document whose references apply. Defaults to the argument itself
            when it is a Document.

    Returns:
        A decorator. The wrapped function calls the original first; its
        exceptions propagate unchanged and its result is used as the base
        context. Local references are read when the wrapper is called, so the
        store's state at send time is what gets merged.
    """
    resolve_scope = scope_of or _identity_scope

    def decorator(compute_context: F) -> F:
        @functools.wraps(compute_context)
        def wrapper(request_scope: Any, *args: Any, **kwargs: Any) -> Any:
            base = compute_context(request_scope, *args, **kwargs)
            scope = resolve_scope(request_scope)
            if scope is None or scope.references is None or not scope.references.count():
                return base
            return merger.merge_document(base, scope)

        return wrapper  # type: ignore[return-value]

    return decorator


def wrap_compute_context(
    compute_context: Callable[..., Any],
    merger: ContextMerger,
    scope_of: Optional[Callable[[Any], Optional[Document]]] = None,
) -> Callable[..., Any]:
    """Non-decorator spelling of ``inject_local_context``."""
    return inject_local_context(merger, scope_of)(compute_context)
