"""Local context plugin.

Gives each open document its own list of context references and splices
their current content into every request built for that document.

Usage:
    context                          # List the active document's references
    context add notes.txt my-fn      # Add references
    context remove notes.txt         # Remove references
    context clear                    # Remove all references
    context add-visible              # Add every other visible document
    context add-project *.py         # Add project files matching a wildcard
    context add-dir src *.py -r      # Add files under a directory
    context preview                  # Show the text that would be injected
    context save                     # Persist references into the document
    context restore                  # Reload references saved in the document
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .base import CommandCompletion, CommandParameter, HelpLines, UserCommand
from .config_loader import LocalContextConfig, load_config
from .enumeration import (
    add_directory_files, add_project_files, add_visible_documents, visible_document_names,
)
from .errors import PersistenceError, ProjectNotFoundError
from .hook import inject_local_context
from .host import Document, Host, WorkspaceHost
from .merger import ContextMerger
from .persistence import restore, save
from .resolver import SourceResolver
from .trace import trace

ACTIONS = [
    ("list", "List references of the active document"),
    ("add", "Add references"),
    ("remove", "Remove references"),
    ("clear", "Remove all references"),
    ("add-visible", "Add all other visible documents"),
    ("add-project", "Add project files matching a wildcard"),
    ("add-dir", "Add files under a directory"),
    ("preview", "Show the context text that would be injected"),
    ("save", "Save references into the document"),
    ("restore", "Restore references saved in the document"),
    ("help", "Show detailed help for this command"),
]

RECURSIVE_FLAGS = ("-r", "--recursive")


class LocalContextPlugin:
    """Plugin managing per-document context references.

    The plugin owns a host, a resolver and a merger. The request pipeline
    hands its context builder to ``wrap_context_builder`` once; after that
    each request carries the current content of the active document's
    references.
    """

    def __init__(self):
        self._host: Optional[Host] = None
        self._config: LocalContextConfig = LocalContextConfig()
        self._resolver: Optional[SourceResolver] = None
        self._merger: Optional[ContextMerger] = None
        self._initialized = False

    def _trace(self, msg: str) -> None:
        trace("LOCAL_CONTEXT", msg)

    @property
    def name(self) -> str:
        return "local_context"

    @property
    def host(self) -> Optional[Host]:
        return self._host

    @property
    def config(self) -> LocalContextConfig:
        return self._config

    @property
    def merger(self) -> Optional[ContextMerger]:
        return self._merger

    def initialize(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration dict:
                - host: Host implementation (default: a WorkspaceHost)
                - workspace_path: Working directory for the default host
                - config_path: JSON settings file
                - settings: Dict of LocalContextConfig overrides
        """
        config = config or {}
        workspace_path = config.get("workspace_path")

        self._config = load_config(
            path=config.get("config_path"),
            workspace_path=workspace_path,
            runtime_config=config.get("settings"),
        )
        self._host = config.get("host") or WorkspaceHost(
            workspace_path, use_git_index=self._config.use_git_index
        )
        self._resolver = SourceResolver(self._host, self._config)
        self._merger = ContextMerger(self._resolver, self._config)
        self._initialized = True
        self._trace(
            f"initialize: workspace={self._host.working_directory}, "
            f"config={self._config.config_path or 'defaults'}"
        )

    def shutdown(self) -> None:
        self._trace("shutdown")
        self._host = None
        self._resolver = None
        self._merger = None
        self._initialized = False

    def get_tool_schemas(self) -> List[Any]:
        """Local context is user-driven; the model gets no tools."""
        return []

    def get_system_instructions(self) -> Optional[str]:
        return None

    def get_executors(self) -> Dict[str, Callable[[Dict[str, Any]], Any]]:
        return {"context": self._execute_context}

    def get_auto_approved_tools(self) -> List[str]:
        return ["context"]

    def get_user_commands(self) -> List[UserCommand]:
        return [
            UserCommand(
                name="context",
                description="Manage local context references for the active document",
                share_with_model=False,
                parameters=[
                    CommandParameter(
                        name="action",
                        description="list (default), add, remove, clear, add-visible, "
                                    "add-project, add-dir, preview, save, restore, help",
                    ),
                    CommandParameter(
                        name="targets",
                        description="References, wildcard or directory",
                        capture_rest=True,
                    ),
                ],
            ),
        ]

    def get_command_completions(self, command: str, args: List[str]) -> List[CommandCompletion]:
        """Complete actions, then references for remove and document names for add."""
        if command != "context":
            return []

        if not args:
            return [CommandCompletion(a, d) for a, d in ACTIONS]

        action = args[0].lower()
        if len(args) == 1 and action not in dict(ACTIONS):
            return [CommandCompletion(a, d) for a, d in ACTIONS if a.startswith(action)]

        partial = args[-1] if len(args) > 1 else ""
        doc = self._active_document()
        if doc is None:
            return []

        if action == "remove" and doc.references is not None:
            return [
                CommandCompletion(ref, "Remove from context")
                for ref in doc.references
                if ref.startswith(partial)
            ]
        if action == "add" and self._host is not None:
            return [
                CommandCompletion(name, "Open document")
                for name in visible_document_names(self._host, exclude_active=True)
                if name.startswith(partial)
            ]
        return []

    def wrap_context_builder(
        self,
        compute_context: Callable[..., Any],
        scope_of: Optional[Callable[[Any], Optional[Document]]] = None,
    ) -> Callable[..., Any]:
        """Wrap the pipeline's context builder so it appends local context.

        Without ``scope_of``, a Document passed as the request scope is used
        directly and anything else falls back to the active document.
        """
        if self._merger is None:
            raise RuntimeError("LocalContextPlugin is not initialized")
        return inject_local_context(self._merger, scope_of or self._scope_for_request)(compute_context)

    def _scope_for_request(self, request_scope: Any) -> Optional[Document]:
        if isinstance(request_scope, Document):
            return request_scope
        return self._active_document()

    def _active_document(self, name: Optional[str] = None) -> Optional[Document]:
        if self._host is None:
            return None
        if name:
            return self._host.get_document(name)
        return self._host.active_document()

    def _execute_context(self, args: Dict[str, Any]) -> Any:
        """Execute the context command.

        Args:
            args: Parsed command arguments: action, targets (list) and an
                optional document name.
        """
        self._trace(f"_execute_context: args={args}")
        if not self._initialized:
            return {"error": "Local context plugin not initialized"}

        action = str(args.get("action") or "list").lower()
        targets = args.get("targets") or []
        if isinstance(targets, str):
            targets = [targets]

        if action == "help":
            return self._cmd_help()

        doc = self._active_document(args.get("document"))
        if doc is None:
            return {"error": "No active document"}

        if action == "list":
            return self._list(doc)
        if action == "add":
            if not targets:
                return {"error": "Usage: context add <reference> [...]"}
            added = doc.ensure_references().add(targets)
            return self._result(doc, added=added)
        if action == "remove":
            if not doc.references or not doc.references.count():
                return {"message": "No local context to remove."}
            if not targets:
                return {"error": "Usage: context remove <reference> [...]"}
            removed = doc.references.remove(targets)
            return self._result(doc, removed=removed)
        if action == "clear":
            if not doc.references or not doc.references.count():
                return {"message": "No local context to clear."}
            cleared = doc.references.clear()
            doc.references = None
            return {"document": doc.name, "cleared": cleared, "count": 0}
        if action == "add-visible":
            return self._result(doc, added=add_visible_documents(self._host, doc))
        if action == "add-project":
            pattern = targets[0] if targets else "*"
            try:
                added = add_project_files(
                    self._host, doc, pattern, denied_extensions=self._config.denied_extensions,
                )
            except ProjectNotFoundError as e:
                return {"error": str(e)}
            return self._result(doc, added=added)
        if action == "add-dir":
            return self._add_dir(doc, targets)
        if action == "preview":
            return {"document": doc.name, "context": self._merger.merge_document("", doc)}
        if action == "save":
            return self._save(doc)
        if action == "restore":
            try:
                restored = restore(doc, self._config)
            except PersistenceError as e:
                return {"error": str(e)}
            return {"document": doc.name, "references": restored, "count": len(restored)}

        return {"error": f"Unknown action: {action}. Use 'context help' for available actions."}

    def _result(self, doc: Document, **changes: List[str]) -> Dict[str, Any]:
        result: Dict[str, Any] = {"document": doc.name}
        result.update(changes)
        result["count"] = doc.references.count() if doc.references else 0
        return result

    def _list(self, doc: Document) -> Dict[str, Any]:
        refs = list(doc.references.snapshot()) if doc.references else []
        result: Dict[str, Any] = {"document": doc.name, "references": refs, "count": len(refs)}
        if not refs:
            result["message"] = "No local context."
        return result

    def _add_dir(self, doc: Document, targets: List[str]) -> Dict[str, Any]:
        recursive = any(t in RECURSIVE_FLAGS for t in targets)
        positional = [t for t in targets if t not in RECURSIVE_FLAGS]
        if not positional:
            return {"error": "Usage: context add-dir <directory> [pattern] [-r]"}
        pattern = positional[1] if len(positional) > 1 else "*"
        try:
            added = add_directory_files(self._host, doc, positional[0], recursive, pattern)
        except NotADirectoryError as e:
            return {"error": str(e)}
        return self._result(doc, added=added)

    def _save(self, doc: Document) -> Dict[str, Any]:
        save(doc, self._config)
        result: Dict[str, Any] = {
            "document": doc.name,
            "saved": doc.references.count() if doc.references else 0,
        }
        if doc.path:
            try:
                Path(doc.path).write_text(doc.text, encoding="utf-8")
            except OSError as e:
                return {"error": f"Cannot write {doc.path}: {e}"}
            result["path"] = doc.path
        return result

    def _cmd_help(self) -> HelpLines:
        return HelpLines(lines=[
            ("Context Command", "bold"),
            ("", ""),
            ("Attach documents, files and functions to the active document. Their", ""),
            ("current content is appended to the context of every request.", ""),
            ("", ""),
            ("USAGE", "bold"),
            ("  context [action] [targets...]", ""),
            ("", ""),
            ("ACTIONS", "bold"),
            *[(f"  {a:<12} {d}", "") for a, d in ACTIONS],
            ("", ""),
            ("RESOLUTION ORDER", "bold"),
            ("  open document > file path > project file name > function", "dim"),
        ])


def create_plugin() -> LocalContextPlugin:
    """Factory function to create the local context plugin instance."""
    return LocalContextPlugin()
