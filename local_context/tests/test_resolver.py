"""Tests for SourceResolver classification and extraction."""

from unittest.mock import MagicMock

import pytest

from ..config_loader import LocalContextConfig
from ..models import SourceKind
from ..resolver import SourceResolver


@pytest.fixture
def resolver(host):
    return SourceResolver(host)


@pytest.fixture
def scope(host, workspace):
    """Saved document at the workspace root."""
    return host.open_document("main.py", text="print('hi')\n", path=workspace / "main.py")


class TestOpenDocument:
    """Tests for the open-document classifier."""

    def test_resolves_open_document_text(self, host, resolver, scope):
        host.open_document("scratch", text="line one\nline two")
        block = resolver.resolve("scratch", scope)
        assert block.kind == SourceKind.BUFFER
        assert block.body == "line one\nline two"
        assert block.span == (1, 2)

    def test_open_document_takes_precedence_over_file(self, host, resolver, scope, workspace):
        (workspace / "notes.txt").write_text("on disk")
        host.open_document("notes.txt", text="in memory")
        block = resolver.resolve("notes.txt", scope)
        assert block.kind == SourceKind.BUFFER
        assert block.body == "in memory"

    def test_ephemeral_document_is_not_resolved(self, host, resolver, scope):
        host.open_document("*context-menu*", text="menu", ephemeral=True)
        assert resolver.resolve("*context-menu*", scope) is None


class TestFilesystem:
    """Tests for the filesystem classifier."""

    def test_relative_path_from_scope_directory(self, resolver, scope, workspace):
        (workspace / "notes.txt").write_text("hello")
        block = resolver.resolve("notes.txt", scope)
        assert block.kind == SourceKind.FILE
        assert block.body == "hello"
        assert block.label == "notes.txt"

    def test_absolute_path(self, resolver, scope, tmp_path_factory):
        other = tmp_path_factory.mktemp("elsewhere") / "data.txt"
        other.write_text("absolute")
        block = resolver.resolve(str(other), scope)
        assert block.kind == SourceKind.FILE
        assert block.body == "absolute"

    def test_unsaved_scope_uses_working_directory(self, host, resolver, workspace):
        (workspace / "notes.txt").write_text("from cwd")
        unsaved = host.open_document("untitled")
        assert resolver.resolve("notes.txt", unsaved).body == "from cwd"

    def test_file_takes_precedence_over_function(self, host, resolver, scope, workspace):
        (workspace / "status").write_text("file wins")
        host.register_function("status", lambda: "function")
        assert resolver.resolve("status", scope).kind == SourceKind.FILE

    def test_directory_is_not_a_file_source(self, resolver, scope, workspace):
        (workspace / "src").mkdir()
        assert resolver.resolve("src", scope) is None

    def test_binary_file_falls_through(self, resolver, scope, workspace):
        (workspace / "blob.bin").write_bytes(b"\xff\xfe\x00\x81")
        assert resolver.resolve("blob.bin", scope) is None

    def test_files_over_size_limit_are_skipped(self, host, scope, workspace):
        (workspace / "big.txt").write_text("x" * 100)
        limited = SourceResolver(host, LocalContextConfig(max_file_bytes=10))
        assert limited.resolve("big.txt", scope) is None


class TestProjectFallback:
    """Tests for the project-relative classifier."""

    def test_finds_file_by_base_name(self, resolver, scope, workspace):
        (workspace / "src" / "pkg").mkdir(parents=True)
        (workspace / "src" / "pkg" / "util.py").write_text("def util(): ...")
        block = resolver.resolve("util.py", scope)
        assert block.kind == SourceKind.PROJECT_FILE
        assert block.label == "src/pkg/util.py"
        assert block.body == "def util(): ..."

    def test_duplicate_base_names_pick_lowest_path(self, resolver, scope, workspace):
        for sub in ("zeta", "alpha", "mid"):
            (workspace / sub).mkdir()
            (workspace / sub / "config.yaml").write_text(sub)
        block = resolver.resolve("config.yaml", scope)
        assert block.label == "alpha/config.yaml"
        assert block.body == "alpha"

    def test_ignored_files_are_not_in_index(self, resolver, scope, workspace):
        (workspace / ".gitignore").write_text("build/\n")
        (workspace / "build").mkdir()
        (workspace / "build" / "out.txt").write_text("generated")
        assert resolver.resolve("out.txt", scope) is None

    def test_paths_with_separators_skip_project_lookup(self, resolver, scope, workspace):
        (workspace / "a").mkdir()
        (workspace / "a" / "b.txt").write_text("b")
        assert resolver.resolve("x/b.txt", scope) is None

    def test_no_project_means_no_match(self, tmp_path_factory):
        from ..host import WorkspaceHost

        bare = tmp_path_factory.mktemp("bare")
        host = WorkspaceHost(bare, use_git_index=False)
        host.find_project = MagicMock(return_value=None)
        assert SourceResolver(host).resolve("anything.txt") is None


class TestCallable:
    """Tests for the callable classifier."""

    def test_invokes_callable_and_stringifies_result(self, host, resolver, scope):
        host.register_function("answer", lambda: 42)
        block = resolver.resolve("answer", scope)
        assert block.kind == SourceKind.FUNCTION
        assert block.body == "42"

    def test_none_result_is_empty(self, host, resolver, scope):
        host.register_function("nothing", lambda: None)
        assert resolver.resolve("nothing", scope).is_empty

    def test_exception_becomes_inline_error(self, host, resolver, scope):
        def broken():
            raise RuntimeError("disk on fire")

        host.register_function("broken", broken)
        block = resolver.resolve("broken", scope)
        assert block.kind == SourceKind.FUNCTION
        assert block.body == "Error calling function broken: disk on fire"

    def test_non_callable_value_is_ignored(self, resolver, scope):
        host = MagicMock()
        host.get_document.return_value = None
        host.find_project.return_value = None
        host.working_directory = scope.directory
        host.get_callable.return_value = "not callable"
        assert SourceResolver(host).resolve("value", scope) is None

    def test_function_is_called_on_every_resolution(self, host, resolver, scope):
        calls = []
        host.register_function("counter", lambda: calls.append(1) or len(calls))
        assert resolver.resolve("counter", scope).body == "1"
        assert resolver.resolve("counter", scope).body == "2"


class TestUnresolvable:
    """Tests for references nothing recognises."""

    def test_unknown_reference_is_none(self, resolver, scope):
        assert resolver.resolve("does-not-exist", scope) is None

    def test_empty_reference_is_none(self, resolver, scope):
        assert resolver.resolve("", scope) is None

    def test_resolution_does_not_modify_sources(self, host, resolver, scope, workspace):
        target = workspace / "keep.txt"
        target.write_text("unchanged")
        doc = host.open_document("buf", text="buffer text")
        resolver.resolve("keep.txt", scope)
        resolver.resolve("buf", scope)
        assert target.read_text() == "unchanged"
        assert doc.text == "buffer text"

    def test_classifier_order_is_documented(self):
        kinds = [kind for kind, _ in SourceResolver.CLASSIFIERS]
        assert kinds == [
            SourceKind.BUFFER,
            SourceKind.FILE,
            SourceKind.PROJECT_FILE,
            SourceKind.FUNCTION,
        ]
