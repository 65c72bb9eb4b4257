"""Pytest fixtures for local context tests."""

import os

import pytest

from ..host import WorkspaceHost


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path_factory, monkeypatch):
    """Keep trace output and LOCAL_CONTEXT_* settings out of the tests.

    The trace log goes to a per-test temp file and any settings exported in
    the developer's shell are removed, so config layering is deterministic.
    """
    for var in list(os.environ):
        if var.startswith("LOCAL_CONTEXT_"):
            monkeypatch.delenv(var, raising=False)
    trace_dir = tmp_path_factory.mktemp("trace")
    monkeypatch.setenv("LOCAL_CONTEXT_TRACE_LOG", str(trace_dir / "trace.log"))
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))
    yield


@pytest.fixture
def workspace(tmp_path):
    """A project directory marked with a .project file."""
    (tmp_path / ".project").write_text("")
    return tmp_path


@pytest.fixture
def host(workspace):
    """WorkspaceHost rooted at the workspace, without git."""
    return WorkspaceHost(workspace, use_git_index=False)
