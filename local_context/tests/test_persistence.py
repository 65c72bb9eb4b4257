"""Tests for saving and restoring references inside document text."""

import pytest

from ..config_loader import LocalContextConfig
from ..errors import PersistenceError
from ..host import Document
from ..persistence import (
    LocalVariablesPersistence,
    OutlinePersistence,
    decode_references,
    encode_references,
    escape_value,
    persistence_for,
    restore,
    save,
    unescape_value,
    wrap_restore,
    wrap_save,
)
from ..store import ReferenceStore


def outline(text="* Heading\nbody\n", refs=None):
    doc = Document(name="notes.org", text=text, path="/tmp/notes.org")
    if refs is not None:
        doc.references = ReferenceStore(refs)
    return doc


def plain(text="print(1)\n", refs=None, path="/tmp/script.py"):
    doc = Document(name="script", text=text, path=path)
    if refs is not None:
        doc.references = ReferenceStore(refs)
    return doc


class TestOutlineDrawer:
    """Tests for the outline property drawer encoding."""

    def test_round_trip(self):
        doc = outline(refs=["x", "y"])
        save(doc)
        assert doc.text == ":PROPERTIES:\n:LOCAL_CONTEXT: x y\n:END:\n* Heading\nbody\n"

        reopened = outline(text=doc.text)
        assert restore(reopened) == ["x", "y"]
        assert list(reopened.references) == ["x", "y"]

    def test_values_with_spaces_are_escaped(self):
        doc = outline(refs=["my file.md", "100%.txt"])
        save(doc)
        assert ":LOCAL_CONTEXT: my%20file.md 100%25.txt" in doc.text
        assert restore(outline(text=doc.text)) == ["my file.md", "100%.txt"]

    def test_other_properties_are_preserved(self):
        text = ":PROPERTIES:\n:ID: abc\n:END:\n* H\n"
        doc = outline(text=text, refs=["a"])
        save(doc)
        assert doc.text == ":PROPERTIES:\n:ID: abc\n:LOCAL_CONTEXT: a\n:END:\n* H\n"

        doc.references.clear()
        save(doc)
        assert doc.text == text

    def test_drawer_removed_when_emptied(self):
        doc = outline(refs=["a"])
        save(doc)
        doc.references = None
        save(doc)
        assert doc.text == "* Heading\nbody\n"

    def test_resave_replaces_previous_value(self):
        doc = outline(refs=["a"])
        save(doc)
        doc.references.replace(["b", "c"])
        save(doc)
        assert doc.text.count(":LOCAL_CONTEXT:") == 1
        assert ":LOCAL_CONTEXT: b c" in doc.text

    def test_append_lines_extend_value(self):
        text = ":PROPERTIES:\n:LOCAL_CONTEXT: a\n:LOCAL_CONTEXT+: b c\n:END:\n"
        assert OutlinePersistence().read(text) == ["a", "b", "c"]

    def test_comments_may_precede_drawer(self):
        text = "# -*- mode: org -*-\n:PROPERTIES:\n:LOCAL_CONTEXT: a\n:END:\n"
        assert OutlinePersistence().read(text) == ["a"]

    def test_property_name_is_configurable(self):
        doc = outline(refs=["a"])
        save(doc, LocalContextConfig(property_name="CONTEXT_REFS"))
        assert ":CONTEXT_REFS: a" in doc.text

    def test_no_drawer_reads_none(self):
        assert OutlinePersistence().read("* Heading\n") is None

    def test_escape_helpers(self):
        assert escape_value("a b\tc") == "a%20b%09c"
        assert unescape_value("a%20b%09c") == "a b\tc"


class TestLocalVariablesBlock:
    """Tests for the trailing local-variables encoding."""

    def test_appends_block(self):
        doc = plain(refs=["a", "b"])
        save(doc)
        assert doc.text == (
            'print(1)\n\n# Local Variables:\n# local-context: ["a", "b"]\n# End:\n'
        )
        assert restore(plain(text=doc.text)) == ["a", "b"]

    def test_quotes_and_spaces_round_trip(self):
        refs = ["my notes.txt", 'say "hi"', "ünïcode"]
        doc = plain(refs=refs)
        save(doc)
        assert restore(plain(text=doc.text)) == refs

    def test_other_variables_are_preserved(self):
        text = "x = 1\n\n# Local Variables:\n# mode: python\n# End:\n"
        doc = plain(text=text, refs=["a"])
        save(doc)
        assert "# mode: python\n" in doc.text
        assert '# local-context: ["a"]\n# End:\n' in doc.text

        doc.references.clear()
        save(doc)
        assert doc.text == text

    def test_block_removed_when_emptied(self):
        doc = plain(refs=["a"])
        save(doc)
        doc.references = None
        save(doc)
        assert doc.text == "print(1)\n"

    def test_comment_style_follows_suffix(self):
        doc = plain(text="# Title\n", refs=["a"], path="/tmp/README.md")
        save(doc)
        assert doc.text.endswith(
            '<!-- Local Variables: -->\n<!-- local-context: ["a"] -->\n<!-- End: -->\n'
        )
        assert restore(plain(text=doc.text, path="/tmp/README.md")) == ["a"]

    def test_existing_block_prefix_is_reused(self):
        text = "(setq x 1)\n;; Local Variables:\n;; End:\n"
        doc = plain(text=text, refs=["a"], path="/tmp/init.el")
        save(doc)
        assert ';; local-context: ["a"]\n;; End:\n' in doc.text

    def test_undecodable_value_raises(self):
        doc = plain(text="# Local Variables:\n# local-context: [unclosed\n# End:\n")
        with pytest.raises(PersistenceError) as exc:
            restore(doc)
        assert exc.value.document_name == "script"

    def test_non_sequence_value_raises(self):
        doc = plain(text="# Local Variables:\n# local-context: 42\n# End:\n")
        with pytest.raises(PersistenceError):
            restore(doc)

    def test_variable_absent_reads_none(self):
        text = "# Local Variables:\n# mode: text\n# End:\n"
        assert LocalVariablesPersistence().read(text) is None

    def test_encode_decode(self):
        assert encode_references(["a b"]) == '["a b"]'
        assert decode_references('["a", "b"]') == ["a", "b"]
        with pytest.raises(ValueError):
            decode_references('{"a": 1}')


class TestRestore:
    """Tests for restore semantics."""

    def test_replaces_existing_store(self):
        saved = plain(refs=["x"])
        save(saved)
        doc = plain(text=saved.text, refs=["old", "x"])
        assert restore(doc) == ["x"]
        assert list(doc.references) == ["x"]

    def test_nothing_saved_leaves_store_alone(self):
        doc = plain(refs=["keep"])
        assert restore(doc) == []
        assert list(doc.references) == ["keep"]

    def test_nothing_saved_creates_no_store(self):
        doc = plain()
        restore(doc)
        assert doc.references is None

    def test_persistence_for_document_kind(self):
        assert isinstance(persistence_for(outline()), OutlinePersistence)
        assert isinstance(persistence_for(plain()), LocalVariablesPersistence)


class TestHostRoutineWrappers:
    """Tests for wrapping host save/restore routines."""

    def test_wrap_save_runs_original_first(self):
        seen = []

        def save_state(document):
            seen.append(document.text)
            return "saved"

        doc = plain(refs=["a"])
        wrapped = wrap_save(save_state)
        assert wrapped(doc) == "saved"
        assert seen == ["print(1)\n"]
        assert "local-context" in doc.text

    def test_wrap_restore_runs_original_first(self):
        saved = plain(refs=["a"])
        save(saved)

        def restore_state(document):
            document.text = saved.text
            return "restored"

        doc = plain()
        wrapped = wrap_restore(restore_state)
        assert wrapped(doc) == "restored"
        assert list(doc.references) == ["a"]

    def test_wrappers_keep_identity(self):
        def save_state(document):
            """Host save routine."""

        wrapped = wrap_save(save_state)
        assert wrapped.__name__ == "save_state"
        assert wrapped.__wrapped__ is save_state
