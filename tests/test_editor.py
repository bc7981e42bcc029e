"""Tests for launching external editors."""
import shutil

import pytest

from quicknotes.services.editor import CommandEditor, Editor
from tests.fakes import AppendEditor

pytestmark = pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")


class TestCommandEditor:
    """Tests for running editor commands."""

    def test_successful_exit(self, tmp_path):
        note = tmp_path / "note.txt"
        note.write_text("")
        assert CommandEditor("true").edit(note) is True

    def test_unsuccessful_exit(self, tmp_path):
        note = tmp_path / "note.txt"
        note.write_text("")
        assert CommandEditor("false").edit(note) is False

    def test_command_is_split_and_path_appended(self, tmp_path):
        note = tmp_path / "my note.txt"
        note.write_text("start\n")

        CommandEditor("""sh -c 'echo edited >> "$0"'""").edit(note)

        assert note.read_text() == "start\nedited\n"

    def test_missing_binary_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            CommandEditor("no-such-editor-binary-for-tests").edit(tmp_path / "note.txt")

    def test_name_is_command(self):
        assert CommandEditor("code --wait").name == "code --wait"

    def test_fakes_satisfy_protocol(self):
        assert isinstance(CommandEditor("true"), Editor)
        assert isinstance(AppendEditor(), Editor)
