"""Launching the user's editor on a note file."""
import logging
import shlex
import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Editor(Protocol):
    """Something that lets the user modify a file in place."""

    name: str

    def edit(self, path: Path) -> bool:
        """Edit ``path`` and return whether the editor succeeded.

        Returns:
            False if the editor exited unsuccessfully; the file must then be
            treated as not worth committing.

        Raises:
            OSError: If the editor could not be started.
        """
        ...


class CommandEditor:
    """Runs an external editor command and waits for it to exit.

    The command is split like a shell would split it, so ``"code --wait"``
    works, and the note path is appended as the last argument. There is no
    timeout: the user decides how long editing takes.
    """

    def __init__(self, command: str):
        self.command = command
        self.name = command

    def edit(self, path: Path) -> bool:
        args = shlex.split(self.command) + [str(path)]
        logger.debug(f"Running editor: {args}")
        result = subprocess.run(args, check=False)
        if result.returncode != 0:
            logger.info(f"Editor '{self.name}' exited with status {result.returncode}")
            return False
        return True

    def __repr__(self) -> str:
        return f"<CommandEditor(command='{self.command}')>"
