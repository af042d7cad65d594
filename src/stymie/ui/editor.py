import os
import shlex
import subprocess

from pathlib import Path
from typing import List, Optional

from stymie.ui.constants import EDITOR_ARGS
from stymie.utils.errors import PersistenceError


def editor_command(editor: str, file_path: Path) -> List[str]:
    argv = shlex.split(editor) or ["vim"]
    name = os.path.basename(argv[0])
    return [*argv, *EDITOR_ARGS.get(name, []), str(file_path)]


class Editor:
    """Runs an external editor on a file and blocks until it exits."""

    def __init__(self, editor: str = "vim", timeout: Optional[float] = None):
        self.editor = editor
        self.timeout = timeout

    def __call__(self, file_path: Path) -> int:
        cmd = editor_command(self.editor, file_path)
        try:
            return subprocess.run(cmd, timeout=self.timeout).returncode
        except FileNotFoundError as e:
            raise PersistenceError(f"Editor not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise PersistenceError(f"Editor did not exit within {self.timeout}s") from e
