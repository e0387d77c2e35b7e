"""
tmux launcher utility.

Hands the terminal over to tmux once the session exists.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from typing import NoReturn

from cs.exceptions import TmuxNotFoundError
from cs.schemas.session import ExecCommand


def exec_command(command: ExecCommand) -> NoReturn:
    """
    Replace the current process with the given command.

    Uses os.execvp() for clean process handoff - the current process
    is replaced by tmux, so this function never returns. Windows has no
    process-image replacement, so there the command is spawned and waited
    for, and this process exits with its return code.

    Args:
        command: Command to run (argv[0] is looked up in PATH)

    Raises:
        TmuxNotFoundError: If the binary is not found in PATH
    """
    if not shutil.which(command.binary):
        raise TmuxNotFoundError(command.binary)

    sys.stdout.flush()
    sys.stderr.flush()

    if os.name == 'nt':
        completed = subprocess.run(command.argv)
        sys.exit(completed.returncode)

    os.execvp(command.binary, command.argv)
