"""Interactive fuzzy picker backed by fzf."""

import logging
import shlex
import subprocess
from typing import Sequence

from .errors import PickerError

logger = logging.getLogger(__name__)

DEFAULT_PICKER = "fzf"
# fzf: 1 = no match, 130 = interrupted with Ctrl-C / Esc
NO_SELECTION_CODES = (1, 130)


class FzfPicker:
    """Runs a picker command with candidates on stdin, reads the choice from stdout."""

    def __init__(self, command: str | Sequence[str] = DEFAULT_PICKER):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        if not self.command:
            raise PickerError("Empty picker command")

    def pick_one(self, candidates: Sequence[str]) -> str:
        """
        Let the user choose one candidate.

        Returns:
            The chosen line, or "" if nothing was chosen or the picker was interrupted
        """
        logger.debug("Picking among %d candidates with %s", len(candidates), self.command[0])
        try:
            result = subprocess.run(
                self.command,
                input="\n".join(candidates),
                stdout=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise PickerError(f"Picker not found: {self.command[0]}") from e
        except KeyboardInterrupt:
            logger.info("Picker interrupted")
            return ""

        if result.returncode in NO_SELECTION_CODES:
            logger.info("Picker returned no selection (exit %d)", result.returncode)
            return ""
        if result.returncode != 0:
            raise PickerError(f"Picker failed with exit status {result.returncode}")

        choice = result.stdout.strip()
        logger.debug("Picked: %s", choice)
        return choice
