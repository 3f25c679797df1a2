"""Persistent history of copied files."""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .errors import CorruptHistory, StorageError
from .models import History

logger = logging.getLogger(__name__)

HISTORY_FILE = "history.json"


def default_history_path() -> Path:
    """~/.config/ghcopy/history.json"""
    return Path.home() / ".config" / "ghcopy" / HISTORY_FILE


class HistoryStore:
    """Reads and writes the history document.

    The document is `{"entries": [{"repo": ..., "file_path": ...}, ...]}`,
    most recent first. It carries no version field, so changing its shape
    breaks existing files.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else default_history_path()
        logger.debug("History store at %s", self.path)

    def load(self) -> History:
        """Load history; a missing file is an empty history."""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No history at %s, starting empty", self.path)
            return History()
        except UnicodeDecodeError as e:
            raise CorruptHistory(f"Invalid history file {self.path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Cannot read history file {self.path}: {e}") from e

        try:
            history = History.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            raise CorruptHistory(f"Invalid history file {self.path}: {e}") from e

        logger.info("Loaded %d history entries", len(history.entries))
        return history

    def save(self, history: History) -> None:
        """Write history atomically, creating parent directories."""
        content = json.dumps(history.model_dump(mode="json"), ensure_ascii=False, indent=2) + "\n"
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"Cannot write history file {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        logger.debug("Saved %d history entries to %s", len(history.entries), self.path)

    def add_entry(self, history: History, repository: str, file_path: str) -> History:
        """Move or insert (repository, file_path) at the front and persist."""
        updated = history.with_entry(repository, file_path)
        self.save(updated)
        logger.info("History updated: %s: %s", repository, file_path)
        return updated

    def render_for_display(self, history: History) -> list[str]:
        return history.render()
