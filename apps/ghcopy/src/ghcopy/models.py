"""ghcopy data models."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 50
HISTORY_TAG = "[History] "


class HistoryEntry(BaseModel):
    """A previously copied file."""

    model_config = ConfigDict(frozen=True)

    repo: str  # owner/name
    file_path: str

    @property
    def display(self) -> str:
        return f"{self.repo}: {self.file_path}"


class History(BaseModel):
    """Recently copied files, most recent first."""

    entries: list[HistoryEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def normalize_entries(self) -> "History":
        seen: set[HistoryEntry] = set()
        unique: list[HistoryEntry] = []
        for entry in self.entries:
            if entry in seen:
                logger.warning("Dropping duplicate history entry: %s", entry.display)
                continue
            seen.add(entry)
            unique.append(entry)
        if len(unique) > MAX_HISTORY_ENTRIES:
            logger.warning(
                "History has %d entries, keeping the newest %d",
                len(unique), MAX_HISTORY_ENTRIES,
            )
            unique = unique[:MAX_HISTORY_ENTRIES]
        self.entries = unique
        return self

    def with_entry(self, repo: str, file_path: str) -> "History":
        """Return a copy with (repo, file_path) moved or inserted at the front."""
        entry = HistoryEntry(repo=repo, file_path=file_path)
        rest = [e for e in self.entries if e != entry]
        return History(entries=[entry, *rest][:MAX_HISTORY_ENTRIES])

    def render(self) -> list[str]:
        """Display lines, `repo: file_path`, in stored order."""
        return [entry.display for entry in self.entries]


class NodeType(str, Enum):
    """Git tree node classification."""

    BLOB = "blob"
    TREE = "tree"
    OTHER = "other"

    @classmethod
    def classify(cls, value: str) -> "NodeType":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class ResolvedFile:
    """File in a repository with its raw download URL."""

    display_name: str
    download_url: str


class CandidateKind(str, Enum):
    HISTORY = "history"
    REPOSITORY = "repository"


@dataclass(frozen=True)
class Candidate:
    """One line offered by the first picker round."""

    kind: CandidateKind
    repository: str
    display: str
    entry: HistoryEntry | None = None

    @classmethod
    def from_history(cls, entry: HistoryEntry) -> "Candidate":
        return cls(
            kind=CandidateKind.HISTORY,
            repository=entry.repo,
            display=HISTORY_TAG + entry.display,
            entry=entry,
        )

    @classmethod
    def from_repository(cls, repository: str) -> "Candidate":
        return cls(kind=CandidateKind.REPOSITORY, repository=repository, display=repository)


@dataclass(frozen=True)
class CopyResult:
    """Outcome of a successful run."""

    repository: str
    file_path: str
    download_url: str
    destination: Path
    kind: CandidateKind
