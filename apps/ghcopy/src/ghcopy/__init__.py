"""Copy a single file out of your GitHub repositories."""

from .errors import (
    Aborted,
    CopyError,
    CorruptHistory,
    MalformedResponse,
    NoBranch,
    NoRepos,
    NoUser,
    PickerError,
    SelectionMismatch,
    SourceError,
    StorageError,
)
from .history import HistoryStore
from .models import Candidate, CandidateKind, CopyResult, History, HistoryEntry, ResolvedFile
from .picker import FzfPicker
from .session import CopySession
from .source import GitHubSource
from .tree import raw_url, resolve_tree

__all__ = [
    "Aborted",
    "Candidate",
    "CandidateKind",
    "CopyError",
    "CopyResult",
    "CopySession",
    "CorruptHistory",
    "FzfPicker",
    "GitHubSource",
    "History",
    "HistoryEntry",
    "HistoryStore",
    "MalformedResponse",
    "NoBranch",
    "NoRepos",
    "NoUser",
    "PickerError",
    "ResolvedFile",
    "SelectionMismatch",
    "SourceError",
    "StorageError",
    "raw_url",
    "resolve_tree",
]
