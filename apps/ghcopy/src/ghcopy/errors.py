"""Error kinds raised by ghcopy.

Every error is fatal to the current run. The CLI turns them into a short
message on stderr and a non-zero exit status.
"""


class CopyError(Exception):
    """Base class for ghcopy failures."""

    exit_code = 2


class StorageError(CopyError):
    """History file could not be read or written."""


class CorruptHistory(CopyError):
    """History file exists but is not a valid history document."""


class NoUser(CopyError):
    """Authenticated user could not be determined."""


class NoRepos(CopyError):
    """User has no repositories, or the listing failed."""


class NoBranch(CopyError):
    """Default branch of a repository could not be resolved."""


class MalformedResponse(CopyError):
    """Tree payload does not have the expected shape."""


class SourceError(CopyError):
    """Remote call failed for a reason not covered by a narrower kind."""


class PickerError(CopyError):
    """Picker command could not be run."""


class SelectionMismatch(CopyError):
    """Picker returned a file that was not offered."""


class Aborted(CopyError):
    """Run stopped early: user cancelled or nothing to act on."""

    exit_code = 1

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
