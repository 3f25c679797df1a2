"""Git tree response to downloadable files."""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import MalformedResponse
from .models import NodeType, ResolvedFile

logger = logging.getLogger(__name__)

RAW_BASE_URL = "https://raw.githubusercontent.com"


class TreeEntry(BaseModel):
    """Entry of the Git Trees API `tree` array."""

    model_config = ConfigDict(extra="ignore")

    path: str
    type: str

    @property
    def node_type(self) -> NodeType:
        return NodeType.classify(self.type)


class TreeResponse(BaseModel):
    """Git Trees API response."""

    model_config = ConfigDict(extra="ignore")

    tree: list[TreeEntry]
    truncated: bool = False


def raw_url(repository: str, branch: str, path: str) -> str:
    """Raw content URL of a file on a branch."""
    return f"{RAW_BASE_URL}/{repository}/{branch}/{path}"


def parse_tree(raw: Any) -> TreeResponse:
    """Validate a decoded mapping or JSON text/bytes."""
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return TreeResponse.model_validate_json(raw)
        return TreeResponse.model_validate(raw)
    except ValidationError as e:
        raise MalformedResponse(f"Unexpected tree response: {e}") from e


def resolve_tree(raw: Any, repository: str, branch: str) -> list[ResolvedFile]:
    """
    Turn a tree response into files with download URLs.

    Only blobs are kept; directories and submodules are dropped. Output order
    follows the input.

    Args:
        raw: Git Trees API response (decoded JSON or text)
        repository: owner/name
        branch: Branch the tree was fetched from

    Returns:
        ResolvedFile per blob
    """
    response = parse_tree(raw)
    if response.truncated:
        logger.warning("Tree of %s@%s is truncated, some files are missing", repository, branch)

    files = [
        ResolvedFile(display_name=entry.path, download_url=raw_url(repository, branch, entry.path))
        for entry in response.tree
        if entry.node_type is NodeType.BLOB
    ]
    logger.debug("Resolved %d files out of %d tree entries", len(files), len(response.tree))
    return files
