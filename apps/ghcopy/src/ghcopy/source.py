"""GitHub as the repository source for a copy session."""

import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

import httpx

from gh import GitHubClient, GraphQLError, split_repository

from .errors import MalformedResponse, NoBranch, NoRepos, NoUser, SourceError

logger = logging.getLogger(__name__)


class RepositorySource(Protocol):
    """Remote operations a copy session needs."""

    def default_user(self) -> str: ...

    def repository_names(self, user: str) -> list[str]: ...

    def default_branch(self, repository: str) -> str: ...

    def repository_tree(self, repository: str, branch: str) -> Any: ...

    def transfer(self, url: str, destination: Path) -> None: ...


class Picker(Protocol):
    def pick_one(self, candidates: Sequence[str]) -> str: ...


class GitHubSource:
    """Adapts GitHubClient to RepositorySource and maps its failures."""

    def __init__(self, client: GitHubClient):
        self.client = client

    def default_user(self) -> str:
        try:
            login = self.client.get_authenticated_user().login.strip()
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers non-JSON bodies and pydantic ValidationError
            raise NoUser(f"Failed to get GitHub user: {e}") from e
        if not login:
            raise NoUser("Failed to get GitHub user")
        return login

    def repository_names(self, user: str) -> list[str]:
        try:
            names = self.client.list_repository_names(user)
        except (httpx.HTTPError, GraphQLError, ValueError, KeyError, TypeError) as e:
            raise NoRepos(f"Failed to get repository list: {e}") from e
        if not names:
            raise NoRepos(f"No repositories found for {user}")
        return names

    def default_branch(self, repository: str) -> str:
        try:
            owner, name = split_repository(repository)
            branch = self.client.get_repository(owner, name).default_branch
        except (httpx.HTTPError, ValueError) as e:
            raise NoBranch(f"Failed to get default branch of {repository}: {e}") from e
        if not branch:
            raise NoBranch(f"{repository} has no default branch")
        logger.info("Default branch of %s is %s", repository, branch)
        return branch

    def repository_tree(self, repository: str, branch: str) -> Any:
        try:
            owner, name = split_repository(repository)
        except ValueError as e:
            raise SourceError(str(e)) from e
        try:
            return self.client.get_tree(owner, name, branch, recursive=True)
        except httpx.HTTPError as e:
            raise SourceError(f"Failed to fetch tree of {repository}@{branch}: {e}") from e
        except ValueError as e:
            # response body was not JSON
            raise MalformedResponse(f"Unexpected tree response for {repository}: {e}") from e

    def transfer(self, url: str, destination: Path) -> None:
        try:
            self.client.download_to_file(url, destination)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, OSError) as e:
            raise SourceError(f"Failed to download {url}: {e}") from e
