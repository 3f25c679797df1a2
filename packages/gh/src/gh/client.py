"""GitHub API client."""

import logging
import os
import subprocess
from pathlib import Path
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from .models import GitHubRepository, GitHubUser, PageInfo

logger = logging.getLogger(__name__)

# Retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_WAIT = 1  # seconds
DEFAULT_MAX_WAIT = 10  # seconds
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# Retryable exceptions
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.NetworkError,
)

REPOSITORIES_QUERY = """
query ($owner: String!, $endCursor: String) {
    repositoryOwner(login: $owner) {
        repositories(
            first: 30
            after: $endCursor
        ) {
            pageInfo {
                hasNextPage
                endCursor
            }
            nodes {
                nameWithOwner
            }
        }
    }
}
"""


class GraphQLError(Exception):
    """GraphQL endpoint answered with an `errors` payload."""

    def __init__(self, errors: list[dict[str, Any]]):
        self.errors = errors
        messages = "; ".join(str(e.get("message", e)) for e in errors)
        super().__init__(f"GraphQL error: {messages}")


def get_token_from_gh_cli() -> str | None:
    """
    Get GitHub token from gh cli.

    Returns:
        Token string or None if gh cli not available/authenticated
    """
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            logger.info("Using token from gh cli")
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug("gh cli not available: %s", e)
    return None


def get_token(token: str | None = None, use_gh_cli: bool = False) -> str | None:
    """
    Get GitHub token from various sources.

    Priority:
    1. Explicitly provided token
    2. Environment variable GH_TOKEN / GITHUB_TOKEN
    3. gh cli (`gh auth token`) - only if use_gh_cli=True

    Args:
        token: Explicitly provided token
        use_gh_cli: Whether to use gh cli credentials (requires user consent)

    Returns:
        GitHub token or None
    """
    if token:
        logger.debug("Using explicitly provided token")
        return token

    env_token = os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN")
    if env_token:
        logger.info("Using token from environment variable")
        return env_token

    if use_gh_cli:
        return get_token_from_gh_cli()

    return None


def create_retry_decorator(max_retries: int = DEFAULT_MAX_RETRIES):
    """Create a retry decorator with specified max retries."""
    return retry(
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=1, min=DEFAULT_MIN_WAIT, max=DEFAULT_MAX_WAIT),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def split_repository(repository: str) -> tuple[str, str]:
    """Split an `owner/name` identifier."""
    owner, sep, name = repository.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(f"Invalid repository identifier: {repository!r}")
    return owner, name


class GitHubClient:
    """GitHub REST/GraphQL API client with retry support."""

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        use_gh_cli: bool = False,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub personal access token (optional)
            base_url: Custom base URL (defaults to GitHub API)
            timeout: Request timeout in seconds
            use_gh_cli: Use gh cli credentials (requires user consent)
            max_retries: Maximum number of attempts per call (1 disables retry)
            transport: Custom httpx transport (tests, proxies)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.transport = transport
        self.headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "ghcopy",
        }

        resolved_token = get_token(token, use_gh_cli=use_gh_cli)

        if resolved_token:
            self.headers["Authorization"] = f"token {resolved_token}"
            logger.debug("GitHub client initialized with token")
        else:
            logger.warning("GitHub client initialized without token (rate limited)")
        logger.info(
            "GitHub client ready, base_url=%s, max_retries=%d",
            self.base_url, self.max_retries,
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport,
            follow_redirects=True,
        )

    def _request(
        self, method: str, endpoint: str, **kwargs: Any
    ) -> httpx.Response:
        """Make HTTP request to GitHub API with retry."""
        url = f"{self.base_url}{endpoint}"

        @create_retry_decorator(self.max_retries)
        def do_request() -> httpx.Response:
            logger.debug("Request: %s %s", method, url)
            with self._client() as client:
                response = client.request(method, url, **kwargs)
                logger.debug(
                    "Response: %s %s (status=%d)",
                    method,
                    endpoint,
                    response.status_code,
                )
                response.raise_for_status()
                return response

        return do_request()

    def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query and return its `data` member."""
        response = self._request(
            "POST", "/graphql", json={"query": query, "variables": variables}
        )
        payload = response.json()
        if payload.get("errors"):
            logger.error("GraphQL errors: %s", payload["errors"])
            raise GraphQLError(payload["errors"])
        return payload.get("data") or {}

    def get_authenticated_user(self) -> GitHubUser:
        """
        Get the user the token belongs to.

        Returns:
            GitHubUser for `GET /user`
        """
        logger.info("Fetching authenticated user")
        response = self._request("GET", "/user")
        user = GitHubUser.model_validate(response.json())
        logger.debug("Authenticated as %s", user.login)
        return user

    def list_repository_names(self, owner: str) -> list[str]:
        """
        List `owner/name` identifiers of every repository owned by `owner`.

        Follows GraphQL cursors until the last page. Order is the order the
        API returns.

        Args:
            owner: User or organization login

        Returns:
            Repository identifiers
        """
        logger.info("Listing repositories of %s", owner)
        names: list[str] = []
        cursor: str | None = None
        while True:
            data = self._graphql(
                REPOSITORIES_QUERY, {"owner": owner, "endCursor": cursor}
            )
            repository_owner = data.get("repositoryOwner")
            if not repository_owner:
                logger.warning("Repository owner not found: %s", owner)
                break
            connection = repository_owner["repositories"]
            names.extend(node["nameWithOwner"] for node in connection["nodes"] if node)
            page_info = PageInfo.model_validate(connection["pageInfo"])
            if not page_info.hasNextPage:
                break
            cursor = page_info.endCursor
            logger.debug("Next repository page after %s", cursor)

        logger.debug("Found %d repositories for %s", len(names), owner)
        return names

    def get_repository(self, owner: str, repo: str) -> GitHubRepository:
        """
        Get repository metadata.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            GitHubRepository
        """
        logger.info("Fetching repository: %s/%s", owner, repo)
        response = self._request("GET", f"/repos/{owner}/{repo}")
        return GitHubRepository.model_validate(response.json())

    def get_tree(
        self, owner: str, repo: str, ref: str, recursive: bool = True
    ) -> Any:
        """
        Get the git tree of a ref.

        The decoded JSON is returned untouched; callers validate its shape.

        Args:
            owner: Repository owner
            repo: Repository name
            ref: Branch/tag/commit
            recursive: Include every nested entry

        Returns:
            Decoded Git Trees API response
        """
        logger.info("Fetching tree: %s/%s ref=%s recursive=%s", owner, repo, ref, recursive)
        params = {"recursive": "1"} if recursive else {}
        response = self._request("GET", f"/repos/{owner}/{repo}/git/trees/{ref}", params=params)
        return response.json()

    def download_to_file(self, url: str, destination: str | Path) -> int:
        """
        Stream a URL into a local file.

        Missing parent directories are created. A failed transfer may leave a
        partially written file behind.

        Args:
            url: Absolute URL (e.g. raw.githubusercontent.com)
            destination: Target file path

        Returns:
            Number of bytes written
        """
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)

        @create_retry_decorator(self.max_retries)
        def do_download() -> int:
            logger.debug("Downloading: %s -> %s", url, path)
            written = 0
            with self._client() as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with path.open("wb") as f:
                        for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                            f.write(chunk)
                            written += len(chunk)
            return written

        written = do_download()
        logger.info("Downloaded %s (%d bytes)", path, written)
        return written
