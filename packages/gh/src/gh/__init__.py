"""GitHub API client utilities."""

from .client import GitHubClient, GraphQLError, get_token, split_repository
from .models import GitHubRepository, GitHubUser

__all__ = [
    "GitHubClient",
    "GitHubRepository",
    "GitHubUser",
    "GraphQLError",
    "get_token",
    "split_repository",
]
