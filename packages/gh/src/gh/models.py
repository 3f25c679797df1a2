"""GitHub API data models."""

from pydantic import BaseModel, ConfigDict


class GitHubUser(BaseModel):
    """Authenticated GitHub user."""

    model_config = ConfigDict(extra="ignore")

    login: str
    name: str | None = None


class GitHubRepository(BaseModel):
    """Repository metadata from `GET /repos/{owner}/{repo}`."""

    model_config = ConfigDict(extra="ignore")

    name: str
    full_name: str
    default_branch: str | None = None
    private: bool = False
    html_url: str | None = None


class PageInfo(BaseModel):
    """GraphQL connection cursor."""

    hasNextPage: bool = False
    endCursor: str | None = None
