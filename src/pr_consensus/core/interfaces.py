"""Collaborator interfaces the consensus logic depends on.

The GitHub-backed implementations live in ``pr_consensus.github_app.github_backend``;
tests substitute in-memory fakes.
"""

from typing import Any, Dict, List, Optional, Protocol

from ..utils.schema import TeamMembership


class ConfigStore(Protocol):
    def fetch_config_text(self, path: str) -> Optional[str]:
        """Return the decoded file contents, or None when the file does not exist."""
        ...


class TeamDirectory(Protocol):
    def validate_slug(self, slug: str) -> bool:
        ...

    def members_of(self, slug: str) -> TeamMembership:
        ...


class ReviewStore(Protocol):
    def list_reviews(self, pr_number: int) -> List[Dict[str, Any]]:
        """Return the raw review objects of a pull request in API order."""
        ...

    def list_commits(self, pr_number: int) -> List[Dict[str, Any]]:
        ...

    def request_reviewers(self, pr_number: int, reviewers: List[str]) -> None:
        ...


class CheckPublisher(Protocol):
    def create_check_run(self, check_run: Dict[str, Any]) -> Dict[str, Any]:
        ...
