"""Installation-scoped GitHub implementations of the consensus collaborators."""

import logging
from typing import Any, Dict, List, Optional

from .github_client import GitHubClient
from ..utils.schema import TeamMembership

logger = logging.getLogger(__name__)

TEAM_NAME_QUERY = """
query teamName($login: String!, $slug: String!) {
  organization(login: $login) {
    team(slug: $slug) {
      name
    }
  }
}
"""

TEAM_MEMBERS_QUERY = """
query teamMembers($login: String!, $slug: String!) {
  organization(login: $login) {
    team(slug: $slug) {
      name
      members(first: 100) {
        nodes {
          login
        }
      }
    }
  }
}
"""


def _team_node(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    organization = data.get("organization")
    if not organization:
        return None
    return organization.get("team")


class GitHubTeamDirectory:
    """Team registry backed by the GitHub GraphQL API."""

    def __init__(self, client: GitHubClient, installation_id: int, org_login: str):
        self.client = client
        self.installation_id = installation_id
        self.org_login = org_login

    def validate_slug(self, slug: str) -> bool:
        data = self.client.graphql(
            self.installation_id,
            TEAM_NAME_QUERY,
            {"login": self.org_login, "slug": slug},
        )
        exists = _team_node(data) is not None
        if not exists:
            logger.info(f"Team {self.org_login}/{slug} does not exist")
        return exists

    def members_of(self, slug: str) -> TeamMembership:
        """Logins of the team's members (first 100 only)."""
        data = self.client.graphql(
            self.installation_id,
            TEAM_MEMBERS_QUERY,
            {"login": self.org_login, "slug": slug},
        )
        team = _team_node(data)
        if team is None:
            logger.warning(f"Team {self.org_login}/{slug} not found while listing members")
            return frozenset()

        nodes = (team.get("members") or {}).get("nodes") or []
        return frozenset(node["login"] for node in nodes if node and node.get("login"))


class GitHubRepository:
    """Config, review and check access for one repository of an installation."""

    def __init__(self, client: GitHubClient, installation_id: int, repo_full_name: str):
        self.client = client
        self.installation_id = installation_id
        self.repo_full_name = repo_full_name

    def fetch_config_text(self, path: str) -> Optional[str]:
        return self.client.get_file_contents(self.installation_id, self.repo_full_name, path)

    def list_reviews(self, pr_number: int) -> List[Dict[str, Any]]:
        return self.client.list_pr_reviews(self.installation_id, self.repo_full_name, pr_number)

    def list_commits(self, pr_number: int) -> List[Dict[str, Any]]:
        return self.client.list_pr_commits(self.installation_id, self.repo_full_name, pr_number)

    def request_reviewers(self, pr_number: int, reviewers: List[str]) -> None:
        self.client.request_reviewers(
            self.installation_id, self.repo_full_name, pr_number, reviewers
        )

    def create_check_run(self, check_run: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.create_check_run(
            self.installation_id, self.repo_full_name, check_run
        )
