from typing import Any, Dict, List, Optional

import pytest

from pr_consensus.github_app.event_handler import EventContext
from pr_consensus.utils.settings import Settings

QA_MEMBERS = {"technical-lead", "spock", "pholleran", "woz"}
BUILD_MEMBERS = {"spock", "pholleran"}

CONSENSUS_YML = """
teams:
  - slug: qa
    consensus: majority
  - slug: build
    consensus: all
"""


class FakeTeamDirectory:
    def __init__(self, teams: Dict[str, set]):
        self.teams = teams
        self.member_lookups: List[str] = []
        self.slug_lookups: List[str] = []

    def validate_slug(self, slug: str) -> bool:
        self.slug_lookups.append(slug)
        return slug in self.teams

    def members_of(self, slug: str) -> frozenset:
        self.member_lookups.append(slug)
        return frozenset(self.teams.get(slug, ()))


class FakeRepository:
    """Config store, review store and check publisher in one."""

    def __init__(
        self,
        config_text: Optional[str] = CONSENSUS_YML,
        reviews: Optional[List[Dict[str, Any]]] = None,
        commits: Optional[List[Dict[str, Any]]] = None,
    ):
        self.config_text = config_text
        self.reviews = reviews or []
        self.commits = commits or []
        self.review_requests: List[tuple] = []
        self.check_runs: List[Dict[str, Any]] = []

    def fetch_config_text(self, path: str) -> Optional[str]:
        return self.config_text

    def list_reviews(self, pr_number: int) -> List[Dict[str, Any]]:
        return list(self.reviews)

    def list_commits(self, pr_number: int) -> List[Dict[str, Any]]:
        return list(self.commits)

    def request_reviewers(self, pr_number: int, reviewers: List[str]) -> None:
        self.review_requests.append((pr_number, list(reviewers)))

    def create_check_run(self, check_run: Dict[str, Any]) -> Dict[str, Any]:
        self.check_runs.append(check_run)
        return {"id": len(self.check_runs), **check_run}


def review(login: str, state: str = "APPROVED") -> Dict[str, Any]:
    return {"user": {"login": login}, "state": state}


def commit(login: Optional[str]) -> Dict[str, Any]:
    return {"sha": "c0ffee", "author": {"login": login} if login else None}


@pytest.fixture
def team_directory():
    return FakeTeamDirectory({"qa": set(QA_MEMBERS), "build": set(BUILD_MEMBERS)})


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def make_context(team_directory, repository):
    def _make(payload: Dict[str, Any]) -> EventContext:
        return EventContext(
            payload=payload,
            config_store=repository,
            team_directory=team_directory,
            review_store=repository,
            check_publisher=repository,
            settings=Settings(),
        )

    return _make


@pytest.fixture
def pull_request_payload():
    return {
        "action": "synchronize",
        "installation": {"id": 42},
        "organization": {"login": "octo-org"},
        "repository": {
            "name": "spaceship",
            "full_name": "octo-org/spaceship",
            "owner": {"login": "octo-org"},
        },
        "pull_request": {
            "number": 7,
            "head": {"sha": "abc123def456"},
            "user": {"login": "pholleran"},
            "requested_reviewers": [],
            "requested_teams": [],
        },
    }
