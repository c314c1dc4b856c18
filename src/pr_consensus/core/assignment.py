"""Expand requested consensus teams into individual reviewer requests."""

import logging
from typing import Any, Dict, Iterable, List, Sequence

from .interfaces import ReviewStore, TeamDirectory
from ..utils.schema import TeamPolicy

logger = logging.getLogger(__name__)


def matching_team_slugs(
    requested_teams: Iterable[Dict[str, Any]],
    policies: Sequence[TeamPolicy],
) -> List[str]:
    """Slugs of requested teams that are also configured consensus teams.

    Args:
        requested_teams: ``requested_teams`` entries of a pull request payload
        policies: Validated team policies

    Returns:
        Matching slugs in request order
    """
    configured = {policy.slug for policy in policies}
    matches = []
    for team in requested_teams:
        slug = team.get("slug")
        if slug in configured and slug not in matches:
            matches.append(slug)
    return matches


def assign_team_reviewers(
    slug: str,
    pr_number: int,
    pr_author: str,
    requested_reviewers: Iterable[Dict[str, Any]],
    review_store: ReviewStore,
    directory: TeamDirectory,
    exclude: Iterable[str] = (),
) -> List[str]:
    """Request a review from every member of a team who is not yet involved.

    Members who are already requested, who have already reviewed, who appear in
    ``exclude``, or who authored the pull request are skipped. All remaining
    members are requested in a single call; nothing is sent when none remain.

    Returns:
        Logins that were requested, sorted
    """
    excluded = set(exclude)
    excluded.update(
        reviewer["login"] for reviewer in requested_reviewers if reviewer.get("login")
    )
    for review in review_store.list_reviews(pr_number):
        login = (review.get("user") or {}).get("login")
        if login:
            excluded.add(login)

    members = directory.members_of(slug)
    new_reviewers = sorted(
        member for member in members if member not in excluded and member != pr_author
    )

    if not new_reviewers:
        logger.info(f"Team {slug}: no new reviewers to request on PR #{pr_number}")
        return []

    review_store.request_reviewers(pr_number, new_reviewers)
    logger.info(
        f"Team {slug}: requested {len(new_reviewers)} reviewer(s) on PR #{pr_number}: "
        f"{', '.join(new_reviewers)}"
    )
    return new_reviewers
