"""
Team approval consensus evaluation.

Each configured team is judged independently: its threshold is derived from the
team policy and the number of members who did not author a commit on the pull
request, and the team passes when its members' approvals strictly exceed that
threshold. Commit authors are removed from the threshold denominator only; an
approval from a member who also committed still counts.
"""

import logging
from typing import Any, Dict, Iterable, List, Sequence

from .interfaces import TeamDirectory
from ..utils.schema import (
    APPROVED,
    TEAM_RESULTS_TITLE,
    AggregateResult,
    CheckConclusion,
    CommitAuthorSet,
    ReviewState,
    TeamMembership,
    TeamPolicy,
    TeamVerdict,
    VerdictStatus,
)

logger = logging.getLogger(__name__)


def build_review_state(reviews: Iterable[Dict[str, Any]]) -> ReviewState:
    """Map each reviewer to the state of their last review in API order."""
    state: ReviewState = {}
    for review in reviews:
        login = (review.get("user") or {}).get("login")
        if not login:
            continue
        state[login] = str(review.get("state", ""))
    return state


def collect_commit_authors(commits: Iterable[Dict[str, Any]]) -> CommitAuthorSet:
    """Logins of the GitHub accounts linked to the pull request's commits."""
    authors = set()
    for commit in commits:
        # author is null when the commit email is not linked to an account
        login = (commit.get("author") or {}).get("login")
        if login:
            authors.add(login)
    return frozenset(authors)


def resolve_threshold(policy: TeamPolicy, effective_count: int) -> int:
    """Number of approvals a team must strictly exceed."""
    if policy.consensus == "majority":
        return effective_count // 2
    if policy.consensus == "all":
        # Clamped on purpose: a team made up only of commit authors still
        # needs one approval instead of passing with none.
        return max(effective_count - 1, 0)
    return policy.consensus


def evaluate_team(
    policy: TeamPolicy,
    members: TeamMembership,
    reviews: ReviewState,
    commit_authors: CommitAuthorSet,
) -> TeamVerdict:
    effective_count = len(members) - len(members & commit_authors)
    threshold = resolve_threshold(policy, effective_count)
    approvals = sum(1 for member in members if reviews.get(member) == APPROVED)

    if approvals > threshold:
        status = VerdictStatus.SUCCESS
        message = "Consensus reached."
    else:
        status = VerdictStatus.FAILURE
        message = (
            f"Consensus not reached. Requires {threshold + 1} approved reviews. "
            f"{approvals} obtained."
        )

    logger.debug(
        f"Team {policy.slug}: members={len(members)} effective={effective_count} "
        f"threshold={threshold} approvals={approvals} status={status.value}"
    )
    return TeamVerdict(
        slug=policy.slug,
        status=status,
        message=message,
        threshold=threshold,
        approvals=approvals,
        effective_count=effective_count,
    )


def aggregate_verdicts(verdicts: Sequence[TeamVerdict]) -> AggregateResult:
    """Combine team verdicts into one report.

    The first verdict sets the conclusion and a failure is never overturned by
    a later success. With no verdicts at all the conclusion is neutral.
    """
    blocks: List[str] = []
    conclusion = None
    for verdict in verdicts:
        blocks.append(f"**Team:** {verdict.slug}\n**Results:** {verdict.message}\n")
        if conclusion is None or (
            conclusion == CheckConclusion.SUCCESS and not verdict.passed
        ):
            conclusion = CheckConclusion(verdict.status.value)

    return AggregateResult(
        title=TEAM_RESULTS_TITLE,
        message="\n".join(blocks) or "No teams were evaluated.",
        conclusion=conclusion or CheckConclusion.NEUTRAL,
        teams=list(verdicts),
    )


def evaluate_consensus(
    teams: Sequence[TeamPolicy],
    reviews: ReviewState,
    commit_authors: CommitAuthorSet,
    directory: TeamDirectory,
) -> AggregateResult:
    """Evaluate every configured team against the pull request's review state."""
    verdicts = []
    for policy in teams:
        members = directory.members_of(policy.slug)
        verdicts.append(evaluate_team(policy, members, reviews, commit_authors))

    result = aggregate_verdicts(verdicts)
    logger.info(
        f"Evaluated {len(verdicts)} team(s): conclusion={result.conclusion.value}"
    )
    return result
