"""Routing of GitHub webhook events to reviewer assignment and consensus checks.

Every handled event loads ``.github/consensus.yml`` first. A configuration
problem is reported as a failing check; otherwise the event either expands
requested teams into reviewers or re-evaluates consensus and publishes the
result as a new check run.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .check_reporter import config_error_report, publish_report
from ..core.assignment import assign_team_reviewers, matching_team_slugs
from ..core.consensus import build_review_state, collect_commit_authors, evaluate_consensus
from ..core.interfaces import CheckPublisher, ConfigStore, ReviewStore, TeamDirectory
from ..utils.config_file import ConfigError, load_consensus_config
from ..utils.schema import TeamPolicy
from ..utils.settings import Settings

logger = logging.getLogger(__name__)

REVIEW_REQUESTED = "pull_request.review_requested"
CONSENSUS_EVENTS = (
    "pull_request.synchronize",
    "pull_request_review.submitted",
    "check_run.rerequested",
)


@dataclass
class EventContext:
    """Payload of one webhook delivery plus the collaborators it may use."""

    payload: Dict[str, Any]
    config_store: ConfigStore
    team_directory: TeamDirectory
    review_store: ReviewStore
    check_publisher: CheckPublisher
    settings: Settings = field(default_factory=Settings)


def _load_teams(context: EventContext) -> Optional[List[TeamPolicy]]:
    """Load the config, publishing a failing check when it is invalid."""
    try:
        return load_consensus_config(
            context.config_store,
            context.team_directory,
            context.settings.config_path,
        )
    except ConfigError as e:
        publish_report(
            context.check_publisher,
            context.payload,
            config_error_report(e),
            context.settings.check_name,
        )
        return None


def pull_request_number(payload: Dict[str, Any]) -> Optional[int]:
    pull_request = payload.get("pull_request")
    if pull_request:
        return pull_request.get("number")
    pull_requests = (payload.get("check_run") or {}).get("pull_requests") or []
    if pull_requests:
        return pull_requests[0].get("number")
    return None


def handle_review_requested(context: EventContext) -> Dict[str, Any]:
    teams = _load_teams(context)
    if teams is None:
        return {"action": "config_error"}

    pull_request = context.payload["pull_request"]
    pr_number = pull_request["number"]
    pr_author = (pull_request.get("user") or {}).get("login", "")
    requested_reviewers = pull_request.get("requested_reviewers") or []

    requested: Dict[str, List[str]] = {}
    already_requested: List[str] = []
    for slug in matching_team_slugs(pull_request.get("requested_teams") or [], teams):
        added = assign_team_reviewers(
            slug,
            pr_number,
            pr_author,
            requested_reviewers,
            context.review_store,
            context.team_directory,
            exclude=already_requested,
        )
        already_requested.extend(added)
        requested[slug] = added

    return {"action": "reviewers_requested", "requested": requested}


def handle_consensus_update(context: EventContext) -> Dict[str, Any]:
    pr_number = pull_request_number(context.payload)
    if pr_number is None:
        logger.info("Event is not associated with a pull request, skipping")
        return {"action": "ignored"}

    teams = _load_teams(context)
    if teams is None:
        return {"action": "config_error"}

    commit_authors = collect_commit_authors(context.review_store.list_commits(pr_number))
    reviews = build_review_state(context.review_store.list_reviews(pr_number))

    result = evaluate_consensus(teams, reviews, commit_authors, context.team_directory)
    publish_report(
        context.check_publisher,
        context.payload,
        result,
        context.settings.check_name,
    )
    return {"action": "consensus_evaluated", "conclusion": result.conclusion.value}


def dispatch_event(event_name: str, context: EventContext) -> Dict[str, Any]:
    """Handle one webhook delivery.

    Args:
        event_name: Value of the ``X-GitHub-Event`` header
        context: Event payload and collaborators

    Returns:
        Summary of what was done

    Raises:
        TransportError: If a GitHub API call fails
    """
    event = f"{event_name}.{context.payload.get('action')}"
    if event == REVIEW_REQUESTED:
        logger.info(f"Handling {event}")
        return handle_review_requested(context)
    if event in CONSENSUS_EVENTS:
        check_run = context.payload.get("check_run")
        if check_run and check_run.get("name") != context.settings.check_name:
            logger.debug(f"Ignoring {event} for check '{check_run.get('name')}'")
            return {"action": "ignored"}
        logger.info(f"Handling {event}")
        return handle_consensus_update(context)

    logger.debug(f"Ignoring {event}")
    return {"action": "ignored"}
