"""Check run formatting and publishing."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..core.interfaces import CheckPublisher
from ..utils.config_file import ConfigError
from ..utils.schema import CONFIG_ERROR_TITLE, AggregateResult, CheckConclusion
from ..utils.settings import DEFAULT_CHECK_NAME

logger = logging.getLogger(__name__)

# GitHub rejects check run summaries longer than this
MAX_SUMMARY_LENGTH = 65535
TRUNCATION_NOTICE = "\n\n*Output truncated.*"


def resolve_head_sha(payload: Dict[str, Any]) -> Optional[str]:
    """Commit SHA the check belongs to.

    A check run payload takes precedence over the pull request one.
    """
    check_run = payload.get("check_run")
    if check_run and check_run.get("head_sha"):
        return check_run["head_sha"]
    pull_request = payload.get("pull_request")
    if pull_request:
        return (pull_request.get("head") or {}).get("sha")
    return None


def config_error_report(error: ConfigError) -> AggregateResult:
    return AggregateResult(
        title=CONFIG_ERROR_TITLE,
        message=error.message,
        conclusion=CheckConclusion.FAILURE,
    )


def _truncate(summary: str) -> str:
    if len(summary) <= MAX_SUMMARY_LENGTH:
        return summary
    return summary[: MAX_SUMMARY_LENGTH - len(TRUNCATION_NOTICE)] + TRUNCATION_NOTICE


def build_check_run(
    report: AggregateResult,
    head_sha: str,
    name: str = DEFAULT_CHECK_NAME,
    completed_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the body of a completed check run.

    Args:
        report: Evaluation result or configuration error report
        head_sha: Commit the check is attached to
        name: Check run name
        completed_at: Completion time, defaults to now

    Returns:
        Request body for the check run creation endpoint
    """
    completed_at = completed_at or datetime.now(timezone.utc)
    return {
        "name": name,
        "head_sha": head_sha,
        "status": "completed",
        "conclusion": report.conclusion.value,
        "completed_at": completed_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "output": {
            "title": report.title,
            "summary": _truncate(report.message),
        },
    }


def publish_report(
    publisher: CheckPublisher,
    payload: Dict[str, Any],
    report: AggregateResult,
    name: str = DEFAULT_CHECK_NAME,
) -> Optional[Dict[str, Any]]:
    """Create one new check run for the event's head commit.

    Returns:
        The created check run, or None when the event names no commit
    """
    head_sha = resolve_head_sha(payload)
    if not head_sha:
        logger.warning(f"No head SHA in event payload, dropping check '{report.title}'")
        return None

    check_run = build_check_run(report, head_sha, name)
    created = publisher.create_check_run(check_run)
    logger.info(
        f"Published check '{name}' on {head_sha[:7]}: "
        f"{report.title} ({report.conclusion.value})"
    )
    return created
