"""Consensus evaluation and reviewer assignment."""

from .assignment import assign_team_reviewers, matching_team_slugs
from .consensus import aggregate_verdicts, evaluate_consensus, evaluate_team, resolve_threshold

__all__ = [
    "aggregate_verdicts",
    "assign_team_reviewers",
    "evaluate_consensus",
    "evaluate_team",
    "matching_team_slugs",
    "resolve_threshold",
]
