from enum import Enum
from typing import Dict, FrozenSet, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

APPROVED = "APPROVED"

CONFIG_ERROR_TITLE = "Configuration Error"
TEAM_RESULTS_TITLE = "Team results"

# login -> state of that reviewer's most recent review
ReviewState = Dict[str, str]
# logins that authored at least one commit on the pull request
CommitAuthorSet = FrozenSet[str]
# logins belonging to a team
TeamMembership = FrozenSet[str]


class CheckConclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"


class VerdictStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class FailureCode(str, Enum):
    TEAMS_MISSING = "teams_missing"
    MISSING_SLUG = "missing_slug"
    MISSING_CONSENSUS = "missing_consensus"
    INVALID_CONSENSUS = "invalid_consensus"
    UNKNOWN_TEAM = "unknown_team"


class TeamPolicy(BaseModel):
    """A configured team and the approval rule it must satisfy."""

    model_config = ConfigDict(frozen=True)

    slug: str
    consensus: Union[Literal["all", "majority"], int]

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Team slug cannot be empty")
        return v

    @field_validator("consensus")
    @classmethod
    def validate_consensus(cls, v):
        if isinstance(v, int) and v < 0:
            raise ValueError("Consensus must be a non-negative integer, 'all' or 'majority'")
        return v


class ValidationFailure(BaseModel):
    """A single problem found in the consensus configuration."""

    model_config = ConfigDict(frozen=True)

    code: FailureCode
    message: str


class TeamVerdict(BaseModel):
    slug: str
    status: VerdictStatus
    message: str
    threshold: int
    approvals: int
    effective_count: int

    @property
    def passed(self) -> bool:
        return self.status == VerdictStatus.SUCCESS


class AggregateResult(BaseModel):
    """Outcome of one evaluation, rendered into a single check run."""

    title: str
    message: str
    conclusion: CheckConclusion
    teams: List[TeamVerdict] = Field(default_factory=list)
