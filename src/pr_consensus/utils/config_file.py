"""
Loading and validation of the repository's consensus configuration.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

import yaml

from pr_consensus.utils.schema import FailureCode, TeamPolicy, ValidationFailure

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".github/consensus.yml"

CONSENSUS_KEYWORDS = ("all", "majority")


class ConfigError(Exception):
    """The consensus configuration is missing or invalid."""

    def __init__(self, failures: Sequence[ValidationFailure]):
        self.failures = list(failures)
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return "\n".join(failure.message for failure in self.failures)


def _is_valid_consensus(value: Any) -> bool:
    # bool is an int subclass; `consensus: true` is not a threshold
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    # YAML `2.0` is a float but still a whole threshold
    if isinstance(value, float):
        return value.is_integer() and value >= 0
    return value in CONSENSUS_KEYWORDS


def parse_config_text(text: Optional[str], path: str = DEFAULT_CONFIG_PATH) -> Any:
    """Parse the raw YAML document.

    Raises:
        ConfigError: If the file is missing or is not valid YAML
    """
    if text is None:
        logger.warning(f"Consensus config not found at {path}")
        raise ConfigError([_teams_missing(path)])
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.warning(f"Invalid YAML in {path}: {e}")
        raise ConfigError([_teams_missing(path, detail=f"`{path}` is not valid YAML.")])


def _teams_missing(path: str, detail: str = "") -> ValidationFailure:
    message = f"The entry for `teams` in `{path}` is missing or improperly formatted."
    if detail:
        message = f"{message} {detail}"
    return ValidationFailure(code=FailureCode.TEAMS_MISSING, message=message)


def validate_consensus_config(
    config: Any,
    directory=None,
    path: str = DEFAULT_CONFIG_PATH,
) -> List[TeamPolicy]:
    """
    Validate a parsed config document and build the team policies.

    Every problem is collected, in document order, before failing. When
    ``directory`` is None the team existence lookup is skipped.

    Raises:
        ConfigError: With all validation failures if any entry is invalid
    """
    teams = config.get("teams") if isinstance(config, dict) else None
    if not isinstance(teams, list) or not teams:
        raise ConfigError([_teams_missing(path)])

    if directory is None:
        logger.info("Team directory unavailable, skipping team slug validation")

    failures: List[ValidationFailure] = []
    policies: List[TeamPolicy] = []
    for entry in teams:
        if not isinstance(entry, dict):
            entry = {}
        slug = entry.get("slug")
        if slug is not None:
            slug = str(slug).strip() or None
        consensus = entry.get("consensus")
        entry_ok = True

        if slug is None:
            entry_ok = False
            failures.append(
                ValidationFailure(
                    code=FailureCode.MISSING_SLUG,
                    message=f"One or more entries for `teams` in `{path}` is missing a slug.",
                )
            )

        if consensus is None:
            entry_ok = False
            failures.append(
                ValidationFailure(
                    code=FailureCode.MISSING_CONSENSUS,
                    message=f"The team with slug `{slug}` in `{path}` is missing a consensus.",
                )
            )
        elif not _is_valid_consensus(consensus):
            entry_ok = False
            failures.append(
                ValidationFailure(
                    code=FailureCode.INVALID_CONSENSUS,
                    message=f"The team with slug `{slug}` in `{path}` has an invalid consensus.",
                )
            )

        if slug is not None and directory is not None:
            if not directory.validate_slug(slug):
                entry_ok = False
                failures.append(
                    ValidationFailure(
                        code=FailureCode.UNKNOWN_TEAM,
                        message=f"The slug `{slug}` in `{path}` is not a slug of a valid team.",
                    )
                )

        if entry_ok:
            if isinstance(consensus, float):
                consensus = int(consensus)
            policies.append(TeamPolicy(slug=slug, consensus=consensus))

    if failures:
        logger.warning(f"Consensus config {path} has {len(failures)} problem(s)")
        raise ConfigError(failures)

    logger.info(
        f"Loaded {len(policies)} consensus team(s) from {path}: "
        f"{', '.join(p.slug for p in policies)}"
    )
    return policies


def load_consensus_config(store, directory, path: str = DEFAULT_CONFIG_PATH) -> List[TeamPolicy]:
    """Fetch, parse and validate the consensus config of a repository.

    Args:
        store: ConfigStore used to read the file
        directory: TeamDirectory used to check that slugs exist
        path: Repository path of the config file

    Returns:
        Validated team policies in document order

    Raises:
        ConfigError: If the config is missing or invalid
    """
    text = store.fetch_config_text(path)
    return validate_consensus_config(parse_config_text(text, path), directory, path)


def load_local_config(config_path: Path) -> List[TeamPolicy]:
    """Validate a consensus config on disk without contacting GitHub."""
    text = config_path.read_text(encoding="utf-8") if config_path.is_file() else None
    display = str(config_path)
    return validate_consensus_config(parse_config_text(text, display), None, display)
