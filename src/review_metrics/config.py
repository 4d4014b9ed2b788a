"""Configuration parsing and validation for the GitHub review metrics tool."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BOT_EXCLUSIONS: Tuple[str, ...] = (
    "github-actions[bot]",
    "shopify-shipitnext[bot]",
    "dependabot[bot]",
)
DEFAULT_DIRECT_PR_LIMIT = 50
DEFAULT_TEAM_PR_LIMIT = 100

_TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the review metrics tool."""

    usernames: Tuple[str, ...]
    team_name: Optional[str]
    team_slug: Optional[str]
    token: str
    bot_exclusions: Tuple[str, ...] = DEFAULT_BOT_EXCLUSIONS
    direct_pr_limit: int = DEFAULT_DIRECT_PR_LIMIT
    team_pr_limit: int = DEFAULT_TEAM_PR_LIMIT


def derive_team_slug(team_name: Optional[str]) -> Optional[str]:
    """Return the slug part of an ``org/slug`` team name."""
    if not team_name:
        return None
    return team_name.strip().split("/")[-1] or None


def load_config(
    usernames: Iterable[str],
    team_name: Optional[str] = None,
    team_slug: Optional[str] = None,
    bot_exclusions: Optional[Iterable[str]] = None,
    direct_pr_limit: int = DEFAULT_DIRECT_PR_LIMIT,
    team_pr_limit: int = DEFAULT_TEAM_PR_LIMIT,
    require_team: bool = False,
) -> Config:
    """Build and validate application configuration.

    Args:
        usernames: GitHub logins to analyze, in report order.
        team_name: Team in ``org/slug`` form used for team-tagged searches.
        team_slug: Slug matched against review requests. Derived from
            ``team_name`` when omitted.
        bot_exclusions: Author logins excluded from team-tagged searches.
        direct_pr_limit: Maximum records fetched per direct-review search.
        team_pr_limit: Maximum records fetched for the team-tagged search.
        require_team: Whether a team name must be present.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If usernames are empty, limits are not positive,
            or a required team is missing.
        AuthenticationError: If no GitHub token is configured.
    """
    stripped_usernames = [name.strip() for name in usernames if name and name.strip()]
    normalized_usernames = tuple(dict.fromkeys(stripped_usernames))
    if len(normalized_usernames) < len(stripped_usernames):
        logger.debug(
            "Dropped duplicate usernames",
            extra={"requested": len(stripped_usernames), "kept": len(normalized_usernames)},
        )
    if not normalized_usernames:
        raise ConfigurationError("At least one GitHub username is required.")

    if direct_pr_limit <= 0 or team_pr_limit <= 0:
        raise ConfigurationError("Invalid PR limit: expected an integer greater than 0.")

    team_name = team_name.strip() if team_name else None
    if require_team and not team_name:
        raise ConfigurationError("A team name in 'org/slug' form is required for this mode.")

    token = ""
    for env_var in _TOKEN_ENV_VARS:
        token = os.getenv(env_var, "").strip()
        if token:
            break
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' environment variable before running the analysis."
        )

    return Config(
        usernames=normalized_usernames,
        team_name=team_name,
        team_slug=team_slug or derive_team_slug(team_name),
        token=token,
        bot_exclusions=(
            tuple(bot_exclusions) if bot_exclusions is not None else DEFAULT_BOT_EXCLUSIONS
        ),
        direct_pr_limit=direct_pr_limit,
        team_pr_limit=team_pr_limit,
    )
