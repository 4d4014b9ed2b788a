"""Command-line argument parsing for the GitHub review metrics tool."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .config import DEFAULT_BOT_EXCLUSIONS, DEFAULT_DIRECT_PR_LIMIT, DEFAULT_TEAM_PR_LIMIT

MODES = ("direct", "team", "overall")
TEAM_MODES = ("team", "overall")


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for review metrics generation.

    Returns:
        Parsed CLI arguments. ``exclude_author`` falls back to the default bot
        list when not given.
    """
    parser = argparse.ArgumentParser(
        prog="github-review-metrics",
        description=(
            "Compute GitHub code-review engagement and business-hours turnaround "
            "metrics for reviewers and their team."
        ),
    )

    parser.add_argument(
        "--mode",
        choices=MODES,
        default="direct",
        help=(
            "direct: per-reviewer metrics on PRs they were requested on or reviewed; "
            "team: per-reviewer metrics on team-tagged PRs; "
            "overall: team-wide latency and review distribution (default: direct)."
        ),
    )
    parser.add_argument(
        "--user",
        dest="users",
        action="append",
        required=True,
        help="GitHub login to analyze (repeatable, report order is kept, duplicates are ignored).",
    )
    parser.add_argument(
        "--team",
        help="Team in 'org/slug' form. Required for the team and overall modes.",
    )
    parser.add_argument(
        "--team-slug",
        help="Team slug matched against review requests (default: slug part of --team).",
    )
    parser.add_argument(
        "--exclude-author",
        dest="exclude_authors",
        action="append",
        default=None,
        help="Author login excluded from team-tagged searches (repeatable).",
    )
    parser.add_argument(
        "--direct-pr-limit",
        type=_positive_int,
        default=DEFAULT_DIRECT_PR_LIMIT,
        help=f"PRs fetched per direct-review search (default: {DEFAULT_DIRECT_PR_LIMIT}).",
    )
    parser.add_argument(
        "--team-pr-limit",
        type=_positive_int,
        default=DEFAULT_TEAM_PR_LIMIT,
        help=f"PRs fetched for the team-tagged search (default: {DEFAULT_TEAM_PR_LIMIT}).",
    )
    parser.add_argument(
        "--csv",
        dest="csv_path",
        help="CSV output path (default depends on --mode).",
    )
    parser.add_argument(
        "--no-csv",
        action="store_true",
        help="Skip CSV export and only print the report.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity (default: WARNING).",
    )

    args = parser.parse_args(argv)

    if args.mode in TEAM_MODES and not args.team:
        parser.error(f"--team is required for --mode {args.mode}")

    if args.exclude_authors is None:
        args.exclude_authors = list(DEFAULT_BOT_EXCLUSIONS)

    return args
