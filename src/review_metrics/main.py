"""Entry point for the GitHub review metrics tool."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional, Sequence, Tuple

from .analyzer import ReviewMetricsAnalyzer, deduplicate_by_url
from .cli import TEAM_MODES, parse_args
from .config import Config, load_config
from .errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    DataValidationError,
)
from .github_client import GitHubClient
from .models import AnalysisResult, PullRequest, TeamAnalysisResult, wrap_records
from .report import (
    DEFAULT_DIRECT_CSV,
    DEFAULT_TEAM_CSV,
    DEFAULT_TEAM_MEMBER_CSV,
    export_reviewer_csv,
    export_team_csv,
    format_reviewer_report,
    format_team_report,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4

_DEFAULT_CSV_PATHS = {
    "direct": DEFAULT_DIRECT_CSV,
    "team": DEFAULT_TEAM_MEMBER_CSV,
    "overall": DEFAULT_TEAM_CSV,
}


def _fetch_direct(client: GitHubClient, username: str) -> List[PullRequest]:
    print(f"Fetching direct reviews for {username}...")
    return wrap_records(client.fetch_direct_review_prs(username))


def _fetch_team(client: GitHubClient, team_name: str) -> List[PullRequest]:
    print(f"Fetching team review data for {team_name}...")
    return wrap_records(client.fetch_team_tagged_prs(team_name))


def run_direct(client: GitHubClient, config: Config) -> Tuple[str, List[AnalysisResult]]:
    analyzer = ReviewMetricsAnalyzer(team_slug=config.team_slug)
    results = analyzer.analyze_all_direct(
        config.usernames, lambda username: _fetch_direct(client, username)
    )
    return format_reviewer_report(results), results


def run_team(client: GitHubClient, config: Config) -> Tuple[str, List[AnalysisResult]]:
    analyzer = ReviewMetricsAnalyzer(team_slug=config.team_slug)
    prs = _fetch_team(client, config.team_name)
    results = analyzer.analyze_all_team_members(config.usernames, prs)
    return format_reviewer_report(results), results


def run_overall(client: GitHubClient, config: Config) -> Tuple[str, TeamAnalysisResult]:
    """Analyze the team over team-tagged plus every member's direct PRs."""
    analyzer = ReviewMetricsAnalyzer(team_slug=config.team_slug)
    team_prs = _fetch_team(client, config.team_name)
    direct_prs: List[PullRequest] = []
    for username in config.usernames:
        direct_prs.extend(_fetch_direct(client, username))

    unified = deduplicate_by_url(team_prs, direct_prs)
    logger.info(
        "Unified pull request set",
        extra={
            "team_prs": len(team_prs),
            "direct_prs": len(direct_prs),
            "unique_prs": len(unified),
        },
    )
    result = analyzer.analyze_team(config.team_name, config.usernames, unified)
    return format_team_report(result), result


def orchestrate_review_analysis(argv: Optional[Sequence[str]] = None) -> int:
    """Run the full review metrics workflow and map failures to exit codes.

    Exit codes:
        0: success
        1: unexpected error
        2: invalid configuration or pull request data
        3: missing or rejected GitHub credentials
        4: GitHub API failure
    """
    try:
        args = parse_args(argv)
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        config = load_config(
            usernames=args.users,
            team_name=args.team,
            team_slug=args.team_slug,
            bot_exclusions=args.exclude_authors,
            direct_pr_limit=args.direct_pr_limit,
            team_pr_limit=args.team_pr_limit,
            require_team=args.mode in TEAM_MODES,
        )
        client = GitHubClient(config=config)

        if args.mode == "direct":
            report, results = run_direct(client, config)
        elif args.mode == "team":
            report, results = run_team(client, config)
        else:
            report, results = run_overall(client, config)

        print()
        print(report)

        if not args.no_csv:
            csv_path = args.csv_path or _DEFAULT_CSV_PATHS[args.mode]
            if args.mode == "overall":
                export_team_csv(results, csv_path)
            else:
                export_reviewer_csv(results, csv_path)
            print(f"\nResults exported to {csv_path}")

        return EXIT_OK
    except (ConfigurationError, DataValidationError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION
    except ApiError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_API
    except Exception:
        logger.exception("Unexpected failure during review analysis")
        return EXIT_UNEXPECTED


def main(argv: Optional[Sequence[str]] = None) -> int:
    return orchestrate_review_analysis(argv)


if __name__ == "__main__":
    raise SystemExit(main())
