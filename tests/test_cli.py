"""Tests for command-line argument parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from review_metrics.cli import parse_args
from review_metrics.config import DEFAULT_BOT_EXCLUSIONS


def test_parse_args_defaults_to_direct_mode():
    """Verify direct mode needs only users and keeps their order."""
    args = parse_args(["--user", "carol", "--user", "alice"])

    assert args.mode == "direct"
    assert args.users == ["carol", "alice"]
    assert args.team is None
    assert args.direct_pr_limit == 50
    assert args.team_pr_limit == 100
    assert args.exclude_authors == list(DEFAULT_BOT_EXCLUSIONS)
    assert args.csv_path is None
    assert args.no_csv is False


def test_parse_args_team_mode_with_team(monkeypatch):
    """Verify team options are parsed, reading argv when none is passed."""
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "github-review-metrics",
            "--mode",
            "overall",
            "--user",
            "alice",
            "--team",
            "acme/payments",
            "--team-slug",
            "payments",
            "--exclude-author",
            "renovate[bot]",
            "--team-pr-limit",
            "250",
            "--csv",
            "out.csv",
        ],
    )

    args = parse_args()

    assert args.mode == "overall"
    assert args.team == "acme/payments"
    assert args.team_slug == "payments"
    assert args.exclude_authors == ["renovate[bot]"]
    assert args.team_pr_limit == 250
    assert args.csv_path == "out.csv"


def test_parse_args_team_mode_without_team_fails():
    """Verify team modes exit with an error when --team is missing."""
    with pytest.raises(SystemExit):
        parse_args(["--mode", "team", "--user", "alice"])


def test_parse_args_without_user_fails():
    """Verify at least one --user is required."""
    with pytest.raises(SystemExit):
        parse_args([])


def test_parse_args_with_non_positive_limit_fails_validation():
    """Verify PR limits must be positive integers."""
    with pytest.raises(SystemExit):
        parse_args(["--user", "alice", "--direct-pr-limit", "0"])
    with pytest.raises(SystemExit):
        parse_args(["--user", "alice", "--team-pr-limit", "many"])
