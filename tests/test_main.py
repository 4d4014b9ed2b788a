"""Tests for application orchestration in the main module."""

import sys
from pathlib import Path
from unittest.mock import Mock, patch

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from review_metrics.config import Config
from review_metrics.errors import ApiError, AuthenticationError, DataValidationError
from review_metrics.main import orchestrate_review_analysis


def _config(**overrides) -> Config:
    settings = {
        "usernames": ("alice", "bob"),
        "team_name": "acme/payments",
        "team_slug": "payments",
        "token": "secret",
    }
    settings.update(overrides)
    return Config(**settings)


def _record(number: int, author: str = "author", reviewer: str | None = None) -> dict:
    record = {
        "url": f"https://github.com/acme/app/pull/{number}",
        "state": "MERGED",
        "createdAt": "2024-01-01T09:00:00Z",
        "mergedAt": "2024-01-02T09:00:00Z",
        "author": {"login": author},
        "reviewRequests": {"nodes": [{"requestedReviewer": {"slug": "payments"}}]},
    }
    if reviewer:
        record["reviews"] = {
            "nodes": [
                {
                    "author": {"login": reviewer},
                    "state": "APPROVED",
                    "createdAt": "2024-01-01T11:00:00Z",
                }
            ]
        }
    return record


def test_orchestrate_direct_mode_success(tmp_path, capsys):
    """Verify direct mode fetches per user, prints the report and writes CSV."""
    github_client = Mock()
    github_client.fetch_direct_review_prs.side_effect = lambda username: [
        _record(1, reviewer=username)
    ]
    csv_path = tmp_path / "direct.csv"

    with patch("review_metrics.main.load_config", return_value=_config()) as load_config_mock, patch(
        "review_metrics.main.GitHubClient", return_value=github_client
    ) as client_ctor_mock:
        exit_code = orchestrate_review_analysis(
            ["--user", "alice", "--user", "bob", "--csv", str(csv_path)]
        )

    assert exit_code == 0
    assert load_config_mock.call_args.kwargs["usernames"] == ["alice", "bob"]
    assert load_config_mock.call_args.kwargs["require_team"] is False
    client_ctor_mock.assert_called_once_with(config=_config())
    assert [call.args[0] for call in github_client.fetch_direct_review_prs.call_args_list] == [
        "alice",
        "bob",
    ]
    output = capsys.readouterr().out
    assert output.index("alice:") < output.index("bob:")
    assert "Engagement: 1/1 (100.00%)" in output
    assert csv_path.read_text(encoding="utf-8").startswith("Username,Total PRs")


def test_orchestrate_team_mode_uses_team_tagged_prs(capsys):
    """Verify team mode analyzes members over the team-tagged search."""
    github_client = Mock()
    github_client.fetch_team_tagged_prs.return_value = [_record(1, reviewer="alice")]

    with patch("review_metrics.main.load_config", return_value=_config()), patch(
        "review_metrics.main.GitHubClient", return_value=github_client
    ), patch("review_metrics.main.export_reviewer_csv") as export_mock:
        exit_code = orchestrate_review_analysis(
            ["--mode", "team", "--user", "alice", "--user", "bob", "--team", "acme/payments"]
        )

    assert exit_code == 0
    github_client.fetch_team_tagged_prs.assert_called_once_with("acme/payments")
    github_client.fetch_direct_review_prs.assert_not_called()
    results, path = export_mock.call_args.args
    assert [result.subject_id for result in results] == ["alice", "bob"]
    assert path == "team_review_metrics.csv"
    assert "Review Turnaround: avg 2.0h" in capsys.readouterr().out


def test_orchestrate_overall_mode_unifies_team_and_direct_prs(capsys):
    """Verify overall mode de-duplicates team and direct PRs before analysis."""
    github_client = Mock()
    github_client.fetch_team_tagged_prs.return_value = [_record(1, reviewer="alice")]
    github_client.fetch_direct_review_prs.side_effect = lambda username: [
        _record(1, reviewer="alice"),
        _record(2, reviewer=username),
    ]

    with patch("review_metrics.main.load_config", return_value=_config()), patch(
        "review_metrics.main.GitHubClient", return_value=github_client
    ), patch("review_metrics.main.export_team_csv") as export_mock:
        exit_code = orchestrate_review_analysis(
            ["--mode", "overall", "--user", "alice", "--user", "bob", "--team", "acme/payments"]
        )

    assert exit_code == 0
    result, path = export_mock.call_args.args
    assert result.total_prs == 2
    assert result.reviewed_prs == 2
    assert path == "overall_metrics.csv"
    assert "Unique PRs with reviews: 2" in capsys.readouterr().out


def test_orchestrate_no_csv_skips_export():
    """Verify --no-csv prints only."""
    github_client = Mock()
    github_client.fetch_direct_review_prs.return_value = []

    with patch("review_metrics.main.load_config", return_value=_config(usernames=("alice",))), patch(
        "review_metrics.main.GitHubClient", return_value=github_client
    ), patch("review_metrics.main.export_reviewer_csv") as export_mock:
        exit_code = orchestrate_review_analysis(["--user", "alice", "--no-csv"])

    assert exit_code == 0
    export_mock.assert_not_called()


def test_orchestrate_missing_token_returns_auth_error():
    """Verify authentication failures return the authentication exit code."""
    with patch(
        "review_metrics.main.load_config",
        side_effect=AuthenticationError("Missing required GitHub token."),
    ):
        exit_code = orchestrate_review_analysis(["--user", "alice"])

    assert exit_code == 3


def test_orchestrate_api_error_returns_api_exit_code():
    """Verify GitHub API failures return the API error exit code."""
    github_client = Mock()
    github_client.fetch_direct_review_prs.side_effect = ApiError("boom")

    with patch("review_metrics.main.load_config", return_value=_config()), patch(
        "review_metrics.main.GitHubClient", return_value=github_client
    ):
        exit_code = orchestrate_review_analysis(["--user", "alice", "--no-csv"])

    assert exit_code == 4


def test_orchestrate_invalid_record_returns_configuration_exit_code():
    """Verify malformed PR payloads map to the data validation exit code."""
    github_client = Mock()
    github_client.fetch_direct_review_prs.return_value = [{"state": "OPEN"}]

    with patch("review_metrics.main.load_config", return_value=_config()), patch(
        "review_metrics.main.GitHubClient", return_value=github_client
    ):
        exit_code = orchestrate_review_analysis(["--user", "alice", "--no-csv"])

    assert exit_code == 2


def test_orchestrate_unexpected_error_returns_generic_exit_code():
    """Verify unexpected exceptions are mapped to the generic non-zero exit code."""
    with patch("review_metrics.main.parse_args", side_effect=RuntimeError("boom")):
        exit_code = orchestrate_review_analysis([])

    assert exit_code == 1


def test_data_validation_error_is_a_review_metrics_error():
    """Verify data validation errors share the tool's base exception."""
    from review_metrics.errors import ReviewMetricsError

    assert issubclass(DataValidationError, ReviewMetricsError)
