"""Console reports and CSV export for review metrics results."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List, Sequence, Union

from .models import AnalysisResult, TeamAnalysisResult, TimingStats

logger = logging.getLogger(__name__)

DEFAULT_DIRECT_CSV = "direct_review_metrics.csv"
DEFAULT_TEAM_MEMBER_CSV = "team_review_metrics.csv"
DEFAULT_TEAM_CSV = "overall_metrics.csv"

PathLike = Union[str, Path]

_TIMING_LABELS = {
    "review_turnaround": "Review Turnaround",
    "approval_turnaround": "Approval Turnaround",
    "time_to_merge": "Time to Merge",
}


def format_hours(value: float) -> str:
    return f"{value}h"


def format_rate(value: float) -> str:
    return f"{value:.2f}%"


def _timing_line(label: str, stats: TimingStats) -> str:
    return f"{label}: avg {format_hours(stats.average)}, p90 {format_hours(stats.p90)}"


def _reviewer_block(result: AnalysisResult) -> List[str]:
    lines = [
        f"{result.subject_id}:",
        f"Total PRs: {result.total_prs}",
        (
            f"Engagement: {result.engagement.count}/{result.total_prs} "
            f"({format_rate(result.engagement.rate)})"
        ),
        (
            f"Approvals: {result.approvals.count} of merged PRs "
            f"({format_rate(result.approvals.rate)})"
        ),
    ]
    for name, stats in result.timing.items():
        lines.append(_timing_line(_TIMING_LABELS.get(name, name), stats))
    return lines


def format_reviewer_report(results: Sequence[AnalysisResult]) -> str:
    """Render per-reviewer results as a human-readable report, in result order."""
    blocks = ["\n".join(_reviewer_block(result)) for result in results]
    return "\n\n".join(blocks)


def format_team_report(result: TeamAnalysisResult) -> str:
    """Render team-wide results as a human-readable report."""
    distribution = result.review_distribution
    lines = [
        f"Overall Team Metrics: {result.subject_id}",
        f"Unique PRs analyzed: {result.total_prs}",
        f"Unique PRs with reviews: {result.reviewed_prs}",
        "",
        "Timing Metrics:",
        _timing_line("First Review", result.timing["first_review"]),
        _timing_line("Second Review", result.timing["second_review"]),
        _timing_line("Time to Merge", result.timing["merge"]),
        "",
        "Review Distribution:",
        (
            f"1 review: {distribution.one_review.count} PRs "
            f"({format_rate(distribution.one_review.percentage)})"
        ),
        (
            f"2 reviews: {distribution.two_reviews.count} PRs "
            f"({format_rate(distribution.two_reviews.percentage)})"
        ),
        (
            f"3+ reviews: {distribution.more_than_two.count} PRs "
            f"({format_rate(distribution.more_than_two.percentage)})"
        ),
    ]
    return "\n".join(lines)


def _reviewer_header(timing_names: Sequence[str]) -> List[str]:
    header = [
        "Username",
        "Total PRs",
        "Engaged PRs",
        "Engagement Rate",
        "Approved PRs",
        "Approval Rate",
    ]
    for name in timing_names:
        label = _TIMING_LABELS.get(name, name)
        header.extend([f"Avg {label}", f"P90 {label}"])
    return header


def export_reviewer_csv(results: Sequence[AnalysisResult], path: PathLike) -> Path:
    """Write per-reviewer results to ``path``, one row per reviewer.

    Timing columns follow the metrics of the first result; every result of one
    analysis carries the same metric names.
    """
    output_path = Path(path)
    timing_names = list(results[0].timing) if results else []

    with output_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(_reviewer_header(timing_names))
        for result in results:
            row = [
                result.subject_id,
                result.total_prs,
                result.engagement.count,
                format_rate(result.engagement.rate),
                result.approvals.count,
                format_rate(result.approvals.rate),
            ]
            for name in timing_names:
                stats = result.timing[name]
                row.extend([stats.average, stats.p90])
            writer.writerow(row)

    logger.info("Exported reviewer metrics", extra={"path": str(output_path), "rows": len(results)})
    return output_path


def export_team_csv(result: TeamAnalysisResult, path: PathLike) -> Path:
    """Write team-wide results to ``path`` as metric/value rows."""
    output_path = Path(path)
    timing = result.timing
    distribution = result.review_distribution

    rows = [
        ["Metric", "Value"],
        ["Unique PRs analyzed", result.total_prs],
        ["Unique PRs with reviews", result.reviewed_prs],
        ["Average time to first review", format_hours(timing["first_review"].average)],
        ["P90 time to first review", format_hours(timing["first_review"].p90)],
        ["Average time to second review", format_hours(timing["second_review"].average)],
        ["P90 time to second review", format_hours(timing["second_review"].p90)],
        ["Average time to merge", format_hours(timing["merge"].average)],
        ["P90 time to merge", format_hours(timing["merge"].p90)],
        [
            "PRs with 1 review",
            f"{distribution.one_review.count} ({format_rate(distribution.one_review.percentage)})",
        ],
        [
            "PRs with 2 reviews",
            f"{distribution.two_reviews.count} ({format_rate(distribution.two_reviews.percentage)})",
        ],
        [
            "PRs with 3+ reviews",
            f"{distribution.more_than_two.count} "
            f"({format_rate(distribution.more_than_two.percentage)})",
        ],
    ]

    with output_path.open("w", newline="", encoding="utf-8") as handle:
        csv.writer(handle).writerows(rows)

    logger.info("Exported team metrics", extra={"path": str(output_path)})
    return output_path
