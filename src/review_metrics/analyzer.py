"""Review metrics aggregation over pull request views.

Three analyses are supported:
- Direct review: a reviewer's engagement, approvals and turnaround on pull
  requests where they were asked for a review or left one.
- Team member: the same per-reviewer view over pull requests tagged for a team,
  anchored on the team review request.
- Team-wide: first/second review latency, time to merge and review-count
  distribution over the union of team-tagged and direct pull requests.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .business_hours import business_hours_between
from .models import (
    AnalysisResult,
    DistributionBucket,
    PullRequest,
    RateStats,
    ReviewDistribution,
    TeamAnalysisResult,
    TimingStats,
)
from .stats import percentage, summarize_timing

logger = logging.getLogger(__name__)

RequestAnchor = Callable[[PullRequest], Optional[datetime]]


def deduplicate_by_url(*pr_groups: Iterable[PullRequest]) -> List[PullRequest]:
    """Merge pull request groups, keeping the first occurrence of each URL."""
    unique: Dict[str, PullRequest] = {}
    for group in pr_groups:
        for pr in group:
            unique.setdefault(pr.url, pr)
    return list(unique.values())


def _collect_samples(
    prs: Iterable[PullRequest],
    anchor: RequestAnchor,
    target: Callable[[PullRequest], Optional[datetime]],
) -> List[float]:
    """Business-hours samples for PRs where both anchor and target exist."""
    samples: List[float] = []
    for pr in prs:
        elapsed = business_hours_between(anchor(pr), target(pr))
        if elapsed is None:
            logger.debug("Skipping timing sample without both endpoints", extra={"pr_url": pr.url})
            continue
        samples.append(elapsed)
    return samples


class ReviewMetricsAnalyzer:
    """Computes per-reviewer and team-wide review metrics.

    Args:
        team_slug: Slug of the team whose review requests anchor team timings.
    """

    def __init__(self, team_slug: Optional[str] = None) -> None:
        self._team_slug = team_slug

    def _team_request_anchor(self, pr: PullRequest) -> Optional[datetime]:
        return pr.team_review_requested_at(self._team_slug)

    def _team_request_anchor_or_created(self, pr: PullRequest) -> datetime:
        return pr.team_review_requested_at(self._team_slug) or pr.created_at

    def _rates(
        self, username: str, prs: Sequence[PullRequest]
    ) -> Tuple[List[PullRequest], List[PullRequest], RateStats, RateStats]:
        relevant = [pr for pr in prs if pr.author_login != username]
        merged = [pr for pr in relevant if pr.merged]

        engaged = [pr for pr in relevant if pr.engaged_by(username)]
        approved = [pr for pr in merged if pr.approved_by(username)]

        engagement = RateStats(count=len(engaged), rate=percentage(len(engaged), len(relevant)))
        approvals = RateStats(count=len(approved), rate=percentage(len(approved), len(merged)))
        return relevant, merged, engagement, approvals

    def analyze_direct_reviews(
        self, username: str, prs: Sequence[PullRequest]
    ) -> AnalysisResult:
        """Analyze a reviewer over PRs where they were requested or reviewed.

        Turnarounds are measured from the reviewer's own review request event;
        PRs without one contribute no timing samples.
        """
        relevant, merged, engagement, approvals = self._rates(username, prs)

        def requested(pr: PullRequest) -> Optional[datetime]:
            return pr.review_requested_at(username)

        timing = {
            "review_turnaround": summarize_timing(
                _collect_samples(
                    (pr for pr in relevant if pr.engaged_by(username)),
                    requested,
                    lambda pr: pr.first_engagement_at(username),
                )
            ),
            "approval_turnaround": summarize_timing(
                _collect_samples(
                    (pr for pr in merged if pr.approved_by(username)),
                    requested,
                    lambda pr: pr.first_approval_at(username),
                )
            ),
            "time_to_merge": summarize_timing(
                _collect_samples(
                    (pr for pr in merged if pr.engaged_by(username)),
                    requested,
                    lambda pr: pr.merged_at,
                )
            ),
        }

        logger.info(
            "Analyzed direct reviews",
            extra={
                "username": username,
                "prs_total": len(relevant),
                "prs_merged": len(merged),
                "engaged": engagement.count,
                "approved": approvals.count,
            },
        )

        return AnalysisResult(
            subject_id=username,
            total_prs=len(relevant),
            engagement=engagement,
            approvals=approvals,
            timing=timing,
        )

    def analyze_team_member(
        self, username: str, prs: Sequence[PullRequest]
    ) -> AnalysisResult:
        """Analyze a reviewer over PRs tagged for the team.

        Turnarounds are measured from the team review request; PRs without one
        contribute no timing samples.
        """
        relevant, merged, engagement, approvals = self._rates(username, prs)

        timing = {
            "review_turnaround": summarize_timing(
                _collect_samples(
                    (pr for pr in relevant if pr.engaged_by(username)),
                    self._team_request_anchor,
                    lambda pr: pr.first_engagement_at(username),
                )
            ),
            "time_to_merge": summarize_timing(
                _collect_samples(
                    (pr for pr in merged if pr.engaged_by(username)),
                    self._team_request_anchor,
                    lambda pr: pr.merged_at,
                )
            ),
        }

        logger.info(
            "Analyzed team member reviews",
            extra={
                "username": username,
                "team_slug": self._team_slug,
                "prs_total": len(relevant),
                "engaged": engagement.count,
            },
        )

        return AnalysisResult(
            subject_id=username,
            total_prs=len(relevant),
            engagement=engagement,
            approvals=approvals,
            timing=timing,
        )

    def analyze_all_direct(
        self,
        usernames: Sequence[str],
        fetch_prs: Callable[[str], Sequence[PullRequest]],
    ) -> List[AnalysisResult]:
        """Run the direct-review analysis for each username, in input order."""
        return [self.analyze_direct_reviews(username, fetch_prs(username)) for username in usernames]

    def analyze_all_team_members(
        self, usernames: Sequence[str], prs: Sequence[PullRequest]
    ) -> List[AnalysisResult]:
        """Run the team-member analysis for each username, in input order."""
        return [self.analyze_team_member(username, prs) for username in usernames]

    def analyze_team(
        self,
        team_name: str,
        members: Sequence[str],
        prs: Sequence[PullRequest],
    ) -> TeamAnalysisResult:
        """Analyze team-wide review latency over a de-duplicated PR set.

        A PR is team-reviewed when any member engaged with it. The first and
        second reviews are the earliest and second-earliest member engagements.
        """
        unified = deduplicate_by_url(prs)
        reviewed = [pr for pr in unified if self._has_team_review(pr, members)]
        merged_reviewed = [pr for pr in reviewed if pr.merged]

        timing: Dict[str, TimingStats] = {
            "first_review": summarize_timing(
                _collect_samples(
                    reviewed,
                    self._team_request_anchor_or_created,
                    lambda pr: self._nth_review_time(pr, members, 0),
                )
            ),
            "second_review": summarize_timing(
                _collect_samples(
                    reviewed,
                    self._team_request_anchor_or_created,
                    lambda pr: self._nth_review_time(pr, members, 1),
                )
            ),
            "merge": summarize_timing(
                _collect_samples(
                    merged_reviewed,
                    self._team_request_anchor_or_created,
                    lambda pr: pr.merged_at,
                )
            ),
        }

        logger.info(
            "Analyzed team reviews",
            extra={
                "team": team_name,
                "prs_total": len(unified),
                "prs_reviewed": len(reviewed),
                "first_review_samples": timing["first_review"].count,
                "second_review_samples": timing["second_review"].count,
                "merge_samples": timing["merge"].count,
            },
        )

        return TeamAnalysisResult(
            subject_id=team_name,
            total_prs=len(unified),
            reviewed_prs=len(reviewed),
            timing=timing,
            review_distribution=self.review_distribution(merged_reviewed, members),
        )

    @staticmethod
    def _has_team_review(pr: PullRequest, members: Sequence[str]) -> bool:
        return any(pr.engaged_by(member) for member in members)

    @staticmethod
    def _nth_review_time(
        pr: PullRequest, members: Sequence[str], position: int
    ) -> Optional[datetime]:
        review_times = sorted(
            moment
            for moment in (
                pr.first_engagement_at(member)
                for member in dict.fromkeys(members)
                if pr.engaged_by(member)
            )
            if moment is not None
        )
        if len(review_times) <= position:
            return None
        return review_times[position]

    @staticmethod
    def review_distribution(
        prs: Sequence[PullRequest], members: Sequence[str]
    ) -> ReviewDistribution:
        """Bucket PRs by the number of distinct members engaged on each."""
        distinct_members = list(dict.fromkeys(members))
        review_counts: List[int] = []
        for pr in prs:
            reviewer_count = sum(1 for member in distinct_members if pr.engaged_by(member))
            logger.debug(
                "Counted team reviewers",
                extra={"pr_url": pr.url, "reviewer_count": reviewer_count},
            )
            review_counts.append(reviewer_count)

        total = len(prs)
        one = review_counts.count(1)
        two = review_counts.count(2)
        more = sum(1 for count in review_counts if count > 2)

        return ReviewDistribution(
            one_review=DistributionBucket(count=one, percentage=percentage(one, total)),
            two_reviews=DistributionBucket(count=two, percentage=percentage(two, total)),
            more_than_two=DistributionBucket(count=more, percentage=percentage(more, total)),
        )
