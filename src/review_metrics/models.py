"""Domain models for GitHub pull request review analytics.

``PullRequest`` is a read-only view over one raw GraphQL search record. Nested
collections that GitHub omits or returns as ``null`` are coerced to empty tuples
once, in the constructor, so every query below works on plain records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import DataValidationError

MERGED_STATE = "MERGED"
APPROVED_STATE = "APPROVED"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps, keeping the zone the string carries."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _nodes(container: Any) -> List[Mapping[str, Any]]:
    """Return ``container["nodes"]`` as a list of mappings, treating gaps as empty."""
    if not isinstance(container, Mapping):
        return []
    return [node for node in container.get("nodes") or [] if isinstance(node, Mapping)]


def _login(node: Mapping[str, Any], key: str = "author") -> Optional[str]:
    actor = node.get(key)
    if not isinstance(actor, Mapping):
        return None
    return actor.get("login")


@dataclass(frozen=True, slots=True)
class Review:
    """A submitted review on a pull request."""

    author: Optional[str]
    state: Optional[str]
    created_at: Optional[datetime]

    @property
    def is_approval(self) -> bool:
        return self.state == APPROVED_STATE


@dataclass(frozen=True, slots=True)
class Comment:
    """A top-level or review-thread comment."""

    author: Optional[str]
    created_at: Optional[datetime]


@dataclass(frozen=True, slots=True)
class ReviewRequestEvent:
    """A timeline event requesting a review from an individual user."""

    reviewer: Optional[str]
    created_at: Optional[datetime]


class PullRequest:
    """Read-only projection over one raw pull request record."""

    def __init__(self, data: Mapping[str, Any]) -> None:
        url = data.get("url")
        created_at = parse_timestamp(data.get("createdAt"))
        if not url or created_at is None:
            raise DataValidationError(
                "GitHub pull request payload is missing required fields: "
                f"url={url!r}, number={data.get('number')!r}"
            )

        self._data = data
        self._url = str(url)
        self._created_at = created_at
        self._merged_at = parse_timestamp(data.get("mergedAt"))

        self._reviews: Tuple[Review, ...] = tuple(
            Review(
                author=_login(node),
                state=node.get("state"),
                created_at=parse_timestamp(node.get("createdAt")),
            )
            for node in _nodes(data.get("reviews"))
        )
        self._comments: Tuple[Comment, ...] = tuple(
            Comment(author=_login(node), created_at=parse_timestamp(node.get("createdAt")))
            for node in _nodes(data.get("comments"))
        )
        self._threads: Tuple[Tuple[Comment, ...], ...] = tuple(
            tuple(
                Comment(author=_login(node), created_at=parse_timestamp(node.get("createdAt")))
                for node in _nodes(thread.get("comments"))
            )
            for thread in _nodes(data.get("reviewThreads"))
        )
        self._review_request_events: Tuple[ReviewRequestEvent, ...] = tuple(
            ReviewRequestEvent(
                reviewer=_login(node, "requestedReviewer"),
                created_at=parse_timestamp(node.get("createdAt")),
            )
            for node in _nodes(data.get("timelineItems"))
        )
        self._requested_team_slugs: Tuple[str, ...] = tuple(
            (node.get("requestedReviewer") or {}).get("slug")
            for node in _nodes(data.get("reviewRequests"))
            if (node.get("requestedReviewer") or {}).get("slug")
        )

    def __repr__(self) -> str:
        return f"PullRequest(url={self._url!r}, state={self.state!r})"

    @property
    def data(self) -> Mapping[str, Any]:
        return self._data

    @property
    def url(self) -> str:
        return self._url

    @property
    def number(self) -> Optional[int]:
        return self._data.get("number")

    @property
    def state(self) -> Optional[str]:
        return self._data.get("state")

    @property
    def author_login(self) -> Optional[str]:
        return _login(self._data)

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def merged(self) -> bool:
        return self.state == MERGED_STATE

    @property
    def merged_at(self) -> Optional[datetime]:
        """Merge instant for merged pull requests, ``None`` otherwise."""
        return self._merged_at if self.merged else None

    @property
    def reviews(self) -> Tuple[Review, ...]:
        return self._reviews

    @property
    def comments(self) -> Tuple[Comment, ...]:
        return self._comments

    @property
    def thread_comments(self) -> Tuple[Comment, ...]:
        return tuple(comment for thread in self._threads for comment in thread)

    def _has_review_by(self, username: str) -> bool:
        return any(review.author == username for review in self._reviews)

    def _has_comment_by(self, username: str) -> bool:
        return any(comment.author == username for comment in self._comments)

    def _has_thread_comment_by(self, username: str) -> bool:
        return any(
            comment.author == username for thread in self._threads for comment in thread
        )

    def engaged_by(self, username: str) -> bool:
        """Whether ``username`` reviewed or commented on someone else's pull request."""
        if self.author_login == username:
            return False
        return (
            self._has_review_by(username)
            or self._has_comment_by(username)
            or self._has_thread_comment_by(username)
        )

    def approved_by(self, username: str) -> bool:
        return any(
            review.author == username and review.is_approval for review in self._reviews
        )

    def engagement_types(self, username: str) -> List[str]:
        """Describe how ``username`` engaged, e.g. ``["Review", "Approval"]``."""
        types: List[str] = []
        if self._has_review_by(username):
            types.append("Review")
        if self._has_comment_by(username):
            types.append("Comment")
        if self._has_thread_comment_by(username):
            types.append("Thread Comment")
        if self.approved_by(username):
            types.append("Approval")
        return types

    def review_requested_at(self, username: str) -> Optional[datetime]:
        """Earliest timeline instant at which a review was requested from ``username``."""
        times = [
            event.created_at
            for event in self._review_request_events
            if event.reviewer == username and event.created_at is not None
        ]
        return min(times) if times else None

    def team_review_requested_at(self, team_slug: Optional[str]) -> Optional[datetime]:
        """Creation instant of the pull request when ``team_slug`` was asked to review.

        Open review requests do not carry their own timestamp in the search
        payload, so the pull request creation time stands in for it.
        """
        if team_slug and team_slug in self._requested_team_slugs:
            return self._created_at
        return None

    def first_engagement_at(self, username: str) -> Optional[datetime]:
        times = [
            item.created_at
            for item in (*self._reviews, *self._comments, *self.thread_comments)
            if item.author == username and item.created_at is not None
        ]
        return min(times) if times else None

    def first_approval_at(self, username: str) -> Optional[datetime]:
        times = [
            review.created_at
            for review in self._reviews
            if review.author == username and review.is_approval and review.created_at is not None
        ]
        return min(times) if times else None


@dataclass(frozen=True, slots=True)
class TimingStats:
    """Average and P90 of one business-hours timing metric."""

    average: float
    p90: float
    count: int = 0

    def to_dict(self) -> Dict[str, float]:
        return {"average": self.average, "p90": self.p90}


@dataclass(frozen=True, slots=True)
class RateStats:
    """A count together with its percentage of some denominator."""

    count: int
    rate: float

    def to_dict(self) -> Dict[str, float]:
        return {"count": self.count, "rate": self.rate}


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Engagement, approval and timing metrics for one reviewer."""

    subject_id: str
    total_prs: int
    engagement: RateStats
    approvals: RateStats
    timing: Mapping[str, TimingStats] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "total_prs": self.total_prs,
            "engagement": self.engagement.to_dict(),
            "approvals": self.approvals.to_dict(),
            "timing": {name: stats.to_dict() for name, stats in self.timing.items()},
        }


@dataclass(frozen=True, slots=True)
class DistributionBucket:
    """Number of pull requests in a review-count bucket and their share."""

    count: int
    percentage: float

    def to_dict(self) -> Dict[str, float]:
        return {"count": self.count, "percentage": self.percentage}


@dataclass(frozen=True, slots=True)
class ReviewDistribution:
    """Merged, team-reviewed pull requests bucketed by engaged team members."""

    one_review: DistributionBucket
    two_reviews: DistributionBucket
    more_than_two: DistributionBucket

    @property
    def total(self) -> int:
        return self.one_review.count + self.two_reviews.count + self.more_than_two.count

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            "one_review": self.one_review.to_dict(),
            "two_reviews": self.two_reviews.to_dict(),
            "more_than_two": self.more_than_two.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class TeamAnalysisResult:
    """Team-wide review latency metrics over the unified pull request set."""

    subject_id: str
    total_prs: int
    reviewed_prs: int
    timing: Mapping[str, TimingStats]
    review_distribution: ReviewDistribution

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "total_prs": self.total_prs,
            "reviewed_prs": self.reviewed_prs,
            "timing": {name: stats.to_dict() for name, stats in self.timing.items()},
            "review_distribution": self.review_distribution.to_dict(),
        }


def wrap_records(records: Sequence[Mapping[str, Any]]) -> List[PullRequest]:
    """Build ``PullRequest`` views for a sequence of raw records."""
    return [PullRequest(record) for record in records]
