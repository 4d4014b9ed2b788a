"""GitHub GraphQL API client for review metrics data retrieval."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .config import Config
from .errors import ApiError, AuthenticationError

logger = logging.getLogger(__name__)

_PR_FIELDS = """
      ... on PullRequest {
        number
        url
        state
        createdAt
        mergedAt
        author { login }
        reviewRequests(first: 20) {
          nodes { requestedReviewer { ... on Team { name slug } } }
        }
        %(timeline)s
        reviews(first: 20) {
          nodes { author { login } state createdAt }
        }
        comments(first: 20) {
          nodes { author { login } createdAt }
        }
        reviewThreads(first: 20) {
          nodes { comments(first: 20) { nodes { author { login } createdAt } } }
        }
      }
"""

_TIMELINE_FIELDS = """timelineItems(first: 20, itemTypes: [REVIEW_REQUESTED_EVENT]) {
          nodes {
            ... on ReviewRequestedEvent {
              createdAt
              requestedReviewer { ... on User { login } }
            }
          }
        }"""

_SEARCH_QUERY = """
query($searchQuery: String!, $pageSize: Int!, $cursor: String) {
  search(query: $searchQuery, type: ISSUE, first: $pageSize, after: $cursor) {
    pageInfo { hasNextPage endCursor }
    nodes {
%(fields)s
    }
  }
}
"""

DIRECT_SEARCH_QUERY = _SEARCH_QUERY % {"fields": _PR_FIELDS % {"timeline": _TIMELINE_FIELDS}}
TEAM_SEARCH_QUERY = _SEARCH_QUERY % {"fields": _PR_FIELDS % {"timeline": ""}}

_INCLUDED_TEAM_STATES = ("OPEN", "MERGED")


class GitHubClient:
    """Small client for the GitHub GraphQL pull request search."""

    _GRAPHQL_URL = "https://api.github.com/graphql"
    _DIRECT_PAGE_SIZE = 50
    _TEAM_PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including the API token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/json",
            }
        )

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _post_graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL request with retry logic for 429/5xx responses.

        Raises:
            AuthenticationError: If GitHub rejects the token.
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                does not return valid JSON, or reports GraphQL errors.
        """
        body = {"query": query, "variables": variables}
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.post(
                    self._GRAPHQL_URL, json=body, timeout=self._timeout_seconds
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError("GitHub request failed after retries: POST graphql") from exc
                logger.warning(
                    "GitHub request failed, retrying",
                    extra={"attempt": attempt, "error": str(exc)},
                )
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.warning(
                    "GitHub returned a retryable status",
                    extra={"attempt": attempt, "status_code": status_code},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code == 401:
                raise AuthenticationError("GitHub rejected the configured token (HTTP 401).")

            if status_code >= 400:
                raise ApiError(
                    "GitHub API request failed: "
                    f"POST graphql returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError("GitHub API returned invalid JSON: POST graphql") from exc

            if not isinstance(payload, dict):
                raise ApiError("GitHub API returned unexpected payload shape: POST graphql")

            errors = payload.get("errors")
            if errors:
                messages = "; ".join(str(error.get("message", error)) for error in errors)
                raise ApiError(f"GitHub GraphQL query failed: {messages}")

            return payload

        raise ApiError("GitHub request failed after retries: POST graphql") from last_error

    def _search_page(
        self, query: str, search_query: str, page_size: int, cursor: Optional[str]
    ) -> Tuple[List[Dict[str, Any]], bool, Optional[str]]:
        payload = self._post_graphql(
            query,
            {"searchQuery": search_query, "pageSize": page_size, "cursor": cursor},
        )
        search = (payload.get("data") or {}).get("search") or {}
        page_info = search.get("pageInfo") or {}
        nodes = [node for node in search.get("nodes") or [] if node]
        return nodes, bool(page_info.get("hasNextPage")), page_info.get("endCursor")

    def search_pull_requests(
        self,
        search_query: str,
        limit: int,
        page_size: int,
        query: str = DIRECT_SEARCH_QUERY,
        states: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Run a paginated pull request search.

        Pages are requested until ``limit`` records have been collected or the
        search has no next page. A page may overshoot ``limit``; records are not
        truncated. When ``states`` is given only records in those states are kept.
        """
        pull_requests: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            nodes, has_next_page, cursor = self._search_page(query, search_query, page_size, cursor)
            if states is not None:
                nodes = [node for node in nodes if node.get("state") in states]
            pull_requests.extend(nodes)

            if not has_next_page or len(pull_requests) >= limit:
                break

        logger.info(
            "Fetched pull requests",
            extra={"search_query": search_query, "prs_total": len(pull_requests)},
        )
        return pull_requests

    def fetch_direct_review_prs(self, username: str) -> List[Dict[str, Any]]:
        """Fetch open and merged PRs where ``username`` was requested or reviewed.

        Results of both searches are de-duplicated by URL, first occurrence kept.
        """
        records: List[Dict[str, Any]] = []
        for qualifier in ("review-requested", "reviewed-by"):
            records.extend(
                self.search_pull_requests(
                    f"{qualifier}:{username} type:pr -is:archived -is:closed",
                    limit=self._config.direct_pr_limit,
                    page_size=self._DIRECT_PAGE_SIZE,
                )
            )

        unique: Dict[str, Dict[str, Any]] = {}
        for record in records:
            unique.setdefault(record.get("url"), record)
        return list(unique.values())

    def fetch_team_tagged_prs(self, team_name: str) -> List[Dict[str, Any]]:
        """Fetch open and merged PRs where ``team_name`` was asked to review."""
        bot_exclusions = " ".join(f"-author:{bot}" for bot in self._config.bot_exclusions)
        search_query = f"team-review-requested:{team_name} type:pr -is:archived -is:closed"
        if bot_exclusions:
            search_query = f"{search_query} {bot_exclusions}"

        return self.search_pull_requests(
            search_query,
            limit=self._config.team_pr_limit,
            page_size=self._TEAM_PAGE_SIZE,
            query=TEAM_SEARCH_QUERY,
            states=_INCLUDED_TEAM_STATES,
        )
