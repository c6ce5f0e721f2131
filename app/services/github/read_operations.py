"""
GitHub API read operations.

Paginated, rate-limit aware access to the endpoints the sync engine needs:
- Repository discovery with client-side filters
- Full commit history (optionally after a boundary)
- Per-commit line statistics
- Rate limit status
- Language breakdown and contributors (cached)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import httpx

from app.config import settings
from app.services.github.cache import (
    cached_github_call,
    contributors_cache,
    languages_cache,
)
from app.services.github.constants import (
    API_VERSION,
    DEFAULT_SECONDARY_WAIT_SECONDS,
    MAX_PRIMARY_RETRIES,
    MAX_SECONDARY_RETRIES,
    PER_PAGE_MAX,
    get_language_color,
)
from app.services.github.exceptions import (
    CredentialError,
    GitHubAPIError,
    RateLimitError,
    TransientFetchError,
)
from app.services.github.helpers import (
    RateLimitInfo,
    ThrottleKind,
    classify_throttle,
    handle_error_response,
)
from app.services.github.http_client import get_github_client
from app.services.github.rate_limit import RateLimitState
from app.services.github.types import (
    CommitStatistics,
    ContributorInfo,
    FetchedCommit,
    GitHubRepo,
    LanguageStat,
    RateLimitSnapshot,
    RepositoryFilters,
    SyncMetrics,
)

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class GitHubReadOperations:
    """
    Read-only operations for GitHub API.

    Every request goes through `_request`, which records rate limit headers
    into the shared RateLimitState and retries throttled calls:
    primary limits (budget spent) up to 3 times after the server-provided
    wait, secondary limits (abuse detection) at most once. Any other error
    propagates without retry.
    """

    def __init__(
        self,
        token: str,
        rate_limit: RateLimitState | None = None,
        sleep: Sleeper | None = None,
    ):
        self.token = token
        self.base_url = settings.github_api_url.rstrip("/")
        self.rate_limit = rate_limit or RateLimitState()
        self.metrics = SyncMetrics()
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    # ─────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────

    def _throttle_wait(self, response: httpx.Response, kind: ThrottleKind) -> float:
        info = RateLimitInfo(response)
        if info.retry_after is not None:
            return float(info.retry_after)
        if kind is ThrottleKind.PRIMARY and info.reset_timestamp is not None:
            return self.rate_limit.seconds_until_reset() + 1
        return float(DEFAULT_SECONDARY_WAIT_SECONDS)

    async def _request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        context: str = "",
    ) -> httpx.Response:
        """GET with rate limit bookkeeping and throttling retries."""
        if not url.startswith("http"):
            url = f"{self.base_url}{url}"

        primary_retries = 0
        secondary_retries = 0

        while True:
            client = get_github_client()
            try:
                response = await client.get(url, headers=self._headers, params=params)
            except httpx.TimeoutException as e:
                self.metrics.errors_encountered += 1
                raise TransientFetchError(f"GitHub request timed out: {context or url}") from e
            except httpx.HTTPError as e:
                self.metrics.errors_encountered += 1
                raise TransientFetchError(f"GitHub request failed: {e}") from e

            self.metrics.total_requests += 1
            await self.rate_limit.update_from_response(response)

            kind = classify_throttle(response)
            if kind is ThrottleKind.NONE:
                if response.status_code >= 400:
                    self.metrics.errors_encountered += 1
                handle_error_response(response, context or url)
                return response

            if kind is ThrottleKind.PRIMARY:
                exhausted = primary_retries >= MAX_PRIMARY_RETRIES
                primary_retries += 1
            else:
                exhausted = secondary_retries >= MAX_SECONDARY_RETRIES
                secondary_retries += 1

            info = RateLimitInfo(response)
            wait = self._throttle_wait(response, kind)
            if exhausted or wait > settings.github_max_retry_wait_seconds:
                self.metrics.errors_encountered += 1
                raise RateLimitError(
                    f"GitHub {kind.value} rate limit exceeded",
                    status_code=response.status_code,
                    rate_limit_reset=info.reset_timestamp,
                    retry_after=int(wait),
                )

            self.metrics.rate_limit_resets += 1
            logger.warning(
                f"GitHub {kind.value} rate limit hit for {context or url}, "
                f"retrying in {wait:.0f}s"
            )
            await self._sleep(wait)

    async def _paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        context: str = "",
    ):
        """Yield each page's JSON list, following Link rel="next" until absent."""
        url: str | None = path
        page_params: dict[str, Any] | None = {**(params or {}), "per_page": PER_PAGE_MAX}

        while url:
            response = await self._request(url, params=page_params, context=context)
            yield response.json() if response.content else []
            url = response.links.get("next", {}).get("url")
            # The next link already carries every query parameter
            page_params = None

    # ─────────────────────────────────────────────────────────────────────
    # Repositories
    # ─────────────────────────────────────────────────────────────────────

    def _normalize_repo(self, data: dict[str, Any]) -> GitHubRepo:
        """Convert GitHub API response to GitHubRepo dataclass."""
        owner = (data.get("owner") or {}).get("login") or data["full_name"].split("/")[0]
        return GitHubRepo(
            github_id=data["id"],
            owner=owner,
            name=data["name"],
            full_name=data["full_name"],
            description=data.get("description"),
            url=data["html_url"],
            default_branch=data.get("default_branch") or "main",
            is_private=data.get("private", False),
            is_fork=data.get("fork", False),
            is_archived=data.get("archived", False),
            language=data.get("language"),
            stars_count=data.get("stargazers_count", 0),
            forks_count=data.get("forks_count", 0),
            updated_at=data.get("updated_at"),
        )

    async def list_repositories(
        self,
        filters: RepositoryFilters | None = None,
    ) -> list[GitHubRepo]:
        """
        Fetch every repository the token can see, across all pages.

        Forks and archived repositories are dropped client-side unless the
        filters include them.
        """
        filters = filters or RepositoryFilters()
        params = {
            "affiliation": filters.affiliation,
            "visibility": "all",
            "sort": "updated",
        }

        repos: list[GitHubRepo] = []
        async for page in self._paginate("/user/repos", params, context="user repositories"):
            for data in page:
                if data.get("archived") and not filters.include_archived:
                    continue
                if data.get("fork") and not filters.include_forks:
                    continue
                repos.append(self._normalize_repo(data))

        logger.info(
            f"Fetched {len(repos)} repositories "
            f"({sum(1 for r in repos if r.is_private)} private, affiliation={filters.affiliation})"
        )
        return repos

    # ─────────────────────────────────────────────────────────────────────
    # Commits
    # ─────────────────────────────────────────────────────────────────────

    def _normalize_commit(self, data: dict[str, Any]) -> FetchedCommit:
        commit = data.get("commit") or {}
        author = commit.get("author") or {}
        committer = commit.get("committer") or {}
        return FetchedCommit(
            sha=data.get("sha", ""),
            message=commit.get("message", ""),
            author_name=author.get("name") or "Unknown",
            author_email=author.get("email") or "unknown@example.com",
            authored_at=_parse_timestamp(author.get("date")),
            committer_name=committer.get("name"),
            committer_email=committer.get("email"),
            committed_at=_parse_timestamp(committer.get("date")),
            url=data.get("html_url"),
        )

    async def list_commits(
        self,
        owner: str,
        repo: str,
        since: datetime | None = None,
        max_commits: int | None = None,
    ) -> list[FetchedCommit]:
        """
        Fetch the complete commit history of a repository, newest first.

        Args:
            owner: Repository owner
            repo: Repository name
            since: Only commits after this instant (incremental sync)
            max_commits: Optional cap, mainly for testing

        Returns:
            Every commit across all pages. An empty repository yields [].
        """
        params: dict[str, Any] = {}
        if since is not None:
            params["since"] = since.isoformat()

        full_name = f"{owner}/{repo}"
        commits: list[FetchedCommit] = []
        try:
            async for page in self._paginate(
                f"/repos/{owner}/{repo}/commits", params, context=full_name
            ):
                for data in page:
                    if max_commits is not None and len(commits) >= max_commits:
                        logger.info(f"Hit max commits limit ({max_commits}) for {full_name}")
                        return commits
                    commits.append(self._normalize_commit(data))
                    self.metrics.commits_processed += 1
        except GitHubAPIError as e:
            if e.status_code == 409:
                logger.info(f"{full_name} has no commits yet")
                return []
            raise

        logger.info(
            f"Fetched {len(commits)} commits from {full_name}"
            + (f" since {since.isoformat()}" if since else "")
        )
        return commits

    async def get_commit_statistics(self, owner: str, repo: str, sha: str) -> CommitStatistics:
        response = await self._request(
            f"/repos/{owner}/{repo}/commits/{sha}", context=f"{owner}/{repo}@{sha[:7]}"
        )
        data = response.json()
        stats = data.get("stats") or {}
        return CommitStatistics(
            sha=sha,
            additions=stats.get("additions", 0),
            deletions=stats.get("deletions", 0),
            files_changed=len(data.get("files") or []),
        )

    async def fetch_commit_statistics(
        self,
        owner: str,
        repo: str,
        shas: list[str],
        delay_ms: int | None = None,
    ) -> dict[str, CommitStatistics]:
        """
        Fetch statistics for the given commits, one request each.

        Requests are sequential with a small delay to stay clear of
        secondary limits. A commit whose lookup fails is logged and left
        out; rate limit and credential errors abort the whole batch.
        """
        delay = settings.sync_stats_request_delay_ms if delay_ms is None else delay_ms
        stats: dict[str, CommitStatistics] = {}

        for index, sha in enumerate(shas):
            if index and delay:
                await self._sleep(delay / 1000)
            try:
                stats[sha] = await self.get_commit_statistics(owner, repo, sha)
            except (RateLimitError, CredentialError):
                raise
            except GitHubAPIError as e:
                logger.warning(f"Could not fetch stats for {owner}/{repo}@{sha[:7]}: {e.message}")

        logger.debug(f"Fetched stats for {len(stats)}/{len(shas)} commits in {owner}/{repo}")
        return stats

    # ─────────────────────────────────────────────────────────────────────
    # Rate limit
    # ─────────────────────────────────────────────────────────────────────

    async def get_rate_limit_state(self) -> RateLimitSnapshot:
        """Query /rate_limit (which does not count against the budget)."""
        response = await self._request("/rate_limit", context="rate limit")
        rate = response.json().get("rate") or {}
        await self.rate_limit.record(
            remaining=rate.get("remaining"),
            limit=rate.get("limit"),
            reset=rate.get("reset"),
            used=rate.get("used"),
        )
        return self.rate_limit.snapshot()

    # ─────────────────────────────────────────────────────────────────────
    # Supplementary reads
    # ─────────────────────────────────────────────────────────────────────

    @cached_github_call(languages_cache)
    async def get_repo_languages(
        self,
        owner: str,
        repo: str,
    ) -> list[LanguageStat]:
        """
        Fetch language breakdown for a repository.

        Returns:
            LanguageStat list sorted by bytes (descending), percentages to
            one decimal place.
        """
        response = await self._request(
            f"/repos/{owner}/{repo}/languages", context=f"{owner}/{repo}"
        )
        data: dict[str, int] = response.json() or {}

        total_bytes = sum(data.values())
        if total_bytes == 0:
            return []

        languages = [
            LanguageStat(
                name=name,
                bytes=byte_count,
                percentage=round(byte_count / total_bytes * 100, 1),
                color=get_language_color(name),
            )
            for name, byte_count in data.items()
        ]
        languages.sort(key=lambda x: x.bytes, reverse=True)
        return languages

    @cached_github_call(contributors_cache)
    async def get_repo_contributors(
        self,
        owner: str,
        repo: str,
        limit: int = 100,
    ) -> list[ContributorInfo]:
        """Named contributors (anonymous ones skipped), up to `limit`."""
        contributors: list[ContributorInfo] = []
        async for page in self._paginate(
            f"/repos/{owner}/{repo}/contributors", context=f"{owner}/{repo}"
        ):
            # 204 No Content for empty repositories
            for contrib in page or []:
                if not contrib.get("login"):
                    continue
                contributors.append(
                    ContributorInfo(
                        login=contrib["login"],
                        avatar_url=contrib.get("avatar_url"),
                        contributions=contrib.get("contributions", 0),
                    )
                )
                if len(contributors) >= limit:
                    return contributors
        return contributors
