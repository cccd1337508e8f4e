"""
Activity collectors for commits and chat messages.

Collectors never raise: upstream errors and rate limits yield a partial or
empty result so one bad source cannot stop a week's collection.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

import httpx
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from .config import GitHubConfig, SlackConfig
from .logging_utils import get_logger, log_warning
from .models import GitCommit, SlackMessage


def day_bounds(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """
    Get the UTC start and end of a local calendar day.

    Args:
        day: Calendar date
        tz_name: IANA time zone of the worker

    Returns:
        (start, end) as aware UTC datetimes, end exclusive
    """
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def _parse_github_date(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


class GitHubCollector:
    """
    Lists the worker's commits across the configured repositories.
    """

    API_URL = 'https://api.github.com'
    PER_PAGE = 100
    RATE_LIMIT_STATUSES = (403, 429)

    def __init__(
        self,
        config: GitHubConfig,
        tz_name: str = 'UTC',
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the collector.

        Args:
            config: GitHub token, username and repositories
            tz_name: Time zone that defines the worker's day
            client: HTTP client to use (a new one per call when None)
        """
        self.config = config
        self.tz_name = tz_name
        self.client = client
        self.logger = get_logger('collectors.github')

    def _headers(self) -> dict:
        return {
            'Authorization': f"Bearer {self.config.access_token}",
            'Accept': 'application/vnd.github+json',
            'User-Agent': 'worklog-bot',
        }

    def list_commits(self, day: date) -> List[GitCommit]:
        """
        List commits authored by the configured user on a day.

        Args:
            day: Calendar date in the worker's time zone

        Returns:
            Commits ordered by time (empty on missing token or upstream errors)
        """
        if not self.config.access_token:
            log_warning("GitHub access token is empty, skipping commit collection", self.logger)
            return []

        if self.client is not None:
            return self._collect(self.client, day)

        with httpx.Client(timeout=15.0) as client:
            return self._collect(client, day)

    def _collect(self, client: httpx.Client, day: date) -> List[GitCommit]:
        since, until = day_bounds(day, self.tz_name)
        commits: List[GitCommit] = []

        for repo in self.config.repos:
            try:
                rate_limited = self._collect_repo(client, repo.owner, repo.name, since, until, commits)
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                log_warning(f"Error fetching commits for {repo.full_name}: {e}, skipping", self.logger)
                continue

            if rate_limited:
                log_warning("GitHub rate limit reached, returning partial results", self.logger)
                break

        return sorted(commits, key=lambda c: c.timestamp)

    def _collect_repo(self, client, owner, name, since, until, commits) -> bool:
        """Append one repository's commits. Returns True when rate limited."""
        url = f"{self.API_URL}/repos/{owner}/{name}/commits"
        page = 1

        while True:
            response = client.get(
                url,
                headers=self._headers(),
                params={
                    'author': self.config.username,
                    'since': since.strftime('%Y-%m-%dT%H:%M:%SZ'),
                    'until': until.strftime('%Y-%m-%dT%H:%M:%SZ'),
                    'per_page': self.PER_PAGE,
                    'page': page,
                },
            )

            if response.status_code in self.RATE_LIMIT_STATUSES:
                return True

            if response.status_code != 200:
                log_warning(
                    f"GitHub API error for {owner}/{name}: "
                    f"{response.status_code} {response.reason_phrase}, skipping",
                    self.logger,
                )
                return False

            batch = response.json()
            for item in batch:
                timestamp = _parse_github_date(item['commit']['author']['date'])
                if not (since <= timestamp < until):
                    continue
                commits.append(GitCommit(
                    sha=item['sha'],
                    message=item['commit']['message'],
                    timestamp=timestamp,
                    repo=f"{owner}/{name}",
                ))

            if len(batch) < self.PER_PAGE:
                return False
            page += 1


class SlackCollector:
    """
    Lists the worker's Slack messages through the search API.
    """

    PAGE_SIZE = 100

    def __init__(self, config: SlackConfig, client: Optional[WebClient] = None):
        """
        Initialize the collector.

        Args:
            config: Slack user token and user id
            client: Slack WebClient (created from the token when None)
        """
        self.config = config
        self.client = client
        self.logger = get_logger('collectors.slack')

    def list_messages(self, day: date) -> List[SlackMessage]:
        """
        List messages sent by the configured user on a day.

        Args:
            day: Calendar date

        Returns:
            Messages ordered by time; partial on rate limiting, empty on other errors
        """
        if not self.config.user_token or not self.config.user_id:
            log_warning("Slack token or user id is missing, skipping message collection", self.logger)
            return []

        client = self.client or WebClient(token=self.config.user_token)
        query = f"from:<@{self.config.user_id}> on:{day.isoformat()}"
        messages: List[SlackMessage] = []

        try:
            page = 1
            while True:
                response = client.search_messages(query=query, count=self.PAGE_SIZE, page=page)
                found = response.get('messages') or {}
                matches = found.get('matches') or []

                for match in matches:
                    message = self._parse_match(match)
                    if message is not None:
                        messages.append(message)

                total_pages = (found.get('paging') or {}).get('pages', 1)
                if not matches or page >= total_pages:
                    break
                page += 1

        except SlackApiError as e:
            if e.response is not None and e.response.get('error') == 'ratelimited':
                log_warning("Slack API rate limit reached, returning partial results", self.logger)
                return sorted(messages, key=lambda m: m.timestamp)
            log_warning(f"Failed to fetch Slack messages: {e}", self.logger)
            return []
        except Exception as e:
            log_warning(f"Failed to fetch Slack messages: {e}", self.logger)
            return []

        who = self.config.user_name or self.config.user_id
        self.logger.info(f"Found {len(messages)} Slack messages from {who} on {day.isoformat()}")
        return sorted(messages, key=lambda m: m.timestamp)

    @staticmethod
    def _parse_match(match: dict) -> Optional[SlackMessage]:
        if match.get('type') != 'message' or not match.get('ts'):
            return None

        channel = match.get('channel') or {}
        return SlackMessage(
            text=match.get('text') or '',
            channel=channel.get('id') or '',
            channel_name=channel.get('name') or '',
            timestamp=datetime.fromtimestamp(float(match['ts']), tz=timezone.utc),
            permalink=match.get('permalink') or None,
        )
