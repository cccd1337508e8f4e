"""
Tests for prompt building, the AM/PM split and note generation.
"""

import json
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from worklog_bot.config import AIConfig
from worklog_bot.exceptions import SummarizerError
from worklog_bot.models import DailyWorkData, GitCommit, SlackMessage
from worklog_bot.summarizer import (
    OPENROUTER_URL,
    SYSTEM_PROMPT_EN,
    OpenRouterSummarizer,
    build_user_prompt,
    split_by_period,
    summarize_day,
)


DAY = date(2024, 6, 3)

# 10:30 and 14:00 in Seoul
MORNING = datetime(2024, 6, 3, 1, 30, tzinfo=timezone.utc)
AFTERNOON = datetime(2024, 6, 3, 5, 0, tzinfo=timezone.utc)


def commit(when, message='Fix login bug'):
    return GitCommit(sha='abc123', message=message, timestamp=when, repo='acme/api')


def message(when, text='Reviewed PR #12'):
    return SlackMessage(text=text, channel='C1', channel_name='dev', timestamp=when)


def chat_response(content):
    return httpx.Response(200, json={'choices': [{'message': {'content': content}}]})


class TestBuildUserPrompt:
    """Tests for build_user_prompt."""

    def test_english_prompt(self):
        """Test the English prompt lists commits and messages."""
        prompt = build_user_prompt('am', [commit(MORNING)], [message(MORNING)], 'en')

        assert prompt.startswith('Summarize the Morning (09:00-12:00) work.\n\n')
        assert '## Git Commits:\n- [acme/api] Fix login bug\n' in prompt
        assert '## Slack Messages:\n- [#dev] Reviewed PR #12\n' in prompt

    def test_korean_prompt(self):
        """Test the Korean prompt uses the Korean labels."""
        prompt = build_user_prompt('pm', [commit(AFTERNOON)], [], 'ko')

        assert prompt.startswith('오후 (13:00-18:00) 업무내용을 요약해주세요.')
        assert '## Git 커밋:' in prompt
        assert 'Slack' not in prompt

    def test_empty_period(self):
        """Test that an empty period says so."""
        prompt = build_user_prompt('pm', [], [], 'en')
        assert prompt.endswith('(No recorded activity for this period)')


class TestSplitByPeriod:
    """Tests for split_by_period."""

    def test_split_in_local_time(self):
        """Test that the noon boundary is applied in the configured zone."""
        day = DailyWorkData(
            date=DAY,
            day_of_week='Mon',
            commits=(commit(MORNING), commit(AFTERNOON)),
            messages=(message(AFTERNOON),),
        )

        am, pm = split_by_period(day, 'Asia/Seoul')

        assert am.commits == (commit(MORNING),)
        assert pm.commits == (commit(AFTERNOON),)
        assert am.messages == ()
        assert pm.messages == (message(AFTERNOON),)

    def test_noon_is_pm(self):
        """Test that 12:00 local belongs to the afternoon."""
        noon = datetime(2024, 6, 3, 3, 0, tzinfo=timezone.utc)
        day = DailyWorkData(date=DAY, day_of_week='Mon', commits=(commit(noon),))

        am, pm = split_by_period(day, 'Asia/Seoul')
        assert am.is_empty
        assert len(pm.commits) == 1


class TestOpenRouterSummarizer:
    """Tests for OpenRouterSummarizer."""

    def test_request(self):
        """Test the chat completion request."""
        requests = []

        def handler(request):
            requests.append(request)
            return chat_response('- Fixed the login bug\n')

        config = AIConfig(openrouter_api_key='sk-or-test', model='openai/gpt-4o-mini', language='en')
        client = httpx.Client(transport=httpx.MockTransport(handler))

        notes = OpenRouterSummarizer(config, client=client).summarize('am', [commit(MORNING)], [])

        assert notes == '- Fixed the login bug'
        assert str(requests[0].url) == OPENROUTER_URL
        assert requests[0].headers['Authorization'] == 'Bearer sk-or-test'
        body = json.loads(requests[0].content)
        assert body['model'] == 'openai/gpt-4o-mini'
        assert body['messages'][0] == {'role': 'system', 'content': SYSTEM_PROMPT_EN}
        assert 'Fix login bug' in body['messages'][1]['content']

    def test_http_error(self):
        """Test that a non-200 response raises SummarizerError."""
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(401)))
        summarizer = OpenRouterSummarizer(AIConfig(openrouter_api_key='k'), client=client)

        with pytest.raises(SummarizerError, match="401"):
            summarizer.summarize('am', [commit(MORNING)], [])

    def test_empty_response(self):
        """Test that a response without content raises SummarizerError."""
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={'choices': []})))
        summarizer = OpenRouterSummarizer(AIConfig(openrouter_api_key='k'), client=client)

        with pytest.raises(SummarizerError, match="Empty response"):
            summarizer.summarize('am', [commit(MORNING)], [])

    def test_missing_key(self):
        """Test that a missing API key raises before any request."""
        with pytest.raises(SummarizerError, match="API key"):
            OpenRouterSummarizer(AIConfig()).summarize('am', [], [])


class TestSummarizeDay:
    """Tests for summarize_day."""

    def test_placeholders_for_empty_day(self):
        """Test that a day without activity gets the placeholder in both periods."""
        summarizer = MagicMock()
        day = DailyWorkData(date=DAY, day_of_week='Mon')

        summary = summarize_day(summarizer, day, 'en', 'Asia/Seoul')

        assert summary.am_notes == 'General work'
        assert summary.pm_notes == 'General work'
        summarizer.summarize.assert_not_called()

    def test_korean_placeholder(self):
        """Test the Korean placeholder text."""
        summary = summarize_day(MagicMock(), DailyWorkData(date=DAY, day_of_week='Mon'), 'ko', 'Asia/Seoul')
        assert summary.am_notes == '일반 업무'
        assert summary.pm_notes == '일반 업무'

    def test_only_active_period_summarized(self):
        """Test that only periods with activity reach the summarizer."""
        summarizer = MagicMock()
        summarizer.summarize.return_value = 'Fixed login bug'
        day = DailyWorkData(date=DAY, day_of_week='Mon', commits=(commit(MORNING),))

        summary = summarize_day(summarizer, day, 'en', 'Asia/Seoul')

        assert summary.am_notes == 'Fixed login bug'
        assert summary.pm_notes == 'General work'
        summarizer.summarize.assert_called_once_with('am', (commit(MORNING),), ())
        assert summary.raw_am.commits == (commit(MORNING),)

    def test_failure_falls_back_to_placeholder(self):
        """Test that a summarizer failure yields the placeholder."""
        summarizer = MagicMock()
        summarizer.summarize.side_effect = SummarizerError("OpenRouter API error: 500")
        day = DailyWorkData(date=DAY, day_of_week='Mon', messages=(message(AFTERNOON),))

        summary = summarize_day(summarizer, day, 'en', 'Asia/Seoul')

        assert summary.pm_notes == 'General work'

    def test_blank_result_falls_back_to_placeholder(self):
        """Test that whitespace-only notes are replaced by the placeholder."""
        summarizer = MagicMock()
        summarizer.summarize.return_value = '   '
        day = DailyWorkData(date=DAY, day_of_week='Mon', commits=(commit(MORNING),))

        assert summarize_day(summarizer, day, 'en', 'Asia/Seoul').am_notes == 'General work'
