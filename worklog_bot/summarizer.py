"""
Turns a day's activity into morning and afternoon notes.

The language model is reached through OpenRouter's chat completions API.
summarize_day never fails: a period with no activity, or one whose model
call fails, gets the placeholder note of the configured language.
"""

from typing import List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

import httpx

from .config import AIConfig
from .exceptions import SummarizerError
from .logging_utils import get_logger
from .models import (
    DailySummary,
    DailyWorkData,
    GitCommit,
    PeriodActivity,
    SlackMessage,
    PERIOD_AM,
    PERIOD_PM,
)


OPENROUTER_URL = 'https://openrouter.ai/api/v1/chat/completions'

PLACEHOLDER_NOTES = {
    'ko': '일반 업무',
    'en': 'General work',
}

SYSTEM_PROMPT_KO = """당신은 업무일지 작성을 도와주는 AI 어시스턴트입니다.
주어진 Git 커밋 메시지와 Slack 메시지를 분석하여 간결한 업무내용 요약을 작성합니다.

규칙:
- 한국어로 작성
- 간결하고 전문적인 톤
- 업무 내용만 포함 (잡담, 인사 등 제외)
- 주요 작업 내용을 불릿 포인트로 요약
- 최대 3-5줄"""

SYSTEM_PROMPT_EN = """You are an AI assistant helping to write work logs.
Analyze the given Git commit messages and Slack messages to create concise work summaries.

Rules:
- Write in English
- Use concise, professional tone
- Include only work-related content (exclude casual chat, greetings)
- Summarize key tasks as bullet points
- Maximum 3-5 lines"""

SYSTEM_PROMPTS = {
    'ko': SYSTEM_PROMPT_KO,
    'en': SYSTEM_PROMPT_EN,
}

PERIOD_LABELS = {
    'ko': {PERIOD_AM: '오전 (09:00-12:00)', PERIOD_PM: '오후 (13:00-18:00)'},
    'en': {PERIOD_AM: 'Morning (09:00-12:00)', PERIOD_PM: 'Afternoon (13:00-18:00)'},
}

# Messages and headings of the user prompt, per language
PROMPT_TEXT = {
    'ko': {
        'request': '{label} 업무내용을 요약해주세요.\n\n',
        'commits': '## Git 커밋:\n',
        'messages': '## Slack 메시지:\n',
        'empty': '(이 시간대에 기록된 활동이 없습니다)',
    },
    'en': {
        'request': 'Summarize the {label} work.\n\n',
        'commits': '## Git Commits:\n',
        'messages': '## Slack Messages:\n',
        'empty': '(No recorded activity for this period)',
    },
}


def placeholder_for(language: str) -> str:
    return PLACEHOLDER_NOTES.get(language, PLACEHOLDER_NOTES['en'])


def build_user_prompt(
    period: str,
    commits: Sequence[GitCommit],
    messages: Sequence[SlackMessage],
    language: str,
) -> str:
    """
    Build the user prompt for one half-day.

    Args:
        period: 'am' or 'pm'
        commits: Commits of the period
        messages: Chat messages of the period
        language: 'ko' or 'en'

    Returns:
        Prompt text
    """
    text = PROMPT_TEXT[language]
    prompt = text['request'].format(label=PERIOD_LABELS[language][period])

    if commits:
        prompt += text['commits']
        for commit in commits:
            prompt += f"- [{commit.repo}] {commit.message}\n"
        prompt += '\n'

    if messages:
        prompt += text['messages']
        for message in messages:
            prompt += f"- [#{message.channel_name}] {message.text}\n"
        prompt += '\n'

    if not commits and not messages:
        prompt += text['empty']

    return prompt


def split_by_period(day: DailyWorkData, tz_name: str) -> Tuple[PeriodActivity, PeriodActivity]:
    """
    Split a day's activity into morning and afternoon.

    Records before 12:00 local time are AM, the rest PM.

    Args:
        day: Collected activity of one day
        tz_name: IANA time zone the split is made in

    Returns:
        (am, pm) activity
    """
    tz = ZoneInfo(tz_name)

    def is_am(timestamp) -> bool:
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(tz)
        return timestamp.hour < 12

    am = PeriodActivity(
        commits=tuple(c for c in day.commits if is_am(c.timestamp)),
        messages=tuple(m for m in day.messages if is_am(m.timestamp)),
    )
    pm = PeriodActivity(
        commits=tuple(c for c in day.commits if not is_am(c.timestamp)),
        messages=tuple(m for m in day.messages if not is_am(m.timestamp)),
    )
    return am, pm


class OpenRouterSummarizer:
    """
    Summarizes activity with a chat model on OpenRouter.
    """

    def __init__(self, config: AIConfig, client: Optional[httpx.Client] = None, timeout: float = 60.0):
        """
        Initialize the summarizer.

        Args:
            config: API key, model and output language
            client: HTTP client to use (a new one per call when None)
            timeout: Request timeout in seconds
        """
        self.config = config
        self.client = client
        self.timeout = timeout
        self.logger = get_logger('summarizer')

    @property
    def language(self) -> str:
        return self.config.language

    def summarize(self, period: str, commits: Sequence[GitCommit], messages: Sequence[SlackMessage]) -> str:
        """
        Summarize one half-day of activity.

        Args:
            period: 'am' or 'pm'
            commits: Commits of the period
            messages: Chat messages of the period

        Returns:
            Notes text

        Raises:
            SummarizerError: If the API key is missing, the request fails or
                the response has no content
        """
        if not self.config.openrouter_api_key:
            raise SummarizerError("OpenRouter API key is not configured")

        payload = {
            'model': self.config.model,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPTS[self.language]},
                {'role': 'user', 'content': build_user_prompt(period, commits, messages, self.language)},
            ],
        }

        try:
            if self.client is not None:
                response = self._post(self.client, payload)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = self._post(client, payload)
        except httpx.HTTPError as e:
            raise SummarizerError(f"OpenRouter request failed: {e}") from e

        if response.status_code != 200:
            raise SummarizerError(
                f"OpenRouter API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            content = response.json()['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError):
            content = None

        if not content:
            raise SummarizerError("Empty response from OpenRouter API")

        return content.strip()

    def _post(self, client: httpx.Client, payload: dict) -> httpx.Response:
        return client.post(
            OPENROUTER_URL,
            headers={
                'Authorization': f"Bearer {self.config.openrouter_api_key}",
                'Content-Type': 'application/json',
            },
            json=payload,
        )


def summarize_day(summarizer, day: DailyWorkData, language: str, tz_name: str) -> DailySummary:
    """
    Produce the AM and PM notes of one day.

    Args:
        summarizer: Object with summarize(period, commits, messages)
        day: Collected activity of the day
        language: Language of the placeholder notes
        tz_name: Time zone of the AM/PM split

    Returns:
        Daily summary with both notes set
    """
    logger = get_logger('summarizer')
    placeholder = placeholder_for(language)
    am, pm = split_by_period(day, tz_name)

    notes: List[str] = []
    for period, activity in ((PERIOD_AM, am), (PERIOD_PM, pm)):
        if activity.is_empty:
            notes.append(placeholder)
            continue
        try:
            text = summarizer.summarize(period, activity.commits, activity.messages)
        except Exception as e:
            logger.warning(f"Failed to generate {period.upper()} summary for {day.date}: {e}")
            text = ''
        notes.append(text.strip() or placeholder)

    return DailySummary(
        date=day.date,
        am_notes=notes[0],
        pm_notes=notes[1],
        raw_am=am,
        raw_pm=pm,
    )
