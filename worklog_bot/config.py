"""
Configuration for the work-log automation tool.

Secrets (credentials, tokens, API keys) are read from a .env file and the
process environment; everything else comes from config.json. Configuration
is read once per run and never watched for changes.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import dotenv_values


DEFAULT_CONFIG_PATH = Path('config.json')
DEFAULT_ENV_PATH = Path('.env')
AUTH_STATE_FILENAME = 'auth.json'

LANGUAGES = ('ko', 'en')

_HHMM = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


@dataclass
class RemoteConfig:
    """
    Remote work-tracking account.

    Attributes:
        email: Login e-mail
        password: Login password
        timezone: IANA time zone used for day boundaries and AM/PM split
    """
    email: str = ""
    password: str = ""
    timezone: str = "Asia/Seoul"


@dataclass
class SlackConfig:
    user_token: str = ""
    user_id: str = ""
    user_name: str = ""


@dataclass
class GitHubRepo:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class GitHubConfig:
    access_token: str = ""
    username: str = ""
    repos: List[GitHubRepo] = field(default_factory=list)


@dataclass
class AIConfig:
    """
    Language model settings.

    Attributes:
        openrouter_api_key: OpenRouter API key
        model: Model identifier on OpenRouter
        language: Output language of the notes ('ko' or 'en')
    """
    openrouter_api_key: str = ""
    model: str = "openai/gpt-4o-mini"
    language: str = "ko"


@dataclass
class GeneralConfig:
    """
    Browser settings.

    Attributes:
        headless: Whether to run the browser without a window
        slow_mo: Delay added to every browser operation (milliseconds)
    """
    headless: bool = True
    slow_mo: int = 0


@dataclass
class SchedulerConfig:
    """
    Daily schedule.

    Attributes:
        enabled: Whether scheduled runs are active
        time: Local time of day in HH:MM format
        skip_weekends: Whether to skip Saturdays and Sundays
    """
    enabled: bool = False
    time: str = "18:00"
    skip_weekends: bool = True


@dataclass
class Config:
    """Application configuration."""
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    general: GeneralConfig = field(default_factory=GeneralConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)

    # Single session state file, shared by every run
    auth_state_path: Path = Path(AUTH_STATE_FILENAME)

    def validate(self):
        """
        Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.ai.language not in LANGUAGES:
            raise ValueError(
                f"Language must be one of {', '.join(LANGUAGES)}, got: {self.ai.language}"
            )

        if not _HHMM.match(self.scheduler.time):
            raise ValueError(
                f"Scheduler time must be in HH:MM format, got: {self.scheduler.time}"
            )

        if self.general.slow_mo < 0:
            raise ValueError(f"slow_mo cannot be negative, got: {self.general.slow_mo}")

        if not self.remote.timezone:
            raise ValueError("Timezone cannot be empty")


ENV_KEYS = (
    'REMOTE_EMAIL',
    'REMOTE_PASSWORD',
    'SLACK_USER_TOKEN',
    'SLACK_USER_ID',
    'SLACK_USER_NAME',
    'GITHUB_ACCESS_TOKEN',
    'GITHUB_USERNAME',
    'OPENROUTER_API_KEY',
)


def _read_env(env_path: Path) -> Dict[str, str]:
    values = {k: v for k, v in dotenv_values(env_path).items() if v is not None}
    for key, value in os.environ.items():
        if key in ENV_KEYS:
            values[key] = value
    return values


def _read_json(json_path: Path) -> Dict[str, Any]:
    if not json_path.exists():
        return {}
    try:
        with open(json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to read {json_path}: {e}")
    if not isinstance(data, dict):
        raise ValueError(f"{json_path} must contain a JSON object")
    return data


def _parse_repos(raw: Any) -> List[GitHubRepo]:
    repos = []
    for item in raw or []:
        if isinstance(item, str) and '/' in item:
            owner, name = item.split('/', 1)
            repos.append(GitHubRepo(owner=owner, name=name))
        elif isinstance(item, dict) and item.get('owner') and item.get('name'):
            repos.append(GitHubRepo(owner=item['owner'], name=item['name']))
        else:
            raise ValueError(f"Invalid repository entry: {item!r}")
    return repos


def load_config(
    json_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    auth_state_path: Optional[Path] = None,
) -> Config:
    """
    Load configuration from config.json and .env.

    Args:
        json_path: Path to config.json (defaults to ./config.json)
        env_path: Path to the .env file (defaults to ./.env)
        auth_state_path: Session state file (defaults to auth.json beside config.json)

    Returns:
        Loaded configuration

    Raises:
        ValueError: If a file is malformed or a value is invalid
    """
    json_path = Path(json_path) if json_path else DEFAULT_CONFIG_PATH
    env_path = Path(env_path) if env_path else DEFAULT_ENV_PATH

    env = _read_env(env_path)
    data = _read_json(json_path)

    remote = data.get('remote', {})
    github = data.get('github', {})
    ai = data.get('ai', {})
    general = data.get('general', {})
    scheduler = data.get('scheduler', {})

    repos = github.get('repos')
    if repos is None:
        # Older config files kept the repository list under "git"
        repos = data.get('git', {}).get('repos', [])

    config = Config(
        remote=RemoteConfig(
            email=env.get('REMOTE_EMAIL', ''),
            password=env.get('REMOTE_PASSWORD', ''),
            timezone=remote.get('timezone', 'Asia/Seoul'),
        ),
        slack=SlackConfig(
            user_token=env.get('SLACK_USER_TOKEN', ''),
            user_id=env.get('SLACK_USER_ID', ''),
            user_name=env.get('SLACK_USER_NAME', ''),
        ),
        github=GitHubConfig(
            access_token=env.get('GITHUB_ACCESS_TOKEN', ''),
            username=env.get('GITHUB_USERNAME', ''),
            repos=_parse_repos(repos),
        ),
        ai=AIConfig(
            openrouter_api_key=env.get('OPENROUTER_API_KEY', ''),
            model=ai.get('model', 'openai/gpt-4o-mini'),
            language=ai.get('language', 'ko'),
        ),
        general=GeneralConfig(
            headless=bool(general.get('headless', True)),
            slow_mo=int(general.get('slowMo', 0)),
        ),
        scheduler=SchedulerConfig(
            enabled=bool(scheduler.get('enabled', False)),
            time=scheduler.get('time', '18:00'),
            skip_weekends=bool(scheduler.get('skipWeekends', True)),
        ),
        auth_state_path=(
            Path(auth_state_path) if auth_state_path
            else json_path.parent / AUTH_STATE_FILENAME
        ),
    )

    config.validate()
    return config
