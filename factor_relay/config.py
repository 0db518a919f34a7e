"""
Centralized configuration — env vars, defaults, and the Settings object
handed to create_app().
"""
import os
from dataclasses import dataclass, field

from factor_relay.errors import ConfigError


# ── Database ──────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── monday.com ────────────────────────────────────────────────────────────────
MONDAY_API_URL = os.getenv('MONDAY_API_URL', 'https://api.monday.com/v2')
MONDAY_API_VERSION = '2023-10'

REQUIRED_ENV_VARS = [
    'MONDAY_API_TOKEN',
    'DEFAULT_BOARD_ID',
    'INPUT_NUMBER_COLUMN_ID',
    'RESULT_NUMBER_COLUMN_ID',
]


@dataclass(frozen=True)
class RetryConfig:
    """Backoff tuning for remote board calls. Delays are in seconds."""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the failed attempt with 0-based index `attempt`."""
        return min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)


@dataclass(frozen=True)
class BoardClientConfig:
    api_token: str
    board_id: str
    api_url: str = MONDAY_API_URL
    api_version: str = MONDAY_API_VERSION
    timeout: float = 30.0
    retry: RetryConfig = field(default_factory=RetryConfig)


@dataclass(frozen=True)
class Settings:
    board: BoardClientConfig
    input_column_id: str
    result_column_id: str
    database_url: str = DATABASE_URL


def _env_number(env, name, default, cast=float):
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def load_settings(environ=None) -> Settings:
    """
    Build Settings from the environment.

    Raises ConfigError listing every missing required variable, so the
    process refuses to start half-configured.
    """
    env = os.environ if environ is None else environ
    missing = [name for name in REQUIRED_ENV_VARS if not env.get(name)]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}",
            details={'missing': missing},
        )

    retry = RetryConfig(
        max_retries=_env_number(env, 'MONDAY_MAX_RETRIES', 3, int),
        base_delay=_env_number(env, 'MONDAY_BASE_DELAY', 1.0),
        max_delay=_env_number(env, 'MONDAY_MAX_DELAY', 10.0),
        backoff_factor=_env_number(env, 'MONDAY_BACKOFF_FACTOR', 2.0),
    )
    board = BoardClientConfig(
        api_token=env['MONDAY_API_TOKEN'],
        board_id=env['DEFAULT_BOARD_ID'],
        api_url=env.get('MONDAY_API_URL') or MONDAY_API_URL,
        timeout=_env_number(env, 'MONDAY_TIMEOUT', 30.0),
        retry=retry,
    )
    return Settings(
        board=board,
        input_column_id=env['INPUT_NUMBER_COLUMN_ID'],
        result_column_id=env['RESULT_NUMBER_COLUMN_ID'],
        database_url=env.get('DATABASE_URL') or DATABASE_URL,
    )
