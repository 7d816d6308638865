"""
Configuration management for Pilates Booker.
"""
import os
from dataclasses import dataclass, field
from datetime import time as TimeOfDay

from dotenv import load_dotenv

# Load environment variables from .env file (for local development)
load_dotenv()


DEFAULT_BASE_URL = "https://ad2.mbgym.kr"

# 예약 대상 수업 (오전 09:30)
DEFAULT_CLASS_TIME = "09:30"

# 실행 모드
MODE_NORMAL = "normal"
MODE_FORCED = "forced"
MODE_TEST = "test"
MODE_IMMEDIATE = "immediate"
EXECUTION_MODES = (MODE_NORMAL, MODE_FORCED, MODE_TEST, MODE_IMMEDIATE)


def _env_flag(name: str, default: bool = False) -> bool:
    """Read a true/false style environment variable."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "")
    if not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {value!r})")


def parse_time_of_day(value: str) -> TimeOfDay:
    """
    Parse ``HH:MM`` or ``HH:MM:SS`` into a time-of-day.

    Raises:
        ValueError: if the value is not a valid 24h time
    """
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"TARGET_TIME must look like HH:MM or HH:MM:SS (got {value!r})")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise ValueError(f"TARGET_TIME must be numeric (got {value!r})")
    if len(numbers) == 2:
        numbers.append(0)
    hour, minute, second = numbers
    return TimeOfDay(hour, minute, second)


@dataclass
class AttemptSettings:
    """
    Per-attempt browser tuning.

    Local (interactive) runs and CI runs differ only in these values,
    never in the booking logic itself.
    """
    page_load_timeout: int = 30
    element_timeout: int = 10
    dialog_timeout: float = 3.0
    # 클릭 후 페이지 안정화 대기 (초)
    settle_delay: float = 1.0
    day_settle_delay: float = 3.0
    submit_settle_delay: float = 3.0
    verify_settle_delay: float = 3.0
    save_screenshots: bool = True
    screenshot_dir: str = "screenshots"
    block_images: bool = False
    headless: bool = True
    window_size: str = "1920,1080"


@dataclass
class Config:
    """Main configuration class."""

    # 인증 정보 (환경변수에서 로드)
    username: str = ""
    password: str = ""
    base_url: str = DEFAULT_BASE_URL

    # 실행 설정
    mode: str = MODE_NORMAL
    target_time: TimeOfDay = field(default_factory=lambda: TimeOfDay(0, 0, 0))
    max_wait_minutes: int = 10
    max_retries: int = 3
    class_time: str = DEFAULT_CLASS_TIME
    target_day_offset: int = 7
    debug: bool = False

    # Slack 알림
    slack_url: str = ""

    # 브라우저 설정
    attempt: AttemptSettings = field(default_factory=AttemptSettings)

    def __post_init__(self):
        """Load settings from environment variables."""
        self.username = os.getenv("PILATES_USERNAME", "")
        self.password = os.getenv("PILATES_PASSWORD", "")
        self.base_url = os.getenv("BASE_URL", "").rstrip("/") or DEFAULT_BASE_URL
        self.slack_url = os.getenv("SLACK_URL", "")
        self.debug = _env_flag("DEBUG")

        self.mode = self._resolve_mode()
        target_time = os.getenv("TARGET_TIME", "")
        if target_time.strip():
            self.target_time = parse_time_of_day(target_time)
        self.max_wait_minutes = _env_int("MAX_WAIT_MINUTES", self.max_wait_minutes)
        self.max_retries = _env_int("MAX_RETRIES", self.max_retries)
        self.class_time = os.getenv("CLASS_TIME", "").strip() or DEFAULT_CLASS_TIME

        self.attempt.headless = _env_flag("HEADLESS", True)
        self.attempt.save_screenshots = _env_flag("SAVE_SCREENSHOTS", True)
        self.attempt.block_images = _env_flag("BLOCK_IMAGES", False)

        # GitHub Actions / CI에서는 headless 강제, 대기 시간 여유있게
        if self.is_ci:
            self.attempt.headless = True
            self.attempt.page_load_timeout = 60
            self.attempt.dialog_timeout = 5.0

    @property
    def is_ci(self) -> bool:
        return bool(os.getenv("GITHUB_ACTIONS")) or _env_flag("CI")

    @property
    def is_test_mode(self) -> bool:
        return self.mode == MODE_TEST

    def _resolve_mode(self) -> str:
        if _env_flag("TEST_MODE"):
            return MODE_TEST
        if _env_flag("FORCE_RUN"):
            return MODE_FORCED
        if _env_flag("IMMEDIATE"):
            return MODE_IMMEDIATE
        mode = os.getenv("EXECUTION_MODE", MODE_NORMAL).strip().lower() or MODE_NORMAL
        if mode not in EXECUTION_MODES:
            raise ValueError(
                f"EXECUTION_MODE must be one of {', '.join(EXECUTION_MODES)} (got {mode!r})"
            )
        return mode

    def validate(self) -> bool:
        """Validate required configuration."""
        if not self.username:
            raise ValueError("PILATES_USERNAME environment variable is required")
        if not self.password:
            raise ValueError("PILATES_PASSWORD environment variable is required")
        if self.max_retries < 1:
            raise ValueError("MAX_RETRIES must be at least 1")
        if self.max_wait_minutes < 0:
            raise ValueError("MAX_WAIT_MINUTES must not be negative")
        return True


def get_config() -> Config:
    """Get configuration instance."""
    config = Config()
    config.validate()
    return config
