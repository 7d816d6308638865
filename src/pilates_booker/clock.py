"""
KST clock, booking-date arithmetic and the weekday gate.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone, timedelta
from datetime import time as TimeOfDay
from enum import Enum
from typing import Optional

from .config import (
    Config,
    MODE_FORCED,
    MODE_IMMEDIATE,
    MODE_NORMAL,
    MODE_TEST,
)


# 한국 시간대
KST = timezone(timedelta(hours=9))

# 0=일요일 ... 6=토요일
SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)
DAY_NAMES = ["일요일", "월요일", "화요일", "수요일", "목요일", "금요일", "토요일"]

# 7일 뒤가 주말이 되는 실행 요일
SKIP_WEEKDAYS = (FRIDAY, SATURDAY)


class ExecutionMode(str, Enum):
    NORMAL = MODE_NORMAL
    FORCED = MODE_FORCED
    TEST = MODE_TEST
    IMMEDIATE = MODE_IMMEDIATE


def now_kst() -> datetime:
    """Current instant at a fixed UTC+9 offset, whatever the host timezone is."""
    return datetime.now(timezone.utc).astimezone(KST)


def weekday_of(value: date) -> int:
    """Weekday number with 0=Sunday .. 6=Saturday."""
    return value.isoweekday() % 7


def day_name(weekday: int) -> str:
    return DAY_NAMES[weekday]


@dataclass(frozen=True)
class TargetDate:
    """The class date being booked. The weekday is always derived from the date."""
    year: int
    month: int
    day: int

    @property
    def weekday(self) -> int:
        return weekday_of(self.as_date())

    @property
    def day_name(self) -> str:
        return day_name(self.weekday)

    def as_date(self) -> date:
        return date(self.year, self.month, self.day)

    def label(self) -> str:
        """Date string used in the persisted result, e.g. ``2025-3-7``."""
        return f"{self.year}-{self.month}-{self.day}"


def target_date(now: datetime, offset_days: int = 7) -> TargetDate:
    """Return the KST calendar date ``offset_days`` after ``now``."""
    if now.tzinfo is not None:
        now = now.astimezone(KST)
    target = now + timedelta(days=offset_days)
    return TargetDate(target.year, target.month, target.day)


def should_run(current_weekday: int, mode: ExecutionMode) -> bool:
    """
    Decide whether today's run may book anything.

    Forced and test runs always proceed. Otherwise Friday and Saturday are
    skipped, because their +7 day targets are Saturday and Sunday. The check
    looks at today's weekday, not the target's.
    """
    if mode in (ExecutionMode.FORCED, ExecutionMode.TEST):
        return True
    return current_weekday not in SKIP_WEEKDAYS


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable facts about one process run."""
    now: datetime
    mode: ExecutionMode
    target_time: TimeOfDay
    max_wait_minutes: int
    max_retries: int
    target_day_offset: int = 7
    class_time: str = "09:30"
    target: TargetDate = field(init=False)

    def __post_init__(self):
        if self.now.tzinfo is not None:
            object.__setattr__(self, "now", self.now.astimezone(KST))
        object.__setattr__(self, "target", target_date(self.now, self.target_day_offset))

    @classmethod
    def from_config(cls, config: Config, now: Optional[datetime] = None) -> "ExecutionContext":
        return cls(
            now=now or now_kst(),
            mode=ExecutionMode(config.mode),
            target_time=config.target_time,
            max_wait_minutes=config.max_wait_minutes,
            max_retries=config.max_retries,
            target_day_offset=config.target_day_offset,
            class_time=config.class_time,
        )

    @property
    def current_weekday(self) -> int:
        return weekday_of(self.now)

    @property
    def is_test(self) -> bool:
        return self.mode == ExecutionMode.TEST

    @property
    def immediate(self) -> bool:
        """Test runs start right away, like immediate runs."""
        return self.mode in (ExecutionMode.IMMEDIATE, ExecutionMode.TEST)

    def should_run(self) -> bool:
        return should_run(self.current_weekday, self.mode)

    def rebased(self, now: datetime) -> "ExecutionContext":
        """Same run settings, anchored at a later instant (e.g. after waiting past midnight)."""
        return replace(self, now=now)
