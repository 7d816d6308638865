"""
Precise waiter: hold the run until the booking window opens.

The wait is done in three tiers so the process sleeps cheaply while the
open time is far away and wakes often only in the last minute:

- coarse: more than 2 minutes left, sleep ~60s and re-read the clock
- medium: 2 minutes or less, two ~30s sleeps
- fine:   under a minute, 2s / 1s / 200ms steps until the target second
"""
import time
from dataclasses import dataclass
from datetime import datetime
from datetime import time as TimeOfDay
from typing import Callable

from .clock import now_kst
from .notifier import Logger


COARSE_THRESHOLD = 120.0
COARSE_STEP = 60.0
MEDIUM_STEP = 30.0
MEDIUM_SLEEPS = 2
FINE_THRESHOLD = 60.0
MIN_STEP = 0.1

# 목표 시각을 이만큼 넘겼으면 다음날까지 기다리지 않고 바로 진행
PASSED_TOLERANCE = 1.0


@dataclass(frozen=True)
class WaitReport:
    actual_start: datetime
    waited: float  # seconds

    @property
    def skipped(self) -> bool:
        return self.waited == 0


def seconds_until(now: datetime, target: TimeOfDay) -> float:
    """
    Seconds from ``now`` to ``target`` on a 24h clock.

    When it is already 23:xx and the target is in the morning, the target is
    taken to be tomorrow. Otherwise a target earlier than now yields a
    negative number.
    """
    now_seconds = now.hour * 3600 + now.minute * 60 + now.second + now.microsecond / 1_000_000
    target_seconds = target.hour * 3600 + target.minute * 60 + target.second
    if now.hour >= 23 and target.hour < 12:
        target_seconds += 24 * 3600
    return target_seconds - now_seconds


def fine_step(remaining: float) -> float:
    """Sleep increment for the last minute."""
    if remaining > 30:
        return 2.0
    if remaining > 10:
        return 1.0
    return 0.2


class PreciseWaiter:
    """Blocks the (single) caller until a time-of-day in KST."""

    def __init__(
        self,
        logger: Logger,
        clock: Callable[[], datetime] = now_kst,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = logger
        self.clock = clock
        self.sleep = sleep
        self._waited = 0.0

    def _nap(self, seconds: float) -> None:
        seconds = max(seconds, MIN_STEP)
        self.sleep(seconds)
        self._waited += seconds

    def _remaining(self, target: TimeOfDay) -> float:
        return seconds_until(self.clock(), target)

    def wait_until(
        self,
        target: TimeOfDay,
        max_wait_minutes: float,
        immediate: bool = False,
    ) -> WaitReport:
        """
        Wait until ``target`` (KST time-of-day).

        Returns right away in immediate mode, when the target has already
        passed, or when it is further away than ``max_wait_minutes``.
        """
        self._waited = 0.0
        target_label = target.strftime("%H:%M:%S")

        if immediate:
            self.logger.info("⚡ 즉시 실행 모드 - 대기 없이 진행")
            return WaitReport(self.clock(), 0.0)

        remaining = self._remaining(target)
        if remaining <= 0:
            self.logger.info(f"이미 목표 시각({target_label})이 지났습니다. 즉시 실행합니다.")
            return WaitReport(self.clock(), 0.0)

        budget = max_wait_minutes * 60
        if remaining > budget:
            self.logger.info(
                f"⏭️ 목표 시각({target_label})까지 {remaining / 60:.1f}분 - "
                f"최대 대기({max_wait_minutes}분) 초과, 대기 없이 진행"
            )
            return WaitReport(self.clock(), 0.0)

        self.logger.info(f"⏰ 목표 시각 {target_label} 까지 {remaining:.1f}초 대기 시작")

        # 1단계: 2분 넘게 남았으면 1분 단위
        while remaining > COARSE_THRESHOLD and self._waited < budget:
            self._nap(min(COARSE_STEP, remaining - COARSE_THRESHOLD))
            remaining = self._remaining(target)
            self.logger.info(f"⏰ {int(remaining // 60)}분 {int(remaining % 60)}초 남음...")

        # 2단계: 30초씩 두 번
        for _ in range(MEDIUM_SLEEPS):
            if remaining < FINE_THRESHOLD or self._waited >= budget:
                break
            self._nap(min(MEDIUM_STEP, remaining - FINE_THRESHOLD + MIN_STEP))
            remaining = self._remaining(target)
            self.logger.debug(f"⏰ {remaining:.1f}초 남음")

        # 3단계: 마지막 1분 정밀 대기
        if remaining > 0:
            self.logger.info(f"🎯 마지막 {remaining:.1f}초 정밀 대기 시작...")
        while self._waited < budget:
            remaining = self._remaining(target)
            if remaining <= 0:
                if -remaining > PASSED_TOLERANCE:
                    self.logger.info(f"⚠️ 목표 시각을 {-remaining:.1f}초 지남 - 바로 진행")
                break
            self._nap(min(fine_step(remaining), remaining))

        actual = self.clock()
        self.logger.info(f"🚀 목표 시각 도달! 실제 시각: {actual.strftime('%H:%M:%S.%f')[:-3]}")
        return WaitReport(actual, self._waited)

