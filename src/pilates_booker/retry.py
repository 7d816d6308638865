"""
Retry loop around booking attempts.
"""
import random
import time
from typing import Callable, ContextManager, Optional

from .booking import AttemptResult, BookingAttempt
from .clock import ExecutionContext
from .config import Config
from .errors import AttemptFailedError, ConflictDetectedError, TimeoutDetectedError
from .notifier import Logger
from .page import PageDriver
from .results import RunResult, failed_result, outcome_result


BASE_RETRY_DELAY = 1.0
TIMEOUT_RETRY_DELAY = 2.0
# 동시신청 충돌 시 다른 접속자와 시점을 어긋나게 하기 위한 랜덤 대기 구간
CONFLICT_DELAY_RANGE = (3.0, 5.0)


class RetryController:
    """
    Runs attempts one after another until one settles or the budget is spent.

    Every attempt gets its own browser session from ``session_factory`` and
    that session is closed before the next attempt starts.
    """

    def __init__(
        self,
        config: Config,
        context: ExecutionContext,
        logger: Logger,
        session_factory: Callable[[], ContextManager[PageDriver]],
        attempt_factory: Optional[Callable[[PageDriver], BookingAttempt]] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.context = context
        self.logger = logger
        self.session_factory = session_factory
        self.attempt_factory = attempt_factory or self._default_attempt
        self.sleep = sleep
        self.rng = rng or random.Random()

    def _default_attempt(self, driver: PageDriver) -> BookingAttempt:
        return BookingAttempt(driver, self.config, self.context, self.logger, sleep=self.sleep)

    def backoff(self, error: Exception) -> float:
        """Delay before the next attempt, in seconds."""
        if isinstance(error, ConflictDetectedError):
            return self.rng.uniform(*CONFLICT_DELAY_RANGE)
        if isinstance(error, TimeoutDetectedError):
            return TIMEOUT_RETRY_DELAY
        return BASE_RETRY_DELAY

    def _attempt_once(self) -> AttemptResult:
        with self.session_factory() as driver:
            result = self.attempt_factory(driver).run()
            if not result.outcome.is_terminal:
                raise AttemptFailedError(f"예약 처리 실패: {result.outcome.kind.value}")
            return result

    def run(self, waited_seconds: float = 0.0) -> RunResult:
        max_retries = self.context.max_retries
        retry_count = 0
        last_error = ""

        while retry_count < max_retries:
            self.logger.info(f"🎯 예약 시도 {retry_count + 1}/{max_retries}")
            try:
                result = self._attempt_once()
            except Exception as e:
                retry_count += 1
                last_error = str(e)
                self.logger.info(f"❌ 시도 {retry_count}/{max_retries} 실패: {e}")
                if retry_count < max_retries:
                    delay = self.backoff(e)
                    if isinstance(e, ConflictDetectedError):
                        self.logger.info(f"🎲 동시신청 충돌 - 랜덤 대기: {delay * 1000:.0f}ms")
                    self.logger.info(f"⏳ {delay:.1f}초 후 재시도...")
                    self.sleep(delay)
                continue

            self.logger.info("🎉🎉🎉 예약 프로세스 성공! 🎉🎉🎉")
            if result.state.is_waiting_reservation:
                self.logger.info("⚠️ 대기예약으로 등록되었습니다.")
            return outcome_result(
                self.context,
                result.outcome,
                result.message,
                retry_count=retry_count,
                booking_success=result.state.booking_success,
                is_waiting_reservation=result.state.is_waiting_reservation,
                verified=result.verified,
                waited_seconds=waited_seconds,
            )

        self.logger.info("❌❌❌ 예약 실패 ❌❌❌")
        message = "예약 실패 - 동시신청 충돌 또는 시스템 오류"
        if last_error:
            message = f"{message} (마지막 오류: {last_error})"
        return failed_result(self.context, retry_count, message, waited_seconds=waited_seconds)
