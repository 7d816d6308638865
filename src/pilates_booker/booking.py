"""
One booking attempt: login → booking view → find the class → act → confirm.

An attempt owns a fresh :class:`AttemptState` and a single browser session.
Retryable problems are raised as :mod:`errors`; settled outcomes (booked,
waitlisted, already booked, unavailable) are returned.
"""
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .clock import ExecutionContext
from .config import Config
from .errors import (
    AttemptFailedError,
    AuthenticationError,
    ConflictDetectedError,
    SlotNotFoundError,
    SubmitNotFoundError,
    TimeoutDetectedError,
)
from .notifier import Logger
from .outcome import (
    ACTIONABLE,
    AttemptState,
    BookingOutcome,
    DialogClassifier,
    OutcomeKind,
    SlotAction,
    classify_action_cell,
    classify_slot,
)
from .page import BOOKING_FORM_MARKER, BOOKING_LIST_PATH, LOGIN_PATH, PageDriver, SlotActionRef
from .verification import (
    calendar_marks_day,
    list_shows_booking,
    page_shows_success,
    time_variants,
)


@dataclass
class AttemptResult:
    outcome: BookingOutcome
    state: AttemptState
    message: str
    verified: Optional[bool] = None


class BookingAttempt:
    """Drives one booking attempt through the page driver."""

    def __init__(
        self,
        driver: PageDriver,
        config: Config,
        context: ExecutionContext,
        logger: Logger,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.driver = driver
        self.config = config
        self.settings = config.attempt
        self.context = context
        self.logger = logger
        self.sleep = sleep
        self.state = AttemptState()
        self.class_time = context.class_time

    def _snapshot(self, label: str) -> None:
        """Diagnostic screenshot. Never allowed to break the attempt."""
        try:
            self.driver.snapshot(label)
        except Exception as e:
            self.logger.info(f"⚠️ 스크린샷 실패: {e}")

    def login(self) -> None:
        """Login to the booking site."""
        self.logger.info("🔐 로그인 시도...")
        try:
            logged_in = self.driver.login(self.config.username, self.config.password)
        except Exception as e:
            raise AuthenticationError(f"로그인 실패: {e}")
        if not logged_in:
            raise AuthenticationError("로그인 실패")

    def open_booking_view(self) -> None:
        """Make sure the booking form is open and pick the target day."""
        target = self.context.target
        self.logger.info("📅 예약 페이지로 이동...")
        self.logger.info(f"📆 예약 날짜: {target.year}년 {target.month}월 {target.day}일 (KST 기준)")

        if BOOKING_FORM_MARKER not in self.driver.current_url:
            self.driver.navigate(LOGIN_PATH)

        if BOOKING_FORM_MARKER not in self.driver.current_url:
            self.logger.info(f"⚠️ 예약 페이지 확인 불가 (URL: {self.driver.current_url})")
        else:
            self.logger.info("📍 예약 페이지에 있음")
            if self.driver.select_day(target.day):
                self.logger.info(f"✅ {target.day}일 클릭 완료")
            else:
                self.logger.info(f"⚠️ {target.day}일 예약 불가 또는 마감")

        self._snapshot("03-booking-page")

    def locate_slots(self) -> List[SlotActionRef]:
        self.logger.info(f"🔍 {self.class_time} 수업 찾는 중...")
        refs = self.driver.find_slot_actions(time_variants(self.class_time))
        for index, ref in enumerate(refs, 1):
            self.logger.info(f"🔍 {self.class_time} 수업 {index}번째 행: '{ref.text}'")
        return refs

    def _raise_for(self, outcome: Optional[BookingOutcome]) -> None:
        if outcome is None:
            return
        if outcome.kind == OutcomeKind.NOT_FOUND:
            raise SlotNotFoundError(f"{self.class_time} 수업을 찾을 수 없음")
        if outcome.kind == OutcomeKind.CONFLICT_DETECTED:
            raise ConflictDetectedError(f"동시신청 충돌: {outcome.reason}")
        if outcome.kind == OutcomeKind.TIMEOUT_DETECTED:
            raise TimeoutDetectedError(f"시간초과: {outcome.reason}")
        if outcome.kind == OutcomeKind.FAILED:
            raise AttemptFailedError(outcome.reason)

    def act(self, ref: SlotActionRef, action: SlotAction) -> BookingOutcome:
        """
        Click the slot action and follow it through to a settled outcome.

        Only the "book now" path has a submit step; joining the waitlist is
        done once its confirm dialog is accepted.
        """
        classifier = DialogClassifier(self.state, self.logger)

        self.driver.invoke_action(ref)
        if action == SlotAction.JOIN_WAITLIST:
            self.logger.info(f"⏳ {self.class_time} 수업 대기예약 처리 대기 중...")
            classifier.drain(self.driver, self.settings.dialog_timeout)
        else:
            self.logger.info(f"⏳ {self.class_time} 수업 예약 클릭 - 처리 대기 중...")
            classifier.drain(self.driver, self.settings.settle_delay)

        if action == SlotAction.BOOK_NOW and classifier.outcome is None:
            self.logger.info("📝 Submit 처리 준비...")
            self.sleep(self.settings.settle_delay)
            if not self.driver.invoke_submit():
                raise SubmitNotFoundError("Submit 버튼을 찾지 못함")
            self.logger.info("✅ Submit 완료!")
            classifier.drain(self.driver, self.settings.dialog_timeout)
            self._snapshot("06-after-submit")

        self.state = classifier.state
        outcome = classifier.outcome
        self._raise_for(outcome)

        if action == SlotAction.JOIN_WAITLIST:
            if outcome is None or outcome.kind == OutcomeKind.BOOKED:
                outcome = BookingOutcome.waitlisted(outcome.reason if outcome else "")
                self.state = self.state.apply(outcome)
        elif outcome is None:
            outcome = BookingOutcome.booked()
            self.state = self.state.apply(outcome)

        self._snapshot("07-booking-result")
        return outcome

    def verify_booking(self) -> bool:
        """
        Look for evidence of the booking: success text on the current page,
        then the reservation list, then an asterisk on the calendar day.

        Any error here only means "unverified"; the booking itself stands.
        """
        self.logger.info("🔍 예약 확인 중...")
        target = self.context.target
        try:
            self.sleep(self.settings.verify_settle_delay)
            if page_shows_success(self.driver.read_text()):
                self.logger.info("✅ 예약 성공 메시지 확인!")
                self._snapshot("08-booking-success-message")
                return True

            self.logger.info("📋 예약 목록 페이지로 이동...")
            self.driver.navigate(BOOKING_LIST_PATH)
            self.sleep(self.settings.verify_settle_delay)
            self._snapshot("08-booking-list-page")
            matched = list_shows_booking(self.driver.read_text(), target, self.class_time)
            if matched:
                self.logger.info(f"✅ 예약이 정상적으로 확인되었습니다! ({matched})")
                return True

            self.logger.info("📅 캘린더에서 확인 시도...")
            self.driver.navigate(LOGIN_PATH)
            self.sleep(self.settings.settle_delay)
            self._snapshot("08-calendar-check")
            if calendar_marks_day(self.driver.read_text(), target.day):
                self.logger.info("✅ 캘린더에서 예약이 확인되었습니다!")
                return True

            self.logger.info("⚠️ 명시적 예약 확인 실패 - 예약 프로세스는 완료됨")
            return False

        except Exception as e:
            self.logger.info(f"⚠️ 예약 확인 과정 에러: {e}")
            return False

    def run(self) -> AttemptResult:
        """
        Run the full attempt.

        Raises:
            BookingAttemptError: for every retryable failure
        """
        self.state = AttemptState()
        label = self.class_time

        try:
            self._snapshot("01-login-page")
            self.login()
            self._snapshot("02-after-login")

            self.open_booking_view()

            refs = self.locate_slots()
            settled = classify_slot([ref.text for ref in refs])
            self._raise_for(settled)
            if settled is not None:
                self.state = self.state.apply(settled)
                if settled.kind == OutcomeKind.UNAVAILABLE:
                    message = f"{label} 수업 예약 불가 (정원 마감)"
                elif settled.was_waiting:
                    message = f"{label} 수업 대기예약이 이미 완료됨"
                else:
                    message = f"{label} 수업은 이미 예약됨"
                self.logger.info(f"✅ {message} - 중복 예약 방지")
                return AttemptResult(settled, self.state, message)

            ref = next((r for r in refs if classify_action_cell(r.text) in ACTIONABLE), None)
            if ref is None:
                texts = ", ".join(f"'{r.text}'" for r in refs)
                raise AttemptFailedError(f"{label} 수업 예약 상태를 알 수 없음: {texts}")
            action = classify_action_cell(ref.text)

            self._snapshot("04-time-table")

            if self.context.is_test:
                self.logger.info("⚠️ 테스트 모드 - 예약 버튼을 누르지 않습니다")
                outcome = (
                    BookingOutcome.waitlisted("테스트 모드")
                    if action == SlotAction.JOIN_WAITLIST
                    else BookingOutcome.booked("테스트 모드")
                )
                return AttemptResult(outcome, self.state, f"{label} 수업 예약 가능 확인 (테스트 모드)")

            outcome = self.act(ref, action)
            if outcome.kind == OutcomeKind.WAITLISTED:
                message = f"{label} 수업 대기예약"
            else:
                message = f"{label} 수업 예약 완료"
            self.logger.info(f"✅ 예약 프로세스 완료: {message}")

            verified = self.verify_booking()
            return AttemptResult(outcome, self.state, message, verified)

        except Exception as e:
            self.logger.info(f"❌ 예약 과정 에러: {e}")
            self._snapshot("error-booking")
            raise
