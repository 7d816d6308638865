"""
Booking outcomes and the rules that derive them from page text.

Two kinds of text are classified:

- dialog text (alert/confirm popups raised after clicking), and
- the action cell of the target class row, read before anything is clicked.

The site speaks Korean; every rule also accepts the English wording so the
same rules apply to translated pages. Matching is case-insensitive.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence

from .notifier import Logger


class OutcomeKind(str, Enum):
    BOOKED = "booked"
    WAITLISTED = "waitlisted"
    ALREADY_BOOKED = "already_booked"
    UNAVAILABLE = "unavailable"
    CONFLICT_DETECTED = "conflict_detected"
    TIMEOUT_DETECTED = "timeout_detected"
    NOT_FOUND = "not_found"
    FAILED = "failed"


# 재시도 없이 종료하는 결과 (성공으로 기록)
TERMINAL_KINDS = frozenset({
    OutcomeKind.BOOKED,
    OutcomeKind.WAITLISTED,
    OutcomeKind.ALREADY_BOOKED,
    OutcomeKind.UNAVAILABLE,
})


@dataclass(frozen=True)
class BookingOutcome:
    kind: OutcomeKind
    was_waiting: bool = False
    reason: str = ""

    @classmethod
    def booked(cls, reason: str = "") -> "BookingOutcome":
        return cls(OutcomeKind.BOOKED, reason=reason)

    @classmethod
    def waitlisted(cls, reason: str = "") -> "BookingOutcome":
        return cls(OutcomeKind.WAITLISTED, was_waiting=True, reason=reason)

    @classmethod
    def already_booked(cls, was_waiting: bool) -> "BookingOutcome":
        return cls(OutcomeKind.ALREADY_BOOKED, was_waiting=was_waiting)

    @classmethod
    def unavailable(cls) -> "BookingOutcome":
        return cls(OutcomeKind.UNAVAILABLE)

    @classmethod
    def conflict(cls, reason: str = "") -> "BookingOutcome":
        return cls(OutcomeKind.CONFLICT_DETECTED, reason=reason)

    @classmethod
    def timeout(cls, reason: str = "") -> "BookingOutcome":
        return cls(OutcomeKind.TIMEOUT_DETECTED, reason=reason)

    @classmethod
    def not_found(cls) -> "BookingOutcome":
        return cls(OutcomeKind.NOT_FOUND)

    @classmethod
    def failed(cls, reason: str) -> "BookingOutcome":
        return cls(OutcomeKind.FAILED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


@dataclass(frozen=True)
class AttemptState:
    """Flags for one booking attempt. Each attempt starts from a fresh instance."""
    booking_success: bool = False
    is_waiting_reservation: bool = False
    has_conflict_error: bool = False
    has_timeout_error: bool = False

    def apply(self, outcome: BookingOutcome) -> "AttemptState":
        """Return the state after ``outcome``; the instance itself never changes."""
        kind = outcome.kind
        if kind in (OutcomeKind.BOOKED, OutcomeKind.WAITLISTED, OutcomeKind.ALREADY_BOOKED):
            return replace(
                self,
                booking_success=True,
                is_waiting_reservation=self.is_waiting_reservation or outcome.was_waiting,
            )
        if kind == OutcomeKind.CONFLICT_DETECTED:
            return replace(self, booking_success=False, has_conflict_error=True)
        if kind == OutcomeKind.TIMEOUT_DETECTED:
            return replace(self, booking_success=False, has_timeout_error=True)
        return self


# =========================================================================
# 다이얼로그 문구
# =========================================================================

CAPACITY_EXCEEDED = ("정원이 초과", "capacity exceeded")
WAITLIST_OFFER = ("대기예약", "waitlist")
WEEKLY_LIMIT_REACHED = ("요일별 예약횟수가 완료", "weekly booking count already completed")
CONFLICT = ("동시신청", "잠시 후", "simultaneous request", "try again shortly")
TIMEOUT = ("시간초과", "time out", "timeout")
DATE_NOT_SELECTED = ("날짜를 선택", "select a date")
SLOT_NOT_SELECTED = ("선택된 타임이 없습니다", "예약선택을 하십시오", "no time slot selected")
MEMBER_NOT_REGISTERED = ("등록되어 있지 않습니다", "not registered")
BOOKING_WORD = ("예약", "booking")
BOOKING_DONE = ("완료", "성공", "등록", "complete", "success")


def _contains_any(text: str, phrases: Sequence[str]) -> bool:
    return any(p.lower() in text for p in phrases)


def classify_dialog(message: str) -> Optional[BookingOutcome]:
    """
    Map dialog text to an outcome.

    Rules are checked in priority order and the first match wins. Returns
    None for informational dialogs that carry no booking signal.
    """
    text = (message or "").lower()

    if _contains_any(text, CAPACITY_EXCEEDED) and _contains_any(text, WAITLIST_OFFER):
        return BookingOutcome.waitlisted(message)
    if _contains_any(text, WEEKLY_LIMIT_REACHED):
        return BookingOutcome.booked(message)
    if _contains_any(text, CONFLICT):
        return BookingOutcome.conflict(message)
    if _contains_any(text, TIMEOUT):
        return BookingOutcome.timeout(message)
    if _contains_any(text, DATE_NOT_SELECTED):
        return BookingOutcome.failed(f"날짜 선택 오류: {message}")
    if _contains_any(text, SLOT_NOT_SELECTED):
        return BookingOutcome.failed(f"타임 선택 오류: {message}")
    if _contains_any(text, MEMBER_NOT_REGISTERED):
        return BookingOutcome.failed(f"회원 정보 오류: {message}")
    if _contains_any(text, BOOKING_WORD) and _contains_any(text, BOOKING_DONE):
        return BookingOutcome.booked(message)
    return None


class DialogClassifier:
    """
    Pulls dialogs from the page driver, accepts them and classifies them.

    Only the first dialog that carries a booking signal decides the outcome;
    dialogs after it are accepted without being classified again.
    """

    def __init__(self, state: AttemptState, logger: Logger):
        self.state = state
        self.logger = logger
        self.outcome: Optional[BookingOutcome] = None
        self.seen: list[str] = []

    def handle(self, dialog) -> Optional[BookingOutcome]:
        message = dialog.text
        self.seen.append(message)
        self.logger.info(f"📢 알림: {message}")

        if self.outcome is not None:
            dialog.accept()
            self.logger.debug("중복 알림 - 분류 없이 확인만 처리")
            return self.outcome

        outcome = classify_dialog(message)
        dialog.accept()
        if outcome is None:
            return None

        self.outcome = outcome
        self.state = self.state.apply(outcome)
        if outcome.kind == OutcomeKind.WAITLISTED:
            self.logger.info("✅ 대기예약 확인 완료")
        elif outcome.kind == OutcomeKind.BOOKED:
            self.logger.info("🎉 예약 성공 알림 확인!")
        elif outcome.kind == OutcomeKind.CONFLICT_DETECTED:
            self.logger.info("⚠️ 동시신청 충돌 - 재시도 필요")
        elif outcome.kind == OutcomeKind.TIMEOUT_DETECTED:
            self.logger.info("⚠️ 시간 초과 - 재시도 필요")
        else:
            self.logger.info(f"⚠️ {outcome.reason}")
        return outcome

    def drain(self, driver, timeout: float, follow_timeout: float = 1.0, limit: int = 5) -> Optional[BookingOutcome]:
        """
        Handle every dialog the page raises after an action.

        Waits up to ``timeout`` for the first one, then ``follow_timeout`` for
        each follow-up dialog.
        """
        dialog = driver.next_dialog(timeout)
        handled = 0
        while dialog is not None and handled < limit:
            self.handle(dialog)
            handled += 1
            dialog = driver.next_dialog(follow_timeout)
        return self.outcome


# =========================================================================
# 예약 버튼 셀 문구
# =========================================================================

class SlotAction(str, Enum):
    ALREADY_BOOKED = "already_booked"
    ALREADY_WAITING = "already_waiting"
    BOOK_NOW = "book_now"
    JOIN_WAITLIST = "join_waitlist"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"

    def terminal_outcome(self) -> Optional[BookingOutcome]:
        """Outcome decided without clicking anything, or None if actionable."""
        if self == SlotAction.ALREADY_BOOKED:
            return BookingOutcome.already_booked(was_waiting=False)
        if self == SlotAction.ALREADY_WAITING:
            return BookingOutcome.already_booked(was_waiting=True)
        if self == SlotAction.UNAVAILABLE:
            return BookingOutcome.unavailable()
        return None


ALREADY_DONE = (
    "예약완료", "대기완료", "삭제", "취소",
    "reservation complete", "waitlist complete", "cancel available",
)
WAITING_MARK = ("대기", "waitlist")
BOOK_NOW = ("예약하기", "book now")
JOIN_WAITLIST = ("대기예약", "join waitlist")
UNAVAILABLE = ("마감", "예약불가", "정원초과", "unavailable", "fully booked", "closed")


def classify_action_cell(action_text: str) -> SlotAction:
    """
    Classify the action cell of the target class row.

    An existing booking is checked first so a slot that is already ours is
    never clicked again.
    """
    text = (action_text or "").strip().lower()

    if _contains_any(text, ALREADY_DONE):
        if _contains_any(text, WAITING_MARK):
            return SlotAction.ALREADY_WAITING
        return SlotAction.ALREADY_BOOKED
    if _contains_any(text, BOOK_NOW):
        return SlotAction.BOOK_NOW
    if _contains_any(text, JOIN_WAITLIST):
        return SlotAction.JOIN_WAITLIST
    if _contains_any(text, UNAVAILABLE):
        return SlotAction.UNAVAILABLE
    return SlotAction.UNKNOWN


ACTIONABLE = (SlotAction.BOOK_NOW, SlotAction.JOIN_WAITLIST)


def classify_slot(action_texts: Sequence[str]) -> Optional[BookingOutcome]:
    """
    Outcome implied by the matching class rows alone, before any click.

    The same time can appear on more than one row. If any of them is already
    ours the run is settled, whatever the other rows say. No rows at all is
    NotFound. Rows that are only closed mean Unavailable. Returns None when a
    row can be acted on, or when nothing is recognised.
    """
    if not action_texts:
        return BookingOutcome.not_found()
    actions = [classify_action_cell(text) for text in action_texts]
    for action in actions:
        if action in (SlotAction.ALREADY_BOOKED, SlotAction.ALREADY_WAITING):
            return action.terminal_outcome()
    if any(action in ACTIONABLE for action in actions):
        return None
    if SlotAction.UNAVAILABLE in actions:
        return BookingOutcome.unavailable()
    return None
