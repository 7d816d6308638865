"""Shared fakes and utilities for unit tests."""
from contextlib import contextmanager
from datetime import datetime, timedelta
from datetime import time as TimeOfDay
from typing import List, Optional, Sequence

from pilates_booker.clock import KST, ExecutionContext, ExecutionMode
from pilates_booker.page import Dialog, PageDriver, SlotActionRef


BOOKING_FORM_URL = "https://ad2.mbgym.kr/yeapp/res_postform.php"


def kst(*args) -> datetime:
    return datetime(*args, tzinfo=KST)


def make_context(
    now: datetime,
    mode: ExecutionMode = ExecutionMode.NORMAL,
    max_retries: int = 3,
) -> ExecutionContext:
    return ExecutionContext(
        now=now,
        mode=mode,
        target_time=TimeOfDay(0, 0, 0),
        max_wait_minutes=10,
        max_retries=max_retries,
    )


class FakeClock:
    """Clock whose time only moves when ``sleep`` is called."""

    def __init__(self, start: datetime):
        self.current = start
        self.sleeps: List[float] = []

    def __call__(self) -> datetime:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)


class FakeDialog(Dialog):
    def __init__(self, text: str):
        self._text = text
        self.accepted = False
        self.dismissed = False

    @property
    def text(self) -> str:
        return self._text

    def accept(self) -> None:
        self.accepted = True

    def dismiss(self) -> None:
        self.dismissed = True


class FakePageDriver(PageDriver):
    """
    Scripted page driver.

    ``slot_text`` is the action cell text of a single 09:30 row (None: no row).
    ``slot_texts`` gives several 09:30 rows instead, in page order.
    Dialogs in ``action_dialogs`` appear after the slot action is clicked,
    those in ``submit_dialogs`` after the submit control is clicked.
    """

    def __init__(
        self,
        slot_text: Optional[str] = "예약하기",
        slot_texts: Optional[Sequence[str]] = None,
        action_dialogs: Sequence[str] = (),
        submit_dialogs: Sequence[str] = (),
        login_ok: bool = True,
        has_submit: bool = True,
        body_text: str = "",
        url: str = BOOKING_FORM_URL,
    ):
        if slot_texts is not None:
            self.slot_texts = list(slot_texts)
        else:
            self.slot_texts = [] if slot_text is None else [slot_text]
        self.action_dialogs = [FakeDialog(t) for t in action_dialogs]
        self.submit_dialogs = [FakeDialog(t) for t in submit_dialogs]
        self.login_ok = login_ok
        self.has_submit = has_submit
        self.body_text = body_text
        self._url = url
        self.pending: List[FakeDialog] = []
        self.calls: List[str] = []
        self.snapshots: List[str] = []
        self.clicked: List[str] = []
        self.closed = False

    @property
    def current_url(self) -> str:
        return self._url

    def navigate(self, url: str) -> None:
        self.calls.append(f"navigate:{url}")

    def login(self, username: str, password: str) -> bool:
        self.calls.append("login")
        return self.login_ok

    def select_day(self, day: int) -> bool:
        self.calls.append(f"select_day:{day}")
        return True

    def find_slot_actions(self, time_labels: Sequence[str]) -> List[SlotActionRef]:
        self.calls.append("find_slot")
        return [SlotActionRef(text=text, handle=index) for index, text in enumerate(self.slot_texts)]

    def invoke_action(self, ref: SlotActionRef) -> None:
        self.calls.append("invoke_action")
        self.clicked.append(f"row{ref.handle + 1}:{ref.text}")
        self.pending.extend(self.action_dialogs)

    def invoke_submit(self) -> bool:
        self.calls.append("invoke_submit")
        if not self.has_submit:
            return False
        self.pending.extend(self.submit_dialogs)
        return True

    def read_text(self, scope: str = "body") -> str:
        return self.body_text

    def snapshot(self, label: str) -> Optional[str]:
        self.snapshots.append(label)
        return None

    def next_dialog(self, timeout: float) -> Optional[Dialog]:
        if self.pending:
            return self.pending.pop(0)
        return None

    def close(self) -> None:
        self.closed = True


class SessionScript:
    """Hands out one scripted driver per attempt and tracks open/close order."""

    def __init__(self, drivers: Sequence[FakePageDriver]):
        self.drivers = list(drivers)
        self.opened: List[FakePageDriver] = []
        self.events: List[str] = []

    @contextmanager
    def __call__(self):
        driver = self.drivers[len(self.opened)]
        self.opened.append(driver)
        self.events.append(f"open:{len(self.opened)}")
        try:
            yield driver
        finally:
            driver.close()
            self.events.append(f"close:{len(self.opened)}")
