"""
Page driver interface used by the booking attempt.

The booking logic only talks to this interface; ``browser.py`` provides the
Selenium implementation and the tests provide a scripted fake.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence


# 사이트 경로
LOGIN_PATH = "/yeapp/yeapp.php?tm=102"
BOOKING_LIST_PATH = "/yeapp/yeapp.php?tm=103"
BOOKING_FORM_MARKER = "res_postform.php"


@dataclass
class SlotActionRef:
    """The action cell of a class row: its text and a handle to click it."""
    text: str
    handle: Any = None

    @property
    def clickable(self) -> bool:
        return self.handle is not None


class Dialog:
    """A modal alert/confirm raised by the page."""

    @property
    def text(self) -> str:
        raise NotImplementedError

    def accept(self) -> None:
        raise NotImplementedError

    def dismiss(self) -> None:
        raise NotImplementedError


class PageDriver:
    """Browser capabilities the booking attempt relies on."""

    @property
    def current_url(self) -> str:
        raise NotImplementedError

    def navigate(self, url: str) -> None:
        raise NotImplementedError

    def login(self, username: str, password: str) -> bool:
        """Fill and submit the login form. Returns True when logged in."""
        raise NotImplementedError

    def select_day(self, day: int) -> bool:
        """Click the given day in the booking calendar."""
        raise NotImplementedError

    def find_slot_actions(self, time_labels: Sequence[str]) -> List[SlotActionRef]:
        """Action cells of every morning class row matching ``time_labels``, in page order."""
        raise NotImplementedError

    def invoke_action(self, ref: SlotActionRef) -> None:
        raise NotImplementedError

    def invoke_submit(self) -> bool:
        """Click the reservation form's submit control. False if none exists."""
        raise NotImplementedError

    def read_text(self, scope: str = "body") -> str:
        raise NotImplementedError

    def snapshot(self, label: str) -> Optional[str]:
        """Save a diagnostic screenshot and return its path."""
        raise NotImplementedError

    def next_dialog(self, timeout: float) -> Optional[Dialog]:
        """Wait up to ``timeout`` seconds for a dialog; None if none appears."""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError
