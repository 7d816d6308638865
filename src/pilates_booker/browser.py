"""
Chrome WebDriver configuration and the Selenium page driver.
"""
import os
import subprocess
import sys
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from selenium import webdriver
from selenium.common.exceptions import (
    NoAlertPresentException,
    NoSuchElementException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .config import AttemptSettings, Config
from .notifier import Logger
from .page import BOOKING_FORM_MARKER, LOGIN_PATH, Dialog, PageDriver, SlotActionRef


def is_display_available() -> bool:
    """Check if a desktop display is available (macOS/Linux)."""
    # GitHub Actions에서는 항상 headless
    if os.getenv("GITHUB_ACTIONS"):
        return False

    if sys.platform.startswith("linux"):
        return bool(os.getenv("DISPLAY") or os.getenv("WAYLAND_DISPLAY"))

    try:
        # macOS: WindowServer 프로세스 확인
        result = subprocess.run(
            ["pgrep", "-f", "WindowServer"],
            capture_output=True,
            text=True,
        )
    except OSError:
        return False
    return result.returncode == 0


def create_driver(settings: AttemptSettings, logger: Logger) -> webdriver.Chrome:
    """
    Create and configure Chrome WebDriver.

    Args:
        settings: Per-attempt browser settings

    Returns:
        Configured Chrome WebDriver instance
    """
    options = Options()

    # 🚀 페이지 로드 전략: eager = DOM만 로드되면 진행 (이미지/CSS 기다리지 않음)
    options.page_load_strategy = 'eager'

    # HEADLESS=false 이고 디스플레이가 있으면 GUI 모드
    if not settings.headless and is_display_available():
        logger.info("[Browser] 🖥️ GUI 모드로 실행 (디스플레이 감지됨)")
        options.add_argument(f"--window-size={settings.window_size}")
    else:
        logger.info("[Browser] 🔧 Headless 모드로 실행")
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-setuid-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument(f"--window-size={settings.window_size}")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        options.add_experimental_option("useAutomationExtension", False)
        # User-Agent 설정 (headless 감지 방지)
        options.add_argument(
            "--user-agent=Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/142.0.0.0 Safari/537.36"
        )

    options.add_argument("--lang=ko-KR")
    prefs = {"intl.accept_languages": "ko-KR,ko"}
    if settings.block_images:
        prefs["profile.managed_default_content_settings.images"] = 2
    options.add_experimental_option("prefs", prefs)

    driver = webdriver.Chrome(options=options)
    driver.set_page_load_timeout(settings.page_load_timeout)

    return driver


class SeleniumDialog(Dialog):
    """Wraps a Selenium alert."""

    def __init__(self, alert):
        self._alert = alert
        self._text = alert.text

    @property
    def text(self) -> str:
        return self._text

    def accept(self) -> None:
        self._alert.accept()

    def dismiss(self) -> None:
        self._alert.dismiss()


# 예약 캘린더에서 날짜 셀 클릭
SELECT_DAY_JS = """
var targetDay = arguments[0];
var regex = new RegExp('^' + targetDay + '(\\\\s|$|[^0-9])');
var cells = document.querySelectorAll('td');
for (var i = 0; i < cells.length; i++) {
    var cell = cells[i];
    var text = cell.textContent.trim();
    if (!regex.test(text) || text.indexOf('X') !== -1) {
        continue;
    }
    var link = cell.querySelector('a');
    (link || cell).click();
    return true;
}
return false;
"""

# 오전 수업 행마다 예약 버튼 셀 수집 (행 순서대로)
FIND_SLOTS_JS = """
var labels = arguments[0];
var rows = document.querySelectorAll('tr');
var found = [];
function hasLabel(text) {
    for (var k = 0; k < labels.length; k++) {
        if (text.indexOf(labels[k]) !== -1) { return true; }
    }
    return false;
}
for (var i = 0; i < rows.length; i++) {
    var rowText = rows[i].textContent || '';
    if (!hasLabel(rowText) || rowText.indexOf('오후') !== -1 || rowText.indexOf('PM') !== -1) {
        continue;
    }
    var cells = rows[i].querySelectorAll('td');
    if (cells.length < 3) { continue; }
    for (var j = 0; j < cells.length; j++) {
        if (!hasLabel(cells[j].textContent.trim())) { continue; }
        var actionCell = cells[cells.length - 1];
        if (j < cells.length - 1) {
            var next = cells[j + 1].textContent;
            if (next.indexOf('예약') !== -1 || next.indexOf('대기') !== -1 || next.indexOf('완료') !== -1) {
                actionCell = cells[j + 1];
            }
        }
        found.push([actionCell.textContent.trim(), actionCell.querySelector('a')]);
        break;
    }
}
return found;
"""

# 예약 폼 제출
SUBMIT_JS = """
var candidates = [].concat(
    Array.prototype.slice.call(document.querySelectorAll('input[type="submit"]')),
    Array.prototype.slice.call(document.querySelectorAll('button[type="submit"]')),
    Array.prototype.slice.call(document.querySelectorAll('input[type="image"]')),
    Array.prototype.slice.call(document.querySelectorAll('button'))
);
for (var i = 0; i < candidates.length; i++) {
    var text = (candidates[i].value || candidates[i].textContent || '').trim();
    if (text.indexOf('예약') !== -1 || text.indexOf('확인') !== -1 ||
        text.indexOf('등록') !== -1 || text === 'Submit') {
        candidates[i].click();
        return true;
    }
}
var forms = document.querySelectorAll('form');
if (forms.length > 0) {
    forms[0].submit();
    return true;
}
return false;
"""


class SeleniumPageDriver(PageDriver):
    """Page driver backed by a Chrome WebDriver."""

    def __init__(
        self,
        driver: webdriver.Chrome,
        base_url: str,
        settings: AttemptSettings,
        logger: Logger,
        screenshot_prefix: str = "",
    ):
        self.driver = driver
        self.base_url = base_url.rstrip('/')
        self.settings = settings
        self.logger = logger
        self.screenshot_prefix = screenshot_prefix

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    def navigate(self, url: str) -> None:
        if url.startswith("/"):
            url = self.base_url + url
        self.driver.get(url)
        WebDriverWait(self.driver, self.settings.page_load_timeout).until(
            lambda d: d.execute_script("return document.readyState") in ("interactive", "complete")
        )

    def login(self, username: str, password: str) -> bool:
        self.logger.info(f"🔐 로그인 페이지로 이동, url: {self.base_url}{LOGIN_PATH}")
        self.navigate(LOGIN_PATH)

        # 이미 로그인된 상태인지 확인
        if self.driver.find_elements(By.CSS_SELECTOR, 'a[href*="yeout.php"]'):
            self.logger.info("✅ 이미 로그인된 상태")
            return True

        try:
            WebDriverWait(self.driver, self.settings.element_timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, 'input#user_id, input[name="name"]'))
            )
        except TimeoutException:
            self.logger.info("❌ 로그인 폼을 찾을 수 없습니다")
            return False

        user_input = self._first_element('input#user_id', 'input[name="name"]')
        pass_input = self._first_element('input#passwd', 'input[name="passwd"]')
        if user_input is None or pass_input is None:
            self.logger.info("❌ 로그인 입력 필드를 찾을 수 없습니다")
            return False

        self.logger.info("📝 로그인 정보 입력 중")
        user_input.clear()
        user_input.send_keys(username)
        pass_input.clear()
        pass_input.send_keys(password)

        submit = self._first_element('input[type="submit"]')
        if submit is None:
            self.logger.info("❌ 로그인 버튼을 찾을 수 없습니다")
            return False

        self.logger.info("🔘 로그인 버튼 클릭")
        self.driver.execute_script("arguments[0].click();", submit)

        # 로그인 실패 알림 (등록되지 않은 회원 등)
        try:
            WebDriverWait(self.driver, 2).until(EC.alert_is_present())
            alert = self.driver.switch_to.alert
            self.logger.info(f"⚠️ 로그인 알림창: {alert.text}")
            alert.accept()
            return False
        except (TimeoutException, NoAlertPresentException):
            pass

        try:
            WebDriverWait(self.driver, self.settings.page_load_timeout).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )
        except TimeoutException:
            self.logger.info("⚠️ 로그인 후 페이지 로딩 시간 초과")

        if BOOKING_FORM_MARKER in self.current_url:
            self.logger.info("✅ 로그인 성공 - 예약 페이지 진입")
        else:
            self.logger.info(f"✅ 로그인 완료 (URL: {self.current_url})")
        return True

    def _first_element(self, *selectors: str):
        for selector in selectors:
            elements = self.driver.find_elements(By.CSS_SELECTOR, selector)
            if elements:
                return elements[0]
        return None

    def select_day(self, day: int) -> bool:
        clicked = bool(self.driver.execute_script(SELECT_DAY_JS, day))
        if clicked:
            time.sleep(self.settings.day_settle_delay)
        return clicked

    def find_slot_actions(self, time_labels: Sequence[str]) -> List[SlotActionRef]:
        try:
            WebDriverWait(self.driver, self.settings.element_timeout).until(
                EC.presence_of_element_located((By.TAG_NAME, 'table'))
            )
        except TimeoutException:
            self.logger.info("⚠️ 테이블 로드 대기 시간 초과")

        found = self.driver.execute_script(FIND_SLOTS_JS, list(time_labels)) or []
        return [SlotActionRef(text=text or "", handle=link) for text, link in found]

    def invoke_action(self, ref: SlotActionRef) -> None:
        if not ref.clickable:
            raise NoSuchElementException(f"클릭할 링크가 없습니다: {ref.text}")
        self.driver.execute_script("arguments[0].click();", ref.handle)

    def invoke_submit(self) -> bool:
        return bool(self.driver.execute_script(SUBMIT_JS))

    def read_text(self, scope: str = "body") -> str:
        elements = self.driver.find_elements(By.CSS_SELECTOR, scope)
        if not elements:
            return ""
        return elements[0].text or ""

    def snapshot(self, label: str) -> Optional[str]:
        if not self.settings.save_screenshots:
            return None
        try:
            os.makedirs(self.settings.screenshot_dir, exist_ok=True)
            timestamp = int(time.time() * 1000)
            path = os.path.join(
                self.settings.screenshot_dir,
                f"{self.screenshot_prefix}{label}-{timestamp}.png",
            )
            self.driver.save_screenshot(path)
            self.logger.info(f"📸 스크린샷 저장: {path}")
            return path
        except (OSError, WebDriverException) as e:
            self.logger.info(f"⚠️ 스크린샷 실패: {e}")
            return None

    def next_dialog(self, timeout: float) -> Optional[Dialog]:
        try:
            WebDriverWait(self.driver, timeout).until(EC.alert_is_present())
            return SeleniumDialog(self.driver.switch_to.alert)
        except (TimeoutException, NoAlertPresentException):
            return None

    def close(self) -> None:
        self.driver.quit()


@contextmanager
def open_session(config: Config, logger: Logger) -> Iterator[SeleniumPageDriver]:
    """
    Launch a fresh browser for one attempt and always quit it afterwards.
    """
    logger.info("Chrome Driver 설정 시작")
    driver = create_driver(config.attempt, logger)
    logger.info("✅ Chrome Driver 설정 완료")
    page = SeleniumPageDriver(
        driver,
        config.base_url,
        config.attempt,
        logger,
        screenshot_prefix="test-" if config.is_test_mode else "",
    )
    try:
        yield page
    finally:
        try:
            page.close()
            logger.info("🔚 브라우저 종료")
        except WebDriverException as e:
            logger.info(f"⚠️ 브라우저 종료 실패: {e}")
