import pytest

from pilates_booker.config import Config
from pilates_booker.notifier import Logger


ENV_KEYS = (
    "PILATES_USERNAME", "PILATES_PASSWORD", "BASE_URL", "EXECUTION_MODE",
    "TEST_MODE", "FORCE_RUN", "IMMEDIATE", "TARGET_TIME", "MAX_WAIT_MINUTES",
    "MAX_RETRIES", "CLASS_TIME", "DEBUG", "HEADLESS", "SAVE_SCREENSHOTS",
    "BLOCK_IMAGES", "SLACK_URL", "GITHUB_ACTIONS", "CI",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("PILATES_USERNAME", "홍길동")
    monkeypatch.setenv("PILATES_PASSWORD", "1234")


@pytest.fixture
def config(credentials):
    cfg = Config()
    cfg.attempt.dialog_timeout = 0
    cfg.attempt.settle_delay = 0
    cfg.attempt.verify_settle_delay = 0
    return cfg


@pytest.fixture
def logger():
    return Logger()
