"""
Pytest fixtures for the usage scraper test suite.

The Fake* classes stand in for the parts of Playwright's sync API the
scraper touches, so no test launches a browser.
"""

import copy
import json
import sys
from pathlib import Path

import pytest

# Make the top-level modules importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from scraper_config import ScraperConfig  # noqa: E402

USAGE_URL = "https://claude.ai/settings/usage"
LOGIN_URL = "https://claude.ai/login"

SAMPLE_STATE = {
    "cookies": [
        {
            "name": "sessionKey",
            "value": "sk-ant-sid01-abc",
            "domain": ".claude.ai",
            "path": "/",
            "expires": 1893456000,
            "httpOnly": True,
            "secure": True,
            "sameSite": "Lax",
        }
    ],
    "origins": [
        {
            "origin": "https://claude.ai",
            "localStorage": [{"name": "theme", "value": "dark"}],
        }
    ],
}


class FakeResponse:
    def __init__(self, status=200):
        self.status = status


class FakeLocator:
    def __init__(self, visible=True):
        self.visible = visible
        self.clicks = 0

    def is_visible(self):
        return self.visible

    def click(self):
        self.clicks += 1


class FakePage:
    def __init__(self, redirect_to=None, snapshot=None, goto_error=None,
                 refresh_visible=True, on_wait=None):
        self.url = "about:blank"
        self.redirect_to = redirect_to
        self.snapshot = snapshot if snapshot is not None else {}
        self.goto_error = goto_error
        self.on_wait = on_wait
        self.refresh_button = FakeLocator(refresh_visible)
        self.visits = []
        self.waits = []
        self.evaluated_with = None
        self.closed = False

    def goto(self, url, wait_until=None, timeout=None):
        self.visits.append((url, wait_until, timeout))
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.redirect_to or url
        return FakeResponse()

    def wait_for_timeout(self, ms):
        self.waits.append(ms)
        if self.on_wait is not None:
            self.on_wait(self, ms)

    def evaluate(self, script, arg=None):
        self.evaluated_with = arg
        if isinstance(self.snapshot, Exception):
            raise self.snapshot
        return self.snapshot

    def locator(self, selector):
        return self.refresh_button

    def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page_factory, state=None, pages=None):
        self.page_factory = page_factory
        self.pages = list(pages or [])
        self.state = state if state is not None else copy.deepcopy(SAMPLE_STATE)
        self.closed = False

    def new_page(self):
        page = self.page_factory()
        self.pages.append(page)
        return page

    def storage_state(self, path=None):
        return copy.deepcopy(self.state)

    def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory, contexts=None):
        self.page_factory = page_factory
        self.contexts = list(contexts or [])
        self.new_context_calls = []
        self.closed = False

    def new_context(self, storage_state=None):
        self.new_context_calls.append(storage_state)
        state = None
        if isinstance(storage_state, dict):
            state = copy.deepcopy(storage_state)
        elif storage_state is not None:
            with open(storage_state) as f:
                state = json.load(f)
        context = FakeContext(self.page_factory, state=state)
        self.contexts.append(context)
        return context

    def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self):
        self.page_options = {}
        self.launch_calls = []
        self.browser = None
        self.cdp_browser = None
        self.cdp_error = None
        self.cdp_endpoints = []
        self.persistent_calls = []
        self.persistent_context = None
        self.persistent_error = None

    def make_page(self):
        return FakePage(**self.page_options)

    def launch(self, **kwargs):
        self.launch_calls.append(kwargs)
        self.browser = FakeBrowser(self.make_page)
        return self.browser

    def connect_over_cdp(self, endpoint):
        self.cdp_endpoints.append(endpoint)
        if self.cdp_error is not None:
            raise self.cdp_error
        return self.cdp_browser

    def launch_persistent_context(self, user_data_dir, **kwargs):
        self.persistent_calls.append((user_data_dir, kwargs))
        if self.persistent_error is not None:
            raise self.persistent_error
        self.persistent_context = FakeContext(self.make_page, pages=[self.make_page()])
        return self.persistent_context


class FakePlaywright:
    def __init__(self):
        self.chromium = FakeChromium()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeProbeResponse:
    def __init__(self, payload=None):
        self.payload = payload or {"Browser": "Chrome/131.0.6778.86"}

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


@pytest.fixture
def playwright():
    return FakePlaywright()


@pytest.fixture
def config(tmp_path):
    return ScraperConfig(
        auth_file=tmp_path / ".auth-state.json",
        output_dir=tmp_path / "out",
        chrome_user_data_dir=tmp_path / "chrome",
        settle_delay=0,
        refresh_wait=0,
    )


@pytest.fixture
def saved_state(config):
    """Write SAMPLE_STATE to the configured auth file."""
    with open(config.auth_file, "w") as f:
        json.dump(SAMPLE_STATE, f, indent=2)
    return config.auth_file


@pytest.fixture
def cdp_up(monkeypatch):
    """Make the CDP endpoint probe succeed."""
    import session_provider

    calls = []

    def fake_get(url, timeout=None):
        calls.append(url)
        return FakeProbeResponse()

    monkeypatch.setattr(session_provider.requests, "get", fake_get)
    return calls


@pytest.fixture
def usage_snapshot():
    """A snapshot as returned by the page script for a Max plan account."""
    return {
        "bodyText": (
            "Settings\nUsage\n"
            "Plan usage limits\n"
            "Current session\nResets in 3 hours\n42% used\n"
            "Weekly limits\n"
            "All models\nResets Thu 9:00 AM\n17% used\n"
            "Sonnet only\nResets Thu 9:00 AM\n5% used\n"
            "Last updated: less than a minute ago\n"
            "Extra usage\n$12.50 spent\n"
        ),
        "bars": [
            {"label": "Current session", "width": "42.37%"},
            {"label": "All models", "width": "17.1%"},
            {"label": "Sonnet only", "width": "5%"},
            {"label": "Extra usage", "width": "25%"},
        ],
        "extraText": (
            "Extra usage\n$12.50 spent\nResets Feb 1\n"
            "$50.00\nMonthly spend limit\n"
            "$37.50\nCurrent balance\n"
            "Auto-reload off"
        ),
        "plan": "claude_max",
        "country": "US",
    }
