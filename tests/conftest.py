"""Shared test fixtures and fake Playwright objects for web-toolbox tests.

The fakes record every acquisition, release and browser call in a shared
ResourceLedger so tests can assert on call order and on leaked resources.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))


class InjectedFailure(RuntimeError):
    """Raised by the fakes at the configured failure point."""


class ResourceLedger:
    """Records acquisitions, releases and calls across all fakes."""

    def __init__(self, fail_at=None):
        self.fail_at = fail_at
        self.calls = []
        self.opened = []
        self.released = []

    def step(self, name):
        self.calls.append(name)
        if name == self.fail_at:
            raise InjectedFailure(f"injected failure at {name}")

    def open(self, name):
        self.step(name)
        self.opened.append(name)

    def release(self, name):
        self.released.append(name)

    @property
    def leaked(self):
        return [name for name in self.opened if name not in self.released]


class FakeCDPSession:
    def __init__(self, ledger):
        self.ledger = ledger
        self.handlers = {}
        self.sent = []
        self.responses = {}

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, params):
        for handler in self.handlers.get(event, []):
            handler(params)

    async def send(self, method, params=None):
        self.ledger.step(f"cdp:{method}")
        self.sent.append((method, params))
        response = self.responses.get(method, {})
        if isinstance(response, BaseException):
            raise response
        return response

    def sent_methods(self):
        return [method for method, _ in self.sent]

    async def detach(self):
        self.ledger.release("cdp")


class FakeDialog:
    def __init__(self, dialog_type="alert", message="hello", error=None):
        self.type = dialog_type
        self.message = message
        self.error = error
        self.accepted = False
        self.release = asyncio.Event()

    async def accept(self):
        await self.release.wait()
        if self.error:
            raise self.error
        self.accepted = True


class FakePage:
    def __init__(self, ledger):
        self.ledger = ledger
        self.handlers = {}
        self.default_timeout = None
        self.visited = []
        self.evaluated = []
        self.goto_error = None
        self.goto_delay = 0
        self.evaluate_result = []
        self.evaluate_error = None
        self.screenshot_bytes = b"\xff\xd8jpeg"
        self.screenshot_error = None
        self.screenshot_kwargs = None
        self.close_error = None

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, payload):
        for handler in self.handlers.get(event, []):
            handler(payload)

    def set_default_timeout(self, timeout_ms):
        self.default_timeout = timeout_ms

    async def goto(self, url):
        self.ledger.step("navigate")
        self.visited.append(url)
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)
        if self.goto_error:
            raise self.goto_error

    async def evaluate(self, expression, arg=None):
        self.ledger.step("evaluate")
        self.evaluated.append((expression, arg))
        if self.evaluate_error:
            raise self.evaluate_error
        return list(self.evaluate_result)

    async def screenshot(self, **kwargs):
        self.ledger.step("screenshot")
        self.screenshot_kwargs = kwargs
        if self.screenshot_error:
            raise self.screenshot_error
        return self.screenshot_bytes

    async def close(self):
        self.ledger.release("page")
        if self.close_error:
            raise self.close_error


class FakeContext:
    def __init__(self, ledger, page, cdp, name="context"):
        self.ledger = ledger
        self.page = page
        self.cdp = cdp
        self.name = name

    async def new_page(self):
        self.ledger.open("page")
        return self.page

    async def new_cdp_session(self, page):
        self.ledger.open("cdp")
        return self.cdp

    async def close(self):
        self.ledger.release(self.name)


class FakeBrowser:
    def __init__(self, ledger, context, contexts=None):
        self.ledger = ledger
        self.context = context
        self.contexts = contexts or []

    async def new_context(self, **kwargs):
        self.ledger.open("context")
        return self.context

    async def close(self):
        self.ledger.release("browser")


class FakeBrowserType:
    def __init__(self, ledger, browser):
        self.ledger = ledger
        self.browser = browser
        self.launch_kwargs = None
        self.connected_to = None

    async def launch(self, **kwargs):
        self.ledger.open("browser")
        self.launch_kwargs = kwargs
        return self.browser

    async def connect_over_cdp(self, endpoint_url, **kwargs):
        self.ledger.open("browser")
        self.connected_to = endpoint_url
        return self.browser


class FakePlaywright:
    def __init__(self, ledger, chromium):
        self.ledger = ledger
        self.chromium = chromium

    async def stop(self):
        self.ledger.release("playwright")


class FakePlaywrightEnv:
    """A complete fake Playwright stack sharing one ledger."""

    def __init__(self, fail_at=None, default_context=False):
        self.ledger = ResourceLedger(fail_at=fail_at)
        self.cdp = FakeCDPSession(self.ledger)
        self.page = FakePage(self.ledger)
        self.context = FakeContext(self.ledger, self.page, self.cdp)
        self.default_context = None
        contexts = []
        if default_context:
            self.default_context = FakeContext(self.ledger, self.page, self.cdp, name="default context")
            contexts.append(self.default_context)
        self.browser = FakeBrowser(self.ledger, self.context, contexts)
        self.chromium = FakeBrowserType(self.ledger, self.browser)
        self.playwright = FakePlaywright(self.ledger, self.chromium)

    def factory(self):
        env = self

        class _Manager:
            async def start(self):
                env.ledger.open("playwright")
                return env.playwright

        return _Manager()


@pytest.fixture
def make_env():
    """Factory for fake Playwright environments."""
    return FakePlaywrightEnv


@pytest.fixture
def fake_env():
    """Fake Playwright environment without failures."""
    return FakePlaywrightEnv()


@pytest.fixture
def make_dialog():
    """Factory for fake native dialogs."""
    return FakeDialog


@pytest.fixture
def recording_sleep(fake_env):
    """Sleep replacement that records start/end in the fake ledger without waiting."""
    delays = []

    async def _sleep(seconds):
        fake_env.ledger.step("delay:start")
        delays.append(seconds)
        await asyncio.sleep(0)
        fake_env.ledger.step("delay:end")

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def injected_failure():
    """The exception type raised by fakes at injected failure points."""
    return InjectedFailure


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
