"""
Shared fixtures: an in-memory stand-in for BrowserSession.

Tests script page behavior with ``session.behavior = fn(session, url)``,
which runs on every navigation and may emit signals through the helpers.
"""

import logging
from types import SimpleNamespace

import pytest

from domscan.browser import Subscription
from domscan.config import ScanConfig
from domscan.scanner import MARKER_SEARCH_SCRIPT


class FakeBrowserSession:
    def __init__(self):
        self.url = "about:blank"
        self.html = "<html><body></body></html>"
        self.behavior = None
        self.fail_navigation_for = set()
        self.navigations: list[str] = []
        self.reloads = 0
        self.listeners: dict[str, list] = {}
        self.exposed: dict[str, object] = {}
        self.observers: list[tuple[str, str, object]] = []
        self.request_handler = None
        self.dialog_handler = None
        self.error_handler = None
        self.cookie_jar: dict[str, str] = {}

    # -- navigation -----------------------------------------------------

    async def navigate(self, url, wait_until="networkidle"):
        self.navigations.append(url)
        if any(part in url for part in self.fail_navigation_for):
            raise RuntimeError(f"net::ERR_ABORTED at {url}")
        self.url = url
        self.emit_request(url)
        if self.behavior:
            self.behavior(self, url)

    async def reload(self, wait_until="networkidle"):
        self.reloads += 1

    async def wait_until_ready(self):
        pass

    async def evaluate(self, expression, arg=None):
        if expression == MARKER_SEARCH_SCRIPT:
            return arg in self.html
        raise AssertionError(f"unexpected evaluate: {expression}")

    async def content(self):
        return self.html

    async def user_agent(self):
        return "FakeBrowser/1.0"

    async def cookies(self, url):
        return dict(self.cookie_jar)

    async def seed_cookies(self, target_url, cookies):
        self.cookie_jar.update(cookies)

    async def seed_local_storage(self, items):
        self.local_storage = dict(items)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    # -- signals --------------------------------------------------------

    def subscribe(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)
        return Subscription(self, event, handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    def active_listener_count(self) -> int:
        return sum(len(handlers) for handlers in self.listeners.values())

    async def expose_function(self, name, handler):
        assert name not in self.exposed
        self.exposed[name] = handler

    async def observe_calls(self, owner, method, handler):
        self.observers.append((owner, method, handler))

    def on_dialog(self, handler):
        self.dialog_handler = handler

    async def intercept_requests(self, handler):
        self.request_handler = handler

    def on_error(self, handler):
        self.error_handler = handler

    # -- emitters used by page behaviors --------------------------------

    def emit(self, event, payload):
        for handler in list(self.listeners.get(event, [])):
            handler(payload)

    def emit_console(self, text):
        self.emit("console", SimpleNamespace(text=text))

    def emit_response(self, status, url=None):
        self.emit("response", SimpleNamespace(status=status, url=url or self.url))

    def emit_page_error(self, message):
        self.emit("pageerror", SimpleNamespace(message=message))

    def emit_request_failed(self, url):
        self.emit("requestfailed", SimpleNamespace(url=url, failure="net::ERR_FAILED"))

    def emit_request(self, url):
        if self.request_handler:
            self.request_handler(SimpleNamespace(url=url))

    def call_page_function(self, name, *args):
        self.exposed[name](*args)

    def read_url_parameter(self, name):
        """Simulate page script calling URLSearchParams.prototype.get(name)."""
        for owner, method, handler in self.observers:
            if method == "get":
                handler(name, f"URLSearchParams.get() is called on {name}")


@pytest.fixture
def session():
    return FakeBrowserSession()


@pytest.fixture
def scan_config():
    return ScanConfig(baseline_grace_period=0)


@pytest.fixture
def continue_signal():
    calls = []

    async def _continue():
        calls.append(True)

    _continue.calls = calls
    return _continue


@pytest.fixture(autouse=True)
def _reset_domscan_logger():
    """Undo configure_logging() so caplog sees domscan records in every test."""
    yield
    logger = logging.getLogger("domscan")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
