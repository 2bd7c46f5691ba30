"""
Playwright browser integration for domscan.

Wraps a single browser page and exposes what the scan engine needs:
navigation, in-page evaluation, removable event subscriptions, host
functions callable from the page, call observers on in-page APIs,
request interception and an error channel for out-of-band failures.
"""

import asyncio
import json
import logging
from typing import Any, Callable
from urllib.parse import urlparse

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Dialog, Route

from domscan.config import BrowserSettings
from domscan.exceptions import BrowserError

logger = logging.getLogger(__name__)

NETWORK_SETTLED = "networkidle"

# 1 MBit/s in bytes per second
THROTTLED_THROUGHPUT = 125000

READY_FLAG = "__domscanReady"

# Dialog types opened by page script
SCRIPT_DIALOGS = ("alert", "confirm", "prompt")


class Subscription:
    """A single event listener that can be removed again."""

    def __init__(self, emitter: Any, event: str, handler: Callable):
        self.emitter = emitter
        self.event = event
        self.handler = handler
        self.active = True

    def cancel(self):
        if self.active:
            self.emitter.remove_listener(self.event, self.handler)
            self.active = False


class ListenerGroup:
    """Listeners registered for one pass, torn down together."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []

    def add(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        return subscription

    def close(self):
        while self._subscriptions:
            self._subscriptions.pop().cancel()

    def __len__(self) -> int:
        return len(self._subscriptions)


def _call_observer_script(owner: str, method: str, binding: str) -> str:
    """Init script wrapping ``owner[method]`` so every call is reported to ``binding``."""
    return f"""
(() => {{
  const owner = {owner};
  const name = {json.dumps(method)};
  const label = {json.dumps(f"{owner.replace('.prototype', '')}.{method}()")};
  const original = owner && owner[name];
  if (typeof original !== 'function') return;
  owner[name] = new Proxy(original, {{
    apply(target, thisArg, args) {{
      try {{
        window[{json.dumps(binding)}](String(args[0]), label + ' is called on ' + args[0]);
      }} catch (e) {{}}
      return Reflect.apply(target, thisArg, args);
    }}
  }});
}})();
"""


def _local_storage_script(items: dict[str, str]) -> str:
    return f"""
(() => {{
  const items = {json.dumps(items)};
  for (const [key, value] of Object.entries(items)) {{
    try {{ localStorage.setItem(key, value); }} catch (e) {{}}
  }}
}})();
"""


class BrowserSession:
    """
    One browser, one context, one page, exclusively owned by a scan run.

    Usage:
        async with BrowserSession(BrowserSettings()) as session:
            await session.navigate("https://example.com/?q=1")
    """

    def __init__(self, settings: BrowserSettings | None = None, navigation_timeout: float = 30000):
        self.settings = settings or BrowserSettings()
        self.navigation_timeout = navigation_timeout
        self._playwright = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._bindings: set[str] = set()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserError("Browser session not started. Use 'async with' context.")
        return self._page

    @property
    def url(self) -> str:
        return self.page.url

    async def start(self):
        """Launch the browser and open the scan page."""
        logger.info("Starting browser...")
        self._playwright = await async_playwright().start()
        browser_type = getattr(self._playwright, self.settings.browser_type)
        is_chromium = self.settings.browser_type == "chromium"

        launch_options: dict[str, Any] = {"headless": self.settings.headless}
        if self.settings.proxy:
            logger.info("Setting proxy to %s, disabling certificate validation", self.settings.proxy)
            launch_options["proxy"] = {"server": self.settings.proxy}
        if is_chromium:
            launch_options["chromium_sandbox"] = not self.settings.no_sandbox
            if self.settings.no_sandbox:
                logger.info("Launching without sandbox...")

        self._browser = await browser_type.launch(**launch_options)

        context_options: dict[str, Any] = {"ignore_https_errors": bool(self.settings.proxy)}
        if self.settings.user_agent:
            logger.debug("User agent: %s", self.settings.user_agent)
            context_options["user_agent"] = self.settings.user_agent

        self._context = await self._browser.new_context(**context_options)
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.navigation_timeout)
        self._page.set_default_navigation_timeout(self.navigation_timeout)

        if is_chromium:
            cdp = await self._context.new_cdp_session(self._page)
            await cdp.send("Network.enable")
            await cdp.send("Network.setCacheDisabled", {"cacheDisabled": True})
            if self.settings.throttle:
                logger.info("Throttling connection to 1 MBit/s...")
                await cdp.send("Network.emulateNetworkConditions", {
                    "offline": False,
                    "latency": 0,
                    "downloadThroughput": THROTTLED_THROUGHPUT,
                    "uploadThroughput": THROTTLED_THROUGHPUT,
                })

    async def stop(self):
        """Stop the browser."""
        if self._browser:
            await self._browser.close()
            logger.info("Browser closed.")
        if self._playwright:
            await self._playwright.stop()
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

    # ------------------------------------------------------------------
    # Navigation and evaluation
    # ------------------------------------------------------------------

    async def navigate(self, url: str, wait_until: str = NETWORK_SETTLED):
        logger.debug("Navigating to %s", url, extra={"url": url})
        await self.page.goto(url, wait_until=wait_until)

    async def reload(self, wait_until: str = NETWORK_SETTLED):
        await self.page.reload(wait_until=wait_until)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self.page.evaluate(expression, arg)

    async def wait_for_function(self, expression: str):
        await self.page.wait_for_function(expression)

    async def wait_until_ready(self):
        """Wait for document-ready, then set and await the in-page readiness flag."""
        await self.wait_for_function("() => document.readyState === 'complete'")
        await self.evaluate(f"() => {{ window.{READY_FLAG} = true }}")
        await self.wait_for_function(f"() => window.{READY_FLAG} === true")

    async def content(self) -> str:
        return await self.page.content()

    async def user_agent(self) -> str:
        return await self.evaluate("() => navigator.userAgent")

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def subscribe(self, event: str, handler: Callable) -> Subscription:
        """Listen to a page event (console, pageerror, requestfailed, response, ...)."""
        self.page.on(event, handler)
        return Subscription(self.page, event, handler)

    async def expose_function(self, name: str, handler: Callable):
        """Make ``window[name]`` call ``handler`` on the host side."""
        if name in self._bindings:
            raise BrowserError(f"Function {name} is already exposed")
        await self.page.expose_function(name, handler)
        self._bindings.add(name)

    async def observe_calls(self, owner: str, method: str, handler: Callable[[str, str], Any]):
        """
        Report every call of ``owner[method]`` to ``handler(first_argument, description)``.

        The wrapped function keeps its return value. Observers are
        installed for every document loaded after this call.
        """
        binding = f"__domscanObserve_{owner.replace('.', '_')}_{method}"
        await self.expose_function(binding, handler)
        await self.page.add_init_script(script=_call_observer_script(owner, method, binding))

    def on_dialog(self, handler: Callable[[str, str], Any]):
        """
        Call ``handler(dialog_type, message)`` for alert, confirm and prompt
        dialogs. Every dialog, including ``beforeunload``, is dismissed.
        """
        async def _handle(dialog: Dialog):
            try:
                if dialog.type in SCRIPT_DIALOGS:
                    handler(dialog.type, dialog.message)
                else:
                    logger.debug("Dismissing %s dialog", dialog.type)
            finally:
                await dialog.dismiss()

        self.page.on("dialog", _handle)

    async def intercept_requests(self, handler: Callable[[Any], Any]):
        """Inspect every outgoing request; requests always continue unaltered."""
        async def _route(route: Route):
            try:
                handler(route.request)
            finally:
                await route.continue_()

        await self.page.route("**/*", _route)

    def on_error(self, handler: Callable[[BaseException | str], Any]):
        """
        Route out-of-band failures to ``handler``.

        Covers exceptions raised in asyncio callbacks outside the awaited
        call chain (for example Playwright event handlers) and page crashes.
        """
        loop = asyncio.get_running_loop()

        def _loop_handler(loop, context):
            handler(context.get("exception") or context.get("message", "unknown error"))

        loop.set_exception_handler(_loop_handler)
        self.page.on("crash", lambda page: handler(BrowserError("page crashed")))

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    async def seed_cookies(self, target_url: str, cookies: dict[str, str]):
        if not cookies:
            return
        logger.info("Setting cookies...")
        parsed = urlparse(target_url)
        await self._context.add_cookies([
            {
                "name": name,
                "value": value,
                "domain": parsed.hostname,
                "path": "/",
                "httpOnly": False,
                "secure": parsed.scheme == "https",
                "sameSite": "Lax",
            }
            for name, value in cookies.items()
        ])

    async def seed_local_storage(self, items: dict[str, str]):
        if not items:
            return
        logger.info("Setting local storage...")
        await self.page.add_init_script(script=_local_storage_script(items))

    async def cookies(self, url: str) -> dict[str, str]:
        return {c["name"]: c["value"] for c in await self._context.cookies(url)}
