"""
Scan orchestration for domscan.

For every parameter and every payload, build the mutated URL, load it in
the browser and let the signal differ classify what the page does.
Exactly one navigation is in flight at a time.

Usage:
    from domscan.scanner import run_scan
    from domscan.config import DomscanConfig
    from domscan.findings import FindingStore

    store = FindingStore()
    asyncio.run(run_scan("https://target.com/page?q=1", DomscanConfig(), store=store))
"""

import asyncio
import logging
import threading
from functools import partial
from typing import Awaitable, Callable

from rich.console import Console

from domscan.baseline import BaselineCapturer
from domscan.browser import BrowserSession
from domscan.config import DomscanConfig, ScanConfig
from domscan.differ import SignalDiffer
from domscan.extractor import extract_parameters
from domscan.findings import FindingStore
from domscan.guesser import ParameterGuesser
from domscan.marker import generate_marker
from domscan.models import (
    BaselineSnapshot,
    FindingType,
    FRAGMENT_PARAMETER,
    InjectionMode,
    ParameterMap,
    ParameterOrigin,
    ScanCursor,
    Severity,
)
from domscan.payloads.loader import PayloadLoader, build_payload_set
from domscan.utils.urls import build_mutated_url

logger = logging.getLogger(__name__)

# In-page functions whose invocation proves script execution.
ALERT_FUNCTIONS = ("alert", "xyz")

MARKER_SEARCH_SCRIPT = "(marker) => document.documentElement.innerHTML.includes(marker)"

ContinueSignal = Callable[[], Awaitable[None]]


async def wait_for_enter(console: Console | None = None):
    """
    Block until the operator presses ENTER.

    The prompt is read on a daemon thread, so an interrupted run can exit
    and report without waiting for the pending input.
    """
    console = console or Console()
    loop = asyncio.get_running_loop()
    pressed = loop.create_future()

    def _release():
        if not pressed.done():
            pressed.set_result(None)

    def _read():
        try:
            console.input("Press ENTER to continue...")
        except EOFError:
            logger.warning("No terminal input available, continuing")
        try:
            loop.call_soon_threadsafe(_release)
        except RuntimeError:
            # event loop already closed
            pass

    threading.Thread(target=_read, name="domscan-continue", daemon=True).start()
    await pressed


class DomScanner:
    """
    Drives the scan of one target URL.

    State per parameter: navigate -> evaluate -> record, once per
    payload, then tear down that parameter's listeners.
    """

    def __init__(
        self,
        session: BrowserSession,
        config: ScanConfig,
        payload_templates: list[str],
        store: FindingStore | None = None,
        marker: str | None = None,
        wait_for_continue: ContinueSignal | None = None,
        proxy: str | None = None,
    ):
        self.session = session
        self.config = config
        self.payload_templates = payload_templates
        self.store = store if store is not None else FindingStore()
        self.marker = marker or generate_marker()
        self.wait_for_continue = wait_for_continue or wait_for_enter

        self.cursor = ScanCursor()
        self.baseline = BaselineSnapshot()
        self.guesser = ParameterGuesser(session, self.marker, config.wordlist_file, proxy=proxy)
        self.target_url = ""
        self.payloads: list[str] = []
        self.query_parameters = ParameterMap(ParameterOrigin.QUERY)
        self.fragment_parameters = ParameterMap(ParameterOrigin.FRAGMENT)

        self._differ: SignalDiffer | None = None
        self._scanned: set[tuple[InjectionMode, str]] = set()
        self._prepared = False

    @property
    def guessing_enabled(self) -> bool:
        return self.config.guess_parameters or self.config.guess_parameters_extended

    async def run(self, url: str) -> FindingStore:
        """Scan ``url`` and return the finding store."""
        logger.info("URL: %s", url)
        logger.debug("Marker: %s", self.marker)
        self.target_url = url

        self.query_parameters, self.fragment_parameters = extract_parameters(url)
        self.payloads = build_payload_set(self.payload_templates, self.marker, self.query_parameters)

        await self.prepare()

        capturer = BaselineCapturer(self.session, grace_period=self.config.baseline_grace_period)
        self.baseline = await capturer.capture(url)

        await self.guess_parameters()

        if self.query_parameters:
            logger.info("Scanning parameters...")
            for name in self.query_parameters.names():
                await self.scan_parameter(name, InjectionMode.QUERY)
        else:
            logger.warning("No parameters to scan.")

        if self.guessing_enabled:
            added = self.guesser.reconcile(self.query_parameters)
            if added:
                logger.info(
                    "Additional parameters found since we started our scans. "
                    "Starting a new scan for parameters: %s", added,
                )
            for name in added:
                await self.scan_parameter(name, InjectionMode.QUERY)

        if self.fragment_parameters:
            logger.info("Scanning URL fragment parameters for injections...")
            for name in self.fragment_parameters.names():
                await self.scan_parameter(name, InjectionMode.FRAGMENT_PARAMETER)

        logger.info("Scanning URL fragment for injections...")
        await self.scan_parameter(FRAGMENT_PARAMETER, InjectionMode.FRAGMENT)

        return self.store

    async def prepare(self):
        """Register the hooks that live for the whole run. Runs once."""
        if self._prepared:
            return
        self._prepared = True

        self.session.on_error(self._on_async_error)
        for name in ALERT_FUNCTIONS:
            await self.session.expose_function(name, partial(self._on_alert, name))
        self.session.on_dialog(self._on_alert)
        await self.session.intercept_requests(self._on_request)
        if self.config.guess_parameters:
            await self.guesser.install_hooks()

    async def guess_parameters(self):
        """First reconciliation: seed guessed names before the main scan."""
        if self.guessing_enabled:
            try:
                await self.guesser.guess_from_page(
                    input_fields=self.config.guess_parameters,
                    scripts=self.config.guess_parameters_extended,
                )
            except Exception as e:
                logger.error("Parameter guessing failed: %s", e)

        added = self.guesser.reconcile(self.query_parameters)
        if added:
            logger.info("Guessed parameters added to scan: %s", added)

    async def scan_parameter(self, name: str, mode: InjectionMode):
        """Run every payload against one parameter. Errors never escape."""
        key = (mode, name)
        if key in self._scanned:
            return
        if name in self.config.excluded_parameters:
            logger.info("Skipping excluded parameter: %s", name)
            return
        self._scanned.add(key)

        logger.info("Scanning parameter: %s", name)
        self.cursor.begin_parameter(name, mode)
        self._differ = SignalDiffer(
            cursor=self.cursor,
            baseline=self.baseline,
            store=self.store,
            marker=self.marker,
            target_url=self.target_url,
            excluded_console_substrings=self.config.excluded_console_substrings,
        )
        listeners = self._differ.attach(self.session)
        try:
            for payload in self.payloads:
                await self._test_payload(name, mode, payload)
        except Exception as e:
            logger.error("Error during scan of parameter %s: %s", name, e)
        finally:
            listeners.close()
            self._differ = None
            self.cursor.end_parameter()

    async def _test_payload(self, name: str, mode: InjectionMode, payload: str):
        test_url = build_mutated_url(self.target_url, name, payload, mode)
        self.cursor.advance(test_url, payload)
        logger.debug("Testing payload: %s", payload)
        logger.debug("Resulting URL: %s", test_url)

        if await self._load(test_url):
            await self._check_reflection()

        if self.config.interactive:
            logger.info('Tested payload "%s" in parameter "%s"', payload, name)
            await self.wait_for_continue()
        else:
            logger.debug('Tested payload "%s" in parameter "%s"', payload, name)

    async def _load(self, test_url: str) -> bool:
        """Navigate to the test case. Returns False when the payload must be skipped."""
        try:
            await self.session.navigate(test_url)
            # Fragment-only changes do not trigger a full navigation on their own.
            if self.cursor.mode is not InjectionMode.QUERY:
                await self.session.reload()
            await self.session.wait_until_ready()
        except Exception as e:
            logger.error("Error during page load of %s: %s", test_url, e)
            return False
        return True

    async def _check_reflection(self):
        # Searched once per parameter to reduce noise.
        if self.cursor.marker_reflected:
            return
        try:
            found = await self.session.evaluate(MARKER_SEARCH_SCRIPT, self.marker)
        except Exception as e:
            logger.error("Error during page evaluation for marker search: %s", e)
            return
        if found and self._differ is not None:
            self.cursor.marker_reflected = True
            self._differ.record(
                FindingType.MARKER_REFLECTED,
                Severity.INFO,
                f"Marker {self.marker} was reflected on page",
            )

    # ------------------------------------------------------------------
    # Run-lifetime callbacks
    # ------------------------------------------------------------------

    def _on_alert(self, source: str, *args):
        message = " ".join(map(str, args))
        if self._differ is None:
            logger.warning("%s() triggered outside of a scan pass: %s", source, message)
            return
        self._differ.on_alert(source, message)

    def _on_request(self, request):
        logger.debug("Intercepted request: %s", request.url)
        if self._differ is not None:
            self._differ.on_request(request.url)

    def _on_async_error(self, error):
        logger.critical("Uncaught asynchronous error from the browser: %s", error)


async def manual_login(session: BrowserSession, url: str, wait_for_continue: ContinueSignal):
    """Let the operator bootstrap the session (log in, set cookies) before the scan."""
    logger.warning(
        "Manual Login: perform any actions such as login, manually set cookies, ... "
        "and launch the scan afterwards. Press ENTER to start the scan."
    )
    await session.navigate(url, wait_until="load")
    await wait_for_continue()
    await session.navigate("about:blank", wait_until="load")


async def run_scan(
    url: str,
    config: DomscanConfig,
    store: FindingStore | None = None,
    wait_for_continue: ContinueSignal | None = None,
) -> FindingStore:
    """
    Validate the configuration, launch the browser and scan ``url``.

    Findings are appended to ``store`` as they happen, so a caller holding
    the store can still report after an aborted run.
    """
    config.validate()
    store = store if store is not None else FindingStore()
    templates = PayloadLoader(config.scan.payloads_file).templates
    wait_for_continue = wait_for_continue or wait_for_enter

    async with BrowserSession(config.browser, navigation_timeout=config.scan.navigation_timeout) as session:
        await session.seed_cookies(url, config.browser.cookies)
        await session.seed_local_storage(config.browser.local_storage)

        if config.browser.manual_login:
            await manual_login(session, url, wait_for_continue)

        scanner = DomScanner(
            session,
            config.scan,
            templates,
            store=store,
            wait_for_continue=wait_for_continue,
            proxy=config.browser.proxy,
        )
        await scanner.run(url)

    return store
