"""
Signal classification for one parameter's scan pass.

Browser signals are compared against the baseline snapshot and turned
into findings attributed to the test case held by the scan cursor.

Classification:
    hooked alert-equivalent called          -> xss / high
    3xx response (once per parameter)       -> open-redirect / medium
    new console text with CSP/syntax error  -> possible-xss / medium
    any other new, non-excluded console     -> new-console-message / low
    marker in an outgoing request URL       -> marker-in-url / info
"""

import logging
from typing import Iterable

from domscan.browser import BrowserSession, ListenerGroup
from domscan.findings import FindingStore
from domscan.models import (
    BaselineSnapshot,
    Finding,
    FindingType,
    REDIRECT_STATUSES,
    ScanCursor,
    Severity,
)
from domscan.utils.urls import origin_of, same_document_url

logger = logging.getLogger(__name__)

POSSIBLE_XSS_INDICATORS = ("Content Security Policy", "Uncaught SyntaxError")


class SignalDiffer:
    """Subscribes to page signals for one parameter and records findings."""

    def __init__(
        self,
        cursor: ScanCursor,
        baseline: BaselineSnapshot,
        store: FindingStore,
        marker: str,
        target_url: str,
        excluded_console_substrings: Iterable[str] = (),
    ):
        self.cursor = cursor
        self.baseline = baseline
        self.store = store
        self.marker = marker
        self.target_url = target_url
        self.excluded_console_substrings = tuple(excluded_console_substrings)
        self._navigation_logged = False

    def attach(self, session: BrowserSession) -> ListenerGroup:
        """Register this differ's listeners. Close the returned group to detach."""
        listeners = ListenerGroup()
        listeners.add(session.subscribe("response", self.on_response))
        listeners.add(session.subscribe("console", self.on_console))
        listeners.add(session.subscribe("pageerror", self.on_page_error))
        listeners.add(session.subscribe("requestfailed", self.on_request_failed))
        listeners.add(session.subscribe("framenavigated", self.on_frame_navigated))
        return listeners

    def record(self, finding_type: FindingType, severity: Severity, comment: str = "") -> Finding:
        finding = self.store.record(
            parameter=self.cursor.parameter,
            payload=self.cursor.payload,
            finding_type=finding_type,
            severity=severity,
            comment=comment,
        )
        logger.warning(
            "[%s/%s] %s for payload %s in parameter %s",
            finding_type.value, severity.value, comment or finding_type.value,
            finding.payload, finding.parameter,
            extra={
                "parameter": finding.parameter,
                "payload": finding.payload,
                "finding_type": finding_type.value,
                "severity": severity.value,
            },
        )
        return finding

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_alert(self, source: str, message: str = ""):
        self.record(FindingType.XSS, Severity.HIGH, f"{source}() triggered with message {message}")

    def on_response(self, response):
        status = response.status
        if status in REDIRECT_STATUSES:
            if self.cursor.redirected_for_parameter:
                return
            self.cursor.redirected_for_parameter = True
            self.record(FindingType.OPEN_REDIRECT, Severity.MEDIUM, f"{status} Redirect to {response.url}")
        elif status >= 400:
            logger.info("Found error: %s %s", status, response.url)

    def on_console(self, message):
        text = message.text
        logger.debug("Console message for payload %s: %s", self.cursor.payload, text)
        if self.baseline.has_console_message(text):
            return
        if any(excluded in text for excluded in self.excluded_console_substrings):
            return

        if any(indicator in text for indicator in POSSIBLE_XSS_INDICATORS):
            self.record(
                FindingType.POSSIBLE_XSS,
                Severity.MEDIUM,
                f"Console Message indicates CSP or Syntax Error: {text.strip()}",
            )
        else:
            self.record(FindingType.NEW_CONSOLE_MESSAGE, Severity.LOW, text.strip())

    def on_page_error(self, error):
        text = getattr(error, "message", str(error))
        if not self.baseline.has_page_error(text):
            logger.info(
                "New page error for payload %s in parameter %s: %s",
                self.cursor.payload, self.cursor.parameter, text,
            )

    def on_request_failed(self, request):
        if not self.baseline.has_failed_request(request.url):
            logger.debug(
                "New failed request for payload %s in parameter %s: %s - %s",
                self.cursor.payload, self.cursor.parameter, request.url, request.failure,
            )

    def on_request(self, url: str):
        """Outgoing request seen by the interceptor."""
        if self.marker in url and not same_document_url(url, self.cursor.url):
            self.record(FindingType.MARKER_IN_URL, Severity.INFO, f"{self.marker} in URL: {url}")

    def on_frame_navigated(self, frame):
        """Log client-side navigations of the main frame away from the test URL."""
        if self._navigation_logged or frame.parent_frame is not None:
            return
        url = frame.url
        if url == "about:blank" or same_document_url(url, self.cursor.url):
            return
        if same_document_url(url, self.target_url) or url == origin_of(self.cursor.url) + "/":
            return
        self._navigation_logged = True
        logger.info(
            "Found redirect for payload %s in parameter %s to %s",
            self.cursor.payload, self.cursor.parameter, url,
        )
