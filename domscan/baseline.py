"""
Baseline capture.

Loads the unmutated target once and records every console message, page
error and failed request. Later passes only report signals missing here.
"""

import asyncio
import logging

from domscan.browser import BrowserSession, ListenerGroup
from domscan.models import BaselineSnapshot, REDIRECT_STATUSES

logger = logging.getLogger(__name__)


class BaselineCapturer:
    """Records the reference signals of one unmutated page load."""

    def __init__(self, session: BrowserSession, grace_period: float = 10.0):
        self.session = session
        self.grace_period = grace_period

    async def capture(self, url: str) -> BaselineSnapshot:
        console_messages: list[str] = []
        page_errors: list[str] = []
        failed_requests: list[str] = []

        def on_response(response):
            if response.status in REDIRECT_STATUSES:
                logger.warning(
                    "Found redirect, could indicate erroneous initial URL or missing cookies: %s %s",
                    response.status, response.url,
                )

        def on_console(message):
            logger.debug("Console message: %s", message.text)
            console_messages.append(message.text)

        def on_page_error(error):
            text = getattr(error, "message", str(error))
            logger.debug("Page error: %s", text)
            page_errors.append(text)

        def on_request_failed(request):
            logger.debug("Request failed: %s", request.url)
            failed_requests.append(request.url)

        listeners = ListenerGroup()
        listeners.add(self.session.subscribe("response", on_response))
        listeners.add(self.session.subscribe("console", on_console))
        listeners.add(self.session.subscribe("pageerror", on_page_error))
        listeners.add(self.session.subscribe("requestfailed", on_request_failed))

        try:
            logger.info("Initial page load")
            await self.session.navigate(url)
            logger.info("Wait until JS was evaluated...")
            await self.session.wait_until_ready()
            if self.grace_period:
                logger.debug("Waiting %.1fs for delayed signals", self.grace_period)
                await asyncio.sleep(self.grace_period)
        finally:
            listeners.close()

        snapshot = BaselineSnapshot(
            console_messages=tuple(console_messages),
            page_errors=tuple(page_errors),
            failed_requests=tuple(failed_requests),
        )
        logger.info(
            "Initial page load complete: %d console message(s), %d page error(s), %d failed request(s)",
            len(snapshot.console_messages), len(snapshot.page_errors), len(snapshot.failed_requests),
        )
        return snapshot
