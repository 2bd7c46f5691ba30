"""
Parameter guessing.

Discovers parameter names the target URL does not carry:
- names of ``input`` elements in the rendered page
- variables declared in inline and same-origin scripts, plus a wordlist
- names the page passes to ``URLSearchParams.get()/has()`` at runtime
"""

import logging
import re
from pathlib import Path
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from domscan.browser import BrowserSession
from domscan.models import ParameterMap, ParameterOrigin
from domscan.payloads.loader import DATA_DIR
from domscan.utils.urls import same_origin

logger = logging.getLogger(__name__)

VARIABLE_DECLARATION = re.compile(r"\b(?:var|let|const)\s+(\w+)\b")

# Observed in-page APIs: owner expression -> methods
PARAMETER_READ_APIS = {
    "URLSearchParams.prototype": ("get", "has"),
}


def extract_declared_variables(js_content: str) -> list[str]:
    """Names declared with var/let/const, in order of appearance."""
    return [match.group(1) for match in VARIABLE_DECLARATION.finditer(js_content)]


def extract_input_names(html: str) -> list[str]:
    """Names of all ``input`` elements. Unnamed inputs are skipped."""
    soup = BeautifulSoup(html, "lxml")
    return [inp["name"] for inp in soup.find_all("input") if inp.get("name")]


class ParameterGuesser:
    """
    Collects guessed parameter names into an ordered, duplicate-free set
    and merges them into a ParameterMap.
    """

    def __init__(
        self,
        session: BrowserSession,
        marker: str,
        wordlist_file: str | Path | None = None,
        proxy: str | None = None,
    ):
        self.session = session
        self.marker = marker
        self.wordlist_file = Path(wordlist_file) if wordlist_file else DATA_DIR / "parameter-names.txt"
        self.proxy = proxy
        self._discovered: dict[str, str] = {}

    @property
    def discovered(self) -> list[str]:
        return list(self._discovered)

    def add(self, name: str, source: str) -> bool:
        """Remember ``name``. Returns False for empty or already known names."""
        name = name.strip()
        if not name or name in self._discovered:
            return False
        self._discovered[name] = source
        logger.debug("Guessed parameter %s from %s", name, source)
        return True

    async def install_hooks(self):
        """Observe runtime reads of URL parameters in every document loaded afterwards."""
        for owner, methods in PARAMETER_READ_APIS.items():
            for method in methods:
                await self.session.observe_calls(owner, method, self._on_parameter_read)

    def _on_parameter_read(self, name: str, description: str = ""):
        if self.add(name, "runtime"):
            logger.info("  %s", description or f"parameter {name} read at runtime")

    async def guess_from_page(self, input_fields: bool = True, scripts: bool = False):
        """Guess from the page as currently rendered in the session."""
        html = await self.session.content()

        if input_fields:
            names = extract_input_names(html)
            if names:
                logger.info("Guessed parameters from input fields: %s", names)
            for name in names:
                self.add(name, "input field")

        if scripts:
            names = await self.names_from_scripts(html, self.session.url)
            names.extend(self.load_wordlist())
            for name in names:
                self.add(name, "script or wordlist")
            logger.info("Guessed (but yet unverified) parameters: %s", self.discovered)

    async def names_from_scripts(self, html: str, page_url: str) -> list[str]:
        """Declared variables from inline scripts and same-origin external scripts."""
        names = []
        external = []

        soup = BeautifulSoup(html, "lxml")
        for script in soup.find_all("script"):
            src = script.get("src")
            if src:
                script_url = urljoin(page_url, src)
                # Only fetch scripts from same origin
                if same_origin(script_url, page_url):
                    external.append(script_url)
            elif script.string:
                names.extend(extract_declared_variables(script.string))

        for js_content in await self._fetch_scripts(external, page_url):
            names.extend(extract_declared_variables(js_content))

        return names

    async def _fetch_scripts(self, urls: list[str], page_url: str) -> list[str]:
        if not urls:
            return []

        cookies = await self.session.cookies(page_url)
        headers = {"User-Agent": await self.session.user_agent()}
        contents = []

        async with httpx.AsyncClient(
            cookies=cookies,
            headers=headers,
            proxy=self.proxy,
            verify=False,
            follow_redirects=True,
            timeout=httpx.Timeout(10.0),
        ) as client:
            for url in urls:
                try:
                    response = await client.get(url)
                    if response.status_code == 200:
                        contents.append(response.text)
                except httpx.HTTPError as e:
                    logger.debug("Could not fetch script %s: %s", url, e)

        return contents

    def load_wordlist(self) -> list[str]:
        if not self.wordlist_file.exists():
            logger.warning("Parameter wordlist not found: %s", self.wordlist_file)
            return []
        with open(self.wordlist_file, encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]

    def reconcile(self, parameters: ParameterMap) -> list[str]:
        """
        Add every guessed name missing from ``parameters`` with the marker as
        its value. Returns the names that were added; repeated calls add nothing new.
        """
        return [
            name for name in self.discovered
            if parameters.add_if_missing(name, self.marker, ParameterOrigin.GUESSED)
        ]
