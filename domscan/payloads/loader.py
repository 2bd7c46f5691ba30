"""
Payload loader for domscan.

Loads the marker-templated payload corpus (a JSON list of strings) and
builds the run's payload set from it.
"""

import json
import logging
from pathlib import Path

from domscan.exceptions import PayloadCorpusError
from domscan.marker import MARKER_PLACEHOLDER
from domscan.models import ParameterMap

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

# Appended to mutated parameter values to break out of quoted attributes.
BREAKOUT_SEQUENCE = "'\"><img src=x onerror=alert()>"


class PayloadLoader:
    """Loads and provides access to the payload corpus."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else DATA_DIR / "payloads.json"
        self._templates: list[str] | None = None

    @property
    def templates(self) -> list[str]:
        """Lazy load the corpus."""
        if self._templates is None:
            self._templates = self._load()
        return self._templates

    def _load(self) -> list[str]:
        if not self.path.exists():
            raise PayloadCorpusError(f"Payload file not found: {self.path}")
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise PayloadCorpusError(f"Payload file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, list) or not all(isinstance(p, str) for p in data):
            raise PayloadCorpusError(f"Payload file {self.path} must contain a JSON list of strings")

        for template in data:
            if MARKER_PLACEHOLDER not in template:
                logger.debug("Payload template without %s token: %s", MARKER_PLACEHOLDER, template)

        logger.debug("Loaded %d payload templates from %s", len(data), self.path)
        return data


def build_payload_set(templates: list[str], marker: str, parameters: ParameterMap) -> list[str]:
    """
    Render the corpus and append mutations of the existing parameter values.

    For every observed value two payloads are added: ``value+marker`` and
    ``marker+value+marker+breakout``. Duplicates are removed, keeping the
    first occurrence.
    """
    payloads = [t.replace(MARKER_PLACEHOLDER, marker, 1) for t in templates]

    if parameters:
        logger.info("Adding mutations of given URL parameter values to payload list...")
        for param in parameters:
            for value in param.values:
                payloads.append(value + marker)
                payloads.append(marker + value + marker + BREAKOUT_SEQUENCE)

    payloads = list(dict.fromkeys(payloads))
    logger.debug("Payloads: %s", payloads)
    return payloads
