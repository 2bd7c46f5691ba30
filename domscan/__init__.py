"""
domscan - dynamic DOM-based XSS scanner.

Mutates every query and fragment parameter of a URL with marker-tagged
payloads, renders each mutation in a real browser (Playwright) and
classifies what the page does:
- hooked alert()/xyz() calls (confirmed script execution)
- redirects caused by a parameter
- new console messages compared to an unmutated baseline load
- the marker leaking into outgoing requests or the rendered document

Optional parameter guessing from input fields, script variables, a
wordlist and runtime URLSearchParams reads.
"""

__version__ = "0.1.0"

from domscan.config import DomscanConfig, ScanConfig, BrowserSettings
from domscan.findings import FindingStore, summarize
from domscan.models import Finding, FindingType, Severity
from domscan.scanner import DomScanner, run_scan

__all__ = [
    "DomscanConfig",
    "ScanConfig",
    "BrowserSettings",
    "FindingStore",
    "summarize",
    "Finding",
    "FindingType",
    "Severity",
    "DomScanner",
    "run_scan",
    "__version__",
]
