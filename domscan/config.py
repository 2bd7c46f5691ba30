"""
Configuration management for domscan.

Every recognized option is declared here with its default. Values come
from the CLI or a JSON config file and are validated once at startup.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

from domscan.exceptions import ConfigurationError

BROWSER_TYPES = ("chromium", "firefox", "webkit")


@dataclass
class ScanConfig:
    """Scan behavior settings."""
    guess_parameters: bool = False           # input names + URLSearchParams hook
    guess_parameters_extended: bool = False  # JS variable declarations + wordlist
    interactive: bool = False                # pause after every payload
    excluded_parameters: set[str] = field(default_factory=set)
    excluded_console_substrings: set[str] = field(default_factory=set)
    verbose: bool = False

    baseline_grace_period: float = 10.0      # seconds to wait after the baseline load
    navigation_timeout: float = 30000        # ms
    payloads_file: str | None = None         # None = bundled corpus
    wordlist_file: str | None = None         # None = bundled wordlist


@dataclass
class BrowserSettings:
    """Browser launch and seeding settings. Passed through to Playwright."""
    headless: bool = True
    browser_type: str = "chromium"
    proxy: str | None = None                 # also disables certificate validation
    user_agent: str | None = None
    cookies: dict[str, str] = field(default_factory=dict)
    local_storage: dict[str, str] = field(default_factory=dict)
    throttle: bool = False                   # 1 MBit/s, Chromium only
    no_sandbox: bool = False
    manual_login: bool = False


@dataclass
class DomscanConfig:
    """Complete domscan configuration."""
    scan: ScanConfig = field(default_factory=ScanConfig)
    browser: BrowserSettings = field(default_factory=BrowserSettings)

    def validate(self):
        """Raise ConfigurationError for contradictory settings."""
        if self.browser.manual_login and self.browser.headless:
            raise ConfigurationError(
                "manual login can only be used with a visible browser (--no-headless)"
            )
        if self.browser.browser_type not in BROWSER_TYPES:
            raise ConfigurationError(
                f"Unknown browser type: {self.browser.browser_type}. "
                f"Available: {', '.join(BROWSER_TYPES)}"
            )
        if self.browser.throttle and self.browser.browser_type != "chromium":
            raise ConfigurationError("throttling is only supported with chromium")
        if self.scan.baseline_grace_period < 0:
            raise ConfigurationError("baseline grace period must not be negative")
        if self.scan.navigation_timeout <= 0:
            raise ConfigurationError("navigation timeout must be positive")

    def to_dict(self) -> dict[str, Any]:
        scan = asdict(self.scan)
        scan["excluded_parameters"] = sorted(self.scan.excluded_parameters)
        scan["excluded_console_substrings"] = sorted(self.scan.excluded_console_substrings)
        return {"scan": scan, "browser": asdict(self.browser)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DomscanConfig":
        config = cls()

        for key, value in data.get("scan", {}).items():
            if not hasattr(config.scan, key):
                raise ConfigurationError(f"Unknown scan option: {key}")
            if key in ("excluded_parameters", "excluded_console_substrings"):
                value = set(value)
            setattr(config.scan, key, value)

        for key, value in data.get("browser", {}).items():
            if not hasattr(config.browser, key):
                raise ConfigurationError(f"Unknown browser option: {key}")
            setattr(config.browser, key, value)

        return config

    @classmethod
    def from_file(cls, filepath: str | Path) -> "DomscanConfig":
        """Load config from JSON file."""
        filepath = Path(filepath)
        if not filepath.exists():
            raise ConfigurationError(f"Config file not found: {filepath}")

        try:
            with open(filepath) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {filepath} is not valid JSON: {e}") from e

        return cls.from_dict(data)


def parse_key_value_pairs(items: list[str] | tuple[str, ...], what: str) -> dict[str, str]:
    """Turn ``["a=1", "b=2"]`` into ``{"a": "1", "b": "2"}``."""
    result = {}
    for item in items:
        if "=" not in item:
            raise ConfigurationError(f"Invalid {what} '{item}', expected name=value")
        name, value = item.split("=", 1)
        if not name:
            raise ConfigurationError(f"Invalid {what} '{item}', name is empty")
        result[name] = value
    return result
