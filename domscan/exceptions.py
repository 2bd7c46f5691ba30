"""Exception hierarchy for domscan."""


class DomscanError(Exception):
    """Base class for all domscan errors."""


class ConfigurationError(DomscanError):
    """Invalid or contradictory configuration. Fatal before any navigation."""


class PayloadCorpusError(DomscanError):
    """The payload corpus could not be loaded or is malformed."""


class BrowserError(DomscanError):
    """The browser session is unavailable or was used before it was started."""
