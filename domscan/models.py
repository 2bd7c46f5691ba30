"""
Core data model for domscan.

Parameters, findings, the scan cursor and the baseline snapshot.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator


# Pseudo parameter name used when the payload is written straight into the fragment.
FRAGMENT_PARAMETER = "URL-FRAGMENT"

REDIRECT_STATUSES = frozenset({301, 302, 303, 307})


class ParameterOrigin(Enum):
    QUERY = "query"
    FRAGMENT = "fragment"
    GUESSED = "guessed"


class InjectionMode(Enum):
    """Where a payload is written in the mutated URL."""
    QUERY = "query"
    FRAGMENT_PARAMETER = "fragment-parameter"
    FRAGMENT = "fragment"


class FindingType(Enum):
    XSS = "xss"
    POSSIBLE_XSS = "possible-xss"
    OPEN_REDIRECT = "open-redirect"
    MARKER_IN_URL = "marker-in-url"
    MARKER_REFLECTED = "marker-reflected"
    NEW_CONSOLE_MESSAGE = "new-console-message"


class Severity(Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Order used when rendering summaries.
SEVERITY_ORDER = (Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO)


@dataclass
class Parameter:
    """A named URL parameter and every value observed for it, in order."""
    name: str
    origin: ParameterOrigin
    values: list[str] = field(default_factory=list)


class ParameterMap:
    """
    Ordered mapping of parameter name to Parameter.

    Adding a name that already exists appends its value instead of
    overwriting, so repeated query keys keep every value.
    """

    def __init__(self, origin: ParameterOrigin):
        self.origin = origin
        self._params: dict[str, Parameter] = {}

    def add(self, name: str, value: str, origin: ParameterOrigin | None = None) -> Parameter:
        param = self._params.get(name)
        if param is None:
            param = Parameter(name=name, origin=origin or self.origin)
            self._params[name] = param
        param.values.append(value)
        return param

    def add_if_missing(self, name: str, value: str, origin: ParameterOrigin) -> bool:
        """Add ``name`` only when unknown. Returns True if it was added."""
        if name in self._params:
            return False
        self._params[name] = Parameter(name=name, origin=origin, values=[value])
        return True

    def names(self) -> list[str]:
        return list(self._params)

    def get(self, name: str) -> Parameter | None:
        return self._params.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def __iter__(self) -> Iterator[Parameter]:
        return iter(list(self._params.values()))

    def __len__(self) -> int:
        return len(self._params)

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(p.values) for name, p in self._params.items()}


@dataclass(frozen=True)
class Finding:
    """A classified observation for one parameter and payload."""
    parameter: str
    payload: str
    type: FindingType
    severity: Severity
    comment: str = ""

    def to_dict(self) -> dict:
        return {
            "parameter": self.parameter,
            "payload": self.payload,
            "type": self.type.value,
            "severity": self.severity.value,
            "comment": self.comment,
        }


@dataclass
class ScanCursor:
    """
    The test case currently in flight.

    Owned by the orchestrator; the signal differ reads it to attribute
    incoming browser signals. Latches are reset per parameter.
    """
    url: str = ""
    parameter: str | None = None
    payload: str = ""
    mode: InjectionMode = InjectionMode.QUERY
    redirected_for_parameter: bool = False
    marker_reflected: bool = False

    def begin_parameter(self, name: str, mode: InjectionMode):
        self.parameter = name
        self.mode = mode
        self.payload = ""
        self.redirected_for_parameter = False
        self.marker_reflected = False

    def advance(self, url: str, payload: str):
        self.url = url
        self.payload = payload

    def end_parameter(self):
        self.parameter = None
        self.payload = ""


@dataclass(frozen=True)
class BaselineSnapshot:
    """Signals recorded during the single unmutated page load."""
    console_messages: tuple[str, ...] = ()
    page_errors: tuple[str, ...] = ()
    failed_requests: tuple[str, ...] = ()

    def has_console_message(self, text: str) -> bool:
        return text in self.console_messages

    def has_page_error(self, message: str) -> bool:
        return message in self.page_errors

    def has_failed_request(self, url: str) -> bool:
        return url in self.failed_requests
