"""
Finding storage and aggregation.

The store is append-only and keyed by parameter name. Deduplication of
payloads happens only when summarizing.
"""

from dataclasses import dataclass, field
from typing import Iterator

from domscan.models import Finding, FindingType, Severity, SEVERITY_ORDER


class FindingStore:
    """Append-only findings, grouped by parameter in order of first finding."""

    def __init__(self):
        self._findings: dict[str, list[Finding]] = {}

    def add(self, finding: Finding) -> Finding:
        self._findings.setdefault(finding.parameter, []).append(finding)
        return finding

    def record(
        self,
        parameter: str,
        payload: str,
        finding_type: FindingType,
        severity: Severity,
        comment: str = "",
    ) -> Finding:
        return self.add(Finding(
            parameter=parameter,
            payload=payload,
            type=finding_type,
            severity=severity,
            comment=comment,
        ))

    def parameters(self) -> list[str]:
        return list(self._findings)

    def for_parameter(self, name: str) -> tuple[Finding, ...]:
        return tuple(self._findings.get(name, ()))

    def __iter__(self) -> Iterator[Finding]:
        for findings in list(self._findings.values()):
            yield from findings

    def __len__(self) -> int:
        return sum(len(f) for f in self._findings.values())

    def __bool__(self) -> bool:
        return bool(self._findings)


@dataclass
class ParameterSummary:
    """Findings of one parameter: severity -> finding type -> unique payloads."""
    parameter: str
    buckets: dict[Severity, dict[FindingType, list[str]]] = field(
        default_factory=lambda: {severity: {} for severity in SEVERITY_ORDER}
    )

    def types(self, severity: Severity) -> dict[FindingType, list[str]]:
        return self.buckets[severity]

    @property
    def highest_severity(self) -> Severity | None:
        for severity in SEVERITY_ORDER:
            if self.buckets[severity]:
                return severity
        return None


def summarize(store: FindingStore) -> list[ParameterSummary]:
    """
    Group findings per parameter into severity buckets, then by finding
    type, listing each distinct payload once in order of first appearance.
    """
    summaries = []
    for parameter in store.parameters():
        summary = ParameterSummary(parameter)
        for finding in store.for_parameter(parameter):
            payloads = summary.buckets[finding.severity].setdefault(finding.type, [])
            if finding.payload not in payloads:
                payloads.append(finding.payload)
        summaries.append(summary)
    return summaries
