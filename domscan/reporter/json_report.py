"""
JSON report generator for domscan.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from domscan.findings import FindingStore, summarize
from domscan.models import Severity, SEVERITY_ORDER


class JSONReporter:
    """Generates JSON reports from a finding store."""

    def __init__(self, store: FindingStore):
        self.store = store
        self.metadata: dict[str, Any] = {}

    def set_metadata(
        self,
        target: str = "",
        scan_time: float = 0.0,
        scanner_version: str = "",
    ):
        """Set report metadata."""
        self.metadata = {
            "target": target,
            "scan_time_seconds": round(scan_time, 2),
            "scanner": "domscan",
            "scanner_version": scanner_version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "total_findings": len(self.store),
        }

    def generate(self) -> dict[str, Any]:
        """Generate the JSON report structure."""
        severity_counts = {severity.value: 0 for severity in SEVERITY_ORDER}
        for finding in self.store:
            severity_counts[finding.severity.value] += 1

        return {
            "metadata": self.metadata,
            "summary": {
                "parameters_with_findings": len(self.store.parameters()),
                "by_severity": severity_counts,
                "parameters": [self._summary_to_dict(s) for s in summarize(self.store)],
            },
            "findings": [finding.to_dict() for finding in self.store],
        }

    @staticmethod
    def _summary_to_dict(summary) -> dict[str, Any]:
        highest: Severity | None = summary.highest_severity
        return {
            "parameter": summary.parameter,
            "highest_severity": highest.value if highest else None,
            "severities": {
                severity.value: {
                    finding_type.value: payloads
                    for finding_type, payloads in summary.types(severity).items()
                }
                for severity in SEVERITY_ORDER
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Generate JSON string."""
        return json.dumps(self.generate(), indent=indent, default=str)

    def save(self, filepath: str | Path):
        """Save report to file."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_json())
