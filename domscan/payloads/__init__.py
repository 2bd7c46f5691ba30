"""Payload management for domscan."""

from domscan.payloads.loader import PayloadLoader, build_payload_set

__all__ = ["PayloadLoader", "build_payload_set"]
