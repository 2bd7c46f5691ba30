"""Utility modules for domscan."""

from domscan.utils.logger import configure_logging
from domscan.utils.urls import build_mutated_url, same_document_url

__all__ = ["configure_logging", "build_mutated_url", "same_document_url"]
