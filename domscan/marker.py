"""Run-scoped random marker used to tag payloads and detect reflection."""

import secrets
import string

# Token substituted in every corpus template.
MARKER_PLACEHOLDER = "MARKER"
MARKER_LENGTH = 8

_ALPHABET = string.ascii_lowercase + string.digits


def generate_marker(length: int = MARKER_LENGTH) -> str:
    """Return a fresh random lowercase alphanumeric token for this run."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
