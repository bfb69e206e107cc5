"""Serial number generation."""

import re
import secrets

SERIAL_BYTES = 9


def create_serial(prefix: str = "T16") -> str:
    """PREFIX-XXXXXX-XXXXXX-XXXXXX from 72 random bits. Not checked for uniqueness."""
    chunk = secrets.token_hex(SERIAL_BYTES).upper()
    return f"{prefix}-{chunk[0:6]}-{chunk[6:12]}-{chunk[12:18]}"


def serial_pattern(prefix: str = "T16") -> re.Pattern:
    return re.compile(rf"^{re.escape(prefix)}-[0-9A-F]{{6}}-[0-9A-F]{{6}}-[0-9A-F]{{6}}$")
