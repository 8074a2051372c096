"""Recovery code generation.

Codes look like ``COMEBACK-7KQ2ZD``. The alphabet leaves out 0/O and 1/I so
codes printed on postcards can be typed back without guessing.
"""

import secrets

RECOVERY_CODE_PREFIX = "COMEBACK-"
RECOVERY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
RECOVERY_CODE_LENGTH = 6


def generate_recovery_code(choice=secrets.choice) -> str:
    """Return a fresh random recovery code."""
    suffix = "".join(choice(RECOVERY_CODE_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))
    return f"{RECOVERY_CODE_PREFIX}{suffix}"


def is_recovery_code(code: str | None) -> bool:
    """True for codes issued by the connector (prefix match, like the host's code pattern)."""
    return bool(code) and code.upper().startswith(RECOVERY_CODE_PREFIX)
