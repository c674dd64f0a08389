from enum import Enum

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Loose e-mail shape check. A domain rule -- not an API contract.
# All layers (api/, CLI) that need to validate addresses import from here.
EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class Program(str, Enum):
    """Internship programs offered. Shared by user profiles and applications."""

    web_development = "web-development"
    java_development = "java-development"
    python_development = "python-development"


def normalize_email(email: str) -> str:
    """Canonical form used for every store write and lookup: trimmed, lower-case."""
    return (email or "").strip().lower()
