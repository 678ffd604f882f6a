"""Input shape checks and the comma-separated list convention.

Multipart forms carry list fields (techStack, ownersUsernames, domains)
as comma-separated strings: "python, fastapi ,, redis" → ["python",
"fastapi", "redis"].
"""

import re

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# GitHub: 1-39 chars, alphanumerics or single hyphens, no leading/trailing hyphen.
_GITHUB_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38}$")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def is_valid_github_id(github_id: str) -> bool:
    return bool(_GITHUB_RE.match(github_id or ""))


def parse_csv(value: str | None, lower: bool = False) -> list[str]:
    """Split a comma-separated string, trimming and dropping blanks."""
    if not value:
        return []
    items = [item.strip() for item in value.split(",")]
    if lower:
        items = [item.lower() for item in items]
    return [item for item in items if item]


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()
