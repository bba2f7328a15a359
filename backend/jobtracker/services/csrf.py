"""
CSRF Guard

One anti-forgery token per session. Clients read it from
GET /api/auth/csrf-token and echo it in the X-CSRF-Token header on every
state-changing request made with cookie credentials.
"""

import secrets
from typing import Optional

CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def issue_token() -> str:
    return secrets.token_urlsafe(32)


def validate(expected: Optional[str], supplied: Optional[str]) -> bool:
    """Exact, constant-time match. A missing value on either side never matches."""
    if not expected or not supplied:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))
