"""Tracking identifier resolution.

Attempt history is scored against an identifier rather than raw user input,
so the persisted store never contains a plain email address.
"""

from __future__ import annotations

import hashlib

ANONYMOUS_IDENTIFIER = "anonymous"

# Digits kept from the email digest (15 hex chars -> at most 18 decimal digits)
_EMAIL_DIGEST_HEX_CHARS = 15


def hash_email(email: str) -> str:
    """Return a stable, non-reversible numeric digest for an email address.

    The address is trimmed and lower-cased first so ``Foo@Example.com`` and
    ``foo@example.com`` share one attempt budget.
    """

    normalized = email.strip().lower()
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    return str(int(digest[:_EMAIL_DIGEST_HEX_CHARS], 16))


def get_identifier(email: str | None = None, user_id: str | None = None) -> str:
    """Derive the tracking key for a caller.

    Precedence: user id (verbatim), then hashed email (``email_<digits>``),
    then the shared ``anonymous`` bucket.

    Examples:
        >>> get_identifier(user_id="user-123")
        'user-123'
        >>> get_identifier()
        'anonymous'
    """

    if user_id:
        return user_id
    if email and email.strip():
        return f"email_{hash_email(email)}"
    return ANONYMOUS_IDENTIFIER
