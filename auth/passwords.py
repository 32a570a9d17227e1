"""
auth/passwords.py -- Password policy, bcrypt hashing, and email syntax checks.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). bcrypt.gensalt()
       picks the library's recommended default cost. checkpw() performs the
       comparison itself in constant time -- never compare hashes by hand.

  72-byte ceiling: bcrypt only reads the first 72 bytes of its input. Longer
       passwords are rejected by validate_password() instead of being silently
       truncated. Lengths are measured in UTF-8 bytes, which is what bcrypt
       sees, so a multi-byte password cannot slip past the ceiling.

  Email: email-validator performs RFC 5322 syntax checks only
       (check_deliverability=False -- no DNS). The address is checked, never
       normalized; the caller stores exactly what the client sent.

Everything here is a pure function over its inputs. Nothing is logged.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re

import bcrypt
from email_validator import EmailNotValidError, validate_email

from auth.errors import ValidationError

MIN_PASSWORD_BYTES = 8
MAX_PASSWORD_BYTES = 72

SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

# Each pattern must match at least once: lowercase, uppercase, digit, special.
_PASSWORD_PATTERNS = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"[0-9]"),
    re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]"),
)


def validate_password(plain: str) -> None:
    """Raise ValidationError if the password breaks the complexity rules.

    Rules are checked in order and the first failure wins:
      1. between 8 and 72 bytes long;
      2. at least one lowercase letter, uppercase letter, digit, and one
         character from SPECIAL_CHARACTERS.
    """
    size = len(plain.encode("utf-8"))
    if size < MIN_PASSWORD_BYTES:
        raise ValidationError("password must be at least 8 characters long")
    if size > MAX_PASSWORD_BYTES:
        raise ValidationError("password must be less than or equal to 72 characters long")

    for pattern in _PASSWORD_PATTERNS:
        if not pattern.search(plain):
            raise ValidationError("password must contain uppercase, lowercase, digit, and special character")


def hash_password(plain: str) -> str:
    """Validate the password, then return its bcrypt hash."""
    validate_password(plain)
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash, or a candidate bcrypt refuses to read (e.g.
    longer than 72 bytes), is a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def is_valid_email(address: str) -> bool:
    """Return True if the address is syntactically valid.

    Rejects a missing or repeated '@', an empty local part or domain, and
    embedded whitespace. No DNS or deliverability lookups are made.

    email-validator is stricter than a bare RFC 5322 address parser: it
    rejects dotless domains such as user@localhost and display-name forms
    such as "Name <a@b.com>". Only a plain, globally routable addr-spec is
    accepted.
    """
    if not address or address != address.strip():
        return False
    try:
        validate_email(address, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True
