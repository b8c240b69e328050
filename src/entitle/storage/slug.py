"""Human-shareable artifact slugs.

A slug is a secondary lookup key, probabilistically unique thanks to a
short random suffix. It is not a security boundary.
"""

import re
import secrets
import string

_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 6


def make_slug(parts: list[str]) -> str:
    """Build a slug from key dimensions plus a random suffix.

    ['zoning', 'seattle', 'NC3-65', 'office'] → 'zoning-seattle-nc3-65-office-k3x9qa'
    """
    base = "-".join(str(p) for p in parts if p is not None).lower()
    base = re.sub(r"[^a-z0-9]+", "-", base).strip("-")
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{base}-{suffix}" if base else suffix
