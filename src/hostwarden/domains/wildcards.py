"""Host matching against verified domains.

A verification record for a domain covers more than the exact name:
    - example.com covers: example.com, api.example.com, deep.api.example.com
    - *.example.com covers: api.example.com, www.example.com
    - *.example.com does NOT cover: deep.api.example.com (single level only)
    - *.example.com does NOT cover: example.com (wildcard requires a subdomain)
"""

from __future__ import annotations

import re
from functools import lru_cache


def normalize_host(host: str) -> str:
    """Lowercase a hostname and drop surrounding whitespace and the root dot."""
    return host.strip().lower().rstrip(".")


def is_wildcard_pattern(domain: str) -> bool:
    """Check if a domain string is a wildcard pattern.

    Examples:
        >>> is_wildcard_pattern("*.example.com")
        True
        >>> is_wildcard_pattern("api.example.com")
        False
    """
    return domain.startswith("*.")


def get_base_domain(wildcard_pattern: str) -> str:
    """Extract the base domain from a wildcard pattern.

    Raises:
        ValueError: If pattern is not a valid wildcard.

    Examples:
        >>> get_base_domain("*.example.com")
        'example.com'
    """
    if not is_wildcard_pattern(wildcard_pattern):
        raise ValueError(f"Not a wildcard pattern: {wildcard_pattern}")
    return wildcard_pattern[2:]


@lru_cache(maxsize=1000)
def _compile_wildcard_regex(pattern: str) -> re.Pattern[str]:
    # *.example.com -> ^[^.]+\.example\.com$
    escaped = re.escape(pattern)
    regex_pattern = escaped.replace(r"\*", r"[^.]+")
    return re.compile(f"^{regex_pattern}$", re.IGNORECASE)


def match_wildcard(host: str, pattern: str) -> bool:
    """Check if a hostname matches a single-level wildcard pattern.

    Examples:
        >>> match_wildcard("api.example.com", "*.example.com")
        True
        >>> match_wildcard("deep.api.example.com", "*.example.com")
        False
        >>> match_wildcard("example.com", "*.example.com")
        False
    """
    if not is_wildcard_pattern(pattern):
        return False

    regex = _compile_wildcard_regex(pattern)
    return bool(regex.match(normalize_host(host)))


def validate_wildcard_pattern(pattern: str) -> tuple[bool, str | None]:
    """Validate a wildcard domain pattern.

    Returns:
        Tuple of (is_valid, error_message).

    Examples:
        >>> validate_wildcard_pattern("*.example.com")
        (True, None)
        >>> validate_wildcard_pattern("**.example.com")
        (False, 'Invalid wildcard: only single * prefix allowed')
    """
    if not is_wildcard_pattern(pattern):
        return False, "Not a wildcard pattern"

    if "**" in pattern:
        return False, "Invalid wildcard: only single * prefix allowed"

    base = pattern[2:]
    if "*" in base:
        return False, "Invalid wildcard: * only allowed as first component"

    if "." not in base and base != "localhost":
        return False, "Invalid wildcard: base domain must have at least one dot"

    if ".." in pattern or pattern.endswith("."):
        return False, "Invalid domain format"

    return True, None


def host_covered_by(host: str, domain: str) -> bool:
    """Check whether ownership of ``domain`` covers ``host``.

    Exact domains cover themselves and every subdomain. Wildcard patterns
    cover exactly one subdomain level.

    Examples:
        >>> host_covered_by("api.example.com", "example.com")
        True
        >>> host_covered_by("badexample.com", "example.com")
        False
        >>> host_covered_by("api.example.com", "*.example.com")
        True
    """
    host = normalize_host(host)
    domain = normalize_host(domain)
    if not host or not domain:
        return False
    if is_wildcard_pattern(domain):
        return match_wildcard(host, domain)
    return host == domain or host.endswith(f".{domain}")
