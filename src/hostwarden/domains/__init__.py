"""Hostwarden domain ownership.

Custom hosts are only routed while a namespace proves it owns their domain.

Features:
- TXT record verification of domain ownership
- Parent-domain and wildcard coverage (*.mycompany.com)
- JSON file storage for verification records

Usage:
    from hostwarden.domains import DomainManager, DomainVerificationStore

    store = DomainVerificationStore("domains.json")
    manager = DomainManager(store)

    record = await manager.register_domain("mycompany.com", namespace="team-a")
    result = await manager.verify_domain("mycompany.com")
"""

from hostwarden.domains.manager import DomainManager
from hostwarden.domains.storage import DomainVerification, DomainVerificationStore
from hostwarden.domains.verification import DNSVerifier, VerificationResult
from hostwarden.domains.wildcards import (
    get_base_domain,
    host_covered_by,
    is_wildcard_pattern,
    match_wildcard,
    normalize_host,
    validate_wildcard_pattern,
)

__all__ = [
    "DomainManager",
    "DomainVerification",
    "DomainVerificationStore",
    "DNSVerifier",
    "VerificationResult",
    "get_base_domain",
    "host_covered_by",
    "is_wildcard_pattern",
    "match_wildcard",
    "normalize_host",
    "validate_wildcard_pattern",
]
