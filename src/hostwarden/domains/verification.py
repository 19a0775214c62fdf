"""DNS verification of domain ownership.

A namespace proves it owns a domain by publishing its verification token in
a TXT record:

    _hostwarden.example.com  TXT  "verify=abc123xyz"

Wildcard records (*.example.com) are checked against their base domain.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime

import aiodns
import structlog

from hostwarden.domains.storage import DomainVerification
from hostwarden.domains.wildcards import get_base_domain, is_wildcard_pattern

logger = structlog.get_logger()


@dataclass
class VerificationResult:
    """Result of a TXT lookup for one domain."""

    domain: str
    txt_valid: bool
    txt_value: str | None
    error: str | None = None

    @property
    def is_verified(self) -> bool:
        return self.txt_valid


class DNSVerifier:
    """Verifies domain ownership via TXT records."""

    def __init__(self, prefix: str = "_hostwarden") -> None:
        self.prefix = prefix
        self._resolver: aiodns.DNSResolver | None = None

    def _get_resolver(self) -> aiodns.DNSResolver:
        if self._resolver is None:
            self._resolver = aiodns.DNSResolver()
        return self._resolver

    def generate_token(self, domain: str) -> str:
        """Generate an unpredictable verification token for a domain.

        Returns:
            A token string such as "verify=a1b2c3d4e5f6a7b8".
        """
        salt = secrets.token_hex(8)
        digest = hashlib.sha256(f"{domain}:{salt}".encode()).hexdigest()[:16]
        return f"verify={digest}"

    def record_name(self, domain: str) -> str:
        """Name of the TXT record that must hold the token for ``domain``."""
        if is_wildcard_pattern(domain):
            domain = get_base_domain(domain)
        return f"{self.prefix}.{domain}"

    async def check_txt_record(self, domain: str, expected_token: str) -> VerificationResult:
        """Look up the TXT record of ``domain`` and compare it to the token."""
        resolver = self._get_resolver()
        txt_domain = self.record_name(domain)

        try:
            result = await resolver.query_dns(txt_domain, "TXT")
        except aiodns.error.DNSError as e:
            return VerificationResult(
                domain=domain,
                txt_valid=False,
                txt_value=None,
                error=f"TXT lookup failed at {txt_domain}: {e}",
            )

        values = [record.text.strip('"').strip("'") for record in result or []]
        if expected_token in values:
            return VerificationResult(domain=domain, txt_valid=True, txt_value=expected_token)

        return VerificationResult(
            domain=domain,
            txt_valid=False,
            txt_value=values[0] if values else None,
            error=f"TXT record not found or invalid at {txt_domain}",
        )

    async def verify(self, record: DomainVerification) -> VerificationResult:
        """Check ``record`` against DNS and mark it verified on success.

        The record is only mutated in memory; callers save it.
        """
        result = await self.check_txt_record(record.domain, record.token)
        if result.is_verified and not record.verified:
            record.verified = True
            record.verified_at = datetime.now(UTC)
            logger.info("domain_verified", domain=record.domain, namespace=record.namespace)
        elif not result.is_verified:
            logger.debug("domain_verification_failed", domain=record.domain, error=result.error)
        return result
