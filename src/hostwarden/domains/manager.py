"""Domain ownership lifecycle.

Usage:
    manager = DomainManager(store)

    # Register a domain for a namespace, then publish the TXT record
    record = await manager.register_domain("example.com", "team-a")

    # Check DNS and mark the record verified
    result = await manager.verify_domain("example.com")
"""

from __future__ import annotations

from hostwarden.domains.storage import DomainVerification, DomainVerificationStore
from hostwarden.domains.verification import DNSVerifier, VerificationResult
from hostwarden.domains.wildcards import (
    is_wildcard_pattern,
    normalize_host,
    validate_wildcard_pattern,
)


class DomainManager:
    """Coordinates DNS verification and storage of ownership records."""

    def __init__(
        self,
        store: DomainVerificationStore,
        verifier: DNSVerifier | None = None,
    ) -> None:
        self.store = store
        self.verifier = verifier or DNSVerifier()

    async def register_domain(self, domain: str, namespace: str) -> DomainVerification:
        """Register a domain or wildcard pattern for a namespace.

        Registering the same domain again for the same namespace returns the
        existing record.

        Raises:
            ValueError: If the domain is claimed by another namespace, or if
                the wildcard pattern is invalid.
        """
        domain = normalize_host(domain)
        if not domain:
            raise ValueError("Domain must not be empty")

        if is_wildcard_pattern(domain):
            valid, error = validate_wildcard_pattern(domain)
            if not valid:
                raise ValueError(f"Invalid wildcard pattern: {error}")

        existing = await self.store.get(domain)
        if existing:
            if existing.namespace != namespace:
                raise ValueError(
                    f"Domain {domain} is already registered to namespace {existing.namespace}"
                )
            return existing

        record = DomainVerification(
            domain=domain,
            namespace=namespace,
            token=self.verifier.generate_token(domain),
        )
        await self.store.save(record)
        return record

    async def verify_domain(self, domain: str) -> VerificationResult:
        """Verify the TXT record of a registered domain.

        Raises:
            ValueError: If the domain is not registered.
        """
        domain = normalize_host(domain)
        record = await self.store.get(domain)
        if not record:
            raise ValueError(f"Domain {domain} is not registered")

        was_verified = record.verified
        result = await self.verifier.verify(record)
        if record.verified and not was_verified:
            await self.store.save(record)
        return result

    def dns_instructions(self, record: DomainVerification) -> str:
        """Describe the TXT record the owner has to publish."""
        return f"""Add the following DNS record:

   Name: {self.verifier.record_name(record.domain)}
   Type: TXT
   Value: {record.token}

After adding it, run: hostwarden domain verify {record.domain}"""
