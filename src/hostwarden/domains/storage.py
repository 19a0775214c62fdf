"""Storage for domain verification records.

Records prove that a namespace owns a domain. They are kept in a JSON file,
suitable for self-hosted deployments.

Storage file format (domains.json):
    {
        "domains": {
            "example.com": {
                "domain": "example.com",
                "namespace": "team-a",
                "token": "verify=xyz789",
                "verified": true,
                "verified_at": "2024-01-15T10:30:00+00:00",
                "created_at": "2024-01-15T10:00:00+00:00"
            }
        }
    }
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from hostwarden.domains.wildcards import normalize_host

if TYPE_CHECKING:
    from hostwarden.traffic.accessor import TrafficAccessor

logger = structlog.get_logger()


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


@dataclass
class DomainVerification:
    """Ownership proof of a domain by a namespace.

    ``domain`` may be an exact domain (example.com) or a wildcard pattern
    (*.example.com).
    """

    domain: str
    namespace: str
    token: str
    verified: bool = False
    verified_at: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "domain": self.domain,
            "namespace": self.namespace,
            "token": self.token,
            "verified": self.verified,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomainVerification:
        """Create from dictionary (JSON deserialization)."""
        return cls(
            domain=data["domain"],
            namespace=data["namespace"],
            token=data["token"],
            verified=data.get("verified", False),
            verified_at=datetime.fromisoformat(data["verified_at"])
            if data.get("verified_at")
            else None,
            created_at=datetime.fromisoformat(data["created_at"])
            if data.get("created_at")
            else datetime.now(UTC),
        )


class DomainVerificationStore:
    """JSON file-based storage for domain verification records.

    Access is serialized with an asyncio lock.
    """

    def __init__(self, storage_path: str | Path = "domains.json") -> None:
        self.storage_path = Path(storage_path)
        self._lock = asyncio.Lock()
        self._cache: dict[str, DomainVerification] | None = None

    async def _load(self) -> dict[str, DomainVerification]:
        if self._cache is not None:
            return self._cache

        if not self.storage_path.exists():
            self._cache = {}
            return self._cache

        content = await asyncio.to_thread(self.storage_path.read_text)
        try:
            data = json.loads(content)
            domains = {
                domain: DomainVerification.from_dict(record)
                for domain, record in data.get("domains", {}).items()
            }
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.error("domain_store_unreadable", path=str(self.storage_path), error=str(e))
            raise ValueError(f"Invalid domain storage {self.storage_path}: {e}") from e

        self._cache = domains
        return self._cache

    async def _save(self, domains: dict[str, DomainVerification]) -> None:
        data = {"domains": {domain: rec.to_dict() for domain, rec in domains.items()}}
        content = json.dumps(data, indent=2)
        await asyncio.to_thread(self.storage_path.write_text, content)
        self._cache = domains

    async def save(self, record: DomainVerification) -> None:
        """Save or update a verification record."""
        async with self._lock:
            domains = await self._load()
            domains[record.domain] = record
            await self._save(domains)

    async def get(self, domain: str) -> DomainVerification | None:
        """Get a verification record by domain name."""
        async with self._lock:
            domains = await self._load()
            return domains.get(normalize_host(domain))

    async def get_by_namespace(self, namespace: str) -> list[DomainVerification]:
        """Get all records owned by a namespace."""
        async with self._lock:
            domains = await self._load()
            return [rec for rec in domains.values() if rec.namespace == namespace]

    async def list_all(self) -> list[DomainVerification]:
        """Get all verification records."""
        async with self._lock:
            domains = await self._load()
            return list(domains.values())

    async def delete(self, domain: str) -> bool:
        """Delete a verification record.

        Returns:
            True if deleted, False if not found.
        """
        async with self._lock:
            domains = await self._load()
            domain = normalize_host(domain)
            if domain in domains:
                del domains[domain]
                await self._save(domains)
                return True
            return False

    async def for_accessor(self, accessor: TrafficAccessor) -> list[DomainVerification]:
        """Return the records that may gate hosts of ``accessor``.

        Only records in the accessor's namespace are returned, so a tenant
        cannot claim hosts through another tenant's ownership proof.
        """
        return await self.get_by_namespace(accessor.namespace)

    def invalidate_cache(self) -> None:
        """Invalidate the in-memory cache.

        Call this after external modifications to the storage file.
        """
        self._cache = None
