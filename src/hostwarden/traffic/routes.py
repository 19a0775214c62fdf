"""Traffic routes for custom hosts.

A route maps one hostname to the resource that serves it. Routes are stored
in a JSON file and provide the create/update and delete callbacks used by
:class:`~hostwarden.traffic.host.HostReconciler`.

Storage file format (routes.json):
    {
        "routes": {
            "api.example.com": {
                "host": "api.example.com",
                "kind": "Ingress",
                "namespace": "team-a",
                "name": "web",
                "updated_at": "2024-01-15T10:00:00+00:00"
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
from typing import Any

import structlog

from hostwarden.domains.wildcards import normalize_host
from hostwarden.traffic.accessor import TrafficAccessor

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class TrafficRoute:
    """Routes requests for ``host`` to a traffic resource."""

    host: str
    kind: str
    namespace: str
    name: str
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def target(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "kind": self.kind,
            "namespace": self.namespace,
            "name": self.name,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrafficRoute:
        return cls(
            host=data["host"],
            kind=data["kind"],
            namespace=data["namespace"],
            name=data["name"],
            updated_at=datetime.fromisoformat(data["updated_at"])
            if data.get("updated_at")
            else _utc_now(),
        )


class RouteConflictError(ValueError):
    """The host is already routed to another resource."""


class RouteStore:
    """JSON file-based storage for traffic routes.

    Both callbacks are idempotent: creating an existing route refreshes it,
    deleting a missing route does nothing.
    """

    def __init__(self, storage_path: str | Path = "routes.json") -> None:
        self.storage_path = Path(storage_path)
        self._lock = asyncio.Lock()
        self._cache: dict[str, TrafficRoute] | None = None

    async def _load(self) -> dict[str, TrafficRoute]:
        if self._cache is not None:
            return self._cache

        if not self.storage_path.exists():
            self._cache = {}
            return self._cache

        content = await asyncio.to_thread(self.storage_path.read_text)
        try:
            data = json.loads(content)
            self._cache = {
                host: TrafficRoute.from_dict(route)
                for host, route in data.get("routes", {}).items()
            }
        except (json.JSONDecodeError, KeyError) as e:
            raise ValueError(f"Invalid route storage {self.storage_path}: {e}") from e

        return self._cache

    async def _save(self, routes: dict[str, TrafficRoute]) -> None:
        data = {"routes": {host: route.to_dict() for host, route in routes.items()}}
        await asyncio.to_thread(self.storage_path.write_text, json.dumps(data, indent=2))
        self._cache = routes

    async def create_or_update(self, accessor: TrafficAccessor, host: str) -> None:
        """Route ``host`` to ``accessor``.

        Raises:
            RouteConflictError: If ``host`` is routed to another resource.
        """
        host = normalize_host(host)
        async with self._lock:
            routes = await self._load()
            existing = routes.get(host)
            route = TrafficRoute(
                host=host,
                kind=accessor.kind,
                namespace=accessor.namespace,
                name=accessor.name,
            )
            if existing and existing.target != route.target:
                raise RouteConflictError(f"Host {host} is already routed to {existing.target}")
            routes[host] = route
            await self._save(routes)

        if existing is None:
            logger.info("route_created", host=host, target=route.target)

    async def delete(self, accessor: TrafficAccessor, host: str) -> None:
        """Remove the route of ``host`` if it points to ``accessor``.

        Routes owned by another resource are left alone.
        """
        host = normalize_host(host)
        async with self._lock:
            routes = await self._load()
            existing = routes.get(host)
            if existing is None:
                return
            if (existing.kind, existing.namespace, existing.name) != (
                accessor.kind,
                accessor.namespace,
                accessor.name,
            ):
                return
            del routes[host]
            await self._save(routes)

    async def get(self, host: str) -> TrafficRoute | None:
        async with self._lock:
            routes = await self._load()
            return routes.get(normalize_host(host))

    async def list_all(self) -> list[TrafficRoute]:
        async with self._lock:
            routes = await self._load()
            return list(routes.values())
