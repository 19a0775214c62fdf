"""Traffic accessors.

Any resource that carries annotations and a list of hostnames can be
reconciled. The reconciler only talks to the :class:`TrafficAccessor`
protocol; :class:`TrafficResource` is the concrete type used by the CLI.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TrafficAccessor(Protocol):
    """Capability over a resource that exposes hostnames."""

    @property
    def kind(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def namespace(self) -> str: ...

    def get_annotations(self) -> dict[str, str]:
        """Return the mutable annotation mapping."""
        ...

    def get_hosts(self) -> list[str]:
        """Return the declared hostnames in order."""
        ...

    def set_hosts(self, hosts: list[str]) -> None:
        """Replace the declared hostnames."""
        ...


@dataclass
class TrafficResource:
    """A traffic-exposing resource, such as an ingress or a route."""

    name: str
    namespace: str = "default"
    kind: str = "Ingress"
    hosts: list[str] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)

    def get_annotations(self) -> dict[str, str]:
        return self.annotations

    def get_hosts(self) -> list[str]:
        return list(self.hosts)

    def set_hosts(self, hosts: list[str]) -> None:
        self.hosts = list(hosts)

    @property
    def key(self) -> str:
        """Namespaced identifier, ``<namespace>/<name>``."""
        return f"{self.namespace}/{self.name}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "hosts": list(self.hosts),
            "annotations": dict(self.annotations),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrafficResource:
        """Create from dictionary (JSON deserialization)."""
        return cls(
            name=data["name"],
            namespace=data.get("namespace", "default"),
            kind=data.get("kind", "Ingress"),
            hosts=list(data.get("hosts", [])),
            annotations=dict(data.get("annotations", {})),
        )


def load_resource(path: str | Path) -> TrafficResource:
    """Load a resource from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid JSON or misses required fields
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Resource file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    try:
        return TrafficResource.from_dict(data)
    except KeyError as e:
        raise ValueError(f"Resource in {path} is missing field {e}") from e


def save_resource(resource: TrafficResource, path: str | Path) -> None:
    """Write a resource to a JSON file."""
    Path(path).write_text(json.dumps(resource.to_dict(), indent=2) + "\n", encoding="utf-8")
