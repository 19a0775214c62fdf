"""Annotation helpers for traffic accessors."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from hostwarden.traffic.accessor import TrafficAccessor

logger = structlog.get_logger()

ANNOTATION_MANAGED_HOST = "hostwarden.dev/host"
"""Platform-assigned hostname, ``<unique-id>.<managed-domain>``."""

ANNOTATION_CUSTOM_HOST_REPLACED = "hostwarden.dev/custom-hosts.replaced"
"""Audit of custom hosts replaced by the managed host under policy."""

ANNOTATION_PENDING_CUSTOM_HOSTS = "hostwarden.dev/custom-hosts.pending"
"""JSON list of custom hosts withheld until their domain is verified."""

ANNOTATION_ROUTED_CUSTOM_HOSTS = "hostwarden.dev/custom-hosts.routed"
"""JSON list of custom hosts that currently have a traffic route."""


def has_annotation(accessor: TrafficAccessor, key: str) -> bool:
    return key in accessor.get_annotations()


def get_annotation(accessor: TrafficAccessor, key: str) -> str | None:
    return accessor.get_annotations().get(key)


def add_annotation(accessor: TrafficAccessor, key: str, value: str) -> None:
    accessor.get_annotations()[key] = value


def remove_annotation(accessor: TrafficAccessor, key: str) -> None:
    accessor.get_annotations().pop(key, None)


def get_host_list(accessor: TrafficAccessor, key: str) -> list[str]:
    """Read a JSON list of hosts stored under ``key``.

    A missing value reads as an empty list. A malformed one is logged and
    reads as an empty list too.
    """
    raw = get_annotation(accessor, key)
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = None
    if not isinstance(value, list):
        logger.warning(
            "host_list_annotation_malformed",
            resource=accessor.name,
            namespace=accessor.namespace,
            key=key,
            value=raw,
        )
        return []
    return [str(host) for host in value]


def set_host_list(accessor: TrafficAccessor, key: str, hosts: list[str]) -> None:
    """Store ``hosts`` as a JSON list, removing the annotation when empty."""
    if hosts:
        add_annotation(accessor, key, json.dumps(hosts))
    else:
        remove_annotation(accessor, key)
