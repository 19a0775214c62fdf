"""Custom host handling.

Two operations act on the hostnames of a traffic accessor:

- :func:`replace_custom_hosts` swaps every custom host for the managed host
  when custom hosts are not allowed.
- :func:`process_custom_hosts` keeps custom hosts only while a verified
  domain record covers them, and creates or deletes the traffic routes that
  serve them.

Unverified hosts are not lost: they are parked in the pending annotation and
restored on a later pass once their domain is verified.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence

import structlog

from hostwarden.domains.storage import DomainVerification
from hostwarden.domains.wildcards import host_covered_by, normalize_host
from hostwarden.traffic.accessor import TrafficAccessor
from hostwarden.traffic.errors import CustomHostProcessingError
from hostwarden.traffic.metadata import (
    ANNOTATION_MANAGED_HOST,
    ANNOTATION_PENDING_CUSTOM_HOSTS,
    ANNOTATION_ROUTED_CUSTOM_HOSTS,
    get_annotation,
    get_host_list,
    set_host_list,
)

logger = structlog.get_logger()

CreateOrUpdateTraffic = Callable[[TrafficAccessor, str], Awaitable[None]]
DeleteTraffic = Callable[[TrafficAccessor, str], Awaitable[None]]


def _unique(hosts: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for host in hosts:
        if host and host not in seen:
            seen.add(host)
            result.append(host)
    return result


def is_domain_verified(host: str, verifications: Sequence[DomainVerification]) -> bool:
    """Check whether a verified record covers ``host``."""
    return any(
        record.verified and host_covered_by(host, record.domain) for record in verifications
    )


def replace_custom_hosts(accessor: TrafficAccessor, managed_host: str) -> list[str]:
    """Replace every custom host of ``accessor`` with ``managed_host``.

    Returns:
        The distinct hosts that were removed, in first-seen order. Empty when
        the accessor has no hosts or only the managed host.
    """
    hosts = accessor.get_hosts()
    if not hosts:
        return []

    replaced = [host for host in _unique(hosts) if host != managed_host]
    if hosts != [managed_host]:
        accessor.set_hosts([managed_host])
    return replaced


async def process_custom_hosts(
    accessor: TrafficAccessor,
    verifications: Sequence[DomainVerification],
    create_or_update: CreateOrUpdateTraffic,
    delete: DeleteTraffic,
) -> None:
    """Reconcile the custom hosts of ``accessor`` against domain ownership.

    Verified hosts are kept and get a route through ``create_or_update``.
    Unverified hosts are moved to the pending annotation and their route is
    deleted. Hosts that had a route but are no longer declared have it
    deleted as well.

    Every callback is attempted. Annotations and hosts are updated before
    failures are raised, so a failed delete stays recorded as routed and is
    retried on the next pass.

    Raises:
        CustomHostProcessingError: If any callback failed.
    """
    managed_host = normalize_host(get_annotation(accessor, ANNOTATION_MANAGED_HOST) or "")
    hosts = accessor.get_hosts()
    pending = get_host_list(accessor, ANNOTATION_PENDING_CUSTOM_HOSTS)
    routed = get_host_list(accessor, ANNOTATION_ROUTED_CUSTOM_HOSTS)

    candidates = [
        host
        for host in _unique(normalize_host(host) for host in [*hosts, *pending])
        if host != managed_host
    ]
    verified = [host for host in candidates if is_domain_verified(host, verifications)]
    unverified = [host for host in candidates if host not in verified]
    removed = [host for host in routed if host not in candidates]

    failures: dict[str, Exception] = {}
    now_routed: list[str] = []

    for host in verified:
        try:
            await create_or_update(accessor, host)
        except Exception as e:
            failures[host] = e
            if host in routed:
                now_routed.append(host)
            continue
        now_routed.append(host)

    for host in [*unverified, *removed]:
        try:
            await delete(accessor, host)
        except Exception as e:
            failures[host] = e
            if host in routed:
                now_routed.append(host)
            continue
        if host in routed:
            logger.info("route_deleted", resource=accessor.name, host=host)

    keeps_managed = managed_host and any(normalize_host(host) == managed_host for host in hosts)
    new_hosts = [managed_host] if keeps_managed else []
    accessor.set_hosts([*new_hosts, *verified])
    set_host_list(accessor, ANNOTATION_PENDING_CUSTOM_HOSTS, unverified)
    set_host_list(accessor, ANNOTATION_ROUTED_CUSTOM_HOSTS, _unique(now_routed))

    if unverified:
        logger.info(
            "custom_hosts_pending_verification",
            resource=accessor.name,
            namespace=accessor.namespace,
            hosts=unverified,
        )

    if failures:
        raise CustomHostProcessingError(failures)
