"""Host assignment and custom host policy.

The host reconciler decides which hostnames a traffic accessor may advertise
and tells the driver whether the accessor must be persisted before anything
else acts on it.

Checks run in order and the first one that applies decides the result:

1. No managed host yet: assign ``<unique-id>.<managed-domain>`` and STOP, so
   the host is persisted before certificates or routes are issued for it.
2. Custom hosts disabled: replace custom hosts with the managed host and
   CONTINUE.
3. Custom hosts enabled: keep only hosts backed by a verified domain.
   A failed verification lookup CONTINUEs with an error; a failed route
   update STOPs with an error.

Example:
    reconciler = HostReconciler(
        managed_domain="apps.example.com",
        custom_hosts_enabled=True,
        get_domain_verifications=domain_store.for_accessor,
        create_or_update_traffic=routes.create_or_update,
        delete_traffic=routes.delete,
    )
    result = await reconciler.reconcile(resource)
    if result.should_stop:
        save(resource)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

import structlog

from hostwarden.domains.storage import DomainVerification
from hostwarden.domains.wildcards import normalize_host
from hostwarden.traffic.accessor import TrafficAccessor
from hostwarden.traffic.custom_hosts import (
    CreateOrUpdateTraffic,
    DeleteTraffic,
    process_custom_hosts,
    replace_custom_hosts,
)
from hostwarden.traffic.errors import (
    CustomHostProcessingError,
    HostReconcileError,
    VerificationLookupError,
)
from hostwarden.traffic.metadata import (
    ANNOTATION_CUSTOM_HOST_REPLACED,
    ANNOTATION_MANAGED_HOST,
    add_annotation,
    get_annotation,
    has_annotation,
)

logger = structlog.get_logger()

GetDomainVerifications = Callable[[TrafficAccessor], Awaitable[Sequence[DomainVerification]]]


class ReconcileStatus(Enum):
    """Directive returned to the driver."""

    STOP = "stop"
    """Persist the accessor before any further processing of it."""

    CONTINUE = "continue"
    """Mutations, if any, can be carried forward without a checkpoint."""


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation step."""

    status: ReconcileStatus
    error: HostReconcileError | None = None

    @property
    def should_stop(self) -> bool:
        return self.status == ReconcileStatus.STOP

    @property
    def ok(self) -> bool:
        return self.error is None


def new_unique_id() -> str:
    """Return a globally unique, DNS-label safe identifier."""
    return uuid4().hex


def replaced_hosts_message(hosts: Sequence[str]) -> str:
    return (
        f"replaced custom hosts {', '.join(hosts)} with the managed host "
        "because custom hosts are not allowed by policy"
    )


class HostReconciler:
    """Assigns managed hosts and enforces the custom host policy."""

    name = "Host Reconciler"

    def __init__(
        self,
        managed_domain: str,
        custom_hosts_enabled: bool,
        get_domain_verifications: GetDomainVerifications,
        create_or_update_traffic: CreateOrUpdateTraffic,
        delete_traffic: DeleteTraffic,
        generate_unique_id: Callable[[], str] = new_unique_id,
    ) -> None:
        """Initialize the reconciler.

        Args:
            managed_domain: Suffix of generated hosts (e.g., apps.example.com).
            custom_hosts_enabled: Whether user-supplied hosts are allowed.
            get_domain_verifications: Reads the ownership records that apply
                to an accessor.
            create_or_update_traffic: Creates or updates the route of a host.
            delete_traffic: Deletes the route of a host.
            generate_unique_id: Source of the managed host's unique label.
        """
        self.managed_domain = normalize_host(managed_domain).strip(".")
        self.custom_hosts_enabled = custom_hosts_enabled
        self.get_domain_verifications = get_domain_verifications
        self.create_or_update_traffic = create_or_update_traffic
        self.delete_traffic = delete_traffic
        self.generate_unique_id = generate_unique_id

    async def reconcile(self, accessor: TrafficAccessor) -> ReconcileResult:
        """Run one host reconciliation pass over ``accessor``.

        Only in-memory fields of ``accessor`` are mutated. On STOP the
        caller must persist it before processing it any further.
        """
        log = logger.bind(kind=accessor.kind, namespace=accessor.namespace, resource=accessor.name)

        if not has_annotation(accessor, ANNOTATION_MANAGED_HOST):
            return self._assign_managed_host(accessor, log)

        if not self.custom_hosts_enabled:
            return self._enforce_managed_host(accessor, log)

        return await self._process_custom_hosts(accessor, log)

    def _assign_managed_host(
        self, accessor: TrafficAccessor, log: structlog.typing.FilteringBoundLogger
    ) -> ReconcileResult:
        host = f"{self.generate_unique_id()}.{self.managed_domain}"
        add_annotation(accessor, ANNOTATION_MANAGED_HOST, host)
        log.info("managed_host_assigned", host=host)
        # The host must be saved before certificates or routes use it,
        # otherwise a conflicting update could drop it for a new one.
        return ReconcileResult(ReconcileStatus.STOP)

    def _enforce_managed_host(
        self, accessor: TrafficAccessor, log: structlog.typing.FilteringBoundLogger
    ) -> ReconcileResult:
        managed_host = get_annotation(accessor, ANNOTATION_MANAGED_HOST) or ""
        replaced = replace_custom_hosts(accessor, managed_host)
        if replaced:
            add_annotation(accessor, ANNOTATION_CUSTOM_HOST_REPLACED, replaced_hosts_message(replaced))
            log.info("custom_hosts_replaced", hosts=replaced, managed_host=managed_host)
        return ReconcileResult(ReconcileStatus.CONTINUE)

    async def _process_custom_hosts(
        self, accessor: TrafficAccessor, log: structlog.typing.FilteringBoundLogger
    ) -> ReconcileResult:
        try:
            verifications = await self.get_domain_verifications(accessor)
        except Exception as e:
            log.warning("verification_lookup_failed", error=str(e))
            error = VerificationLookupError(f"error getting domain verifications: {e}")
            error.__cause__ = e
            return ReconcileResult(ReconcileStatus.CONTINUE, error)

        try:
            await process_custom_hosts(
                accessor,
                verifications,
                self.create_or_update_traffic,
                self.delete_traffic,
            )
        except CustomHostProcessingError as e:
            log.warning("custom_host_processing_failed", error=str(e), hosts=list(e.failures))
            return ReconcileResult(ReconcileStatus.STOP, e)
        except Exception as e:
            log.warning("custom_host_processing_failed", error=str(e))
            error = CustomHostProcessingError(message=f"error processing custom hosts: {e}")
            error.__cause__ = e
            return ReconcileResult(ReconcileStatus.STOP, error)

        return ReconcileResult(ReconcileStatus.CONTINUE)
