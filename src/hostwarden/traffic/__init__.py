"""Hostwarden traffic host reconciliation.

Decides which hostnames a traffic-exposing resource may advertise:
- a managed host, ``<unique-id>.<managed-domain>``, assigned once
- custom hosts, kept only while a verified domain covers them
- the managed host in place of custom hosts when policy forbids them

Usage:
    from hostwarden.traffic import HostReconciler, RouteStore, TrafficResource

    routes = RouteStore("routes.json")
    reconciler = HostReconciler(
        managed_domain="apps.example.com",
        custom_hosts_enabled=True,
        get_domain_verifications=domain_store.for_accessor,
        create_or_update_traffic=routes.create_or_update,
        delete_traffic=routes.delete,
    )

    resource = TrafficResource(name="web", namespace="team-a", hosts=["api.mycompany.com"])
    result = await reconciler.reconcile(resource)
"""

from hostwarden.traffic.accessor import (
    TrafficAccessor,
    TrafficResource,
    load_resource,
    save_resource,
)
from hostwarden.traffic.custom_hosts import (
    is_domain_verified,
    process_custom_hosts,
    replace_custom_hosts,
)
from hostwarden.traffic.errors import (
    CustomHostProcessingError,
    HostReconcileError,
    VerificationLookupError,
)
from hostwarden.traffic.host import (
    HostReconciler,
    ReconcileResult,
    ReconcileStatus,
    new_unique_id,
)
from hostwarden.traffic.metadata import (
    ANNOTATION_CUSTOM_HOST_REPLACED,
    ANNOTATION_MANAGED_HOST,
    ANNOTATION_PENDING_CUSTOM_HOSTS,
    ANNOTATION_ROUTED_CUSTOM_HOSTS,
)
from hostwarden.traffic.reconciler import Reconciler, run_reconcilers
from hostwarden.traffic.routes import RouteConflictError, RouteStore, TrafficRoute

__all__ = [
    "ANNOTATION_CUSTOM_HOST_REPLACED",
    "ANNOTATION_MANAGED_HOST",
    "ANNOTATION_PENDING_CUSTOM_HOSTS",
    "ANNOTATION_ROUTED_CUSTOM_HOSTS",
    "CustomHostProcessingError",
    "HostReconcileError",
    "HostReconciler",
    "ReconcileResult",
    "ReconcileStatus",
    "Reconciler",
    "RouteConflictError",
    "RouteStore",
    "TrafficAccessor",
    "TrafficResource",
    "TrafficRoute",
    "VerificationLookupError",
    "is_domain_verified",
    "load_resource",
    "new_unique_id",
    "process_custom_hosts",
    "replace_custom_hosts",
    "run_reconcilers",
    "save_resource",
]
