"""Chained reconciliation of a traffic accessor.

A driver runs several reconcilers over the same accessor, in order. The
first STOP ends the pass; the driver then persists the accessor and queues
it again.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import structlog

from hostwarden.traffic.accessor import TrafficAccessor
from hostwarden.traffic.host import ReconcileResult, ReconcileStatus

logger = structlog.get_logger()


class Reconciler(Protocol):
    """One step of a reconciliation pass."""

    name: str

    async def reconcile(self, accessor: TrafficAccessor) -> ReconcileResult: ...


async def run_reconcilers(
    accessor: TrafficAccessor,
    reconcilers: Sequence[Reconciler],
) -> ReconcileResult:
    """Run ``reconcilers`` over ``accessor`` until one asks to stop.

    Errors returned with CONTINUE do not end the pass. The first of them is
    returned at the end so the driver can requeue the accessor with backoff.
    """
    deferred = None

    for reconciler in reconcilers:
        result = await reconciler.reconcile(accessor)
        logger.debug(
            "reconciler_finished",
            reconciler=reconciler.name,
            resource=accessor.name,
            status=result.status.value,
        )

        if result.error is not None:
            logger.error(
                "reconciler_error",
                reconciler=reconciler.name,
                resource=accessor.name,
                status=result.status.value,
                error=str(result.error),
            )

        if result.should_stop:
            return result

        if result.error is not None and deferred is None:
            deferred = result.error

    return ReconcileResult(ReconcileStatus.CONTINUE, deferred)
