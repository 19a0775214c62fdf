"""Errors reported by host reconciliation.

None of them is terminal for a resource: the driver retries every one.
"""

from __future__ import annotations


class HostReconcileError(Exception):
    """Base class for host reconciliation failures."""


class VerificationLookupError(HostReconcileError):
    """Domain verification records could not be read."""


class CustomHostProcessingError(HostReconcileError):
    """Traffic routes for custom hosts could not be reconciled.

    ``failures`` maps each host to the error of its callback. It is empty
    when processing failed before any callback ran.
    """

    def __init__(self, failures: dict[str, Exception] | None = None, message: str | None = None):
        self.failures = dict(failures or {})
        if message is None:
            details = ", ".join(f"{host}: {err}" for host, err in self.failures.items())
            message = f"failed to reconcile traffic for custom hosts: {details}"
        super().__init__(message)
