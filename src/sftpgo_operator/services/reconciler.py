"""
Reconciler driving the lifecycle adapters from kopf handlers.

This module defines the ResourceReconciler class that implements standard
patterns for status management, error handling and metrics around the
adapter operations.
"""

import time
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

from sftpgo_operator.constants import (
    IMPORT_ANNOTATION,
    PHASE_DEGRADED,
    PHASE_FAILED,
    PHASE_PENDING,
    PHASE_READY,
    PHASE_RECONCILING,
    SUCCESS_DELETION,
    SUCCESS_RECONCILIATION,
    SUCCESS_UPDATE,
)
from sftpgo_operator.errors import OperatorError, PermanentError, TemporaryError
from sftpgo_operator.observability.logging import OperatorLogger
from sftpgo_operator.observability.metrics import metrics_collector
from sftpgo_operator.services.base_adapter import ResourceAdapter
from sftpgo_operator.utils.sftpgo_client import SFTPGoClient


def state_patch(
    previous: Mapping[str, Any] | None, current: Mapping[str, Any]
) -> dict[str, Any]:
    """
    Return ``current`` as a JSON merge patch over ``previous``.

    kopf merges ``patch.status`` into the stored status, so keys missing
    from the new state record are sent as ``None`` to remove them. Lists
    replace the stored value as a whole.
    """
    patch = dict(current)
    for key, old in (previous or {}).items():
        if key not in current:
            patch[key] = None
        elif isinstance(old, Mapping) and isinstance(current[key], Mapping):
            patch[key] = state_patch(old, current[key])
    return patch


class StatusProtocol(Protocol):
    """Protocol for kopf Status objects that allow dynamic attribute assignment."""

    def __setattr__(self, name: str, value: Any) -> None: ...
    def __getattr__(self, name: str) -> Any: ...


class ResourceReconciler:
    """
    Reconciles custom resources of one kind through its adapter.

    Provides common patterns for:
    - Status management with conditions
    - Error handling and conversion to kopf errors
    - Metrics and structured logging of every operation

    Every entry point receives the last persisted state record and writes
    the new one to ``status.state``.
    """

    def __init__(self, adapter: ResourceAdapter):
        self.adapter = adapter
        self.logger = OperatorLogger(f"{__name__}.{adapter.kind}")

    @property
    def resource_type(self) -> str:
        return self.adapter.kind

    async def _run(
        self,
        operation: str,
        name: str,
        namespace: str,
        status: StatusProtocol,
        generation: int,
        func: Callable[[], Awaitable[dict[str, Any] | None]],
        success_message: str,
        previous_state: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        start_time = time.time()
        self.logger.log_reconciliation_start(
            resource_type=self.resource_type,
            resource_name=name,
            namespace=namespace,
            operation=operation,
        )

        async with metrics_collector.track_reconciliation(
            resource_type=self.resource_type,
            namespace=namespace,
            operation=operation,
        ):
            try:
                self.update_status_reconciling(status, f"Running {operation}", generation)
                metrics_collector.update_resource_status(
                    self.resource_type, namespace, name, PHASE_RECONCILING
                )

                state = await func()

                if state is not None:
                    status.state = state_patch(previous_state, state)
                    status.identifier = state.get(self.adapter.identifier_field)
                status.last_sync_time = datetime.now(UTC).isoformat()
                self.update_status_ready(status, success_message, generation)

                if operation == "delete":
                    metrics_collector.forget_resource(self.resource_type, namespace, name)
                else:
                    metrics_collector.update_resource_status(
                        self.resource_type, namespace, name, PHASE_READY
                    )
                self.logger.log_reconciliation_success(
                    resource_type=self.resource_type,
                    resource_name=name,
                    namespace=namespace,
                    operation=operation,
                    duration=time.time() - start_time,
                )
                return state

            except OperatorError as e:
                self._record_failure(
                    operation, name, namespace, status, generation, e, start_time, previous_state
                )
                raise e.as_kopf_error() from e

            except Exception as e:
                # Wrap unexpected errors as temporary to allow retry
                error = TemporaryError(f"Unexpected error during {operation}: {e}")
                self._record_failure(
                    operation,
                    name,
                    namespace,
                    status,
                    generation,
                    error,
                    start_time,
                    previous_state,
                )
                raise error.as_kopf_error() from e

    def _record_failure(
        self,
        operation: str,
        name: str,
        namespace: str,
        status: StatusProtocol,
        generation: int,
        error: OperatorError,
        start_time: float,
        previous_state: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Log the failure and move the resource to the matching phase.

        Permanent errors leave it Failed. A retryable error is Pending until
        the object was created once, and Degraded afterwards.
        """
        self.logger.log_reconciliation_error(
            resource_type=self.resource_type,
            resource_name=name,
            namespace=namespace,
            operation=operation,
            error=error,
            duration=time.time() - start_time,
        )
        if not error.retryable:
            phase = PHASE_FAILED
        elif previous_state:
            phase = PHASE_DEGRADED
        else:
            phase = PHASE_PENDING
        self.update_status_failed(status, str(error), generation, phase)
        metrics_collector.update_resource_status(self.resource_type, namespace, name, phase)

    async def reconcile(
        self,
        spec: Mapping[str, Any],
        name: str,
        namespace: str,
        status: StatusProtocol,
        client: SFTPGoClient,
        state: Mapping[str, Any] | None = None,
        annotations: Mapping[str, str] | None = None,
        generation: int = 0,
    ) -> dict[str, Any] | None:
        """
        Bring a new or resumed resource under management.

        A resource with a persisted state is refreshed; a resource annotated
        for import adopts the existing object; any other resource creates it.
        """

        async def do_reconcile() -> dict[str, Any]:
            if state:
                current = await self.adapter.read(client, state)
                if current is not None:
                    return current
                self.logger.warning(
                    f"{self.resource_type} {name} vanished from SFTPGo, recreating it"
                )
                metrics_collector.record_recreation(self.resource_type, namespace)
                return await self.adapter.create(client, spec)

            if (annotations or {}).get(IMPORT_ANNOTATION) == "true":
                return await self.import_existing(spec, client)

            return await self.adapter.create(client, spec)

        return await self._run(
            "reconcile",
            name,
            namespace,
            status,
            generation,
            do_reconcile,
            SUCCESS_RECONCILIATION,
            previous_state=state,
        )

    async def import_existing(
        self, spec: Mapping[str, Any], client: SFTPGoClient
    ) -> dict[str, Any]:
        identifier = self.adapter.identifier_of(spec)
        seed = self.adapter.import_state(identifier)
        current = await self.adapter.read(client, seed)
        if current is None:
            raise PermanentError(
                f"cannot import {self.resource_type} {identifier}: it does not exist",
                user_action=(
                    f"Create {identifier} in SFTPGo or remove the {IMPORT_ANNOTATION} annotation"
                ),
            )
        self.logger.info(f"Imported existing {self.resource_type} {identifier}")
        return current

    async def update(
        self,
        old_spec: Mapping[str, Any],
        new_spec: Mapping[str, Any],
        name: str,
        namespace: str,
        status: StatusProtocol,
        client: SFTPGoClient,
        state: Mapping[str, Any] | None = None,
        generation: int = 0,
    ) -> dict[str, Any] | None:
        """
        Apply a changed specification.

        Renaming the identifier cannot be done in place: the old object is
        deleted and the new one created.
        """
        field = self.adapter.identifier_field

        async def do_update() -> dict[str, Any]:
            old_identifier = old_spec.get(field)
            if old_identifier and old_identifier != new_spec.get(field):
                self.logger.info(
                    f"{self.resource_type} identifier changed from {old_identifier}, replacing it"
                )
                await self.adapter.delete(
                    client, state or self.adapter.import_state(old_identifier)
                )
                return await self.adapter.create(client, new_spec)
            return await self.adapter.update(client, new_spec)

        return await self._run(
            "update",
            name,
            namespace,
            status,
            generation,
            do_update,
            SUCCESS_UPDATE,
            previous_state=state,
        )

    async def delete(
        self,
        spec: Mapping[str, Any],
        name: str,
        namespace: str,
        status: StatusProtocol,
        client: SFTPGoClient,
        state: Mapping[str, Any] | None = None,
        generation: int = 0,
    ) -> None:
        async def do_delete() -> None:
            target = state
            if not target:
                identifier = spec.get(self.adapter.identifier_field)
                if not identifier:
                    self.logger.info(f"{self.resource_type} {name} was never created")
                    return None
                target = self.adapter.import_state(identifier)
            await self.adapter.delete(client, target)
            return None

        await self._run(
            "delete",
            name,
            namespace,
            status,
            generation,
            do_delete,
            SUCCESS_DELETION,
            previous_state=state,
        )

    async def resync(
        self,
        spec: Mapping[str, Any],
        name: str,
        namespace: str,
        status: StatusProtocol,
        client: SFTPGoClient,
        state: Mapping[str, Any] | None = None,
        generation: int = 0,
    ) -> dict[str, Any] | None:
        """Refresh the state of a managed object, recreating it when it vanished."""
        if not state:
            self.logger.debug(f"{self.resource_type} {name} has no state yet, skipping resync")
            return None
        return await self.reconcile(
            spec, name, namespace, status, client, state=state, generation=generation
        )

    def update_status_reconciling(
        self, status: StatusProtocol, message: str, generation: int = 0
    ) -> None:
        """Update status to indicate reconciliation is in progress."""
        status.phase = PHASE_RECONCILING
        status.message = message
        status.observed_generation = generation
        self._set_condition(status, "Ready", "Unknown", "ReconciliationInProgress", message, generation)

    def update_status_ready(
        self, status: StatusProtocol, message: str, generation: int = 0
    ) -> None:
        """Update status to indicate the object matches its specification."""
        status.phase = PHASE_READY
        status.message = message
        status.observed_generation = generation
        self._set_condition(status, "Ready", "True", "ReconciliationSucceeded", message, generation)

    def update_status_failed(
        self,
        status: StatusProtocol,
        message: str,
        generation: int = 0,
        phase: str = PHASE_FAILED,
    ) -> None:
        """Update status to indicate reconciliation failed."""
        status.phase = phase
        status.message = message
        status.observed_generation = generation
        self._set_condition(status, "Ready", "False", "ReconciliationFailed", message, generation)

    def _set_condition(
        self,
        status: StatusProtocol,
        condition_type: str,
        condition_status: str,
        reason: str,
        message: str,
        generation: int = 0,
    ) -> None:
        """Add or replace a status condition."""
        existing = getattr(status, "conditions", None) or []
        conditions = [
            c for c in existing if isinstance(c, dict) and c.get("type") != condition_type
        ]
        conditions.append(
            {
                "type": condition_type,
                "status": condition_status,
                "reason": reason,
                "message": message,
                "lastTransitionTime": datetime.now(UTC).isoformat(),
                "observedGeneration": generation,
            }
        )
        status.conditions = conditions
