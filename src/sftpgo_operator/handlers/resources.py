"""
SFTPGo resource handlers - one handler set per supported kind.

Every kind follows the same lifecycle, so the handlers are registered in a
loop over the adapters instead of being written out per kind:

- create/resume: refresh a known object, adopt an existing one when the
  resource is annotated for import, or create it
- update: push the new specification, replacing the object when its
  identifier changed
- delete: remove the object from SFTPGo before kopf drops the finalizer
- timer: periodic read that recreates objects deleted outside the operator

The state record returned by the adapters is persisted in ``status.state``
and handed back to the adapters on the next event.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import kopf

from sftpgo_operator.constants import API_GROUP, API_VERSION
from sftpgo_operator.observability.tracing import traced_handler
from sftpgo_operator.services import ADAPTERS, ResourceAdapter, ResourceReconciler
from sftpgo_operator.settings import settings
from sftpgo_operator.utils.handler_logging import log_handler_entry

logger = logging.getLogger(__name__)


class StatusWrapper:
    """Wrapper to make kopf patch.status compatible with StatusProtocol.

    All updates are written directly to the underlying patch object.
    Automatically converts snake_case Python attribute names to camelCase for K8s API.
    """

    def __init__(self, patch_status: Any):
        object.__setattr__(self, "_patch_status", patch_status)

    @staticmethod
    def _to_camel_case(snake_str: str) -> str:
        components = snake_str.split("_")
        return components[0] + "".join(x.title() for x in components[1:])

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        self._patch_status[self._to_camel_case(name)] = value

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        try:
            return self._patch_status[self._to_camel_case(name)]
        except (KeyError, TypeError):
            return None


def _current_state(status: Any) -> dict[str, Any] | None:
    """Return the state record persisted by the previous run, if any."""
    state = (status or {}).get("state")
    return dict(state) if state else None


def _generation(meta: Any) -> int:
    return (meta or {}).get("generation", 0)


@dataclass(frozen=True)
class ResourceHandlers:
    """The kopf handlers registered for one kind, with the reconciler they drive."""

    reconciler: ResourceReconciler
    ensure: Callable[..., Awaitable[None]]
    update: Callable[..., Awaitable[None]]
    delete: Callable[..., Awaitable[None]]
    resync: Callable[..., Awaitable[None]]


def register_handlers(adapter: ResourceAdapter) -> ResourceHandlers:
    """Register the kopf handler set for the kind managed by ``adapter``."""
    plural = adapter.plural
    reconciler = ResourceReconciler(adapter)

    @kopf.on.create(
        plural, backoff=1.5, group=API_GROUP, version=API_VERSION, id=f"ensure-{adapter.kind}"
    )
    @kopf.on.resume(
        plural, backoff=1.5, group=API_GROUP, version=API_VERSION, id=f"resume-{adapter.kind}"
    )
    @traced_handler(f"ensure_{plural}", resource_type=plural)
    async def ensure_resource(
        spec: dict[str, Any],
        name: str,
        namespace: str,
        status: dict[str, Any],
        patch: kopf.Patch,
        memo: kopf.Memo,
        **kwargs: Any,
    ) -> None:
        log_handler_entry("create", plural, name, namespace)

        await reconciler.reconcile(
            spec=dict(spec),
            name=name,
            namespace=namespace,
            status=StatusWrapper(patch.status),
            client=memo.sftpgo_client,
            state=_current_state(status),
            annotations=kwargs.get("annotations") or {},
            generation=_generation(kwargs.get("meta")),
        )
        # Return None to avoid Kopf creating status subpaths
        return

    @kopf.on.update(
        plural, backoff=1.5, group=API_GROUP, version=API_VERSION, id=f"update-{adapter.kind}"
    )
    @traced_handler(f"update_{plural}", resource_type=plural)
    async def update_resource(
        old: dict[str, Any],
        new: dict[str, Any],
        name: str,
        namespace: str,
        status: dict[str, Any],
        patch: kopf.Patch,
        memo: kopf.Memo,
        **kwargs: Any,
    ) -> None:
        log_handler_entry("update", plural, name, namespace)

        await reconciler.update(
            old_spec=dict(old.get("spec") or {}),
            new_spec=dict(new.get("spec") or {}),
            name=name,
            namespace=namespace,
            status=StatusWrapper(patch.status),
            client=memo.sftpgo_client,
            state=_current_state(status),
            generation=_generation(kwargs.get("meta")),
        )
        return

    @kopf.on.delete(
        plural, backoff=1.5, group=API_GROUP, version=API_VERSION, id=f"delete-{adapter.kind}"
    )
    @traced_handler(f"delete_{plural}", resource_type=plural)
    async def delete_resource(
        spec: dict[str, Any],
        name: str,
        namespace: str,
        status: dict[str, Any],
        patch: kopf.Patch,
        memo: kopf.Memo,
        **kwargs: Any,
    ) -> None:
        log_handler_entry("delete", plural, name, namespace)

        await reconciler.delete(
            spec=dict(spec),
            name=name,
            namespace=namespace,
            status=StatusWrapper(patch.status),
            client=memo.sftpgo_client,
            state=_current_state(status),
            generation=_generation(kwargs.get("meta")),
        )
        logger.info(f"Successfully deleted {adapter.kind} {name}")

    @kopf.timer(
        plural,
        group=API_GROUP,
        version=API_VERSION,
        interval=settings.resync_interval_seconds,
        id=f"resync-{adapter.kind}",
    )
    @traced_handler(f"resync_{plural}", resource_type=plural)
    async def resync_resource(
        spec: dict[str, Any],
        name: str,
        namespace: str,
        status: dict[str, Any],
        patch: kopf.Patch,
        memo: kopf.Memo,
        **kwargs: Any,
    ) -> None:
        log_handler_entry("timer", plural, name, namespace)

        await reconciler.resync(
            spec=dict(spec),
            name=name,
            namespace=namespace,
            status=StatusWrapper(patch.status),
            client=memo.sftpgo_client,
            state=_current_state(status),
            generation=_generation(kwargs.get("meta")),
        )

    return ResourceHandlers(
        reconciler=reconciler,
        ensure=ensure_resource,
        update=update_resource,
        delete=delete_resource,
        resync=resync_resource,
    )


HANDLERS = {adapter.plural: register_handlers(adapter) for adapter in ADAPTERS}
