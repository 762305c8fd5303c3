"""Reconciliation of client mount resources against the node's mount state"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from nodemount.models.schemas import (
    FINALIZER, ClientMount, ClientMountStatus, DesiredState, MountStatus, StatusError
)
from nodemount.services.mount_service import MountService
from nodemount.services.resource_store import ResourceStore
from nodemount.utils.exceptions import (
    ConflictException, NodeMountException, ResourceError, ResourceNotFoundException
)
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)

DEFAULT_REQUEUE_DELAY = 10


@dataclass(frozen=True)
class ReconcileResult:
    """
    What the trigger mechanism should do after a pass.

    requeue: run another pass right away
    requeue_after: run another pass after this many seconds
    """
    requeue: bool = False
    requeue_after: Optional[float] = None


def needs_status_init(resource: ClientMount) -> bool:
    """The status list is not index aligned with the spec"""
    return len(resource.status.mounts) != len(resource.spec.mounts)


def needs_state_reset(resource: ClientMount) -> bool:
    """Some entry still reports a state other than the desired one"""
    desired = resource.spec.desired_state
    return any(m.state != desired for m in resource.status.mounts)


def reset_status(resource: ClientMount) -> ClientMount:
    """Every entry takes the desired state, not ready, no message"""
    desired = resource.spec.desired_state
    mounts = tuple(MountStatus(state=desired) for _ in resource.spec.mounts)
    return replace(resource, status=ClientMountStatus(mounts=mounts, error=None))


def to_status_error(prefix: str, error: ResourceError) -> StatusError:
    return StatusError(
        message=f"{prefix}: {error.message}",
        user_message=error.user_message,
        fatal=error.fatal,
    )


class ReconciliationService:
    """
    Drives one client mount resource toward its desired state.

    A pass handles exactly one of: teardown (Finalizing), status
    re-initialization and state transition, attaching the finalizer, or
    mounting/unmounting every entry (Steady). The status is written once, at
    the end of the pass, and only if it changed.
    """

    def __init__(self, store: ResourceStore, mount_service: MountService,
                 requeue_delay: float = DEFAULT_REQUEUE_DELAY):
        self.store = store
        self.mount_service = mount_service
        self.requeue_delay = requeue_delay

    def reconcile(self, name: str, node: str) -> ReconcileResult:
        """Run one pass for the named resource"""
        try:
            resource = self.store.get(name, node)
        except ResourceNotFoundException:
            # Removed since the trigger was sent; a new trigger comes with a new resource
            LOG.debug(f"Client mount {name} on {node} no longer exists")
            return ReconcileResult()

        original_status = resource.status
        resource, result = self._reconcile(resource)

        if resource.status != original_status:
            self._write_status(resource)

        return result

    def reconcile_all(self, node: str) -> Dict[str, ReconcileResult]:
        """Run one pass for every resource of the node"""
        LOG.info(f"Reconciling all client mounts on node {node}...")

        results = {}
        for resource in self.store.list(node):
            try:
                results[resource.name] = self.reconcile(resource.name, node)
            except NodeMountException as e:
                LOG.error(f"Failed to reconcile client mount {resource.name}: {e}", exc_info=True)
                results[resource.name] = ReconcileResult(requeue_after=self.requeue_delay)

        LOG.info(f"Reconciled {len(results)} client mount(s) on node {node}")
        return results

    def _reconcile(self, resource: ClientMount) -> Tuple[ClientMount, ReconcileResult]:
        if resource.deletion_requested:
            return self._finalize(resource)

        if needs_status_init(resource):
            LOG.info(f"Initializing status of {resource.name} for {len(resource.spec.mounts)} mount(s)")
            return reset_status(resource), ReconcileResult(requeue=True)

        if needs_state_reset(resource):
            LOG.info(f"Desired state of {resource.name} is now {resource.spec.desired_state.value}")
            return reset_status(resource), ReconcileResult(requeue=True)

        if not resource.has_finalizer():
            try:
                resource = self.store.update_finalizers(
                    replace(resource, finalizers=resource.finalizers + (FINALIZER,))
                )
                LOG.info(f"Added finalizer to {resource.name}")
            except ConflictException as e:
                LOG.debug(f"Finalizer update for {resource.name} lost a race: {e}")
            return resource, ReconcileResult(requeue=True)

        return self._apply(resource)

    def _apply(self, resource: ClientMount) -> Tuple[ClientMount, ReconcileResult]:
        desired = resource.spec.desired_state
        statuses, first_error = self.mount_service.apply(resource.spec.mounts, desired)

        error = None
        result = ReconcileResult()
        if first_error is not None:
            verb = 'Mount' if desired == DesiredState.MOUNTED else 'Unmount'
            error = to_status_error(f"{verb} failed", first_error)
            LOG.info(f"Client mount {resource.name}: {error.message}")
            result = ReconcileResult(requeue_after=self.requeue_delay)

        status = ClientMountStatus(mounts=tuple(statuses), error=error)
        return replace(resource, status=status), result

    def _finalize(self, resource: ClientMount) -> Tuple[ClientMount, ReconcileResult]:
        if not resource.has_finalizer():
            return resource, ReconcileResult()

        LOG.info(f"Unmounting all file systems of {resource.name} due to resource deletion")
        statuses, first_error = self.mount_service.unmount_all(resource.spec.mounts)
        if first_error is not None:
            error = to_status_error('Unmount failed', first_error)
            LOG.info(f"Client mount {resource.name}: {error.message}")
            status = ClientMountStatus(mounts=tuple(statuses), error=error)
            return replace(resource, status=status), ReconcileResult(requeue_after=self.requeue_delay)

        finalizers = tuple(f for f in resource.finalizers if f != FINALIZER)
        try:
            resource = self.store.update_finalizers(replace(resource, finalizers=finalizers))
        except ConflictException as e:
            LOG.debug(f"Finalizer removal for {resource.name} lost a race: {e}")
            return resource, ReconcileResult(requeue=True)

        LOG.info(f"Removed finalizer from {resource.name}")
        return resource, ReconcileResult()

    def _write_status(self, resource: ClientMount):
        try:
            self.store.update_status(resource)
        except (ConflictException, ResourceNotFoundException) as e:
            # The next trigger derives the status again from fresh state
            LOG.debug(f"Dropped status update for {resource.name}: {e}")
