"""Client mount resource persistence"""

import json
from datetime import datetime
from typing import List

from nodemount.models.database import ClientMountRecord, session_scope
from nodemount.models.schemas import (
    ClientMount, ClientMountSpec, ClientMountStatus
)
from nodemount.utils.exceptions import ConflictException, ResourceNotFoundException
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)


class ResourceStore:
    """
    Reads and writes client mount resources.

    Writes are compare-and-write on the resource version: an update built
    from a stale copy raises ConflictException instead of overwriting a
    newer document.
    """

    def get(self, name: str, node: str) -> ClientMount:
        with session_scope() as session:
            record = self._query(session, name, node).first()
            if not record:
                raise ResourceNotFoundException(f"Client mount {name} not found on node {node}")
            return self._to_resource(record)

    def list(self, node: str) -> List[ClientMount]:
        with session_scope() as session:
            records = session.query(ClientMountRecord).filter_by(
                node=node, deleted=False
            ).order_by(ClientMountRecord.name).all()
            return [self._to_resource(r) for r in records]

    def create(self, resource: ClientMount) -> ClientMount:
        """Create a resource; the status starts empty"""
        with session_scope() as session:
            if self._query(session, resource.name, resource.node).first():
                raise ConflictException(
                    f"Client mount {resource.name} already exists on node {resource.node}"
                )

            record = ClientMountRecord(
                name=resource.name,
                node=resource.node,
                spec=json.dumps(resource.spec.to_dict()),
                status=json.dumps(ClientMountStatus().to_dict()),
                finalizers=json.dumps([]),
                deletion_requested=False,
                version=1,
            )
            session.add(record)
            session.flush()

            LOG.info(f"Created client mount {resource.name} on node {resource.node}")
            return self._to_resource(record)

    def update_spec(self, resource: ClientMount) -> ClientMount:
        """Replace the spec of an existing resource"""
        return self._compare_and_write(resource, {'spec': json.dumps(resource.spec.to_dict())})

    def request_deletion(self, name: str, node: str) -> ClientMount:
        """
        Mark a resource for teardown.

        A resource without finalizers is removed at once; otherwise removal
        waits until the agent drops its finalizer.
        """
        with session_scope() as session:
            record = self._query(session, name, node).first()
            if not record:
                raise ResourceNotFoundException(f"Client mount {name} not found on node {node}")

            record.deletion_requested = True
            record.version += 1
            if not json.loads(record.finalizers or '[]'):
                self._purge(record)

            return self._to_resource(record)

    def update_finalizers(self, resource: ClientMount) -> ClientMount:
        """
        Write the finalizer list. Dropping the last finalizer of a resource
        whose deletion was requested removes it.
        """
        values = {'finalizers': json.dumps(list(resource.finalizers))}
        if resource.deletion_requested and not resource.finalizers:
            values.update(deleted=True, deleted_at=datetime.utcnow())
        return self._compare_and_write(resource, values)

    def update_status(self, resource: ClientMount) -> ClientMount:
        return self._compare_and_write(resource, {'status': json.dumps(resource.status.to_dict())})

    def _compare_and_write(self, resource: ClientMount, values: dict) -> ClientMount:
        with session_scope() as session:
            values = dict(values, version=resource.version + 1, updated_at=datetime.utcnow())
            updated = self._query(session, resource.name, resource.node).filter_by(
                version=resource.version
            ).update(values, synchronize_session=False)

            if not updated:
                self._check_version(session, resource)
                raise ConflictException(f"Client mount {resource.name} was modified concurrently")

            record = session.query(ClientMountRecord).filter_by(
                name=resource.name, node=resource.node, version=values['version']
            ).order_by(ClientMountRecord.id.desc()).first()
            session.refresh(record)
            if record.deleted:
                LOG.info(f"Removed client mount {record.name} from node {record.node}")
            return self._to_resource(record)

    def _check_version(self, session, resource: ClientMount):
        record = self._query(session, resource.name, resource.node).first()
        if not record:
            raise ResourceNotFoundException(
                f"Client mount {resource.name} not found on node {resource.node}"
            )
        if record.version != resource.version:
            raise ConflictException(
                f"Client mount {resource.name} is at version {record.version}, "
                f"update was based on {resource.version}"
            )

    @staticmethod
    def _query(session, name: str, node: str):
        return session.query(ClientMountRecord).filter_by(name=name, node=node, deleted=False)

    @staticmethod
    def _purge(record: ClientMountRecord):
        record.deleted = True
        record.deleted_at = datetime.utcnow()
        LOG.info(f"Removed client mount {record.name} from node {record.node}")

    @staticmethod
    def _to_resource(record: ClientMountRecord) -> ClientMount:
        return ClientMount(
            name=record.name,
            node=record.node,
            spec=ClientMountSpec.from_dict(json.loads(record.spec)),
            status=ClientMountStatus.from_dict(json.loads(record.status or '{}')),
            finalizers=tuple(json.loads(record.finalizers or '[]')),
            deletion_requested=bool(record.deletion_requested),
            version=record.version,
        )
