"""CLI command implementations"""

import json
from dataclasses import replace
from typing import Any, Dict

import click
import yaml
from tabulate import tabulate

from nodemount.models.schemas import (
    ClientMount, ClientMountSpec, Device, LustreDevice, LVMDevice
)
from nodemount.services import ReconcileResult, ResourceStore
from nodemount.utils.exceptions import ResourceNotFoundException, ValidationException
from nodemount.utils.logger import get_logger
from nodemount.utils.validators import validate_name

LOG = get_logger(__name__)


def describe_device(device: Device) -> str:
    if isinstance(device, LustreDevice):
        return f"lustre {device.mgs_addresses}:/{device.file_system_name}"
    if isinstance(device, LVMDevice):
        return f"lvm {device.volume_group}/{device.logical_volume}"
    return f"unknown ({device.type})"


def _ready_count(resource: ClientMount) -> str:
    ready = sum(1 for m in resource.status.mounts if m.ready)
    return f"{ready}/{len(resource.spec.mounts)}"


def load_manifest(path: str) -> Dict[str, Any]:
    """
    Read a resource manifest.

    YAML and JSON are both accepted; a manifest looks like

        name: scratch
        node: compute-01      # optional, defaults to the CLI node
        spec:
          desired_state: mounted
          mounts:
            - mount_path: /mnt/scratch
              target_type: directory
              fs_type: lustre
              device:
                type: lustre
                lustre: {mgs_addresses: 10.0.0.1@tcp, file_system_name: scratch}
    """
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ValidationException(f"Cannot read manifest {path}: {e}")
    except yaml.YAMLError as e:
        raise ValidationException(f"Invalid manifest {path}: {e}")

    if not isinstance(data, dict):
        raise ValidationException(f"Manifest {path} must contain a mapping")
    return data


def list_resources(store: ResourceStore, node: str, output_format: str = 'table'):
    """List the client mounts of a node"""
    resources = store.list(node)

    if output_format == 'json':
        click.echo(json.dumps([r.to_dict() for r in resources], indent=2))
        return

    if not resources:
        click.echo(f"No client mounts found on node {node}")
        return

    data = []
    for r in resources:
        data.append([
            r.name,
            r.spec.desired_state.value,
            _ready_count(r),
            'yes' if r.has_finalizer() else 'no',
            'yes' if r.deletion_requested else 'no',
            r.status.error.message if r.status.error else '',
        ])

    headers = ['Name', 'Desired', 'Ready', 'Finalizer', 'Deleting', 'Error']
    click.echo(tabulate(data, headers=headers, tablefmt='grid'))
    click.echo(f"\nTotal: {len(resources)} client mounts")


def show_resource(store: ResourceStore, name: str, node: str, output_format: str = 'table'):
    """Show one client mount with per-entry status"""
    resource = store.get(name, node)

    if output_format == 'json':
        click.echo(json.dumps(resource.to_dict(), indent=2))
        return

    data = [
        ['Name', resource.name],
        ['Node', resource.node],
        ['Desired State', resource.spec.desired_state.value],
        ['Ready', _ready_count(resource)],
        ['Finalizers', ', '.join(resource.finalizers) or 'N/A'],
        ['Deletion Requested', resource.deletion_requested],
        ['Version', resource.version],
    ]
    error = resource.status.error
    if error:
        data.append(['Error', error.message])
        if error.user_message:
            data.append(['User Message', error.user_message])
        data.append(['Fatal', error.fatal])
    click.echo(tabulate(data, tablefmt='grid'))

    if not resource.spec.mounts:
        click.echo("\nNo mount entries")
        return

    rows = []
    for i, spec in enumerate(resource.spec.mounts):
        status = resource.status.mounts[i] if i < len(resource.status.mounts) else None
        rows.append([
            spec.mount_path,
            spec.target_type.value,
            spec.fs_type,
            describe_device(spec.device),
            spec.options or '',
            status.state.value if status and status.state else 'N/A',
            status.ready if status else False,
            status.message if status else '',
        ])

    headers = ['Path', 'Target', 'FS', 'Device', 'Options', 'State', 'Ready', 'Message']
    click.echo()
    click.echo(tabulate(rows, headers=headers, tablefmt='grid'))


def apply_manifest(store: ResourceStore, path: str, node: str) -> ClientMount:
    """Create a client mount from a manifest, or replace the spec of an existing one"""
    data = load_manifest(path)

    name = data.get('name')
    node = data.get('node') or node
    if not validate_name(name):
        raise ValidationException(f"Invalid resource name: {name!r}")
    if not validate_name(node):
        raise ValidationException(f"Invalid node name: {node!r}")

    spec = ClientMountSpec.from_dict(data.get('spec') or {})

    try:
        existing = store.get(name, node)
    except ResourceNotFoundException:
        resource = store.create(ClientMount(name=name, node=node, spec=spec))
        click.secho(f"Created client mount {name} on node {node}", fg='green')
        return resource

    if existing.deletion_requested:
        raise ValidationException(f"Client mount {name} is being deleted")

    resource = store.update_spec(replace(existing, spec=spec))
    click.secho(f"Updated client mount {name} on node {node}", fg='green')
    return resource


def delete_resource(store: ResourceStore, name: str, node: str) -> ClientMount:
    """Request teardown of a client mount"""
    resource = store.request_deletion(name, node)
    if resource.finalizers:
        click.echo(f"Deletion of {name} requested, waiting for the agent to unmount")
    else:
        click.secho(f"Deleted client mount {name}", fg='green')
    return resource


def format_result(result: ReconcileResult) -> str:
    if result.requeue_after:
        return f"retry in {result.requeue_after}s"
    if result.requeue:
        return "run again"
    return "done"
