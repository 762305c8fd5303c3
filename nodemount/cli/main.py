"""Main CLI entry point with configuration options"""

import socket
import sys

import click

from nodemount.cli import commands
from nodemount.config import NodeMountConfig
from nodemount.drivers import MountProber
from nodemount.messaging.publisher import TriggerPublisher
from nodemount.models import initialize_database
from nodemount.server.mount_server import build_reconciler
from nodemount.services import ResourceStore
from nodemount.utils.command import CommandRunner
from nodemount.utils.exceptions import NodeMountException, ResourceNotFoundException
from nodemount.utils.logger import get_logger, setup_logging
from nodemount.utils.validators import validate_and_fix_rabbitmq_url

LOG = get_logger(__name__)

OUTPUT_FORMATS = click.Choice(['table', 'json'], case_sensitive=False)


def _fail(e: Exception):
    click.secho(f"Error: {e}", fg='red', err=True)
    sys.exit(1)


def _store(ctx) -> ResourceStore:
    """Open the resource database on first use"""
    if 'store' not in ctx.obj:
        config = ctx.obj['config']
        initialize_database(config.DB_URL, config.DB_POOL_SIZE, config.DB_POOL_RECYCLE)
        ctx.obj['store'] = ResourceStore()
    return ctx.obj['store']


def _runner(ctx) -> CommandRunner:
    config = ctx.obj['config']
    return CommandRunner(timeout=config.COMMAND_TIMEOUT, mock=config.MOCK)


@click.group()
@click.option('--config', help='Configuration file path')
@click.option('--db-url', help='Database URL')
@click.option('--rabbitmq-url', help='RabbitMQ URL')
@click.option('--node-name', help='Node name (defaults to hostname)')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                case_sensitive=False),
              help='Log level')
@click.option('--mock', is_flag=True, help='Log host commands instead of running them')
@click.pass_context
def cli(ctx, config, db_url, rabbitmq_url, node_name, log_level, mock):
    """Node mount agent CLI"""
    ctx.ensure_object(dict)

    try:
        NodeMountConfig.reload(config, config_type='client')
    except NodeMountException as e:
        click.echo(f"Error loading config file: {e}", err=True)
        sys.exit(1)

    # Override with CLI arguments
    if db_url:
        NodeMountConfig.DB_URL = db_url
    if rabbitmq_url:
        try:
            NodeMountConfig.RABBITMQ_URL = validate_and_fix_rabbitmq_url(rabbitmq_url)
        except ValueError as e:
            click.echo(f"Invalid RabbitMQ URL: {e}", err=True)
            sys.exit(1)
    if node_name:
        NodeMountConfig.NODE_NAME = node_name
    if not NodeMountConfig.NODE_NAME:
        NodeMountConfig.NODE_NAME = socket.gethostname()
    if mock:
        NodeMountConfig.MOCK = True

    setup_logging(log_level or 'WARNING', NodeMountConfig.LOG_FORMAT)

    ctx.obj['config'] = NodeMountConfig


@cli.command(name='list')
@click.option('--format', '-f', 'output_format', type=OUTPUT_FORMATS, default='table',
              help='Output format')
@click.pass_context
def list_cmd(ctx, output_format):
    """
    List client mounts of the node

    Example:
      nodemount-cli --node-name compute-01 list
    """
    config = ctx.obj['config']
    try:
        commands.list_resources(_store(ctx), config.NODE_NAME, output_format.lower())
    except NodeMountException as e:
        _fail(e)


@cli.command()
@click.argument('name')
@click.option('--format', '-f', 'output_format', type=OUTPUT_FORMATS, default='table',
              help='Output format')
@click.pass_context
def show(ctx, name, output_format):
    """Show a client mount and the status of each entry"""
    config = ctx.obj['config']
    try:
        commands.show_resource(_store(ctx), name, config.NODE_NAME, output_format.lower())
    except NodeMountException as e:
        _fail(e)


@cli.command()
@click.option('--file', '-f', 'path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='YAML or JSON manifest')
@click.option('--notify', is_flag=True, help='Send a reconcile trigger to the node agent')
@click.pass_context
def apply(ctx, path, notify):
    """
    Create or update a client mount from a manifest

    Example:
      nodemount-cli apply -f scratch.yaml --notify
    """
    config = ctx.obj['config']
    try:
        resource = commands.apply_manifest(_store(ctx), path, config.NODE_NAME)
        if notify:
            with TriggerPublisher(config.RABBITMQ_URL, config.RABBITMQ_QUEUE) as publisher:
                publisher.publish(resource.name, resource.node)
    except NodeMountException as e:
        _fail(e)


@cli.command()
@click.argument('name')
@click.option('--notify', is_flag=True, help='Send a reconcile trigger to the node agent')
@click.pass_context
def delete(ctx, name, notify):
    """Request teardown of a client mount"""
    config = ctx.obj['config']
    try:
        resource = commands.delete_resource(_store(ctx), name, config.NODE_NAME)
        if notify and resource.finalizers:
            with TriggerPublisher(config.RABBITMQ_URL, config.RABBITMQ_QUEUE) as publisher:
                publisher.publish(resource.name, resource.node)
    except NodeMountException as e:
        _fail(e)


@cli.command()
@click.argument('name')
@click.pass_context
def reconcile(ctx, name):
    """
    Run one reconciliation pass locally

    Mounts and unmounts on this host; use --mock for a dry run.
    """
    config = ctx.obj['config']
    try:
        store = _store(ctx)
        reconciler = build_reconciler(config, _runner(ctx))
        result = reconciler.reconcile(name, config.NODE_NAME)
        click.echo(f"Reconciled {name}: {commands.format_result(result)}")
        try:
            commands.show_resource(store, name, config.NODE_NAME)
        except ResourceNotFoundException:
            click.echo(f"Client mount {name} has been removed")
    except NodeMountException as e:
        _fail(e)


@cli.command()
@click.argument('name')
@click.pass_context
def trigger(ctx, name):
    """Send a reconcile trigger for NAME to the node agent"""
    config = ctx.obj['config']
    try:
        with TriggerPublisher(config.RABBITMQ_URL, config.RABBITMQ_QUEUE) as publisher:
            publisher.publish(name, config.NODE_NAME)
        click.echo(f"Trigger sent for {name} to node {config.NODE_NAME}")
    except NodeMountException as e:
        _fail(e)


@cli.command(name='check-mount')
@click.argument('path')
@click.pass_context
def check_mount(ctx, path):
    """Check whether PATH is mounted on this host"""
    try:
        mounted = MountProber(_runner(ctx)).is_mounted(path)
    except NodeMountException as e:
        _fail(e)

    if mounted:
        click.secho(f"{path} is mounted", fg='green')
    else:
        click.secho(f"{path} is not mounted", fg='yellow')
        sys.exit(1)


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
