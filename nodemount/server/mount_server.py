"""Node mount agent with node-specific trigger queue"""

import argparse
import signal
import socket
import sys

from nodemount.config import NodeMountConfig
from nodemount.drivers import DeviceResolver, MountExecutor, MountProber, VolumeActivator
from nodemount.messaging.rabbitmq import RabbitMQServer
from nodemount.models import initialize_database
from nodemount.services import MountService, ReconciliationService, ResourceStore
from nodemount.utils.command import CommandRunner
from nodemount.utils.exceptions import NodeMountException
from nodemount.utils.logger import get_logger, setup_logging
from nodemount.utils.validators import validate_and_fix_rabbitmq_url

LOG = get_logger(__name__)


def build_reconciler(config, runner: CommandRunner) -> ReconciliationService:
    """Wire the drivers and services for one node"""
    prober = MountProber(runner)
    activator = VolumeActivator(runner)
    resolver = DeviceResolver(activator, device_root=config.DEVICE_ROOT)
    executor = MountExecutor(
        runner, prober, resolver, activator,
        clustered_fs_types=config.CLUSTERED_FS_TYPES,
    )
    return ReconciliationService(
        ResourceStore(), MountService(executor), requeue_delay=config.REQUEUE_DELAY
    )


class MountServer:
    """Main node mount agent"""

    def __init__(self, config=NodeMountConfig):
        self.config = config
        self.shutdown_requested = False

        if not config.NODE_NAME:
            config.NODE_NAME = socket.gethostname()
            LOG.info(f"Node name not configured, using hostname: {config.NODE_NAME}")
        self.node_name = config.NODE_NAME

        initialize_database(config.DB_URL, config.DB_POOL_SIZE, config.DB_POOL_RECYCLE)

        self.runner = CommandRunner(timeout=config.COMMAND_TIMEOUT, mock=config.MOCK)
        self.reconciliation_service = build_reconciler(config, self.runner)

        self.mq_server = RabbitMQServer(
            config.RABBITMQ_URL,
            config.RABBITMQ_QUEUE,
            self.node_name,
            self._handle_trigger,
            heartbeat=config.RABBITMQ_HEARTBEAT,
            prefetch=config.RABBITMQ_PREFETCH,
            error_delay=config.REQUEUE_DELAY,
        )

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        LOG.info(f"Received signal {signum}, initiating shutdown...")
        self.shutdown_requested = True
        self.mq_server.consuming = False

    def _handle_trigger(self, name: str):
        return self.reconciliation_service.reconcile(name, self.node_name)

    def start(self):
        """Start the agent"""
        LOG.info("=" * 80)
        LOG.info("Starting node mount agent")
        LOG.info("=" * 80)
        LOG.info(f"Node:          {self.node_name}")
        LOG.info(f"Queue:         {self.mq_server.queue_name}")
        LOG.info(f"Database:      {NodeMountConfig._mask_password(self.config.DB_URL)}")
        LOG.info(f"RabbitMQ:      {RabbitMQServer._safe_url(self.config.RABBITMQ_URL)}")
        LOG.info(f"Mock:          {self.config.MOCK}")
        LOG.info("=" * 80)

        self.mq_server.connect()

        # Resources changed while the agent was down get a pass before new triggers
        LOG.info("Running startup reconciliation...")
        results = self.reconciliation_service.reconcile_all(self.node_name)
        for name, result in results.items():
            self.mq_server.handle_result(name, result)

        LOG.info("Starting trigger consumer...")
        self.mq_server.start_consuming()

        LOG.info("Node mount agent stopped")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Node-local mount reconciliation agent')
    parser.add_argument('--config', help='Configuration file')
    parser.add_argument('--db-url', help='Database URL')
    parser.add_argument('--rabbitmq-url', help='RabbitMQ URL')
    parser.add_argument('--node-name', help='Node name (defaults to hostname)')
    parser.add_argument('--log-level', help='Log level')
    parser.add_argument('--mock', action='store_true',
                        help='Log host commands instead of running them')
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    try:
        NodeMountConfig.reload(args.config, config_type='server')
    except NodeMountException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    # Override with command line args
    if args.db_url:
        NodeMountConfig.DB_URL = args.db_url
    if args.rabbitmq_url:
        try:
            NodeMountConfig.RABBITMQ_URL = validate_and_fix_rabbitmq_url(args.rabbitmq_url)
        except ValueError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            sys.exit(1)
    if args.node_name:
        NodeMountConfig.NODE_NAME = args.node_name
    if args.log_level:
        NodeMountConfig.LOG_LEVEL = args.log_level.upper()
    if args.mock:
        NodeMountConfig.MOCK = True

    setup_logging(NodeMountConfig.LOG_LEVEL, NodeMountConfig.LOG_FORMAT)

    try:
        server = MountServer(NodeMountConfig)
        NodeMountConfig.validate_server_config()
        server.start()
    except NodeMountException as e:
        LOG.error(f"Node mount agent failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
