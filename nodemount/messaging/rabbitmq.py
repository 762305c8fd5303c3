"""RabbitMQ trigger consumer with per-resource retry scheduling"""

import json
from typing import Callable, Dict, Optional
from urllib.parse import urlparse

import pika
import pika.exceptions

from nodemount.services.reconciliation import ReconcileResult
from nodemount.utils.exceptions import MessagingException
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)

MESSAGE_TTL_MS = 3600000


class RabbitMQServer:
    """
    Consumes reconcile triggers from the node-specific queue.

    Each message names one client mount. The handler runs a full pass and
    the message is acked only when the pass returns. Retries requested by
    the pass are scheduled on the connection's timer, one pending timer per
    resource.
    """

    def __init__(self, rabbitmq_url: str, queue: str, node_name: str,
                 handler: Callable[[str], ReconcileResult],
                 heartbeat: int = 60, prefetch: int = 1, error_delay: float = 10):
        self.rabbitmq_url = rabbitmq_url
        self.node_name = node_name
        self.handler = handler
        self.heartbeat = heartbeat
        self.prefetch = prefetch
        self.error_delay = error_delay
        self.connection = None
        self.channel = None
        self.consuming = False
        self._timers: Dict[str, object] = {}

        # Node-specific queue name
        self.queue_name = f"{queue}_{node_name}"

        LOG.info(f"Trigger consumer initialized for node: {self.node_name}")
        LOG.info(f"Will consume from queue: {self.queue_name}")

    def connect(self):
        """Connect to RabbitMQ"""
        try:
            LOG.info(f"Connecting to RabbitMQ: {self._safe_url(self.rabbitmq_url)}")

            params = pika.URLParameters(self.rabbitmq_url)
            params.heartbeat = self.heartbeat

            self.connection = pika.BlockingConnection(params)
            self.channel = self.connection.channel()

            self.channel.queue_declare(
                queue=self.queue_name,
                durable=True,
                arguments={
                    'x-message-ttl': MESSAGE_TTL_MS,
                }
            )

            LOG.info(f"Connected to RabbitMQ, listening on queue: {self.queue_name}")

        except pika.exceptions.AMQPConnectionError as e:
            raise MessagingException(
                f"Failed to connect to RabbitMQ: {e}\n"
                f"Check:\n"
                f"  - RabbitMQ service is running: systemctl status rabbitmq-server\n"
                f"  - Host and port are correct\n"
                f"  - Credentials are valid\n"
                f"  - Firewall allows connection"
            )
        except pika.exceptions.AMQPError as e:
            raise MessagingException(
                f"Failed to connect to RabbitMQ: {e}\n"
                f"URL format: {self._safe_url(self.rabbitmq_url)}"
            )

    @staticmethod
    def _safe_url(url: str) -> str:
        """Return URL with password masked"""
        parsed = urlparse(url)
        if parsed.password:
            netloc = parsed.netloc.replace(f":{parsed.password}@", ":****@")
            return f"{parsed.scheme}://{netloc}{parsed.path}"
        return url

    def start_consuming(self):
        """Start consuming messages"""
        if not self.connection:
            self.connect()

        self.consuming = True
        self.channel.basic_qos(prefetch_count=self.prefetch)
        self.channel.basic_consume(
            queue=self.queue_name,
            on_message_callback=self._on_request
        )

        LOG.info(f"Started consuming from {self.queue_name} (node: {self.node_name})")

        try:
            while self.consuming:
                self.connection.process_data_events(time_limit=1)
        except KeyboardInterrupt:
            LOG.info("Interrupted, stopping...")
        finally:
            self.stop()

    def _on_request(self, ch, method, props, body):
        """Handle incoming trigger"""
        try:
            request = json.loads(body)
        except (TypeError, ValueError) as e:
            LOG.error(f"Invalid JSON in trigger: {e}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return

        name = request.get('name') if isinstance(request, dict) else None
        request_node = request.get('node') if isinstance(request, dict) else None

        if not name:
            LOG.error(f"Trigger without resource name: {request}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return

        if request_node != self.node_name:
            LOG.error(f"Node mismatch: trigger for node '{request_node}' "
                      f"received by node '{self.node_name}'")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return

        LOG.info(f"Processing trigger for client mount {name}")
        self.run_pass(name)
        ch.basic_ack(delivery_tag=method.delivery_tag)

    def run_pass(self, name: str):
        """Run one pass and schedule the retry it asks for"""
        self._cancel_timer(name)

        try:
            result = self.handler(name)
        except Exception as e:
            LOG.error(f"Reconcile of {name} failed: {e}", exc_info=True)
            result = None

        self.handle_result(name, result)

    def handle_result(self, name: str, result: Optional[ReconcileResult]):
        """Schedule the follow-up pass a result asks for, if any"""
        delay = self._retry_delay(result)
        if delay is not None:
            self.schedule(name, delay)

    def _retry_delay(self, result: Optional[ReconcileResult]) -> Optional[float]:
        if result is None:
            return self.error_delay
        if result.requeue_after:
            return result.requeue_after
        if result.requeue:
            return 0
        return None

    def schedule(self, name: str, delay: float):
        """Schedule a pass for name after delay seconds, replacing any pending one"""
        self._cancel_timer(name)
        LOG.debug(f"Requeue {name} in {delay}s")
        self._timers[name] = self.connection.call_later(delay, lambda: self._on_timer(name))

    def _on_timer(self, name: str):
        self._timers.pop(name, None)
        self.run_pass(name)

    def _cancel_timer(self, name: str):
        timer = self._timers.pop(name, None)
        if timer is not None and self.connection:
            self.connection.remove_timeout(timer)

    def stop(self):
        """Stop consuming"""
        self.consuming = False
        for name in list(self._timers):
            self._cancel_timer(name)
        if self.connection and not self.connection.is_closed:
            self.connection.close()
            LOG.info(f"Closed RabbitMQ connection (node: {self.node_name})")
