"""Publish reconcile triggers to a node's queue"""

import json

import pika
import pika.exceptions

from nodemount.utils.exceptions import MessagingException
from nodemount.utils.logger import get_logger

LOG = get_logger(__name__)


class TriggerPublisher:
    """Sends {"name", "node"} triggers to the queue consumed by that node's agent"""

    def __init__(self, rabbitmq_url: str, queue: str):
        self.rabbitmq_url = rabbitmq_url
        self.queue = queue
        self.connection = None
        self.channel = None

    def _connect(self):
        try:
            params = pika.URLParameters(self.rabbitmq_url)
            self.connection = pika.BlockingConnection(params)
            self.channel = self.connection.channel()
        except pika.exceptions.AMQPError as e:
            raise MessagingException(f"Failed to connect to RabbitMQ: {e}")

    def publish(self, name: str, node: str):
        """Queue a pass for the named resource on node"""
        if not self.channel:
            self._connect()

        queue_name = f"{self.queue}_{node}"
        try:
            self.channel.basic_publish(
                exchange='',
                routing_key=queue_name,
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Persistent
                    content_type='application/json',
                ),
                body=json.dumps({'name': name, 'node': node})
            )
        except pika.exceptions.AMQPError as e:
            raise MessagingException(f"Failed to publish trigger for {name}: {e}")

        LOG.info(f"Sent trigger for {name} to {queue_name}")

    def close(self):
        if self.connection and not self.connection.is_closed:
            self.connection.close()
        self.connection = None
        self.channel = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
