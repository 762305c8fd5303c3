"""Messaging package"""

from nodemount.messaging.publisher import TriggerPublisher
from nodemount.messaging.rabbitmq import RabbitMQServer

__all__ = ['RabbitMQServer', 'TriggerPublisher']
