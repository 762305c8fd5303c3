"""Validation utilities"""

import re
from urllib.parse import urlparse


def validate_mount_path(path: str) -> bool:
    """Validate mount path"""
    return isinstance(path, str) and path.startswith('/') and '..' not in path


def validate_name(name: str) -> bool:
    """Validate resource and node names (DNS label style)"""
    pattern = r'^[a-z0-9]([a-z0-9\-\.]*[a-z0-9])?$'
    return isinstance(name, str) and bool(re.match(pattern, name)) and len(name) <= 253


def validate_volume_name(name: str) -> bool:
    """Validate volume group / logical volume names"""
    pattern = r'^[A-Za-z0-9\+_\.][A-Za-z0-9\+_\.\-]*$'
    return isinstance(name, str) and bool(re.match(pattern, name))


def validate_and_fix_rabbitmq_url(url: str) -> str:
    """
    Validate and fix RabbitMQ URL.

    Converts common incorrect formats:
    - rabbit:// → amqp://
    - rabbitmq:// → amqp://
    - Adds default port if missing

    Args:
        url: RabbitMQ URL

    Returns:
        Corrected URL

    Raises:
        ValueError: If URL is invalid after fixes
    """
    if not url:
        raise ValueError("RabbitMQ URL cannot be empty")

    original_url = url

    if url.startswith('rabbit://'):
        url = url.replace('rabbit://', 'amqp://', 1)
    elif url.startswith('rabbitmq://'):
        url = url.replace('rabbitmq://', 'amqp://', 1)
    elif url.startswith('rabbits://'):
        url = url.replace('rabbits://', 'amqps://', 1)

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ValueError(f"Invalid RabbitMQ URL format: {e}")

    if parsed.scheme not in ['amqp', 'amqps']:
        raise ValueError(
            f"Invalid RabbitMQ URL scheme: '{parsed.scheme}'. "
            f"Must be 'amqp://' or 'amqps://'. "
            f"Original URL: {original_url}"
        )

    if not parsed.port:
        default_port = 5672 if parsed.scheme == 'amqp' else 5671

        netloc = parsed.netloc
        if '@' in netloc:
            auth, host = netloc.rsplit('@', 1)
            netloc = f"{auth}@{host}:{default_port}"
        else:
            netloc = f"{netloc}:{default_port}"

        url = f"{parsed.scheme}://{netloc}{parsed.path}"
        if parsed.query:
            url += f"?{parsed.query}"

    return url
