"""Utilities package"""

from nodemount.utils.logger import get_logger, setup_logging
from nodemount.utils.command import CommandRunner
from nodemount.utils.exceptions import *
from nodemount.utils.validators import *

__all__ = ['get_logger', 'setup_logging', 'CommandRunner']
