"""Shared pytest configuration"""

import logging

import pytest

from nodemount.config import NodeMountConfig
from nodemount.models.database import close_database
from nodemount.utils.logger import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_state():
    """Undo logging setup, config loading and database wiring between tests"""
    yield
    close_database()
    NodeMountConfig._loaded = False
    NodeMountConfig._config_data = {}
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
