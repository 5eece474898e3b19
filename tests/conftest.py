import logging

import pytest

from bgpsimple.update_log import UPDATES_LOGGER


@pytest.fixture(autouse=True)
def updates_logger():
    """The shared UPDATE logger, restored after each test"""
    logger = logging.getLogger(UPDATES_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
