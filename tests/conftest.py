"""Shared fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_cogscore_logger():
    """CLI runs reconfigure the cogscore logger; restore propagation for caplog."""
    logger = logging.getLogger("cogscore")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
