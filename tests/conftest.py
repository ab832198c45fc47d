"""
Shared fixtures.

Collaborators and entry points live in collaborators.py.
"""
import logging

import pytest

from kvetch.config import KvetchSettings


@pytest.fixture
def settings():
    return KvetchSettings(debug=True)


@pytest.fixture
def quiet_settings():
    return KvetchSettings(debug=False)


@pytest.fixture(autouse=True)
def _reset_kvetch_logger():
    yield
    kvetch_logger = logging.getLogger("kvetch")
    for handler in list(kvetch_logger.handlers):
        kvetch_logger.removeHandler(handler)
        handler.close()
    kvetch_logger.setLevel(logging.NOTSET)
