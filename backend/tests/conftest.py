"""Global pytest configuration for the Herald backend tests."""

import os
from unittest import mock

import pytest

from herald.core.config import get_settings


@pytest.fixture(autouse=True)
def isolated_environment():
    """Undo environment changes made by a test, including values loaded from .env files."""
    with mock.patch.dict(os.environ):
        get_settings.cache_clear()
        yield
    get_settings.cache_clear()
