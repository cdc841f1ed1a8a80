# conftest.py: pytest config for the Django test suite

import os

import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.test_settings")


@pytest.fixture(autouse=True)
def _relaxed_test_settings(settings):
    settings.SECURE_SSL_REDIRECT = False
    settings.ALLOWED_HOSTS = ["*", "testserver", "localhost", "127.0.0.1"]
