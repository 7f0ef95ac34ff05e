"""Test data factories for account core testing."""

from .settings_factory import TEST_SECRET_KEY, make_settings
from .user_factory import TEST_PASSWORD, UserFactory

__all__ = [
    "TEST_PASSWORD",
    "TEST_SECRET_KEY",
    "UserFactory",
    "make_settings",
]
