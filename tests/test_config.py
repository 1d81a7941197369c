"""
Unit tests for the application settings.
"""

import os
import unittest
from unittest.mock import patch

from blob_forwarder.core.config import Environment, LogLevel, Settings, settings
from blob_forwarder.utils.metrics import custom_registry


class TestSettings(unittest.TestCase):
    """Unit tests for Settings."""

    @patch.dict(os.environ, {}, clear=True)
    def test_enum_defaults_are_plain_values(self):
        """Test that enum defaults resolve to their string values."""
        config = Settings(_env_file=None)

        self.assertIs(type(config.ENVIRONMENT), str)
        self.assertEqual(config.ENVIRONMENT, Environment.DEVELOPMENT.value)
        self.assertIs(type(config.LOG_LEVEL), str)
        self.assertEqual(config.LOG_LEVEL, LogLevel.INFO.value)

    @patch.dict(os.environ, {"ENVIRONMENT": "production", "LOG_LEVEL": "DEBUG"}, clear=True)
    def test_environment_overrides(self):
        """Test that settings are read from the environment."""
        config = Settings(_env_file=None)

        self.assertEqual(config.ENVIRONMENT, "production")
        self.assertEqual(config.LOG_LEVEL, "DEBUG")

    def test_system_info_environment_label(self):
        """Test that the system info gauge carries the environment value."""
        import blob_forwarder.main  # noqa: F401

        environment = Environment(settings.ENVIRONMENT).value

        self.assertEqual(
            custom_registry.get_sample_value(
                "system_info", {"version": settings.VERSION, "environment": environment}
            ),
            1.0,
        )


if __name__ == "__main__":
    unittest.main()
