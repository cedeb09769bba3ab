"""
Test Suite for engine settings and logging setup
"""

import logging
import os
import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from ichra_quote.config import EngineSettings, configure_logging, load_settings
from ichra_quote.constants import AFFORDABILITY_THRESHOLD_DEFAULT, DEFAULT_REFERENCE_DATE
from ichra_quote.exceptions import ConfigurationError

ICHRA_VARS = [
    "ICHRA_AFFORDABILITY_THRESHOLD",
    "ICHRA_REFERENCE_DATE",
    "ICHRA_DEBOUNCE_SECONDS",
    "ICHRA_PARALLEL_MIN_WORK",
    "ICHRA_MAX_WORKERS",
    "ICHRA_RECOMPUTE_BUDGET_SECONDS",
    "ICHRA_LOG_LEVEL",
]


def clean_environ(**overrides):
    env = {k: v for k, v in os.environ.items() if k not in ICHRA_VARS}
    env.update(overrides)
    return env


class TestEngineSettings(unittest.TestCase):

    def test_defaults(self):
        with patch.dict(os.environ, clean_environ(), clear=True):
            settings = load_settings()
        self.assertEqual(settings.affordability_threshold, AFFORDABILITY_THRESHOLD_DEFAULT)
        self.assertEqual(settings.reference_date, DEFAULT_REFERENCE_DATE)
        self.assertIsNone(settings.max_workers)
        self.assertEqual(settings.log_level, "INFO")

    def test_environment_overrides(self):
        env = clean_environ(
            ICHRA_AFFORDABILITY_THRESHOLD="0.0996",
            ICHRA_REFERENCE_DATE="2027-01-01",
            ICHRA_DEBOUNCE_SECONDS="0.05",
            ICHRA_PARALLEL_MIN_WORK="1000",
            ICHRA_MAX_WORKERS="8",
            ICHRA_LOG_LEVEL="debug",
        )
        with patch.dict(os.environ, env, clear=True):
            settings = EngineSettings.from_environment()
        self.assertEqual(settings.affordability_threshold, Decimal("0.0996"))
        self.assertEqual(settings.reference_date, date(2027, 1, 1))
        self.assertEqual(settings.debounce_seconds, 0.05)
        self.assertEqual(settings.parallel_min_work, 1000)
        self.assertEqual(settings.max_workers, 8)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_blank_value_uses_default(self):
        with patch.dict(os.environ, clean_environ(ICHRA_MAX_WORKERS="  "), clear=True):
            self.assertIsNone(load_settings().max_workers)

    def test_invalid_values_raise(self):
        bad = [
            ("ICHRA_AFFORDABILITY_THRESHOLD", "high"),
            ("ICHRA_AFFORDABILITY_THRESHOLD", "1.5"),
            ("ICHRA_REFERENCE_DATE", "01/01/2027"),
            ("ICHRA_DEBOUNCE_SECONDS", "-1"),
            ("ICHRA_PARALLEL_MIN_WORK", "lots"),
            ("ICHRA_MAX_WORKERS", "0"),
        ]
        for name, value in bad:
            with self.subTest(name=name, value=value):
                with patch.dict(os.environ, clean_environ(**{name: value}), clear=True):
                    with self.assertRaises(ConfigurationError):
                        load_settings()


class TestConfigureLogging(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self.saved = (root.level, list(root.handlers))

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        level, handlers = self.saved
        root.setLevel(level)
        for handler in handlers:
            root.addHandler(handler)

    def test_explicit_level(self):
        configure_logging("debug")
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        self.assertEqual(logging.getLogger().level, logging.INFO)


if __name__ == '__main__':
    unittest.main()
