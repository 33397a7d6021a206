import io
import logging
import unittest
from datetime import timedelta

from ratelimit_kit.exceptions import ConfigurationError, RateLimitError
from ratelimit_kit.logging_utils import setup_logging
from ratelimit_kit.utils import get_key, require_positive, to_milliseconds, to_seconds


class TestUtils(unittest.TestCase):

    def test_get_key(self):
        self.assertEqual(get_key("token_bucket", "default", "user-1"), "token_bucket:default:user-1")
        self.assertEqual(get_key("fixed_window", "api", "u", "42"), "fixed_window:api:u:42")

    def test_to_seconds(self):
        self.assertEqual(to_seconds(timedelta(minutes=2)), 120.0)
        self.assertEqual(to_seconds(1.5), 1.5)
        with self.assertRaises(ConfigurationError):
            to_seconds("60")
        with self.assertRaises(ConfigurationError):
            to_seconds(True)

    def test_to_milliseconds(self):
        self.assertEqual(to_milliseconds(timedelta(milliseconds=250)), 250)
        self.assertEqual(to_milliseconds(0.3), 300)

    def test_require_positive(self):
        require_positive(1, "limit")
        for value in (0, -1, None, "5"):
            with self.assertRaises(ConfigurationError):
                require_positive(value, "limit")

    def test_configuration_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigurationError, ValueError))
        self.assertTrue(issubclass(ConfigurationError, RateLimitError))


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self.root = logging.getLogger()
        self.saved_handlers = self.root.handlers[:]
        self.saved_level = self.root.level

    def tearDown(self):
        for handler in self.root.handlers[:]:
            self.root.removeHandler(handler)
        for handler in self.saved_handlers:
            self.root.addHandler(handler)
        self.root.setLevel(self.saved_level)

    def test_configures_root_logger(self):
        stream = io.StringIO()
        setup_logging("debug", stream=stream)
        logging.getLogger("ratelimit_kit.test").debug("hello")
        self.assertIn("ratelimit_kit.test - DEBUG - hello", stream.getvalue())
        self.assertEqual(len(self.root.handlers), 1)
        self.assertEqual(logging.getLogger("redis").level, logging.INFO)


if __name__ == '__main__':
    unittest.main()
