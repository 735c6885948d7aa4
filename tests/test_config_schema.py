import os
import unittest
from unittest.mock import patch, mock_open

from frigate_events.config import load_config


class TestConfigSchema(unittest.TestCase):

    def setUp(self):
        env = patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)

    @patch('builtins.open', new_callable=mock_open)
    @patch('os.path.exists')
    @patch('frigate_events.config.yaml.safe_load')
    def test_valid_config(self, mock_yaml_load, mock_exists, mock_file):
        valid_yaml = {
            'network': {
                'frigate_url': 'http://frigate:5000/',
                'flask_port': 8080,
                'storage_path': '/tmp/frigate-events',
            },
            'settings': {
                'in_progress_poll_seconds': 1.5,
                'events_poll_seconds': 45,
                'event_limit': 100,
                'timezone': 'Europe/London',
                'order_by': 'start_time',
                'log_level': 'DEBUG',
            }
        }
        mock_exists.return_value = True
        mock_yaml_load.return_value = valid_yaml

        config = load_config()
        self.assertEqual(config['FRIGATE_URL'], 'http://frigate:5000')
        self.assertEqual(config['FLASK_PORT'], 8080)
        self.assertEqual(config['STORAGE_PATH'], '/tmp/frigate-events')
        self.assertEqual(config['IN_PROGRESS_POLL_SECONDS'], 1.5)
        self.assertEqual(config['EVENTS_POLL_SECONDS'], 45)
        self.assertEqual(config['EVENT_LIMIT'], 100)
        self.assertEqual(config['TIMEZONE'], 'Europe/London')
        self.assertEqual(config['ORDER_BY'], 'start_time')
        self.assertEqual(config['LOG_LEVEL'], 'DEBUG')

    @patch('os.path.exists')
    def test_defaults_without_config_file(self, mock_exists):
        mock_exists.return_value = False

        config = load_config()
        self.assertEqual(config['FRIGATE_URL'], 'http://192.168.1.168:5000')
        self.assertEqual(config['FLASK_PORT'], 5060)
        self.assertEqual(config['IN_PROGRESS_POLL_SECONDS'], 2)
        self.assertEqual(config['EVENTS_POLL_SECONDS'], 30)
        self.assertEqual(config['EVENT_LIMIT'], 50)
        self.assertEqual(config['FINISHED_REFRESH_DELAY_SECONDS'], 0.1)
        self.assertEqual(config['REQUEST_TIMEOUT'], 30)
        self.assertEqual(config['TIMEZONE'], 'America/New_York')
        self.assertIsNone(config['ORDER_BY'])

    @patch('os.path.exists')
    def test_env_overrides(self, mock_exists):
        mock_exists.return_value = False
        os.environ.update({
            'FRIGATE_URL': 'http://env-frigate:5000/',
            'FLASK_PORT': '9000',
            'STORAGE_PATH': '/data',
            'IN_PROGRESS_POLL_SECONDS': '0.5',
        })

        config = load_config()
        self.assertEqual(config['FRIGATE_URL'], 'http://env-frigate:5000')
        self.assertEqual(config['FLASK_PORT'], 9000)
        self.assertEqual(config['STORAGE_PATH'], '/data')
        self.assertEqual(config['IN_PROGRESS_POLL_SECONDS'], 0.5)

    @patch('os.path.exists')
    def test_env_zero_poll_period_rejected(self, mock_exists):
        mock_exists.return_value = False
        os.environ['EVENTS_POLL_SECONDS'] = '0'

        with self.assertRaises(ValueError):
            load_config()

    @patch('builtins.open', new_callable=mock_open)
    @patch('os.path.exists')
    @patch('frigate_events.config.yaml.safe_load')
    def test_zero_poll_period_in_yaml(self, mock_yaml_load, mock_exists, mock_file):
        invalid_yaml = {
            'settings': {'in_progress_poll_seconds': 0}
        }
        mock_exists.return_value = True
        mock_yaml_load.return_value = invalid_yaml

        # Expect SystemExit(1) due to schema validation failure
        with self.assertRaises(SystemExit) as cm:
            load_config()
        self.assertEqual(cm.exception.code, 1)

    @patch('builtins.open', new_callable=mock_open)
    @patch('os.path.exists')
    @patch('frigate_events.config.yaml.safe_load')
    def test_invalid_network_field_type(self, mock_yaml_load, mock_exists, mock_file):
        invalid_yaml = {
            'network': {
                'flask_port': "invalid_port"  # String that is not int
            }
        }
        mock_exists.return_value = True
        mock_yaml_load.return_value = invalid_yaml

        with self.assertRaises(SystemExit) as cm:
            load_config()
        self.assertEqual(cm.exception.code, 1)

    @patch('builtins.open', new_callable=mock_open)
    @patch('os.path.exists')
    @patch('frigate_events.config.yaml.safe_load')
    def test_invalid_log_level(self, mock_yaml_load, mock_exists, mock_file):
        mock_exists.return_value = True
        mock_yaml_load.return_value = {'settings': {'log_level': 'VERBOSE'}}

        with self.assertRaises(SystemExit) as cm:
            load_config()
        self.assertEqual(cm.exception.code, 1)

    @patch('builtins.open', new_callable=mock_open)
    @patch('os.path.exists')
    @patch('frigate_events.config.yaml.safe_load')
    def test_extra_field_allowed(self, mock_yaml_load, mock_exists, mock_file):
        # Extra top-level sections are allowed (ALLOW_EXTRA)
        valid_yaml = {
            'extra_field': 'something',
            'network': {'frigate_url': 'http://frigate'}
        }
        mock_exists.return_value = True
        mock_yaml_load.return_value = valid_yaml

        try:
            config = load_config()
        except SystemExit:
            self.fail("load_config raised SystemExit unexpectedly with extra fields")

        self.assertEqual(config['FRIGATE_URL'], 'http://frigate')

    @patch('builtins.open', new_callable=mock_open)
    @patch('os.path.exists')
    @patch('frigate_events.config.yaml.safe_load')
    def test_empty_yaml_uses_defaults(self, mock_yaml_load, mock_exists, mock_file):
        mock_exists.return_value = True
        mock_yaml_load.return_value = None

        config = load_config()
        self.assertEqual(config['EVENTS_POLL_SECONDS'], 30)


if __name__ == '__main__':
    unittest.main()
