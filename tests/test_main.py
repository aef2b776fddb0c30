"""
Tests for the main.py entry point helpers.
"""
import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import main


class TestMainHelpers(unittest.TestCase):
    """Test cases for config loading and token resolution."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.logger = logging.getLogger("tests.main")
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def write_config(self, content):
        path = Path(self.temp_dir) / "config.json"
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def test_load_config(self):
        path = self.write_config(json.dumps({'bot': {'token': 'abc'}}))

        self.assertEqual(main.load_config(path)['bot']['token'], 'abc')

    def test_load_config_from_environment_path(self):
        path = self.write_config(json.dumps({'quiz': {}}))

        with patch.dict('os.environ', {'TRIVIA_BOT_CONFIG': str(path)}):
            self.assertEqual(main.load_config(), {'quiz': {}})

    def test_invalid_config_exits(self):
        with patch('builtins.print'):
            with self.assertRaises(SystemExit):
                main.load_config(self.write_config("{ nope"))
            with self.assertRaises(SystemExit):
                main.load_config(self.write_config("[1, 2]"))
            with self.assertRaises(SystemExit):
                main.load_config(Path(self.temp_dir) / "missing.json")

    def test_environment_token_wins(self):
        with patch.dict('os.environ', {'DISCORD_BOT_TOKEN': 'env-token'}):
            self.assertEqual(main.get_bot_token({'bot': {'token': 'file-token'}}), 'env-token')

    def test_placeholder_token_rejected(self):
        with patch.dict('os.environ', {}, clear=True), patch('builtins.print'):
            self.assertEqual(main.get_bot_token({'bot': {'token': 'file-token'}}), 'file-token')
            with self.assertRaises(SystemExit):
                main.get_bot_token({'bot': {'token': main.PLACEHOLDER_TOKEN}})

    def test_report_quiz_directory(self):
        (Path(self.temp_dir) / "one.json").write_text("{}", encoding='utf-8')
        (Path(self.temp_dir) / "notes.txt").write_text("", encoding='utf-8')

        config = {'quiz': {'quiz_directory': self.temp_dir}}
        self.assertEqual(main.report_quiz_directory(config, self.logger), 1)

        missing = {'quiz': {'quiz_directory': str(Path(self.temp_dir) / "missing")}}
        self.assertEqual(main.report_quiz_directory(missing, self.logger), 0)


if __name__ == '__main__':
    unittest.main()
