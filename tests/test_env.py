""".env 加载测试"""

import os
import unittest
from unittest.mock import patch

from core.env import load_env
from tests.utils.test_helpers import create_temp_project


class TestLoadEnv(unittest.TestCase):

    def test_loads_project_env_without_override(self):
        with create_temp_project({".env": "READ_CHUNK_LINES=64\nCONTEXT_WINDOW=999\n"}) as project:
            with patch.dict(os.environ, {"CONTEXT_WINDOW": "5000"}):
                os.environ.pop("READ_CHUNK_LINES", None)
                loaded = load_env(project.root)
                self.assertEqual(loaded, str(project.path(".env")))
                self.assertEqual(os.environ["READ_CHUNK_LINES"], "64")
                self.assertEqual(os.environ["CONTEXT_WINDOW"], "5000")

    def test_missing_env_file(self):
        with create_temp_project({"README.md": "x"}) as project:
            self.assertIsNone(load_env(project.root))


if __name__ == "__main__":
    unittest.main()
