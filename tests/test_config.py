import os
import tempfile
import unittest

from piperchess.config import load_settings


class SettingsTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.missing = os.path.join(self.tmp.name, "missing.yml")

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, text: str) -> str:
        path = os.path.join(self.tmp.name, "settings.yml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_defaults(self):
        s = load_settings(self.missing, environ={})
        self.assertEqual(s.api_base, "https://api.wwwtriplew.me")
        self.assertEqual(s.thinking_ms, 15000)
        self.assertEqual(s.timeout_buffer_ms, 30000)
        self.assertEqual(s.health_timeout_s, 5.0)

    def test_environment_overrides_defaults(self):
        env = {"PIPERCHESS_API_BASE": "http://localhost:8000/", "PIPERCHESS_THINKING_MS": "2500"}
        s = load_settings(self.missing, environ=env)
        self.assertEqual(s.api_base, "http://localhost:8000")
        self.assertEqual(s.thinking_ms, 2500)

    def test_yaml_overrides_environment(self):
        path = self._write("PIPERCHESS_API_BASE: http://yaml.test\nPIPERCHESS_HEALTH_TIMEOUT_S: 2\n")
        s = load_settings(path, environ={"PIPERCHESS_API_BASE": "http://env.test"})
        self.assertEqual(s.api_base, "http://yaml.test")
        self.assertEqual(s.health_timeout_s, 2.0)

    def test_non_mapping_yaml_ignored(self):
        path = self._write("- just\n- a list\n")
        self.assertEqual(load_settings(path, environ={}).thinking_ms, 15000)


if __name__ == "__main__":
    unittest.main()
