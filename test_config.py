from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from envi.config import (
    EnviConfig,
    add_manifest_file,
    add_redacted_variable,
    config_path,
    load_config,
    remove_manifest_file,
    remove_redacted_variable,
    save_config,
)
from envi.constants import DEFAULT_MANIFEST_FILES
from envi.errors import ConfigError


class ConfigTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "cfg" / "config.json"

    def test_defaults_when_missing(self):
        cfg = load_config(self.path)
        self.assertEqual(cfg.redacted_variables, ["GITHUB_PAT"])
        self.assertEqual(cfg.manifest_files, DEFAULT_MANIFEST_FILES)
        self.assertEqual(cfg.manifest_files[0], "package.json")

    def test_defaults_are_not_shared(self):
        a = EnviConfig()
        a.redacted_variables.append("X")
        self.assertEqual(EnviConfig().redacted_variables, ["GITHUB_PAT"])

    def test_save_and_load(self):
        cfg, _ = add_redacted_variable(EnviConfig(), "STRIPE_KEY")
        save_config(cfg, self.path)
        self.assertTrue(self.path.exists())
        self.assertEqual(load_config(self.path), cfg)

    def test_partial_file_and_reserved_keys(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(
            json.dumps({"_comment": "ignored", "redacted_variables": ["A", "B"]}),
            encoding="utf-8",
        )
        cfg = load_config(self.path)
        self.assertEqual(cfg.redacted_variables, ["A", "B"])
        self.assertEqual(cfg.manifest_files, DEFAULT_MANIFEST_FILES)

    def test_invalid_files(self):
        self.path.parent.mkdir(parents=True)
        for text in ("{broken", "[1, 2]", json.dumps({"redacted_variables": "GITHUB_PAT"})):
            with self.subTest(text=text):
                self.path.write_text(text, encoding="utf-8")
                with self.assertRaises(ConfigError):
                    load_config(self.path)

    def test_redacted_add_remove(self):
        cfg, changed = add_redacted_variable(EnviConfig(), "API_KEY")
        self.assertTrue(changed)
        self.assertEqual(cfg.redacted_variables, ["GITHUB_PAT", "API_KEY"])
        cfg, changed = add_redacted_variable(cfg, "API_KEY")
        self.assertFalse(changed)
        cfg, changed = remove_redacted_variable(cfg, "GITHUB_PAT")
        self.assertTrue(changed)
        self.assertEqual(cfg.redacted_variables, ["API_KEY"])
        _, changed = remove_redacted_variable(cfg, "GITHUB_PAT")
        self.assertFalse(changed)

    def test_manifest_add_takes_priority(self):
        cfg, changed = add_manifest_file(EnviConfig(), "deno.json")
        self.assertTrue(changed)
        self.assertEqual(cfg.manifest_files[0], "deno.json")
        _, changed = add_manifest_file(cfg, "package.json")
        self.assertFalse(changed)
        cfg, changed = remove_manifest_file(cfg, "pom.xml")
        self.assertTrue(changed)
        self.assertNotIn("pom.xml", cfg.manifest_files)

    def test_config_path_follows_envi_home(self):
        with mock.patch.dict(os.environ, {"ENVI_HOME": self._tmp.name}):
            self.assertEqual(config_path(), Path(self._tmp.name) / "config.json")


if __name__ == "__main__":
    unittest.main()
