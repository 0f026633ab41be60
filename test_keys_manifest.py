from __future__ import annotations

import hashlib
import json
import tempfile
import unittest
from pathlib import Path

from envi.constants import DEFAULT_MANIFEST_FILES
from envi.keys import derive_secret, find_manifest, manifest_secret
from envi.manifest import extract_package_name, get_package_name
from envi.repo import find_env_files, find_repo_root

POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <parent><artifactId>parent-pom</artifactId></parent>
  <groupId>com.example</groupId>
  <artifactId>billing-service</artifactId>
</project>
"""


class SecretTests(unittest.TestCase):
    def test_derive_secret(self):
        data = b'{"name": "demo"}\n'
        self.assertEqual(derive_secret(data), hashlib.md5(data).hexdigest())
        self.assertEqual(derive_secret(data.decode("utf-8")), derive_secret(data))
        self.assertNotEqual(derive_secret(data), derive_secret(data + b" "))
        self.assertEqual(len(derive_secret(b"")), 32)

    def test_manifest_secret_uses_first_in_order(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            self.assertIsNone(manifest_secret(root, DEFAULT_MANIFEST_FILES))
            (root / "Cargo.toml").write_text('[package]\nname = "crate"\n', encoding="utf-8")
            (root / "package.json").write_text('{"name": "web"}', encoding="utf-8")
            path, secret = manifest_secret(root, DEFAULT_MANIFEST_FILES)
            self.assertEqual(path.name, "package.json")
            self.assertEqual(secret, derive_secret(b'{"name": "web"}'))
            self.assertEqual(find_manifest(root, ["Cargo.toml", "package.json"]).name, "Cargo.toml")


class PackageNameTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)

    def write(self, name: str, text: str) -> None:
        (self.root / name).write_text(text, encoding="utf-8")

    def test_extractors(self):
        cases = {
            "package.json": (json.dumps({"name": "@acme/web"}), "@acme/web"),
            "composer.json": (json.dumps({"name": "acme/php"}), "acme/php"),
            "go.mod": ("module github.com/acme/gosvc\n\ngo 1.22\n", "gosvc"),
            "Cargo.toml": ('[package]\nname = "rusty"\nversion = "0.1.0"\n', "rusty"),
            "pyproject.toml": ('[project]\nname = "pyproj"\n', "pyproj"),
            "pubspec.yaml": ("name: flutter_app\nversion: 1.0.0\n", "flutter_app"),
            "settings.gradle.kts": ('rootProject.name = "kts-app"\n', "kts-app"),
            "settings.gradle": ("rootProject.name = 'groovy-app'\n", "groovy-app"),
            "pom.xml": (POM, "billing-service"),
        }
        for filename, (text, expected) in cases.items():
            with self.subTest(filename=filename):
                self.write(filename, text)
                self.assertEqual(extract_package_name(self.root, filename), expected)

    def test_unparsable_or_nameless_falls_through(self):
        self.write("package.json", "{not json")
        self.write("Cargo.toml", "[workspace]\nmembers = []\n")
        self.write("go.mod", "module example.com/fallback\n")
        self.assertIsNone(extract_package_name(self.root, "package.json"))
        self.assertIsNone(extract_package_name(self.root, "Cargo.toml"))
        self.assertEqual(get_package_name(self.root, DEFAULT_MANIFEST_FILES), "fallback")

    def test_unknown_or_missing(self):
        self.assertIsNone(extract_package_name(self.root, "package.json"))
        self.write("Makefile", "all:\n")
        self.assertIsNone(extract_package_name(self.root, "Makefile"))
        self.assertIsNone(get_package_name(self.root, DEFAULT_MANIFEST_FILES))


class RepoTests(unittest.TestCase):
    def test_find_repo_root_walks_up(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / ".git").mkdir()
            nested = root / "a" / "b"
            nested.mkdir(parents=True)
            self.assertEqual(find_repo_root(nested), root)

    def test_other_vcs_markers(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "proj"
            (root / "src").mkdir(parents=True)
            (root / ".jj").mkdir()
            self.assertEqual(find_repo_root(root / "src"), root)

    def test_find_env_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            for rel in (
                ".env",
                ".env.local",
                "apps/api/.env.production",
                "node_modules/pkg/.env",
                ".git/.env",
                ".envrc",
                "env.txt",
                "apps/.env.example",
            ):
                p = root / rel
                p.parent.mkdir(parents=True, exist_ok=True)
                p.write_text("A=1\n", encoding="utf-8")
            (root / "dir.env.d").mkdir()
            self.assertEqual(
                find_env_files(root),
                [".env", ".env.local", "apps/.env.example", "apps/api/.env.production"],
            )


if __name__ == "__main__":
    unittest.main()
