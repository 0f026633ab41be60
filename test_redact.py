from __future__ import annotations

import unittest

from envi.constants import REDACTED_PLACEHOLDER
from envi.dotenv import Comment, Variable, loads, to_mapping
from envi.redact import apply_redaction, count_redacted, merge_redacted_values

SOURCE = "# tokens\nGITHUB_PAT=ghp_secret # personal\nAPI_URL=https://example.com\n\nSTRIPE_KEY=sk_live\n"


class RedactionTests(unittest.TestCase):
    def test_redacts_listed_variables_only(self):
        env = loads(SOURCE)
        res = apply_redaction(env, ["STRIPE_KEY", "GITHUB_PAT", "NOT_PRESENT"])
        self.assertEqual(res.redacted_keys, ["GITHUB_PAT", "STRIPE_KEY"])
        self.assertEqual(res.redacted["GITHUB_PAT"], REDACTED_PLACEHOLDER)
        self.assertEqual(res.redacted["STRIPE_KEY"], REDACTED_PLACEHOLDER)
        self.assertEqual(res.redacted["API_URL"], "https://example.com")
        # comments and blank lines untouched
        self.assertEqual(res.redacted.entries[0], Comment("# tokens"))
        self.assertEqual(res.redacted.variables()[0].comment, "# personal")
        self.assertEqual(len(res.redacted), len(env))

    def test_input_not_modified(self):
        env = loads(SOURCE)
        apply_redaction(env, ["GITHUB_PAT"])
        self.assertEqual(env["GITHUB_PAT"], "ghp_secret")

    def test_match_is_case_sensitive(self):
        res = apply_redaction(loads(SOURCE), ["github_pat"])
        self.assertEqual(res.redacted_keys, [])

    def test_rejects_single_string_names(self):
        with self.assertRaises(TypeError):
            apply_redaction(loads(SOURCE), "GITHUB_PAT")

    def test_mapping_form_skips_synthetic_keys(self):
        mapping = to_mapping(loads(SOURCE))
        res = apply_redaction(mapping, ["GITHUB_PAT", "__l_00", "__i_00"])
        self.assertEqual(res.redacted_keys, ["GITHUB_PAT"])
        self.assertEqual(res.redacted["__l_00"], "# tokens")
        self.assertEqual(res.redacted["__i_00"], "# personal")
        self.assertEqual(list(res.redacted), list(mapping))


class MergeTests(unittest.TestCase):
    def test_fills_placeholders_from_existing(self):
        stored = apply_redaction(loads(SOURCE), ["GITHUB_PAT"]).redacted
        existing = loads("GITHUB_PAT=ghp_local\nEXTRA=1\nAPI_URL=http://changed\n")
        merged = merge_redacted_values(stored, existing)
        self.assertEqual(merged["GITHUB_PAT"], "ghp_local")
        # only placeholders are filled; stored values and key set win
        self.assertEqual(merged["API_URL"], "https://example.com")
        self.assertNotIn("EXTRA", merged)
        self.assertEqual(merged.keys(), stored.keys())
        self.assertEqual(merged.entries[0], Comment("# tokens"))

    def test_placeholder_kept_when_existing_lacks_key(self):
        stored = apply_redaction(loads(SOURCE), ["GITHUB_PAT"]).redacted
        merged = merge_redacted_values(stored, loads("API_URL=x\n"))
        self.assertEqual(merged["GITHUB_PAT"], REDACTED_PLACEHOLDER)
        self.assertEqual(count_redacted(merged), 1)

    def test_redact_then_merge_restores_original(self):
        env = loads(SOURCE)
        redacted = apply_redaction(env, ["GITHUB_PAT", "STRIPE_KEY"]).redacted
        self.assertEqual(merge_redacted_values(redacted, env), env)

    def test_mapping_form(self):
        stored = {"__l_00": "# t", "TOKEN": REDACTED_PLACEHOLDER, "OTHER": "a"}
        merged = merge_redacted_values(stored, {"TOKEN": "real", "NEW": "b"})
        self.assertEqual(merged, {"__l_00": "# t", "TOKEN": "real", "OTHER": "a"})

    def test_count_redacted(self):
        env = loads(f"A={REDACTED_PLACEHOLDER}\nB=x\nC={REDACTED_PLACEHOLDER}\n")
        self.assertEqual(count_redacted(env), 2)
        self.assertEqual(env.variables()[1], Variable("B", "x"))


if __name__ == "__main__":
    unittest.main()
