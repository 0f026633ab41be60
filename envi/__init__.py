"""
Envi: capture, restore and share a repository's .env files.

Features:

- Order-preserving .env parsing: comments, inline comments and blank lines survive
  a capture/restore round trip.
- Per-repository store under $ENVI_HOME/store, keyed by the package name read from
  the project's manifest file (package.json, Cargo.toml, go.mod, pyproject.toml, ...).
- Configurable redaction: listed variables are stored as a placeholder and filled back
  in from the local file on restore.
- Encrypted blobs for sharing through chat: AES-256-GCM with Argon2id key derivation;
  by default the secret is derived from the manifest file, so teammates on the same
  project need no password exchange.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "dotenv",
    "redact",
    "encryption",
    "store",
    "config",
]

# The programmatic API lives in envi.dotenv/envi.encryption/envi.store; the CLI
# functions in envi.cli (cmd_capture/cmd_pack/...) take normal parameters.
