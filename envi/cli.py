from __future__ import annotations

import os
import sys
import argparse
import getpass as _getpass

from pathlib import Path
from typing import List, Optional, Tuple

import pyperclip

from envi import __version__
from envi import dotenv, store
from envi.config import (
    EnviConfig,
    add_manifest_file,
    add_redacted_variable,
    load_config,
    remove_manifest_file,
    remove_redacted_variable,
    save_config,
)
from envi.encryption import decrypt, encrypt, format_blob, parse_blob
from envi.errors import AuthenticationError, EnviError, EnvelopeError, RepositoryError
from envi.keys import manifest_secret
from envi.manifest import get_package_name
from envi.pathutil import resolve_in_root
from envi.redact import apply_redaction, count_redacted, merge_redacted_values
from envi.repo import find_env_files, find_repo_root


def _warn(msg: str) -> None:
    print(f"Warning: {msg}", file=sys.stderr)


def _repo_root(here: bool = False) -> Path:
    """Locate the repository root, or use the working directory with ``here``.

    Raises:
        RepositoryError: No VCS marker was found above the working directory.
    """
    if here:
        return Path(os.getcwd())
    root = find_repo_root()
    if root is None:
        raise RepositoryError(
            "Not inside a repository (no .git, .jj, .hg or .svn found). "
            "Run from a repository or pass --here to use the current directory."
        )
    return root


def _package_name(root: Path, config: EnviConfig, quiet: bool) -> Optional[str]:
    name = get_package_name(root, config.manifest_files)
    if not quiet:
        if name:
            print(f"Package name: {name}")
        else:
            print(f"Using folder name: {root.name}")
    return name


def _collect(root: Path, config: EnviConfig, quiet: bool) -> List[store.StoreFile]:
    """Parse and redact every env file below ``root``."""
    files: List[store.StoreFile] = []
    for rel in find_env_files(root):
        res = apply_redaction(dotenv.load(root / rel), config.redacted_variables)
        files.append(store.StoreFile(path=rel, env=res.redacted))
        if not quiet:
            print(f"  {rel}")
        if res.redacted_keys:
            print(f"  Redacted in {rel}: {', '.join(res.redacted_keys)}")
    return files


def _confirm_overwrite(path: str) -> str:
    """Ask whether to overwrite ``path``. Returns "yes", "no" or "all"."""
    if not sys.stdin.isatty():
        return "no"
    ans = input(f"Overwrite {path}? [y]es / [N]o / [a]ll: ").strip().lower()
    if ans in ("a", "all"):
        return "all"
    if ans in ("y", "yes"):
        return "yes"
    return "no"


def restore_files(
    root: Path,
    files: Tuple[store.StoreFile, ...],
    *,
    force: bool = False,
    quiet: bool = False,
) -> Tuple[List[str], List[str], List[str]]:
    """Write stored env files into ``root``.

    Placeholder values are filled from the file currently on disk. Files whose
    parsed content already matches are left alone; files that differ are only
    overwritten with ``force`` or after confirmation on a terminal.

    Returns:
        (restored, unchanged, skipped) lists of relative paths.

    Raises:
        RepositoryError: A stored path is absolute or escapes ``root``.
    """
    restored: List[str] = []
    unchanged: List[str] = []
    skipped: List[str] = []
    overwrite_all = force
    for f in files:
        try:
            target = resolve_in_root(root, f.path)
        except ValueError as exc:
            raise RepositoryError(f"Refusing to restore {f.path!r}: {exc}") from exc

        env = f.env
        if target.exists():
            existing = dotenv.load(target)
            env = merge_redacted_values(f.env, existing)
            if existing == env:
                unchanged.append(f.path)
                continue
            if not overwrite_all:
                _warn(f"{f.path} exists with different content")
                action = _confirm_overwrite(f.path)
                if action == "no":
                    skipped.append(f.path)
                    continue
                if action == "all":
                    overwrite_all = True

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(dotenv.dumps(env), encoding="utf-8")
        restored.append(f.path)
        left = count_redacted(env)
        if left:
            _warn(f"{f.path}: {left} redacted value(s) could not be filled in; edit the file by hand")

    if not quiet:
        for p in restored:
            print(f"  restored  {p}")
        for p in unchanged:
            print(f"  unchanged {p}")
    for p in skipped:
        print(f"  skipped   {p} (exists and differs; use --force to overwrite)")
    print(f"Summary: restored={len(restored)} unchanged={len(unchanged)} skipped={len(skipped)}")
    return restored, unchanged, skipped


# -------- Commands --------

def cmd_capture(config: EnviConfig, *, here: bool = False, quiet: bool = False) -> bool:
    """Capture the repository's env files into the local store.

    Returns:
        True when env files were found (whether or not the store changed).
    """
    root = _repo_root(here)
    if not quiet:
        print(f"Repository root: {root}")
    name = _package_name(root, config, quiet)
    files = _collect(root, config, quiet)
    if not files:
        print("No .env files found.")
        return False
    path, changed = store.save(root, files, name)
    if changed:
        print(f"Captured {len(files)} file(s) to {path}")
    else:
        print(f"No changes; {path} is up to date")
    return True


def cmd_restore(config: EnviConfig, *, here: bool = False, force: bool = False, quiet: bool = False) -> bool:
    root = _repo_root(here)
    if not quiet:
        print(f"Repository root: {root}")
    name = _package_name(root, config, quiet)
    path = store.storage_path(root, name)
    if not path.exists():
        raise RepositoryError(f"No stored env files for this repository at {path}; run 'envi capture' first")
    doc = store.read(path)
    if not doc.files:
        _warn(f"{path} holds no files")
        return True
    _, _, skipped = restore_files(root, doc.files, force=force, quiet=quiet)
    return not skipped


def cmd_clear(config: EnviConfig, *, here: bool = False, force: bool = False, quiet: bool = False) -> bool:
    """Delete this repository's store file; asks first unless ``force``."""
    root = _repo_root(here)
    name = _package_name(root, config, quiet)
    path = store.storage_path(root, name)
    if not path.exists():
        _warn(f"No stored env files for this repository (looked at {path})")
        return True
    if not force:
        if not sys.stdin.isatty():
            raise EnviError(f"Refusing to delete {path} without confirmation; pass --yes")
        if input(f"Delete {path}? [y/N]: ").strip().lower() not in ("y", "yes"):
            print("Cancelled")
            return False
    path.unlink()
    print(f"Deleted {path}")
    return True


def _prompt_secret(confirm: bool = False) -> str:
    if not sys.stdin.isatty():
        raise EnviError("No secret available and no terminal to prompt on; pass --secret")
    secret = _getpass.getpass("Secret: ")
    if confirm and _getpass.getpass("Repeat secret: ") != secret:
        raise EnviError("Secrets do not match")
    if not secret:
        raise EnviError("A secret is required")
    return secret


def cmd_pack(
    config: EnviConfig,
    *,
    here: bool = False,
    secret: Optional[str] = None,
    print_blob: bool = False,
    quiet: bool = False,
) -> bool:
    """Encrypt the repository's env files into a shareable blob.

    The first manifest file found supplies the secret unless ``secret`` is
    given; without either the user is prompted.
    """
    root = _repo_root(here)
    files = _collect(root, config, quiet)
    if not files:
        print("No .env files found.")
        return False
    doc = store.StoreDocument.create(root, files)

    if secret is None:
        found = manifest_secret(root, config.manifest_files)
        if found is not None:
            mpath, secret = found
            if not quiet:
                print(f"Using {mpath.name} as the shared secret")
        else:
            secret = _prompt_secret(confirm=True)

    blob = format_blob(encrypt(store.dumps(doc), secret))
    if print_blob:
        print(blob)
        return True
    try:
        pyperclip.copy(blob)
    except pyperclip.PyperclipException as exc:
        _warn(f"clipboard unavailable ({exc}); printing blob instead")
        print(blob)
        return True
    print(f"Packed {len(files)} file(s); blob copied to clipboard")
    return True


def _read_blob_text(blob: Optional[str], file: Optional[str]) -> str:
    if blob == "-":
        return sys.stdin.read()
    if blob:
        return blob
    if file:
        return Path(file).read_text(encoding="utf-8")
    try:
        return pyperclip.paste()
    except pyperclip.PyperclipException as exc:
        raise EnviError(f"Clipboard unavailable ({exc}); pass the blob, '-' for stdin, or --file") from exc


def _decrypt_blob(envelope: str, root: Path, config: EnviConfig, secret: Optional[str], quiet: bool) -> str:
    if secret is not None:
        return decrypt(envelope, secret)
    found = manifest_secret(root, config.manifest_files)
    if found is not None:
        mpath, derived = found
        try:
            return decrypt(envelope, derived)
        except AuthenticationError:
            if not sys.stdin.isatty():
                raise
            if not quiet:
                print(f"{mpath.name} does not match the packing repository's manifest")
    return decrypt(envelope, _prompt_secret())


def cmd_unpack(
    config: EnviConfig,
    blob: Optional[str] = None,
    *,
    file: Optional[str] = None,
    here: bool = False,
    secret: Optional[str] = None,
    save: bool = True,
    restore: bool = True,
    force: bool = False,
    quiet: bool = False,
) -> bool:
    """Decrypt a blob, save it to the store and restore its files.

    Args:
        config: Loaded configuration.
        blob: Blob text, or "-" to read it from stdin. Defaults to the clipboard.
        file: Read the blob from this file instead.
        here: Use the working directory as the repository root.
        secret: Secret to use instead of the manifest-derived one.
        save: Write the unpacked files to the local store.
        restore: Write the unpacked files into the repository.
        force: Overwrite existing files that differ.
    """
    root = _repo_root(here)
    envelope = parse_blob(_read_blob_text(blob, file))
    if envelope is None:
        raise EnvelopeError("No envi blob found (expected __envi_start__ ... __envi_end__)")
    doc = store.loads(_decrypt_blob(envelope, root, config, secret, quiet))
    if not quiet:
        print(f"Blob holds {len(doc.files)} file(s) from {doc.metadata.updated_from} ({doc.metadata.updated_at})")

    if save:
        name = _package_name(root, config, quiet)
        path, changed = store.save(root, doc.files, name)
        print(f"Saved to {path}" if changed else f"No changes; {path} is up to date")
    if not restore:
        return True
    _, _, skipped = restore_files(root, doc.files, force=force, quiet=quiet)
    return not skipped


def _config_list_command(
    label: str,
    items_of,
    add,
    remove,
    action: str,
    value: Optional[str],
) -> bool:
    config = load_config()
    if action == "list":
        items = items_of(config)
        if not items:
            print(f"No {label} configured")
        for item in items:
            print(item)
        return True
    if not value:
        raise EnviError(f"'{action}' needs a value")
    op = add if action == "add" else remove
    config, changed = op(config, value)
    if not changed:
        state = "already in" if action == "add" else "not in"
        print(f"{value} is {state} {label}")
        return True
    save_config(config)
    print(f"{'Added' if action == 'add' else 'Removed'} {value}")
    return True


def cmd_config_redact(action: str, name: Optional[str] = None) -> bool:
    return _config_list_command(
        "redacted variables",
        lambda c: c.redacted_variables,
        add_redacted_variable,
        remove_redacted_variable,
        action,
        name,
    )


def cmd_config_manifest_files(action: str, filename: Optional[str] = None) -> bool:
    return _config_list_command(
        "manifest files",
        lambda c: c.manifest_files,
        add_manifest_file,
        remove_manifest_file,
        action,
        filename,
    )


def cmd_version() -> bool:
    print(f"envi {__version__}")
    return True


def _add_config_list_parser(sub, name: str, help_text: str, value_help: str) -> None:
    ap = sub.add_parser(name, help=help_text)
    ap.add_argument("action", choices=["list", "add", "remove"], nargs="?", default="list")
    ap.add_argument("value", nargs="?", help=value_help)


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="envi",
        description="Capture, restore and share .env files",
        epilog="Blobs are AES-256-GCM encrypted with an Argon2id-stretched secret.",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_capture = sub.add_parser("capture", help="Capture env files into the local store")
    ap_capture.add_argument("--here", action="store_true", help="Use the current directory as the repository root")
    ap_capture.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_restore = sub.add_parser("restore", help="Restore env files from the local store")
    ap_restore.add_argument("--here", action="store_true", help="Use the current directory as the repository root")
    ap_restore.add_argument("--force", "--yes", "-y", dest="force", action="store_true", help="Overwrite files that differ without asking")
    ap_restore.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_clear = sub.add_parser("clear", help="Delete the stored env files of this repository")
    ap_clear.add_argument("--here", action="store_true", help="Use the current directory as the repository root")
    ap_clear.add_argument("--yes", "-y", "--force", dest="force", action="store_true", help="Do not ask for confirmation")
    ap_clear.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_pack = sub.add_parser("pack", help="Encrypt env files into a shareable blob")
    ap_pack.add_argument("--here", action="store_true", help="Use the current directory as the repository root")
    ap_pack.add_argument("--secret", help="Secret to encrypt with (default: derived from the manifest file)")
    ap_pack.add_argument("--print", dest="print_blob", action="store_true", help="Print the blob instead of copying it")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_unpack = sub.add_parser("unpack", help="Decrypt a blob and restore its env files")
    ap_unpack.add_argument("blob", nargs="?", help="Blob text, or '-' for stdin (default: clipboard)")
    ap_unpack.add_argument("--file", help="Read the blob from a file")
    ap_unpack.add_argument("--here", action="store_true", help="Use the current directory as the repository root")
    ap_unpack.add_argument("--secret", help="Secret to decrypt with (default: derived from the manifest file)")
    ap_unpack.add_argument("--no-save", action="store_true", help="Do not write the files to the local store")
    ap_unpack.add_argument("--no-restore", action="store_true", help="Do not write the files into the repository")
    ap_unpack.add_argument("--force", "--yes", "-y", dest="force", action="store_true", help="Overwrite files that differ without asking")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_config = sub.add_parser("config", help="Show or change configuration")
    config_sub = ap_config.add_subparsers(dest="section", required=True)
    _add_config_list_parser(config_sub, "redact", "Variables whose values are never captured", "Variable name")
    _add_config_list_parser(config_sub, "manifest-files", "Manifest files used for package name and secret", "Manifest filename")

    sub.add_parser("version", help="Show version")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "capture":
            ok = cmd_capture(load_config(), here=args.here, quiet=args.quiet)
        elif args.cmd == "restore":
            ok = cmd_restore(load_config(), here=args.here, force=args.force, quiet=args.quiet)
        elif args.cmd == "clear":
            ok = cmd_clear(load_config(), here=args.here, force=args.force, quiet=args.quiet)
        elif args.cmd == "pack":
            ok = cmd_pack(load_config(), here=args.here, secret=args.secret, print_blob=args.print_blob, quiet=args.quiet)
        elif args.cmd == "unpack":
            ok = cmd_unpack(
                load_config(),
                args.blob,
                file=args.file,
                here=args.here,
                secret=args.secret,
                save=not args.no_save,
                restore=not args.no_restore,
                force=args.force,
                quiet=args.quiet,
            )
        elif args.cmd == "config":
            if args.section == "redact":
                ok = cmd_config_redact(args.action, args.value)
            else:
                ok = cmd_config_manifest_files(args.action, args.value)
        elif args.cmd == "version":
            ok = cmd_version()
        else:
            raise RuntimeError("Unknown command")
        sys.exit(0 if ok else 1)
    except AuthenticationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print(
            "Hint: the blob was packed with a different secret. If the packing repository's manifest "
            "differs from yours, ask for the secret and pass --secret.",
            file=sys.stderr,
        )
        sys.exit(2)
    except (EnviError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
