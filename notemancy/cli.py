#!/usr/bin/env python3
"""
notemancy command line.

    notemancy                      pick a note from the default vault
    notemancy pick [@vault]        pick a note and print its path (--edit opens it)
    notemancy vectorize [vault]    rebuild the vault's vector store
    notemancy info [vault]         show the persisted vector store for a vault
    notemancy set <vault>          set the default vault
    notemancy cd <vault>           print a vault's directory
    notemancy init                 create the configuration directory and config.yaml
"""

import argparse
from dataclasses import replace
import shlex
import subprocess
import sys
from typing import List, Optional

from .core.config import Settings, get_default_vault, init_config, load_settings, set_default_vault
from .core.errors import ConfigurationError, EmptyVaultError, NoSelectionError, NotemancyError
from .core.vault import resolve_vault
from .util.logging import logger


def _vault_or_default(settings: Settings, vault: Optional[str], command: str) -> str:
    if vault:
        return vault.lstrip("@")
    try:
        return get_default_vault(settings)
    except NotemancyError as e:
        raise type(e)(f"{e}; please specify a vault with 'notemancy {command} <vault_name>'") from e


def cmd_vectorize(settings: Settings, args: argparse.Namespace) -> int:
    from .vector.builder import vectorize_vault

    vault_name = _vault_or_default(settings, args.vault, "vectorize")
    try:
        vectorize_vault(settings, vault_name, on_progress=print)
    except EmptyVaultError as e:
        print(str(e))
    return 0


def cmd_pick(settings: Settings, args: argparse.Namespace) -> int:
    from .selection.pickers import FilterPicker, get_picker
    from .selection.resolver import resolve

    vault_name = _vault_or_default(settings, args.vault, "pick")
    if args.filter is not None:
        picker = FilterPicker()
        query = args.filter
    else:
        picker = get_picker(settings)
        query = args.query or ""

    try:
        path = resolve(settings, vault_name, picker, query)
    except EmptyVaultError as e:
        print(str(e))
        return 0

    if args.edit:
        try:
            subprocess.run(shlex.split(settings.editor) + [str(path)])
        except OSError as e:
            raise ConfigurationError(f"Cannot start editor '{settings.editor}': {e}")
    else:
        print(path)
    return 0


def cmd_info(settings: Settings, args: argparse.Namespace) -> int:
    from .vector.persistence import load

    vault_name = _vault_or_default(settings, args.vault, "info")
    store_name = settings.store_name(vault_name)
    if not settings.store_path(vault_name).exists():
        print(f"No vector store for vault '{vault_name}'; run 'notemancy vectorize {vault_name}'")
        return 1

    store = load(settings.conf_dir, store_name)
    print(f"Store: {settings.store_path(vault_name)}")
    print(f"Notes: {len(store)}")
    print(f"Dimension: {store.dimension}")
    return 0


def cmd_set(settings: Settings, args: argparse.Namespace) -> int:
    set_default_vault(settings, args.vault)
    print(f"Default vault set to {args.vault}")
    return 0


def cmd_cd(settings: Settings, args: argparse.Namespace) -> int:
    print(resolve_vault(settings, args.vault).path)
    return 0


def cmd_init(settings: Settings, args: argparse.Namespace) -> int:
    config_file = init_config(settings)
    print(f"Configuration file: {config_file}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notemancy",
        description="Vault-based knowledge base: semantic indexing and fuzzy note selection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log operations at INFO level"
    )
    subparsers = parser.add_subparsers(dest="command")

    vectorize = subparsers.add_parser("vectorize", help="Rebuild the vector store for a vault")
    vectorize.add_argument("vault", nargs="?", help="Vault name (defaults to the configured default vault)")
    vectorize.add_argument("--workers", type=int, help="Embedding worker pool size")
    vectorize.set_defaults(func=cmd_vectorize)

    pick = subparsers.add_parser("pick", help="Fuzzy-select a note and print its path")
    pick.add_argument("vault", nargs="?", help="Vault name, optionally prefixed with @")
    pick.add_argument("--query", "-q", help="Initial query for the interactive picker")
    pick.add_argument("--filter", "-f", help="Non-interactive: select the best match for this query")
    pick.add_argument("--edit", "-e", action="store_true", help="Open the note in $EDITOR")
    pick.set_defaults(func=cmd_pick)

    info = subparsers.add_parser("info", help="Show the persisted vector store for a vault")
    info.add_argument("vault", nargs="?", help="Vault name (defaults to the configured default vault)")
    info.set_defaults(func=cmd_info)

    set_cmd = subparsers.add_parser("set", help="Set the default vault")
    set_cmd.add_argument("vault", help="Vault name")
    set_cmd.set_defaults(func=cmd_set)

    cd = subparsers.add_parser("cd", help="Print a vault's directory")
    cd.add_argument("vault", help="Vault name")
    cd.set_defaults(func=cmd_cd)

    init = subparsers.add_parser("init", help="Create the configuration directory and config.yaml")
    init.set_defaults(func=cmd_init)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        # No command: pick from the default vault
        verbose = args.verbose
        args = parser.parse_args(["pick"])
        args.verbose = verbose

    try:
        settings = load_settings()
        if getattr(args, "workers", None) is not None:
            settings = _with_workers(settings, args.workers)
        logger.set_level("INFO" if args.verbose else settings.log_level)
        return args.func(settings, args)
    except NoSelectionError as e:
        print(str(e), file=sys.stderr)
        return 1
    except NotemancyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _with_workers(settings: Settings, workers: int) -> Settings:
    if workers < 1:
        raise ConfigurationError("--workers must be >= 1")
    return replace(settings, embed_workers=workers)


if __name__ == "__main__":
    sys.exit(main())
