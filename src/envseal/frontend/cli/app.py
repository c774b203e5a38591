"""
Command line entry point for envseal.

    envseal generate-key                      # add <STAGE>_SECRET_KEY to .env
    envseal encrypt AUTH_USERNAME AUTH_PASSWORD
    envseal encrypt                           # every plaintext value in .env.<stage>
    envseal decrypt AUTH_PASSWORD
    envseal credentials AUTH                  # AUTH_USERNAME / AUTH_PASSWORD

The stage and root directory come from ENV / ENVSEAL_ROOT unless given as
options.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from envseal.config.loader import EnvironmentLoader
from envseal.config.secrets import SecretStore, generate_stage_secret, store_stage_secret_in_keyring
from envseal.config.settings import EnvironmentPaths, Settings, Stage
from envseal.core.exceptions import EnvSealError, IntegrityError, SecretNotFoundError
from envseal.service.credentials import CredentialResolver
from envseal.service.orchestrator import EncryptionOrchestrator
from .logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envseal",
        description="Encrypt credentials stored in stage .env files.",
    )
    parser.add_argument("--root", type=Path, help="Directory holding the .env files")
    parser.add_argument("--stage", help="Deployment stage (dev, qa, uat, preprod, prod)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate-key", help="Create the stage master secret")
    gen.add_argument("--force", action="store_true", help="Replace an existing secret")
    gen.add_argument(
        "--keyring",
        action="store_true",
        help="Store the secret in the OS keystore instead of the base .env file",
    )
    gen.add_argument(
        "--allow-insecure-keyring",
        action="store_true",
        help="Use the OS keystore even if its backend looks insecure",
    )

    enc = sub.add_parser("encrypt", help="Encrypt variables of the stage file in place")
    enc.add_argument("variables", nargs="*", help="Variables to encrypt (default: all)")

    dec = sub.add_parser("decrypt", help="Print the plaintext of an encrypted variable")
    dec.add_argument("variable")

    cred = sub.add_parser("credentials", help="Resolve <PREFIX>_USERNAME / <PREFIX>_PASSWORD")
    cred.add_argument("prefix", help="Credential prefix such as AUTH, PORTAL or DATABASE")
    cred.add_argument("--show-password", action="store_true", help="Print the password instead of a mask")

    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    changes = {}
    if args.root is not None:
        changes["paths"] = EnvironmentPaths(args.root.expanduser().resolve())
    if args.stage is not None:
        changes["stage"] = Stage.parse(args.stage)
    if getattr(args, "keyring", False):
        changes["use_keyring"] = True
    return replace(settings, **changes)


def _orchestrator(settings: Settings) -> EncryptionOrchestrator:
    store = SecretStore(settings.paths, use_keyring=settings.use_keyring)
    return EncryptionOrchestrator(
        store.get(settings.stage),
        params=settings.argon2,
        max_workers=settings.kdf_workers,
    )


def cmd_generate_key(settings: Settings, args: argparse.Namespace) -> int:
    if args.keyring:
        stored = store_stage_secret_in_keyring(
            settings.stage,
            replace=args.force,
            allow_insecure=args.allow_insecure_keyring,
        )
        if stored:
            print(f"Stored {settings.secret_variable} in the OS keystore")
        else:
            print(f"{settings.secret_variable} already exists in the OS keystore")
        return 0
    written = generate_stage_secret(settings.paths, settings.stage, skip_if_exists=not args.force)
    if written:
        print(f"Stored {settings.secret_variable} in {settings.paths.base_file}")
    else:
        print(f"{settings.secret_variable} already exists in {settings.paths.base_file}")
    return 0


def cmd_encrypt(settings: Settings, args: argparse.Namespace) -> int:
    targets = args.variables or None
    report = _orchestrator(settings).encrypt_file(settings.stage_file, targets)
    for name in report.encrypted:
        print(f"encrypted {name}")
    for name in report.skipped:
        print(f"skipped {name} (already encrypted)")
    return 0


def cmd_decrypt(settings: Settings, args: argparse.Namespace) -> int:
    variables = EnvironmentLoader(settings.paths, settings.stage).initialize()
    if args.variable not in variables:
        raise SecretNotFoundError(f"Environment variable not found: {args.variable}")
    print(_orchestrator(settings).decrypt_value(variables[args.variable]))
    return 0


def cmd_credentials(settings: Settings, args: argparse.Namespace) -> int:
    credentials = CredentialResolver.from_settings(settings).get_credentials(args.prefix)
    print(f"username: {credentials.username}")
    print(f"password: {credentials.password if args.show_password else '*' * 8}")
    return 0


COMMANDS = {
    "generate-key": cmd_generate_key,
    "encrypt": cmd_encrypt,
    "decrypt": cmd_decrypt,
    "credentials": cmd_credentials,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    try:
        settings = _settings_from_args(args)
        return COMMANDS[args.command](settings, args)
    except IntegrityError:
        # one message for both HMAC and GCM failures
        print("error: decryption failed (wrong secret or tampered value)", file=sys.stderr)
        return 1
    except EnvSealError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
