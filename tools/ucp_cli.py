#!/usr/bin/env python3
"""
UCP CLI — Signing key and signature tooling.

Usage:
    python -m tools.ucp_cli keys generate --scope <scope>
    python -m tools.ucp_cli keys show --scope <scope>
    python -m tools.ucp_cli sign --scope <scope> <body-file>
    python -m tools.ucp_cli verify --jwks <keys.json> <signature> <body-file>
    python -m tools.ucp_cli negotiate <available.json> <requested.json>

Commands:
    keys generate — Create (or rotate) the scope's P-256 signing key
    keys show     — Print the scope's public keys as JWKs
    sign          — Print a detached JWS over a file's bytes
    verify        — Check a detached JWS against a JWK list (exit 0/1)
    negotiate     — Print the negotiated capability set

Keys are stored in the SQLite database named by --db, the config
file's database_path, or UCP_DATABASE_PATH.
"""

import argparse
import json
import os
import sys

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ucp_core.config import UcpConfig, load_config
from ucp_core.jose import SignatureEngine
from ucp_core.keys import KeyManager
from ucp_core.logs import setup_logging
from ucp_core.negotiation import negotiate
from ucp_core.storage import SqliteConfigStore


# ============================================================
# Helpers
# ============================================================

def _open_store(args: argparse.Namespace, config: UcpConfig) -> SqliteConfigStore:
    return SqliteConfigStore(args.db or config.database_path)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _read_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _print_json(value) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


# ============================================================
# Commands
# ============================================================

def cmd_keys_generate(args: argparse.Namespace, config: UcpConfig) -> int:
    with _open_store(args, config) as store:
        manager = KeyManager(store, key_id_prefix=config.key_id_prefix)
        key_id = manager.generate_and_store(args.scope)
    print(key_id)
    return 0


def cmd_keys_show(args: argparse.Namespace, config: UcpConfig) -> int:
    with _open_store(args, config) as store:
        manager = KeyManager(store, key_id_prefix=config.key_id_prefix)
        keys = manager.get_public_keys(args.scope)
    _print_json([jwk.to_dict() for jwk in keys])
    return 0


def cmd_sign(args: argparse.Namespace, config: UcpConfig) -> int:
    with _open_store(args, config) as store:
        engine = SignatureEngine(KeyManager(store, key_id_prefix=config.key_id_prefix))
        signature = engine.create_request_signature(
            _read_bytes(args.body_file), args.scope
        )
    print(signature)
    return 0


def cmd_verify(args: argparse.Namespace, config: UcpConfig) -> int:
    keys = _read_json(args.jwks)
    # Accept either a bare list or a profile / JWKS document
    if isinstance(keys, dict):
        keys = keys.get("signing_keys") or keys.get("keys") or []

    engine = SignatureEngine(KeyManager(_NoStore()))
    valid = engine.verify_request_signature(
        args.signature, _read_bytes(args.body_file), keys
    )
    print("  Result: ✓ SIGNATURE VALID" if valid else "  Result: ✗ SIGNATURE INVALID")
    return 0 if valid else 1


def cmd_negotiate(args: argparse.Namespace, config: UcpConfig) -> int:
    available = _read_json(args.available)
    requested = _read_json(args.requested)
    _print_json([c.to_dict() for c in negotiate(available, requested)])
    return 0


class _NoStore:
    """Store for verification-only runs: nothing configured, nothing kept."""

    def get_string(self, name: str, scope: str) -> str:
        return ""

    def set_string(self, name: str, scope: str, value: str) -> None:
        raise RuntimeError("verify does not write configuration")


# ============================================================
# Main
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="UCP CLI — signing keys, detached signatures, negotiation",
        prog="python -m tools.ucp_cli",
    )
    parser.add_argument("--config", help="Path to ucp.yaml")
    parser.add_argument("--db", help="SQLite database for key storage")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")

    sub = parser.add_subparsers(dest="command", required=True)

    keys = sub.add_parser("keys", help="Manage a scope's signing key")
    keys_sub = keys.add_subparsers(dest="keys_command", required=True)
    gen = keys_sub.add_parser("generate", help="Generate and store a new key")
    gen.add_argument("--scope", required=True)
    gen.set_defaults(handler=cmd_keys_generate)
    show = keys_sub.add_parser("show", help="Print public keys as JWKs")
    show.add_argument("--scope", required=True)
    show.set_defaults(handler=cmd_keys_show)

    sign = sub.add_parser("sign", help="Detached JWS over a file")
    sign.add_argument("--scope", required=True)
    sign.add_argument("body_file")
    sign.set_defaults(handler=cmd_sign)

    verify = sub.add_parser("verify", help="Verify a detached JWS")
    verify.add_argument("--jwks", required=True, help="JWK list or profile JSON")
    verify.add_argument("signature")
    verify.add_argument("body_file")
    verify.set_defaults(handler=cmd_verify)

    neg = sub.add_parser("negotiate", help="Negotiate capabilities")
    neg.add_argument("available", help="Platform capabilities JSON list")
    neg.add_argument("requested", help="Business capabilities JSON list")
    neg.set_defaults(handler=cmd_negotiate)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    setup_logging(args.log_level or config.log_level)

    for attr in ("body_file", "jwks", "available", "requested"):
        path = getattr(args, attr, None)
        if path is not None and not os.path.exists(path):
            print(f"  ERROR: File not found: {path}")
            return 1

    return args.handler(args, config)


if __name__ == "__main__":
    sys.exit(main())
