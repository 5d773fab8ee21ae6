"""
ucp_core/keys.py — Signing identity lifecycle per scope.

Each scope (tenant, sales channel, ...) owns one P-256 signing key,
stored as a triple in the configuration store:

    ucp.signing.key_id       opaque key id, published as JWK `kid`
    ucp.signing.public_key   SubjectPublicKeyInfo PEM
    ucp.signing.private_key  PKCS#8 PEM

Keys are created lazily the first time public keys are requested and
are only ever replaced (rotation), never deleted.

Concurrent first calls on the same scope can each generate a key;
the last write wins. Callers that need strict once-only generation
serialize generate_and_store() themselves.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import ec

from .crypto import (
    generate_keypair,
    private_key_from_pem,
    private_key_to_pem,
    public_key_to_pem,
)
from .errors import KeyGenerationFailed
from .jwk import public_key_to_jwk
from .models import Jwk
from .storage import ConfigStore

logger = logging.getLogger(__name__)


CONFIG_KEY_ID = "ucp.signing.key_id"
CONFIG_PUBLIC_KEY = "ucp.signing.public_key"
CONFIG_PRIVATE_KEY = "ucp.signing.private_key"

DEFAULT_KEY_ID_PREFIX = "ucp_"


class KeyManager:
    """Owns the ES256 signing identity of each scope.

    Args:
        store:         Configuration store holding the key triple.
        key_id_prefix: Prefix for generated and default key ids.
    """

    def __init__(
        self,
        store: ConfigStore,
        key_id_prefix: str = DEFAULT_KEY_ID_PREFIX,
    ) -> None:
        self.store = store
        self.key_id_prefix = key_id_prefix

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_key_id(self, scope: str) -> str:
        """Stored key id, or `<prefix><year>` if none is stored.

        The default is not persisted.
        """
        key_id = self.store.get_string(CONFIG_KEY_ID, scope)
        if key_id:
            return key_id
        return f"{self.key_id_prefix}{datetime.now(timezone.utc).year}"

    def get_private_key(self, scope: str) -> Optional[str]:
        """Private key PEM, or None if not configured."""
        return self.store.get_string(CONFIG_PRIVATE_KEY, scope) or None

    def get_public_key_pem(self, scope: str) -> Optional[str]:
        """Public key PEM, or None if not configured."""
        return self.store.get_string(CONFIG_PUBLIC_KEY, scope) or None

    def load_private_key(self, scope: str) -> Optional[ec.EllipticCurvePrivateKey]:
        """Parsed private key, or None if not configured."""
        pem = self.get_private_key(scope)
        if pem is None:
            return None
        return private_key_from_pem(pem)

    def get_public_keys(self, scope: str) -> list[Jwk]:
        """Public signing keys of `scope` as JWKs.

        Generates and stores a key pair if none is configured yet.
        """
        if self.get_public_key_pem(scope) is None:
            self.generate_and_store(scope)

        public_key_pem = self.get_public_key_pem(scope)
        if public_key_pem is None:
            return []
        return [public_key_to_jwk(public_key_pem, self.get_key_id(scope))]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_and_store(self, scope: str) -> str:
        """Generate a fresh P-256 key pair for `scope` and persist it.

        Returns:
            The new key id.

        Raises:
            KeyGenerationFailed: If the key pair cannot be produced.
        """
        try:
            private_key, public_key = generate_keypair()
            private_pem = private_key_to_pem(private_key)
            public_pem = public_key_to_pem(public_key)
        except (ValueError, TypeError) as exc:
            raise KeyGenerationFailed(
                f"Failed to generate EC P-256 key pair: {exc}"
            ) from exc

        key_id = f"{self.key_id_prefix}{secrets.token_hex(8)}"
        triple = {
            CONFIG_PRIVATE_KEY: private_pem,
            CONFIG_PUBLIC_KEY: public_pem,
            CONFIG_KEY_ID: key_id,
        }

        set_strings = getattr(self.store, "set_strings", None)
        if callable(set_strings):
            set_strings(triple, scope)
        else:
            # Not atomic: a crash between writes leaves a mixed triple.
            # Key id goes last so a half-written rotation keeps the old kid.
            logger.debug("Store has no set_strings; writing key triple sequentially")
            for name, value in triple.items():
                self.store.set_string(name, scope, value)

        logger.info("Generated signing key %s for scope %s", key_id, scope)
        return key_id
