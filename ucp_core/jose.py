"""
ucp_core/jose.py — ES256 tokens and detached signatures.

Three compact JOSE shapes, all signed with the scope's P-256 key:

    JWT                      b64u(header).b64u(claims).b64u(sig)
    Detached (RFC 7797)      b64u(header)..b64u(sig)
    Merchant authorization   detached signature over the canonical JSON
                             of a payload minus its `ap2` field

The signing input is always b64u(header) + "." + b64u(payload). For
detached signatures the payload travels separately (HTTP body,
checkout object) and the verifier recomputes the signing input from
it; a payload segment inside the compact string is never trusted.

Verification is fail-closed: any malformed input, unknown key or bad
signature yields False / None. Only signing raises.

Reference: RFC 7515, RFC 7518 §3.4, RFC 7797
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from .base64url import b64url_decode, b64url_encode
from .canonical import canonicalize_excluding
from .crypto import sign_es256, verify_es256
from .errors import NoPrivateKey
from .jwk import jwk_to_public_key
from .keys import KeyManager
from .models import Jwk

logger = logging.getLogger(__name__)


# Algorithms a detached signature header may declare
ACCEPTED_ALGORITHMS = frozenset({"ES256", "ES384", "ES512"})

MERCHANT_AUTHORIZATION_FIELD = "ap2"
MERCHANT_AUTHORIZATION_PATH = ("ap2", "merchant_authorization")

JwkLike = Union[Jwk, Mapping[str, Any]]


class SignatureEngine:
    """Creates and verifies ES256 JOSE signatures for a KeyManager's scopes."""

    def __init__(self, key_manager: KeyManager) -> None:
        self.key_manager = key_manager

    # ------------------------------------------------------------------
    # JWT
    # ------------------------------------------------------------------

    def create_jwt(self, claims: Mapping[str, Any], scope: str) -> str:
        """Create a compact ES256 JWT over `claims`.

        Raises:
            NoPrivateKey: If `scope` has no private key configured.
        """
        header_b64 = self._header_b64(scope)
        payload_b64 = b64url_encode(_json_bytes(claims))
        signing_input = f"{header_b64}.{payload_b64}"
        signature = self._sign(signing_input, scope)
        return f"{signing_input}.{b64url_encode(signature)}"

    def verify_jwt(self, token: str, scope: str) -> Optional[dict]:
        """Verify a JWT issued for `scope`. Returns its claims, or None.

        Every public key of the scope is tried, so tokens signed before
        a rotation keep verifying while their key is still published.
        """
        try:
            parts = token.split(".")
            if len(parts) != 3:
                return None
            header_b64, payload_b64, signature_b64 = parts

            header = _decode_json_segment(header_b64)
            if not isinstance(header, dict) or header.get("alg") != "ES256":
                return None

            signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
            signature = b64url_decode(signature_b64)

            for jwk in self.key_manager.get_public_keys(scope):
                try:
                    public_key = jwk_to_public_key(jwk)
                except ValueError:
                    continue
                if verify_es256(public_key, signing_input, signature):
                    claims = _decode_json_segment(payload_b64)
                    return claims if isinstance(claims, dict) else None

            logger.debug("JWT signature did not match any key of scope %s", scope)
            return None
        except Exception as exc:
            logger.debug("JWT verification failed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Detached signatures (Request-Signature header)
    # ------------------------------------------------------------------

    def create_request_signature(self, body: Union[bytes, str], scope: str) -> str:
        """Create a detached JWS (`header..signature`) over `body`.

        Raises:
            NoPrivateKey: If `scope` has no private key configured.
        """
        header_b64 = self._header_b64(scope)
        signing_input = f"{header_b64}.{b64url_encode(body)}"
        signature = self._sign(signing_input, scope)
        return f"{header_b64}..{b64url_encode(signature)}"

    def verify_request_signature(
        self,
        signature: str,
        body: Union[bytes, str],
        signer_keys: Sequence[JwkLike],
    ) -> bool:
        """Verify a detached JWS over `body` against the signer's JWKs.

        The key is picked by the header `kid`; without a `kid` the first
        candidate is used. Never raises.
        """
        try:
            parts = signature.split(".")
            if len(parts) != 3:
                return False
            # parts[1] is ignored: the body is always taken from the caller
            header_b64, _, signature_b64 = parts

            header = _decode_json_segment(header_b64)
            if not isinstance(header, dict):
                return False

            alg = header.get("alg")
            if alg not in ACCEPTED_ALGORITHMS:
                logger.debug("Rejected detached signature with alg %r", alg)
                return False

            jwk = _select_key(signer_keys, header.get("kid"))
            if jwk is None:
                logger.debug("No signer key matches kid %r", header.get("kid"))
                return False

            public_key = jwk_to_public_key(jwk)
            signing_input = f"{header_b64}.{b64url_encode(body)}".encode("ascii")
            raw_signature = b64url_decode(signature_b64)

            return verify_es256(public_key, signing_input, raw_signature)
        except Exception as exc:
            logger.debug("Detached signature verification failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Merchant authorization (signature over a structured payload)
    # ------------------------------------------------------------------

    def sign_merchant_authorization(
        self,
        payload: Mapping[str, Any],
        scope: str,
        excluded_field: str = MERCHANT_AUTHORIZATION_FIELD,
    ) -> str:
        """Sign the canonical JSON of `payload` without `excluded_field`.

        The returned detached JWS is meant to be stored back into the
        excluded field (e.g. `ap2.merchant_authorization`).
        """
        canonical = canonicalize_excluding(payload, excluded_field)
        return self.create_request_signature(canonical, scope)

    def verify_merchant_authorization(
        self,
        payload: Mapping[str, Any],
        signer_keys: Sequence[JwkLike],
        signature_path: Sequence[str] = MERCHANT_AUTHORIZATION_PATH,
    ) -> bool:
        """Verify the signature found at `signature_path` inside `payload`.

        The first path element is the field that was excluded when
        signing. Missing signature -> False. Never raises.
        """
        try:
            signature = _lookup(payload, signature_path)
            if not isinstance(signature, str) or not signature:
                return False
            canonical = canonicalize_excluding(payload, signature_path[0])
        except Exception as exc:
            logger.debug("Merchant authorization payload rejected: %s", exc)
            return False
        return self.verify_request_signature(signature, canonical, signer_keys)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _header_b64(self, scope: str) -> str:
        header = {
            "alg": "ES256",
            "typ": "JWT",
            "kid": self.key_manager.get_key_id(scope),
        }
        return b64url_encode(_json_bytes(header))

    def _sign(self, signing_input: str, scope: str) -> bytes:
        private_key = self.key_manager.load_private_key(scope)
        if private_key is None:
            raise NoPrivateKey(f"Private key not configured for scope {scope!r}")
        return sign_es256(private_key, signing_input.encode("ascii"))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _json_bytes(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _decode_json_segment(segment: str) -> Any:
    return json.loads(b64url_decode(segment).decode("utf-8"))


def _select_key(keys: Iterable[JwkLike], kid: Optional[str]) -> Optional[JwkLike]:
    for key in keys:
        if kid is None:
            return key
        key_kid = key.kid if isinstance(key, Jwk) else key.get("kid")
        if key_kid == kid:
            return key
    return None


def _lookup(payload: Mapping[str, Any], path: Sequence[str]) -> Any:
    if not path:
        raise ValueError("Signature path must not be empty")
    value: Any = payload
    for name in path:
        if not isinstance(value, Mapping) or name not in value:
            return None
        value = value[name]
    return value
