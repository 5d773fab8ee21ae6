"""
ucp_core/jwk.py — P-256 public key conversion: PEM/native <-> JWK.

A JWK is what a business publishes in its discovery profile so that
platforms can check its signatures, and what it reads from a
platform's profile to check theirs. Native keys are `cryptography`
EllipticCurvePublicKey objects; stored keys are PEM text.

JWK -> key builds the DER SubjectPublicKeyInfo by hand:

    SEQUENCE {
        SEQUENCE {
            OBJECT IDENTIFIER 1.2.840.10045.2.1    (id-ecPublicKey)
            OBJECT IDENTIFIER 1.2.840.10045.3.1.7  (prime256v1)
        }
        BIT STRING 0x00 ‖ 0x04 ‖ x ‖ y
    }

and then parses it back with the same loader used for keys that
arrive from outside, so a key that would not load is never returned.

Reference: RFC 7517, RFC 7518 §6.2, RFC 5480
"""

from __future__ import annotations

import base64
import textwrap
from typing import Any, Mapping, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import ValidationError

from .base64url import b64url_decode, b64url_encode
from .errors import (
    InvalidEncoding,
    InvalidKey,
    MissingCoordinates,
    UnsupportedCurve,
    UnsupportedKeyType,
)
from .models import Jwk


COORDINATE_SIZE = 32

_OID_EC_PUBLIC_KEY = bytes.fromhex("06072a8648ce3d0201")
_OID_PRIME256V1 = bytes.fromhex("06082a8648ce3d030107")

_ALGORITHM_IDENTIFIER = (
    b"\x30"
    + bytes([len(_OID_EC_PUBLIC_KEY) + len(_OID_PRIME256V1)])
    + _OID_EC_PUBLIC_KEY
    + _OID_PRIME256V1
)

JwkLike = Union[Jwk, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Native / PEM -> JWK
# ---------------------------------------------------------------------------

def public_key_to_jwk(
    public_key: Union[ec.EllipticCurvePublicKey, str, bytes],
    key_id: str,
) -> Jwk:
    """Convert a P-256 public key (object or PEM) to its JWK.

    Raises:
        InvalidKey: If the key cannot be loaded or is not on P-256.
    """
    if isinstance(public_key, (str, bytes)):
        public_key = _load_pem(public_key)

    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise InvalidKey(f"Not an EC public key: {type(public_key).__name__}")
    if not isinstance(public_key.curve, ec.SECP256R1):
        raise InvalidKey(f"Expected curve P-256, got {public_key.curve.name}")

    numbers = public_key.public_numbers()
    return Jwk(
        kid=key_id,
        kty="EC",
        crv="P-256",
        x=b64url_encode(numbers.x.to_bytes(COORDINATE_SIZE, "big")),
        y=b64url_encode(numbers.y.to_bytes(COORDINATE_SIZE, "big")),
        use="sig",
        alg="ES256",
    )


def pem_to_jwk(public_key_pem: Union[str, bytes], key_id: str) -> Jwk:
    """Convert a PEM public key to its JWK."""
    return public_key_to_jwk(public_key_pem, key_id)


def _load_pem(pem: Union[str, bytes]) -> Any:
    if isinstance(pem, str):
        pem = pem.encode("ascii", errors="replace")
    try:
        return serialization.load_pem_public_key(pem)
    except (ValueError, TypeError) as exc:
        raise InvalidKey(f"Cannot load PEM public key: {exc}") from exc


# ---------------------------------------------------------------------------
# JWK -> DER / PEM / native
# ---------------------------------------------------------------------------

def jwk_to_der(jwk: JwkLike) -> bytes:
    """Build the DER SubjectPublicKeyInfo for a P-256 JWK.

    Raises:
        UnsupportedKeyType: kty is not "EC".
        UnsupportedCurve: crv is not "P-256".
        MissingCoordinates: x or y absent.
        InvalidEncoding: x or y not valid base64url or wider than 32 bytes.
    """
    if not isinstance(jwk, (Jwk, Mapping)):
        raise InvalidEncoding(f"JWK must be an object, got {type(jwk).__name__}")

    # Type and curve are checked on the raw members, before any coercion
    kty = jwk.kty if isinstance(jwk, Jwk) else jwk.get("kty")
    crv = jwk.crv if isinstance(jwk, Jwk) else jwk.get("crv")
    if kty != "EC":
        raise UnsupportedKeyType(f"Unsupported key type: {kty!r}")
    if crv != "P-256":
        raise UnsupportedCurve(f"Unsupported curve: {crv!r}")

    try:
        data = Jwk.coerce(jwk)
    except ValidationError as exc:
        raise InvalidEncoding(f"Malformed JWK: {exc}") from exc

    if not data.x or not data.y:
        raise MissingCoordinates("JWK must contain both x and y coordinates")

    x = _decode_coordinate(data.x, "x")
    y = _decode_coordinate(data.y, "y")

    point = b"\x04" + x + y
    # BIT STRING: leading 0x00 = no unused bits
    bit_string = b"\x03" + bytes([len(point) + 1]) + b"\x00" + point
    body = _ALGORITHM_IDENTIFIER + bit_string
    return b"\x30" + bytes([len(body)]) + body


def jwk_to_public_key(jwk: JwkLike) -> ec.EllipticCurvePublicKey:
    """Convert a P-256 JWK to a native public key.

    The hand-built DER is parsed back before returning; a structure the
    loader rejects (e.g. a point that is not on the curve) surfaces as
    InvalidEncoding.
    """
    return _load_der(jwk_to_der(jwk))


def _load_der(der: bytes) -> ec.EllipticCurvePublicKey:
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, TypeError) as exc:
        raise InvalidEncoding(f"JWK does not describe a valid P-256 key: {exc}") from exc
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise InvalidEncoding("Decoded key is not an EC public key")
    return key


def jwk_to_pem(jwk: JwkLike) -> str:
    """Convert a P-256 JWK to SubjectPublicKeyInfo PEM text."""
    der = jwk_to_der(jwk)
    _load_der(der)
    return der_to_pem(der)


def der_to_pem(der: bytes) -> str:
    """Wrap DER SubjectPublicKeyInfo bytes in a PUBLIC KEY PEM block."""
    body = "\n".join(textwrap.wrap(base64.b64encode(der).decode("ascii"), 64))
    return f"-----BEGIN PUBLIC KEY-----\n{body}\n-----END PUBLIC KEY-----\n"


def _decode_coordinate(value: str, name: str) -> bytes:
    try:
        raw = b64url_decode(value)
    except ValueError as exc:
        raise InvalidEncoding(f"JWK coordinate {name} is not base64url: {exc}") from exc
    if len(raw) > COORDINATE_SIZE:
        raise InvalidEncoding(
            f"JWK coordinate {name} is {len(raw)} bytes, expected {COORDINATE_SIZE}"
        )
    # Tolerate short encodings: left-pad to the canonical width
    return raw.rjust(COORDINATE_SIZE, b"\x00")
