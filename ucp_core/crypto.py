"""
ucp_core/crypto.py — Cryptographic primitives for UCP signing.

Uses Python `cryptography` library exclusively. No custom crypto.
- ECDSA over P-256 with SHA-256 (ES256) for signing and verification
- PEM (PKCS#8 / SubjectPublicKeyInfo) serialization for storage

Signatures leave and enter this module in JOSE raw form (r‖s); the
DER conversion required by `cryptography` happens here via der.py.
"""

from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .der import P256_COORDINATE_SIZE, der_to_raw, raw_to_der


ES256_SIGNATURE_SIZE = 2 * P256_COORDINATE_SIZE


# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------

def generate_keypair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generate a new P-256 (secp256r1) keypair."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_key = private_key.public_key()
    return private_key, public_key


def private_key_to_pem(key: ec.EllipticCurvePrivateKey) -> str:
    """Serialize private key to PKCS#8 PEM text."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def public_key_to_pem(key: ec.EllipticCurvePublicKey) -> str:
    """Serialize public key to SubjectPublicKeyInfo PEM text."""
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def private_key_from_pem(pem_data: str | bytes) -> ec.EllipticCurvePrivateKey:
    """Deserialize an EC private key from PEM."""
    if isinstance(pem_data, str):
        pem_data = pem_data.encode("ascii")
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise TypeError("Not an EC private key")
    return key


def public_key_from_pem(pem_data: str | bytes) -> ec.EllipticCurvePublicKey:
    """Deserialize an EC public key from PEM."""
    if isinstance(pem_data, str):
        pem_data = pem_data.encode("ascii")
    key = serialization.load_pem_public_key(pem_data)
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise TypeError("Not an EC public key")
    return key


# ---------------------------------------------------------------------------
# Signing and verification
# ---------------------------------------------------------------------------

def sign_es256(private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
    """Sign data with ES256. Returns the 64-byte raw r‖s signature."""
    if not isinstance(private_key.curve, ec.SECP256R1):
        raise TypeError(
            f"ES256 requires a P-256 key, got {private_key.curve.name}"
        )
    der_signature = private_key.sign(data, ec.ECDSA(hashes.SHA256()))
    return der_to_raw(der_signature, P256_COORDINATE_SIZE)


def verify_es256(
    public_key: ec.EllipticCurvePublicKey,
    data: bytes,
    raw_signature: bytes,
) -> bool:
    """Verify a raw r‖s ES256 signature. Returns True if valid, False otherwise.

    Only the 64-byte form is accepted; zero-padded wider halves are not.
    """
    if len(raw_signature) != ES256_SIGNATURE_SIZE:
        return False
    try:
        public_key.verify(
            raw_to_der(raw_signature), data, ec.ECDSA(hashes.SHA256())
        )
        return True
    except (InvalidSignature, ValueError):
        return False
