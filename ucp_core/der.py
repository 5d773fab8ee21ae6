"""
ucp_core/der.py — ECDSA signature encoding: raw r‖s <-> ASN.1 DER.

JOSE (RFC 7518 §3.4) carries ECDSA signatures as the fixed-width
concatenation r‖s. `cryptography` signs and verifies the DER form:

    SEQUENCE {
        INTEGER r,
        INTEGER s
    }

The ASN.1 work is done by cryptography's decode_dss_signature /
encode_dss_signature; this module only fixes the raw width and maps
parse failures to MalformedDer.
"""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from .errors import MalformedDer


# Half-width of an ES256 raw signature (P-256 order is 256 bits)
P256_COORDINATE_SIZE = 32


def der_to_raw(der: bytes, size: int = P256_COORDINATE_SIZE) -> bytes:
    """Convert a DER ECDSA signature to raw r‖s, each half `size` bytes.

    Raises:
        MalformedDer: If `der` is not a DER SEQUENCE of two INTEGERs, or
                      an integer does not fit in `size` bytes.
    """
    try:
        r, s = decode_dss_signature(bytes(der))
    except (ValueError, TypeError) as exc:
        raise MalformedDer(f"Invalid DER ECDSA signature: {exc}") from exc

    for name, value in (("r", r), ("s", s)):
        if value < 0 or value.bit_length() > size * 8:
            raise MalformedDer(f"INTEGER {name} does not fit in {size} bytes")
    return r.to_bytes(size, "big") + s.to_bytes(size, "big")


def raw_to_der(raw: bytes) -> bytes:
    """Convert raw r‖s to a DER ECDSA signature.

    The input is split at its midpoint, so any even length is accepted
    (64 bytes for ES256, 96 for ES384, 132 for ES512).

    Raises:
        MalformedDer: If `raw` is empty or of odd length.
    """
    raw = bytes(raw)
    if not raw or len(raw) % 2:
        raise MalformedDer(
            f"Raw signature must have a non-zero even length, got {len(raw)}"
        )
    half = len(raw) // 2
    r = int.from_bytes(raw[:half], "big")
    s = int.from_bytes(raw[half:], "big")
    return encode_dss_signature(r, s)
