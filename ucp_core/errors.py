"""
ucp_core/errors.py — Error taxonomy for key and signature handling.

Conversion and key-management failures raise these. Verification
never does: a signature that cannot be confirmed is reported as
False / None by the verifier itself.
"""

from __future__ import annotations


class UcpError(Exception):
    """Base class for all ucp_core errors."""


# ---------------------------------------------------------------------------
# Key and encoding errors (bad input)
# ---------------------------------------------------------------------------

class InvalidKey(UcpError, ValueError):
    """Key material is not a P-256 elliptic-curve public key."""


class UnsupportedKeyType(UcpError, ValueError):
    """JWK `kty` is not "EC"."""


class UnsupportedCurve(UcpError, ValueError):
    """JWK `crv` is not "P-256"."""


class MissingCoordinates(UcpError, ValueError):
    """JWK lacks an `x` or `y` coordinate."""


class InvalidEncoding(UcpError, ValueError):
    """Encoded key material could not be decoded or re-parsed."""


class MalformedDer(UcpError, ValueError):
    """DER signature structure is not SEQUENCE{INTEGER, INTEGER}."""


# ---------------------------------------------------------------------------
# Key management errors (configuration state)
# ---------------------------------------------------------------------------

class KeyGenerationFailed(UcpError, RuntimeError):
    """A fresh signing key pair could not be produced or serialized."""


class NoPrivateKey(UcpError, RuntimeError):
    """No private signing key is configured for the scope."""
