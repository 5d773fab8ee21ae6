"""
UCP Core — signing identity, JOSE signatures and capability negotiation
for Universal Commerce Protocol businesses.

__version__ is the SDK version. The protocol version negotiated with
platforms is a calendar date (see models.DEFAULT_UCP_VERSION).
"""

__version__ = "0.1.0"

from .errors import (
    UcpError,
    InvalidKey,
    UnsupportedKeyType,
    UnsupportedCurve,
    MissingCoordinates,
    InvalidEncoding,
    MalformedDer,
    KeyGenerationFailed,
    NoPrivateKey,
)
from .base64url import b64url_encode, b64url_decode
from .models import Jwk, Capability, DEFAULT_UCP_VERSION
from .der import der_to_raw, raw_to_der
from .crypto import (
    generate_keypair,
    sign_es256,
    verify_es256,
    private_key_to_pem,
    public_key_to_pem,
    private_key_from_pem,
    public_key_from_pem,
)
from .jwk import (
    public_key_to_jwk,
    pem_to_jwk,
    jwk_to_public_key,
    jwk_to_der,
    jwk_to_pem,
)
from .canonical import canonicalize, canonicalize_excluding
from .storage import ConfigStore, MemoryConfigStore, SqliteConfigStore
from .keys import KeyManager
from .jose import SignatureEngine
from .negotiation import negotiate, negotiate_with_profile, is_version_compatible
from .discovery import DiscoveryService
from .profile import PlatformProfileFetcher, parse_ucp_agent_header
from .config import UcpConfig, load_config
from .logs import setup_logging
