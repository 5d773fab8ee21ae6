"""
ucp_core/models.py — UCP data structures shared across modules.

Pydantic models for the two values that cross the wire as JSON:
signing keys (JWK) and capabilities. Both accept plain dicts from
parsed profiles via `coerce()` and dump back to plain JSON data.
"""

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Protocol version assumed when a capability omits its version
DEFAULT_UCP_VERSION = "2026-01-11"


# ---------------------------------------------------------------------------
# JWK
# ---------------------------------------------------------------------------

class Jwk(BaseModel):
    """JSON Web Key for an EC signing key (RFC 7517).

    Fields are optional at the model level so that keys published by
    third parties can be represented as-is; key conversion in jwk.py
    is what rejects an unusable key, with a specific error.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    kid: Optional[str] = Field(default=None, description="Key identifier.")
    kty: Optional[str] = Field(default=None, description="Key type, 'EC'.")
    crv: Optional[str] = Field(default=None, description="Curve, 'P-256'.")
    x: Optional[str] = Field(default=None, description="base64url X coordinate.")
    y: Optional[str] = Field(default=None, description="base64url Y coordinate.")
    use: Optional[str] = Field(default=None, description="Public key use, 'sig'.")
    alg: Optional[str] = Field(default=None, description="JOSE algorithm, 'ES256'.")

    @classmethod
    def coerce(cls, value: Union["Jwk", Mapping[str, Any]]) -> "Jwk":
        if isinstance(value, Jwk):
            return value
        return cls.model_validate(dict(value))

    def to_dict(self) -> Dict[str, Any]:
        """JSON form, omitting unset members."""
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------

class Capability(BaseModel):
    """A named, versioned optional protocol feature.

    `extends` names another capability that must also be active for
    this one to survive negotiation. `spec` and `schema` are the
    documentation URLs a business advertises in its discovery profile.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1)
    version: Optional[str] = Field(
        default=None,
        description="Calendar version (YYYY-MM-DD).",
    )
    extends: Optional[str] = None
    spec: Optional[str] = None
    schema_url: Optional[str] = Field(default=None, alias="schema")

    @classmethod
    def coerce(cls, value: Union["Capability", Mapping[str, Any]]) -> "Capability":
        if isinstance(value, Capability):
            return value
        return cls.model_validate(dict(value))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
