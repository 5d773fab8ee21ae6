"""
ucp_core/discovery.py — The business's own UCP discovery profile.

Served by the (external) HTTP layer at /.well-known/ucp. Platforms read
it to learn which capabilities the business offers and which keys
verify its signatures.
"""

from __future__ import annotations

from typing import Any, Optional

from .keys import KeyManager
from .models import DEFAULT_UCP_VERSION, Capability, Jwk
from .storage import ConfigStore


CONFIG_UCP_VERSION = "ucp.version"

SHOPPING_SERVICE = "dev.ucp.shopping"

CHECKOUT = "dev.ucp.shopping.checkout"
FULFILLMENT = "dev.ucp.shopping.fulfillment"


class DiscoveryService:
    """Builds the discovery profile of a scope."""

    def __init__(
        self,
        store: ConfigStore,
        key_manager: KeyManager,
        default_version: str = DEFAULT_UCP_VERSION,
    ) -> None:
        self.store = store
        self.key_manager = key_manager
        self.default_version = default_version

    def get_ucp_version(self, scope: str) -> str:
        return self.store.get_string(CONFIG_UCP_VERSION, scope) or self.default_version

    def get_capabilities(self, scope: str) -> list[Capability]:
        version = self.get_ucp_version(scope)
        return [
            Capability(
                name=CHECKOUT,
                version=version,
                spec="https://ucp.dev/specification/checkout",
                schema="https://ucp.dev/schemas/shopping/checkout.json",
            ),
            Capability(
                name=FULFILLMENT,
                version=version,
                spec="https://ucp.dev/specification/fulfillment",
                schema="https://ucp.dev/schemas/shopping/fulfillment.json",
                extends=CHECKOUT,
            ),
        ]

    def get_signing_keys(self, scope: str) -> list[Jwk]:
        return self.key_manager.get_public_keys(scope)

    def get_services(self, scope: str, base_url: str) -> dict[str, Any]:
        """Service bindings (REST and MCP endpoints) under `base_url`."""
        base_url = base_url.rstrip("/")
        return {
            SHOPPING_SERVICE: {
                "version": self.get_ucp_version(scope),
                "spec": "https://ucp.dev/specification/overview",
                "rest": {
                    "schema": "https://ucp.dev/services/shopping/rest.openapi.json",
                    "endpoint": f"{base_url}/ucp/checkout-sessions",
                },
                "mcp": {
                    "schema": "https://ucp.dev/services/shopping/mcp.openrpc.json",
                    "endpoint": f"{base_url}/ucp/mcp",
                },
            }
        }

    def build_profile(self, scope: str, base_url: Optional[str] = None) -> dict[str, Any]:
        """The profile as plain JSON data.

        `services` is included only when the public `base_url` of the
        business (scheme and host) is known.
        """
        ucp: dict[str, Any] = {"version": self.get_ucp_version(scope)}
        if base_url:
            ucp["services"] = self.get_services(scope, base_url)
        ucp["capabilities"] = [c.to_dict() for c in self.get_capabilities(scope)]
        return {
            "ucp": ucp,
            "signing_keys": [k.to_dict() for k in self.get_signing_keys(scope)],
        }
