#!/usr/bin/env python3
"""
UCP Checkout Signing Demo

Walks one request through the business side of UCP, in memory:

Flow:
  1. Business publishes its discovery profile (capabilities + JWKs)
  2. Agent platform publishes its own profile and signs a request body
  3. Business authorizes the request (whitelist + Request-Signature)
  4. Capabilities are negotiated against the agent profile
  5. Business signs the checkout (ap2.merchant_authorization)
  6. A tampered total is caught on verification

The agent's /.well-known/ucp is served through httpx.MockTransport, so
no network access is needed.

Run:
    python examples/demo_checkout.py
"""

import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx

from ucp_authorizer import (
    CONFIG_REQUIRE_SIGNATURE,
    CONFIG_WHITELIST_ENABLED,
    AgentAuthorizer,
)
from ucp_core import (
    DiscoveryService,
    KeyManager,
    MemoryConfigStore,
    PlatformProfileFetcher,
    SignatureEngine,
    negotiate_with_profile,
)

BUSINESS_SCOPE = "demo-shop"
AGENT_SCOPE = "demo-agent"
AGENT_PROFILE_URL = "https://api.openai.com/.well-known/ucp"


def section(title: str) -> None:
    print(f"\n{'━' * 72}")
    print(f"  {title}")
    print(f"{'━' * 72}")


def main():
    print("=" * 72)
    print("  UCP Checkout Signing Demo")
    print("=" * 72)

    # --- Business ---
    business_store = MemoryConfigStore()
    business_store.set_string(CONFIG_WHITELIST_ENABLED, BUSINESS_SCOPE, "1")
    business_store.set_string(CONFIG_REQUIRE_SIGNATURE, BUSINESS_SCOPE, "1")
    business_keys = KeyManager(business_store)
    business_engine = SignatureEngine(business_keys)
    business_discovery = DiscoveryService(business_store, business_keys)

    section("STEP 1: Business discovery profile")
    business_profile = business_discovery.build_profile(BUSINESS_SCOPE)
    print(json.dumps(business_profile, indent=2))

    # --- Agent platform ---
    agent_store = MemoryConfigStore()
    agent_keys = KeyManager(agent_store)
    agent_engine = SignatureEngine(agent_keys)
    agent_profile = DiscoveryService(agent_store, agent_keys).build_profile(AGENT_SCOPE)

    def serve(request: httpx.Request) -> httpx.Response:
        if str(request.url) == AGENT_PROFILE_URL:
            return httpx.Response(200, json=agent_profile)
        return httpx.Response(404)

    section("STEP 2: Agent signs a create-checkout request")
    body = json.dumps({"line_items": [{"id": "sku_42", "quantity": 2}]}).encode()
    request_signature = agent_engine.create_request_signature(body, AGENT_SCOPE)
    ucp_agent = f'UCP/2026-01-11 profile="{AGENT_PROFILE_URL}"'
    print(f"\n  UCP-Agent:         {ucp_agent}")
    print(f"  Request-Signature: {request_signature[:60]}...")

    client = httpx.Client(transport=httpx.MockTransport(serve))
    with PlatformProfileFetcher(client=client) as fetcher:
        authorizer = AgentAuthorizer(business_store, business_engine, fetcher)

        section("STEP 3: Business authorizes the request")
        result = authorizer.authorize_request(
            ucp_agent, request_signature, body, BUSINESS_SCOPE
        )
        print(f"\n  Allowed: {result.allowed}  ({result.reason})")

        forged = authorizer.authorize_request(
            ucp_agent, request_signature, body.replace(b"2", b"9"), BUSINESS_SCOPE
        )
        print(f"  Forged body allowed: {forged.allowed}  ({forged.reason})")

        section("STEP 4: Capability negotiation")
        profile = fetcher.fetch_profile(AGENT_PROFILE_URL)
        active = negotiate_with_profile(
            profile, business_discovery.get_capabilities(BUSINESS_SCOPE)
        )
        for capability in active:
            print(f"  ✓ {capability.name} ({capability.version})")
    client.close()

    section("STEP 5: Merchant authorization on the checkout")
    checkout = {
        "id": "chk_001",
        "currency": "EUR",
        "line_items": [{"id": "sku_42", "quantity": 2, "price": 6375}],
        "totals": {"total": 12750},
    }
    checkout["ap2"] = {
        "merchant_authorization": business_engine.sign_merchant_authorization(
            checkout, BUSINESS_SCOPE
        )
    }
    signer_keys = business_profile["signing_keys"]
    valid = business_engine.verify_merchant_authorization(checkout, signer_keys)
    print(f"\n  Result: {'✓ SIGNATURE VALID' if valid else '✗ SIGNATURE INVALID'}")

    section("STEP 6: Tampered total (127.50 -> 27.50)")
    checkout["totals"]["total"] = 2750
    valid = business_engine.verify_merchant_authorization(checkout, signer_keys)
    print(f"\n  Result: {'✓ SIGNATURE VALID' if valid else '✗ SIGNATURE INVALID'}")

    print()
    print("=" * 72)


if __name__ == "__main__":
    main()
