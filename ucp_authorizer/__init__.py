"""
ucp_authorizer — Is this request really from an allowed agent platform?

Security model:
1. The agent sends a UCP-Agent header carrying its profile URL.
2. Optionally, the profile's domain must be on the scope's whitelist.
3. Optionally, the request body must carry a valid Request-Signature
   (detached JWS) made with one of the keys in the agent's profile.

Both checks are configured per scope in the ConfigStore:

    ucp.auth.whitelist_enabled   "1"/"true"/"yes"/"on" to enable
    ucp.auth.require_signature   same
    ucp.auth.whitelist_domains   newline-separated domains; `*.x.com`
                                 wildcards allowed. Empty -> KNOWN_PLATFORMS

With neither enabled, every request is allowed.

The authorizer never raises for a bad request: every outcome is an
AuthorizationResult.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

from ucp_core.jose import SignatureEngine
from ucp_core.profile import PlatformProfileFetcher, parse_ucp_agent_header
from ucp_core.storage import ConfigStore, get_bool

logger = logging.getLogger(__name__)


CONFIG_WHITELIST_ENABLED = "ucp.auth.whitelist_enabled"
CONFIG_WHITELIST_DOMAINS = "ucp.auth.whitelist_domains"
CONFIG_REQUIRE_SIGNATURE = "ucp.auth.require_signature"

KNOWN_PLATFORMS = (
    "api.openai.com",
    "generativelanguage.googleapis.com",  # Gemini
    "api.anthropic.com",
    "api.cohere.ai",
    "api.mistral.ai",
    "inference.aws.amazon.com",  # Bedrock
    "api.together.xyz",
    "api.perplexity.ai",
)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class AuthorizationResult(BaseModel):
    """Outcome of an authorization check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str
    agent_domain: Optional[str] = None

    @classmethod
    def allow(cls, reason: str, agent_domain: Optional[str] = None) -> "AuthorizationResult":
        return cls(allowed=True, reason=reason, agent_domain=agent_domain)

    @classmethod
    def deny(cls, reason: str, agent_domain: Optional[str] = None) -> "AuthorizationResult":
        return cls(allowed=False, reason=reason, agent_domain=agent_domain)

    def __bool__(self) -> bool:
        return self.allowed


# ---------------------------------------------------------------------------
# Domain matching
# ---------------------------------------------------------------------------

def domain_matches(domain: str, pattern: str) -> bool:
    """True if `domain` matches `pattern`.

    - exact:      api.openai.com  ~ api.openai.com
    - wildcard:   api.openai.com  ~ *.openai.com
    - subdomain:  api.openai.com  ~ openai.com
    """
    domain = domain.lower().rstrip(".")
    pattern = pattern.strip().lower().rstrip(".")
    if not domain or not pattern:
        return False

    if domain == pattern:
        return True
    if pattern.startswith("*."):
        return domain.endswith(pattern[1:])
    return domain.endswith("." + pattern)


def extract_profile_url(header: Optional[str]) -> Optional[str]:
    """Profile URL from a UCP-Agent header.

    Accepts the structured `profile="..."` form, or a bare https base
    URL to which /.well-known/ucp is appended.
    """
    if not header:
        return None
    url = parse_ucp_agent_header(header)
    if url is not None:
        return url

    parsed = urlparse(header.strip())
    if parsed.scheme in ("http", "https") and parsed.hostname:
        return header.strip().rstrip("/") + "/.well-known/ucp"
    return None


# ---------------------------------------------------------------------------
# Authorizer
# ---------------------------------------------------------------------------

class AgentAuthorizer:
    """Authorizes incoming UCP requests from agent platforms.

    Args:
        store:            Per-scope policy settings.
        signature_engine: Verifies Request-Signature headers.
        profile_fetcher:  Loads agent profiles (and their signing keys).
    """

    def __init__(
        self,
        store: ConfigStore,
        signature_engine: SignatureEngine,
        profile_fetcher: PlatformProfileFetcher,
    ) -> None:
        self.store = store
        self.signature_engine = signature_engine
        self.profile_fetcher = profile_fetcher

    def authorize_request(
        self,
        ucp_agent_header: Optional[str],
        request_signature: Optional[str],
        request_body: bytes,
        scope: str,
    ) -> AuthorizationResult:
        """Decide whether a request may proceed."""
        whitelist_enabled = get_bool(self.store, CONFIG_WHITELIST_ENABLED, scope)
        require_signature = get_bool(self.store, CONFIG_REQUIRE_SIGNATURE, scope)

        if not whitelist_enabled and not require_signature:
            return AuthorizationResult.allow("No restrictions configured")

        profile_url = extract_profile_url(ucp_agent_header)
        if profile_url is None:
            logger.info("Denied request without UCP-Agent profile (scope %s)", scope)
            return AuthorizationResult.deny("Missing UCP-Agent header")

        domain = (urlparse(profile_url).hostname or "").lower()

        if whitelist_enabled:
            result = self.check_whitelist(domain, scope)
            if not result.allowed:
                return result

        if require_signature:
            if not request_signature:
                return AuthorizationResult.deny(
                    "Missing Request-Signature header", domain or None
                )
            result = self.verify_agent_signature(
                profile_url, request_signature, request_body
            )
            if not result.allowed:
                return result

        return AuthorizationResult.allow("Agent authorized", domain or None)

    def whitelist(self, scope: str) -> list[str]:
        """Configured whitelist of `scope`, or KNOWN_PLATFORMS when empty."""
        configured = self.store.get_string(CONFIG_WHITELIST_DOMAINS, scope)
        domains = [line.strip() for line in configured.splitlines() if line.strip()]
        return domains or list(KNOWN_PLATFORMS)

    def check_whitelist(self, domain: str, scope: str) -> AuthorizationResult:
        if not domain:
            return AuthorizationResult.deny("Invalid profile URL")

        allowed = self.whitelist(scope)
        for pattern in allowed:
            if domain_matches(domain, pattern):
                logger.info("Agent domain %s whitelisted", domain)
                return AuthorizationResult.allow(f"Domain whitelisted: {domain}", domain)

        logger.warning(
            "Agent domain %s not in whitelist",
            domain,
            extra={"whitelist": allowed, "scope": scope},
        )
        return AuthorizationResult.deny(f"Domain not in whitelist: {domain}", domain)

    def verify_agent_signature(
        self,
        profile_url: str,
        signature: str,
        body: bytes,
    ) -> AuthorizationResult:
        domain = urlparse(profile_url).hostname
        profile = self.profile_fetcher.fetch_profile(profile_url)
        if profile is None:
            return AuthorizationResult.deny("Could not fetch agent profile", domain)

        signing_keys = profile.get("signing_keys")
        if not isinstance(signing_keys, list) or not signing_keys:
            return AuthorizationResult.deny("No signing keys in agent profile", domain)

        if self.signature_engine.verify_request_signature(signature, body, signing_keys):
            logger.info("Agent signature verified for %s", profile_url)
            return AuthorizationResult.allow("Signature verified", domain)

        logger.warning("Agent signature verification failed for %s", profile_url)
        return AuthorizationResult.deny("Invalid request signature", domain)
