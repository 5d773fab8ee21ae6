"""
ucp_core/negotiation.py — Capability negotiation between platform and business.

Given the capabilities a platform supports and those a business
offers, compute the set active for a session:

1. Intersection: for each business capability, the first platform
   capability with the same name and a compatible version wins.
   Versions are calendar dates; the platform's must not be newer
   than the business's.
2. Pruning: drop every capability whose `extends` target is not
   active, repeated until nothing changes, so a chain
   checkout <- fulfillment <- order collapses entirely when checkout
   is missing.

Order of the business list is preserved. No I/O, no crypto.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Union

from .models import DEFAULT_UCP_VERSION, Capability

logger = logging.getLogger(__name__)


CapabilityLike = Union[Capability, Mapping[str, Any]]


def negotiate(
    available: Iterable[CapabilityLike],
    requested: Iterable[CapabilityLike],
) -> list[Capability]:
    """Compute the negotiated capability set.

    Args:
        available: Capabilities supported by the platform.
        requested: Capabilities offered by the business.

    Returns:
        Active capabilities, carrying the business's name, version and
        `extends`, in business order.
    """
    available_caps = [Capability.coerce(c) for c in available]
    requested_caps = [Capability.coerce(c) for c in requested]

    intersection: list[Capability] = []
    for wanted in requested_caps:
        for offered in available_caps:
            if offered.name != wanted.name:
                continue
            if is_version_compatible(
                offered.version or DEFAULT_UCP_VERSION,
                wanted.version or DEFAULT_UCP_VERSION,
            ):
                intersection.append(
                    Capability(
                        name=wanted.name,
                        version=wanted.version,
                        extends=wanted.extends,
                    )
                )
                break

    return prune_orphans(intersection)


def prune_orphans(capabilities: list[Capability]) -> list[Capability]:
    """Remove capabilities whose `extends` target is absent, to a fixed point."""
    active = list(capabilities)
    while True:
        names = {c.name for c in active}
        kept: list[Capability] = []
        for cap in active:
            if cap.extends is None or cap.extends in names:
                kept.append(cap)
            else:
                logger.debug(
                    "Pruned capability %s: extends inactive %s",
                    cap.name, cap.extends,
                )
        if len(kept) == len(active):
            return kept
        active = kept


def negotiate_with_profile(
    platform_profile: Mapping[str, Any],
    business_capabilities: Iterable[CapabilityLike],
) -> list[Capability]:
    """Negotiate against a platform profile's `ucp.capabilities` list."""
    ucp = platform_profile.get("ucp")
    available = []
    if isinstance(ucp, Mapping):
        available = ucp.get("capabilities") or []
    return negotiate(available, business_capabilities)


def is_version_compatible(available_version: str, requested_version: str) -> bool:
    """True if `available_version` is on or before `requested_version`.

    Both are parsed as ISO calendar dates (YYYY-MM-DD). A version that
    does not parse makes the pair incompatible.
    """
    available_date = _parse_version(available_version)
    requested_date = _parse_version(requested_version)
    if available_date is None or requested_date is None:
        return False
    return available_date <= requested_date


def _parse_version(version: Optional[str]) -> Optional[date]:
    if not isinstance(version, str):
        return None
    try:
        return date.fromisoformat(version.strip())
    except ValueError:
        return None
