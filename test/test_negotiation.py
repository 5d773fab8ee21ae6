"""
test/test_negotiation.py — Capability intersection and orphan pruning

Run: pytest test/test_negotiation.py -v
"""

import os
import sys

# Add parent to path for direct execution
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ucp_core import Capability, is_version_compatible, negotiate, negotiate_with_profile
from ucp_core.negotiation import prune_orphans


CHECKOUT = "dev.ucp.shopping.checkout"
FULFILLMENT = "dev.ucp.shopping.fulfillment"
ORDER = "dev.ucp.shopping.order"
DISCOUNT = "dev.ucp.shopping.discount"


def cap(name, version="2026-01-11", extends=None):
    data = {"name": name, "version": version}
    if extends is not None:
        data["extends"] = extends
    return data


def names(caps):
    return [c.name for c in caps]


# ==================================================================
# 1. Intersection
# ==================================================================

def test_negotiate_matching_capabilities():
    available = [cap(CHECKOUT), cap(FULFILLMENT, extends=CHECKOUT)]
    requested = [cap(CHECKOUT), cap(FULFILLMENT, extends=CHECKOUT)]

    result = negotiate(available, requested)
    assert names(result) == [CHECKOUT, FULFILLMENT]
    assert result[1].extends == CHECKOUT
    assert all(isinstance(c, Capability) for c in result)


def test_negotiate_drops_capability_platform_lacks():
    available = [cap(CHECKOUT)]
    requested = [cap(CHECKOUT), cap(DISCOUNT)]
    assert names(negotiate(available, requested)) == [CHECKOUT]


def test_negotiate_newer_platform_version_is_incompatible():
    available = [cap(CHECKOUT, version="2026-06-01")]
    requested = [cap(CHECKOUT, version="2026-01-11")]
    assert negotiate(available, requested) == []


def test_negotiate_older_platform_version_is_compatible():
    available = [cap(CHECKOUT, version="2025-10-01")]
    requested = [cap(CHECKOUT, version="2026-01-11")]
    result = negotiate(available, requested)
    assert names(result) == [CHECKOUT]
    # Business version is carried into the result
    assert result[0].version == "2026-01-11"


def test_negotiate_one_day_older_platform():
    result = negotiate([cap(CHECKOUT, version="2026-01-10")], [cap(CHECKOUT, version="2026-01-11")])
    assert [c.to_dict() for c in result] == [{"name": CHECKOUT, "version": "2026-01-11"}]


def test_negotiate_one_day_newer_platform():
    assert negotiate([cap(CHECKOUT, version="2026-01-12")], [cap(CHECKOUT, version="2026-01-11")]) == []


def test_negotiate_first_compatible_platform_entry_wins():
    available = [
        cap(CHECKOUT, version="2027-01-01"),
        cap(CHECKOUT, version="2025-01-01"),
    ]
    requested = [cap(CHECKOUT, version="2026-01-11")]
    result = negotiate(available, requested)
    assert len(result) == 1


def test_negotiate_missing_versions_use_default():
    available = [{"name": CHECKOUT}]
    requested = [{"name": CHECKOUT}]
    assert names(negotiate(available, requested)) == [CHECKOUT]

    # Platform pinned after the default date, business silent
    assert negotiate([cap(CHECKOUT, version="2026-02-01")], [{"name": CHECKOUT}]) == []


def test_negotiate_unparseable_versions_are_incompatible():
    for bad in ["latest", "2026-13-01", "v1"]:
        assert negotiate([cap(CHECKOUT, version=bad)], [cap(CHECKOUT)]) == [], bad
        assert negotiate([cap(CHECKOUT)], [cap(CHECKOUT, version=bad)]) == [], bad


def test_negotiate_preserves_business_order():
    available = [cap(DISCOUNT), cap(FULFILLMENT, extends=CHECKOUT), cap(CHECKOUT)]
    requested = [cap(CHECKOUT), cap(DISCOUNT), cap(FULFILLMENT, extends=CHECKOUT)]
    assert names(negotiate(available, requested)) == [CHECKOUT, DISCOUNT, FULFILLMENT]


def test_negotiate_empty_inputs():
    assert negotiate([], []) == []
    assert negotiate([cap(CHECKOUT)], []) == []
    assert negotiate([], [cap(CHECKOUT)]) == []


def test_negotiate_accepts_models():
    available = [Capability(name=CHECKOUT, version="2026-01-11")]
    requested = [Capability(name=CHECKOUT, version="2026-01-11", spec="https://x")]
    result = negotiate(available, requested)
    assert result[0].to_dict() == {"name": CHECKOUT, "version": "2026-01-11"}


# ==================================================================
# 2. Pruning
# ==================================================================

def test_orphan_extension_is_pruned():
    available = [cap(FULFILLMENT, extends=CHECKOUT)]
    requested = [cap(CHECKOUT), cap(FULFILLMENT, extends=CHECKOUT)]
    assert negotiate(available, requested) == []


def test_transitive_chain_collapses():
    available = [
        cap(FULFILLMENT, extends=CHECKOUT),
        cap(ORDER, extends=FULFILLMENT),
        cap(DISCOUNT),
    ]
    requested = [
        cap(CHECKOUT),
        cap(ORDER, extends=FULFILLMENT),
        cap(FULFILLMENT, extends=CHECKOUT),
        cap(DISCOUNT),
    ]
    assert names(negotiate(available, requested)) == [DISCOUNT]


def test_extends_taken_from_business_side():
    available = [cap(CHECKOUT), cap(FULFILLMENT)]
    requested = [cap(FULFILLMENT, extends="dev.ucp.shopping.missing"), cap(CHECKOUT)]
    assert names(negotiate(available, requested)) == [CHECKOUT]


def test_negotiate_is_idempotent():
    available = [
        cap(CHECKOUT, version="2026-01-01"),
        cap(FULFILLMENT, extends=CHECKOUT),
        cap(ORDER, extends=FULFILLMENT),
        cap(DISCOUNT, version="2027-01-01"),
    ]
    requested = [
        cap(DISCOUNT),
        cap(ORDER, extends=FULFILLMENT),
        cap(CHECKOUT),
        cap(FULFILLMENT, extends=CHECKOUT),
        cap("dev.ucp.shopping.unknown"),
    ]
    once = negotiate(available, requested)
    assert names(once) == [ORDER, CHECKOUT, FULFILLMENT]
    assert negotiate(available, once) == once


def test_prune_orphans_is_idempotent():
    caps = [
        Capability(name=CHECKOUT),
        Capability(name=FULFILLMENT, extends=CHECKOUT),
        Capability(name=ORDER, extends="dev.ucp.shopping.cart"),
    ]
    once = prune_orphans(caps)
    assert names(once) == [CHECKOUT, FULFILLMENT]
    assert prune_orphans(once) == once


def test_negotiate_result_is_self_consistent():
    available = [cap(CHECKOUT), cap(FULFILLMENT, extends=CHECKOUT), cap(ORDER, extends=DISCOUNT)]
    requested = [cap(ORDER, extends=DISCOUNT), cap(FULFILLMENT, extends=CHECKOUT), cap(CHECKOUT)]
    result = negotiate(available, requested)
    active = set(names(result))
    assert all(c.extends is None or c.extends in active for c in result)
    assert negotiate(result, result) == result


# ==================================================================
# 3. Versions and profiles
# ==================================================================

def test_is_version_compatible():
    assert is_version_compatible("2026-01-11", "2026-01-11")
    assert is_version_compatible("2025-12-31", "2026-01-11")
    assert not is_version_compatible("2026-01-12", "2026-01-11")
    assert not is_version_compatible("garbage", "2026-01-11")
    assert not is_version_compatible("2026-01-11", None)


def test_negotiate_with_profile():
    profile = {
        "ucp": {
            "version": "2026-01-11",
            "capabilities": [cap(CHECKOUT), cap(FULFILLMENT, extends=CHECKOUT)],
        }
    }
    business = [cap(CHECKOUT), cap(FULFILLMENT, extends=CHECKOUT)]
    assert names(negotiate_with_profile(profile, business)) == [CHECKOUT, FULFILLMENT]


def test_negotiate_with_profile_without_capabilities():
    business = [cap(CHECKOUT)]
    assert negotiate_with_profile({}, business) == []
    assert negotiate_with_profile({"ucp": "broken"}, business) == []
    assert negotiate_with_profile({"ucp": {"version": "2026-01-11"}}, business) == []
