"""RFM segment taxonomy.

Eleven marketing segments, each listing the R-F-M score strings it covers.
Lookup walks the table in declaration order and the first segment whose
patterns contain the score wins; some patterns appear in more than one
segment (``334``, ``234``, ``224``), so the order is significant.

Scores absent from every pattern list fall back to a classification on the
score total, which keeps :func:`classify` total over all 125 legal scores.
"""
from __future__ import annotations

from dataclasses import dataclass


class Priority:
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class SegmentDefinition:
    """One row of the segment reference table."""

    key: str
    name: str
    code: str
    patterns: tuple[str, ...]
    action: str
    color: str
    campaign: str
    offer: str
    priority: str

    def matches(self, rfm_score: str) -> bool:
        return rfm_score in self.patterns

    def as_catalog_entry(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "code": self.code,
            "patterns": list(self.patterns),
            "action": self.action,
            "color": self.color,
        }


SEGMENTS: tuple[SegmentDefinition, ...] = (
    SegmentDefinition(
        key="champions",
        name="Champions",
        code="CHMP",
        patterns=("555", "554", "545", "544", "455", "454", "445"),
        action="Reward them. Early adopters for new products.",
        color="#22c55e",
        campaign="VIP Rewards Program",
        offer="Early access to new products",
        priority=Priority.HIGH,
    ),
    SegmentDefinition(
        key="loyal",
        name="Loyal Customers",
        code="LOYL",
        patterns=("543", "534", "443", "434", "343", "334", "535", "525", "425"),
        action="Upsell higher value products. Ask for reviews.",
        color="#3b82f6",
        campaign="Loyalty Points Campaign",
        offer="10% loyalty discount",
        priority=Priority.MEDIUM,
    ),
    SegmentDefinition(
        key="potential_loyalists",
        name="Potential Loyalists",
        code="PLOY",
        patterns=(
            "553", "552", "551", "542", "541", "533", "532", "531",
            "452", "451", "442", "441", "353", "352", "351",
        ),
        action="Offer loyalty program. Recommend products.",
        color="#8b5cf6",
        campaign="Welcome Series + Upsell",
        offer="Free upgrade/trial",
        priority=Priority.MEDIUM,
    ),
    SegmentDefinition(
        key="new_customers",
        name="New Customers",
        code="NEW",
        patterns=("512", "511", "422", "421", "412", "411", "311", "312"),
        action="Provide onboarding support.",
        color="#06b6d4",
        campaign="Onboarding Drip Campaign",
        offer="Welcome discount 15%",
        priority=Priority.LOW,
    ),
    SegmentDefinition(
        key="promising",
        name="Promising",
        code="PROM",
        patterns=("513", "514", "413", "414", "313", "314", "523", "524", "423", "424"),
        action="Create brand awareness. Offer free trials.",
        color="#f59e0b",
        campaign="Educational Content Series",
        offer="Free consultation",
        priority=Priority.LOW,
    ),
    SegmentDefinition(
        key="need_attention",
        name="Need Attention",
        code="ATTN",
        patterns=(
            "333", "332", "323", "322", "233", "232", "223", "222",
            "334", "324", "234", "224",
        ),
        action="Make limited time offers. Reactivate them.",
        color="#f97316",
        campaign="Re-engagement Campaign",
        offer="Limited time 20% off",
        priority=Priority.MEDIUM,
    ),
    SegmentDefinition(
        key="about_to_sleep",
        name="About to Sleep",
        code="SLIP",
        patterns=("331", "321", "231", "221", "212", "211"),
        action="Share valuable resources. Offer discounts.",
        color="#ef4444",
        campaign="Win-back Offer",
        offer="25% comeback discount",
        priority=Priority.LOW,
    ),
    SegmentDefinition(
        key="at_risk",
        name="At Risk",
        code="RISK",
        patterns=(
            "255", "254", "245", "244", "253", "252", "243", "242",
            "235", "234", "225", "224", "155", "154", "145", "144",
        ),
        action="Send personalized emails. Offer renewals.",
        color="#dc2626",
        campaign="Personal Outreach",
        offer="Personal call + special offer",
        priority=Priority.HIGH,
    ),
    SegmentDefinition(
        key="cant_lose",
        name="Can't Lose Them",
        code="SAVE",
        patterns=("153", "152", "143", "142", "135", "134", "125", "124"),
        action="Win them back. Talk to them personally.",
        color="#991b1b",
        campaign="Executive Outreach",
        offer="Whatever it takes",
        priority=Priority.HIGH,
    ),
    SegmentDefinition(
        key="hibernating",
        name="Hibernating",
        code="HBNT",
        patterns=("132", "131", "122", "121", "112", "141"),
        action="Offer special discounts. Recreate brand value.",
        color="#6b7280",
        campaign="Reactivation Discount",
        offer="30% reactivation offer",
        priority=Priority.LOW,
    ),
    SegmentDefinition(
        key="lost",
        name="Lost",
        code="LOST",
        patterns=("111", "113", "123", "133", "213"),
        action="Revive interest with reach-out campaign.",
        color="#374151",
        campaign="Final Attempt Campaign",
        offer="50% or free trial",
        priority=Priority.LOW,
    ),
)

SEGMENTS_BY_KEY: dict[str, SegmentDefinition] = {segment.key: segment for segment in SEGMENTS}

# (minimum score total, segment key), checked top-down.
FALLBACK_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (12, "champions"),
    (9, "loyal"),
    (6, "need_attention"),
)
FALLBACK_DEFAULT_KEY = "lost"

DEFAULT_CAMPAIGN = "General Campaign"
DEFAULT_OFFER = "Standard Offer"


def get_segment(key: str) -> SegmentDefinition:
    return SEGMENTS_BY_KEY[key]


def match_pattern(rfm_score: str) -> SegmentDefinition | None:
    """Return the first segment listing ``rfm_score``, or None."""
    for segment in SEGMENTS:
        if segment.matches(rfm_score):
            return segment
    return None


def fallback_segment(rfm_total: int) -> SegmentDefinition:
    for minimum, key in FALLBACK_THRESHOLDS:
        if rfm_total >= minimum:
            return get_segment(key)
    return get_segment(FALLBACK_DEFAULT_KEY)


def classify(rfm_score: str, rfm_total: int) -> SegmentDefinition:
    """Map an R-F-M score string (and its digit total) to a segment."""
    return match_pattern(rfm_score) or fallback_segment(rfm_total)


def recommendations_for(segment_key: str) -> dict:
    """Static recommendation bundle stored alongside each customer's scores."""
    segment = SEGMENTS_BY_KEY.get(segment_key)
    if segment is None:
        return {
            "action": "",
            "priority": Priority.LOW,
            "suggested_campaign": DEFAULT_CAMPAIGN,
            "suggested_offer": DEFAULT_OFFER,
        }
    return {
        "action": segment.action,
        "priority": segment.priority,
        "suggested_campaign": segment.campaign,
        "suggested_offer": segment.offer,
    }


def segment_catalog() -> list[dict]:
    """Read-only view of the taxonomy for reporting collaborators."""
    return [segment.as_catalog_entry() for segment in SEGMENTS]
