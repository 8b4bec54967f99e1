from itertools import product

import pytest

from analytics.segments import (
    SEGMENTS,
    SEGMENTS_BY_KEY,
    classify,
    fallback_segment,
    match_pattern,
    recommendations_for,
    segment_catalog,
)

ALL_SCORES = ["".join(digits) for digits in product("12345", repeat=3)]


def _total(score):
    return sum(int(digit) for digit in score)


def test_segment_table_order_and_keys():
    assert [segment.key for segment in SEGMENTS] == [
        "champions",
        "loyal",
        "potential_loyalists",
        "new_customers",
        "promising",
        "need_attention",
        "about_to_sleep",
        "at_risk",
        "cant_lose",
        "hibernating",
        "lost",
    ]
    assert len({segment.code for segment in SEGMENTS}) == len(SEGMENTS)


def test_every_legal_score_is_classified():
    assert len(ALL_SCORES) == 125
    for score in ALL_SCORES:
        segment = classify(score, _total(score))
        assert segment in SEGMENTS


@pytest.mark.parametrize(
    "score, key",
    [
        ("555", "champions"),
        ("445", "champions"),
        ("334", "loyal"),
        ("234", "need_attention"),
        ("224", "need_attention"),
        ("551", "potential_loyalists"),
        ("511", "new_customers"),
        ("524", "promising"),
        ("221", "about_to_sleep"),
        ("255", "at_risk"),
        ("125", "cant_lose"),
        ("141", "hibernating"),
        ("111", "lost"),
    ],
)
def test_pattern_lookup_first_match_wins(score, key):
    assert classify(score, _total(score)).key == key


@pytest.mark.parametrize(
    "score, key",
    [
        ("325", "loyal"),
        ("345", "champions"),
        ("431", "need_attention"),
        ("114", "need_attention"),
    ],
)
def test_unlisted_scores_use_total_fallback(score, key):
    assert match_pattern(score) is None
    assert classify(score, _total(score)).key == key


def test_fallback_thresholds():
    assert fallback_segment(15).key == "champions"
    assert fallback_segment(12).key == "champions"
    assert fallback_segment(11).key == "loyal"
    assert fallback_segment(9).key == "loyal"
    assert fallback_segment(8).key == "need_attention"
    assert fallback_segment(6).key == "need_attention"
    assert fallback_segment(5).key == "lost"
    assert fallback_segment(3).key == "lost"


def test_recommendations_for_known_segment():
    assert recommendations_for("champions") == {
        "action": "Reward them. Early adopters for new products.",
        "priority": "high",
        "suggested_campaign": "VIP Rewards Program",
        "suggested_offer": "Early access to new products",
    }
    assert recommendations_for("lost")["suggested_offer"] == "50% or free trial"


def test_recommendations_for_unknown_segment_uses_defaults():
    assert recommendations_for("unknown") == {
        "action": "",
        "priority": "low",
        "suggested_campaign": "General Campaign",
        "suggested_offer": "Standard Offer",
    }


def test_segment_catalog_exposes_taxonomy():
    catalog = segment_catalog()

    assert len(catalog) == 11
    first = catalog[0]
    assert first["key"] == "champions"
    assert first["name"] == "Champions"
    assert first["code"] == "CHMP"
    assert first["color"] == "#22c55e"
    assert "555" in first["patterns"]
    assert catalog[-1]["name"] == SEGMENTS_BY_KEY["lost"].name
