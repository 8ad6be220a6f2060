"""
Unit tests for the tier limits table.
"""
from pharmalink.core.tier_limits import (
    LIMIT_USAGE_FIELDS,
    get_all_tiers_info,
    get_available_tiers,
    get_feature_flags,
    get_limit,
    get_limits,
    get_next_tier,
    get_tier_price,
    has_feature,
    has_unlimited_quota,
    is_valid_tier,
    normalize_user_type,
)
from pharmalink.db.models.usage import USAGE_COUNTER_FIELDS


def test_user_types_normalize_to_limit_tables():
    assert normalize_user_type("laboratory") == "laboratory"
    assert normalize_user_type("pharmacist") == "candidate"
    assert normalize_user_type("technician") == "candidate"
    assert normalize_user_type("student") == "student"
    assert normalize_user_type(None) == "candidate"
    assert normalize_user_type("unknown") == "candidate"


def test_laboratory_tiers_in_order():
    assert get_available_tiers("laboratory") == ["free", "starter", "pro", "business"]
    assert get_available_tiers("pharmacy_owner") == ["free", "pro", "business"]
    assert get_available_tiers("animator") == ["free", "premium"]


def test_laboratory_free_limits():
    assert get_limit("laboratory", "free", "missions") == 1
    assert get_limit("laboratory", "free", "contacts") == 0
    assert get_limit("laboratory", "free", "favorites") == 3
    assert get_limit("laboratory", "free", "super_likes_per_day") == 3


def test_business_is_unlimited_for_missions():
    assert get_limit("laboratory", "business", "missions") is None
    assert has_unlimited_quota("laboratory", "business", "contacts")
    assert not has_unlimited_quota("laboratory", "pro", "contacts")


def test_missing_limit_key_is_unlimited():
    assert get_limit("pharmacist", "free", "favorites") is None


def test_unknown_tier_falls_back_to_free():
    assert get_limits("laboratory", "platinum") == get_limits("laboratory", "free")
    assert not is_valid_tier("laboratory", "premium")
    assert is_valid_tier("animator", "premium")


def test_next_tier():
    assert get_next_tier("laboratory", "free") == "starter"
    assert get_next_tier("laboratory", "business") is None
    assert get_next_tier("pharmacist", "free") == "premium"


def test_prices_and_features():
    assert get_tier_price("laboratory", "free") == 0
    assert get_tier_price("laboratory", "pro") > get_tier_price("laboratory", "starter")
    assert get_feature_flags("laboratory", "pro")["events"] is True
    assert has_feature("laboratory", "pro", "priority_visibility")
    assert not has_feature("laboratory", "free", "analytics")
    assert not has_feature("laboratory", "free", "contacts")
    assert has_feature("laboratory", "starter", "contacts")


def test_tier_info_marks_popular_tier():
    infos = get_all_tiers_info("laboratory")
    assert [info["value"] for info in infos] == ["free", "starter", "pro", "business"]
    assert [info["popular"] for info in infos] == [False, False, True, False]
    assert infos[0]["limits"]["missions"] == 1


def test_every_limit_key_maps_to_a_usage_counter():
    for field in LIMIT_USAGE_FIELDS.values():
        assert field in USAGE_COUNTER_FIELDS
