"""
Subscription tier limits configuration.

Single source of truth for quotas, prices and feature flags per user type and
tier. None means unlimited quota for that limit key.
"""
from typing import Any, Dict, List, Optional

# Limit tables per normalized user type, then per tier (ordered low -> high)
TIER_LIMITS: Dict[str, Dict[str, Dict[str, Optional[int]]]] = {
    "laboratory": {
        "free": {
            "missions": 1,
            "contacts": 0,
            "alerts_per_month": 0,
            "favorites": 3,
            "super_likes_per_day": 3,
            "photos": 5,
            "posts_monthly": 2,
            "videos_monthly": 0,
            "formations": 0,
            "featured_weeks": 0,
            "sponsored_cards": 0,
        },
        "starter": {
            "missions": 3,
            "contacts": 3,
            "alerts_per_month": 1,
            "favorites": 10,
            "super_likes_per_day": 5,
            "photos": 10,
            "posts_monthly": 5,
            "videos_monthly": 1,
            "formations": 1,
            "featured_weeks": 0,
            "sponsored_cards": 0,
        },
        "pro": {
            "missions": 15,
            "contacts": 10,
            "alerts_per_month": 5,
            "favorites": 50,
            "super_likes_per_day": 15,
            "photos": 20,
            "posts_monthly": 15,
            "videos_monthly": 5,
            "formations": 5,
            "featured_weeks": 2,
            "sponsored_cards": 2,
        },
        "business": {
            "missions": None,
            "contacts": None,
            "alerts_per_month": None,
            "favorites": None,
            "super_likes_per_day": None,
            "photos": None,
            "posts_monthly": None,
            "videos_monthly": 10,
            "formations": None,
            "featured_weeks": 4,
            "sponsored_cards": 2,
        },
    },
    "pharmacy_owner": {
        "free": {
            "offers": 1,
            "internships": None,
            "animator_missions": 0,
            "contacts": 0,
            "alerts_per_month": 1,
            "favorites": 5,
            "super_likes_per_day": 3,
        },
        "pro": {
            "offers": 5,
            "internships": None,
            "animator_missions": 2,
            "contacts": 1,
            "alerts_per_month": 5,
            "favorites": 20,
            "super_likes_per_day": 10,
        },
        "business": {
            "offers": None,
            "internships": None,
            "animator_missions": 5,
            "contacts": 5,
            "alerts_per_month": None,
            "favorites": None,
            "super_likes_per_day": None,
        },
    },
    # Animators never pay confirmation fees
    "animator": {
        "free": {
            "contacts": None,
            "super_likes_per_day": 1,
            "cv_generated": 1,
            "documents_storage": 5,
        },
        "premium": {
            "contacts": None,
            "super_likes_per_day": 5,
            "cv_generated": 3,
            "documents_storage": 10,
        },
    },
    "candidate": {
        "free": {
            "super_likes_per_day": 1,
            "cv_generated": 1,
            "documents_storage": 5,
        },
        "premium": {
            "super_likes_per_day": 5,
            "cv_generated": 3,
            "documents_storage": 5,
        },
    },
    "student": {
        "free": {
            "super_likes_per_day": 1,
            "cv_generated": 1,
            "documents_storage": 0,
        },
        "premium": {
            "super_likes_per_day": 5,
            "cv_generated": 3,
            "documents_storage": 5,
        },
    },
}

TIER_FEATURE_FLAGS: Dict[str, Dict[str, Dict[str, Any]]] = {
    "laboratory": {
        "free": {"priority_visibility": False, "events": False, "analytics": "none"},
        "starter": {"priority_visibility": False, "events": False, "analytics": "basic"},
        "pro": {"priority_visibility": True, "events": True, "analytics": "advanced"},
        "business": {"priority_visibility": True, "events": True, "analytics": "advanced_export"},
    },
    "pharmacy_owner": {
        "free": {"priority_visibility": False},
        "pro": {"priority_visibility": True},
        "business": {"priority_visibility": True},
    },
    "animator": {
        "free": {"priority_visibility": False},
        "premium": {"priority_visibility": True},
    },
    "candidate": {
        "free": {"priority_visibility": False},
        "premium": {"priority_visibility": True},
    },
    "student": {
        "free": {"priority_visibility": False},
        "premium": {"priority_visibility": True},
    },
}

# Monthly price in whole currency units
TIER_PRICES: Dict[str, Dict[str, int]] = {
    "laboratory": {"free": 0, "starter": 49, "pro": 149, "business": 299},
    "pharmacy_owner": {"free": 0, "pro": 29, "business": 59},
    "animator": {"free": 0, "premium": 19},
    "candidate": {"free": 0, "premium": 19},
    "student": {"free": 0, "premium": 5},
}

TIER_LABELS: Dict[str, str] = {
    "free": "Free",
    "starter": "Starter",
    "pro": "Pro",
    "business": "Business",
    "premium": "Premium",
}

POPULAR_TIERS: Dict[str, str] = {
    "laboratory": "pro",
    "pharmacy_owner": "pro",
    "animator": "premium",
    "candidate": "premium",
    "student": "premium",
}

USER_TYPE_TO_LIMITS_KEY: Dict[str, str] = {
    "laboratory": "laboratory",
    "pharmacy_owner": "pharmacy_owner",
    "animator": "animator",
    "pharmacist": "candidate",
    "technician": "candidate",
    "advisor": "candidate",
    "student": "student",
}

# Limit key -> usage counter holding its current consumption
LIMIT_USAGE_FIELDS: Dict[str, str] = {
    "missions": "missions_published",
    "offers": "missions_published",
    "internships": "missions_published",
    "animator_missions": "missions_published",
    "contacts": "missions_confirmed",
    "alerts_per_month": "alerts_sent",
    "favorites": "favorites_count",
    "super_likes_per_day": "super_likes_today",
    "posts_monthly": "posts_published",
    "videos_monthly": "videos_published",
    "photos": "photos_count",
    "featured_weeks": "sponsored_weeks_used",
    "sponsored_cards": "sponsored_cards_used",
}


def normalize_user_type(user_type: Optional[str]) -> str:
    """Map a user_type to its limits table key, defaulting to 'candidate'."""
    return USER_TYPE_TO_LIMITS_KEY.get((user_type or "").lower(), "candidate")


def get_available_tiers(user_type: str) -> List[str]:
    """Tiers offered to a user type, lowest first."""
    return list(TIER_LIMITS[normalize_user_type(user_type)].keys())


def is_valid_tier(user_type: str, tier: str) -> bool:
    return tier in TIER_LIMITS[normalize_user_type(user_type)]


def get_limits(user_type: str, tier: str) -> Dict[str, Optional[int]]:
    """
    Get all limits for a user type and tier.

    Unknown tiers fall back to the type's free tier.
    """
    tiers = TIER_LIMITS[normalize_user_type(user_type)]
    tier = tier.lower() if tier else "free"
    return tiers.get(tier, tiers["free"])


def get_limit(user_type: str, tier: str, limit_key: str) -> Optional[int]:
    """
    Get the cap for a limit key.

    Returns:
        Cap (int) or None for unlimited. Keys absent from the tier are unlimited.
    """
    return get_limits(user_type, tier).get(limit_key)


def has_unlimited_quota(user_type: str, tier: str, limit_key: str) -> bool:
    """Check if the tier has unlimited quota for a limit key."""
    return get_limit(user_type, tier, limit_key) is None


def get_feature_flags(user_type: str, tier: str) -> Dict[str, Any]:
    flags = TIER_FEATURE_FLAGS[normalize_user_type(user_type)]
    return flags.get(tier, flags["free"])


def has_feature(user_type: str, tier: str, feature_key: str) -> bool:
    """True when a feature flag is enabled or a numeric limit allows at least one use."""
    flags = get_feature_flags(user_type, tier)
    if feature_key in flags:
        value = flags[feature_key]
        return value not in (False, None, "none")
    limits = get_limits(user_type, tier)
    if feature_key not in limits:
        return False
    limit = limits[feature_key]
    return limit is None or limit > 0


def get_tier_price(user_type: str, tier: str) -> int:
    return TIER_PRICES[normalize_user_type(user_type)].get(tier, 0)


def get_next_tier(user_type: str, current_tier: str) -> Optional[str]:
    """Return the next tier up for upsell messages, or None at the top."""
    tiers = get_available_tiers(user_type)
    if current_tier not in tiers:
        return None
    index = tiers.index(current_tier)
    if index >= len(tiers) - 1:
        return None
    return tiers[index + 1]


def get_tier_info(user_type: str, tier: str) -> Dict[str, Any]:
    """Full description of a tier for pricing screens."""
    normalized = normalize_user_type(user_type)
    return {
        "value": tier,
        "label": TIER_LABELS.get(tier, tier),
        "price": get_tier_price(user_type, tier),
        "limits": get_limits(user_type, tier),
        "features": get_feature_flags(user_type, tier),
        "popular": POPULAR_TIERS.get(normalized) == tier,
    }


def get_all_tiers_info(user_type: str) -> List[Dict[str, Any]]:
    return [get_tier_info(user_type, tier) for tier in get_available_tiers(user_type)]
