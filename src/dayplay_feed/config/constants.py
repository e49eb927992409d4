"""
Static taxonomy tables and ranking constants.

These values do not change per environment. The category and metro tables
are versioned configuration data: bump the matching *_VERSION string whenever
an entry is added or removed so logs and cached feeds can be traced back to
the table they were built against.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


# =============================================================================
# Category Taxonomy
# =============================================================================

TAXONOMY_VERSION = "2024.11"

# canonical id -> display / legacy variants seen in imported rows
CATEGORY_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "arts-culture": ("arts-culture", "arts and culture", "Arts & Culture"),
    "live-music": ("live-music", "live music", "Live Music"),
    "games-entertainment": ("games-entertainment", "games and entertainment", "Games & Entertainment"),
    "relax-recharge": ("relax-recharge", "relax and recharge", "Relax & Recharge", "Relax and recharge"),
    "sports-recreation": ("sports-recreation", "sports and recreation", "Sports & Recreation"),
    "drinks-bars": ("drinks-bars", "drinks and bars", "Drinks & Bars"),
    "pet-friendly": ("pet-friendly", "pet friendly", "Pet-Friendly"),
    "road-trip-getaways": ("road-trip-getaways", "road trip getaways", "Road Trip Getaways"),
    "festivals-pop-ups": (
        "festivals-pop-ups", "festivals & pop-ups", "Festivals & Pop-Ups", "festivals and pop ups",
    ),
    "fitness-classes": ("fitness-classes", "fitness classes", "Fitness & Classes"),
    "museum": ("museum", "museums"),
    "coffee": ("coffee", "cafe", "coffee shops"),
    "food": ("food", "restaurants"),
    "outdoors": ("outdoors", "parks"),
    "nightlife": ("nightlife", "bars"),
    "shopping": ("shopping", "shops"),
    "events": ("events", "event"),
    "activities": ("activities", "things to do"),
    "neighborhood": ("neighborhood", "neighborhoods"),
}


# =============================================================================
# Metro Areas
# =============================================================================

METRO_TABLE_VERSION = "2024.11"

# display label -> raw locality strings found in the catalog
METRO_AREA_CITIES: Dict[str, Tuple[str, ...]] = {
    "Northern Virginia": (
        "Northern Virginia", "Fairfax", "Arlington", "Alexandria", "Reston", "Vienna",
        "Falls Church", "McLean", "Tysons", "Annandale", "Springfield", "Centreville",
        "Herndon", "Chantilly", "Great Falls", "Clifton", "Fairfax Station",
        "Occoquan Historic District", "Manassas", "Ashburn", "Leesburg", "Sterling",
        "Burke", "Lorton", "Mount Vernon", "Oakton", "Dunn Loring", "Merrifield",
        "Woodbridge", "Dale City", "Lake Ridge", "Gainesville", "Haymarket",
        # DC proper ships inside the Northern Virginia dataset
        "Washington", "Washington, DC", "District of Columbia",
        "Frederick, MD", "Solomons", "Silver Spring", "National Harbor", "Bethesda",
        "Middleburg", "Waterford", "Fredericksburg", "Stafford", "Prince William",
        "Fairfax County", "Franconia", "Lincolnia", "Dulles", "Dumfries", "Fort Belvoir",
        "Gaithersburg", "Kensington", "Darnestown", "Accokeek", "Aldie", "Annapolis",
        "Ashton-Sandy Spring", "Bluemont", "Delaplane", "Dickerson", "Easton", "Frederick",
        "Georgetown", "Harpers Ferry", "Laurel",
    ),
    "San Francisco": (
        "San Francisco", "Berkeley", "Oakland", "Alameda", "Emeryville", "Brisbane",
        "Daly City", "Colma", "Burlingame", "Half Moon Bay", "Bolinas", "Guerneville",
        "Healdsburg", "Bodega Bay", "Castro Valley", "El Cerrito", "Fremont", "Concord",
        "Albany", "Brentwood", "Dublin", "Inverness", "Belmont Park",
    ),
}


# =============================================================================
# Decision Helper Vibes
# =============================================================================

VIBE_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "romantic": ("food", "drinks-bars", "live-music", "nightlife"),
    "chill": ("coffee", "relax-recharge", "outdoors"),
    "fun": ("games-entertainment", "festivals-pop-ups", "nightlife", "activities"),
    "adventurous": ("activities", "outdoors", "road-trip-getaways", "sports-recreation"),
    "family-friendly": ("family", "museums", "activities", "outdoors", "festivals-pop-ups"),
    "trendy": ("nightlife", "drinks-bars", "live-music", "shopping"),
    "hidden-gem": ("neighborhood", "coffee", "food", "arts-culture"),
}

# vibe -> (keyword regex over title + description, bonus)
VIBE_KEYWORDS: Dict[str, Tuple[str, int]] = {
    "romantic": (r"romantic|date night|date-night|candlelight|anniversary", 3),
    "chill": (r"chill|cozy|laid back|laid-back|relax", 2),
    "fun": (r"fun|party|game|arcade|karaoke|club", 2),
    "adventurous": (r"hike|trail|escape room|climb|surf|kayak", 2),
    "family-friendly": (r"family|kids|children|all ages|all-ages", 2),
    "trendy": (r"trendy|hot spot|hotspot|new|instagrammable|viral", 2),
    "hidden-gem": (r"hidden gem|hidden-gem|local favorite|locals", 2),
}


# =============================================================================
# Scoring Configuration
# =============================================================================

@dataclass(frozen=True)
class AffinityConfig:
    """Additive integer bonuses for the swipe-history affinity score."""

    BASE_SCORE: int = 1
    CATEGORY_BONUS: int = 3
    TAG_BONUS_CAP: int = 4
    TOP_CATEGORIES: int = 3

    # Per-rule ceiling; no single rule may dominate the ordering
    RULE_CAP: int = 4


@dataclass(frozen=True)
class VibeConfig:
    """Bonuses for the decision-helper vibe score."""

    BASE_SCORE: int = 1
    CATEGORY_BONUS: int = 3
    TAG_BONUS: int = 4
    RULE_CAP: int = 4
    MIN_CANDIDATES: int = 2


@dataclass(frozen=True)
class FilterConfig:
    """Thresholds for the boolean feed toggles."""

    NEW_THIS_WEEK_DAYS: int = 7
    PRICE_TIERS: Tuple[int, ...] = (1, 2, 3, 4)


@dataclass(frozen=True)
class TrendingConfig:
    """Popularity derived from the local like-swipe log."""

    MIN_LIKES_FROM_SWIPES: int = 3


DEFAULT_AFFINITY_CONFIG = AffinityConfig()
DEFAULT_VIBE_CONFIG = VibeConfig()
DEFAULT_FILTER_CONFIG = FilterConfig()
DEFAULT_TRENDING_CONFIG = TrendingConfig()

EARTH_RADIUS_KM = 6371.0
