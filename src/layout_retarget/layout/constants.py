"""Layout constants used across layout modules.

Centralizes the thresholds and weights used by the profile resolver,
content analyzer, placement scorer, repositioner, adapter and the
proximity/auto-layout passes.
"""

# ---------------------------------------------------------------------------
# Aspect ratio thresholds (width / height)
# ---------------------------------------------------------------------------
EXTREME_VERTICAL: float = 0.57
"""Below this a target is extremely tall (9:16 and narrower)."""

MODERATE_VERTICAL: float = 0.75
"""Below this a target is moderately tall (3:4)."""

SQUARE_MIN: float = 0.8
"""Lower bound (inclusive) of the square band."""

SQUARE_MAX: float = 1.2
"""Upper bound (inclusive) of the square band."""

MODERATE_HORIZONTAL: float = 1.6
"""Above this a target is moderately wide (16:10)."""

EXTREME_HORIZONTAL: float = 2.5
"""Above this a target is extremely wide (banners)."""

ASPECT_CHANGE_THRESHOLD: float = 0.2
"""Minimum aspect delta before a layout-less frame gets a direction."""

# ---------------------------------------------------------------------------
# Detection thresholds
# ---------------------------------------------------------------------------
BACKGROUND_AREA_COVERAGE: float = 0.90
"""Fraction of the parent area at which a child counts as a background."""

CONTENT_MAX_DEPTH: int = 10
"""Maximum tree depth scanned when measuring content bounds."""

DENSE_CHILD_COUNT: int = 10
"""More direct children than this is a dense composition."""

SPARSE_CHILD_COUNT: int = 2
"""At most this many direct children is a sparse composition."""

SMALL_ROLE_DIMENSION: float = 150.0
"""Containers smaller than this in both axes may be logos or icons."""

ATOMIC_VECTOR_RATIO: float = 0.7
"""Share of vector children above which a group is an atomic illustration."""

# ---------------------------------------------------------------------------
# Scale computation
# ---------------------------------------------------------------------------
FILL_SCALE_FACTOR: float = 0.95
FIT_SCALE_FACTOR: float = 0.98
MIN_SCALE: float = 0.3
MAX_SCALE_WITH_IMAGES: float = 12.0
"""Upper scale bound when the frame carries bitmap content."""

MAX_SCALE: float = 60.0
SAFE_SCALE_TOLERANCE: float = 1.10
"""Allowed overshoot of the largest scale that still fits the safe area."""

DEFAULT_SAFE_AREA_RATIO: float = 0.9
"""Share of each dimension kept as safe area when no platform zone applies."""

# ---------------------------------------------------------------------------
# Spacing distribution
# ---------------------------------------------------------------------------
DISTRIBUTION_SPARSE: float = 0.55
"""Share of extra space given to gaps with two or fewer flow children."""

DISTRIBUTION_MODERATE: float = 0.45
"""Share of extra space given to gaps with three to five flow children."""

DISTRIBUTION_DENSE: float = 0.35
"""Share of extra space given to gaps with six or more flow children."""

VERTICAL_GAP_SOFT_CAP: float = 5.0
"""Soft cap on added spacing, as a multiple of the base spacing."""

VERTICAL_GAP_HARD_CAP: float = 15.0
"""Hard cap on the final spacing, as a multiple of the base spacing."""

DEFAULT_BASE_SPACING: float = 16.0

# ---------------------------------------------------------------------------
# Axis expansion
# ---------------------------------------------------------------------------
INTERIOR_WEIGHT_BASE: float = 0.65
INTERIOR_WEIGHT_PER_GAP: float = 0.10
INTERIOR_WEIGHT_MAX: float = 0.88
INTERIOR_WEIGHT_CLAMP: float = 0.9
TIGHT_SPACING_DAMPING: float = 0.95
"""Interior weight multiplier when the source spacing is tighter than default."""

ASYMMETRY_DAMPING: float = 0.6

MARGIN_ASPECT_CHANGE: float = 1.0
"""Aspect delta above which source margins are rebalanced."""

MARGIN_ASYMMETRY_THRESHOLD: float = 0.6
"""Margin asymmetry (|a - b| / (a + b)) above which a pair is rebalanced."""

MARGIN_SQUARE_FACTOR: float = 0.8
"""Square targets rebalance at this fraction of the asymmetry threshold."""

MARGIN_BLEND_ORIGINAL: float = 0.25
"""Share of the original margin kept when rebalancing."""

# ---------------------------------------------------------------------------
# Element minimum sizes (width, height) after scaling
# ---------------------------------------------------------------------------
MIN_ELEMENT_SIZES: dict[str, tuple[float, float]] = {
    "logo": (24.0, 24.0),
    "icon": (16.0, 16.0),
    "badge": (20.0, 16.0),
    "button": (40.0, 24.0),
}

ELEMENT_ROLE_PATTERNS: dict[str, str] = {
    "logo": r"logo|brand|mark",
    "icon": r"icon|symbol",
    "badge": r"badge|chip|tag|pill",
    "button": r"button|btn|cta",
}
"""Case-insensitive name patterns, checked in insertion order."""

ATOMIC_NAME_PATTERN: str = (
    r"illustration|mockup|device|phone|iphone|graphic|artwork|infographic|diagram"
)
POINTER_NAME_PATTERN: str = r"pointer|arrow|triangle|tip|caret|tail"
POINTER_PARENT_PATTERN: str = r"frame|container|card|box|bubble|speech|tooltip|callout"

# ---------------------------------------------------------------------------
# Typography
# ---------------------------------------------------------------------------
MIN_LEGIBLE_THUMBNAIL: float = 9.0
MIN_LEGIBLE_STANDARD: float = 11.0
MIN_LEGIBLE_LARGE: float = 14.0
THUMBNAIL_DIMENSION: float = 600.0
"""Targets whose smaller side is below this are thumbnails."""

LARGE_DISPLAY_DIMENSION: float = 2000.0
"""Targets with either side at or above this are large displays."""

# ---------------------------------------------------------------------------
# Stroke, radius and effect scaling
# ---------------------------------------------------------------------------
UPSCALE_DAMPING_EXPONENT: float = 0.7
MIN_STROKE_WEIGHT: float = 0.5
MIN_CORNER_RADIUS: float = 1.0
SHADOW_RADIUS_EXPONENT: float = 0.65
SHADOW_SPREAD_EXPONENT: float = 0.6
BLUR_RADIUS_EXPONENT: float = 0.6
MAX_SHADOW_RADIUS: float = 100.0
MAX_BLUR_RADIUS: float = 50.0

# ---------------------------------------------------------------------------
# Placement scoring
# ---------------------------------------------------------------------------
MAX_FACE_PENALTY: float = 0.6
FACE_PENALTY_WEIGHT: float = 0.5
MAX_FOCAL_PENALTY: float = 0.25
FOCAL_PROXIMITY_THRESHOLD: float = 0.25
"""Normalized distance inside which the focal point penalizes a region."""

FOCAL_MIN_CONFIDENCE: float = 0.5

# ---------------------------------------------------------------------------
# Collision nudging
# ---------------------------------------------------------------------------
NUDGE_SEARCH_ITERATIONS: int = 10

# ---------------------------------------------------------------------------
# Layout mode resolution
# ---------------------------------------------------------------------------
WRAP_MIN_CHILDREN: int = 4
WRAP_MIN_WIDTH: float = 1200.0
SPACE_BETWEEN_MAX_CHILDREN: int = 3
HORIZONTAL_DOMINANCE: float = 1.1
"""Width/height ratio above which a child counts as predominantly horizontal."""

# ---------------------------------------------------------------------------
# Auto-layout conversion
# ---------------------------------------------------------------------------
CONVERSION_CONFIDENCE_THRESHOLD: float = 0.45
ALIGNMENT_THRESHOLD: float = 0.65
WEAK_ALIGNMENT_THRESHOLD: float = 0.55
MIXED_ALIGNMENT_THRESHOLD: float = 0.5
MAX_REASONABLE_GAP: float = 200.0
CONVERTER_BACKGROUND_COVERAGE: float = 0.85
EDGE_THRESHOLD_RATIO: float = 0.15
EDGE_ELEMENT_MAX_RATIO: float = 0.25
OUTLIER_STD_MULTIPLIER: float = 2.0
OUTLIER_MIN_STD: float = 20.0
BACKGROUND_NAME_PATTERN: str = r"background|bg|^cover$|^backdrop$"
"""Names that mark a converter background; cover and backdrop must match whole."""

# ---------------------------------------------------------------------------
# Proximity clustering
# ---------------------------------------------------------------------------
PROXIMITY_THRESHOLD: float = 50.0
PROXIMITY_MIN_GROUP_SIZE: int = 2
PROXIMITY_TIMEOUT_MS: float = 5000.0
PROXIMITY_DEFAULT_SPACING: float = 8.0
PROXIMITY_MIN_ELEMENT_SIZE: float = 5.0
"""Elements smaller than this in either axis are ignored."""
