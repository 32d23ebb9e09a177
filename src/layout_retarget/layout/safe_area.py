"""Target registry and safe-area inset computation."""

from __future__ import annotations

from dataclasses import dataclass

from layout_retarget.layout.constants import DEFAULT_SAFE_AREA_RATIO
from layout_retarget.parser.model import Bounds

__all__ = [
    "PLATFORM_SAFE_ZONES",
    "SafeAreaInsets",
    "TARGETS",
    "VariantTarget",
    "compute_safe_insets",
    "get_target",
    "resolve_safe_area_insets",
    "safe_bounds",
]


@dataclass(frozen=True)
class VariantTarget:
    """A named output canvas."""

    id: str
    label: str
    width: int
    height: int
    description: str = ""


@dataclass(frozen=True)
class SafeAreaInsets:
    left: float
    right: float
    top: float
    bottom: float

    def clamped(self, width: float, height: float) -> SafeAreaInsets:
        """Insets limited to half of each dimension and never negative."""
        half_w = max(width, 0.0) / 2
        half_h = max(height, 0.0) / 2
        return SafeAreaInsets(
            left=min(max(self.left, 0.0), half_w),
            right=min(max(self.right, 0.0), half_w),
            top=min(max(self.top, 0.0), half_h),
            bottom=min(max(self.bottom, 0.0), half_h),
        )


TARGETS: dict[str, VariantTarget] = {
    t.id: t
    for t in (
        VariantTarget("figma-cover", "Figma Community Cover", 1920, 960,
                      "Cover image for a Figma Community listing"),
        VariantTarget("figma-gallery", "Figma Community Gallery", 1600, 960,
                      "Gallery slide for a Figma Community listing"),
        VariantTarget("figma-thumbnail", "Figma Community Thumbnail", 480, 320,
                      "Small listing thumbnail"),
        VariantTarget("web-hero", "Web Hero Banner", 1440, 600,
                      "Landing page hero banner"),
        VariantTarget("social-carousel", "Social Carousel Panel", 1080, 1080,
                      "Square carousel panel"),
        VariantTarget("youtube-cover", "YouTube Cover", 2560, 1440,
                      "Channel art with a centered text and logo safe area"),
        VariantTarget("tiktok-vertical", "TikTok Vertical Promo", 1080, 1920,
                      "Full-screen vertical video cover"),
        VariantTarget("youtube-shorts", "YouTube Shorts", 1080, 1920,
                      "Vertical Shorts cover"),
        VariantTarget("instagram-reels", "Instagram Reels", 1080, 1920,
                      "Vertical Reels cover"),
        VariantTarget("gumroad-cover", "Gumroad Cover", 1280, 720,
                      "Product cover image"),
        VariantTarget("gumroad-thumbnail", "Gumroad Thumbnail", 600, 600,
                      "Product thumbnail"),
    )
}

PLATFORM_SAFE_ZONES: dict[str, SafeAreaInsets] = {
    "tiktok-vertical": SafeAreaInsets(left=90, right=120, top=150, bottom=400),
    "youtube-shorts": SafeAreaInsets(left=60, right=120, top=200, bottom=280),
    "instagram-reels": SafeAreaInsets(left=60, right=120, top=108, bottom=340),
}
"""Fixed platform UI chrome insets in pixels."""

# Centered text/logo region of YouTube channel art, at 2560x1440.
_YOUTUBE_COVER_REFERENCE = (2560.0, 1440.0)
_YOUTUBE_COVER_SAFE = (1546.0, 423.0)


def get_target(target_id: str) -> VariantTarget:
    try:
        return TARGETS[target_id]
    except KeyError:
        raise ValueError(
            f"Unknown target '{target_id}'. "
            f"Available: {', '.join(sorted(TARGETS))}"
        ) from None


def compute_safe_insets(
    width: float,
    height: float,
    safe_area_ratio: float = DEFAULT_SAFE_AREA_RATIO,
) -> SafeAreaInsets:
    """Symmetric insets keeping ``safe_area_ratio`` of each dimension."""
    ratio = min(max(safe_area_ratio, 0.0), 1.0)
    inset_x = width * (1 - ratio) / 2
    inset_y = height * (1 - ratio) / 2
    return SafeAreaInsets(inset_x, inset_x, inset_y, inset_y).clamped(width, height)


def resolve_safe_area_insets(
    width: float,
    height: float,
    safe_area_ratio: float = DEFAULT_SAFE_AREA_RATIO,
    zone: str | None = None,
) -> SafeAreaInsets:
    """Insets for a named platform zone, falling back to the ratio rule."""
    if zone in PLATFORM_SAFE_ZONES:
        return PLATFORM_SAFE_ZONES[zone].clamped(width, height)
    if zone == "youtube-cover":
        ref_w, ref_h = _YOUTUBE_COVER_REFERENCE
        safe_w = _YOUTUBE_COVER_SAFE[0] * width / ref_w
        safe_h = _YOUTUBE_COVER_SAFE[1] * height / ref_h
        inset_x = (width - safe_w) / 2
        inset_y = (height - safe_h) / 2
        return SafeAreaInsets(inset_x, inset_x, inset_y, inset_y).clamped(width, height)
    return compute_safe_insets(width, height, safe_area_ratio)


def safe_bounds(width: float, height: float, insets: SafeAreaInsets) -> Bounds:
    """The inset-reduced rectangle of a ``width`` x ``height`` frame."""
    return Bounds(
        insets.left,
        insets.top,
        max(width - insets.left - insets.right, 0.0),
        max(height - insets.top - insets.bottom, 0.0),
    )
