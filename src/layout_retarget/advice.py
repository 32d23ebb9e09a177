"""Layout advice: pattern registry, confidence tiers and blending.

Advice comes from an optional external service as loosely-typed JSON:
per target, a ranked list of layout pattern options with confidence
scores and an optional suggested layout mode. It is normalized once by
``parse_advice``, ranked by ``auto_select_layout_pattern`` and reduced
by a ``BlendStrategy`` to an ``Advice`` value, which is either
``NoAdvice`` or ``Advised``. The layout adapter consumes only that value.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, Union

from layout_retarget.calibration import StatsRepository, calibrated_affinity_weight
from layout_retarget.parser.model import AxisAlign, LayoutMode

logger = logging.getLogger(__name__)

__all__ = [
    "AFFINITY_BOOST",
    "Advice",
    "Advised",
    "BlendStrategy",
    "ConfidenceTier",
    "LAYOUT_PATTERNS",
    "LayoutAdvice",
    "LayoutAdviceEntry",
    "LayoutPattern",
    "LayoutPatternOption",
    "NoAdvice",
    "PATTERN_AFFINITY",
    "PatternSelection",
    "PreferDeterministic",
    "auto_select_layout_pattern",
    "confidence_tier",
    "is_pattern_preferred",
    "parse_advice",
    "resolve_advice",
]

# ---------------------------------------------------------------------------
# Confidence tiers
# ---------------------------------------------------------------------------
HIGH_CONFIDENCE: float = 0.85
"""Auto-apply the suggestion."""

MEDIUM_CONFIDENCE: float = 0.65
"""Apply the suggestion but flag it for review."""

LOW_CONFIDENCE: float = 0.45
"""Use the suggestion only as a hint; below this it is ignored."""

AFFINITY_BOOST: float = 0.1
"""Confidence added when a pattern is on the target's preferred list."""


class ConfidenceTier(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    REJECT = "reject"


def confidence_tier(confidence: float) -> ConfidenceTier:
    if confidence >= HIGH_CONFIDENCE:
        return ConfidenceTier.HIGH
    if confidence >= MEDIUM_CONFIDENCE:
        return ConfidenceTier.MEDIUM
    if confidence >= LOW_CONFIDENCE:
        return ConfidenceTier.LOW
    return ConfidenceTier.REJECT


# ---------------------------------------------------------------------------
# Pattern registry
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class LayoutPattern:
    id: str
    label: str
    layout_mode: LayoutMode
    primary_alignment: AxisAlign
    counter_alignment: AxisAlign
    spacing_strategy: str  # tight, balanced or generous


def _pattern(pid: str, label: str, mode: str, primary: str, counter: str, spacing: str) -> LayoutPattern:
    return LayoutPattern(pid, label, LayoutMode(mode), AxisAlign(primary), AxisAlign(counter), spacing)


LAYOUT_PATTERNS: dict[str, LayoutPattern] = {
    p.id: p
    for p in (
        _pattern("horizontal-stack", "Horizontal Stack", "HORIZONTAL", "SPACE_BETWEEN", "CENTER", "balanced"),
        _pattern("vertical-stack", "Vertical Stack", "VERTICAL", "MIN", "CENTER", "balanced"),
        _pattern("centered-stack", "Centered Stack", "VERTICAL", "CENTER", "CENTER", "balanced"),
        _pattern("split-left", "Split Left", "HORIZONTAL", "SPACE_BETWEEN", "CENTER", "generous"),
        _pattern("split-right", "Split Right", "HORIZONTAL", "SPACE_BETWEEN", "CENTER", "generous"),
        _pattern("layered-hero", "Layered Hero", "NONE", "CENTER", "CENTER", "tight"),
        _pattern("layered-gradient", "Layered Gradient", "NONE", "MIN", "CENTER", "balanced"),
        _pattern("hero-first", "Hero First", "VERTICAL", "MIN", "CENTER", "balanced"),
        _pattern("text-first", "Text First", "VERTICAL", "MIN", "CENTER", "balanced"),
        _pattern("compact-vertical", "Compact Vertical", "VERTICAL", "CENTER", "CENTER", "tight"),
        _pattern("banner-spread", "Banner Spread", "HORIZONTAL", "SPACE_BETWEEN", "CENTER", "generous"),
        _pattern("preserve-layout", "Preserve Layout", "NONE", "MIN", "MIN", "balanced"),
    )
}

PATTERN_AFFINITY: dict[str, tuple[str, ...]] = {
    "figma-cover": ("layered-hero", "split-left", "horizontal-stack", "banner-spread"),
    "figma-gallery": ("layered-hero", "split-left", "horizontal-stack", "centered-stack"),
    "figma-thumbnail": ("compact-vertical", "centered-stack", "preserve-layout", "layered-hero"),
    "web-hero": ("banner-spread", "split-left", "split-right", "layered-gradient"),
    "social-carousel": ("centered-stack", "layered-hero", "text-first", "hero-first"),
    "youtube-cover": ("layered-hero", "banner-spread", "centered-stack", "split-left"),
    "tiktok-vertical": ("centered-stack", "vertical-stack", "hero-first", "text-first"),
    "gumroad-cover": ("split-left", "layered-hero", "horizontal-stack", "banner-spread"),
    "gumroad-thumbnail": ("centered-stack", "compact-vertical", "hero-first", "layered-hero"),
}
"""Patterns known to work well on each target, best first."""


def is_pattern_preferred(pattern_id: str, target_id: str) -> bool:
    return pattern_id in PATTERN_AFFINITY.get(target_id, ())


# ---------------------------------------------------------------------------
# Advice model and parsing
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class LayoutPatternOption:
    id: str
    label: str
    description: str = ""
    score: float | None = None


@dataclass(frozen=True)
class LayoutAdviceEntry:
    target_id: str
    options: tuple[LayoutPatternOption, ...]
    selected_id: str | None = None
    suggested_layout_mode: LayoutMode | None = None
    background_node_id: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class LayoutAdvice:
    entries: tuple[LayoutAdviceEntry, ...]

    def entry_for(self, target_id: str) -> LayoutAdviceEntry | None:
        for entry in self.entries:
            if entry.target_id == target_id:
                return entry
        return None


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _clamp_score(value: float | None) -> float | None:
    """Scores in (1, 100] are percentages; everything lands in [0, 1]."""
    if value is None:
        return None
    if 1 < value <= 100:
        value /= 100
    return min(max(value, 0.0), 1.0)


def _first_score(raw: dict[str, Any], *keys: str) -> float | None:
    for key in keys:
        score = _clamp_score(_to_number(raw.get(key)))
        if score is not None:
            return score
    return None


def _parse_option(raw: Any) -> LayoutPatternOption | None:
    if not isinstance(raw, dict):
        return None
    pid = raw.get("id", raw.get("patternId"))
    label = raw.get("label", raw.get("name"))
    if not isinstance(pid, str) or not isinstance(label, str):
        return None
    description = raw.get("description")
    return LayoutPatternOption(
        id=pid,
        label=label,
        description=description if isinstance(description, str) else "",
        score=_first_score(raw, "score", "confidence", "probability"),
    )


def _parse_entry(raw: Any) -> LayoutAdviceEntry | None:
    if not isinstance(raw, dict) or not isinstance(raw.get("targetId"), str):
        return None

    selected_id = raw.get("selectedId")
    selected_id = selected_id if isinstance(selected_id, str) else None
    description = raw.get("description")
    description = description if isinstance(description, str) else None

    options = [o for o in map(_parse_option, raw.get("options") or []) if o is not None]
    if not options and selected_id is not None:
        # Flat form: {targetId, selectedId, score}
        label = " ".join(word.capitalize() for word in selected_id.split("-"))
        options = [LayoutPatternOption(
            id=selected_id,
            label=label,
            description=description or "",
            score=_clamp_score(_to_number(raw.get("score"))),
        )]
    if not options:
        return None

    mode = raw.get("suggestedLayoutMode")
    background = raw.get("backgroundNodeId")
    return LayoutAdviceEntry(
        target_id=raw["targetId"],
        options=tuple(options),
        selected_id=selected_id,
        suggested_layout_mode=LayoutMode(mode) if mode in ("HORIZONTAL", "VERTICAL", "NONE") else None,
        background_node_id=background if isinstance(background, str) else None,
        description=description,
    )


def parse_advice(raw: Any) -> LayoutAdvice | None:
    """Normalize raw advice JSON; ``None`` when no usable entry remains."""
    if not isinstance(raw, dict):
        return None
    entries = []
    for item in raw.get("entries") or []:
        entry = _parse_entry(item)
        if entry is None:
            logger.warning("skipping malformed advice entry %r", item)
            continue
        entries.append(entry)
    if not entries:
        return None
    return LayoutAdvice(tuple(entries))


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------
@dataclass
class PatternSelection:
    """Outcome of ranking one target's advice."""

    success: bool = True
    pattern_id: str | None = None
    label: str | None = None
    confidence: float | None = None
    fallback: bool = True
    low_confidence: bool = False
    ai_hint: bool = False
    tier: ConfidenceTier = ConfidenceTier.REJECT
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _effective_confidence(
    base: float,
    pattern_id: str,
    target_id: str,
    repo: StatsRepository | None,
    warnings: list[str],
) -> float:
    preferred = is_pattern_preferred(pattern_id, target_id)
    if repo is None:
        weight = 0.0
    else:
        try:
            weight = calibrated_affinity_weight(repo, target_id, pattern_id)
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.warning("calibration lookup failed for %s/%s: %s", target_id, pattern_id, e)
            warnings.append(f"Calibration unavailable: {e}")
            return min(base + AFFINITY_BOOST, 1.0) if preferred else base

    adjusted = base + weight
    if preferred:
        return min(adjusted + max(0.0, AFFINITY_BOOST - abs(weight)), 1.0)
    return max(0.0, min(adjusted, 1.0))


def auto_select_layout_pattern(
    advice: LayoutAdvice | None,
    target_id: str,
    repo: StatsRepository | None = None,
) -> PatternSelection | None:
    """Pick the highest-scoring pattern for ``target_id`` and tier it.

    Returns ``None`` without advice. A target with no options, or a
    candidate below the low tier, is a fallback selection.
    """
    if advice is None:
        return None
    entry = advice.entry_for(target_id)
    if entry is None or not entry.options:
        logger.debug("no layout advice options for %s", target_id)
        return PatternSelection(warnings=[f"No layout advice for target '{target_id}'"])

    candidate = max(entry.options, key=lambda o: o.score or 0.0)
    base = candidate.score or 0.0
    result = PatternSelection()
    confidence = _effective_confidence(base, candidate.id, target_id, repo, result.warnings)
    tier = confidence_tier(confidence)
    logger.debug(
        "advice for %s: %s base=%.2f effective=%.2f tier=%s",
        target_id, candidate.id, base, confidence, tier.value,
    )

    result.confidence = confidence
    result.tier = tier
    if tier is ConfidenceTier.REJECT:
        return result

    result.pattern_id = candidate.id
    result.label = candidate.label
    if tier is ConfidenceTier.LOW:
        result.ai_hint = True
    else:
        result.fallback = False
        result.low_confidence = tier is ConfidenceTier.MEDIUM
    return result


# ---------------------------------------------------------------------------
# Advice option type and blending
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class NoAdvice:
    """Deterministic layout only."""

    reason: str = ""


@dataclass(frozen=True)
class Advised:
    """Advice the layout adapter should honor."""

    selection: PatternSelection
    suggested_layout_mode: LayoutMode | None = None
    background_node_id: str | None = None

    @property
    def pattern(self) -> LayoutPattern | None:
        if self.selection.pattern_id is None:
            return None
        return LAYOUT_PATTERNS.get(self.selection.pattern_id)


Advice = Union[NoAdvice, Advised]


class BlendStrategy(Protocol):
    """Combine a ranked selection with the deterministic plan."""

    def blend(self, entry: LayoutAdviceEntry, selection: PatternSelection) -> Advice: ...


class PreferDeterministic:
    """Accept advice only from the medium tier up; lower tiers stay deterministic."""

    def blend(self, entry: LayoutAdviceEntry, selection: PatternSelection) -> Advice:
        if selection.tier in (ConfidenceTier.HIGH, ConfidenceTier.MEDIUM):
            return Advised(selection, entry.suggested_layout_mode, entry.background_node_id)
        if selection.tier is ConfidenceTier.LOW:
            return NoAdvice(f"low-confidence hint '{selection.pattern_id}' kept as fallback")
        return NoAdvice("advice confidence below threshold")


def resolve_advice(
    advice: LayoutAdvice | None,
    target_id: str,
    repo: StatsRepository | None = None,
    strategy: BlendStrategy | None = None,
) -> Advice:
    """Reduce raw advice for one target to the value the adapter consumes."""
    if advice is None:
        return NoAdvice("no advice")
    entry = advice.entry_for(target_id)
    selection = auto_select_layout_pattern(advice, target_id, repo)
    if entry is None or selection is None:
        return NoAdvice(f"no advice for target '{target_id}'")
    return (strategy or PreferDeterministic()).blend(entry, selection)
