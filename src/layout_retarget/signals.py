"""Optional vision signals: faces, focal points, node roles and QA flags.

Signals arrive as loosely-typed JSON from an external advice service and
are normalized here once; everything downstream sees clamped values.
All spatial fields are normalized to [0, 1] of the frame size, with face
``x``/``y`` denoting the face center.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

MIN_CONFIDENCE: float = 0.35
"""Role and QA evidence below this confidence is ignored."""

MIN_FOCAL_CONFIDENCE: float = 0.55
"""Focal points below this confidence are discarded."""

FACE_MIN_SIZE: float = 0.03
FACE_MAX_SIZE: float = 0.80

_QA_MESSAGES = {
    "LOW_CONTRAST": ("AI_LOW_CONTRAST",
                     "Low contrast between foreground and background."),
    "LOGO_TOO_SMALL": ("AI_LOGO_VISIBILITY",
                       "Logo may be too small or obscured."),
    "TEXT_OVERLAP": ("AI_TEXT_OVERLAP",
                     "Text elements may be overlapping or crowded."),
    "UNCERTAIN_ROLES": ("AI_ROLE_UNCERTAIN",
                        "Some elements could not be identified confidently."),
    "SALIENCE_MISALIGNED": ("AI_SALIENCE_MISALIGNED",
                            "Key visual focus may be misaligned with the frame."),
    "SAFE_AREA_RISK": ("AI_SAFE_AREA_RISK",
                       "Important content may sit near or outside the safe area."),
    "GENERIC": ("AI_GENERIC", "Potential composition issue."),
}


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


@dataclass(frozen=True)
class FaceRegion:
    """A detected face, center-based and normalized to the frame."""

    node_id: str
    x: float
    y: float
    width: float
    height: float
    confidence: float

    @classmethod
    def normalized(
        cls,
        node_id: str,
        x: float,
        y: float,
        width: float,
        height: float,
        confidence: float,
    ) -> FaceRegion:
        return cls(
            node_id=node_id,
            x=_clamp(x, 0.0, 1.0),
            y=_clamp(y, 0.0, 1.0),
            width=_clamp(width, FACE_MIN_SIZE, FACE_MAX_SIZE),
            height=_clamp(height, FACE_MIN_SIZE, FACE_MAX_SIZE),
            confidence=_clamp(confidence, 0.0, 1.0),
        )


@dataclass(frozen=True)
class FocalPoint:
    x: float
    y: float
    confidence: float


@dataclass(frozen=True)
class RoleEvidence:
    node_id: str
    role: str
    confidence: float


@dataclass(frozen=True)
class QaSignal:
    code: str
    severity: str = "warn"
    message: str | None = None
    confidence: float | None = None


@dataclass
class AiSignals:
    """Normalized signals for one frame."""

    faces: list[FaceRegion] = field(default_factory=list)
    focal_points: list[FocalPoint] = field(default_factory=list)
    roles: list[RoleEvidence] = field(default_factory=list)
    qa: list[QaSignal] = field(default_factory=list)

    def primary_focal_point(self) -> FocalPoint | None:
        """Most confident focal point, if confident enough, clamped to the frame."""
        if not self.focal_points:
            return None
        primary = max(self.focal_points, key=lambda f: f.confidence)
        if primary.confidence < MIN_FOCAL_CONFIDENCE:
            logger.debug("focal point discarded, confidence %.2f", primary.confidence)
            return None
        return FocalPoint(
            x=_clamp(primary.x, 0.0, 1.0),
            y=_clamp(primary.y, 0.0, 1.0),
            confidence=primary.confidence,
        )

    def find_role(self, node_id: str) -> RoleEvidence | None:
        matches = [r for r in self.roles if r.node_id == node_id]
        if not matches:
            return None
        best = max(matches, key=lambda r: r.confidence)
        if best.confidence < MIN_CONFIDENCE:
            return None
        return best

    def nodes_with_role(self, role: str) -> list[str]:
        return [
            r.node_id for r in self.roles
            if r.role == role and r.confidence >= MIN_CONFIDENCE
        ]

    def hero_bleed_ids(self) -> set[str]:
        ids = set()
        for node_id in {r.node_id for r in self.roles}:
            best = self.find_role(node_id)
            if best is not None and best.role == "hero_bleed":
                ids.add(node_id)
        return ids

    def warnings(self) -> list[str]:
        """Human-readable warnings for confident QA flags."""
        out: list[str] = []
        for qa in self.qa:
            if qa.confidence is not None and qa.confidence < MIN_CONFIDENCE:
                continue
            mapped = _QA_MESSAGES.get(qa.code)
            if mapped is None:
                continue
            code, default_message = mapped
            out.append(f"{code}: {qa.message or default_message}")
        return out


def _number(raw: Mapping[str, Any], key: str, default: float | None = None) -> float:
    """A finite float from ``raw[key]``; raises ``ValueError`` otherwise."""
    value = raw[key] if default is None else raw.get(key, default)
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{key} is not finite")
    return number


def _entries(data: Mapping[str, Any], key: str) -> Iterator[Mapping[str, Any]]:
    items = data.get(key) or []
    if not isinstance(items, list):
        logger.warning("skipping %s: expected a list, got %s", key, type(items).__name__)
        return
    for raw in items:
        if isinstance(raw, Mapping):
            yield raw
        else:
            logger.warning("skipping malformed %s entry %r", key, raw)


def parse_signals(data: Mapping[str, Any] | None) -> AiSignals:
    """Normalize a raw signals mapping. Malformed entries are skipped."""
    signals = AiSignals()
    if not data:
        return signals
    if not isinstance(data, Mapping):
        logger.warning("ignoring signals: expected an object, got %s", type(data).__name__)
        return signals

    for raw in _entries(data, "faces"):
        try:
            signals.faces.append(FaceRegion.normalized(
                node_id=str(raw.get("node_id", "")),
                x=_number(raw, "x"),
                y=_number(raw, "y"),
                width=_number(raw, "width"),
                height=_number(raw, "height"),
                confidence=_number(raw, "confidence", 1.0),
            ))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("skipping malformed face region %r: %s", raw, e)

    for raw in _entries(data, "focal_points"):
        try:
            signals.focal_points.append(FocalPoint(
                x=_number(raw, "x"),
                y=_number(raw, "y"),
                confidence=_number(raw, "confidence", 0.0),
            ))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("skipping malformed focal point %r: %s", raw, e)

    for raw in _entries(data, "roles"):
        try:
            signals.roles.append(RoleEvidence(
                node_id=str(raw["node_id"]),
                role=str(raw["role"]),
                confidence=_number(raw, "confidence", 0.0),
            ))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("skipping malformed role %r: %s", raw, e)

    for raw in _entries(data, "qa"):
        if "code" not in raw:
            logger.warning("skipping qa signal without a code %r", raw)
            continue
        try:
            confidence = _number(raw, "confidence") if raw.get("confidence") is not None else None
        except (TypeError, ValueError) as e:
            logger.warning("skipping malformed qa signal %r: %s", raw, e)
            continue
        signals.qa.append(QaSignal(
            code=str(raw["code"]),
            severity="info" if raw.get("severity") == "info" else "warn",
            message=raw.get("message"),
            confidence=confidence,
        ))

    return signals
