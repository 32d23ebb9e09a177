"""Historical pattern-acceptance statistics.

Each time a user keeps or overrides a recommended layout pattern the
outcome is recorded. Once a (target, pattern) pair has enough samples
its success rate becomes an affinity weight that nudges future advice
confidence up or down. Storage is a small key/value repository passed
in by the caller.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

__all__ = [
    "InMemoryStatsRepository",
    "JsonFileStatsRepository",
    "StatsRepository",
    "calibrated_affinity_weight",
    "learning_phase",
    "record_pattern_selection",
]

MIN_SAMPLES_FOR_ADJUSTMENT: int = 10
"""Samples needed before a pair's weight moves away from zero."""

MAX_AFFINITY_WEIGHT: float = 0.3
MIN_AFFINITY_WEIGHT: float = -0.1

INITIAL_PHASE_LIMIT: int = 50
ADAPTING_PHASE_LIMIT: int = 200

PHASE_DAMPING = {"initial": 0.5, "adapting": 0.8, "stable": 1.0}
"""Weight multiplier per learning phase."""

_METADATA_KEY = "metadata"


class StatsRepository(Protocol):
    """Key/value store of JSON-compatible records."""

    def get(self, key: str) -> dict[str, Any] | None: ...

    def put(self, key: str, value: dict[str, Any]) -> None: ...


class InMemoryStatsRepository:
    def __init__(self, data: dict[str, dict[str, Any]] | None = None) -> None:
        self._data: dict[str, dict[str, Any]] = dict(data or {})

    def get(self, key: str) -> dict[str, Any] | None:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    def put(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = dict(value)


class JsonFileStatsRepository:
    """Repository persisted as one JSON object on disk.

    A missing or unreadable file starts empty; every ``put`` rewrites it.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: dict[str, dict[str, Any]] = self._load()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("ignoring unreadable stats file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring stats file %s: not a JSON object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, dict)}

    def get(self, key: str) -> dict[str, Any] | None:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    def put(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = dict(value)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2, sort_keys=True))


def _affinity_key(target_id: str, pattern_id: str) -> str:
    return f"affinity:{target_id}:{pattern_id}"


def _pattern_key(pattern_id: str) -> str:
    return f"pattern:{pattern_id}"


def learning_phase(total_recommendations: int) -> str:
    if total_recommendations < INITIAL_PHASE_LIMIT:
        return "initial"
    if total_recommendations < ADAPTING_PHASE_LIMIT:
        return "adapting"
    return "stable"


def record_pattern_selection(
    repo: StatsRepository,
    target_id: str,
    recommended_pattern_id: str,
    selected_pattern_id: str,
) -> None:
    """Record whether the user kept the recommended pattern."""
    accepted = recommended_pattern_id == selected_pattern_id
    now = time.time()

    pattern = repo.get(_pattern_key(recommended_pattern_id)) or {"recommended": 0, "selected": 0}
    pattern["recommended"] += 1
    if accepted:
        pattern["selected"] += 1
    pattern["accuracy"] = pattern["selected"] / pattern["recommended"]
    pattern["last_updated"] = now
    repo.put(_pattern_key(recommended_pattern_id), pattern)

    key = _affinity_key(target_id, selected_pattern_id)
    affinity = repo.get(key) or {"weight": 0.0, "success_count": 0, "total_count": 0}
    affinity["total_count"] += 1
    if accepted:
        affinity["success_count"] += 1
    if affinity["total_count"] >= MIN_SAMPLES_FOR_ADJUSTMENT:
        success_rate = affinity["success_count"] / affinity["total_count"]
        target_weight = (success_rate - 0.5) * MAX_AFFINITY_WEIGHT * 2
        affinity["weight"] = max(MIN_AFFINITY_WEIGHT, min(MAX_AFFINITY_WEIGHT, target_weight))
    repo.put(key, affinity)

    meta = repo.get(_METADATA_KEY) or {"total_recommendations": 0, "average_accuracy": 0.0}
    total = meta["total_recommendations"] + 1
    meta["average_accuracy"] = (meta["average_accuracy"] * (total - 1) + int(accepted)) / total
    meta["override_rate"] = 1 - meta["average_accuracy"]
    meta["total_recommendations"] = total
    meta["learning_phase"] = learning_phase(total)
    meta["last_updated"] = now
    repo.put(_METADATA_KEY, meta)

    logger.debug(
        "recorded %s selection for %s: recommended=%s accepted=%s",
        selected_pattern_id, target_id, recommended_pattern_id, accepted,
    )


def calibrated_affinity_weight(repo: StatsRepository, target_id: str, pattern_id: str) -> float:
    """Learned confidence adjustment for a pattern on a target; 0.0 without data."""
    affinity = repo.get(_affinity_key(target_id, pattern_id))
    if not affinity:
        return 0.0
    meta = repo.get(_METADATA_KEY) or {}
    phase = meta.get("learning_phase", "initial")
    return float(affinity.get("weight", 0.0)) * PHASE_DAMPING.get(phase, 1.0)
