"""Proximity clustering and container synthesis.

Loosely positioned siblings that sit close together (edge distance at or
below a threshold) are treated as one visual group and wrapped in a new
transparent auto-layout container, so later passes move and reflow them as
a unit. Clusters are the connected components of a proximity graph built
with networkx.

The pass runs under a soft wall-clock deadline checked before each
cluster. Containers created before the deadline stay in place.
"""

from __future__ import annotations

__all__ = [
    "GroupingResult",
    "ProximityCluster",
    "ProximityElement",
    "ProximityOptions",
    "ProximityResult",
    "collect_proximity_elements",
    "detect_cluster_direction",
    "detect_proximity_clusters",
    "group_by_proximity",
    "remove_overlapping_clusters",
]

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

import networkx as nx

from layout_retarget.layout.auto_layout import (
    ChildArrangement,
    ChildPosition,
    alignment_score,
    classify_child_position,
    infer_spacing,
)
from layout_retarget.layout.classify import collect_atomic_group_children, is_atomic_group
from layout_retarget.layout.constants import (
    CONVERSION_CONFIDENCE_THRESHOLD,
    PROXIMITY_DEFAULT_SPACING,
    PROXIMITY_MIN_ELEMENT_SIZE,
    PROXIMITY_MIN_GROUP_SIZE,
    PROXIMITY_THRESHOLD,
    PROXIMITY_TIMEOUT_MS,
)
from layout_retarget.layout.geometry import edge_distance, union_bounds
from layout_retarget.parser.model import (
    Bounds,
    ContainerNode,
    LayoutMode,
    Node,
    TextNode,
    VectorNode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProximityOptions:
    threshold: float = PROXIMITY_THRESHOLD
    """Maximum edge-to-edge distance (px) between neighbors."""

    min_group_size: int = PROXIMITY_MIN_GROUP_SIZE
    timeout_ms: float = PROXIMITY_TIMEOUT_MS
    default_spacing: float = PROXIMITY_DEFAULT_SPACING
    """Container spacing when no gap can be measured."""

    respect_atomic_protection: bool = True
    """Never split atomic groups or pull their parts out."""

    min_element_size: float = PROXIMITY_MIN_ELEMENT_SIZE
    name_prefix: str = "ProximityGroup"


@dataclass(frozen=True)
class ProximityElement:
    node: Node
    bounds: Bounds
    """Bounds in the root frame's coordinate space."""

    parent: ContainerNode
    atomic: bool = False


@dataclass(frozen=True)
class ProximityCluster:
    elements: tuple[ProximityElement, ...]
    bounds: Bounds
    recommended_direction: ChildArrangement
    direction_confidence: float

    @property
    def node_ids(self) -> set[str]:
        return {e.node.id for e in self.elements}


@dataclass
class GroupingResult:
    success: bool
    elements: tuple[ProximityElement, ...]
    container: ContainerNode | None = None
    direction: LayoutMode | None = None
    spacing: float | None = None
    reason: str | None = None


@dataclass
class ProximityResult:
    success: bool = True
    groups_created: int = 0
    elements_grouped: int = 0
    elements_skipped: int = 0
    grouping_results: list[GroupingResult] = field(default_factory=list)
    processing_time_ms: float = 0.0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Element collection
# ---------------------------------------------------------------------------


def _has_visual_properties(node: Node) -> bool:
    if isinstance(node, (TextNode, VectorNode)):
        return True
    return any(p.visible for p in node.fills) or any(p.visible for p in node.strokes)


def collect_proximity_elements(
    frame: ContainerNode,
    options: ProximityOptions | None = None,
) -> list[ProximityElement]:
    """Visible, loosely positioned nodes eligible for grouping.

    Only children of layout-less containers are loose; auto-layout
    containers are still searched for nested layout-less ones. Atomic
    groups count as single elements and are never entered. Containers
    are collected themselves only when they paint something.
    """
    options = options or ProximityOptions()
    protected = collect_atomic_group_children(frame) if options.respect_atomic_protection else set()

    elements: list[ProximityElement] = []
    queue: list[ContainerNode] = [frame]
    while queue:
        parent = queue.pop(0)
        loose = not parent.has_auto_layout
        for child in parent.children:
            if not child.visible or child.id in protected:
                continue
            x, y = child.offset_in(frame)
            bounds = Bounds(x, y, child.width, child.height)
            if bounds.width < options.min_element_size or bounds.height < options.min_element_size:
                continue

            if is_atomic_group(child):
                if loose:
                    elements.append(ProximityElement(child, bounds, parent, atomic=True))
                continue

            if isinstance(child, ContainerNode) and child.children:
                if loose and _has_visual_properties(child):
                    elements.append(ProximityElement(child, bounds, parent))
                queue.append(child)
            elif loose:
                elements.append(ProximityElement(child, bounds, parent))

    logger.debug(
        "collected %d proximity elements (%d atomic)",
        len(elements), sum(1 for e in elements if e.atomic),
    )
    return elements


# ---------------------------------------------------------------------------
# Clustering
# ---------------------------------------------------------------------------


def detect_cluster_direction(bounds: list[Bounds]) -> tuple[ChildArrangement, float]:
    """Direction whose cross-axis spread is tighter, with its alignment score.

    Fewer than two rectangles, or a tie, is chaotic.
    """
    if len(bounds) < 2:
        return ChildArrangement.CHAOTIC, 0.0
    h_score = alignment_score(bounds, ChildArrangement.HORIZONTAL)
    v_score = alignment_score(bounds, ChildArrangement.VERTICAL)
    if h_score > v_score:
        return ChildArrangement.HORIZONTAL, h_score
    if v_score > h_score:
        return ChildArrangement.VERTICAL, v_score
    return ChildArrangement.CHAOTIC, h_score


def _build_proximity_graph(elements: list[ProximityElement], threshold: float) -> nx.Graph:
    G = nx.Graph()
    G.add_nodes_from(range(len(elements)))
    for i, a in enumerate(elements):
        for j in range(i + 1, len(elements)):
            b = elements[j]
            if a.parent is not b.parent:
                continue
            distance = edge_distance(a.bounds, b.bounds)
            if distance <= threshold:
                G.add_edge(i, j, distance=distance)
    return G


def _make_cluster(elements: list[ProximityElement]) -> ProximityCluster:
    bounds = [e.bounds for e in elements]
    direction, confidence = detect_cluster_direction(bounds)
    return ProximityCluster(
        elements=tuple(elements),
        bounds=union_bounds(bounds) or Bounds(0, 0, 0, 0),
        recommended_direction=direction,
        direction_confidence=confidence,
    )


def detect_proximity_clusters(
    frame: ContainerNode,
    options: ProximityOptions | None = None,
) -> list[ProximityCluster]:
    """Groups of same-parent elements connected by proximity edges."""
    options = options or ProximityOptions()
    elements = collect_proximity_elements(frame, options)
    if len(elements) < options.min_group_size:
        return []

    G = _build_proximity_graph(elements, options.threshold)
    components = sorted(
        (sorted(c) for c in nx.connected_components(G) if len(c) >= options.min_group_size),
        key=lambda c: c[0],
    )
    clusters = [_make_cluster([elements[i] for i in c]) for c in components]
    logger.debug(
        "found %d proximity clusters among %d elements (%d edges)",
        len(clusters), len(elements), G.number_of_edges(),
    )
    return clusters


def remove_overlapping_clusters(clusters: list[ProximityCluster]) -> list[ProximityCluster]:
    """Drop clusters sharing a node with a larger accepted cluster."""
    accepted: list[ProximityCluster] = []
    claimed: set[str] = set()
    for cluster in sorted(clusters, key=lambda c: len(c.elements), reverse=True):
        ids = cluster.node_ids
        if ids & claimed:
            logger.debug("dropping %d-element cluster overlapping a larger one", len(ids))
            continue
        accepted.append(cluster)
        claimed |= ids
    return accepted


# ---------------------------------------------------------------------------
# Container synthesis
# ---------------------------------------------------------------------------


def _validate_cluster(cluster: ProximityCluster) -> str | None:
    if len(cluster.elements) < 2:
        return "cluster has fewer than 2 elements"
    parent = cluster.elements[0].parent
    for element in cluster.elements:
        if element.parent is not parent:
            return "cluster spans multiple containers"
        if element.node.parent is not parent:
            return f"node {element.node.id} is no longer a child of {parent.id}"
    return None


def _resolve_direction(cluster: ProximityCluster) -> ChildArrangement:
    if cluster.recommended_direction is not ChildArrangement.CHAOTIC:
        return cluster.recommended_direction
    if cluster.bounds.width >= cluster.bounds.height:
        return ChildArrangement.HORIZONTAL
    return ChildArrangement.VERTICAL


def _unique_id(root: ContainerNode, parent: ContainerNode) -> str:
    n = 1
    while root.find(f"{parent.id}:proximity-{n}") is not None:
        n += 1
    return f"{parent.id}:proximity-{n}"


def _synthesize_container(
    root: ContainerNode,
    cluster: ProximityCluster,
    direction: ChildArrangement,
    spacing: float,
    options: ProximityOptions,
) -> ContainerNode:
    """Wrap the cluster members in a new auto-layout container.

    Everything is computed before the tree is touched; the parent only
    changes once the container is complete.
    """
    parent = cluster.elements[0].parent
    nodes = [e.node for e in cluster.elements]
    local = union_bounds(n.bounds for n in nodes)
    if local is None:
        raise ValueError("cannot size a container for an empty cluster")

    index = min(parent.children.index(n) for n in nodes)
    horizontal = direction is ChildArrangement.HORIZONTAL
    ordered = sorted(nodes, key=lambda n: n.x if horizontal else n.y)
    positions = [(n.x - local.x, n.y - local.y) for n in ordered]
    kept = [c for c in parent.children if not any(c is n for n in nodes)]

    container = ContainerNode(
        id=_unique_id(root, parent),
        name=f"{options.name_prefix} ({len(nodes)} items)",
        x=local.x,
        y=local.y,
        width=local.width,
        height=local.height,
        layout_mode=direction.layout_mode,
        item_spacing=spacing,
        primary_sizing="AUTO",
        counter_sizing="AUTO",
        clips_content=False,
    )
    kept.insert(index, container)

    for node, (x, y) in zip(ordered, positions):
        node.parent = container
        node.x, node.y = x, y
    container.children = ordered
    container.parent = parent
    parent.children = kept
    return container


def _process_cluster(
    root: ContainerNode,
    cluster: ProximityCluster,
    options: ProximityOptions,
) -> GroupingResult:
    reason = _validate_cluster(cluster)
    if reason is not None:
        return GroupingResult(False, cluster.elements, reason=reason)

    parent = cluster.elements[0].parent
    direction = _resolve_direction(cluster)
    local = [e.node.bounds for e in cluster.elements]

    absolute = 0
    for element, bounds in zip(cluster.elements, local):
        position, _ = classify_child_position(
            element.node, bounds, local, parent.width, parent.height, direction,
        )
        if position is ChildPosition.ABSOLUTE:
            absolute += 1
    if absolute > len(local) / 2:
        return GroupingResult(
            False, cluster.elements,
            reason=f"{absolute} of {len(local)} members should stay absolute",
        )

    confidence = 0.5 * (1 - absolute / len(local)) + 0.5 * cluster.direction_confidence
    if confidence < CONVERSION_CONFIDENCE_THRESHOLD:
        return GroupingResult(
            False, cluster.elements,
            reason=f"confidence {confidence:.2f} below {CONVERSION_CONFIDENCE_THRESHOLD}",
        )

    spacing = infer_spacing(local, direction, default=options.default_spacing)
    container = _synthesize_container(root, cluster, direction, spacing, options)
    logger.debug(
        "grouped %d elements into %s (%s, spacing %.0f)",
        len(cluster.elements), container.id, direction.value, spacing,
    )
    return GroupingResult(
        True, cluster.elements,
        container=container,
        direction=direction.layout_mode,
        spacing=spacing,
    )


def group_by_proximity(
    frame: ContainerNode,
    options: ProximityOptions | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> ProximityResult:
    """Wrap proximity clusters under ``frame`` in new auto-layout containers.

    ``clock`` returns seconds and is only used for the deadline. Rejected
    clusters are reported in ``grouping_results`` with a reason; a failure
    while moving one cluster is recorded in ``errors`` and the remaining
    clusters are still processed.
    """
    options = options or ProximityOptions()
    start = clock()
    result = ProximityResult()

    def elapsed_ms() -> float:
        return (clock() - start) * 1000

    try:
        clusters = detect_proximity_clusters(frame, options)
    except Exception as e:
        logger.exception("proximity detection failed for %s", frame.id)
        result.success = False
        result.errors.append(f"proximity detection failed: {e}")
        result.processing_time_ms = elapsed_ms()
        return result

    detected = sum(len(c.elements) for c in clusters)
    for index, cluster in enumerate(remove_overlapping_clusters(clusters)):
        elapsed = elapsed_ms()
        if elapsed > options.timeout_ms:
            message = f"proximity grouping stopped after {elapsed:.0f}ms ({index} clusters processed)"
            logger.warning(message)
            result.warnings.append(message)
            break
        try:
            grouping = _process_cluster(frame, cluster, options)
        except Exception as e:
            logger.exception("failed to group cluster %d", index)
            result.errors.append(f"cluster {index}: {e}")
            result.grouping_results.append(GroupingResult(False, cluster.elements, reason=str(e)))
            continue
        result.grouping_results.append(grouping)
        if not grouping.success:
            logger.debug("cluster %d rejected: %s", index, grouping.reason)

    grouped = [g for g in result.grouping_results if g.success]
    result.groups_created = len(grouped)
    result.elements_grouped = sum(len(g.elements) for g in grouped)
    result.elements_skipped = detected - result.elements_grouped
    result.success = not result.errors
    result.processing_time_ms = elapsed_ms()
    logger.debug(
        "proximity grouping: %d groups, %d elements grouped, %d skipped in %.1fms",
        result.groups_created, result.elements_grouped,
        result.elements_skipped, result.processing_time_ms,
    )
    return result
