"""Layout engine: profiles, scaling, repositioning and auto-layout adaptation."""

from layout_retarget.layout.engine import ScaleMetrics, ScaleResult, scale_node_tree
from layout_retarget.layout.profile import LayoutProfile, resolve_layout_profile
from layout_retarget.layout.proximity import ProximityOptions, group_by_proximity
from layout_retarget.layout.safe_area import TARGETS, SafeAreaInsets, VariantTarget, get_target

__all__ = [
    "LayoutProfile",
    "ProximityOptions",
    "SafeAreaInsets",
    "ScaleMetrics",
    "ScaleResult",
    "TARGETS",
    "VariantTarget",
    "get_target",
    "group_by_proximity",
    "resolve_layout_profile",
    "scale_node_tree",
]
