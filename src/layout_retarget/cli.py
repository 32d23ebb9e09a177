"""CLI for layout-retarget."""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path

import click

from layout_retarget import __version__
from layout_retarget.advice import LAYOUT_PATTERNS, NoAdvice, parse_advice, resolve_advice
from layout_retarget.calibration import (
    JsonFileStatsRepository,
    calibrated_affinity_weight,
    record_pattern_selection,
)
from layout_retarget.layout import ProximityOptions, scale_node_tree
from layout_retarget.layout.content import analyze_content
from layout_retarget.layout.placement import calculate_placement_scores
from layout_retarget.layout.profile import resolve_layout_profile
from layout_retarget.layout.safe_area import (
    PLATFORM_SAFE_ZONES,
    TARGETS,
    get_target,
    resolve_safe_area_insets,
    safe_bounds,
)
from layout_retarget.parser import dump_tree, load_tree
from layout_retarget.parser.model import ContainerNode, TextNode
from layout_retarget.signals import parse_signals


def _read_json(path: Path | None) -> dict | None:
    if path is None:
        return None
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as e:
        click.echo(f"Parse error in {path}: {e}", err=True)
        raise SystemExit(1)


def _load_frame(input_file: Path) -> ContainerNode:
    try:
        return load_tree(input_file.read_text())
    except ValueError as e:
        click.echo(f"Parse error: {e}", err=True)
        raise SystemExit(1)


def _zone_for(target_id: str | None) -> str | None:
    if target_id in PLATFORM_SAFE_ZONES or target_id == "youtube-cover":
        return target_id
    return None


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", count=True,
              help="Increase log output (-v info, -vv debug)")
def cli(verbose: int) -> None:
    """layout-retarget: Adapt design frames to new canvas sizes."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("-t", "--target", "target_id", type=click.Choice(sorted(TARGETS)),
              default=None, help="Named output target")
@click.option("--width", type=int, default=None, help="Target width in pixels")
@click.option("--height", type=int, default=None, help="Target height in pixels")
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None,
              help="Output JSON file path. Defaults to <input>_<target>.json")
@click.option("--safe-area", type=float, default=0.9,
              help="Fraction of each dimension kept clear of the edges (default: 0.9)")
@click.option("--signals", "signals_file", type=click.Path(exists=True, path_type=Path),
              default=None, help="JSON file with faces, focal points and roles")
@click.option("--advice", "advice_file", type=click.Path(exists=True, path_type=Path),
              default=None, help="JSON file with per-target layout advice")
@click.option("--stats", "stats_file", type=click.Path(path_type=Path), default=None,
              help="Pattern statistics file used to calibrate advice")
@click.option("--group-proximity", is_flag=True,
              help="Group loose nearby elements into auto-layout containers first")
@click.option("--convert-auto-layout", is_flag=True,
              help="Let a frame without auto-layout gain one when its children line up")
def adapt(
    input_file: Path,
    target_id: str | None,
    width: int | None,
    height: int | None,
    output: Path | None,
    safe_area: float,
    signals_file: Path | None,
    advice_file: Path | None,
    stats_file: Path | None,
    group_proximity: bool,
    convert_auto_layout: bool,
) -> None:
    """Adapt a frame tree to a target size."""
    if target_id is not None:
        target = get_target(target_id)
        width, height = target.width, target.height
        suffix = target_id
    elif width is not None and height is not None:
        if advice_file is not None:
            raise click.UsageError("--advice needs --target; advice entries are keyed by target id")
        suffix = f"{width}x{height}"
    else:
        raise click.UsageError("Pass --target or both --width and --height")

    frame = _load_frame(input_file)
    signals = parse_signals(_read_json(signals_file))

    advice = NoAdvice("no advice")
    raw_advice = _read_json(advice_file)
    if raw_advice is not None and target_id is not None:
        repo = JsonFileStatsRepository(stats_file) if stats_file is not None else None
        advice = resolve_advice(parse_advice(raw_advice), target_id, repo)

    result = scale_node_tree(
        frame,
        width,
        height,
        safe_area_ratio=safe_area,
        signals=signals,
        advice=advice,
        zone=_zone_for(target_id),
        convert_auto_layout=convert_auto_layout,
        proximity=ProximityOptions() if group_proximity else None,
    )

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if not result.success:
        click.echo("Adaptation errors:", err=True)
        for err in result.errors:
            click.echo(f"  - {err}", err=True)
        raise SystemExit(1)

    if output is None:
        output = input_file.with_name(f"{input_file.stem}_{suffix}.json")
    output.write_text(dump_tree(frame))

    metrics = result.metrics
    click.echo(f"Adapted '{frame.name or frame.id}' to {width}x{height} "
               f"(scale {metrics.scale:.3f}, {metrics.profile.value} profile, "
               f"{frame.layout_mode.value} layout) -> {output}")
    if result.proximity is not None and result.proximity.groups_created:
        click.echo(f"  Grouped {result.proximity.elements_grouped} elements "
                   f"into {result.proximity.groups_created} containers")
    if metrics.placement is not None:
        click.echo(f"  Recommended placement: {metrics.placement.recommended_region}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
def validate(input_file: Path) -> None:
    """Validate a frame tree document."""
    frame = _load_frame(input_file)

    errors = []
    ids = Counter(node.id for node, _ in frame.walk())
    for node_id, count in ids.items():
        if count > 1:
            errors.append(f"Node id '{node_id}' is used {count} times")

    for node, _ in frame.walk():
        if not isinstance(node, TextNode):
            continue
        length = len(node.characters)
        for run in node.runs:
            if run.start < 0 or run.end > length or run.start >= run.end:
                errors.append(f"Text '{node.id}' has run {run.start}-{run.end} "
                              f"outside its {length} characters")

    if errors:
        click.echo("Validation errors:", err=True)
        for err in errors:
            click.echo(f"  - {err}", err=True)
        raise SystemExit(1)

    click.echo(f"Valid: {len(ids)} nodes, "
               f"{len(frame.children)} top-level children, "
               f"{frame.width:g}x{frame.height:g}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
def info(input_file: Path) -> None:
    """Show information about a frame tree document."""
    frame = _load_frame(input_file)
    content = analyze_content(frame)

    click.echo(f"Frame: {frame.name or frame.id}")
    click.echo(f"Size: {frame.width:g}x{frame.height:g}")
    click.echo(f"Profile: {resolve_layout_profile(frame.width, frame.height).value}")
    click.echo(f"Layout: {frame.layout_mode.value}")
    click.echo(f"Density: {content.content_density.value}")
    click.echo(f"Strategy: {content.recommended_strategy.value}")
    kinds = Counter(node.kind for node, depth in frame.walk() if depth > 0)
    click.echo(f"Nodes: {sum(kinds.values())}")
    for kind, count in sorted(kinds.items()):
        click.echo(f"  {kind}: {count}")


@cli.command()
def targets() -> None:
    """List the named output targets."""
    for target in sorted(TARGETS.values(), key=lambda t: t.id):
        zone = " [platform safe zone]" if _zone_for(target.id) else ""
        click.echo(f"{target.id}: {target.width}x{target.height} "
                   f"{target.label}{zone}")


@cli.command()
@click.option("-t", "--target", "target_id", type=click.Choice(sorted(TARGETS)),
              required=True, help="Named output target")
@click.option("--safe-area", type=float, default=0.9,
              help="Fraction of each dimension kept clear of the edges (default: 0.9)")
@click.option("--signals", "signals_file", type=click.Path(exists=True, path_type=Path),
              default=None, help="JSON file with faces and focal points")
def score(target_id: str, safe_area: float, signals_file: Path | None) -> None:
    """Print the 3x3 placement scores for a target."""
    target = get_target(target_id)
    signals = parse_signals(_read_json(signals_file))
    insets = resolve_safe_area_insets(
        target.width, target.height, safe_area, _zone_for(target_id),
    )
    scoring = calculate_placement_scores(
        resolve_layout_profile(target.width, target.height),
        safe_bounds(target.width, target.height, insets),
        target.width,
        target.height,
        faces=signals.faces,
        focal_point=signals.primary_focal_point(),
    )

    for row in range(3):
        cells = scoring.regions[row * 3:row * 3 + 3]
        click.echo("  ".join(f"{r.region_id:>13} {r.final_score:.2f}" for r in cells))
    click.echo(f"Recommended: {scoring.recommended_region}")


@cli.command()
@click.option("-t", "--target", "target_id", type=click.Choice(sorted(TARGETS)),
              required=True, help="Named output target")
@click.option("--recommended", type=click.Choice(sorted(LAYOUT_PATTERNS)), required=True,
              help="Pattern the advice recommended")
@click.option("--selected", type=click.Choice(sorted(LAYOUT_PATTERNS)), required=True,
              help="Pattern the user kept")
@click.option("--stats", "stats_file", type=click.Path(path_type=Path), required=True,
              help="Pattern statistics file to update")
def record(target_id: str, recommended: str, selected: str, stats_file: Path) -> None:
    """Record which layout pattern was kept for a target."""
    repo = JsonFileStatsRepository(stats_file)
    record_pattern_selection(repo, target_id, recommended, selected)
    weight = calibrated_affinity_weight(repo, target_id, selected)
    verdict = "accepted" if recommended == selected else "overridden"
    click.echo(f"Recorded {target_id}: {recommended} {verdict} -> {selected} "
               f"(affinity weight {weight:+.3f})")
