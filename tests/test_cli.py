"""Tests for the CLI entry points."""

import json

from click.testing import CliRunner

from layout_retarget import __version__
from layout_retarget.cli import cli
from layout_retarget.parser import load_tree

ROW_DOC = {
    "type": "frame", "id": "root", "name": "Promo", "width": 1000, "height": 1000,
    "layout_mode": "HORIZONTAL", "item_spacing": 20,
    "children": [
        {"type": "rectangle", "id": "a", "name": "Card A", "x": 40, "y": 400, "width": 200, "height": 200},
        {"type": "rectangle", "id": "b", "name": "Card B", "x": 260, "y": 400, "width": 200, "height": 200},
        {"type": "text", "id": "t", "name": "Title", "x": 480, "y": 400, "width": 200, "height": 60,
         "characters": "Hello", "font_size": 32},
    ],
}


def _write(tmp_path, doc, name="promo.json"):
    path = tmp_path / name
    path.write_text(doc if isinstance(doc, str) else json.dumps(doc))
    return path


def test_adapt_named_target_default_output(tmp_path):
    """adapt writes <stem>_<target>.json next to the input."""
    src = _write(tmp_path, ROW_DOC)
    result = CliRunner().invoke(cli, ["adapt", str(src), "-t", "tiktok-vertical"])
    assert result.exit_code == 0, result.output
    out = tmp_path / "promo_tiktok-vertical.json"
    assert out.exists()
    assert "Adapted 'Promo' to 1080x1920" in result.output
    assert "vertical profile" in result.output
    frame = load_tree(out.read_text())
    assert (frame.width, frame.height) == (1080, 1920)
    assert frame.layout_mode.value == "VERTICAL"


def test_adapt_explicit_size_and_output(tmp_path):
    """adapt accepts --width/--height and -o."""
    src = _write(tmp_path, ROW_DOC)
    out = tmp_path / "wide.json"
    result = CliRunner().invoke(cli, ["adapt", str(src), "--width", "1920", "--height", "1080",
                                      "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert load_tree(out.read_text()).width == 1920


def test_adapt_requires_a_size(tmp_path):
    """adapt without a target or both dimensions is a usage error."""
    src = _write(tmp_path, ROW_DOC)
    result = CliRunner().invoke(cli, ["adapt", str(src), "--width", "1920"])
    assert result.exit_code == 2
    assert "--target" in result.output


def test_adapt_with_signals_reports_placement(tmp_path):
    """Faces in a signals file produce a placement recommendation."""
    doc = dict(ROW_DOC, layout_mode="NONE")
    src = _write(tmp_path, doc)
    signals = _write(tmp_path, {"faces": [{"x": 0.6, "y": 0.2, "width": 0.2, "height": 0.2}]},
                     "signals.json")
    result = CliRunner().invoke(cli, ["adapt", str(src), "-t", "web-hero", "--signals", str(signals)])
    assert "Recommended placement:" in result.output


def test_adapt_bad_json(tmp_path):
    """Malformed input is a parse error with exit code 1."""
    src = _write(tmp_path, "{not json")
    result = CliRunner().invoke(cli, ["adapt", str(src), "-t", "web-hero"])
    assert result.exit_code == 1
    assert "Parse error" in result.output


def test_validate_success(tmp_path):
    """validate summarizes a well-formed document."""
    src = _write(tmp_path, ROW_DOC)
    result = CliRunner().invoke(cli, ["validate", str(src)])
    assert result.exit_code == 0, result.output
    assert "Valid: 4 nodes, 3 top-level children, 1000x1000" in result.output


def test_validate_duplicate_ids_and_runs(tmp_path):
    """validate reports duplicate ids and out-of-range text runs."""
    doc = json.loads(json.dumps(ROW_DOC))
    doc["children"][1]["id"] = "a"
    doc["children"][2]["runs"] = [{"start": 0, "end": 9, "font_size": 32}]
    src = _write(tmp_path, doc)
    result = CliRunner().invoke(cli, ["validate", str(src)])
    assert result.exit_code == 1
    assert "Node id 'a' is used 2 times" in result.output
    assert "Text 't' has run 0-9" in result.output


def test_validate_unknown_node_type(tmp_path):
    """Structural problems are parse errors."""
    doc = {"type": "frame", "id": "root", "width": 10, "height": 10,
           "children": [{"type": "widget", "id": "w"}]}
    result = CliRunner().invoke(cli, ["validate", str(_write(tmp_path, doc))])
    assert result.exit_code == 1
    assert "Parse error" in result.output
    assert "unknown node type" in result.output


def test_info(tmp_path):
    """info prints size, profile, layout and node counts."""
    result = CliRunner().invoke(cli, ["info", str(_write(tmp_path, ROW_DOC))])
    assert result.exit_code == 0, result.output
    assert "Frame: Promo" in result.output
    assert "Size: 1000x1000" in result.output
    assert "Profile: square" in result.output
    assert "Layout: HORIZONTAL" in result.output
    assert "Nodes: 3" in result.output
    assert "vector: 2" in result.output


def test_targets():
    """targets lists every named target and flags platform zones."""
    result = CliRunner().invoke(cli, ["targets"])
    assert result.exit_code == 0
    assert "web-hero: 1440x600" in result.output
    tiktok = next(line for line in result.output.splitlines() if line.startswith("tiktok-vertical"))
    assert tiktok.endswith("[platform safe zone]")


def test_score():
    """score prints a 3x3 grid and a recommendation."""
    result = CliRunner().invoke(cli, ["score", "-t", "figma-cover"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert len(lines) == 4
    assert lines[-1].startswith("Recommended: ")


def test_version():
    """--version prints the package version."""
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_validate_rejects_non_object_fill(tmp_path):
    """A malformed paint list is a parse error, not a crash."""
    doc = dict(ROW_DOC, fills=["#fff"])
    result = CliRunner().invoke(cli, ["validate", str(_write(tmp_path, doc))])
    assert result.exit_code == 1
    assert "Parse error" in result.output


def test_adapt_advice_needs_named_target(tmp_path):
    """Advice is keyed by target id, so explicit sizes cannot use it."""
    src = _write(tmp_path, ROW_DOC)
    advice = _write(tmp_path, {"entries": []}, "advice.json")
    result = CliRunner().invoke(cli, ["adapt", str(src), "--width", "1920", "--height", "1080",
                                      "--advice", str(advice)])
    assert result.exit_code == 2
    assert "--advice needs --target" in result.output


def test_record_selection(tmp_path):
    """record stores an accepted recommendation in the stats file."""
    stats = tmp_path / "stats.json"
    result = CliRunner().invoke(cli, ["record", "-t", "web-hero", "--recommended", "banner-spread",
                                      "--selected", "banner-spread", "--stats", str(stats)])
    assert result.exit_code == 0, result.output
    assert "accepted" in result.output
    assert json.loads(stats.read_text())["metadata"]["total_recommendations"] == 1
