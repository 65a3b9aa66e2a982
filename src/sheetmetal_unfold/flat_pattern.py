"""
Flat-pattern export for sheet-metal trees.

Turns the flattened placements of an evaluation into manufacturing geometry:
  - CUT (red, ACI 1): outer boundary of the unfolded part and hole loops
  - BEND_CENTER (blue, ACI 5, dashed): bend centre lines

Seams shared by a flat and its bend band appear twice in the raw segment
soup and are dropped, so only the true boundary is cut.

Units: millimeters. DXF format: R2010.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import ezdxf
import numpy as np
import svgwrite
from shapely.geometry import Polygon

from sheetmetal_unfold.contracts import (
    BendPlacement2D,
    FlatPlacement,
    SheetMetalEvaluation,
    SheetMetalTree,
    UnfoldConfig,
    Vec2,
)
from sheetmetal_unfold.evaluate import evaluate_sheet_metal
from sheetmetal_unfold.planar import normalize_loop_points

logger = logging.getLogger(__name__)

EPS = 1e-8
SEGMENT_KEY_QUANTUM = 1e-6


@dataclass(frozen=True)
class CutSegment:
    a: Vec2
    b: Vec2


@dataclass(frozen=True)
class PatternBounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return max(self.max_x - self.min_x, 1e-6)

    @property
    def height(self) -> float:
        return max(self.max_y - self.min_y, 1e-6)


@dataclass
class FlatPattern:
    """Cut lines, bend centre lines and bounds of one unfolded part."""
    cut_segments: List[CutSegment] = field(default_factory=list)
    bend_centerlines: List[List[Vec2]] = field(default_factory=list)
    bounds: PatternBounds = field(default_factory=lambda: PatternBounds(0.0, 0.0, 1.0, 1.0))


@dataclass
class FlatPatternViolation:
    """A single flat-pattern manufacturability problem."""

    rule_name: str
    severity: str  # "error" or "warning"
    message: str
    flat_ids: Tuple[str, ...] = ()
    value: float = 0.0
    limit: float = 0.0


@dataclass
class FlatPatternExportConfig:
    """Configuration for DXF export."""
    cut_layer: str = "CUT"
    bend_layer: str = "BEND_CENTER"
    cut_color: int = 1       # ACI red
    bend_color: int = 5      # ACI blue
    bend_linetype: str = "SM_BEND_DASH"
    bend_dash_mm: float = 4.0
    bend_gap_mm: float = 2.0


# ─── Pattern construction ────────────────────────────────────────────────────

def build_flat_pattern(evaluation: SheetMetalEvaluation) -> FlatPattern:
    """Collect cut segments and bend centre lines from a flattened evaluation."""
    counter: Dict[Tuple[Tuple[int, int], Tuple[int, int]], List] = {}

    for placement in evaluation.flats_2d:
        _add_loop_segments(counter, _world_loop(placement, placement.flat.outline))
        for hole in placement.flat.holes or []:
            loop = normalize_loop_points(hole)
            if loop:
                _add_loop_segments(counter, _world_loop(placement, loop))

    for bend in evaluation.bends_2d:
        band = _bend_band(bend, bend.allowance)
        if band is None:
            continue
        base, shifted = band
        for i in range(len(base) - 1):
            _add_segment(counter, base[i], base[i + 1])
            _add_segment(counter, shifted[i], shifted[i + 1])
        _add_segment(counter, base[0], shifted[0])
        _add_segment(counter, base[-1], shifted[-1])

    cut_segments = [
        CutSegment(a=entry[1], b=entry[2]) for entry in counter.values() if entry[0] == 1
    ]

    centerlines = []
    for bend in evaluation.bends_2d:
        band = _bend_band(bend, bend.allowance * 0.5)
        if band is not None:
            centerlines.append(band[1])

    pattern = FlatPattern(
        cut_segments=cut_segments,
        bend_centerlines=centerlines,
        bounds=_bounds(cut_segments, centerlines),
    )
    logger.debug(
        "Flat pattern: %d cut segments, %d bend lines", len(cut_segments), len(centerlines)
    )
    return pattern


def flat_pattern_from_tree(tree: SheetMetalTree, config: Optional[UnfoldConfig] = None) -> FlatPattern:
    return build_flat_pattern(evaluate_sheet_metal(tree, config))


def flat_pattern_overlaps(
    evaluation: SheetMetalEvaluation,
    min_overlap_area_mm2: float = 1e-6,
) -> List[FlatPatternViolation]:
    """Report pairs of flats whose unfolded regions overlap.

    An overlapping pattern cannot be cut from a single sheet.
    """
    regions = []
    for placement in evaluation.flats_2d:
        outline = _world_loop(placement, placement.flat.outline)
        holes = []
        for hole in placement.flat.holes or []:
            loop = normalize_loop_points(hole)
            if loop:
                holes.append(_world_loop(placement, loop))
        polygon = Polygon(outline, holes)
        if not polygon.is_valid:
            polygon = polygon.buffer(0)
        regions.append((placement.flat.id, polygon))

    violations = []
    for i in range(len(regions)):
        id_a, poly_a = regions[i]
        for j in range(i + 1, len(regions)):
            id_b, poly_b = regions[j]
            if not poly_a.intersects(poly_b):
                continue
            area = poly_a.intersection(poly_b).area
            if area > min_overlap_area_mm2:
                violations.append(FlatPatternViolation(
                    rule_name="flat_overlap",
                    severity="error",
                    message=f'Flats "{id_a}" and "{id_b}" overlap in the flat pattern '
                            f"({area:.3f} mm²)",
                    flat_ids=(id_a, id_b),
                    value=area,
                    limit=min_overlap_area_mm2,
                ))
    if violations:
        logger.warning("Flat pattern has %d overlapping flat pairs", len(violations))
    return violations


# ─── Writers ─────────────────────────────────────────────────────────────────

def flat_pattern_to_dxf(
    pattern: FlatPattern,
    filepath: str,
    config: Optional[FlatPatternExportConfig] = None,
) -> str:
    """Write the pattern to a DXF file.

    Returns:
        Path to created DXF file.
    """
    if config is None:
        config = FlatPatternExportConfig()

    doc = ezdxf.new("R2010")
    doc.units = ezdxf.units.MM
    msp = doc.modelspace()

    doc.linetypes.add(
        config.bend_linetype,
        pattern=[config.bend_dash_mm + config.bend_gap_mm, config.bend_dash_mm, -config.bend_gap_mm],
        description="Bend centre line _ _ _ _",
    )
    doc.layers.add(config.cut_layer, color=config.cut_color)
    doc.layers.add(config.bend_layer, color=config.bend_color, linetype=config.bend_linetype)

    for seg in pattern.cut_segments:
        msp.add_line(seg.a, seg.b, dxfattribs={"layer": config.cut_layer})
    for line in pattern.bend_centerlines:
        for a, b in zip(line[:-1], line[1:]):
            msp.add_line(a, b, dxfattribs={"layer": config.bend_layer})

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    doc.saveas(filepath)
    logger.info("Exported flat-pattern DXF: %s", filepath)
    return filepath


def flat_pattern_to_svg(pattern: FlatPattern, filepath: str, pad_ratio: float = 0.03) -> str:
    """Write the pattern to an SVG file, y axis pointing up as in CAD.

    Returns:
        Path to created SVG file.
    """
    bb = pattern.bounds
    extent = max(bb.width, bb.height)
    pad = extent * pad_ratio
    width = bb.width + 2 * pad
    height = bb.height + 2 * pad
    stroke_width = max(extent * 0.0012, 0.15)

    dwg = svgwrite.Drawing(
        filepath,
        size=(f"{width:.6f}mm", f"{height:.6f}mm"),
        viewBox=f"{bb.min_x - pad:.6f} {bb.min_y - pad:.6f} {width:.6f} {height:.6f}",
    )

    # mirror about the bounds' mid-height
    flipped = dwg.g(id="flat_pattern")
    flipped.translate(0, bb.min_y + bb.max_y)
    flipped.scale(1, -1)

    cut = dwg.g(id="cut", fill="none", stroke="#ff0000", stroke_width=stroke_width, stroke_linecap="round")
    for seg in pattern.cut_segments:
        cut.add(dwg.line(start=seg.a, end=seg.b))

    bend = dwg.g(
        id="bend_center",
        fill="none",
        stroke="#0066ff",
        stroke_width=stroke_width,
        stroke_linecap="round",
        stroke_dasharray=f"{stroke_width * 8:.6f},{stroke_width * 4:.6f}",
    )
    for line in pattern.bend_centerlines:
        for a, b in zip(line[:-1], line[1:]):
            bend.add(dwg.line(start=a, end=b))

    flipped.add(cut)
    flipped.add(bend)
    dwg.add(flipped)

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    dwg.save()
    logger.info("Exported flat-pattern SVG: %s", filepath)
    return filepath


# ─── Internal helpers ────────────────────────────────────────────────────────

def _world_loop(placement: FlatPlacement, points: Sequence[Sequence[float]]) -> List[Vec2]:
    return [(x, y) for x, y, _ in placement.transform(points)]


def _quantize(point: Vec2) -> Tuple[int, int]:
    return (int(round(point[0] / SEGMENT_KEY_QUANTUM)), int(round(point[1] / SEGMENT_KEY_QUANTUM)))


def _add_segment(counter: Dict, a: Vec2, b: Vec2) -> None:
    if (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 <= EPS * EPS:
        return
    ka, kb = _quantize(a), _quantize(b)
    key = (ka, kb) if ka < kb else (kb, ka)
    entry = counter.get(key)
    if entry is None:
        counter[key] = [1, (float(a[0]), float(a[1])), (float(b[0]), float(b[1]))]
    else:
        entry[0] += 1


def _add_loop_segments(counter: Dict, loop: Sequence[Vec2]) -> None:
    if len(loop) < 2:
        return
    for i in range(len(loop)):
        _add_segment(counter, loop[i], loop[(i + 1) % len(loop)])


def _bend_band(bend: BendPlacement2D, offset: float) -> Optional[Tuple[List[Vec2], List[Vec2]]]:
    """Bend edge polyline and its copy pushed *offset* along the shift direction."""
    if len(bend.edge_world) < 2 or not offset > EPS:
        return None
    shift = np.array(bend.shift_dir, dtype=float)
    norm = float(np.linalg.norm(shift))
    if not norm > EPS:
        return None
    shift = shift / norm * offset
    base = [(float(p[0]), float(p[1])) for p in bend.edge_world]
    shifted = [(x + float(shift[0]), y + float(shift[1])) for x, y in base]
    return base, shifted


def _bounds(cut_segments: Sequence[CutSegment], centerlines: Sequence[Sequence[Vec2]]) -> PatternBounds:
    points = [seg.a for seg in cut_segments] + [seg.b for seg in cut_segments]
    for line in centerlines:
        points.extend(line)
    points = [p for p in points if np.isfinite(p[0]) and np.isfinite(p[1])]
    if not points:
        return PatternBounds(0.0, 0.0, 1.0, 1.0)
    arr = np.asarray(points, dtype=float)
    return PatternBounds(
        min_x=float(arr[:, 0].min()),
        min_y=float(arr[:, 1].min()),
        max_x=float(arr[:, 0].max()),
        max_y=float(arr[:, 1].max()),
    )
