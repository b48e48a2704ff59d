"""BPM pitch grid builder.

Builds the square table of pitch changes between every pair of BPM values in a
fixed window, classifies each cell and marks the outline of the in-range zone.
The grid is an immutable snapshot; callers rebuild it whenever the minimum BPM
or the pitch ceiling changes.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional, Tuple

from percent import (
    DISPLAY_DECIMALS,
    RANGE_DECIMALS,
    format_label,
    format_scaled,
    format_scaled_signed,
    round_percent_scaled,
)

log = logging.getLogger(__name__)

GRID_SPAN = 20  # window covers GRID_SPAN + 1 BPM values
GRIDLINE_STEP = 10


class CellCategory(Enum):
    """Visual category of a grid cell, in classification priority order."""
    DIAGONAL = "diagonal"
    GRIDLINE_BLACK = "gridline_black"
    GRIDLINE_GRAY = "gridline_gray"
    IN_RANGE = "in_range"
    OUT_OF_RANGE = "out_of_range"

    @property
    def class_name(self) -> str:
        return CATEGORY_CLASSES[self]


class Edge(Enum):
    """Side of an in-range cell that borders an out-of-range neighbour."""
    RIGHT = "edge-r"
    LEFT = "edge-l"
    TOP = "edge-t"
    BOTTOM = "edge-b"


CATEGORY_CLASSES: Dict[CellCategory, str] = {
    CellCategory.DIAGONAL: "bpmtable_black",
    CellCategory.GRIDLINE_BLACK: "bpmtable_black",
    CellCategory.GRIDLINE_GRAY: "bpmtable_gray",
    CellCategory.IN_RANGE: "bpmtable_greenpitch",
    CellCategory.OUT_OF_RANGE: "bpmtable_redpitch",
}

# (css swatch, label) in display order
LEGEND: Tuple[Tuple[str, str], ...] = (
    ("green", "Pitch OK"),
    ("red", "Out of pitch"),
    ("gray", "10 BPM marker"),
)


@dataclass(frozen=True)
class Selection:
    """A (source, destination) pair chosen for the single-pair lookup."""
    src: int
    dest: int
    label: str


@dataclass(frozen=True)
class Cell:
    src: int
    dest: int
    value_text: str
    value_text_signed: str
    label: str
    category: CellCategory
    selectable: bool
    edges: frozenset = field(default_factory=frozenset)

    @property
    def key(self) -> str:
        return f"{self.src}-{self.dest}"

    @property
    def class_name(self) -> str:
        """Category class followed by edge classes (right, left, top, bottom)."""
        parts = [self.category.class_name]
        parts.extend(edge.value for edge in Edge if edge in self.edges)
        return " ".join(parts)

    def to_selection(self) -> Selection:
        return Selection(src=self.src, dest=self.dest, label=self.label)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "src": self.src,
            "dest": self.dest,
            "value_text": self.value_text,
            "value_text_signed": self.value_text_signed,
            "label": self.label,
            "category": self.category.value,
            "class_name": self.class_name,
            "selectable": self.selectable,
            "edges": [edge.value for edge in Edge if edge in self.edges],
        }


@dataclass(frozen=True)
class Row:
    src: int
    cells: Tuple[Cell, ...]


@dataclass(frozen=True)
class Grid:
    """Fully classified pitch grid over ``bpms``."""
    bpms: Tuple[int, ...]
    rows: Tuple[Row, ...]
    default_selection: Optional[Selection] = None

    @property
    def range_min(self) -> int:
        return self.bpms[0]

    @property
    def range_max(self) -> int:
        return self.bpms[-1]

    @property
    def size(self) -> int:
        return len(self.bpms)

    def row_for(self, src: int) -> Optional[Row]:
        """Return the row of destinations for ``src``, or None when out of range."""
        if src < self.range_min or src > self.range_max:
            return None
        return self.rows[src - self.range_min]

    def get_cell(self, src: int, dest: int) -> Optional[Cell]:
        """Return the selectable cell for a BPM pair, or None.

        None is returned when either BPM falls outside the window or the pair
        is on the diagonal.
        """
        row = self.row_for(src)
        if row is None or dest < self.range_min or dest > self.range_max:
            return None

        cell = row.cells[dest - self.range_min]
        if not cell.selectable:
            return None
        return cell

    def to_dict(self) -> dict:
        selection = self.default_selection
        return {
            "bpms": list(self.bpms),
            "rows": [
                {"src": row.src, "cells": [cell.to_dict() for cell in row.cells]}
                for row in self.rows
            ],
            "default_selection": (
                {"src": selection.src, "dest": selection.dest, "label": selection.label}
                if selection else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Grid':
        """Rebuild a Grid from :meth:`to_dict` output (e.g. an API response)."""
        rows = []
        for row in data["rows"]:
            cells = tuple(
                Cell(
                    src=cell["src"],
                    dest=cell["dest"],
                    value_text=cell["value_text"],
                    value_text_signed=cell["value_text_signed"],
                    label=cell["label"],
                    category=CellCategory(cell["category"]),
                    selectable=cell["selectable"],
                    edges=frozenset(Edge(edge) for edge in cell.get("edges", [])),
                )
                for cell in row["cells"]
            )
            rows.append(Row(src=row["src"], cells=cells))

        selection = data.get("default_selection")
        return cls(
            bpms=tuple(data["bpms"]),
            rows=tuple(rows),
            default_selection=Selection(**selection) if selection else None,
        )


def pitch_ceiling_tenths(pitch_ceiling) -> int:
    """Scale a pitch ceiling to whole tenths of a percent (half-up)."""
    tenths = Decimal(str(pitch_ceiling)) * 10
    return int(tenths.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_gridline(bpm: int) -> bool:
    return bpm % GRIDLINE_STEP == 0


def classify(src: int, dest: int, in_range: bool) -> CellCategory:
    """Pick the category of a cell; the first matching rule wins."""
    if src == dest:
        return CellCategory.DIAGONAL
    if is_gridline(src) and is_gridline(dest):
        return CellCategory.GRIDLINE_BLACK
    if is_gridline(src) or is_gridline(dest):
        return CellCategory.GRIDLINE_GRAY
    if in_range:
        return CellCategory.IN_RANGE
    return CellCategory.OUT_OF_RANGE


def _edges_for(in_range: List[List[bool]], i: int, j: int) -> frozenset:
    size = len(in_range)
    edges = set()
    if j + 1 < size and not in_range[i][j + 1]:
        edges.add(Edge.RIGHT)
    if j - 1 >= 0 and not in_range[i][j - 1]:
        edges.add(Edge.LEFT)
    if i - 1 >= 0 and not in_range[i - 1][j]:
        edges.add(Edge.TOP)
    if i + 1 < size and not in_range[i + 1][j]:
        edges.add(Edge.BOTTOM)
    return frozenset(edges)


def build_grid(min_bpm: int, pitch_ceiling) -> Grid:
    """Build the classified grid for ``[min_bpm, min_bpm + GRID_SPAN]``.

    Args:
        min_bpm: First BPM of the window (row and column)
        pitch_ceiling: Maximum absolute pitch change, in percent, for a cell
            to count as in range

    Returns:
        A new Grid; identical arguments always give an equal Grid
    """
    bpms = tuple(min_bpm + i for i in range(GRID_SPAN + 1))
    ceiling = pitch_ceiling_tenths(pitch_ceiling)

    in_range = [
        [abs(round_percent_scaled(src, dest, RANGE_DECIMALS)) <= ceiling for dest in bpms]
        for src in bpms
    ]

    default_selection: Optional[Selection] = None
    rows = []

    for i, src in enumerate(bpms):
        cells = []
        for j, dest in enumerate(bpms):
            category = classify(src, dest, in_range[i][j])
            is_same = category is CellCategory.DIAGONAL

            if is_same:
                value_text = value_text_signed = label = ""
            else:
                scaled = round_percent_scaled(src, dest, DISPLAY_DECIMALS)
                value_text = format_scaled(abs(scaled), DISPLAY_DECIMALS)
                value_text_signed = format_scaled_signed(scaled, DISPLAY_DECIMALS)
                label = format_label(src, dest, value_text_signed)

            # Only in-range cells carry the outline, gridlines included in the neighbour test
            edges = _edges_for(in_range, i, j) if category is CellCategory.IN_RANGE else frozenset()

            cell = Cell(
                src=src,
                dest=dest,
                value_text=value_text,
                value_text_signed=value_text_signed,
                label=label,
                category=category,
                selectable=not is_same,
                edges=edges,
            )

            if default_selection is None and src == min_bpm and dest == min_bpm + 1:
                default_selection = cell.to_selection()

            cells.append(cell)
        rows.append(Row(src=src, cells=tuple(cells)))

    log.debug("Built %dx%d grid from %s BPM (ceiling %s tenths)", len(bpms), len(bpms), min_bpm, ceiling)
    return Grid(bpms=bpms, rows=tuple(rows), default_selection=default_selection)


def grid_metrics(grid: Grid, pitch_ceiling) -> List[Tuple[str, str]]:
    """Summary lines shown next to the table."""
    return [
        ("Grid", f"{grid.size} x {grid.size}"),
        ("Range", f"{grid.range_min} - {grid.range_max} BPM"),
        ("Pitch cutoff", f"{float(pitch_ceiling):.1f}%"),
    ]
