"""Plain-text rendering of the pitch grid for terminals."""

from __future__ import annotations
from typing import List, Optional

from grid import CellCategory, Edge, Grid, LEGEND, Selection
from percent import PercentResult

CELL_WIDTH = 7

# One-character marker appended to each cell value
CATEGORY_MARKERS = {
    CellCategory.DIAGONAL: "#",
    CellCategory.GRIDLINE_BLACK: "#",
    CellCategory.GRIDLINE_GRAY: ":",
    CellCategory.IN_RANGE: " ",
    CellCategory.OUT_OF_RANGE: "x",
}

LEGEND_MARKERS = {"green": " ", "red": "x", "gray": ":"}

OUT_OF_RANGE_MESSAGE = "Source BPM out of range."


def render_table(grid: Grid, selection: Optional[Selection] = None) -> str:
    """Render the whole grid, one line per source BPM.

    In-range cells sitting on the zone outline are wrapped in '|' on the
    side of a left/right edge; the selected cell is wrapped in brackets.
    """
    lines: List[str] = []
    header = "src\\dst".rjust(CELL_WIDTH) + "".join(str(bpm).rjust(CELL_WIDTH) for bpm in grid.bpms)
    lines.append(header)

    for row in grid.rows:
        parts = [str(row.src).rjust(CELL_WIDTH)]
        for cell in row.cells:
            text = cell.value_text + CATEGORY_MARKERS[cell.category]
            if Edge.LEFT in cell.edges:
                text = "|" + text
            if Edge.RIGHT in cell.edges:
                text = text + "|"
            if selection and selection.src == cell.src and selection.dest == cell.dest:
                text = f"[{text.strip()}]"
            parts.append(text.rjust(CELL_WIDTH))
        lines.append("".join(parts))

    return "\n".join(lines)


def render_legend() -> str:
    return "  ".join(f"'{LEGEND_MARKERS[swatch]}' {label}" for swatch, label in LEGEND)


def render_list(grid: Grid, source_bpm: int, dest_bpm: Optional[int] = None) -> str:
    """Render the selectable destinations for one source BPM."""
    row = grid.row_for(source_bpm)
    if row is None:
        return OUT_OF_RANGE_MESSAGE

    lines = []
    for cell in row.cells:
        if not cell.selectable:
            continue
        marker = ">" if cell.dest == dest_bpm else " "
        flag = "" if cell.category is CellCategory.IN_RANGE else f"  ({cell.category.value})"
        lines.append(f"{marker} {cell.dest} BPM  {cell.value_text_signed}%{flag}")
    return "\n".join(lines)


def render_lookup(result: Optional[PercentResult]) -> str:
    if result is None:
        return "--"
    return f"{result.value_text_signed}%  {result.label}"
