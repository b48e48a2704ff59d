"""Table controller state.

Holds the values behind the four input fields (minimum BPM, pitch ceiling,
source and destination BPM), commits free text into them and keeps the grid
in sync. The grid is rebuilt in full whenever the minimum BPM or the pitch
ceiling changes.
"""

from __future__ import annotations
import logging
import threading
from decimal import Decimal
from typing import Any, Dict, Optional

from grid import Cell, Grid, Selection, build_grid, grid_metrics
from inputs import (
    BPM_MAX,
    clamp_bpm,
    clamp_pitch,
    parse_decimal_input,
    parse_integer_input,
)
from percent import PercentResult, compute_percent

log = logging.getLogger(__name__)

PLACEHOLDER = "--"

DEFAULT_BPM_MIN = 120
DEFAULT_PITCH_MAX = Decimal("6")


class TableControls:
    """Current table settings and single-pair lookup."""

    def __init__(self, bpm_min: int = DEFAULT_BPM_MIN, pitch_max=DEFAULT_PITCH_MAX,
                 source_bpm: Optional[int] = None, dest_bpm: Optional[int] = None):
        self._lock = threading.RLock()
        self._bpm_min = clamp_bpm(int(bpm_min))
        self._pitch_max = clamp_pitch(pitch_max)
        self.source_bpm = clamp_bpm(source_bpm if source_bpm is not None else self._bpm_min)
        self.dest_bpm = clamp_bpm(dest_bpm if dest_bpm is not None else self._bpm_min + 1)
        self._grid = build_grid(self._bpm_min, self._pitch_max)

    @classmethod
    def from_config(cls, table_config) -> 'TableControls':
        """Create controls from a TableConfig section."""
        return cls(
            bpm_min=table_config.min_bpm,
            pitch_max=Decimal(str(table_config.pitch_max)),
            source_bpm=table_config.source_bpm,
            dest_bpm=table_config.dest_bpm,
        )

    @property
    def bpm_min(self) -> int:
        return self._bpm_min

    @property
    def pitch_max(self) -> Decimal:
        return self._pitch_max

    @property
    def grid(self) -> Grid:
        return self._grid

    def _rebuild(self) -> None:
        self._grid = build_grid(self._bpm_min, self._pitch_max)
        log.debug("Grid rebuilt: min_bpm=%s pitch_max=%s", self._bpm_min, self._pitch_max)

    # ------------------------------------------------------------------
    # Field commits. Each returns False and keeps the last valid value
    # when the text cannot be parsed.
    # ------------------------------------------------------------------

    def commit_bpm_min(self, text: str) -> bool:
        parsed = parse_integer_input(text)
        if parsed is None:
            log.debug("Rejected min BPM input %r, keeping %s", text, self._bpm_min)
            return False

        with self._lock:
            value = clamp_bpm(parsed)
            next_dest = value + 1 if value < BPM_MAX else value - 1
            self._bpm_min = value
            self.source_bpm = value
            self.dest_bpm = clamp_bpm(next_dest)
            self._rebuild()
        return True

    def commit_pitch(self, text: str) -> bool:
        parsed = parse_decimal_input(text)
        if parsed is None:
            log.debug("Rejected pitch input %r, keeping %s", text, self._pitch_max)
            return False

        with self._lock:
            self._pitch_max = clamp_pitch(parsed)
            self._rebuild()
        return True

    def commit_source(self, text: str) -> bool:
        parsed = parse_integer_input(text)
        if parsed is None:
            log.debug("Rejected source BPM input %r, keeping %s", text, self.source_bpm)
            return False
        with self._lock:
            self.source_bpm = clamp_bpm(parsed)
        return True

    def commit_dest(self, text: str) -> bool:
        parsed = parse_integer_input(text)
        if parsed is None:
            log.debug("Rejected destination BPM input %r, keeping %s", text, self.dest_bpm)
            return False
        with self._lock:
            self.dest_bpm = clamp_bpm(parsed)
        return True

    def commit(self, field: str, text: str) -> bool:
        """Commit text into a field by name."""
        handlers = {
            'bpm_min': self.commit_bpm_min,
            'pitch_max': self.commit_pitch,
            'source_bpm': self.commit_source,
            'dest_bpm': self.commit_dest,
        }
        if field not in handlers:
            raise KeyError(f"Unknown control field: {field}")
        return handlers[field](text)

    def select(self, src: int, dest: int) -> None:
        """Point the lookup at a pair picked from the table or list."""
        with self._lock:
            self.source_bpm = src
            self.dest_bpm = dest

    def reset(self, table_config) -> None:
        """Restore every field from a TableConfig section, in place."""
        fresh = TableControls.from_config(table_config)
        with self._lock:
            self._bpm_min = fresh._bpm_min
            self._pitch_max = fresh._pitch_max
            self.source_bpm = fresh.source_bpm
            self.dest_bpm = fresh.dest_bpm
            self._grid = fresh._grid
        log.info("Controls reset to min_bpm=%s pitch_max=%s", self._bpm_min, self._pitch_max)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def lookup(self) -> Optional[PercentResult]:
        return compute_percent(self.source_bpm, self.dest_bpm)

    @property
    def lookup_value(self) -> str:
        result = self.lookup
        return f"{result.value_text_signed}%" if result else PLACEHOLDER

    @property
    def selection_label(self) -> str:
        result = self.lookup
        return result.label if result else PLACEHOLDER

    @property
    def current_cell(self) -> Optional[Cell]:
        return self._grid.get_cell(self.source_bpm, self.dest_bpm)

    @property
    def selection(self) -> Optional[Selection]:
        cell = self.current_cell
        return cell.to_selection() if cell else None

    def metrics(self):
        return grid_metrics(self._grid, self._pitch_max)

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the controls for serialization."""
        with self._lock:
            selection = self.selection
            return {
                'bpm_min': self._bpm_min,
                'pitch_max': float(self._pitch_max),
                'source_bpm': self.source_bpm,
                'dest_bpm': self.dest_bpm,
                'range_min': self._grid.range_min,
                'range_max': self._grid.range_max,
                'lookup_value': self.lookup_value,
                'selection_label': self.selection_label,
                'selection': (
                    {'src': selection.src, 'dest': selection.dest, 'label': selection.label}
                    if selection else None
                ),
                'metrics': dict(self.metrics()),
            }

