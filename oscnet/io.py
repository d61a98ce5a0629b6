from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import numpy as np

from oscnet.errors import InvalidEventTable
from oscnet.events import EventSet, Interpolation


VARIABLE_CANDIDATES = ['variable', 'var', 'name', 'state']
TIME_CANDIDATES = ['time', 't']
VALUE_CANDIDATES = ['value', 'target']
KIND_CANDIDATES = ['kind', 'method', 'interpolation']


def _detect_delimiter(header_line: str) -> str:
    semicolons = header_line.count(";")
    commas = header_line.count(",")
    return ";" if semicolons >= commas and semicolons > 0 else ","


def _parse_number(s: str) -> float:
    return float(s.strip().replace(",", "."))


def _find_header_idx(lines: list[str], required: Iterable[str]) -> int:
    required = [r.lower() for r in required]
    for i, line in enumerate(lines):
        low = line.lower()
        if all(r in low for r in required):
            return i
    return -1


def _find_col(headers: list[str], candidates: Iterable[str]) -> int:
    # Exact header match first, then substring ("time_s" matches "time").
    candidates = [c.lower() for c in candidates]
    for c in candidates:
        if c in headers:
            return headers.index(c)
    for i, h in enumerate(headers):
        for c in candidates:
            if len(c) > 1 and c in h:
                return i
    return -1


def parse_event_rows(path: Path) -> list[tuple]:
    """
    Read an event table: one row per event with variable, time, value and an
    optional interpolation kind column.
    """
    text = path.read_text(encoding="utf-8", errors="ignore")
    lines = [l.strip() for l in text.splitlines() if l.strip() and not l.strip().startswith("#")]
    if not lines:
        raise InvalidEventTable(f"Empty event table: {path.name}")

    header_idx = _find_header_idx(lines, required=["time", "value"])
    if header_idx == -1:
        raise InvalidEventTable(f"No header with 'time' and 'value' columns in {path.name}")

    header_line = lines[header_idx]
    delimiter = _detect_delimiter(header_line)
    headers = [h.strip().lower() for h in header_line.split(delimiter)]

    col_var = _find_col(headers, VARIABLE_CANDIDATES)
    col_time = _find_col(headers, TIME_CANDIDATES)
    col_val = _find_col(headers, VALUE_CANDIDATES)
    col_kind = _find_col(headers, KIND_CANDIDATES)

    if col_var == -1 or col_time == -1 or col_val == -1:
        raise InvalidEventTable(
            f"Missing columns in {path.name}: variable={col_var}, time={col_time}, value={col_val}"
        )

    rows: list[tuple] = []
    for lineno, line in enumerate(lines[header_idx + 1 :], start=header_idx + 2):
        parts = line.split(delimiter)
        if len(parts) <= max(col_var, col_time, col_val):
            raise InvalidEventTable(f"{path.name}: row {lineno} has too few fields.")
        try:
            t = _parse_number(parts[col_time])
            v = _parse_number(parts[col_val])
        except ValueError as e:
            raise InvalidEventTable(f"{path.name}: row {lineno} has a non-numeric time or value.") from e
        kind = parts[col_kind].strip() if col_kind != -1 and col_kind < len(parts) else None
        rows.append((parts[col_var].strip(), t, v, kind or None))

    return rows


def read_event_csv(path: Path, n: int, kind: Interpolation | str | None = None) -> EventSet:
    return EventSet.from_table(parse_event_rows(path), n, kind=kind)


def time_vector(t_start_s: float, t_end_s: float, n_samples: int) -> np.ndarray:
    if n_samples < 1:
        raise ValueError("n_samples must be >= 1.")
    if t_end_s < t_start_s:
        raise ValueError(f"t_end_s ({t_end_s}) must be >= t_start_s ({t_start_s}).")
    return np.linspace(float(t_start_s), float(t_end_s), int(n_samples))
