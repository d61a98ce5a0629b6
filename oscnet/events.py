"""
Timestamped overrides of individual state variables.

Variables are addressed as "x.<k>" (position) or "v.<k>" (velocity) with
1-based oscillator numbers. Each event carries an interpolation kind that
decides what happens between it and the next event on the same variable:

  instantaneous  the value jumps to the target at the event time only;
                 integration resumes from it ("dirac").
  hold           the value is pinned to the target until the next event
                 ("constant"); a pinned position also pins its velocity to 0.
  linear         the value follows the straight line to the next event's
                 target; a pinned position gets the line's slope as velocity.
                 After the last event of the series the value holds.
"""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from oscnet.errors import InvalidEventTable, ShapeMismatch


_KIND_ALIASES = {
    'dirac': 'instantaneous',
    'constant': 'hold',
}

_VARIABLE_RE = re.compile(r'^\s*([xv])\.(\d+)\s*$', re.IGNORECASE)


class Interpolation(str, Enum):
    INSTANTANEOUS = 'instantaneous'
    HOLD = 'hold'
    LINEAR = 'linear'

    @classmethod
    def parse(cls, name) -> Interpolation:
        if isinstance(name, Interpolation):
            return name
        key = str(name).strip().lower()
        key = _KIND_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as e:
            valid = sorted([k.value for k in cls] + list(_KIND_ALIASES))
            raise InvalidEventTable(f"Unknown interpolation kind '{name}'. Use: {valid}") from e


@dataclass(frozen=True)
class Event:
    index: int  # state index, 0..2N-1
    time: float
    value: float
    kind: Interpolation


def parse_variable(name: str, n: int) -> int:
    m = _VARIABLE_RE.match(str(name))
    if m is None:
        raise InvalidEventTable(f"Invalid variable name '{name}'. Use 'x.<k>' or 'v.<k>'.")
    k = int(m.group(2))
    if not 1 <= k <= n:
        raise ShapeMismatch(f"Variable '{name}' addresses oscillator {k}, network has {n}.")
    return (k - 1) if m.group(1).lower() == 'x' else (n + k - 1)


def variable_name(index: int, n: int) -> str:
    if not 0 <= index < 2 * n:
        raise ShapeMismatch(f'State index {index} out of range for {n} oscillators.')
    return f'x.{index + 1}' if index < n else f'v.{index - n + 1}'


@dataclass(frozen=True)
class _Pin:
    index: int
    t0: float
    value: float
    slope: float


class EventSet:
    """Immutable collection of events grouped by state variable."""

    def __init__(self, events: Iterable[Event] = ()) -> None:
        items = list(events)
        by_index: dict[int, list[Event]] = {}
        for e in items:
            if int(e.index) < 0:
                raise InvalidEventTable(f'Event state index must be >= 0, got {e.index}.')
            if not np.isfinite(e.time) or e.time < 0.0:
                raise InvalidEventTable(f'Event time must be finite and >= 0, got {e.time}.')
            if not np.isfinite(e.value):
                raise InvalidEventTable(f'Event value must be finite, got {e.value}.')
            if not isinstance(e.kind, Interpolation):
                raise InvalidEventTable(f'Event kind must be an Interpolation, got {e.kind!r}.')
            series = by_index.setdefault(int(e.index), [])
            if series and e.time <= series[-1].time:
                raise InvalidEventTable(
                    f'Event times for state index {e.index} must be strictly increasing '
                    f'({series[-1].time} then {e.time}).'
                )
            series.append(e)

        self._events = tuple(items)
        self._by_index = {k: tuple(v) for k, v in by_index.items()}
        self._times = {k: [e.time for e in v] for k, v in by_index.items()}

    @classmethod
    def from_table(
        cls,
        rows: Iterable[Sequence],
        n: int,
        kind: Interpolation | str | None = None,
    ) -> EventSet:
        """
        Build from rows of (variable, time, value) or (variable, time, value, kind).

        A per-row kind takes precedence over the call-level selector.
        """
        default_kind = None if kind is None else Interpolation.parse(kind)
        events: list[Event] = []
        for i, row in enumerate(rows):
            if len(row) not in (3, 4):
                raise InvalidEventTable(f'Event row {i} must have 3 or 4 fields, got {len(row)}.')
            row_kind = row[3] if len(row) == 4 else None
            if row_kind is None or str(row_kind).strip() == '':
                if default_kind is None:
                    raise InvalidEventTable(f'Event row {i} has no interpolation kind.')
                ev_kind = default_kind
            else:
                ev_kind = Interpolation.parse(row_kind)
            try:
                t = float(row[1])
                value = float(row[2])
            except (TypeError, ValueError) as e:
                raise InvalidEventTable(f'Event row {i} has a non-numeric time or value.') from e
            events.append(Event(index=parse_variable(row[0], n), time=t, value=value, kind=ev_kind))
        return cls(events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def has_events(self) -> bool:
        return len(self._events) > 0

    def max_index(self) -> int:
        return max(self._by_index) if self._by_index else -1

    def boundary_times(self) -> np.ndarray:
        if not self._events:
            return np.zeros(0, dtype=float)
        return np.unique(np.array([e.time for e in self._events], dtype=float))

    def override(self, time: float, state: np.ndarray) -> np.ndarray:
        """Apply every event scheduled exactly at `time`; other variables keep their value."""
        z = np.array(state, dtype=float, copy=True)
        n = z.size // 2
        for index in sorted(self._by_index):
            times = self._times[index]
            pos = bisect_left(times, time)
            if pos == len(times) or times[pos] != time:
                continue
            series = self._by_index[index]
            event = series[pos]

            if event.kind is Interpolation.INSTANTANEOUS:
                z[index] = event.value
            elif event.kind is Interpolation.HOLD:
                z[index] = event.value
                if index < n:
                    z[index + n] = 0.0
            elif event.kind is Interpolation.LINEAR:
                z[index] = event.value
                if index < n:
                    z[index + n] = _linear_slope(series, pos)
            else:
                raise ValueError(f'Unhandled interpolation kind: {event.kind!r}')
        return z

    def constraint_for(self, time: float) -> Callable[[float, np.ndarray], np.ndarray] | None:
        """
        Pins active over the segment starting at `time`, as a state map
        (t, state) -> state; None when nothing is pinned.
        """
        pins: list[_Pin] = []
        for index, series in self._by_index.items():
            pos = bisect_right(self._times[index], time) - 1
            if pos < 0:
                continue
            event = series[pos]
            if event.kind is Interpolation.INSTANTANEOUS:
                continue
            if event.kind is Interpolation.HOLD:
                pins.append(_Pin(index=index, t0=event.time, value=event.value, slope=0.0))
            elif event.kind is Interpolation.LINEAR:
                pins.append(
                    _Pin(index=index, t0=event.time, value=event.value, slope=_linear_slope(series, pos))
                )
            else:
                raise ValueError(f'Unhandled interpolation kind: {event.kind!r}')

        if not pins:
            return None

        def apply(t: float, state: np.ndarray) -> np.ndarray:
            z = np.array(state, dtype=float, copy=True)
            n = z.size // 2
            for pin in pins:
                z[pin.index] = pin.value + pin.slope * (t - pin.t0)
                if pin.index < n:
                    z[pin.index + n] = pin.slope
            return z

        return apply


def _linear_slope(series: Sequence[Event], pos: int) -> float:
    if pos + 1 >= len(series):
        return 0.0
    cur, nxt = series[pos], series[pos + 1]
    return (nxt.value - cur.value) / (nxt.time - cur.time)
