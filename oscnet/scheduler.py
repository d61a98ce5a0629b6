from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from oscnet import analytic, integrator
from oscnet.errors import InvalidTimeVector, NonDiagonalizable, ShapeMismatch, UnderdeterminedSystem
from oscnet.events import EventSet
from oscnet.model import NetworkModel, as_vector
from oscnet.settings import SolverSettings


@dataclass
class Trajectory:
    time: np.ndarray  # shape (T,)
    states: np.ndarray  # shape (T, 2N), layout [x_1..x_N, v_1..v_N]
    names: list[str]  # state column names, len 2N

    def size(self) -> int:
        return self.states.shape[1] // 2

    @property
    def x(self) -> np.ndarray:
        return self.states[:, : self.size()]

    @property
    def v(self) -> np.ndarray:
        return self.states[:, self.size() :]

    def column(self, name: str) -> np.ndarray:
        if name == 'time':
            return self.time
        try:
            return self.states[:, self.names.index(name)]
        except ValueError as e:
            raise KeyError(f"Unknown trajectory column '{name}'.") from e

    def table(self) -> np.ndarray:
        """(T, 2N+1) array: time, then every state channel."""
        return np.column_stack([self.time, self.states])


def validate_times(times) -> np.ndarray:
    t = np.array(times, dtype=float, copy=True)
    if t.ndim != 1 or t.size == 0:
        raise InvalidTimeVector(f'Time vector must be non-empty and 1-D, got shape {t.shape}.')
    if not np.all(np.isfinite(t)):
        raise InvalidTimeVector('Time vector contains non-finite values.')
    bad = np.flatnonzero(np.diff(t) < 0.0)
    if bad.size:
        i = int(bad[0])
        raise InvalidTimeVector(
            f'Time vector must be non-decreasing: times[{i}]={t[i]} > times[{i + 1}]={t[i + 1]}.'
        )
    return t


def _solve_numeric(
    model: NetworkModel,
    z0: np.ndarray,
    t: np.ndarray,
    settings: SolverSettings,
) -> np.ndarray:
    return integrator.advance(
        model.system_matrix(),
        z0,
        t,
        forcing=model.forcing(),
        max_step=settings.max_step_s,
        step_fraction=settings.step_fraction,
        divergence_limit=settings.divergence_limit,
    )


def _solve_analytic(
    model: NetworkModel,
    z0: np.ndarray,
    t: np.ndarray,
    settings: SolverSettings,
    echo=None,
) -> np.ndarray:
    try:
        fn = analytic.solve(
            model.system_matrix(),
            z0,
            offset=model.equilibrium(),
            imag_tol=settings.imag_tol,
            cond_limit=settings.cond_limit,
        )
    except (NonDiagonalizable, UnderdeterminedSystem) as e:
        if echo is not None:
            echo(f'Analytic solution unavailable ({e}); integrating numerically.')
        return _solve_numeric(model, z0, t, settings)
    return fn(t - t[0])


def _solve_segments(
    model: NetworkModel,
    z0: np.ndarray,
    t: np.ndarray,
    events: EventSet,
    settings: SolverSettings,
    echo=None,
) -> np.ndarray:
    """
    Split [t0, t_end] at every event time and integrate segment by segment.

    Each segment starts from the previous terminal state with the boundary
    overrides applied; pins active in the segment are re-applied after every
    step. Requested samples at a boundary report the post-event state.
    """
    a = model.system_matrix()
    b = model.forcing()
    t0, t_end = float(t[0]), float(t[-1])

    bt = events.boundary_times()
    inner = bt[(bt > t0) & (bt <= t_end)]
    bounds = np.concatenate([[t0], inner])
    if bounds[-1] < t_end:
        bounds = np.append(bounds, t_end)

    dt = integrator.internal_step(t, settings.max_step_s, settings.step_fraction)
    if echo is not None:
        echo(f'Integrating {bounds.size} segment(s) with RK4, dt={dt:.3g}.')

    out = np.zeros((t.size, z0.size), dtype=float)
    state = z0
    for i, start in enumerate(bounds):
        start = float(start)
        state = events.override(start, state)
        constraint = events.constraint_for(start)

        if i + 1 < bounds.size:
            end = float(bounds[i + 1])
            in_seg = (t >= start) & (t < end)
        else:
            end = None
            in_seg = t >= start

        idx = np.flatnonzero(in_seg)
        at_start = idx[t[idx] == start]
        after = idx[t[idx] > start]

        grid = [start] + t[after].tolist()
        if end is not None:
            grid.append(end)

        path = integrator.advance(
            a,
            state,
            np.asarray(grid, dtype=float),
            dt=dt,
            forcing=b,
            constraint=constraint,
            divergence_limit=settings.divergence_limit,
        )
        out[at_start] = path[0]
        out[after] = path[1 : 1 + after.size]
        state = path[-1]

    return out


def simulate(
    model: NetworkModel,
    x0,
    times,
    events: EventSet | None = None,
    *,
    settings: SolverSettings | None = None,
    echo=None,
) -> Trajectory:
    """
    Trajectory of the network sampled at exactly `times` (input order).

    Without events the closed-form solution is evaluated directly (falling
    back to RK4 when the system matrix is not diagonalizable); with events
    the timeline is cut at every event time and integrated numerically.
    """
    settings = SolverSettings() if settings is None else settings
    t = validate_times(times)

    n = model.size()
    z0 = as_vector('initial state', x0, 2 * n)

    events = EventSet() if events is None else events
    if events.max_index() >= 2 * n:
        raise ShapeMismatch(
            f'Event addresses state index {events.max_index()}, network state has {2 * n} entries.'
        )

    # Duplicate requested times are evaluated once.
    unique_t, inverse = np.unique(t, return_inverse=True)

    if not events.has_events():
        states = _solve_analytic(model, z0, unique_t, settings, echo=echo)
    else:
        states = _solve_segments(model, z0, unique_t, events, settings, echo=echo)

    return Trajectory(time=t, states=states[inverse.reshape(-1)], names=model.state_names())
