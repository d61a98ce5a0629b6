"""Output utilities for simulation results."""

from __future__ import annotations

import csv
from pathlib import Path

import numpy as np

from oscnet.resonance import Resonance
from oscnet.scheduler import Trajectory


def write_trajectory_csv(path: Path, trajectory: Trajectory) -> None:
    """One row per requested time: time, x.1..x.N, v.1..v.N."""
    headers = ['time'] + list(trajectory.names)
    with path.open('w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow(headers)
        for i in range(trajectory.time.size):
            row = [f'{trajectory.time[i]:.9g}']
            row += [f'{trajectory.states[i, j]:.9g}' for j in range(trajectory.states.shape[1])]
            w.writerow(row)


def write_resonances_csv(path: Path, resonances: list[Resonance]) -> None:
    with path.open('w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow(['mode', 'frequency_hz', 'undamped_hz', 'damping_ratio'])
        for i, r in enumerate(resonances, start=1):
            w.writerow([i, f'{r.frequency_hz:.9g}', f'{r.undamped_hz:.9g}', f'{r.damping_ratio:.9g}'])


def write_matrix_csv(path: Path, matrix: np.ndarray, labels: list[str] | None = None) -> None:
    """Square matrix with an index column and a header row of labels."""
    m = np.asarray(matrix, dtype=float)
    if labels is None:
        labels = [str(i + 1) for i in range(m.shape[0])]
    with path.open('w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow([''] + list(labels))
        for i in range(m.shape[0]):
            w.writerow([labels[i]] + [f'{m[i, j]:.9g}' for j in range(m.shape[1])])
