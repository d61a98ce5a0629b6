from __future__ import annotations

from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt

from oscnet.resonance import Resonance
from oscnet.scheduler import Trajectory


def plot_trajectory(
    trajectory: Trajectory,
    out_path: Path,
    *,
    event_times: np.ndarray | None = None,
    title: str = "Oscillator Positions and Velocities",
) -> None:
    """Positions on top, velocities below, event times as dashed lines."""
    n = trajectory.size()
    t = trajectory.time

    fig, (ax1, ax2) = plt.subplots(
        2, 1, figsize=(12, 9), sharex=True, gridspec_kw={"height_ratios": [3, 2]}
    )
    colors = plt.cm.viridis(np.linspace(0, 0.9, max(n, 1)))

    for i in range(n):
        ax1.plot(t, trajectory.x[:, i], label=trajectory.names[i], linewidth=1.4, color=colors[i])
        ax2.plot(t, trajectory.v[:, i], label=trajectory.names[n + i], linewidth=1.2, color=colors[i])

    if event_times is not None:
        for te in np.asarray(event_times, dtype=float):
            if t[0] <= te <= t[-1]:
                ax1.axvline(x=te, color="gray", linewidth=0.8, linestyle="--")
                ax2.axvline(x=te, color="gray", linewidth=0.8, linestyle="--")

    ax1.set_ylabel("Position")
    ax1.set_title(title)
    ax1.grid(True, alpha=0.3)
    ax1.legend(bbox_to_anchor=(1.02, 1), loc="upper left", fontsize=8)

    ax2.axhline(y=0, color="gray", linewidth=0.8, linestyle="--")
    ax2.set_xlabel("Time (s)")
    ax2.set_ylabel("Velocity")
    ax2.grid(True, alpha=0.3)
    ax2.legend(bbox_to_anchor=(1.02, 1), loc="upper left", fontsize=8)

    plt.tight_layout()
    plt.savefig(out_path, dpi=160, bbox_inches="tight")
    plt.close(fig)


def plot_resonances(resonances: list[Resonance], out_path: Path) -> None:
    """Undamped vs damped frequency per mode, damping ratio below."""
    idx = np.arange(1, len(resonances) + 1)
    undamped = np.array([r.undamped_hz for r in resonances], dtype=float)
    damped = np.array([r.frequency_hz for r in resonances], dtype=float)
    zeta = np.array([r.damping_ratio for r in resonances], dtype=float)

    fig, (ax1, ax2) = plt.subplots(
        2, 1, figsize=(10, 7), sharex=True, gridspec_kw={"height_ratios": [3, 1]}
    )
    width = 0.38
    ax1.bar(idx - width / 2, undamped, width=width, label="undamped", color="tab:blue")
    ax1.bar(idx + width / 2, damped, width=width, label="damped", color="tab:orange")
    ax1.set_ylabel("Frequency (Hz)")
    ax1.set_title("Resonance Frequencies per Mode")
    ax1.grid(True, alpha=0.3)
    ax1.legend(fontsize=8)

    ax2.plot(idx, zeta, marker="o", color="tab:red", linewidth=1.2)
    ax2.set_xlabel("Mode")
    ax2.set_ylabel("Damping ratio")
    ax2.set_xticks(idx)
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close(fig)
