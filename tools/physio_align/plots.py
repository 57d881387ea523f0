from __future__ import annotations

from typing import Optional

import numpy as np

from .codec import pulse_indices
from .config import PhysioConfig
from .types import AlignedTrace, RunResult


def trace_time_s(trace: AlignedTrace) -> np.ndarray:
    """Sample times in seconds relative to the first emitted sample."""
    return np.arange(len(trace), dtype=float) * trace.sampling_period_ms / 1000.0


def window_trigger_times_s(run: RunResult, cfg: PhysioConfig) -> np.ndarray:
    """Retained trigger times (s) relative to the window start."""
    period = cfg.trigger.sampling_period_ms
    t_ms = pulse_indices(run.pulses, cfg).astype(float) * period
    inside = (t_ms >= run.window.start_ms) & (t_ms < run.window.end_ms)
    return (t_ms[inside] - run.window.start_ms) / 1000.0


def plot_run(run: RunResult, cfg: PhysioConfig, title: Optional[str] = None, max_points: int = 20000):
    import matplotlib.pyplot as plt

    traces = [t for t in run.traces if t.name != "trigger"]
    n = max(1, len(traces))
    fig, axes = plt.subplots(n, 1, figsize=(12, 1.8 * n + 1.0), sharex=True, squeeze=False)
    axes = axes[:, 0]

    triggers = window_trigger_times_s(run, cfg)

    for ax, t in zip(axes, traces):
        x = trace_time_s(t)
        y = np.asarray(t.values, dtype=float)
        if len(y) > max_points and max_points > 0:
            stride = max(1, int(len(y) / max_points))
            x, y = x[::stride], y[::stride]
        ax.plot(x, y, linewidth=0.7)
        for ts in triggers:
            ax.axvline(ts, color="r", linewidth=0.4, alpha=0.3)
        if t.padded_samples:
            pad_start = (len(t) - t.padded_samples) * t.sampling_period_ms / 1000.0
            ax.axvspan(pad_start, len(t) * t.sampling_period_ms / 1000.0, color="0.8", alpha=0.5)
        ax.set_ylabel(t.name)
        ax.grid(True, alpha=0.25)

    axes[-1].set_xlabel("time in run (s)")
    tr = run.window.repetition_ms
    tr_txt = f"TR {tr:.1f} ms, {run.window.interval_count} triggers" if tr is not None else "start time only"
    fig.suptitle(title or f"{run.prefix}: {tr_txt}")
    fig.tight_layout()
    return fig
