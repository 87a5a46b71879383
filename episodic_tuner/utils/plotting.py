"""
Learning-curve figure for a training run.

Uses the Agg canvas directly so plotting works headless and never touches
pyplot's global figure state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

import matplotlib.figure
import numpy as np
from matplotlib.backends.backend_agg import FigureCanvasAgg

from ..core.types import EpisodeRecord

__all__ = ["plot_learning_curve", "running_best"]


def running_best(rewards: Sequence[float]) -> np.ndarray:
    """Cumulative maximum of ``rewards``."""
    if len(rewards) == 0:
        return np.zeros(0)
    return np.maximum.accumulate(np.asarray(rewards, dtype=float))


def plot_learning_curve(
    records: Sequence[EpisodeRecord],
    path: Optional[Union[str, Path]] = None,
    *,
    title: str = "Episode reward",
    dpi: int = 100,
) -> matplotlib.figure.Figure:
    """Draw total reward per episode with aborts highlighted.

    Args:
        records: Episode records in completion order
        path: If given, the figure is saved there as PNG
        title: Axes title
        dpi: Output resolution

    Returns:
        The matplotlib Figure
    """
    figure = matplotlib.figure.Figure(figsize=(8, 4.5), dpi=dpi)
    FigureCanvasAgg(figure)
    ax = figure.add_subplot(1, 1, 1)

    episodes = np.array([r.episode_id for r in records], dtype=int)
    rewards = np.array([r.total_reward for r in records], dtype=float)
    aborted = np.array([r.aborted for r in records], dtype=bool)

    if len(records):
        ax.plot(episodes, rewards, color="tab:blue", linewidth=1.0, label="reward")
        ax.plot(
            episodes,
            running_best(rewards),
            color="tab:green",
            linestyle="--",
            linewidth=1.2,
            label="best so far",
        )
        if aborted.any():
            ax.scatter(
                episodes[aborted],
                rewards[aborted],
                color="tab:red",
                marker="x",
                zorder=3,
                label="aborted",
            )
        ax.legend(loc="lower right")
    ax.set_xlabel("episode")
    ax.set_ylabel("total reward")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    figure.tight_layout()

    if path is not None:
        figure.savefig(str(path), format="png")
    return figure
