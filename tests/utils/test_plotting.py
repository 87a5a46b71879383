import numpy as np

from episodic_tuner.core.types import EpisodeRecord
from episodic_tuner.utils.plotting import plot_learning_curve, running_best


def records(rewards, aborted=()):
    return [
        EpisodeRecord(
            episode_id=i + 1,
            total_reward=r,
            aborted=i in aborted,
            abort_reason="stall" if i in aborted else None,
            chosen_action_or_params={},
        )
        for i, r in enumerate(rewards)
    ]


def test_running_best():
    np.testing.assert_array_equal(running_best([-5, -7, -2, -3]), [-5, -5, -2, -2])
    assert running_best([]).size == 0


def test_plot_writes_png(tmp_path):
    path = tmp_path / "curve.png"
    figure = plot_learning_curve(records([-10.0, -4.0, -501.0, -2.0], aborted={2}), path)
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
    ax = figure.axes[0]
    assert len(ax.lines) == 2
    assert len(ax.collections) == 1


def test_plot_without_aborts_or_records():
    figure = plot_learning_curve(records([-3.0, -1.0]))
    assert len(figure.axes[0].collections) == 0
    empty = plot_learning_curve([])
    assert len(empty.axes[0].lines) == 0
