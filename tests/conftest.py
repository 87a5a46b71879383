"""
Shared fixtures for the episodic_tuner test suite.

Matplotlib is forced onto the headless Agg backend, and loguru/stdlib
logging state is restored after tests that reconfigure it.
"""

import logging

import matplotlib
import pytest

matplotlib.use("Agg", force=True)

from episodic_tuner.config import TrainingConfig  # noqa: E402
from episodic_tuner.core.types import Action, PolicyParameters, StateKey  # noqa: E402

from tests.doubles import BanditTask, FakeEnvironment, bandit_config  # noqa: E402


@pytest.fixture
def fake_env():
    return FakeEnvironment()


@pytest.fixture
def bandit_task():
    return BanditTask([10.0, 5.0, 1.0])


@pytest.fixture
def bandit_cfg():
    return TrainingConfig.model_validate(bandit_config())


@pytest.fixture
def three_actions():
    return tuple(Action(index=i, name=f"a{i + 1}", choice=i) for i in range(3))


@pytest.fixture
def policy_params():
    return PolicyParameters(
        alpha=0.5, gamma=0.9, epsilon=0.2, epsilon_decay=0.9, epsilon_min=0.01
    )


@pytest.fixture
def origin_state():
    return StateKey((0,))


@pytest.fixture
def restore_logging():
    """Undo ``setup_logging`` side effects on loguru and the stdlib root logger."""
    from loguru import logger

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    logger.remove()
    root.handlers = handlers
    root.setLevel(level)
