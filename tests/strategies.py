"""
Hypothesis strategies for property-based testing.

Generators produce values that satisfy the engine's type contracts: strictly
increasing finite threshold lists, state keys and policy parameters.
"""

from hypothesis import strategies as st

from episodic_tuner.core.types import PolicyParameters, StateKey

finite_floats = st.floats(
    min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False
)


@st.composite
def thresholds_strategy(draw, min_size: int = 1, max_size: int = 6):
    """Strictly increasing, finite threshold list."""
    values = draw(
        st.lists(finite_floats, min_size=min_size, max_size=max_size, unique=True)
    )
    return sorted(values)


@st.composite
def discretizer_spec_strategy(draw, max_dims: int = 4):
    """Per-dimension thresholds plus a matching observation vector."""
    dims = draw(st.integers(min_value=1, max_value=max_dims))
    thresholds = [draw(thresholds_strategy()) for _ in range(dims)]
    values = [draw(finite_floats) for _ in range(dims)]
    return thresholds, values


state_keys = st.builds(
    StateKey,
    bins=st.lists(st.integers(min_value=0, max_value=8), min_size=1, max_size=4).map(tuple),
    visited=st.integers(min_value=0, max_value=31),
)


@st.composite
def policy_params_strategy(draw):
    epsilon = draw(st.floats(min_value=0.0, max_value=1.0))
    return PolicyParameters(
        alpha=draw(st.floats(min_value=0.01, max_value=1.0)),
        gamma=draw(st.floats(min_value=0.0, max_value=1.0)),
        epsilon=epsilon,
        epsilon_decay=draw(st.floats(min_value=0.01, max_value=1.0)),
        epsilon_min=draw(st.floats(min_value=0.0, max_value=epsilon)),
    )
