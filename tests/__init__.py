"""
Test package for episodic_tuner.

Helpers shared across modules live in ``tests.doubles`` and
``tests.strategies``; fixtures live in ``conftest.py``.
"""
