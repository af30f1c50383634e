"""Fiducial-based mapping and localization.

This package contains:
- coords: Rotations and SE(3) rigid transforms
- fusion: Inverse-variance pose fusion and variance combination strategies
- slam: Observations, fiducial map engine and map persistence
- sim: Synthetic fiducial scenes for demos and tests
"""

__version__ = "0.1.0"
