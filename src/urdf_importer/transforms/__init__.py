"""
JAX-based rigid-body transforms used by the importer.

This module provides:
- SO(3) rotations (so3 module)
- SE(3) rigid body transforms (se3 module)
- an immutable Pose value built on both (pose module)
"""

from . import so3
from . import se3
from .pose import Pose

__all__ = [
    "so3",
    "se3",
    "Pose",
]
