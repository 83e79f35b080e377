"""Immutable rigid-body pose value."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import jax
import jax.numpy as jnp

from . import se3, so3

Array = jax.Array


@dataclass(frozen=True)
class Pose:
    """Translation plus unit quaternion orientation (w, x, y, z).

    Stored as plain float tuples so poses compare and hash by value; all math is
    carried out on the homogeneous matrix form.
    """
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    quaternion: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)

    # Constructors
    @classmethod
    def from_matrix(cls, matrix: Array) -> "Pose":
        matrix = jnp.asarray(matrix)
        if matrix.shape != (4, 4):
            raise ValueError(f"matrix must have shape (4,4), got {matrix.shape}")
        position = se3.get_position(matrix)
        quat = so3.to_quaternion(se3.get_rotation(matrix))
        return cls(
            position=tuple(float(v) for v in position),
            quaternion=tuple(float(v) for v in quat),
        )

    @classmethod
    def from_xyz_rpy(cls, xyz: Sequence[float], rpy: Sequence[float]) -> "Pose":
        return cls.from_matrix(se3.from_xyz_rpy(jnp.asarray(xyz), jnp.asarray(rpy)))

    # Conversions
    def to_matrix(self) -> Array:
        R = so3.from_quaternion(jnp.asarray(self.quaternion, dtype=jnp.float64))
        return se3.from_position_and_rotation(jnp.asarray(self.position, dtype=jnp.float64), R)

    def rotation_matrix(self) -> Array:
        return so3.from_quaternion(jnp.asarray(self.quaternion, dtype=jnp.float64))

    def rpy(self) -> Tuple[float, float, float]:
        return tuple(float(v) for v in so3.to_rpy(self.rotation_matrix()))

    # Basic operations
    def compose(self, other: "Pose") -> "Pose":
        """Self ∘ other: *other* is expressed in the frame described by self."""
        return Pose.from_matrix(se3.multiply(self.to_matrix(), other.to_matrix()))

    def is_identity(self, atol: float = 1e-12) -> bool:
        return bool(
            jnp.allclose(self.to_matrix(), jnp.eye(4), atol=atol)
        )
