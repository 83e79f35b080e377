"""SE(3) rigid body transforms in JAX.

This module implements SE(3) rigid body transforms using homogeneous 4x4
matrices. All functions are pure and operate on JAX arrays. Composition is
always a matrix product, so chained joint origins never accumulate the
inconsistencies of adding Euler angles.
"""


import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Construct SE(3) transform from position and rotation.

    Args:
        p: (..., 3) position vector
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    # Ensure consistent batch shapes
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=p.dtype)
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    T = T.at[..., 3, 3].set(1.0)

    return T


def from_xyz_rpy(xyz: Array, rpy: Array) -> Array:
    """
    Construct SE(3) transform from a URDF ``<origin xyz rpy>`` pair.

    Args:
        xyz: (3,) translation
        rpy: (3,) roll, pitch, yaw in radians

    Returns:
        (4, 4) homogeneous transformation matrix
    """
    xyz = jnp.asarray(xyz, dtype=jnp.float64)
    return from_position_and_rotation(xyz, so3.from_rpy(jnp.asarray(rpy, dtype=jnp.float64)))


def multiply(T1: Array, T2: Array) -> Array:
    """
    Multiply two SE(3) transformation matrices.

    Args:
        T1: (..., 4, 4) first transformation matrix
        T2: (..., 4, 4) second transformation matrix

    Returns:
        (..., 4, 4) result of T1 @ T2
    """
    return jnp.matmul(T1, T2)


def get_position(T: Array) -> Array:
    """
    Extract position from SE(3) transformation matrix.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 3) position vector
    """
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    """
    Extract rotation matrix from SE(3) transformation matrix.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 3, 3) rotation matrix
    """
    return T[..., :3, :3]
